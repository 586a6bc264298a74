"""ISDA SIMM Engine - sensitivity-based initial margin.

Delta sensitivities are netted per risk factor, risk weighted, and then
aggregated in three steps:

1. Within a bucket: K_b = sqrt(sum WS^2 + sum_{i!=j} rho x WS_i x WS_j)
2. Across buckets of a risk class: sqrt(sum K_b^2 + sum_{b!=c} gamma x K_b x K_c)
3. Across risk classes: sqrt(sum of squared risk-class margins), or the
   full psi quadratic form when risk-class correlation is requested
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from typing import Iterable, Sequence

import numpy as np

from src.config.regulatory_tables import SIMMParameters, load_simm_parameters
from src.core.domain.errors import CalculationError, InvalidInputError
from src.core.domain.margin_metrics import SIMMResult
from src.core.domain.netting_set import Collateral, NettingSet, total_collateral_value
from src.core.domain.sensitivity import RiskFactorType
from src.core.domain.trade import Trade
from src.core.services.netting import validate_trades

logger = logging.getLogger(__name__)

# Aggregates this far below zero are floating-point noise
NEGATIVE_ROUNDING_TOLERANCE = 1e-9

RiskFactorKey = tuple[RiskFactorType, int, str]


def calculate_isda_simm(
    netting_set: NettingSet,
    trades: Sequence[Trade],
    collateral: Iterable[Collateral] = (),
    *,
    parameters: SIMMParameters | None = None,
    include_correlation_matrix: bool = False,
    apply_risk_class_correlation: bool = False,
) -> SIMMResult:
    """Calculate ISDA SIMM initial margin for a netting set.

    Args:
        netting_set: Netting agreement terms
        trades: Trades carrying risk-factor sensitivities (at least one trade)
        collateral: Collateral posted against the requirement
        parameters: Risk weights and correlations (default: packaged v2.6)
        include_correlation_matrix: Report the risk-class correlation table
        apply_risk_class_correlation: Aggregate risk classes with psi
            instead of the sum of squares

    Returns:
        SIMMResult with initial margin, bucket margins and diversification

    Raises:
        InvalidInputError: If trades is empty, a trade is invalid, or a
            sensitivity uses a risk type the parameters do not cover
        CalculationError: If an aggregate under a square root is negative
    """
    params = parameters or load_simm_parameters()
    trades = list(trades)
    validate_trades(trades)

    sensitivities = net_sensitivities(trades, params)

    weighted: dict[RiskFactorType, dict[int, list[float]]] = defaultdict(
        lambda: defaultdict(list)
    )
    for (risk_type, bucket, _label), sensitivity in sensitivities.items():
        weighted[risk_type][bucket].append(params.risk_weight(risk_type, bucket) * sensitivity)

    contributions: dict[RiskFactorType, dict[int, float]] = {}
    risk_class_margins: dict[RiskFactorType, float] = {}
    for risk_type in RiskFactorType:
        if risk_type not in weighted:
            continue
        rho = params.intra_bucket_correlations[risk_type]
        gamma = params.inter_bucket_correlations[risk_type]
        buckets = {
            bucket: correlated_aggregate(ws, rho, f"{risk_type.value} bucket {bucket}")
            for bucket, ws in sorted(weighted[risk_type].items())
        }
        contributions[risk_type] = buckets
        margin = correlated_aggregate(
            list(buckets.values()), gamma, f"{risk_type.value} risk class"
        )
        risk_class_margins[risk_type] = margin
        logger.debug("SIMM %s: buckets=%s margin=%.2f", risk_type.value, buckets, margin)

    initial_margin = total_margin(risk_class_margins, params, apply_risk_class_correlation)
    gross = float(sum(k for buckets in contributions.values() for k in buckets.values()))

    collateral_value = total_collateral_value(collateral)
    net_im = min(netting_set.apply_margin_terms(initial_margin, collateral_value), initial_margin)

    logger.info(
        "SIMM netting set %s: IM=%.2f gross=%.2f net=%.2f",
        netting_set.netting_set_id,
        initial_margin,
        gross,
        net_im,
    )

    return SIMMResult(
        initial_margin=initial_margin,
        net_initial_margin=net_im,
        risk_factor_contributions=contributions,
        risk_class_margins=risk_class_margins,
        diversification_benefit=max(gross - initial_margin, 0.0),
        collateral_value=collateral_value,
        correlation_matrix=(
            {a: dict(row) for a, row in params.risk_class_correlations.items()}
            if include_correlation_matrix
            else None
        ),
        parameters_version=params.version,
    )


def net_sensitivities(
    trades: Sequence[Trade], params: SIMMParameters
) -> dict[RiskFactorKey, float]:
    """Sum sensitivities across trades per (risk type, bucket, label).

    Raises:
        InvalidInputError: If a risk type has no weights or correlations
    """
    netted: dict[RiskFactorKey, float] = defaultdict(float)
    for trade in trades:
        for factor in trade.risk_factors:
            if not isinstance(factor.risk_type, RiskFactorType) or not params.supports(
                factor.risk_type
            ):
                raise InvalidInputError(
                    f"risk type {factor.risk_type!r} is not covered by {params.version}",
                    field="risk_factors",
                    trade_id=trade.trade_id,
                )
            netted[(factor.risk_type, factor.bucket, factor.label)] += factor.sensitivity
    return dict(netted)


def correlated_aggregate(values: Sequence[float], correlation: float, stage: str) -> float:
    """sqrt(sum x_i^2 + sum_{i!=j} correlation x x_i x x_j) with a uniform correlation."""
    squares = sum(v * v for v in values)
    total = sum(values)
    return _checked_sqrt((1.0 - correlation) * squares + correlation * total * total, stage)


def total_margin(
    risk_class_margins: dict[RiskFactorType, float],
    params: SIMMParameters,
    apply_risk_class_correlation: bool,
) -> float:
    """Combine risk-class margins into the final initial margin."""
    if not risk_class_margins:
        return 0.0
    classes = list(risk_class_margins)
    margins = np.array([risk_class_margins[rc] for rc in classes])
    if apply_risk_class_correlation:
        psi = np.array(
            [[params.risk_class_correlations[a][b] for b in classes] for a in classes]
        )
    else:
        psi = np.eye(len(classes))
    return _checked_sqrt(float(margins @ psi @ margins), "cross risk class")


def _checked_sqrt(value: float, stage: str) -> float:
    if value < -NEGATIVE_ROUNDING_TOLERANCE:
        raise CalculationError(stage, f"negative aggregate {value} under square root")
    return math.sqrt(max(value, 0.0))
