"""SA-CCR Engine - Exposure at Default per Basel CRE52.

Computes, for one netting set:
1. Replacement cost from market values, collateral and margin terms
2. Effective notional per trade (delta x adjusted notional x maturity factor)
3. Hedging-set and asset-class add-ons with supervisory correlations
4. The PFE multiplier and the final EAD = alpha x (RC + multiplier x AddOn)

All regulatory constants come from ``SACCRParameters``.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Iterable, Sequence, cast

from src.config.regulatory_tables import SACCRParameters, load_saccr_parameters
from src.core.domain.errors import CalculationError, InvalidInputError
from src.core.domain.exposure_metrics import ReplacementCostResult, SACCRResult
from src.core.domain.fields import year_fraction
from src.core.domain.netting_set import Collateral, NettingSet, total_collateral_value
from src.core.domain.trade import (
    AssetClass,
    CommodityTrade,
    CreditTrade,
    EquityTrade,
    ForeignExchangeTrade,
    InterestRateTrade,
    MaturityBucket,
    Trade,
)
from src.core.services.netting import pfe_multiplier, summarize_input, validate_trades

logger = logging.getLogger(__name__)

# Square-root arguments this far below zero are rounding noise, not bugs
NEGATIVE_ROUNDING_TOLERANCE = 1e-9


@dataclass
class _AddOnContext:
    """Per-call state shared by the asset-class aggregators."""

    netting_set: NettingSet
    valuation_date: date
    parameters: SACCRParameters
    warnings: list[str] = field(default_factory=list)

    def effective_notional(self, trade: Trade) -> float:
        return effective_notional(
            trade, self.netting_set, self.valuation_date, self.parameters, self.warnings
        )


def compute_ead(
    netting_set: NettingSet,
    trades: Sequence[Trade],
    collateral: Iterable[Collateral] = (),
    *,
    valuation_date: date | None = None,
    parameters: SACCRParameters | None = None,
) -> SACCRResult:
    """Compute SA-CCR Exposure at Default for a netting set.

    Args:
        netting_set: Netting agreement terms
        trades: Trades in the netting set (at least one)
        collateral: Collateral held against the netting set
        valuation_date: Date maturities are measured from (default: today)
        parameters: Supervisory tables (default: packaged CRE52 table)

    Returns:
        SACCRResult with EAD, RC, PFE, add-ons and multiplier

    Raises:
        InvalidInputError: If trades is empty or a trade is invalid
        CalculationError: If an aggregate add-on comes out negative
    """
    params = parameters or load_saccr_parameters()
    as_of = valuation_date or date.today()
    trades = list(trades)
    collateral = list(collateral)

    validate_trades(trades)

    rc = replacement_cost(netting_set, trades, collateral)
    logger.debug(
        "Netting set %s: V=%.2f C=%.2f RC=%.2f",
        netting_set.netting_set_id,
        rc.market_value,
        rc.collateral_value,
        rc.value,
    )

    context = _AddOnContext(netting_set=netting_set, valuation_date=as_of, parameters=params)
    per_asset_class, hedging_sets = aggregate_add_ons(trades, context)

    add_on = float(sum(per_asset_class.values()))
    if add_on < 0:
        raise CalculationError("aggregate add-on", f"negative add-on {add_on}")

    multiplier = pfe_multiplier(rc.current_exposure, add_on, params.multiplier_floor)
    pfe = multiplier * add_on
    ead = params.alpha * (rc.value + pfe)

    for warning in context.warnings:
        logger.warning(warning)
    logger.info(
        "SA-CCR netting set %s: EAD=%.2f (RC=%.2f, AddOn=%.2f, multiplier=%.4f)",
        netting_set.netting_set_id,
        ead,
        rc.value,
        add_on,
        multiplier,
    )

    return SACCRResult(
        ead=ead,
        replacement_cost=rc,
        pfe=pfe,
        add_on=add_on,
        multiplier=multiplier,
        per_asset_class_add_on=per_asset_class,
        hedging_set_add_ons=hedging_sets,
        alpha=params.alpha,
        multiplier_floor=params.multiplier_floor,
        valuation_date=as_of,
        input_summary=summarize_input(netting_set, trades),
        parameters_version=params.version,
        warnings=tuple(context.warnings),
    )


def replacement_cost(
    netting_set: NettingSet,
    trades: Sequence[Trade],
    collateral: Sequence[Collateral],
) -> ReplacementCostResult:
    """Replacement cost for margined or unmargined netting sets.

    Unmargined: RC = max(V - C, 0).
    Margined: RC = max(V - C, TH + MTA - NICA, 0), with variation margin in C.
    """
    market_value = float(sum(t.current_market_value for t in trades))
    collateral_value = total_collateral_value(collateral)

    if not netting_set.is_margined:
        current_exposure = market_value - collateral_value
        return ReplacementCostResult(
            value=max(current_exposure, 0.0),
            market_value=market_value,
            collateral_value=collateral_value,
            current_exposure=current_exposure,
        )

    collateral_value += netting_set.variation_margin
    current_exposure = market_value - collateral_value
    margin_floor = (
        netting_set.threshold
        + netting_set.minimum_transfer_amount
        - netting_set.independent_collateral_amount
    )
    return ReplacementCostResult(
        value=max(current_exposure, margin_floor, 0.0),
        market_value=market_value,
        collateral_value=collateral_value,
        current_exposure=current_exposure,
        margin_floor=margin_floor,
        variation_margin=netting_set.variation_margin,
        threshold=netting_set.threshold,
        minimum_transfer_amount=netting_set.minimum_transfer_amount,
        independent_collateral_amount=netting_set.independent_collateral_amount,
    )


def supervisory_duration(start_years: float, end_years: float, rate: float) -> float:
    """Supervisory duration (exp(-r*S) - exp(-r*E)) / r, S and E floored at zero."""
    start = max(start_years, 0.0)
    end = max(end_years, 0.0)
    return (math.exp(-rate * start) - math.exp(-rate * end)) / rate


def adjusted_notional(
    trade: Trade,
    valuation_date: date,
    parameters: SACCRParameters,
) -> float:
    """Notional scaled by supervisory duration for rate and credit trades."""
    if trade.asset_class in (AssetClass.INTEREST_RATE, AssetClass.CREDIT):
        start_years = year_fraction(valuation_date, trade.effective_start(valuation_date))
        end_years = year_fraction(valuation_date, trade.maturity_date)
        return trade.notional * supervisory_duration(
            start_years, end_years, parameters.supervisory_duration_rate
        )
    return trade.notional


def maturity_factor(
    trade: Trade,
    netting_set: NettingSet,
    valuation_date: date,
    parameters: SACCRParameters,
) -> float:
    """Maturity factor.

    Unmargined: sqrt(min(M, 1)) with M floored at the minimum maturity.
    Margined: scalar x sqrt(MPOR / business days per year).
    """
    if netting_set.is_margined:
        return parameters.margined_maturity_scalar * math.sqrt(
            netting_set.margin_period_of_risk / parameters.business_days_per_year
        )
    maturity = max(trade.residual_maturity(valuation_date), parameters.minimum_maturity_years)
    return math.sqrt(min(maturity, 1.0))


def supervisory_delta(trade: Trade, warnings: list[str] | None = None) -> float:
    """Delta by position type: +1 long, -1 short.

    Option trades also resolve to +/-1; no option pricing model is applied,
    so the simplification is recorded in ``warnings``.
    """
    if trade.is_option and warnings is not None:
        warnings.append(
            f"Trade '{trade.trade_id}': option delta set to {trade.direction:+d} "
            "(no supervisory option delta model applied)"
        )
    return float(trade.direction)


def supervisory_factor(trade: Trade, parameters: SACCRParameters) -> float:
    """Supervisory factor by asset class and sub-type."""
    if isinstance(trade, InterestRateTrade):
        return parameters.rate_factor
    if isinstance(trade, ForeignExchangeTrade):
        return parameters.fx_factor
    if isinstance(trade, CreditTrade):
        return parameters.credit_factors[(trade.is_index, trade.credit_quality)]
    if isinstance(trade, EquityTrade):
        return parameters.equity_factors[trade.is_index]
    if isinstance(trade, CommodityTrade):
        return parameters.commodity_factors[trade.commodity_type]
    raise InvalidInputError(
        f"unrecognized asset class {getattr(trade, 'asset_class', None)!r}",
        field="asset_class",
        trade_id=trade.trade_id,
    )


def effective_notional(
    trade: Trade,
    netting_set: NettingSet,
    valuation_date: date,
    parameters: SACCRParameters,
    warnings: list[str] | None = None,
) -> float:
    """Delta x adjusted notional x maturity factor."""
    return (
        supervisory_delta(trade, warnings)
        * adjusted_notional(trade, valuation_date, parameters)
        * maturity_factor(trade, netting_set, valuation_date, parameters)
    )


def aggregate_add_ons(
    trades: Sequence[Trade],
    context: _AddOnContext,
) -> tuple[dict[AssetClass, float], dict[str, float]]:
    """Add-on per asset class plus the hedging-set breakdown."""
    by_class: dict[AssetClass, list[Trade]] = defaultdict(list)
    for trade in trades:
        by_class[trade.asset_class].append(trade)

    per_asset_class: dict[AssetClass, float] = {}
    hedging_sets: dict[str, float] = {}
    for asset_class, class_trades in by_class.items():
        aggregator = _AGGREGATORS[asset_class]
        class_add_on, class_sets = aggregator(class_trades, context)
        if class_add_on < 0:
            raise CalculationError(
                f"{asset_class.value} add-on", f"negative add-on {class_add_on}"
            )
        per_asset_class[asset_class] = class_add_on
        for key, value in class_sets.items():
            hedging_sets[f"{asset_class.value}:{key}"] = value
        logger.debug(
            "%s add-on %.2f over %d trades", asset_class.value, class_add_on, len(class_trades)
        )

    return per_asset_class, hedging_sets


def _checked_sqrt(value: float, stage: str) -> float:
    if value < -NEGATIVE_ROUNDING_TOLERANCE:
        raise CalculationError(stage, f"negative aggregate {value} under square root")
    return math.sqrt(max(value, 0.0))


def _correlated_add_on(entity_add_ons: Iterable[tuple[float, float]], stage: str) -> float:
    """sqrt((sum rho_k x A_k)^2 + sum (1 - rho_k^2) x A_k^2) over (A_k, rho_k)."""
    systematic = 0.0
    idiosyncratic = 0.0
    for add_on, rho in entity_add_ons:
        systematic += rho * add_on
        idiosyncratic += (1.0 - rho * rho) * add_on * add_on
    return _checked_sqrt(systematic * systematic + idiosyncratic, stage)


def _interest_rate_add_on(
    trades: list[Trade],
    context: _AddOnContext,
) -> tuple[float, dict[str, float]]:
    """Hedging set per currency, maturity buckets combined with cross terms."""
    params = context.parameters
    buckets: dict[str, dict[MaturityBucket, float]] = defaultdict(
        lambda: {bucket: 0.0 for bucket in MaturityBucket}
    )
    for trade in cast("list[InterestRateTrade]", trades):
        bucket = trade.maturity_bucket(context.valuation_date)
        buckets[trade.hedging_currency][bucket] += context.effective_notional(trade)

    hedging_sets: dict[str, float] = {}
    for currency, notionals in buckets.items():
        d1 = notionals[MaturityBucket.LESS_THAN_ONE_YEAR]
        d2 = notionals[MaturityBucket.ONE_TO_FIVE_YEARS]
        d3 = notionals[MaturityBucket.GREATER_THAN_FIVE_YEARS]
        combined = (
            d1 * d1
            + d2 * d2
            + d3 * d3
            + params.rate_adjacent_term * d1 * d2
            + params.rate_adjacent_term * d2 * d3
            + params.rate_distant_term * d1 * d3
        )
        hedging_sets[currency] = params.rate_factor * _checked_sqrt(
            combined, f"interest rate hedging set {currency}"
        )

    return float(sum(hedging_sets.values())), hedging_sets


def _fx_add_on(
    trades: list[Trade],
    context: _AddOnContext,
) -> tuple[float, dict[str, float]]:
    """Hedging set per currency pair: SF x |sum effective notional|."""
    net: dict[str, float] = defaultdict(float)
    for trade in cast("list[ForeignExchangeTrade]", trades):
        net[trade.hedging_pair] += context.effective_notional(trade)

    hedging_sets = {
        pair: context.parameters.fx_factor * abs(notional) for pair, notional in net.items()
    }
    return float(sum(hedging_sets.values())), hedging_sets


def _entity_add_on(
    trades: list[Trade],
    context: _AddOnContext,
    entity_key: Callable[[Trade], str],
    correlations: dict[bool, float],
    stage: str,
) -> tuple[float, dict[str, float]]:
    """Single hedging set of entities with a systematic correlation factor."""
    entity_add_on: dict[str, float] = defaultdict(float)
    entity_is_index: dict[str, bool] = {}
    for trade in trades:
        key = entity_key(trade)
        factor = supervisory_factor(trade, context.parameters)
        entity_add_on[key] += factor * context.effective_notional(trade)
        entity_is_index.setdefault(key, bool(getattr(trade, "is_index", False)))

    total = _correlated_add_on(
        ((a, correlations[entity_is_index[k]]) for k, a in entity_add_on.items()),
        stage,
    )
    return total, {k: abs(a) for k, a in entity_add_on.items()}


def _credit_add_on(
    trades: list[Trade],
    context: _AddOnContext,
) -> tuple[float, dict[str, float]]:
    return _entity_add_on(
        trades,
        context,
        lambda t: t.reference_entity,  # type: ignore[attr-defined]
        context.parameters.credit_correlations,
        "credit add-on",
    )


def _equity_add_on(
    trades: list[Trade],
    context: _AddOnContext,
) -> tuple[float, dict[str, float]]:
    return _entity_add_on(
        trades,
        context,
        lambda t: t.issuer,  # type: ignore[attr-defined]
        context.parameters.equity_correlations,
        "equity add-on",
    )


def _commodity_add_on(
    trades: list[Trade],
    context: _AddOnContext,
) -> tuple[float, dict[str, float]]:
    """Hedging set per commodity type; sub-types combined with one correlation."""
    params = context.parameters
    sets: dict[str, dict[str, float]] = defaultdict(lambda: defaultdict(float))
    for trade in cast("list[CommodityTrade]", trades):
        sets[trade.commodity_type.value][trade.sub_type_key] += (
            supervisory_factor(trade, params) * context.effective_notional(trade)
        )

    rho = params.commodity_correlation
    hedging_sets = {
        commodity_type: _correlated_add_on(
            ((a, rho) for a in sub_types.values()), f"commodity hedging set {commodity_type}"
        )
        for commodity_type, sub_types in sets.items()
    }
    return float(sum(hedging_sets.values())), hedging_sets


_AGGREGATORS: dict[
    AssetClass,
    Callable[[list[Trade], _AddOnContext], tuple[float, dict[str, float]]],
] = {
    AssetClass.INTEREST_RATE: _interest_rate_add_on,
    AssetClass.FOREIGN_EXCHANGE: _fx_add_on,
    AssetClass.CREDIT: _credit_add_on,
    AssetClass.EQUITY: _equity_add_on,
    AssetClass.COMMODITY: _commodity_add_on,
}
