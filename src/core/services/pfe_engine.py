"""PFE Engine - potential future exposure for a netting set.

Each trade contributes an add-on on its own (no hedging sets). The gross
add-on is reduced by a netting benefit derived from the net-to-gross
market value ratio, then scaled by the SA-CCR style collateral multiplier.

Methods differ only in the per-trade risk factor:
- Standardised: supervisory factor x horizon factor x z
- Internal model: model volatility x horizon factor x z
- Historical: scaled historical volatility x horizon factor x z
- Monte Carlo: quantile of the simulated peak relative move
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from datetime import date
from typing import Iterable, Sequence

import numpy as np

from src.config.regulatory_tables import PFEParameterTables, load_pfe_parameters
from src.core.domain.calculation_parameters import PFECalculationMethod, PFESettings
from src.core.domain.exposure_metrics import PFEResult, TradeContribution
from src.core.domain.netting_set import Collateral, NettingSet, total_collateral_value
from src.core.domain.trade import AssetClass, Trade, TransactionType
from src.core.services.netting import (
    net_to_gross_ratio,
    pfe_multiplier,
    summarize_input,
    validate_trades,
)

logger = logging.getLogger(__name__)

# Shape of the exposure profile at the start and end of the horizon
PROFILE_START = 0.2
PROFILE_END = 0.5


def calculate_pfe(
    netting_set: NettingSet,
    trades: Sequence[Trade],
    collateral: Iterable[Collateral] = (),
    *,
    settings: PFESettings | None = None,
    valuation_date: date | None = None,
    parameters: PFEParameterTables | None = None,
) -> PFEResult:
    """Calculate potential future exposure for a netting set.

    Args:
        netting_set: Netting agreement terms
        trades: Trades in the netting set (at least one)
        collateral: Collateral held against the netting set
        settings: Horizon, quantile and method (default: 1y, 99%, standardised)
        valuation_date: Date maturities are measured from (default: today)
        parameters: PFE tables (default: packaged table)

    Returns:
        PFEResult with PFE, add-ons, multiplier and exposure breakdowns

    Raises:
        InvalidInputError: If trades is empty or a trade is invalid
    """
    settings = settings or PFESettings()
    params = parameters or load_pfe_parameters()
    as_of = valuation_date or date.today()
    trades = list(trades)
    collateral = list(collateral)

    validate_trades(trades)

    risk_factors = method_risk_factors(settings, params)
    trade_add_ons = [
        (trade, trade_add_on(trade, as_of, settings, params, risk_factors[trade.asset_class]))
        for trade in trades
    ]
    gross_add_on = float(sum(add_on for _, add_on in trade_add_ons))

    ngr = net_to_gross_ratio(trades)
    netting_factor = 1.0 - params.netting_recognition + params.netting_recognition * ngr
    add_on = netting_factor * gross_add_on

    market_value = float(sum(t.current_market_value for t in trades))
    margin_scale = _margin_scale(netting_set, params)

    collateral_value = _collateral_value(netting_set, collateral, stressed=False)
    multiplier = pfe_multiplier(
        market_value - collateral_value, add_on, params.multiplier_floor
    )
    pfe = multiplier * add_on * margin_scale

    stressed_collateral = _collateral_value(netting_set, collateral, stressed=True)
    stressed_multiplier = pfe_multiplier(
        market_value - stressed_collateral, add_on, params.multiplier_floor
    )
    stressed_pfe = (
        params.stress_factors[settings.calculation_method]
        * stressed_multiplier
        * add_on
        * margin_scale
    )

    class_add_ons: dict[AssetClass, float] = defaultdict(float)
    for trade, trade_value in trade_add_ons:
        class_add_ons[trade.asset_class] += trade_value
    breakdown = {
        asset_class: (pfe * value / gross_add_on if gross_add_on > 0 else 0.0)
        for asset_class, value in class_add_ons.items()
    }

    contributions = tuple(
        TradeContribution(
            trade_id=trade.trade_id,
            asset_class=trade.asset_class,
            add_on=value,
            market_value=trade.current_market_value,
            share=value / gross_add_on if gross_add_on > 0 else 0.0,
        )
        for trade, value in trade_add_ons
    )

    logger.info(
        "PFE netting set %s (%s): PFE=%.2f gross=%.2f NGR=%.4f multiplier=%.4f",
        netting_set.netting_set_id,
        settings.calculation_method.value,
        pfe,
        gross_add_on,
        ngr,
        multiplier,
    )

    return PFEResult(
        pfe=pfe,
        add_on=add_on,
        gross_add_on=gross_add_on,
        multiplier=multiplier,
        net_gross_ratio=ngr,
        per_trade_contribution=contributions,
        expected_exposure=expected_exposure(breakdown, pfe, settings, params),
        peak_exposure=max(breakdown.values(), default=0.0),
        stressed_pfe=stressed_pfe,
        exposure_profile=exposure_profile(
            pfe, params.horizon_days[settings.time_horizon], params.exposure_profile_points
        ),
        asset_class_breakdown=dict(breakdown),
        input_summary=summarize_input(netting_set, trades),
        settings=settings.to_dict(),
        parameters_version=params.version,
    )


def method_risk_factors(
    settings: PFESettings, params: PFEParameterTables
) -> dict[AssetClass, float]:
    """Risk factor per asset class for the selected method.

    The factor multiplies notional x maturity factor (and the transaction
    adjustment in the standardised method) to give a trade add-on.
    """
    horizon = params.horizon_factor(settings.time_horizon)
    z = params.confidence_z[settings.confidence_level]
    method = settings.calculation_method

    if method is PFECalculationMethod.REGULATORY_STANDARDISED_APPROACH:
        return {ac: sf * horizon * z for ac, sf in params.supervisory_factors.items()}
    if method is PFECalculationMethod.INTERNAL_MODEL_METHOD:
        return {ac: vol * horizon * z for ac, vol in params.model_volatilities.items()}
    if method is PFECalculationMethod.HISTORICAL_SIMULATION_METHOD:
        scaling = params.historical_volatility_scaling
        return {
            ac: vol * scaling * horizon * z
            for ac, vol in params.historical_volatilities.items()
        }
    return simulated_peak_moves(settings, params)


def simulated_peak_moves(
    settings: PFESettings, params: PFEParameterTables
) -> dict[AssetClass, float]:
    """Quantile of the peak relative move of seeded GBM paths per asset class.

    Asset classes are simulated in a fixed order from one generator, so the
    result depends only on the seed and the tables.
    """
    rng = np.random.default_rng(settings.random_seed)
    steps = params.monte_carlo_time_steps[settings.time_horizon]
    dt = params.horizon_days[settings.time_horizon] / params.days_per_year / steps
    quantile = settings.confidence_level.fraction

    moves: dict[AssetClass, float] = {}
    for asset_class in AssetClass:
        vol = params.model_volatilities[asset_class]
        drift = params.monte_carlo_drifts[asset_class]
        shocks = rng.standard_normal((settings.num_simulations, steps))
        log_increments = (drift - 0.5 * vol**2) * dt + vol * math.sqrt(dt) * shocks
        paths = np.cumsum(log_increments, axis=1)
        peak = np.max(np.abs(np.expm1(paths)), axis=1)
        moves[asset_class] = float(np.quantile(peak, quantile))
        logger.debug(
            "Simulated %s peak move at %.3f: %.6f", asset_class.value, quantile, moves[asset_class]
        )
    return moves


def trade_maturity_factor(
    trade: Trade, valuation_date: date, params: PFEParameterTables
) -> float:
    """MF = min(1, max(floor, residual years / full term))."""
    years = trade.residual_maturity(valuation_date)
    return min(1.0, max(params.maturity_factor_floor, years / params.maturity_full_term_years))


def transaction_adjustment(trade: Trade, params: PFEParameterTables) -> float:
    """Payoff adjustment; options scale by sqrt(volatility) when one is given."""
    adjustment = params.transaction_adjustments[trade.transaction_type]
    if trade.transaction_type is TransactionType.OPTION and trade.volatility is not None:
        adjustment *= math.sqrt(trade.volatility)
    return abs(adjustment)


def trade_add_on(
    trade: Trade,
    valuation_date: date,
    settings: PFESettings,
    params: PFEParameterTables,
    risk_factor: float,
) -> float:
    """Add-on of a single trade."""
    add_on = trade.notional * trade_maturity_factor(trade, valuation_date, params) * risk_factor
    if settings.calculation_method is PFECalculationMethod.REGULATORY_STANDARDISED_APPROACH:
        add_on *= transaction_adjustment(trade, params)
    return add_on


def expected_exposure(
    breakdown: dict[AssetClass, float],
    pfe: float,
    settings: PFESettings,
    params: PFEParameterTables,
) -> float:
    """Expected exposure from class exposures or a flat method factor."""
    method_factor = params.method_expected_exposure_factors.get(settings.calculation_method)
    if method_factor is not None:
        return pfe * method_factor
    return float(
        sum(value * params.expected_exposure_factors[ac] for ac, value in breakdown.items())
    )


def exposure_profile(pfe: float, horizon_days: int, points: int) -> dict[float, float]:
    """Exposure by day offset: 0.2 at the start, 0.5 at the end, a sine hump between."""
    profile: dict[float, float] = {}
    for i in range(points):
        t = i / (points - 1)
        if i == 0:
            shape = PROFILE_START
        elif i == points - 1:
            shape = PROFILE_END
        else:
            shape = PROFILE_START + (1.0 - PROFILE_START) * math.sin(math.pi * t)
        profile[t * horizon_days] = pfe * shape
    return profile


def _margin_scale(netting_set: NettingSet, params: PFEParameterTables) -> float:
    if not netting_set.is_margined:
        return 1.0
    return math.sqrt(netting_set.margin_period_of_risk / params.margined_reference_days)


def _collateral_value(
    netting_set: NettingSet, collateral: Sequence[Collateral], stressed: bool
) -> float:
    value = total_collateral_value(collateral, stressed=stressed)
    if netting_set.is_margined:
        value += netting_set.variation_margin
    return value
