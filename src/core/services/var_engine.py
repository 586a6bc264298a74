"""VaR Engine - Value at Risk and Expected Shortfall for a position portfolio.

Position P&L on each historical day is quantity x current price x the
asset's simple return that day. Three estimators share this P&L matrix:

- Historical simulation: empirical quantile of the P&L
- Parametric: normal quantile from the P&L mean and volatility
- Monte Carlo: empirical quantile of multivariate normal draws fitted to it

Results are scaled to the holding period by the square root of time.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, Sequence

import numpy as np
import pandas as pd
from scipy import stats

from src.config.regulatory_tables import VaRParameterTables, load_var_parameters
from src.core.domain.calculation_parameters import VaRCalculationMethod, VaRParameters
from src.core.domain.errors import InsufficientDataError, InvalidInputError
from src.core.domain.market_data import HistoricalMarketData
from src.core.domain.position import Position
from src.core.domain.risk_metrics import PositionContribution, ReturnDistribution, VaRResult

logger = logging.getLogger(__name__)

MIN_HISTORY_POINTS = 2

ORDINAL_LABELS = ("worst_day", "second_worst_day", "third_worst_day")


def calculate_var(
    positions: Sequence[Position],
    parameters: VaRParameters,
    historical_data: Iterable[HistoricalMarketData],
    *,
    tables: VaRParameterTables | None = None,
) -> VaRResult:
    """Calculate portfolio VaR and Expected Shortfall.

    Args:
        positions: Positions to measure (at least one)
        parameters: Horizon, confidence, method and lookback
        historical_data: Price history, one series per asset identifier
        tables: Holding periods and stress scenarios (default: packaged table)

    Returns:
        VaRResult with VaR, ES, contributions, distribution and stress P&L

    Raises:
        InvalidInputError: If positions is empty or position ids repeat
        InsufficientDataError: If a position has no series or fewer than
            two price points, or the series share no common dates
    """
    tables = tables or load_var_parameters()
    positions = list(positions)
    if not positions:
        raise InvalidInputError("at least one position is required", field="positions")
    seen: set[str] = set()
    for position in positions:
        if not position.position_id or position.position_id in seen:
            raise InvalidInputError(
                f"position ids must be unique and non-empty, got {position.position_id!r}",
                field="position_id",
            )
        seen.add(position.position_id)

    warnings: list[str] = []
    returns = align_returns(positions, historical_data)
    if len(returns) < parameters.lookback_period:
        warnings.append(
            f"lookback capped to {len(returns)} returns "
            f"({parameters.lookback_period} requested)"
        )
    returns = returns.tail(parameters.lookback_period)

    exposures = np.array([p.market_value for p in positions], dtype=float)
    pnl = returns.to_numpy(dtype=float) * exposures
    daily_pnl = pnl.sum(axis=1)

    horizon_days = tables.horizon_days[parameters.time_horizon]
    confidence = parameters.confidence_level.fraction

    samples = pnl
    if parameters.calculation_method is VaRCalculationMethod.MONTE_CARLO_SIMULATION:
        samples = simulate_pnl(pnl, parameters)

    estimator = (
        parametric_var
        if parameters.calculation_method is VaRCalculationMethod.PARAMETRIC
        else historical_var
    )
    standalone = [
        estimator(samples[:, i], confidence, horizon_days) for i in range(len(positions))
    ]
    standalone_total = float(sum(var for var, _ in standalone))

    if parameters.include_correlations:
        var, es = estimator(samples.sum(axis=1), confidence, horizon_days)
    else:
        var = standalone_total
        es = float(sum(es for _, es in standalone))

    contributions = tuple(
        PositionContribution(
            position_id=position.position_id,
            asset_identifier=position.asset_identifier,
            value_at_risk=position_var,
            contribution=100.0 * position_var / standalone_total if standalone_total > 0 else 0.0,
            market_value=position.market_value,
        )
        for position, (position_var, _) in zip(positions, standalone)
    )

    gross_value = float(np.abs(exposures).sum())
    logger.info(
        "VaR %s %s %s over %d observations: VaR=%.2f ES=%.2f",
        parameters.calculation_method.value,
        parameters.confidence_level.value,
        parameters.time_horizon.value,
        len(daily_pnl),
        var,
        es,
    )
    for warning in warnings:
        logger.warning(warning)

    return VaRResult(
        var=var,
        expected_shortfall=es,
        per_position_contribution=contributions,
        var_percentage=100.0 * var / gross_value if gross_value > 0 else 0.0,
        diversification_benefit=max(standalone_total - var, 0.0),
        portfolio_value=float(exposures.sum()),
        return_distribution=return_distribution(daily_pnl),
        stress_scenarios=stress_results(daily_pnl, positions, tables),
        observations=len(daily_pnl),
        parameters=parameters.to_dict(),
        warnings=tuple(warnings),
    )


def align_returns(
    positions: Sequence[Position],
    historical_data: Iterable[HistoricalMarketData],
) -> pd.DataFrame:
    """Daily returns per position, inner-joined on common dates.

    Columns follow the order of ``positions`` and are keyed by position id.

    Raises:
        InsufficientDataError: If a series is missing, too short, or the
            series have no return dates in common
    """
    by_asset = {series.asset_identifier: series for series in historical_data}

    columns: dict[str, pd.Series] = {}
    for position in positions:
        series = by_asset.get(position.asset_identifier)
        available = series.point_count if series is not None else 0
        if available < MIN_HISTORY_POINTS:
            raise InsufficientDataError(position.asset_identifier, MIN_HISTORY_POINTS, available)
        columns[position.position_id] = series.returns()

    frame = pd.concat(columns, axis=1, join="inner").sort_index()
    if frame.empty:
        raise InsufficientDataError(
            ", ".join(p.asset_identifier for p in positions), MIN_HISTORY_POINTS, 0
        )
    return frame


def historical_var(pnl: np.ndarray, confidence: float, horizon_days: int) -> tuple[float, float]:
    """Empirical VaR and ES of a P&L sample.

    With the sample sorted ascending and k = floor(n x (1 - c)):
    VaR = -P&L[k] x sqrt(h) floored at 0, ES = -mean(P&L[0..k]) x sqrt(h).
    """
    ordered = np.sort(np.asarray(pnl, dtype=float))
    k = int(math.floor(len(ordered) * (1.0 - confidence)))
    scale = math.sqrt(horizon_days)
    var = max(-float(ordered[k]) * scale, 0.0)
    es = -float(ordered[: k + 1].mean()) * scale
    return var, max(es, var)


def parametric_var(pnl: np.ndarray, confidence: float, horizon_days: int) -> tuple[float, float]:
    """Normal VaR and ES from the sample mean and volatility.

    VaR = z x sigma x sqrt(h) - mu x h, ES = phi(z) / (1 - c) x sigma x sqrt(h) - mu x h.
    """
    sample = np.asarray(pnl, dtype=float)
    sigma = _sample_std(sample)
    mu = float(sample.mean())
    z = float(stats.norm.ppf(confidence))
    scale = math.sqrt(horizon_days)

    var = max(z * sigma * scale - mu * horizon_days, 0.0)
    es = float(stats.norm.pdf(z)) / (1.0 - confidence) * sigma * scale - mu * horizon_days
    return var, max(es, var)


def simulate_pnl(pnl: np.ndarray, parameters: VaRParameters) -> np.ndarray:
    """Multivariate normal P&L draws with the sample mean and covariance.

    Off-diagonal covariance is dropped when correlations are excluded.
    """
    mean = pnl.mean(axis=0)
    ddof = 1 if len(pnl) > 1 else 0
    cov = np.atleast_2d(np.cov(pnl, rowvar=False, ddof=ddof))
    if not parameters.include_correlations:
        cov = np.diag(np.diag(cov))

    rng = np.random.default_rng(parameters.random_seed)
    return rng.multivariate_normal(mean, cov, size=parameters.num_simulations, method="eigh")


def return_distribution(daily_pnl: np.ndarray) -> ReturnDistribution:
    """Summary statistics of the daily portfolio P&L."""
    std = _sample_std(daily_pnl)
    skewness = kurtosis = 0.0
    if std > 0 and len(daily_pnl) > 2:
        skewness = float(stats.skew(daily_pnl, bias=False))
    if std > 0 and len(daily_pnl) > 3:
        kurtosis = float(stats.kurtosis(daily_pnl, fisher=True, bias=False))

    return ReturnDistribution(
        min=float(np.min(daily_pnl)),
        max=float(np.max(daily_pnl)),
        mean=float(np.mean(daily_pnl)),
        median=float(np.median(daily_pnl)),
        standard_deviation=std,
        skewness=skewness,
        kurtosis=kurtosis,
    )


def stress_results(
    daily_pnl: np.ndarray,
    positions: Sequence[Position],
    tables: VaRParameterTables,
) -> dict[str, float]:
    """Worst historical days plus the configured stress scenarios.

    Values are P&L, negative for a loss.
    """
    ordered = np.sort(daily_pnl)
    results: dict[str, float] = {}
    for label, value in zip(ORDINAL_LABELS, ordered):
        results[label] = float(value)

    count = min(tables.worst_day_count, len(ordered))
    results[f"average_worst_{tables.worst_day_count}_days"] = float(ordered[:count].mean())

    for scenario in tables.stress_scenarios:
        results[scenario.name] = scenario.apply(positions)
    return results


def _sample_std(sample: np.ndarray) -> float:
    if len(sample) < 2:
        return 0.0
    return float(np.std(sample, ddof=1))
