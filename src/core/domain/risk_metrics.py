"""VaRResult Domain Object - Value at Risk, Expected Shortfall and breakdowns.

Loss figures are reported as positive magnitudes: a VaR of 1,500,000 means
a loss of 1.5m is not exceeded at the confidence level.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from src.core.domain.errors import CalculationError

# Tolerance for the ES >= VaR check (floating point)
ES_TOLERANCE = 1e-9


@dataclass(frozen=True)
class PositionContribution:
    """Standalone VaR of one position.

    Attributes:
        position_id: Position identifier
        asset_identifier: Asset the position holds
        value_at_risk: Standalone VaR of the position
        contribution: Share of the summed standalone VaRs, in percent
        market_value: Current market value
    """

    position_id: str
    asset_identifier: str
    value_at_risk: float
    contribution: float
    market_value: float

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "position_id": self.position_id,
            "asset_identifier": self.asset_identifier,
            "value_at_risk": self.value_at_risk,
            "contribution": self.contribution,
            "market_value": self.market_value,
        }


@dataclass(frozen=True)
class ReturnDistribution:
    """Summary statistics of the simulated daily portfolio P&L."""

    min: float
    max: float
    mean: float
    median: float
    standard_deviation: float
    skewness: float
    kurtosis: float

    def to_dict(self) -> dict[str, float]:
        """Convert to dictionary."""
        return {
            "min": self.min,
            "max": self.max,
            "mean": self.mean,
            "median": self.median,
            "standard_deviation": self.standard_deviation,
            "skewness": self.skewness,
            "kurtosis": self.kurtosis,
        }


@dataclass(frozen=True)
class VaRResult:
    """Portfolio VaR for one parameter set.

    Attributes:
        var: Value at Risk over the horizon (positive loss magnitude)
        expected_shortfall: Mean loss beyond VaR over the horizon
        per_position_contribution: Standalone VaR by position
        var_percentage: VaR as a percent of gross portfolio value
        diversification_benefit: Sum of standalone VaRs minus VaR
        portfolio_value: Net market value of all positions
        return_distribution: Daily P&L statistics
        stress_scenarios: Scenario name to P&L (negative is a loss)
        observations: Number of daily P&L observations used
        parameters: Parameters the run used
        warnings: Data adjustments applied (e.g., capped lookback)

    Invariants:
        - var >= 0
        - expected_shortfall >= var
    """

    var: float
    expected_shortfall: float
    per_position_contribution: tuple[PositionContribution, ...]
    var_percentage: float
    diversification_benefit: float
    portfolio_value: float
    return_distribution: ReturnDistribution
    stress_scenarios: dict[str, float]
    observations: int
    parameters: dict[str, Any] = field(default_factory=dict)
    warnings: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        """Validate invariants after initialization."""
        self._validate_invariants()

    def _validate_invariants(self) -> None:
        """Validate result arithmetic.

        Raises:
            CalculationError: If any invariant is violated
        """
        # Invariant 1: VaR is a non-negative finite magnitude
        if self.var < 0 or not math.isfinite(self.var):
            raise CalculationError("VaR", f"invalid VaR {self.var}")

        # Invariant 2: ES is at least as severe as VaR
        tolerance = ES_TOLERANCE * max(abs(self.var), 1.0)
        if self.expected_shortfall < self.var - tolerance:
            raise CalculationError(
                "expected shortfall",
                f"ES {self.expected_shortfall} is smaller than VaR {self.var}",
            )

    def get_contribution(self, position_id: str) -> PositionContribution | None:
        """Return the contribution for a position id, if present."""
        for contribution in self.per_position_contribution:
            if contribution.position_id == position_id:
                return contribution
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "var": self.var,
            "expected_shortfall": self.expected_shortfall,
            "per_position_contribution": [c.to_dict() for c in self.per_position_contribution],
            "var_percentage": self.var_percentage,
            "diversification_benefit": self.diversification_benefit,
            "portfolio_value": self.portfolio_value,
            "return_distribution": self.return_distribution.to_dict(),
            "stress_scenarios": dict(self.stress_scenarios),
            "observations": self.observations,
            "parameters": dict(self.parameters),
            "warnings": list(self.warnings),
        }
