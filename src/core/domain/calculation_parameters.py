"""Calculation parameter objects for the PFE and VaR engines.

Horizons, confidence levels and methods are closed enumerations. Each
enum member carries only its wire value; numeric meaning (days, z-scores)
comes from the regulatory tables so a version swap needs no code change.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from src.core.domain.errors import InvalidInputError
from src.core.domain.fields import optional_bool, parse_enum

DEFAULT_RANDOM_SEED = 42


class PFETimeHorizon(Enum):
    """Exposure horizons."""

    ONE_WEEK = "1_week"
    TWO_WEEKS = "2_weeks"
    ONE_MONTH = "1_month"
    THREE_MONTHS = "3_months"
    SIX_MONTHS = "6_months"
    ONE_YEAR = "1_year"


class PFEConfidenceLevel(Enum):
    """PFE quantiles."""

    NINETY_FIVE_PERCENT = "95%"
    NINETY_SEVEN_POINT_FIVE_PERCENT = "97.5%"
    NINETY_NINE_PERCENT = "99%"

    @property
    def fraction(self) -> float:
        """Confidence level as a fraction, e.g. 0.975."""
        return float(self.value.rstrip("%")) / 100.0


class PFECalculationMethod(Enum):
    """PFE methodologies."""

    REGULATORY_STANDARDISED_APPROACH = "regulatory_standardised_approach"
    MONTE_CARLO_SIMULATION = "monte_carlo_simulation"
    INTERNAL_MODEL_METHOD = "internal_model_method"
    HISTORICAL_SIMULATION_METHOD = "historical_simulation_method"


class VaRTimeHorizon(Enum):
    """VaR holding periods."""

    ONE_DAY = "1_day"
    TEN_DAYS = "10_days"
    ONE_MONTH = "1_month"
    THREE_MONTHS = "3_months"


class VaRConfidenceLevel(Enum):
    """VaR confidence levels."""

    NINETY_PERCENT = "90%"
    NINETY_FIVE_PERCENT = "95%"
    NINETY_SEVEN_POINT_FIVE_PERCENT = "97.5%"
    NINETY_NINE_PERCENT = "99%"

    @property
    def fraction(self) -> float:
        """Confidence level as a fraction, e.g. 0.99."""
        return float(self.value.rstrip("%")) / 100.0


class VaRCalculationMethod(Enum):
    """VaR methodologies."""

    HISTORICAL_SIMULATION = "historical_simulation"
    MONTE_CARLO_SIMULATION = "monte_carlo_simulation"
    PARAMETRIC = "parametric"


@dataclass(frozen=True)
class PFESettings:
    """Horizon, quantile and method for a PFE run.

    Attributes:
        time_horizon: Exposure horizon
        confidence_level: Exposure quantile
        calculation_method: Methodology branch
        random_seed: Seed for the Monte Carlo branch
        num_simulations: Monte Carlo path count
    """

    time_horizon: PFETimeHorizon = PFETimeHorizon.ONE_YEAR
    confidence_level: PFEConfidenceLevel = PFEConfidenceLevel.NINETY_NINE_PERCENT
    calculation_method: PFECalculationMethod = (
        PFECalculationMethod.REGULATORY_STANDARDISED_APPROACH
    )
    random_seed: int = DEFAULT_RANDOM_SEED
    num_simulations: int = 5000

    def __post_init__(self) -> None:
        """Validate invariants after initialization."""
        if self.num_simulations < 100:
            raise InvalidInputError(
                f"num_simulations must be >= 100, got {self.num_simulations}",
                field="num_simulations",
            )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "time_horizon": self.time_horizon.value,
            "confidence_level": self.confidence_level.value,
            "calculation_method": self.calculation_method.value,
            "random_seed": self.random_seed,
            "num_simulations": self.num_simulations,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PFESettings":
        """Create PFESettings from dictionary, defaulting absent keys."""
        defaults = cls()
        return cls(
            time_horizon=parse_enum(
                PFETimeHorizon, data.get("time_horizon", defaults.time_horizon), "time_horizon"
            ),
            confidence_level=parse_enum(
                PFEConfidenceLevel,
                data.get("confidence_level", defaults.confidence_level),
                "confidence_level",
            ),
            calculation_method=parse_enum(
                PFECalculationMethod,
                data.get("calculation_method", defaults.calculation_method),
                "calculation_method",
            ),
            random_seed=int(data.get("random_seed", defaults.random_seed)),
            num_simulations=int(data.get("num_simulations", defaults.num_simulations)),
        )


@dataclass(frozen=True)
class VaRParameters:
    """Parameters for a VaR run.

    Attributes:
        time_horizon: Holding period
        confidence_level: Confidence level
        calculation_method: Methodology branch
        lookback_period: Number of daily returns to use
        include_correlations: Aggregate P&L jointly across positions
        random_seed: Seed for the Monte Carlo branch
        num_simulations: Monte Carlo draw count

    Invariants:
        - lookback_period >= 2
        - num_simulations >= 100
    """

    time_horizon: VaRTimeHorizon = VaRTimeHorizon.ONE_DAY
    confidence_level: VaRConfidenceLevel = VaRConfidenceLevel.NINETY_NINE_PERCENT
    calculation_method: VaRCalculationMethod = VaRCalculationMethod.HISTORICAL_SIMULATION
    lookback_period: int = 250
    include_correlations: bool = True
    random_seed: int = DEFAULT_RANDOM_SEED
    num_simulations: int = 10000

    def __post_init__(self) -> None:
        """Validate invariants after initialization."""
        self._validate_invariants()

    def _validate_invariants(self) -> None:
        """Validate all domain invariants.

        Raises:
            InvalidInputError: If any invariant is violated
        """
        # Invariant 1: need at least one return
        if self.lookback_period < 2:
            raise InvalidInputError(
                f"lookback_period must be >= 2, got {self.lookback_period}",
                field="lookback_period",
            )

        # Invariant 2: enough Monte Carlo draws to read a tail quantile
        if self.num_simulations < 100:
            raise InvalidInputError(
                f"num_simulations must be >= 100, got {self.num_simulations}",
                field="num_simulations",
            )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "time_horizon": self.time_horizon.value,
            "confidence_level": self.confidence_level.value,
            "calculation_method": self.calculation_method.value,
            "lookback_period": self.lookback_period,
            "include_correlations": self.include_correlations,
            "random_seed": self.random_seed,
            "num_simulations": self.num_simulations,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VaRParameters":
        """Create VaRParameters from dictionary, defaulting absent keys."""
        defaults = cls()
        return cls(
            time_horizon=parse_enum(
                VaRTimeHorizon, data.get("time_horizon", defaults.time_horizon), "time_horizon"
            ),
            confidence_level=parse_enum(
                VaRConfidenceLevel,
                data.get("confidence_level", defaults.confidence_level),
                "confidence_level",
            ),
            calculation_method=parse_enum(
                VaRCalculationMethod,
                data.get("calculation_method", defaults.calculation_method),
                "calculation_method",
            ),
            lookback_period=int(data.get("lookback_period", defaults.lookback_period)),
            include_correlations=optional_bool(
                data, "include_correlations", defaults.include_correlations
            ),
            random_seed=int(data.get("random_seed", defaults.random_seed)),
            num_simulations=int(data.get("num_simulations", defaults.num_simulations)),
        )
