"""Initial margin result objects for the Grid/Schedule and ISDA SIMM engines."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from src.core.domain.errors import CalculationError
from src.core.domain.sensitivity import RiskFactorType
from src.core.domain.trade import AssetClass, MaturityBucket

# Absolute tolerance when comparing margin amounts
MARGIN_TOLERANCE = 1e-6


@dataclass(frozen=True)
class GridScheduleResult:
    """Schedule-based initial margin.

    Attributes:
        initial_margin: Gross IM, sum of notional x schedule percentage
        net_initial_margin: IM after netting benefit, threshold, collateral and MTA
        gross_notional_by_asset_class: Notional by asset class and maturity bucket
        gross_im_by_asset_class: Gross IM by asset class
        net_gross_ratio: Netting factor 0.4 + 0.6 x NGR, within [0.4, 1]
        raw_net_gross_ratio: Net over gross replacement cost, within [0, 1]
        netted_initial_margin: Gross IM x net_gross_ratio
        collateral_value: Haircut-adjusted collateral
        parameters_version: Schedule version

    Invariants:
        - 0 <= net_initial_margin <= initial_margin
        - 0.4 <= net_gross_ratio <= 1
    """

    initial_margin: float
    net_initial_margin: float
    gross_notional_by_asset_class: dict[AssetClass, dict[MaturityBucket, float]]
    gross_im_by_asset_class: dict[AssetClass, float]
    net_gross_ratio: float
    raw_net_gross_ratio: float
    netted_initial_margin: float
    collateral_value: float
    parameters_version: str = ""

    def __post_init__(self) -> None:
        """Validate invariants after initialization."""
        self._validate_invariants()

    def _validate_invariants(self) -> None:
        """Validate result arithmetic.

        Raises:
            CalculationError: If any invariant is violated
        """
        # Invariant 1: net never exceeds gross and never goes negative
        if self.net_initial_margin < 0:
            raise CalculationError("grid net IM", f"negative net IM {self.net_initial_margin}")
        if self.net_initial_margin > self.initial_margin + MARGIN_TOLERANCE:
            raise CalculationError(
                "grid net IM",
                f"net IM {self.net_initial_margin} exceeds gross IM {self.initial_margin}",
            )

        # Invariant 2: netting factor bounds
        if not 0.4 - 1e-12 <= self.net_gross_ratio <= 1.0 + 1e-12:
            raise CalculationError(
                "net-to-gross ratio", f"ratio {self.net_gross_ratio} outside [0.4, 1]"
            )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "initial_margin": self.initial_margin,
            "net_initial_margin": self.net_initial_margin,
            "gross_notional_by_asset_class": {
                asset_class.value: {bucket.value: n for bucket, n in buckets.items()}
                for asset_class, buckets in self.gross_notional_by_asset_class.items()
            },
            "gross_im_by_asset_class": {
                k.value: v for k, v in self.gross_im_by_asset_class.items()
            },
            "net_gross_ratio": self.net_gross_ratio,
            "raw_net_gross_ratio": self.raw_net_gross_ratio,
            "netted_initial_margin": self.netted_initial_margin,
            "collateral_value": self.collateral_value,
            "parameters_version": self.parameters_version,
        }


@dataclass(frozen=True)
class SIMMResult:
    """Sensitivity-based initial margin.

    Attributes:
        initial_margin: Diversified SIMM margin
        net_initial_margin: IM after threshold, collateral and MTA
        risk_factor_contributions: Bucket margin K_b by risk class and bucket
        risk_class_margins: Margin per risk class after inter-bucket aggregation
        diversification_benefit: Sum of bucket margins minus initial margin
        collateral_value: Haircut-adjusted collateral
        correlation_matrix: Inter-risk-class correlations, when requested
        parameters_version: SIMM version

    Invariants:
        - initial_margin >= 0
        - diversification_benefit >= 0
        - net_initial_margin <= initial_margin
    """

    initial_margin: float
    net_initial_margin: float
    risk_factor_contributions: dict[RiskFactorType, dict[int, float]]
    risk_class_margins: dict[RiskFactorType, float]
    diversification_benefit: float
    collateral_value: float
    correlation_matrix: dict[RiskFactorType, dict[RiskFactorType, float]] | None = None
    parameters_version: str = ""

    def __post_init__(self) -> None:
        """Validate invariants after initialization."""
        if self.initial_margin < 0 or not math.isfinite(self.initial_margin):
            raise CalculationError("SIMM", f"invalid initial margin {self.initial_margin}")
        if self.diversification_benefit < -MARGIN_TOLERANCE:
            raise CalculationError(
                "SIMM", f"negative diversification benefit {self.diversification_benefit}"
            )
        if not 0 <= self.net_initial_margin <= self.initial_margin + MARGIN_TOLERANCE:
            raise CalculationError(
                "SIMM net IM",
                f"net IM {self.net_initial_margin} outside [0, {self.initial_margin}]",
            )

    @property
    def gross_margin(self) -> float:
        """Undiversified margin: sum of every bucket margin."""
        return float(
            sum(k for buckets in self.risk_factor_contributions.values() for k in buckets.values())
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        data: dict[str, Any] = {
            "initial_margin": self.initial_margin,
            "net_initial_margin": self.net_initial_margin,
            "risk_factor_contributions": {
                risk_type.value: {str(b): k for b, k in buckets.items()}
                for risk_type, buckets in self.risk_factor_contributions.items()
            },
            "risk_class_margins": {k.value: v for k, v in self.risk_class_margins.items()},
            "diversification_benefit": self.diversification_benefit,
            "collateral_value": self.collateral_value,
            "parameters_version": self.parameters_version,
        }
        if self.correlation_matrix is not None:
            data["correlation_matrix"] = {
                a.value: {b.value: rho for b, rho in row.items()}
                for a, row in self.correlation_matrix.items()
            }
        return data
