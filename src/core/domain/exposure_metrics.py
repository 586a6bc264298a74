"""Exposure result objects for the SA-CCR and PFE engines.

Results are immutable and check their own arithmetic on construction. A
violated invariant here means an engine bug, so it raises CalculationError
rather than an input error.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from src.core.domain.errors import CalculationError
from src.core.domain.netting_set import MarginType
from src.core.domain.trade import AssetClass

# Relative tolerance for identity checks on results
IDENTITY_TOLERANCE = 1e-9


@dataclass(frozen=True)
class InputSummary:
    """Echo of the calculation input.

    Attributes:
        netting_set_id: Netting set identifier
        trade_count: Number of trades
        asset_classes: Asset classes present, in first-seen order
        margin_type: Margin type of the netting set
        total_notional: Sum of trade notionals
    """

    netting_set_id: str
    trade_count: int
    asset_classes: tuple[AssetClass, ...]
    margin_type: MarginType
    total_notional: float

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "netting_set_id": self.netting_set_id,
            "trade_count": self.trade_count,
            "asset_classes": [a.value for a in self.asset_classes],
            "margin_type": self.margin_type.value,
            "total_notional": self.total_notional,
        }


@dataclass(frozen=True)
class ReplacementCostResult:
    """Replacement cost and the terms it was built from.

    Attributes:
        value: Replacement cost, >= 0
        market_value: Sum of trade market values (V)
        collateral_value: Haircut-adjusted collateral incl. variation margin (C)
        current_exposure: V - C
        margin_floor: TH + MTA - NICA for margined sets, else None
        variation_margin: Variation margin included in C
        threshold: Threshold applied
        minimum_transfer_amount: MTA applied
        independent_collateral_amount: NICA applied
    """

    value: float
    market_value: float
    collateral_value: float
    current_exposure: float
    margin_floor: float | None = None
    variation_margin: float = 0.0
    threshold: float = 0.0
    minimum_transfer_amount: float = 0.0
    independent_collateral_amount: float = 0.0

    def __post_init__(self) -> None:
        """Validate invariants after initialization."""
        if self.value < 0:
            raise CalculationError("replacement cost", f"negative RC {self.value}")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "value": self.value,
            "market_value": self.market_value,
            "collateral_value": self.collateral_value,
            "current_exposure": self.current_exposure,
            "margin_floor": self.margin_floor,
            "variation_margin": self.variation_margin,
            "threshold": self.threshold,
            "minimum_transfer_amount": self.minimum_transfer_amount,
            "independent_collateral_amount": self.independent_collateral_amount,
        }


@dataclass(frozen=True)
class SACCRResult:
    """SA-CCR exposure at default for one netting set.

    Attributes:
        ead: Exposure at default
        replacement_cost: RC with components
        pfe: Potential future exposure (multiplier x add-on)
        add_on: Aggregate add-on
        multiplier: PFE multiplier in [floor, 1]
        per_asset_class_add_on: Add-on by asset class
        hedging_set_add_ons: Add-on by "ASSET_CLASS:hedging set" key
        alpha: Regulatory alpha used
        multiplier_floor: Lower bound of the multiplier
        valuation_date: Date maturities were measured from
        input_summary: Echo of the input
        parameters_version: Regulatory table version
        warnings: Known simplifications applied to this run

    Invariants:
        - ead >= 0, add_on >= 0
        - multiplier in [floor, 1]
        - ead == alpha * (replacement_cost + multiplier * add_on)
    """

    ead: float
    replacement_cost: ReplacementCostResult
    pfe: float
    add_on: float
    multiplier: float
    per_asset_class_add_on: dict[AssetClass, float]
    hedging_set_add_ons: dict[str, float]
    alpha: float
    multiplier_floor: float
    valuation_date: date
    input_summary: InputSummary
    parameters_version: str = ""
    warnings: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        """Validate invariants after initialization."""
        self._validate_invariants()

    def _validate_invariants(self) -> None:
        """Validate result arithmetic.

        Raises:
            CalculationError: If any invariant is violated
        """
        # Invariant 1: non-negative add-on and EAD
        if self.add_on < 0:
            raise CalculationError("aggregate add-on", f"negative add-on {self.add_on}")
        if self.ead < 0 or not math.isfinite(self.ead):
            raise CalculationError("EAD", f"invalid EAD {self.ead}")

        # Invariant 2: multiplier bounds
        if not self.multiplier_floor <= self.multiplier <= 1.0:
            raise CalculationError(
                "multiplier",
                f"multiplier {self.multiplier} outside [{self.multiplier_floor}, 1]",
            )

        # Invariant 3: EAD identity
        expected = self.alpha * (self.replacement_cost.value + self.multiplier * self.add_on)
        if not math.isclose(self.ead, expected, rel_tol=IDENTITY_TOLERANCE, abs_tol=1e-6):
            raise CalculationError(
                "EAD", f"EAD {self.ead} != alpha x (RC + M x AddOn) = {expected}"
            )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "ead": self.ead,
            "replacement_cost": self.replacement_cost.to_dict(),
            "pfe": self.pfe,
            "add_on": self.add_on,
            "multiplier": self.multiplier,
            "per_asset_class_add_on": {
                k.value: v for k, v in self.per_asset_class_add_on.items()
            },
            "hedging_set_add_ons": dict(self.hedging_set_add_ons),
            "alpha": self.alpha,
            "multiplier_floor": self.multiplier_floor,
            "valuation_date": self.valuation_date.isoformat(),
            "input_summary": self.input_summary.to_dict(),
            "parameters_version": self.parameters_version,
            "warnings": list(self.warnings),
        }


@dataclass(frozen=True)
class TradeContribution:
    """One trade's share of the PFE add-on.

    Attributes:
        trade_id: Trade identifier
        asset_class: Asset class of the trade
        add_on: Gross add-on contributed by the trade
        market_value: Current market value of the trade
        share: add_on as a fraction of the gross add-on
    """

    trade_id: str
    asset_class: AssetClass
    add_on: float
    market_value: float
    share: float

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "trade_id": self.trade_id,
            "asset_class": self.asset_class.value,
            "add_on": self.add_on,
            "market_value": self.market_value,
            "share": self.share,
        }


@dataclass(frozen=True)
class PFEResult:
    """Potential future exposure for one netting set.

    Attributes:
        pfe: Potential future exposure at the requested quantile/horizon
        add_on: Net add-on after netting benefit
        gross_add_on: Sum of per-trade add-ons
        multiplier: Collateral/negative-MTM multiplier
        net_gross_ratio: Net to gross positive market value ratio
        per_trade_contribution: Per-trade add-on breakdown
        expected_exposure: Expected exposure over the horizon
        peak_exposure: Largest asset-class exposure
        stressed_pfe: PFE under stressed haircuts and stress factor
        exposure_profile: Exposure by day offset from the valuation date
        asset_class_breakdown: Exposure by asset class
        input_summary: Echo of the input
        settings: Horizon, quantile and method used

    Invariants:
        - pfe, add_on, expected_exposure >= 0
        - multiplier in (0, 1]
    """

    pfe: float
    add_on: float
    gross_add_on: float
    multiplier: float
    net_gross_ratio: float
    per_trade_contribution: tuple[TradeContribution, ...]
    expected_exposure: float
    peak_exposure: float
    stressed_pfe: float
    exposure_profile: dict[float, float]
    asset_class_breakdown: dict[AssetClass, float]
    input_summary: InputSummary
    settings: dict[str, Any] = field(default_factory=dict)
    parameters_version: str = ""

    def __post_init__(self) -> None:
        """Validate invariants after initialization."""
        for name in ("pfe", "add_on", "gross_add_on", "expected_exposure", "stressed_pfe"):
            value = getattr(self, name)
            if value < 0 or not math.isfinite(value):
                raise CalculationError("PFE", f"{name} must be finite and >= 0, got {value}")
        if not 0.0 < self.multiplier <= 1.0:
            raise CalculationError("PFE multiplier", f"multiplier {self.multiplier} outside (0, 1]")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "pfe": self.pfe,
            "add_on": self.add_on,
            "gross_add_on": self.gross_add_on,
            "multiplier": self.multiplier,
            "net_gross_ratio": self.net_gross_ratio,
            "per_trade_contribution": [c.to_dict() for c in self.per_trade_contribution],
            "expected_exposure": self.expected_exposure,
            "peak_exposure": self.peak_exposure,
            "stressed_pfe": self.stressed_pfe,
            "exposure_profile": {f"{d:g}": v for d, v in self.exposure_profile.items()},
            "asset_class_breakdown": {
                k.value: v for k, v in self.asset_class_breakdown.items()
            },
            "input_summary": self.input_summary.to_dict(),
            "settings": dict(self.settings),
            "parameters_version": self.parameters_version,
        }
