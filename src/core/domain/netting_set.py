"""NettingSet and Collateral Domain Objects - legal netting and margin terms.

A netting set groups trades under one netting agreement. Its margin terms
drive replacement cost, the maturity factor and the net initial margin.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable

from src.core.domain.errors import InvalidInputError
from src.core.domain.fields import optional_number, parse_enum, parse_number, require

DEFAULT_MARGIN_PERIOD_OF_RISK = 10


class MarginType(Enum):
    """Whether the netting set is subject to a margin agreement."""

    UNMARGINED = "UNMARGINED"
    MARGINED = "MARGINED"


@dataclass(frozen=True)
class NettingSet:
    """Netting agreement terms.

    Attributes:
        netting_set_id: Netting agreement identifier
        margin_type: Margined or unmargined
        threshold: Threshold below which no margin is called
        minimum_transfer_amount: Smallest amount transferred in a call
        independent_collateral_amount: Net independent collateral (NICA)
        variation_margin: Variation margin held (signed)
        margin_period_of_risk: Margin period of risk in business days

    Invariants:
        - margin_period_of_risk > 0
        - threshold, minimum_transfer_amount, independent_collateral_amount >= 0
        - threshold and MTA are only applied for MARGINED sets
    """

    netting_set_id: str
    margin_type: MarginType = MarginType.UNMARGINED
    threshold: float = 0.0
    minimum_transfer_amount: float = 0.0
    independent_collateral_amount: float = 0.0
    variation_margin: float = 0.0
    margin_period_of_risk: int = DEFAULT_MARGIN_PERIOD_OF_RISK

    def __post_init__(self) -> None:
        """Validate invariants after initialization."""
        self._validate_invariants()

    def _validate_invariants(self) -> None:
        """Validate all domain invariants.

        Raises:
            InvalidInputError: If any invariant is violated
        """
        # Invariant 1: MPOR strictly positive
        if not self.margin_period_of_risk > 0:
            raise InvalidInputError(
                f"NettingSet '{self.netting_set_id}' margin period of risk must be > 0, "
                f"got {self.margin_period_of_risk}",
                field="margin_period_of_risk",
            )

        # Invariant 2: margin terms non-negative
        for name in ("threshold", "minimum_transfer_amount", "independent_collateral_amount"):
            value = getattr(self, name)
            if not math.isfinite(value) or value < 0:
                raise InvalidInputError(
                    f"NettingSet '{self.netting_set_id}' {name} must be >= 0, got {value}",
                    field=name,
                )

        if not math.isfinite(self.variation_margin):
            raise InvalidInputError(
                f"NettingSet '{self.netting_set_id}' variation margin must be finite",
                field="variation_margin",
            )

    @property
    def is_margined(self) -> bool:
        """Return True for margined netting sets."""
        return self.margin_type == MarginType.MARGINED

    @property
    def effective_threshold(self) -> float:
        """Threshold applied in calculations (zero when unmargined)."""
        return self.threshold if self.is_margined else 0.0

    @property
    def effective_minimum_transfer_amount(self) -> float:
        """MTA applied in calculations (zero when unmargined)."""
        return self.minimum_transfer_amount if self.is_margined else 0.0

    def apply_margin_terms(self, amount: float, collateral_value: float = 0.0) -> float:
        """Apply threshold, collateral and then the minimum transfer amount.

        Args:
            amount: Margin requirement before netting-set terms
            collateral_value: Haircut-adjusted collateral already held

        Returns:
            Amount after threshold and collateral, zeroed when below the MTA
        """
        net = max(0.0, amount - self.effective_threshold)
        net = max(0.0, net - collateral_value)
        if 0.0 < net < self.effective_minimum_transfer_amount:
            return 0.0
        return net

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "netting_set_id": self.netting_set_id,
            "margin_type": self.margin_type.value,
            "threshold": self.threshold,
            "minimum_transfer_amount": self.minimum_transfer_amount,
            "independent_collateral_amount": self.independent_collateral_amount,
            "variation_margin": self.variation_margin,
            "margin_period_of_risk": self.margin_period_of_risk,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NettingSet":
        """Create NettingSet from dictionary.

        Raises:
            InvalidInputError: If a field is missing or malformed
        """
        netting_set_id = data.get("netting_set_id", data.get("netting_agreement_id"))
        if not netting_set_id:
            raise InvalidInputError("required field is missing", field="netting_set_id")

        mpor = optional_number(
            data, "margin_period_of_risk", float(DEFAULT_MARGIN_PERIOD_OF_RISK)
        )
        return cls(
            netting_set_id=str(netting_set_id),
            margin_type=parse_enum(
                MarginType,
                data.get("margin_type", MarginType.UNMARGINED),
                "margin_type",
            ),
            threshold=optional_number(data, "threshold", 0.0),
            minimum_transfer_amount=optional_number(data, "minimum_transfer_amount", 0.0),
            independent_collateral_amount=optional_number(
                data, "independent_collateral_amount", 0.0
            ),
            variation_margin=optional_number(data, "variation_margin", 0.0),
            margin_period_of_risk=int(mpor) if mpor is not None else DEFAULT_MARGIN_PERIOD_OF_RISK,
        )


@dataclass(frozen=True)
class Collateral:
    """Collateral posted to the bank.

    Attributes:
        amount: Collateral amount in ``currency``
        currency: Collateral currency
        haircut: Supervisory or agreed haircut as a fraction (0-1)
        stressed_haircut: Haircut under stress (defaults to ``haircut``)

    Invariants:
        - 0 <= haircut <= 1
        - 0 <= stressed_haircut <= 1
    """

    amount: float
    currency: str
    haircut: float = 0.0
    stressed_haircut: float | None = None

    def __post_init__(self) -> None:
        """Validate invariants after initialization."""
        self._validate_invariants()

    def _validate_invariants(self) -> None:
        """Validate all domain invariants.

        Raises:
            InvalidInputError: If any invariant is violated
        """
        if not math.isfinite(self.amount):
            raise InvalidInputError("collateral amount must be finite", field="amount")

        # Invariant 1: haircuts are fractions
        for name, value in (("haircut", self.haircut), ("stressed_haircut", self.stressed_haircut)):
            if value is not None and not 0.0 <= value <= 1.0:
                raise InvalidInputError(
                    f"{name} must be a fraction in [0, 1], got {value}",
                    field=name,
                )

    @property
    def net_value(self) -> float:
        """Collateral value after haircut."""
        return self.amount * (1.0 - self.haircut)

    @property
    def stressed_value(self) -> float:
        """Collateral value after the stressed haircut."""
        haircut = self.haircut if self.stressed_haircut is None else self.stressed_haircut
        return self.amount * (1.0 - haircut)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "amount": self.amount,
            "currency": self.currency,
            "haircut": self.haircut,
            "stressed_haircut": self.stressed_haircut,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Collateral":
        """Create Collateral from dictionary."""
        return cls(
            amount=parse_number(require(data, "amount"), "amount"),
            currency=str(data.get("currency") or ""),
            haircut=optional_number(data, "haircut", 0.0),
            stressed_haircut=optional_number(data, "stressed_haircut"),
        )


def total_collateral_value(collateral: Iterable[Collateral], stressed: bool = False) -> float:
    """Sum collateral net of haircuts.

    Args:
        collateral: Collateral items
        stressed: Use stressed haircuts instead of normal ones

    Returns:
        Total haircut-adjusted collateral value
    """
    if stressed:
        return float(sum(c.stressed_value for c in collateral))
    return float(sum(c.net_value for c in collateral))
