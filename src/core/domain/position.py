"""Position Domain Object - market-risk holding used by VaR.

Represents a signed quantity of one asset valued at its current price.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any

from src.core.domain.errors import InvalidInputError
from src.core.domain.fields import optional_date, parse_enum, parse_number, require


class VaRAssetType(Enum):
    """Asset types supported by the VaR engine."""

    EQUITY = "EQUITY"
    FOREIGN_EXCHANGE = "FOREIGN_EXCHANGE"
    INTEREST_RATE = "INTEREST_RATE"
    COMMODITY = "COMMODITY"
    CRYPTO = "CRYPTO"


@dataclass(frozen=True)
class Position:
    """Holding in a single asset.

    Attributes:
        position_id: Position identifier
        asset_type: Asset type (drives stress scenario shocks)
        asset_identifier: Ticker, currency pair or series id
        quantity: Signed quantity (negative for short)
        current_price: Current unit price, strictly positive
        currency: Pricing currency
        purchase_date: Optional purchase date

    Invariants:
        - position_id and asset_identifier are not empty
        - current_price > 0
        - quantity is finite
    """

    position_id: str
    asset_type: VaRAssetType
    asset_identifier: str
    quantity: float
    current_price: float
    currency: str = "USD"
    purchase_date: date | None = None

    def __post_init__(self) -> None:
        """Validate invariants after initialization."""
        self._validate_invariants()

    def _validate_invariants(self) -> None:
        """Validate all domain invariants.

        Raises:
            InvalidInputError: If any invariant is violated
        """
        # Invariant 1: identifiers present
        if not self.position_id:
            raise InvalidInputError("position id must not be empty", field="position_id")

        if not self.asset_identifier:
            raise InvalidInputError(
                f"Position '{self.position_id}' asset identifier must not be empty",
                field="asset_identifier",
            )

        # Invariant 2: current price strictly positive
        if not self.current_price > 0:
            raise InvalidInputError(
                f"Position '{self.position_id}' current price must be > 0, "
                f"got {self.current_price}",
                field="current_price",
            )

        # Invariant 3: quantity finite
        if not math.isfinite(self.quantity):
            raise InvalidInputError(
                f"Position '{self.position_id}' quantity must be finite",
                field="quantity",
            )

    @property
    def market_value(self) -> float:
        """Signed current market value (quantity x price)."""
        return self.quantity * self.current_price

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "position_id": self.position_id,
            "asset_type": self.asset_type.value,
            "asset_identifier": self.asset_identifier,
            "quantity": self.quantity,
            "current_price": self.current_price,
            "currency": self.currency,
            "purchase_date": self.purchase_date.isoformat() if self.purchase_date else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Position":
        """Create Position from dictionary.

        Raises:
            InvalidInputError: If a field is missing or malformed
        """
        position_id = data.get("position_id", data.get("id"))
        if position_id is None:
            raise InvalidInputError("required field is missing", field="position_id")
        position_id = str(position_id)
        return cls(
            position_id=position_id,
            asset_type=parse_enum(
                VaRAssetType, require(data, "asset_type"), "asset_type"
            ),
            asset_identifier=str(require(data, "asset_identifier")),
            quantity=parse_number(require(data, "quantity"), "quantity"),
            current_price=parse_number(require(data, "current_price"), "current_price"),
            currency=str(data.get("currency") or "USD"),
            purchase_date=optional_date(data, "purchase_date"),
        )
