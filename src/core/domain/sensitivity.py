"""RiskFactor Domain Object - delta sensitivities for ISDA SIMM.

A trade carries zero or more risk-factor sensitivities. SIMM groups them
by risk type and bucket before aggregating.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any

from src.core.domain.errors import InvalidInputError
from src.core.domain.fields import parse_enum, parse_number, require


class RiskFactorType(Enum):
    """SIMM risk classes."""

    INTEREST_RATE = "interest_rate"
    CREDIT_QUALIFYING = "credit_qualifying"
    CREDIT_NON_QUALIFYING = "credit_non_qualifying"
    EQUITY = "equity"
    COMMODITY = "commodity"
    FX = "fx"


@dataclass(frozen=True)
class RiskFactor:
    """A single delta sensitivity.

    Attributes:
        risk_type: SIMM risk class
        bucket: Bucket index within the risk class (1-based)
        label: Risk factor label (e.g., "USD-2Y", "EUR/USD")
        sensitivity: Delta sensitivity in the trade currency

    Invariants:
        - bucket >= 1
        - sensitivity is finite
    """

    risk_type: RiskFactorType
    bucket: int
    label: str
    sensitivity: float

    def __post_init__(self) -> None:
        """Validate invariants after initialization."""
        self._validate_invariants()

    def _validate_invariants(self) -> None:
        """Validate all domain invariants.

        Raises:
            InvalidInputError: If any invariant is violated
        """
        # Invariant 1: bucket is a positive integer
        if isinstance(self.bucket, bool) or not isinstance(self.bucket, int) or self.bucket < 1:
            raise InvalidInputError(
                f"RiskFactor '{self.label}' bucket must be a positive integer, got {self.bucket!r}",
                field="bucket",
            )

        # Invariant 2: sensitivity must be finite
        if not math.isfinite(self.sensitivity):
            raise InvalidInputError(
                f"RiskFactor '{self.label}' sensitivity must be finite",
                field="sensitivity",
            )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "risk_type": self.risk_type.value,
            "bucket": self.bucket,
            "label": self.label,
            "sensitivity": self.sensitivity,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], trade_id: str | None = None) -> "RiskFactor":
        """Create RiskFactor from dictionary.

        Accepts ``type``/``risk_type`` and ``value``/``sensitivity`` keys.

        Raises:
            InvalidInputError: If the risk type is not a SIMM risk class
        """
        type_key = "risk_type" if "risk_type" in data else "type"
        value_key = "sensitivity" if "sensitivity" in data else "value"

        bucket = require(data, "bucket", trade_id)
        if isinstance(bucket, float) and bucket.is_integer():
            bucket = int(bucket)

        return cls(
            risk_type=parse_enum(
                RiskFactorType, require(data, type_key, trade_id), type_key, trade_id
            ),
            bucket=bucket,
            label=str(data.get("label", "")),
            sensitivity=parse_number(require(data, value_key, trade_id), value_key, trade_id),
        )
