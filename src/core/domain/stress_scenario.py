"""StressScenario Domain Object - historical market shocks by asset type.

Represents a named crisis scenario applied to VaR positions as a relative
price move per asset type.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING, Any, Iterable

from src.core.domain.errors import InvalidInputError
from src.core.domain.fields import parse_date, parse_enum, parse_number
from src.core.domain.position import VaRAssetType

if TYPE_CHECKING:
    from src.core.domain.position import Position

# A price cannot fall more than 100%; rallies above +500% are treated as typos
MIN_SHOCK = -1.0
MAX_SHOCK = 5.0


@dataclass(frozen=True)
class StressScenario:
    """Stress testing scenario definition.

    Attributes:
        name: Scenario name (e.g., "2008 Financial Crisis")
        shocks: Relative price move per asset type (e.g., {EQUITY: -0.40})
        description: Narrative description of the scenario
        date_calibrated: Date of the historical event

    Invariants:
        - name is not empty
        - at least one shock is defined
        - every shock lies in [-1.0, 5.0]
    """

    name: str
    shocks: dict[VaRAssetType, float]
    description: str
    date_calibrated: date

    def __post_init__(self) -> None:
        """Validate invariants after initialization."""
        self._validate_invariants()

    def _validate_invariants(self) -> None:
        """Validate all domain invariants.

        Raises:
            InvalidInputError: If any invariant is violated
        """
        # Invariant 1: name must not be empty
        if not self.name or not self.name.strip():
            raise InvalidInputError("StressScenario name must not be empty", field="name")

        # Invariant 2: shocks must not be empty
        if not self.shocks:
            raise InvalidInputError(
                f"StressScenario '{self.name}' must have at least one shock defined",
                field="shocks",
            )

        # Invariant 3: shock magnitudes must be plausible
        extreme = [
            (asset_type.value, shock)
            for asset_type, shock in self.shocks.items()
            if not MIN_SHOCK <= shock <= MAX_SHOCK
        ]
        if extreme:
            raise InvalidInputError(
                f"StressScenario '{self.name}' has shocks outside "
                f"[{MIN_SHOCK}, {MAX_SHOCK}]: {extreme}",
                field="shocks",
            )

    def get_shock(self, asset_type: VaRAssetType) -> float:
        """Return the shock for an asset type (0.0 when not defined)."""
        return self.shocks.get(asset_type, 0.0)

    def apply(self, positions: Iterable["Position"]) -> float:
        """Return the scenario P&L on current market values.

        Args:
            positions: Positions to shock

        Returns:
            Sum of quantity x price x shock (negative for a loss)
        """
        return float(sum(p.market_value * self.get_shock(p.asset_type) for p in positions))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "name": self.name,
            "shocks": {k.value: v for k, v in self.shocks.items()},
            "description": self.description,
            "date_calibrated": self.date_calibrated.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StressScenario":
        """Create StressScenario from dictionary."""
        return cls(
            name=str(data.get("name", "")),
            shocks={
                parse_enum(VaRAssetType, k, "shocks"): parse_number(v, f"shocks.{k}")
                for k, v in (data.get("shocks") or {}).items()
            },
            description=data.get("description", ""),
            date_calibrated=parse_date(data["date_calibrated"], "date_calibrated"),
        )

