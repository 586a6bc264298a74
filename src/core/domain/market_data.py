"""HistoricalMarketData Domain Object - price history for one asset.

Represents an ascending daily price series with:
- Unique, monotonically increasing date index
- Strictly positive prices
- Optional traded volume
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, Mapping

import numpy as np
import pandas as pd

from src.core.domain.errors import InvalidInputError
from src.core.domain.fields import parse_date, parse_enum, parse_number, require
from src.core.domain.position import VaRAssetType


@dataclass(frozen=True, eq=False)
class HistoricalMarketData:
    """Daily price history for a single asset.

    Attributes:
        asset_identifier: Matches ``Position.asset_identifier``
        asset_type: Asset type of the series
        currency: Pricing currency
        prices: DataFrame indexed by date with a ``price`` column and
            optional ``volume`` column. A private copy is taken at
            construction; treat it as read-only.
        source: Where the series came from (e.g., "csv", "synthetic")

    Invariants:
        - index is monotonically increasing with no duplicates
        - ``price`` column present, all prices finite and > 0
    """

    asset_identifier: str
    asset_type: VaRAssetType
    currency: str
    prices: pd.DataFrame
    source: str = "caller"

    def __post_init__(self) -> None:
        """Detach from the caller's frame, then validate invariants."""
        object.__setattr__(self, "prices", self.prices.copy())
        self._validate_invariants()

    def _validate_invariants(self) -> None:
        """Validate all domain invariants.

        Raises:
            InvalidInputError: If any invariant is violated
        """
        # Invariant 1: price column present
        if "price" not in self.prices.columns:
            raise InvalidInputError(
                f"HistoricalMarketData '{self.asset_identifier}' must have a 'price' column",
                field="prices",
            )

        # Invariant 2: ascending unique dates
        if not self.prices.index.is_monotonic_increasing:
            raise InvalidInputError(
                f"HistoricalMarketData '{self.asset_identifier}' dates must be ascending",
                field="prices",
            )
        if self.prices.index.has_duplicates:
            raise InvalidInputError(
                f"HistoricalMarketData '{self.asset_identifier}' has "
                f"{int(self.prices.index.duplicated().sum())} duplicate dates",
                field="prices",
            )

        # Invariant 3: positive finite prices
        values = self.prices["price"].to_numpy(dtype=float)
        if len(values) and (not np.all(np.isfinite(values)) or np.any(values <= 0)):
            raise InvalidInputError(
                f"HistoricalMarketData '{self.asset_identifier}' prices must be finite and > 0",
                field="prices",
            )

    @property
    def point_count(self) -> int:
        """Return the number of observations."""
        return len(self.prices)

    @property
    def start_date(self) -> date | None:
        """Return the first observation date."""
        return self.prices.index[0].date() if len(self.prices) else None

    @property
    def end_date(self) -> date | None:
        """Return the last observation date."""
        return self.prices.index[-1].date() if len(self.prices) else None

    def price_series(self) -> pd.Series:
        """Return the price column named after the asset."""
        return self.prices["price"].copy().rename(self.asset_identifier)

    def returns(self) -> pd.Series:
        """Daily simple returns, price[t] / price[t-1] - 1."""
        return self.price_series().pct_change().dropna()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        points = []
        for ts, row in self.prices.iterrows():
            point = {"date": ts.date().isoformat(), "price": float(row["price"])}
            if "volume" in self.prices.columns and pd.notna(row["volume"]):
                point["volume"] = float(row["volume"])
            points.append(point)
        return {
            "asset_identifier": self.asset_identifier,
            "asset_type": self.asset_type.value,
            "currency": self.currency,
            "source": self.source,
            "data": points,
        }

    @classmethod
    def from_points(
        cls,
        asset_identifier: str,
        asset_type: VaRAssetType,
        currency: str,
        points: Iterable[Mapping[str, Any]],
        source: str = "caller",
    ) -> "HistoricalMarketData":
        """Build from (date, price, volume) records, sorting by date.

        Raises:
            InvalidInputError: If a record is missing a date or price
        """
        rows = []
        for point in points:
            rows.append(
                {
                    "date": pd.Timestamp(parse_date(require(point, "date"), "date")),
                    "price": parse_number(require(point, "price"), "price"),
                    "volume": point.get("volume"),
                }
            )

        frame = pd.DataFrame(rows, columns=["date", "price", "volume"])
        frame = frame.set_index("date").sort_index()
        if frame["volume"].isna().all():
            frame = frame.drop(columns="volume")
        else:
            frame["volume"] = frame["volume"].astype(float)

        return cls(
            asset_identifier=asset_identifier,
            asset_type=asset_type,
            currency=currency,
            prices=frame,
            source=source,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HistoricalMarketData":
        """Create HistoricalMarketData from dictionary."""
        return cls.from_points(
            asset_identifier=str(require(data, "asset_identifier")),
            asset_type=parse_enum(
                VaRAssetType, data.get("asset_type", VaRAssetType.EQUITY), "asset_type"
            ),
            currency=str(data.get("currency") or "USD"),
            points=data.get("data") or [],
            source=str(data.get("source") or "caller"),
        )
