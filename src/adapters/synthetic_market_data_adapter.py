"""SyntheticMarketDataAdapter - MarketDataPort producing seeded random walks.

Used when no market data directory is configured. Each asset gets its own
generator derived from the adapter seed and the asset identifier, so a
series does not depend on which other assets were loaded before it.
"""

from __future__ import annotations

import logging
import zlib
from datetime import date

import numpy as np
import pandas as pd

from src.core.domain.market_data import HistoricalMarketData
from src.core.domain.position import VaRAssetType
from src.core.ports.market_data_port import MarketDataPort

logger = logging.getLogger(__name__)

BASE_PRICE = 100.0
BASE_PRICE_SPREAD = 50.0  # start price uniform in [50, 150)
DAILY_MOVE = 0.015  # daily return uniform in [-1.5%, +1.5%)


class SyntheticMarketDataAdapter:
    """Random-walk implementation of MarketDataPort."""

    def __init__(self, seed: int = 42, end_date: date | None = None) -> None:
        """Initialize synthetic adapter.

        Args:
            seed: Base seed for all generated series
            end_date: Last business day of every series (default: today)
        """
        self._seed = seed
        self._end_date = end_date

    def load_history(
        self,
        asset_identifier: str,
        asset_type: VaRAssetType,
        currency: str,
        lookback_period: int,
    ) -> HistoricalMarketData:
        """Generate lookback_period + 1 business-day prices ending at end_date."""
        rng = np.random.default_rng([self._seed, zlib.crc32(asset_identifier.encode("utf-8"))])
        points = lookback_period + 1
        end = pd.Timestamp(self._end_date or date.today())
        dates = pd.bdate_range(end=end, periods=points)

        start = BASE_PRICE + rng.uniform(-BASE_PRICE_SPREAD, BASE_PRICE_SPREAD)
        moves = rng.uniform(-DAILY_MOVE, DAILY_MOVE, size=points - 1)
        prices = start * np.concatenate([[1.0], np.cumprod(1.0 + moves)])

        logger.debug(
            "Generated %d synthetic prices for %s (seed=%d)", points, asset_identifier, self._seed
        )
        return HistoricalMarketData(
            asset_identifier=asset_identifier,
            asset_type=asset_type,
            currency=currency,
            prices=pd.DataFrame({"price": prices}, index=pd.DatetimeIndex(dates, name="date")),
            source="synthetic",
        )


# Type assertion for Protocol compliance
_: MarketDataPort = SyntheticMarketDataAdapter()  # type: ignore[assignment]
