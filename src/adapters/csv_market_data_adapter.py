"""CsvMarketDataAdapter - MarketDataPort backed by a directory of CSV files.

Each asset lives in ``<identifier>.csv`` with columns ``date,price`` and an
optional ``volume``. Characters that cannot appear in file names ("/", ":")
are replaced with "_", so EUR/USD is read from ``EUR_USD.csv``.
"""

from __future__ import annotations

import logging
import re
from datetime import date
from pathlib import Path

import pandas as pd

from src.core.domain.errors import InvalidInputError
from src.core.domain.market_data import HistoricalMarketData
from src.core.domain.position import VaRAssetType
from src.core.ports.market_data_port import DataNotFoundError, MarketDataPort

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[/\\:]")


class CsvMarketDataAdapter:
    """CSV implementation of MarketDataPort."""

    def __init__(self, directory: str | Path = "data/market", end_date: date | None = None) -> None:
        """Initialize CSV adapter.

        Args:
            directory: Directory holding one CSV per asset
            end_date: Ignore prices after this date (default: use all rows)
        """
        self._directory = Path(directory)
        self._end_date = end_date

    def path_for(self, asset_identifier: str) -> Path:
        """Return the CSV path for an asset identifier."""
        return self._directory / f"{_UNSAFE_CHARS.sub('_', asset_identifier)}.csv"

    def load_history(
        self,
        asset_identifier: str,
        asset_type: VaRAssetType,
        currency: str,
        lookback_period: int,
    ) -> HistoricalMarketData:
        """Load up to lookback_period + 1 most recent prices from CSV.

        Raises:
            DataNotFoundError: If the file does not exist or has no rows
            InvalidInputError: If the file lacks date/price columns
        """
        path = self.path_for(asset_identifier)
        if not path.exists():
            raise DataNotFoundError(asset_identifier, str(self._directory))

        frame = pd.read_csv(path)
        missing = {"date", "price"} - set(frame.columns)
        if missing:
            raise InvalidInputError(
                f"{path.name} is missing columns {sorted(missing)}", field="market_data"
            )

        frame["date"] = pd.to_datetime(frame["date"])
        frame = frame.set_index("date").sort_index()
        if self._end_date is not None:
            frame = frame[frame.index <= pd.Timestamp(self._end_date)]
        frame = frame.tail(lookback_period + 1)

        if frame.empty:
            raise DataNotFoundError(asset_identifier, str(path))

        columns = ["price", "volume"] if "volume" in frame.columns else ["price"]
        logger.debug("Loaded %d prices for %s from %s", len(frame), asset_identifier, path)

        return HistoricalMarketData(
            asset_identifier=asset_identifier,
            asset_type=asset_type,
            currency=currency,
            prices=frame[columns].astype(float),
            source=str(path),
        )


# Type assertion for Protocol compliance
_: MarketDataPort = CsvMarketDataAdapter()  # type: ignore[assignment]
