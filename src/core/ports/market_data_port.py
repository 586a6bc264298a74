"""MarketDataPort Protocol - Abstract interface for historical price retrieval.

The VaR engine takes price history as input. This port is how the
orchestration layer fetches that history when the caller did not supply it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from src.core.domain.market_data import HistoricalMarketData
    from src.core.domain.position import VaRAssetType


@runtime_checkable
class MarketDataPort(Protocol):
    """Abstract interface for daily price history.

    Implementations:
    - CsvMarketDataAdapter: One CSV file per asset identifier
    - SyntheticMarketDataAdapter: Seeded random-walk prices
    - StubMarketDataAdapter: In-memory test stub
    """

    def load_history(
        self,
        asset_identifier: str,
        asset_type: "VaRAssetType",
        currency: str,
        lookback_period: int,
    ) -> "HistoricalMarketData":
        """Load daily prices for an asset.

        Args:
            asset_identifier: Asset identifier (e.g., "AAPL", "EUR/USD")
            asset_type: Asset type of the series
            currency: Price currency
            lookback_period: Number of daily returns wanted; implementations
                return up to lookback_period + 1 prices

        Returns:
            HistoricalMarketData sorted ascending by date

        Raises:
            DataNotFoundError: If no history exists for the asset

        Post-conditions:
            - Dates ascending and unique
            - Prices positive
        """
        ...


class DataNotFoundError(Exception):
    """Raised when no price history exists for an asset."""

    def __init__(self, asset_identifier: str, source: str | None = None) -> None:
        self.asset_identifier = asset_identifier
        self.source = source
        msg = f"Data not found for asset '{asset_identifier}'"
        if source:
            msg += f" in '{source}'"
        super().__init__(msg)
