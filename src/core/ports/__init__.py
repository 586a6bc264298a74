"""Port interfaces for the exposure engine.

Ports define abstract interfaces that adapters must implement.
Following hexagonal architecture, core depends only on ports.
"""

from src.core.ports.market_data_port import DataNotFoundError, MarketDataPort

__all__ = [
    "MarketDataPort",
    "DataNotFoundError",
]
