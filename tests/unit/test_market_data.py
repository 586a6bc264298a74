"""Unit tests for Position and HistoricalMarketData domain objects."""

import pytest
from datetime import date

import numpy as np
import pandas as pd

from src.core.domain.errors import InvalidInputError
from src.core.domain.market_data import HistoricalMarketData
from src.core.domain.position import Position, VaRAssetType


class TestPosition:
    """Test Position invariants and serialization."""

    def test_market_value_is_signed(self) -> None:
        """Short quantities give negative market value."""
        position = Position("P1", VaRAssetType.EQUITY, "AAPL", -100.0, 150.0)

        assert position.market_value == pytest.approx(-15_000.0)

    def test_non_positive_price_raises(self) -> None:
        """Price must be strictly positive."""
        with pytest.raises(InvalidInputError, match="current price"):
            Position("P1", VaRAssetType.EQUITY, "AAPL", 100.0, 0.0)

    def test_empty_identifier_raises(self) -> None:
        """Asset identifier must be present."""
        with pytest.raises(InvalidInputError, match="asset identifier"):
            Position("P1", VaRAssetType.EQUITY, "", 100.0, 10.0)

    def test_empty_position_id_raises(self) -> None:
        """Position id must be present."""
        with pytest.raises(InvalidInputError) as exc_info:
            Position("", VaRAssetType.EQUITY, "AAPL", 100.0, 10.0)

        assert exc_info.value.field == "position_id"

    def test_from_dict_missing_id_raises(self) -> None:
        """A document position without an id is rejected."""
        with pytest.raises(InvalidInputError) as exc_info:
            Position.from_dict(
                {
                    "asset_type": "EQUITY",
                    "asset_identifier": "AAA",
                    "quantity": 10,
                    "current_price": 5.0,
                }
            )

        assert exc_info.value.field == "position_id"

    def test_from_dict_accepts_id_alias(self) -> None:
        """The short 'id' key names the position."""
        position = Position.from_dict(
            {
                "id": 7,
                "asset_type": "EQUITY",
                "asset_identifier": "AAA",
                "quantity": 10,
                "current_price": 5.0,
            }
        )

        assert position.position_id == "7"

    def test_from_dict(self) -> None:
        """Fields are parsed with enum names accepted."""
        position = Position.from_dict(
            {
                "position_id": "FX-1",
                "asset_type": "foreign_exchange",
                "asset_identifier": "EUR/USD",
                "quantity": 1_000_000,
                "current_price": 1.08,
                "purchase_date": "2023-05-01",
            }
        )

        assert position.asset_type == VaRAssetType.FOREIGN_EXCHANGE
        assert position.currency == "USD"
        assert position.purchase_date == date(2023, 5, 1)

    def test_from_dict_unknown_asset_type_raises(self) -> None:
        """Unknown asset type should raise InvalidInputError."""
        with pytest.raises(InvalidInputError) as exc_info:
            Position.from_dict(
                {
                    "position_id": "X",
                    "asset_type": "REAL_ESTATE",
                    "asset_identifier": "HOUSE",
                    "quantity": 1,
                    "current_price": 1.0,
                }
            )

        assert exc_info.value.field == "asset_type"


class TestHistoricalMarketDataInvariants:
    """Test HistoricalMarketData invariant enforcement."""

    def test_missing_price_column_raises(self) -> None:
        """A price column is required."""
        frame = pd.DataFrame(
            {"close": [1.0, 2.0]}, index=pd.date_range("2024-01-01", periods=2)
        )

        with pytest.raises(InvalidInputError, match="'price' column"):
            HistoricalMarketData("AAPL", VaRAssetType.EQUITY, "USD", frame)

    def test_descending_dates_raise(self) -> None:
        """Dates must be ascending."""
        frame = pd.DataFrame(
            {"price": [1.0, 2.0]},
            index=pd.DatetimeIndex(["2024-01-02", "2024-01-01"]),
        )

        with pytest.raises(InvalidInputError, match="ascending"):
            HistoricalMarketData("AAPL", VaRAssetType.EQUITY, "USD", frame)

    def test_duplicate_dates_raise(self) -> None:
        """Duplicate dates are rejected."""
        frame = pd.DataFrame(
            {"price": [1.0, 2.0, 3.0]},
            index=pd.DatetimeIndex(["2024-01-01", "2024-01-02", "2024-01-02"]),
        )

        with pytest.raises(InvalidInputError, match="duplicate"):
            HistoricalMarketData("AAPL", VaRAssetType.EQUITY, "USD", frame)

    def test_non_positive_price_raises(self) -> None:
        """Prices must be strictly positive."""
        frame = pd.DataFrame(
            {"price": [1.0, -2.0]}, index=pd.date_range("2024-01-01", periods=2)
        )

        with pytest.raises(InvalidInputError, match="finite and > 0"):
            HistoricalMarketData("AAPL", VaRAssetType.EQUITY, "USD", frame)


class TestHistoricalMarketDataMethods:
    """Test returns and point parsing."""

    @pytest.fixture
    def series(self) -> HistoricalMarketData:
        """Three-point series given out of order."""
        return HistoricalMarketData.from_points(
            "AAPL",
            VaRAssetType.EQUITY,
            "USD",
            [
                {"date": "2024-01-03", "price": 99.0},
                {"date": "2024-01-01", "price": 100.0},
                {"date": "2024-01-02", "price": 110.0},
            ],
        )

    def test_from_points_sorts_by_date(self, series: HistoricalMarketData) -> None:
        """Points are sorted ascending."""
        assert series.start_date == date(2024, 1, 1)
        assert series.end_date == date(2024, 1, 3)
        assert series.point_count == 3
        assert "volume" not in series.prices.columns

    def test_returns_are_simple_returns(self, series: HistoricalMarketData) -> None:
        """Returns are price[t] / price[t-1] - 1."""
        returns = series.returns()

        np.testing.assert_allclose(returns.to_numpy(), [0.10, -0.10])
        assert returns.name == "AAPL"

    def test_caller_frame_changes_do_not_leak(self) -> None:
        """Editing the source frame after construction leaves the series intact."""
        frame = pd.DataFrame(
            {"price": [100.0, 101.0, 102.0]},
            index=pd.date_range("2024-01-01", periods=3),
        )
        series = HistoricalMarketData("AAPL", VaRAssetType.EQUITY, "USD", frame)

        frame.loc[frame.index[0], "price"] = -1.0

        assert series.prices["price"].tolist() == [100.0, 101.0, 102.0]
        assert frame is not series.prices

    def test_derived_series_are_detached(self, series: HistoricalMarketData) -> None:
        """Writing to a derived price series leaves the stored prices unchanged."""
        prices = series.price_series()
        prices.iloc[0] = 1.0

        assert series.prices["price"].iloc[0] == 100.0

    def test_from_points_keeps_volume(self) -> None:
        """Volume column survives when supplied."""
        series = HistoricalMarketData.from_points(
            "AAPL",
            VaRAssetType.EQUITY,
            "USD",
            [
                {"date": "2024-01-01", "price": 100.0, "volume": 1000},
                {"date": "2024-01-02", "price": 101.0, "volume": 1200},
            ],
        )

        assert series.prices["volume"].tolist() == [1000.0, 1200.0]

    def test_from_points_missing_price_raises(self) -> None:
        """A record without a price should raise InvalidInputError."""
        with pytest.raises(InvalidInputError) as exc_info:
            HistoricalMarketData.from_points(
                "AAPL", VaRAssetType.EQUITY, "USD", [{"date": "2024-01-01"}]
            )

        assert exc_info.value.field == "price"

    def test_dict_round_trip(self, series: HistoricalMarketData) -> None:
        """to_dict output rebuilds the same prices."""
        rebuilt = HistoricalMarketData.from_dict(series.to_dict())

        pd.testing.assert_frame_equal(rebuilt.prices, series.prices)
        assert rebuilt.asset_type == VaRAssetType.EQUITY
