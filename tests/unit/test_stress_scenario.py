"""Unit tests for StressScenario domain object."""

import pytest
from datetime import date

from src.core.domain.errors import InvalidInputError
from src.core.domain.position import Position, VaRAssetType
from src.core.domain.stress_scenario import StressScenario


class TestStressScenarioInvariants:
    """Test StressScenario invariant enforcement."""

    def test_valid_scenario_creation(self) -> None:
        """Valid StressScenario should be created without errors."""
        scenario = StressScenario(
            name="Test Scenario",
            shocks={VaRAssetType.EQUITY: -0.20, VaRAssetType.COMMODITY: 0.50},
            description="A test stress scenario",
            date_calibrated=date(2020, 1, 15),
        )

        assert scenario.name == "Test Scenario"
        assert len(scenario.shocks) == 2

    def test_empty_name_raises(self) -> None:
        """Empty name should raise InvalidInputError."""
        with pytest.raises(InvalidInputError, match="name must not be empty"):
            StressScenario(
                name="",
                shocks={VaRAssetType.EQUITY: -0.20},
                description="Test",
                date_calibrated=date(2020, 1, 15),
            )

    def test_whitespace_only_name_raises(self) -> None:
        """Whitespace-only name should raise InvalidInputError."""
        with pytest.raises(InvalidInputError, match="name must not be empty"):
            StressScenario(
                name="   ",
                shocks={VaRAssetType.EQUITY: -0.20},
                description="Test",
                date_calibrated=date(2020, 1, 15),
            )

    def test_empty_shocks_raises(self) -> None:
        """Empty shocks dict should raise InvalidInputError."""
        with pytest.raises(InvalidInputError, match="at least one shock"):
            StressScenario(
                name="Test",
                shocks={},
                description="Test",
                date_calibrated=date(2020, 1, 15),
            )

    def test_shock_below_total_loss_raises(self) -> None:
        """A price cannot fall more than 100%."""
        with pytest.raises(InvalidInputError, match="outside"):
            StressScenario(
                name="Extreme Test",
                shocks={VaRAssetType.EQUITY: -1.5},
                description="Test",
                date_calibrated=date(2020, 1, 15),
            )

    def test_boundary_shock_allowed(self) -> None:
        """Shock of exactly -100% should be allowed."""
        scenario = StressScenario(
            name="Boundary Test",
            shocks={VaRAssetType.CRYPTO: -1.0},
            description="Test",
            date_calibrated=date(2020, 1, 15),
        )

        assert scenario.get_shock(VaRAssetType.CRYPTO) == -1.0


class TestStressScenarioMethods:
    """Test StressScenario methods."""

    @pytest.fixture
    def scenario(self) -> StressScenario:
        """Equity and FX shocks only."""
        return StressScenario(
            name="Sell-off",
            shocks={VaRAssetType.EQUITY: -0.40, VaRAssetType.FOREIGN_EXCHANGE: -0.10},
            description="Broad sell-off",
            date_calibrated=date(2008, 9, 15),
        )

    def test_get_shock_undefined_is_zero(self, scenario: StressScenario) -> None:
        """Asset types without a shock are unaffected."""
        assert scenario.get_shock(VaRAssetType.INTEREST_RATE) == 0.0

    def test_apply_sums_shocked_market_values(self, scenario: StressScenario) -> None:
        """Scenario P&L is market value x shock summed over positions."""
        positions = [
            Position("EQ", VaRAssetType.EQUITY, "SPY", 100.0, 400.0),
            Position("FX", VaRAssetType.FOREIGN_EXCHANGE, "EUR/USD", 10_000.0, 1.10),
            Position("IR", VaRAssetType.INTEREST_RATE, "UST10Y", 50.0, 98.0),
        ]

        # 40000 x -0.40 + 11000 x -0.10
        assert scenario.apply(positions) == pytest.approx(-17_100.0)

    def test_short_positions_gain(self, scenario: StressScenario) -> None:
        """Short equity gains in an equity sell-off."""
        positions = [Position("EQ", VaRAssetType.EQUITY, "SPY", -10.0, 100.0)]

        assert scenario.apply(positions) == pytest.approx(400.0)

    def test_dict_round_trip(self, scenario: StressScenario) -> None:
        """to_dict output rebuilds an equal scenario."""
        assert StressScenario.from_dict(scenario.to_dict()) == scenario

    def test_from_dict_unknown_asset_type_raises(self) -> None:
        """Shock keys must be VaR asset types."""
        with pytest.raises(InvalidInputError):
            StressScenario.from_dict(
                {
                    "name": "Bad",
                    "shocks": {"VOLATILITY": 0.5},
                    "date_calibrated": "2020-03-16",
                }
            )
