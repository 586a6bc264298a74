"""Unit tests for exposure and margin result objects."""

import pytest
from datetime import date

from src.core.domain.errors import CalculationError
from src.core.domain.exposure_metrics import (
    InputSummary,
    ReplacementCostResult,
    SACCRResult,
)
from src.core.domain.margin_metrics import GridScheduleResult, SIMMResult
from src.core.domain.netting_set import MarginType
from src.core.domain.sensitivity import RiskFactorType
from src.core.domain.trade import AssetClass, MaturityBucket


@pytest.fixture
def summary() -> InputSummary:
    """Input echo for a single-trade netting set."""
    return InputSummary(
        netting_set_id="NS-1",
        trade_count=1,
        asset_classes=(AssetClass.INTEREST_RATE,),
        margin_type=MarginType.UNMARGINED,
        total_notional=10_000_000.0,
    )


def _saccr(summary: InputSummary, ead: float, multiplier: float = 1.0) -> SACCRResult:
    rc = ReplacementCostResult(
        value=50_000.0, market_value=50_000.0, collateral_value=0.0, current_exposure=50_000.0
    )
    return SACCRResult(
        ead=ead,
        replacement_cost=rc,
        pfe=multiplier * 100_000.0,
        add_on=100_000.0,
        multiplier=multiplier,
        per_asset_class_add_on={AssetClass.INTEREST_RATE: 100_000.0},
        hedging_set_add_ons={"INTEREST_RATE:USD": 100_000.0},
        alpha=1.4,
        multiplier_floor=0.05,
        valuation_date=date(2024, 1, 1),
        input_summary=summary,
    )


class TestSACCRResult:
    """Test SACCRResult arithmetic checks."""

    def test_consistent_result(self, summary: InputSummary) -> None:
        """EAD = alpha x (RC + multiplier x AddOn)."""
        result = _saccr(summary, ead=1.4 * 150_000.0)

        assert result.ead == pytest.approx(210_000.0)

    def test_inconsistent_ead_raises(self, summary: InputSummary) -> None:
        """An EAD that breaks the identity is an engine bug."""
        with pytest.raises(CalculationError, match="EAD"):
            _saccr(summary, ead=100.0)

    def test_multiplier_out_of_bounds_raises(self, summary: InputSummary) -> None:
        """Multiplier must lie in [floor, 1]."""
        with pytest.raises(CalculationError, match="multiplier"):
            _saccr(summary, ead=1.4 * (50_000.0 + 1.2 * 100_000.0), multiplier=1.2)

    def test_negative_replacement_cost_raises(self) -> None:
        """RC is floored at zero by construction."""
        with pytest.raises(CalculationError, match="replacement cost"):
            ReplacementCostResult(
                value=-1.0, market_value=-1.0, collateral_value=0.0, current_exposure=-1.0
            )

    def test_to_dict_uses_enum_values(self, summary: InputSummary) -> None:
        """Asset classes are serialized by value."""
        data = _saccr(summary, ead=1.4 * 150_000.0).to_dict()

        assert data["per_asset_class_add_on"] == {"INTEREST_RATE": 100_000.0}
        assert data["input_summary"]["margin_type"] == "UNMARGINED"
        assert data["valuation_date"] == "2024-01-01"


class TestGridScheduleResult:
    """Test GridScheduleResult bounds."""

    def _result(self, net: float, ratio: float = 1.0) -> GridScheduleResult:
        return GridScheduleResult(
            initial_margin=1_000.0,
            net_initial_margin=net,
            gross_notional_by_asset_class={
                AssetClass.EQUITY: {MaturityBucket.LESS_THAN_ONE_YEAR: 10_000.0}
            },
            gross_im_by_asset_class={AssetClass.EQUITY: 1_000.0},
            net_gross_ratio=ratio,
            raw_net_gross_ratio=1.0,
            netted_initial_margin=1_000.0,
            collateral_value=0.0,
        )

    def test_net_above_gross_raises(self) -> None:
        """Net IM can never exceed gross IM."""
        with pytest.raises(CalculationError, match="exceeds gross"):
            self._result(net=1_500.0)

    def test_ratio_below_floor_raises(self) -> None:
        """Netting factor is bounded below by 0.4."""
        with pytest.raises(CalculationError, match="outside"):
            self._result(net=300.0, ratio=0.3)

    def test_to_dict_nests_buckets(self) -> None:
        """Notional breakdown is keyed by class then bucket."""
        data = self._result(net=1_000.0).to_dict()

        assert data["gross_notional_by_asset_class"] == {
            "EQUITY": {"less_than_one_year": 10_000.0}
        }


class TestSIMMResult:
    """Test SIMMResult bounds."""

    def test_gross_margin_sums_buckets(self) -> None:
        """Gross margin is the sum of bucket margins."""
        result = SIMMResult(
            initial_margin=100.0,
            net_initial_margin=100.0,
            risk_factor_contributions={
                RiskFactorType.INTEREST_RATE: {1: 60.0, 2: 70.0},
            },
            risk_class_margins={RiskFactorType.INTEREST_RATE: 100.0},
            diversification_benefit=30.0,
            collateral_value=0.0,
        )

        assert result.gross_margin == pytest.approx(130.0)
        assert "correlation_matrix" not in result.to_dict()

    def test_negative_diversification_raises(self) -> None:
        """Diversification benefit cannot be negative."""
        with pytest.raises(CalculationError, match="diversification"):
            SIMMResult(
                initial_margin=100.0,
                net_initial_margin=100.0,
                risk_factor_contributions={},
                risk_class_margins={},
                diversification_benefit=-5.0,
                collateral_value=0.0,
            )
