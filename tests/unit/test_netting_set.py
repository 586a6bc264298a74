"""Unit tests for NettingSet and Collateral domain objects."""

import pytest

from src.core.domain.errors import InvalidInputError
from src.core.domain.netting_set import (
    Collateral,
    MarginType,
    NettingSet,
    total_collateral_value,
)


class TestNettingSetInvariants:
    """Test NettingSet invariant enforcement."""

    def test_defaults(self) -> None:
        """Default netting set is unmargined with a 10 day MPOR."""
        ns = NettingSet("NS-1")

        assert ns.margin_type == MarginType.UNMARGINED
        assert ns.margin_period_of_risk == 10
        assert not ns.is_margined

    def test_zero_mpor_raises(self) -> None:
        """MPOR must be strictly positive."""
        with pytest.raises(InvalidInputError, match="margin period of risk"):
            NettingSet("NS-1", margin_period_of_risk=0)

    def test_negative_threshold_raises(self) -> None:
        """Negative threshold should raise InvalidInputError."""
        with pytest.raises(InvalidInputError) as exc_info:
            NettingSet("NS-1", threshold=-1.0)

        assert exc_info.value.field == "threshold"

    def test_negative_mta_raises(self) -> None:
        """Negative MTA should raise InvalidInputError."""
        with pytest.raises(InvalidInputError):
            NettingSet("NS-1", minimum_transfer_amount=-100.0)

    def test_unmargined_ignores_threshold_and_mta(self) -> None:
        """Threshold and MTA only apply to margined sets."""
        ns = NettingSet("NS-1", threshold=1_000_000.0, minimum_transfer_amount=50_000.0)

        assert ns.effective_threshold == 0.0
        assert ns.effective_minimum_transfer_amount == 0.0


class TestApplyMarginTerms:
    """Test threshold, collateral and MTA application."""

    @pytest.fixture
    def margined(self) -> NettingSet:
        """Margined set with threshold 100k and MTA 25k."""
        return NettingSet(
            "NS-M",
            margin_type=MarginType.MARGINED,
            threshold=100_000.0,
            minimum_transfer_amount=25_000.0,
        )

    def test_threshold_subtracted(self, margined: NettingSet) -> None:
        """Amount above threshold is called."""
        assert margined.apply_margin_terms(500_000.0) == pytest.approx(400_000.0)

    def test_below_threshold_is_zero(self, margined: NettingSet) -> None:
        """Amount below threshold is not called."""
        assert margined.apply_margin_terms(80_000.0) == 0.0

    def test_below_mta_is_zero(self, margined: NettingSet) -> None:
        """Call smaller than the MTA is waived."""
        assert margined.apply_margin_terms(120_000.0) == 0.0

    def test_collateral_reduces_call(self, margined: NettingSet) -> None:
        """Collateral held reduces the amount after threshold."""
        assert margined.apply_margin_terms(500_000.0, 150_000.0) == pytest.approx(250_000.0)

    def test_collateral_never_makes_call_negative(self, margined: NettingSet) -> None:
        """Excess collateral floors the call at zero."""
        assert margined.apply_margin_terms(500_000.0, 10_000_000.0) == 0.0

    def test_unmargined_passes_amount_through(self) -> None:
        """Unmargined sets only subtract collateral."""
        ns = NettingSet("NS-U", threshold=100_000.0, minimum_transfer_amount=25_000.0)

        assert ns.apply_margin_terms(10_000.0) == 10_000.0


class TestNettingSetSerialization:
    """Test NettingSet from_dict/to_dict."""

    def test_from_dict(self) -> None:
        """Fields are read with defaults."""
        ns = NettingSet.from_dict(
            {
                "netting_set_id": "NS-7",
                "margin_type": "margined",
                "threshold": 250_000,
                "margin_period_of_risk": 20,
            }
        )

        assert ns.is_margined
        assert ns.threshold == 250_000.0
        assert ns.minimum_transfer_amount == 0.0
        assert ns.margin_period_of_risk == 20

    def test_from_dict_accepts_agreement_id(self) -> None:
        """netting_agreement_id is accepted as the identifier."""
        ns = NettingSet.from_dict({"netting_agreement_id": "ISDA-42"})

        assert ns.netting_set_id == "ISDA-42"

    def test_from_dict_missing_id_raises(self) -> None:
        """Missing identifier should raise InvalidInputError."""
        with pytest.raises(InvalidInputError) as exc_info:
            NettingSet.from_dict({"margin_type": "UNMARGINED"})

        assert exc_info.value.field == "netting_set_id"

    def test_round_trip(self) -> None:
        """to_dict output should rebuild an equal netting set."""
        ns = NettingSet(
            "NS-1",
            margin_type=MarginType.MARGINED,
            threshold=1.0,
            minimum_transfer_amount=2.0,
            independent_collateral_amount=3.0,
            variation_margin=-4.0,
            margin_period_of_risk=15,
        )

        assert NettingSet.from_dict(ns.to_dict()) == ns


class TestCollateral:
    """Test Collateral haircuts."""

    def test_net_value_applies_haircut(self) -> None:
        """Net value is amount x (1 - haircut)."""
        collateral = Collateral(1_000_000.0, "USD", haircut=0.02)

        assert collateral.net_value == pytest.approx(980_000.0)

    def test_stressed_value_defaults_to_haircut(self) -> None:
        """Without a stressed haircut the normal haircut is used."""
        collateral = Collateral(1_000_000.0, "USD", haircut=0.1)

        assert collateral.stressed_value == pytest.approx(collateral.net_value)

    def test_stressed_haircut_used(self) -> None:
        """Stressed haircut drives the stressed value."""
        collateral = Collateral(1_000_000.0, "USD", haircut=0.1, stressed_haircut=0.3)

        assert collateral.stressed_value == pytest.approx(700_000.0)

    def test_haircut_above_one_raises(self) -> None:
        """Haircuts are fractions, not percentages."""
        with pytest.raises(InvalidInputError, match="fraction"):
            Collateral(1_000_000.0, "USD", haircut=15.0)

    def test_total_collateral_value(self) -> None:
        """Total sums haircut-adjusted values."""
        items = [
            Collateral(100.0, "USD", haircut=0.5, stressed_haircut=1.0),
            Collateral(200.0, "EUR", haircut=0.0),
        ]

        assert total_collateral_value(items) == pytest.approx(250.0)
        assert total_collateral_value(items, stressed=True) == pytest.approx(200.0)
        assert total_collateral_value([]) == 0.0
