"""Integration Test - Counterparty Exposure Flow.

Tests the trade-based workflow:
1. Load a netting set document from disk
2. Run SA-CCR, PFE, Grid/Schedule and ISDA SIMM on the same trades
3. Save each result and read it back
"""

import pytest
import json
from datetime import date
from pathlib import Path

import yaml

from src.adapters.filesystem_adapter import FileSystemAdapter
from src.core.domain.trade import AssetClass
from src.core.services.exposure_calculation_service import (
    CalculationType,
    create_exposure_calculation_service,
)


@pytest.fixture
def netting_set_document() -> dict:
    """Mixed-asset margined netting set with SIMM sensitivities."""
    return {
        "valuation_date": "2024-01-01",
        "netting_set": {
            "netting_set_id": "NS-ACME",
            "margin_type": "MARGINED",
            "threshold": 250_000.0,
            "minimum_transfer_amount": 50_000.0,
            "independent_collateral_amount": 100_000.0,
            "margin_period_of_risk": 10,
        },
        "trades": [
            {
                "trade_id": "IRS-USD-5Y",
                "asset_class": "INTEREST_RATE",
                "notional": 25_000_000,
                "currency": "USD",
                "maturity_date": "2029-01-01",
                "current_market_value": 420_000.0,
                "risk_factors": [
                    {"risk_type": "interest_rate", "bucket": 2, "label": "USD-5Y",
                     "sensitivity": 11_000.0},
                ],
            },
            {
                "trade_id": "IRS-EUR-10Y",
                "asset_class": "INTEREST_RATE",
                "position_type": "SHORT",
                "notional": 15_000_000,
                "currency": "EUR",
                "maturity_date": "2034-01-01",
                "current_market_value": -180_000.0,
                "risk_factors": [
                    {"risk_type": "interest_rate", "bucket": 3, "label": "EUR-10Y",
                     "sensitivity": -9_500.0},
                ],
            },
            {
                "trade_id": "FX-EURUSD-1Y",
                "asset_class": "FOREIGN_EXCHANGE",
                "notional": 10_000_000,
                "currency": "USD",
                "maturity_date": "2025-01-01",
                "current_market_value": 65_000.0,
                "currency_pair": "EUR/USD",
                "risk_factors": [
                    {"risk_type": "fx", "bucket": 1, "label": "EUR/USD",
                     "sensitivity": 100_000.0},
                ],
            },
            {
                "trade_id": "EQ-OPT-ACME",
                "asset_class": "EQUITY",
                "transaction_type": "OPTION",
                "option_type": "CALL",
                "notional": 2_000_000,
                "currency": "USD",
                "maturity_date": "2024-12-20",
                "current_market_value": 140_000.0,
                "issuer": "ACME",
                "volatility": 0.30,
                "risk_factors": [
                    {"risk_type": "equity", "bucket": 1, "label": "ACME",
                     "sensitivity": 40_000.0},
                ],
            },
        ],
        "collateral": [
            {"amount": 300_000.0, "currency": "USD", "haircut": 0.0},
            {"amount": 200_000.0, "currency": "EUR", "haircut": 0.08,
             "stressed_haircut": 0.15},
        ],
    }


@pytest.fixture
def input_path(tmp_path: Path, netting_set_document: dict) -> Path:
    """Netting set document written as YAML."""
    path = tmp_path / "netting_set.yaml"
    with open(path, "w") as f:
        yaml.safe_dump(netting_set_document, f, sort_keys=False)
    return path


class TestCounterpartyExposureFlow:
    """Integration tests for the trade-based engines."""

    @pytest.fixture
    def fs(self, tmp_path: Path) -> FileSystemAdapter:
        """Filesystem adapter rooted at the test directory."""
        return FileSystemAdapter(tmp_path)

    def test_saccr_flow(self, fs: FileSystemAdapter, input_path: Path) -> None:
        """SA-CCR run from a document satisfies the EAD identity."""
        service = create_exposure_calculation_service()
        request = fs.load_calculation_input(input_path, CalculationType.SACCR)

        response = service.calculate(request)
        result = response.result

        assert result.ead == pytest.approx(
            result.alpha * (result.replacement_cost.value + result.pfe)
        )
        assert result.valuation_date == date(2024, 1, 1)
        assert set(result.per_asset_class_add_on) == {
            AssetClass.INTEREST_RATE,
            AssetClass.FOREIGN_EXCHANGE,
            AssetClass.EQUITY,
        }
        assert result.input_summary.trade_count == 4
        # The equity option delta is simplified
        assert any("EQ-OPT-ACME" in w for w in response.warnings)

    def test_pfe_flow(self, fs: FileSystemAdapter, input_path: Path) -> None:
        """PFE run gives consistent headline figures."""
        service = create_exposure_calculation_service()
        request = fs.load_calculation_input(input_path, CalculationType.PFE)

        result = service.calculate(request).result

        assert result.pfe >= 0.0
        assert result.stressed_pfe >= result.pfe
        assert result.expected_exposure <= result.pfe
        assert sum(result.asset_class_breakdown.values()) == pytest.approx(result.pfe)
        assert len(result.exposure_profile) == 11

    def test_initial_margin_flows(self, fs: FileSystemAdapter, input_path: Path) -> None:
        """Schedule and SIMM margins respect their bounds."""
        service = create_exposure_calculation_service()

        grid = service.calculate(
            fs.load_calculation_input(input_path, CalculationType.GRID_SCHEDULE)
        ).result
        simm = service.calculate(
            fs.load_calculation_input(input_path, CalculationType.ISDA_SIMM)
        ).result

        assert 0.0 <= grid.net_initial_margin <= grid.initial_margin
        assert 0.4 <= grid.net_gross_ratio <= 1.0
        assert 0.0 <= simm.net_initial_margin <= simm.initial_margin
        assert simm.diversification_benefit >= 0.0
        # Schedule margin is the conservative fallback
        assert grid.initial_margin > simm.initial_margin

    def test_results_saved_and_reloaded(
        self, fs: FileSystemAdapter, input_path: Path, tmp_path: Path
    ) -> None:
        """Every engine's response serializes to JSON."""
        service = create_exposure_calculation_service()
        written = []

        for calculation_type in (
            CalculationType.SACCR,
            CalculationType.PFE,
            CalculationType.GRID_SCHEDULE,
            CalculationType.ISDA_SIMM,
        ):
            response = service.calculate(fs.load_calculation_input(input_path, calculation_type))
            written.append(fs.save_result(tmp_path / calculation_type.value, response))

        for path in written:
            with open(path) as f:
                saved = json.load(f)
            assert saved["calculation_type"] == path.parent.name
            assert isinstance(saved["result"], dict)

    def test_repeat_runs_identical(self, fs: FileSystemAdapter, input_path: Path) -> None:
        """Engines are deterministic across repeated loads."""
        service = create_exposure_calculation_service()

        for calculation_type in (CalculationType.SACCR, CalculationType.PFE):
            first = service.calculate(fs.load_calculation_input(input_path, calculation_type))
            second = service.calculate(fs.load_calculation_input(input_path, calculation_type))
            assert first.to_dict() == second.to_dict()
