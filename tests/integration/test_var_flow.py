"""Integration Test - Market Risk Flow.

Tests the VaR workflow:
1. Write per-asset CSV price files
2. Load a position document
3. Complete price history through the CSV market data adapter
4. Calculate VaR by each method and compare
"""

import pytest
from dataclasses import replace
from datetime import date
from pathlib import Path

import numpy as np
import pandas as pd
import yaml

from src.adapters.csv_market_data_adapter import CsvMarketDataAdapter
from src.adapters.filesystem_adapter import FileSystemAdapter
from src.core.domain.calculation_parameters import (
    VaRCalculationMethod,
    VaRConfidenceLevel,
    VaRParameters,
)
from src.core.services.exposure_calculation_service import (
    CalculationType,
    create_exposure_calculation_service,
)


class TestMarketRiskFlow:
    """Integration tests for VaR from files."""

    @pytest.fixture
    def market_dir(self, tmp_path: Path) -> Path:
        """Two years of daily prices for four assets."""
        directory = tmp_path / "market"
        directory.mkdir()
        dates = pd.date_range("2022-01-03", periods=504, freq="B")
        np.random.seed(42)

        for identifier, vol in [
            ("AAPL", 0.018),
            ("MSFT", 0.016),
            ("EUR/USD", 0.005),
            ("BTC-USD", 0.04),
        ]:
            returns = np.random.randn(504) * vol
            prices = 100 * np.cumprod(1 + returns)
            frame = pd.DataFrame({"date": dates, "price": prices})
            frame.to_csv(directory / f"{identifier.replace('/', '_')}.csv", index=False)

        return directory

    @pytest.fixture
    def portfolio_path(self, tmp_path: Path) -> Path:
        """Position document with default parameters."""
        document = {
            "positions": [
                {"position_id": "P1", "asset_type": "EQUITY", "asset_identifier": "AAPL",
                 "quantity": 2_000, "current_price": 185.0},
                {"position_id": "P2", "asset_type": "EQUITY", "asset_identifier": "MSFT",
                 "quantity": 800, "current_price": 370.0},
                {"position_id": "P3", "asset_type": "FOREIGN_EXCHANGE",
                 "asset_identifier": "EUR/USD", "quantity": -500_000,
                 "current_price": 1.09},
                {"position_id": "P4", "asset_type": "CRYPTO",
                 "asset_identifier": "BTC-USD", "quantity": 2, "current_price": 42_000.0},
            ],
            "parameters": {"lookback_period": 250},
        }
        path = tmp_path / "portfolio.yaml"
        with open(path, "w") as f:
            yaml.safe_dump(document, f, sort_keys=False)
        return path

    def test_var_from_csv_files(self, market_dir: Path, portfolio_path: Path) -> None:
        """Positions without history are filled from CSV."""
        service = create_exposure_calculation_service(CsvMarketDataAdapter(market_dir))
        request = FileSystemAdapter().load_calculation_input(portfolio_path, CalculationType.VAR)

        response = service.calculate(request)
        result = response.result

        assert result.observations == 250
        assert len(response.warnings) == 4
        assert all(w.startswith("loaded 251 prices") for w in response.warnings)
        assert result.expected_shortfall >= result.var > 0.0
        assert result.diversification_benefit >= 0.0
        assert len(result.per_position_contribution) == 4

    def test_methods_agree_in_order_of_magnitude(
        self, market_dir: Path, portfolio_path: Path
    ) -> None:
        """Historical, parametric and Monte Carlo VaR are of similar size."""
        service = create_exposure_calculation_service(CsvMarketDataAdapter(market_dir))
        request = FileSystemAdapter().load_calculation_input(portfolio_path, CalculationType.VAR)

        values = {}
        for method in VaRCalculationMethod:
            params = VaRParameters(calculation_method=method, lookback_period=250)
            values[method] = service.calculate(replace(request, var_parameters=params)).result.var

        historical = values[VaRCalculationMethod.HISTORICAL_SIMULATION]
        for method, value in values.items():
            assert 0.5 * historical < value < 2.0 * historical, method

    def test_end_date_restricts_history(self, market_dir: Path, portfolio_path: Path) -> None:
        """The adapter end date shifts the window used."""
        fs = FileSystemAdapter()
        request = fs.load_calculation_input(portfolio_path, CalculationType.VAR)

        latest = create_exposure_calculation_service(CsvMarketDataAdapter(market_dir))
        earlier = create_exposure_calculation_service(
            CsvMarketDataAdapter(market_dir, end_date=date(2023, 6, 30))
        )

        assert latest.calculate(request).result.var != earlier.calculate(request).result.var

    def test_confidence_ordering(self, market_dir: Path, portfolio_path: Path) -> None:
        """Higher confidence never lowers VaR."""
        service = create_exposure_calculation_service(CsvMarketDataAdapter(market_dir))
        request = FileSystemAdapter().load_calculation_input(portfolio_path, CalculationType.VAR)

        results = [
            service.calculate(
                replace(request, var_parameters=VaRParameters(confidence_level=level))
            ).result.var
            for level in (
                VaRConfidenceLevel.NINETY_PERCENT,
                VaRConfidenceLevel.NINETY_FIVE_PERCENT,
                VaRConfidenceLevel.NINETY_SEVEN_POINT_FIVE_PERCENT,
                VaRConfidenceLevel.NINETY_NINE_PERCENT,
            )
        ]

        assert results == sorted(results)

    def test_stress_scenarios_in_saved_result(
        self, market_dir: Path, portfolio_path: Path, tmp_path: Path
    ) -> None:
        """Saved output carries the configured stress scenarios."""
        fs = FileSystemAdapter(tmp_path)
        service = create_exposure_calculation_service(CsvMarketDataAdapter(market_dir))
        response = service.calculate(fs.load_calculation_input(portfolio_path, CalculationType.VAR))

        saved = fs.load_json(fs.save_result("results", response))

        stress = saved["result"]["stress_scenarios"]
        assert {"worst_day", "2008 Financial Crisis", "COVID-19 Crash"} <= set(stress)
        assert stress["2008 Financial Crisis"] < 0.0
