"""Unit tests for the regulatory parameter tables."""

import pytest
from pathlib import Path

import yaml

from src.config.regulatory_tables import (
    load_grid_schedule,
    load_pfe_parameters,
    load_saccr_parameters,
    load_simm_parameters,
    load_var_parameters,
    read_packaged_table,
)
from src.core.domain.calculation_parameters import PFEConfidenceLevel, VaRTimeHorizon
from src.core.domain.errors import ConfigurationError
from src.core.domain.sensitivity import RiskFactorType
from src.core.domain.trade import AssetClass, CommodityType, CreditQuality, MaturityBucket


class TestPackagedTables:
    """Test the tables shipped with the package."""

    def test_saccr_constants(self) -> None:
        """CRE52 alpha, floor and supervisory factors."""
        params = load_saccr_parameters()

        assert params.alpha == 1.4
        assert params.multiplier_floor == 0.05
        assert params.rate_factor == 0.005
        assert params.fx_factor == 0.04
        assert params.credit_factors[(False, CreditQuality.INVESTMENT_GRADE)] == 0.05
        assert params.commodity_factors[CommodityType.ELECTRICITY] == 0.40
        assert params.minimum_maturity_years == pytest.approx(10 / 250)

    def test_pfe_tables_cover_every_level(self) -> None:
        """Every confidence level has a z-score."""
        params = load_pfe_parameters()

        assert set(params.confidence_z) == set(PFEConfidenceLevel)
        assert params.confidence_z[PFEConfidenceLevel.NINETY_NINE_PERCENT] == 2.326

    def test_var_tables(self) -> None:
        """Holding periods and stress scenarios load."""
        tables = load_var_parameters()

        assert tables.horizon_days[VaRTimeHorizon.TEN_DAYS] == 10
        assert [s.name for s in tables.stress_scenarios] == [
            "2008 Financial Crisis",
            "COVID-19 Crash",
        ]

    def test_grid_schedule_percentages(self) -> None:
        """Schedule rows are keyed by asset class and bucket."""
        table = load_grid_schedule()

        long_rate = table.percentage(
            AssetClass.INTEREST_RATE, MaturityBucket.GREATER_THAN_FIVE_YEARS
        )

        assert long_rate == 0.15
        assert table.netting_floor == 0.4
        assert table.netting_recognition == 0.6

    def test_simm_psi_is_symmetric(self) -> None:
        """Upper-triangular psi expands to a symmetric matrix with unit diagonal."""
        params = load_simm_parameters()
        psi = params.risk_class_correlations

        for a in RiskFactorType:
            assert psi[a][a] == 1.0
            for b in RiskFactorType:
                assert psi[a][b] == psi[b][a]
        assert psi[RiskFactorType.FX][RiskFactorType.INTEREST_RATE] == 0.40

    def test_simm_default_risk_weight(self) -> None:
        """Buckets missing from the table use the default weight."""
        params = load_simm_parameters()

        assert params.risk_weight(RiskFactorType.INTEREST_RATE, 1) == 0.016
        assert params.risk_weight(RiskFactorType.INTEREST_RATE, 99) == 0.01

    def test_packaged_tables_are_cached(self) -> None:
        """Packaged tables are parsed once."""
        assert load_saccr_parameters() is load_saccr_parameters()
        assert read_packaged_table("saccr.yaml") is read_packaged_table("saccr.yaml")


class TestAlternativeTables:
    """Test loading tables from a path."""

    def test_alternative_saccr_version(self, tmp_path: Path) -> None:
        """A modified table changes the parameters without code changes."""
        data = dict(read_packaged_table("saccr.yaml"))
        data["alpha"] = 1.0
        data["version"] = "test"
        path = tmp_path / "saccr.yaml"
        path.write_text(yaml.safe_dump(data))

        params = load_saccr_parameters(path)

        assert params.alpha == 1.0
        assert params.version == "test"

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        """Missing table file should raise ConfigurationError."""
        with pytest.raises(ConfigurationError, match="not found"):
            load_saccr_parameters(tmp_path / "missing.yaml")

    def test_invalid_yaml_raises(self, tmp_path: Path) -> None:
        """Unparseable YAML should raise ConfigurationError."""
        path = tmp_path / "bad.yaml"
        path.write_text("alpha: [1.4\n")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_saccr_parameters(path)

    def test_missing_key_raises(self, tmp_path: Path) -> None:
        """Missing entries surface as ConfigurationError."""
        path = tmp_path / "grid.yaml"
        path.write_text("version: x\nnetting_floor: 0.4\n")

        with pytest.raises(ConfigurationError, match="malformed table"):
            load_grid_schedule(path)

    def test_correlation_out_of_range_raises(self, tmp_path: Path) -> None:
        """Correlations must be fractions."""
        data = dict(read_packaged_table("simm_v2_6.yaml"))
        data["intra_bucket_correlations"] = dict(data["intra_bucket_correlations"], fx=1.5)
        path = tmp_path / "simm.yaml"
        path.write_text(yaml.safe_dump(data))

        with pytest.raises(ConfigurationError):
            load_simm_parameters(path)
