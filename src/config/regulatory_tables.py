"""Regulatory parameter tables loaded from versioned YAML files.

The packaged tables live in ``src/config/tables``. Each ``load_*`` function
returns a frozen parameter object keyed by domain enums; the packaged
version is parsed once per process and cached. Passing ``path`` loads an
alternative regulatory version without touching engine code.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Callable, Mapping, TypeVar

import yaml

from src.core.domain.calculation_parameters import (
    PFECalculationMethod,
    PFEConfidenceLevel,
    PFETimeHorizon,
    VaRTimeHorizon,
)
from src.core.domain.errors import ConfigurationError, InvalidInputError
from src.core.domain.sensitivity import RiskFactorType
from src.core.domain.stress_scenario import StressScenario
from src.core.domain.trade import (
    AssetClass,
    CommodityType,
    CreditQuality,
    MaturityBucket,
    TransactionType,
)

logger = logging.getLogger(__name__)

SACCR_TABLE = "saccr.yaml"
PFE_TABLE = "pfe.yaml"
VAR_TABLE = "var.yaml"
GRID_SCHEDULE_TABLE = "grid_schedule.yaml"
SIMM_TABLE = "simm_v2_6.yaml"

T = TypeVar("T")


def read_table(path: str | Path) -> dict[str, Any]:
    """Read a regulatory table from a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        Parsed table

    Raises:
        ConfigurationError: If the file is missing, invalid YAML or not a mapping
    """
    file_path = Path(path)
    if not file_path.exists():
        raise ConfigurationError(str(path), "table file not found")
    return _parse(file_path.read_text(encoding="utf-8"), str(path))


@lru_cache(maxsize=None)
def read_packaged_table(name: str) -> dict[str, Any]:
    """Read one of the tables shipped with the package (cached)."""
    resource = resources.files("src.config").joinpath("tables", name)
    if not resource.is_file():
        raise ConfigurationError(name, "packaged table not found")
    logger.debug("Loading packaged regulatory table %s", name)
    return _parse(resource.read_text(encoding="utf-8"), name)


def _parse(text: str, source: str) -> dict[str, Any]:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigurationError(source, f"Invalid YAML: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(source, "Root element must be a dictionary")
    return data


def _build(
    builder: Callable[[Mapping[str, Any]], T],
    data: Mapping[str, Any],
    source: str,
) -> T:
    """Run a table builder, turning lookup errors into ConfigurationError."""
    try:
        return builder(data)
    except ConfigurationError:
        raise
    except (KeyError, TypeError, ValueError, InvalidInputError) as e:
        raise ConfigurationError(source, f"malformed table: {e!r}") from e


def _fraction(value: Any, name: str) -> float:
    result = float(value)
    if not 0.0 <= result <= 1.0:
        raise ValueError(f"{name} must be in [0, 1], got {result}")
    return result


def _by_enum(enum_cls: type, mapping: Mapping[str, Any], name: str) -> dict[Any, float]:
    """Key a mapping by enum value; every enum member must be present."""
    result = {enum_cls(key): float(value) for key, value in mapping.items()}
    missing = [m.value for m in enum_cls if m not in result]
    if missing:
        raise ValueError(f"{name} is missing entries for {missing}")
    return result


# ---------------------------------------------------------------------------
# SA-CCR
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SACCRParameters:
    """CRE52 supervisory parameters.

    Attributes:
        version: Regulatory version label
        alpha: EAD alpha
        multiplier_floor: PFE multiplier floor
        supervisory_duration_rate: Discount rate in the supervisory duration
        business_days_per_year: Day count for maturity factors
        minimum_maturity_business_days: Floor on residual maturity
        margined_maturity_scalar: Scalar on the margined maturity factor
        rate_factor: Interest rate supervisory factor
        fx_factor: FX supervisory factor
        credit_factors: (is_index, quality) to factor
        equity_factors: is_index to factor
        commodity_factors: Commodity type to factor
        credit_correlations: is_index to rho
        equity_correlations: is_index to rho
        commodity_correlation: rho between sub-types in a hedging set
        rate_adjacent_term: Cross-term coefficient for adjacent rate buckets
        rate_distant_term: Cross-term coefficient for buckets 1 and 3
    """

    version: str
    alpha: float
    multiplier_floor: float
    supervisory_duration_rate: float
    business_days_per_year: int
    minimum_maturity_business_days: int
    margined_maturity_scalar: float
    rate_factor: float
    fx_factor: float
    credit_factors: dict[tuple[bool, CreditQuality], float]
    equity_factors: dict[bool, float]
    commodity_factors: dict[CommodityType, float]
    credit_correlations: dict[bool, float]
    equity_correlations: dict[bool, float]
    commodity_correlation: float
    rate_adjacent_term: float
    rate_distant_term: float

    @property
    def minimum_maturity_years(self) -> float:
        """Residual maturity floor in years."""
        return self.minimum_maturity_business_days / self.business_days_per_year

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "SACCRParameters":
        """Build from a parsed ``saccr.yaml`` mapping."""
        factors = data["supervisory_factors"]
        correlations = data["correlations"]
        credit = factors["CREDIT"]

        credit_factors: dict[tuple[bool, CreditQuality], float] = {}
        for kind, is_index in (("single_name", False), ("index", True)):
            for quality in CreditQuality:
                credit_factors[(is_index, quality)] = float(credit[kind][quality.value])

        floor = _fraction(data["multiplier_floor"], "multiplier_floor")
        if floor >= 1.0:
            raise ValueError("multiplier_floor must be < 1")

        return cls(
            version=str(data.get("version", "")),
            alpha=float(data["alpha"]),
            multiplier_floor=floor,
            supervisory_duration_rate=float(data["supervisory_duration_rate"]),
            business_days_per_year=int(data["business_days_per_year"]),
            minimum_maturity_business_days=int(data["minimum_maturity_business_days"]),
            margined_maturity_scalar=float(data["margined_maturity_scalar"]),
            rate_factor=float(factors["INTEREST_RATE"]),
            fx_factor=float(factors["FOREIGN_EXCHANGE"]),
            credit_factors=credit_factors,
            equity_factors={
                False: float(factors["EQUITY"]["single_name"]),
                True: float(factors["EQUITY"]["index"]),
            },
            commodity_factors=_by_enum(CommodityType, factors["COMMODITY"], "COMMODITY"),
            credit_correlations={
                False: _fraction(correlations["CREDIT"]["single_name"], "CREDIT.single_name"),
                True: _fraction(correlations["CREDIT"]["index"], "CREDIT.index"),
            },
            equity_correlations={
                False: _fraction(correlations["EQUITY"]["single_name"], "EQUITY.single_name"),
                True: _fraction(correlations["EQUITY"]["index"], "EQUITY.index"),
            },
            commodity_correlation=_fraction(correlations["COMMODITY"], "COMMODITY"),
            rate_adjacent_term=float(data["interest_rate_bucket_terms"]["adjacent"]),
            rate_distant_term=float(data["interest_rate_bucket_terms"]["distant"]),
        )


def load_saccr_parameters(path: str | Path | None = None) -> SACCRParameters:
    """Load SA-CCR parameters (packaged CRE52 table by default)."""
    if path is None:
        return _packaged_saccr()
    return _build(SACCRParameters.from_mapping, read_table(path), str(path))


@lru_cache(maxsize=1)
def _packaged_saccr() -> SACCRParameters:
    return _build(SACCRParameters.from_mapping, read_packaged_table(SACCR_TABLE), SACCR_TABLE)


# ---------------------------------------------------------------------------
# PFE
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PFEParameterTables:
    """Add-on, volatility and simulation tables for the PFE engine."""

    version: str
    multiplier_floor: float
    days_per_year: float
    netting_recognition: float
    margined_reference_days: int
    horizon_days: dict[PFETimeHorizon, int]
    confidence_z: dict[PFEConfidenceLevel, float]
    supervisory_factors: dict[AssetClass, float]
    transaction_adjustments: dict[TransactionType, float]
    maturity_factor_floor: float
    maturity_full_term_years: float
    expected_exposure_factors: dict[AssetClass, float]
    method_expected_exposure_factors: dict[PFECalculationMethod, float]
    stress_factors: dict[PFECalculationMethod, float]
    model_volatilities: dict[AssetClass, float]
    historical_volatilities: dict[AssetClass, float]
    historical_volatility_scaling: float
    monte_carlo_drifts: dict[AssetClass, float]
    monte_carlo_time_steps: dict[PFETimeHorizon, int]
    exposure_profile_points: int

    def horizon_factor(self, horizon: PFETimeHorizon) -> float:
        """Return sqrt(horizon days / days per year)."""
        return (self.horizon_days[horizon] / self.days_per_year) ** 0.5

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PFEParameterTables":
        """Build from a parsed ``pfe.yaml`` mapping."""
        mc = data["monte_carlo"]
        points = int(data["exposure_profile_points"])
        if points < 2:
            raise ValueError("exposure_profile_points must be >= 2")

        return cls(
            version=str(data.get("version", "")),
            multiplier_floor=_fraction(data["multiplier_floor"], "multiplier_floor"),
            days_per_year=float(data["days_per_year"]),
            netting_recognition=_fraction(data["netting_recognition"], "netting_recognition"),
            margined_reference_days=int(data["margined_reference_days"]),
            horizon_days={PFETimeHorizon(k): int(v) for k, v in data["horizon_days"].items()},
            confidence_z=_by_enum(PFEConfidenceLevel, data["confidence_z"], "confidence_z"),
            supervisory_factors=_by_enum(
                AssetClass, data["supervisory_factors"], "supervisory_factors"
            ),
            transaction_adjustments=_by_enum(
                TransactionType, data["transaction_adjustments"], "transaction_adjustments"
            ),
            maturity_factor_floor=float(data["maturity_factor"]["floor"]),
            maturity_full_term_years=float(data["maturity_factor"]["full_term_years"]),
            expected_exposure_factors=_by_enum(
                AssetClass, data["expected_exposure_factors"], "expected_exposure_factors"
            ),
            method_expected_exposure_factors={
                PFECalculationMethod(k): float(v)
                for k, v in data["method_expected_exposure_factors"].items()
            },
            stress_factors=_by_enum(PFECalculationMethod, data["stress_factors"], "stress_factors"),
            model_volatilities=_by_enum(
                AssetClass, data["model_volatilities"], "model_volatilities"
            ),
            historical_volatilities=_by_enum(
                AssetClass, data["historical_volatilities"], "historical_volatilities"
            ),
            historical_volatility_scaling=float(data["historical_volatility_scaling"]),
            monte_carlo_drifts=_by_enum(AssetClass, mc["drifts"], "monte_carlo.drifts"),
            monte_carlo_time_steps={
                PFETimeHorizon(k): int(v) for k, v in mc["time_steps"].items()
            },
            exposure_profile_points=points,
        )


def load_pfe_parameters(path: str | Path | None = None) -> PFEParameterTables:
    """Load PFE tables (packaged by default)."""
    if path is None:
        return _packaged_pfe()
    return _build(PFEParameterTables.from_mapping, read_table(path), str(path))


@lru_cache(maxsize=1)
def _packaged_pfe() -> PFEParameterTables:
    return _build(PFEParameterTables.from_mapping, read_packaged_table(PFE_TABLE), PFE_TABLE)


# ---------------------------------------------------------------------------
# VaR
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VaRParameterTables:
    """Holding periods and stress scenarios for the VaR engine."""

    version: str
    horizon_days: dict[VaRTimeHorizon, int]
    worst_day_count: int
    stress_scenarios: tuple[StressScenario, ...]

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "VaRParameterTables":
        """Build from a parsed ``var.yaml`` mapping."""
        horizons = {VaRTimeHorizon(k): int(v) for k, v in data["horizon_days"].items()}
        missing = [h.value for h in VaRTimeHorizon if h not in horizons]
        if missing:
            raise ValueError(f"horizon_days is missing entries for {missing}")

        return cls(
            version=str(data.get("version", "")),
            horizon_days=horizons,
            worst_day_count=int(data.get("worst_day_count", 5)),
            stress_scenarios=tuple(
                StressScenario.from_dict(item) for item in data.get("stress_scenarios") or []
            ),
        )


def load_var_parameters(path: str | Path | None = None) -> VaRParameterTables:
    """Load VaR tables (packaged by default)."""
    if path is None:
        return _packaged_var()
    return _build(VaRParameterTables.from_mapping, read_table(path), str(path))


@lru_cache(maxsize=1)
def _packaged_var() -> VaRParameterTables:
    return _build(VaRParameterTables.from_mapping, read_packaged_table(VAR_TABLE), VAR_TABLE)


# ---------------------------------------------------------------------------
# Grid / Schedule
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GridScheduleTable:
    """Schedule percentages by asset class and maturity bucket."""

    version: str
    netting_floor: float
    netting_recognition: float
    percentages: dict[AssetClass, dict[MaturityBucket, float]]

    def percentage(self, asset_class: AssetClass, bucket: MaturityBucket) -> float:
        """Return the schedule percentage as a fraction."""
        return self.percentages[asset_class][bucket]

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "GridScheduleTable":
        """Build from a parsed ``grid_schedule.yaml`` mapping."""
        percentages: dict[AssetClass, dict[MaturityBucket, float]] = {}
        for asset_class in AssetClass:
            row = data["percentages"][asset_class.value]
            percentages[asset_class] = {
                bucket: _fraction(row[bucket.value], f"{asset_class.value}.{bucket.value}")
                for bucket in MaturityBucket
            }

        floor = _fraction(data["netting_floor"], "netting_floor")
        recognition = _fraction(data["netting_recognition"], "netting_recognition")
        if floor + recognition > 1.0 + 1e-12:
            raise ValueError("netting_floor + netting_recognition must not exceed 1")

        return cls(
            version=str(data.get("version", "")),
            netting_floor=floor,
            netting_recognition=recognition,
            percentages=percentages,
        )


def load_grid_schedule(path: str | Path | None = None) -> GridScheduleTable:
    """Load the margin schedule (packaged by default)."""
    if path is None:
        return _packaged_grid()
    return _build(GridScheduleTable.from_mapping, read_table(path), str(path))


@lru_cache(maxsize=1)
def _packaged_grid() -> GridScheduleTable:
    return _build(
        GridScheduleTable.from_mapping,
        read_packaged_table(GRID_SCHEDULE_TABLE),
        GRID_SCHEDULE_TABLE,
    )


# ---------------------------------------------------------------------------
# ISDA SIMM
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SIMMParameters:
    """SIMM risk weights and correlations.

    Attributes:
        version: SIMM version label
        default_risk_weight: Weight for buckets absent from the table
        risk_weights: Risk class to bucket to weight
        intra_bucket_correlations: rho per risk class
        inter_bucket_correlations: gamma per risk class
        risk_class_correlations: Symmetric psi matrix with unit diagonal
    """

    version: str
    default_risk_weight: float
    risk_weights: dict[RiskFactorType, dict[int, float]]
    intra_bucket_correlations: dict[RiskFactorType, float]
    inter_bucket_correlations: dict[RiskFactorType, float]
    risk_class_correlations: dict[RiskFactorType, dict[RiskFactorType, float]]

    def supports(self, risk_type: RiskFactorType) -> bool:
        """Return True if the risk class has weights and correlations."""
        return (
            risk_type in self.risk_weights
            and risk_type in self.intra_bucket_correlations
            and risk_type in self.inter_bucket_correlations
        )

    def risk_weight(self, risk_type: RiskFactorType, bucket: int) -> float:
        """Return the bucket risk weight, or the default weight."""
        return self.risk_weights[risk_type].get(bucket, self.default_risk_weight)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "SIMMParameters":
        """Build from a parsed SIMM mapping."""
        risk_weights = {
            RiskFactorType(risk_type): {int(b): float(w) for b, w in buckets.items()}
            for risk_type, buckets in data["risk_weights"].items()
        }
        intra = {
            RiskFactorType(k): _fraction(v, f"intra_bucket_correlations.{k}")
            for k, v in data["intra_bucket_correlations"].items()
        }
        inter = {
            RiskFactorType(k): _fraction(v, f"inter_bucket_correlations.{k}")
            for k, v in data["inter_bucket_correlations"].items()
        }

        # Expand the upper-triangular psi table into a full symmetric matrix
        psi: dict[RiskFactorType, dict[RiskFactorType, float]] = {
            a: {b: (1.0 if a == b else 0.0) for b in RiskFactorType} for a in RiskFactorType
        }
        for row_key, row in (data.get("risk_class_correlations") or {}).items():
            for col_key, value in row.items():
                a, b = RiskFactorType(row_key), RiskFactorType(col_key)
                rho = _fraction(value, f"risk_class_correlations.{row_key}.{col_key}")
                psi[a][b] = rho
                psi[b][a] = rho

        return cls(
            version=str(data.get("version", "")),
            default_risk_weight=float(data.get("default_risk_weight", 0.0)),
            risk_weights=risk_weights,
            intra_bucket_correlations=intra,
            inter_bucket_correlations=inter,
            risk_class_correlations=psi,
        )


def load_simm_parameters(path: str | Path | None = None) -> SIMMParameters:
    """Load SIMM parameters (packaged v2.6 by default)."""
    if path is None:
        return _packaged_simm()
    return _build(SIMMParameters.from_mapping, read_table(path), str(path))


@lru_cache(maxsize=1)
def _packaged_simm() -> SIMMParameters:
    return _build(SIMMParameters.from_mapping, read_packaged_table(SIMM_TABLE), SIMM_TABLE)
