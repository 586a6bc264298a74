"""ExposureCalculationService - Domain service dispatching to the five engines.

This service coordinates:
1. Selecting exactly one engine by calculation type
2. Loading VaR price history the caller did not supply
3. Collecting data warnings alongside the engine result
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import TYPE_CHECKING, Any, Union

from src.core.domain.calculation_parameters import PFESettings, VaRParameters
from src.core.domain.errors import InvalidInputError
from src.core.domain.fields import optional_bool, optional_date
from src.core.domain.market_data import HistoricalMarketData
from src.core.domain.netting_set import Collateral, NettingSet
from src.core.domain.position import Position
from src.core.domain.trade import Trade, trade_from_dict
from src.core.ports.market_data_port import DataNotFoundError
from src.core.services.grid_schedule_engine import calculate_grid_schedule_im
from src.core.services.pfe_engine import calculate_pfe
from src.core.services.saccr_engine import compute_ead
from src.core.services.simm_engine import calculate_isda_simm
from src.core.services.var_engine import calculate_var

if TYPE_CHECKING:
    from src.core.domain.exposure_metrics import PFEResult, SACCRResult
    from src.core.domain.margin_metrics import GridScheduleResult, SIMMResult
    from src.core.domain.risk_metrics import VaRResult
    from src.core.ports.market_data_port import MarketDataPort

logger = logging.getLogger(__name__)

CalculationResult = Union[
    "SACCRResult", "PFEResult", "VaRResult", "GridScheduleResult", "SIMMResult"
]


class CalculationType(Enum):
    """Engine selector."""

    SACCR = "saccr"
    PFE = "pfe"
    VAR = "var"
    GRID_SCHEDULE = "grid"
    ISDA_SIMM = "simm"

    @property
    def uses_netting_set(self) -> bool:
        """True for the trade-based engines."""
        return self is not CalculationType.VAR


@dataclass(frozen=True)
class ExposureCalculationRequest:
    """Request parameters for one engine run.

    Attributes:
        calculation_type: Engine to run
        netting_set: Netting agreement (trade-based engines)
        trades: Trades in the netting set
        collateral: Collateral against the netting set
        positions: VaR positions
        historical_data: Price history supplied by the caller
        var_parameters: VaR parameters (default: 1 day, 99%, historical)
        pfe_settings: PFE settings (default: 1 year, 99%, standardised)
        valuation_date: Date maturities are measured from (default: today)
        include_correlation_matrix: Report the SIMM risk-class correlations
        apply_risk_class_correlation: Aggregate SIMM risk classes with psi
    """

    calculation_type: CalculationType
    netting_set: NettingSet | None = None
    trades: tuple[Trade, ...] = ()
    collateral: tuple[Collateral, ...] = ()
    positions: tuple[Position, ...] = ()
    historical_data: tuple[HistoricalMarketData, ...] = ()
    var_parameters: VaRParameters | None = None
    pfe_settings: PFESettings | None = None
    valuation_date: date | None = None
    include_correlation_matrix: bool = False
    apply_risk_class_correlation: bool = False

    @classmethod
    def from_dict(
        cls, calculation_type: CalculationType, data: dict[str, Any]
    ) -> "ExposureCalculationRequest":
        """Build a request from a parsed input document.

        Args:
            calculation_type: Engine to run
            data: Mapping with ``netting_set``, ``trades``, ``collateral``,
                ``positions``, ``historical_data``, ``parameters`` (VaR),
                ``settings`` (PFE) and ``valuation_date`` keys as needed

        Raises:
            InvalidInputError: If a section is malformed
        """
        netting_set = None
        if data.get("netting_set") is not None:
            netting_set = NettingSet.from_dict(_mapping(data["netting_set"], "netting_set"))

        var_parameters = None
        if calculation_type is CalculationType.VAR and data.get("parameters") is not None:
            var_parameters = VaRParameters.from_dict(_mapping(data["parameters"], "parameters"))

        pfe_settings = None
        if calculation_type is CalculationType.PFE and data.get("settings") is not None:
            pfe_settings = PFESettings.from_dict(_mapping(data["settings"], "settings"))

        return cls(
            calculation_type=calculation_type,
            netting_set=netting_set,
            trades=tuple(trade_from_dict(t) for t in _items(data, "trades")),
            collateral=tuple(Collateral.from_dict(c) for c in _items(data, "collateral")),
            positions=tuple(Position.from_dict(p) for p in _items(data, "positions")),
            historical_data=tuple(
                HistoricalMarketData.from_dict(h) for h in _items(data, "historical_data")
            ),
            var_parameters=var_parameters,
            pfe_settings=pfe_settings,
            valuation_date=optional_date(data, "valuation_date"),
            include_correlation_matrix=optional_bool(data, "include_correlation_matrix"),
            apply_risk_class_correlation=optional_bool(data, "apply_risk_class_correlation"),
        )


@dataclass
class ExposureCalculationResponse:
    """Response from an engine run.

    Attributes:
        calculation_type: Engine that ran
        result: Engine result object
        warnings: Data adjustments and simplifications applied
    """

    calculation_type: CalculationType
    result: CalculationResult
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "calculation_type": self.calculation_type.value,
            "result": self.result.to_dict(),
            "warnings": list(self.warnings),
        }


class ExposureCalculationService:
    """Orchestrates a single exposure or margin calculation.

    Engines are pure functions of their input; the only I/O is the optional
    market data port used to complete VaR price history.
    """

    def __init__(self, market_data_port: "MarketDataPort | None" = None) -> None:
        """Initialize ExposureCalculationService.

        Args:
            market_data_port: Port for price history the request lacks
        """
        self._market_data_port = market_data_port

    def calculate(self, request: ExposureCalculationRequest) -> ExposureCalculationResponse:
        """Run the engine selected by the request.

        Args:
            request: Calculation request

        Returns:
            ExposureCalculationResponse with the engine result and warnings

        Raises:
            InvalidInputError: If the request lacks inputs the engine needs
            InsufficientDataError: If VaR price history is incomplete
        """
        logger.info("Running %s calculation", request.calculation_type.value)
        if request.calculation_type is CalculationType.VAR:
            return self._calculate_var(request)

        if request.netting_set is None:
            raise InvalidInputError(
                f"{request.calculation_type.value} calculation requires a netting set",
                field="netting_set",
            )

        warnings: list[str] = []
        result: CalculationResult
        if request.calculation_type is CalculationType.SACCR:
            result = compute_ead(
                request.netting_set,
                request.trades,
                request.collateral,
                valuation_date=request.valuation_date,
            )
            warnings.extend(result.warnings)
        elif request.calculation_type is CalculationType.PFE:
            result = calculate_pfe(
                request.netting_set,
                request.trades,
                request.collateral,
                settings=request.pfe_settings,
                valuation_date=request.valuation_date,
            )
        elif request.calculation_type is CalculationType.GRID_SCHEDULE:
            result = calculate_grid_schedule_im(
                request.netting_set,
                request.trades,
                request.collateral,
                valuation_date=request.valuation_date,
            )
        else:
            result = calculate_isda_simm(
                request.netting_set,
                request.trades,
                request.collateral,
                include_correlation_matrix=request.include_correlation_matrix,
                apply_risk_class_correlation=request.apply_risk_class_correlation,
            )

        return ExposureCalculationResponse(
            calculation_type=request.calculation_type,
            result=result,
            warnings=warnings,
        )

    def _calculate_var(self, request: ExposureCalculationRequest) -> ExposureCalculationResponse:
        parameters = request.var_parameters or VaRParameters()
        history, warnings = self._complete_history(request, parameters)

        result = calculate_var(request.positions, parameters, history)
        warnings.extend(result.warnings)
        return ExposureCalculationResponse(
            calculation_type=CalculationType.VAR,
            result=result,
            warnings=warnings,
        )

    def _complete_history(
        self,
        request: ExposureCalculationRequest,
        parameters: VaRParameters,
    ) -> tuple[list[HistoricalMarketData], list[str]]:
        """Add port-loaded series for positions without supplied history."""
        history = list(request.historical_data)
        warnings: list[str] = []
        if self._market_data_port is None:
            return history, warnings

        known = {series.asset_identifier for series in history}
        for position in request.positions:
            if position.asset_identifier in known:
                continue
            try:
                series = self._market_data_port.load_history(
                    asset_identifier=position.asset_identifier,
                    asset_type=position.asset_type,
                    currency=position.currency,
                    lookback_period=parameters.lookback_period,
                )
            except DataNotFoundError as e:
                warnings.append(str(e))
                continue
            history.append(series)
            known.add(position.asset_identifier)
            warnings.append(
                f"loaded {series.point_count} prices for {position.asset_identifier} "
                f"from {series.source}"
            )
        return history, warnings


def create_exposure_calculation_service(
    market_data_port: "MarketDataPort | None" = None,
) -> ExposureCalculationService:
    """Factory function to create ExposureCalculationService."""
    return ExposureCalculationService(market_data_port=market_data_port)


def _items(data: dict[str, Any], key: str) -> list[dict[str, Any]]:
    value = data.get(key) or []
    if not isinstance(value, list):
        raise InvalidInputError(f"'{key}' must be a list", field=key)
    return [_mapping(item, key) for item in value]


def _mapping(value: Any, key: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise InvalidInputError(f"'{key}' entries must be mappings", field=key)
    return value
