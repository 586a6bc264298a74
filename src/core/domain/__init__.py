"""Domain objects for the exposure engine.

This module exports all domain objects representing core business entities.
These are pure domain objects with invariant validation - no I/O dependencies.
"""

from src.core.domain.calculation_parameters import (
    PFECalculationMethod,
    PFEConfidenceLevel,
    PFESettings,
    PFETimeHorizon,
    VaRCalculationMethod,
    VaRConfidenceLevel,
    VaRParameters,
    VaRTimeHorizon,
)
from src.core.domain.errors import (
    CalculationError,
    ConfigurationError,
    InsufficientDataError,
    InvalidInputError,
    RiskEngineError,
)
from src.core.domain.exposure_metrics import (
    InputSummary,
    PFEResult,
    ReplacementCostResult,
    SACCRResult,
    TradeContribution,
)
from src.core.domain.margin_metrics import GridScheduleResult, SIMMResult
from src.core.domain.market_data import HistoricalMarketData
from src.core.domain.netting_set import Collateral, MarginType, NettingSet
from src.core.domain.position import Position, VaRAssetType
from src.core.domain.risk_metrics import PositionContribution, ReturnDistribution, VaRResult
from src.core.domain.sensitivity import RiskFactor, RiskFactorType
from src.core.domain.stress_scenario import StressScenario
from src.core.domain.trade import (
    AssetClass,
    CommodityTrade,
    CommodityType,
    CreditQuality,
    CreditTrade,
    EquityTrade,
    ForeignExchangeTrade,
    InterestRateTrade,
    MaturityBucket,
    OptionType,
    PositionType,
    Trade,
    TransactionType,
    trade_from_dict,
)

__all__ = [
    # Errors
    "RiskEngineError",
    "InvalidInputError",
    "InsufficientDataError",
    "CalculationError",
    "ConfigurationError",
    # Trades
    "AssetClass",
    "TransactionType",
    "PositionType",
    "OptionType",
    "CreditQuality",
    "CommodityType",
    "MaturityBucket",
    "Trade",
    "InterestRateTrade",
    "ForeignExchangeTrade",
    "CreditTrade",
    "EquityTrade",
    "CommodityTrade",
    "trade_from_dict",
    # NettingSet
    "NettingSet",
    "MarginType",
    "Collateral",
    # Sensitivities
    "RiskFactor",
    "RiskFactorType",
    # VaR inputs
    "Position",
    "VaRAssetType",
    "HistoricalMarketData",
    "StressScenario",
    # Parameters
    "PFESettings",
    "PFETimeHorizon",
    "PFEConfidenceLevel",
    "PFECalculationMethod",
    "VaRParameters",
    "VaRTimeHorizon",
    "VaRConfidenceLevel",
    "VaRCalculationMethod",
    # Results
    "InputSummary",
    "ReplacementCostResult",
    "SACCRResult",
    "TradeContribution",
    "PFEResult",
    "GridScheduleResult",
    "SIMMResult",
    "PositionContribution",
    "ReturnDistribution",
    "VaRResult",
]
