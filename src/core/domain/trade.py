"""Trade Domain Object - derivative trades as a closed set of asset-class variants.

Each asset class has its own frozen dataclass carrying the fields its
formulas need. ``TRADE_TYPES`` is the complete registry; engines dispatch
on ``trade.asset_class`` and are expected to cover every key in it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, ClassVar, Union

from src.core.domain.errors import InvalidInputError
from src.core.domain.fields import (
    optional_bool,
    optional_date,
    optional_number,
    parse_date,
    parse_enum,
    parse_number,
    require,
    year_fraction,
)
from src.core.domain.sensitivity import RiskFactor


class AssetClass(Enum):
    """Regulatory asset classes."""

    INTEREST_RATE = "INTEREST_RATE"
    FOREIGN_EXCHANGE = "FOREIGN_EXCHANGE"
    CREDIT = "CREDIT"
    EQUITY = "EQUITY"
    COMMODITY = "COMMODITY"


class TransactionType(Enum):
    """Payoff shape of a trade."""

    LINEAR = "LINEAR"
    OPTION = "OPTION"
    BASIS = "BASIS"
    VOLATILITY = "VOLATILITY"


class PositionType(Enum):
    """Direction of a trade in its primary risk factor."""

    LONG = "LONG"
    SHORT = "SHORT"


class OptionType(Enum):
    """Option right."""

    CALL = "CALL"
    PUT = "PUT"


class CreditQuality(Enum):
    """Credit rating grade of a reference entity."""

    INVESTMENT_GRADE = "INVESTMENT_GRADE"
    SPECULATIVE_GRADE = "SPECULATIVE_GRADE"


class CommodityType(Enum):
    """Commodity hedging-set categories."""

    ELECTRICITY = "ELECTRICITY"
    OIL_GAS = "OIL_GAS"
    METALS = "METALS"
    AGRICULTURAL = "AGRICULTURAL"
    OTHER = "OTHER"


class MaturityBucket(Enum):
    """Residual maturity buckets used by the grid schedule and rate hedging sets."""

    LESS_THAN_ONE_YEAR = "less_than_one_year"
    ONE_TO_FIVE_YEARS = "one_to_five_years"
    GREATER_THAN_FIVE_YEARS = "greater_than_five_years"

    @classmethod
    def from_years(cls, residual_years: float) -> "MaturityBucket":
        """Classify a residual maturity expressed in years.

        ``< 1`` is short, ``1..5`` inclusive is medium, ``> 5`` is long.
        """
        if residual_years < 1.0:
            return cls.LESS_THAN_ONE_YEAR
        if residual_years <= 5.0:
            return cls.ONE_TO_FIVE_YEARS
        return cls.GREATER_THAN_FIVE_YEARS


@dataclass(frozen=True, kw_only=True)
class Trade:
    """Fields common to every asset class.

    Attributes:
        trade_id: Unique trade identifier within the netting set
        transaction_type: Linear, option, basis or volatility payoff
        position_type: Long or short in the primary risk factor
        notional: Trade notional, strictly positive
        currency: Currency of notional and market value
        maturity_date: Final maturity
        current_market_value: Mark-to-market in ``currency`` (signed)
        start_date: Start of the underlying period (None means valuation date)
        option_type: Call or put, for option trades
        volatility: Optional implied volatility (fraction)
        risk_factors: Delta sensitivities used by ISDA SIMM

    Invariants:
        - notional > 0
        - maturity_date >= start_date
    """

    asset_class: ClassVar[AssetClass]

    trade_id: str
    notional: float
    currency: str
    maturity_date: date
    current_market_value: float
    transaction_type: TransactionType = TransactionType.LINEAR
    position_type: PositionType = PositionType.LONG
    start_date: date | None = None
    option_type: OptionType | None = None
    volatility: float | None = None
    risk_factors: tuple[RiskFactor, ...] = ()

    def __post_init__(self) -> None:
        """Validate invariants after initialization."""
        self._validate_invariants()

    def _validate_invariants(self) -> None:
        """Validate all domain invariants.

        Raises:
            InvalidInputError: If any invariant is violated
        """
        # Invariant 1: identifier must not be empty
        if not self.trade_id or not str(self.trade_id).strip():
            raise InvalidInputError("trade id must not be empty", field="trade_id")

        # Invariant 2: notional strictly positive
        if not self.notional > 0:
            raise InvalidInputError(
                f"notional must be > 0, got {self.notional}",
                field="notional",
                trade_id=self.trade_id,
            )

        # Invariant 3: maturity on or after start
        if self.start_date is not None and self.maturity_date < self.start_date:
            raise InvalidInputError(
                f"maturity {self.maturity_date} is before start {self.start_date}",
                field="maturity_date",
                trade_id=self.trade_id,
            )

        # Invariant 4: volatility is a non-negative fraction
        if self.volatility is not None and self.volatility < 0:
            raise InvalidInputError(
                f"volatility must be >= 0, got {self.volatility}",
                field="volatility",
                trade_id=self.trade_id,
            )

        if not self.currency:
            raise InvalidInputError(
                "currency must not be empty", field="currency", trade_id=self.trade_id
            )

    @property
    def direction(self) -> int:
        """+1 for long, -1 for short."""
        return 1 if self.position_type == PositionType.LONG else -1

    @property
    def is_option(self) -> bool:
        """Return True for option payoffs."""
        return self.transaction_type == TransactionType.OPTION

    def effective_start(self, valuation_date: date) -> date:
        """Return the start date, defaulting to the valuation date."""
        return self.start_date if self.start_date is not None else valuation_date

    def residual_maturity(self, valuation_date: date) -> float:
        """Years from valuation date to maturity, floored at zero."""
        return max(year_fraction(valuation_date, self.maturity_date), 0.0)

    def maturity_bucket(self, valuation_date: date) -> MaturityBucket:
        """Return the residual maturity bucket."""
        return MaturityBucket.from_years(self.residual_maturity(valuation_date))

    def _variant_dict(self) -> dict[str, Any]:
        return {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        data: dict[str, Any] = {
            "trade_id": self.trade_id,
            "asset_class": self.asset_class.value,
            "transaction_type": self.transaction_type.value,
            "position_type": self.position_type.value,
            "notional": self.notional,
            "currency": self.currency,
            "maturity_date": self.maturity_date.isoformat(),
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "current_market_value": self.current_market_value,
            "option_type": self.option_type.value if self.option_type else None,
            "volatility": self.volatility,
            "risk_factors": [rf.to_dict() for rf in self.risk_factors],
        }
        data.update(self._variant_dict())
        return data

    @classmethod
    def _variant_kwargs(cls, data: dict[str, Any], trade_id: str) -> dict[str, Any]:
        return {}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Trade":
        """Create a trade of this variant from a dictionary.

        Raises:
            InvalidInputError: If a required field is missing or malformed
        """
        trade_id = str(data.get("trade_id", data.get("id", "")))
        if not trade_id:
            raise InvalidInputError("required field is missing", field="trade_id")

        option_type = data.get("option_type")
        return cls(
            trade_id=trade_id,
            transaction_type=parse_enum(
                TransactionType,
                data.get("transaction_type", TransactionType.LINEAR),
                "transaction_type",
                trade_id,
            ),
            position_type=parse_enum(
                PositionType,
                data.get("position_type", PositionType.LONG),
                "position_type",
                trade_id,
            ),
            notional=parse_number(require(data, "notional", trade_id), "notional", trade_id),
            currency=str(require(data, "currency", trade_id)),
            maturity_date=parse_date(
                require(data, "maturity_date", trade_id), "maturity_date", trade_id
            ),
            start_date=optional_date(data, "start_date", trade_id),
            current_market_value=parse_number(
                require(data, "current_market_value", trade_id),
                "current_market_value",
                trade_id,
            ),
            option_type=(
                parse_enum(OptionType, option_type, "option_type", trade_id)
                if option_type
                else None
            ),
            volatility=optional_number(data, "volatility", trade_id=trade_id),
            risk_factors=tuple(
                RiskFactor.from_dict(rf, trade_id) for rf in data.get("risk_factors") or ()
            ),
            **cls._variant_kwargs(data, trade_id),
        )


@dataclass(frozen=True, kw_only=True)
class InterestRateTrade(Trade):
    """Interest rate derivative (swap, FRA, cap/floor, swaption).

    Attributes:
        reference_currency: Currency of the rate index (hedging set key)
        index_name: Floating index (e.g., "SOFR", "EURIBOR-6M")
        basis: Basis description for basis swaps
    """

    asset_class: ClassVar[AssetClass] = AssetClass.INTEREST_RATE

    reference_currency: str = ""
    index_name: str | None = None
    basis: str | None = None

    @property
    def hedging_currency(self) -> str:
        """Currency that defines the hedging set."""
        return self.reference_currency or self.currency

    def _variant_dict(self) -> dict[str, Any]:
        return {
            "reference_currency": self.hedging_currency,
            "index_name": self.index_name,
            "basis": self.basis,
        }

    @classmethod
    def _variant_kwargs(cls, data: dict[str, Any], trade_id: str) -> dict[str, Any]:
        return {
            "reference_currency": str(data.get("reference_currency") or ""),
            "index_name": data.get("index_name"),
            "basis": data.get("basis"),
        }


@dataclass(frozen=True, kw_only=True)
class ForeignExchangeTrade(Trade):
    """FX forward, swap or option.

    Attributes:
        currency_pair: Pair in "CCY1/CCY2" form (hedging set key)
        settlement_date: Settlement date of the exchange
    """

    asset_class: ClassVar[AssetClass] = AssetClass.FOREIGN_EXCHANGE

    currency_pair: str
    settlement_date: date | None = None

    def _validate_invariants(self) -> None:
        super()._validate_invariants()

        # Invariant 5: pair names two currencies
        parts = self.currency_pair.replace("_", "/").split("/")
        if len(parts) != 2 or not all(parts):
            raise InvalidInputError(
                f"currency pair must look like 'USD/EUR', got '{self.currency_pair}'",
                field="currency_pair",
                trade_id=self.trade_id,
            )

    @property
    def hedging_pair(self) -> str:
        """Order-independent pair key so USD/EUR and EUR/USD net together."""
        parts = sorted(self.currency_pair.upper().replace("_", "/").split("/"))
        return "/".join(parts)

    def _variant_dict(self) -> dict[str, Any]:
        return {
            "currency_pair": self.currency_pair,
            "settlement_date": self.settlement_date.isoformat() if self.settlement_date else None,
        }

    @classmethod
    def _variant_kwargs(cls, data: dict[str, Any], trade_id: str) -> dict[str, Any]:
        return {
            "currency_pair": str(require(data, "currency_pair", trade_id)),
            "settlement_date": optional_date(data, "settlement_date", trade_id),
        }


@dataclass(frozen=True, kw_only=True)
class CreditTrade(Trade):
    """Single-name or index credit derivative.

    Attributes:
        reference_entity: Reference name or index (hedging entity key)
        seniority: Debt seniority (e.g., "SENIOR", "SUBORDINATED")
        sector: Industry sector
        credit_quality: Investment or speculative grade
        is_index: True for index products
    """

    asset_class: ClassVar[AssetClass] = AssetClass.CREDIT

    reference_entity: str
    seniority: str = "SENIOR"
    sector: str = ""
    credit_quality: CreditQuality = CreditQuality.INVESTMENT_GRADE
    is_index: bool = False

    def _validate_invariants(self) -> None:
        super()._validate_invariants()
        if not self.reference_entity:
            raise InvalidInputError(
                "reference entity must not be empty",
                field="reference_entity",
                trade_id=self.trade_id,
            )

    def _variant_dict(self) -> dict[str, Any]:
        return {
            "reference_entity": self.reference_entity,
            "seniority": self.seniority,
            "sector": self.sector,
            "credit_quality": self.credit_quality.value,
            "is_index": self.is_index,
        }

    @classmethod
    def _variant_kwargs(cls, data: dict[str, Any], trade_id: str) -> dict[str, Any]:
        return {
            "reference_entity": str(require(data, "reference_entity", trade_id)),
            "seniority": str(data.get("seniority") or "SENIOR"),
            "sector": str(data.get("sector") or ""),
            "credit_quality": parse_enum(
                CreditQuality,
                data.get("credit_quality") or CreditQuality.INVESTMENT_GRADE,
                "credit_quality",
                trade_id,
            ),
            "is_index": optional_bool(data, "is_index", trade_id=trade_id),
        }


@dataclass(frozen=True, kw_only=True)
class EquityTrade(Trade):
    """Single-name or index equity derivative.

    Attributes:
        issuer: Issuer or index name (hedging entity key)
        market: Listing market
        sector: Industry sector
        is_index: True for index products
    """

    asset_class: ClassVar[AssetClass] = AssetClass.EQUITY

    issuer: str
    market: str = ""
    sector: str = ""
    is_index: bool = False

    def _validate_invariants(self) -> None:
        super()._validate_invariants()
        if not self.issuer:
            raise InvalidInputError(
                "issuer must not be empty", field="issuer", trade_id=self.trade_id
            )

    def _variant_dict(self) -> dict[str, Any]:
        return {
            "issuer": self.issuer,
            "market": self.market,
            "sector": self.sector,
            "is_index": self.is_index,
        }

    @classmethod
    def _variant_kwargs(cls, data: dict[str, Any], trade_id: str) -> dict[str, Any]:
        return {
            "issuer": str(require(data, "issuer", trade_id)),
            "market": str(data.get("market") or ""),
            "sector": str(data.get("sector") or ""),
            "is_index": optional_bool(data, "is_index", trade_id=trade_id),
        }


@dataclass(frozen=True, kw_only=True)
class CommodityTrade(Trade):
    """Commodity derivative.

    Attributes:
        commodity_type: Hedging set (energy split into electricity and oil/gas)
        sub_type: Commodity within the hedging set (e.g., "BRENT", "GOLD")
    """

    asset_class: ClassVar[AssetClass] = AssetClass.COMMODITY

    commodity_type: CommodityType
    sub_type: str = ""

    @property
    def sub_type_key(self) -> str:
        """Sub-type used for intra-hedging-set aggregation."""
        return (self.sub_type or self.commodity_type.value).upper()

    def _variant_dict(self) -> dict[str, Any]:
        return {
            "commodity_type": self.commodity_type.value,
            "sub_type": self.sub_type,
        }

    @classmethod
    def _variant_kwargs(cls, data: dict[str, Any], trade_id: str) -> dict[str, Any]:
        return {
            "commodity_type": parse_enum(
                CommodityType,
                require(data, "commodity_type", trade_id),
                "commodity_type",
                trade_id,
            ),
            "sub_type": str(data.get("sub_type") or ""),
        }


AnyTrade = Union[
    InterestRateTrade,
    ForeignExchangeTrade,
    CreditTrade,
    EquityTrade,
    CommodityTrade,
]

TRADE_TYPES: dict[AssetClass, type[Trade]] = {
    AssetClass.INTEREST_RATE: InterestRateTrade,
    AssetClass.FOREIGN_EXCHANGE: ForeignExchangeTrade,
    AssetClass.CREDIT: CreditTrade,
    AssetClass.EQUITY: EquityTrade,
    AssetClass.COMMODITY: CommodityTrade,
}


def trade_from_dict(data: dict[str, Any]) -> Trade:
    """Build the correct trade variant from a dictionary.

    Args:
        data: Trade fields including ``asset_class``

    Returns:
        Trade variant instance

    Raises:
        InvalidInputError: If the asset class is unknown or a field is invalid
    """
    trade_id = data.get("trade_id", data.get("id"))
    asset_class = parse_enum(
        AssetClass, require(data, "asset_class", trade_id), "asset_class", trade_id
    )
    return TRADE_TYPES[asset_class].from_dict(data)
