"""Netting-set helpers shared by the trade-based engines.

Validation of the trade list, the input echo and the collateral
multiplier are identical for SA-CCR, PFE and the IM engines.
"""

from __future__ import annotations

import math
import numbers
from typing import Sequence

from src.core.domain.errors import InvalidInputError
from src.core.domain.exposure_metrics import InputSummary
from src.core.domain.netting_set import NettingSet
from src.core.domain.trade import TRADE_TYPES, Trade


def validate_trades(trades: Sequence[Trade]) -> None:
    """Check the trade list every netting-set engine relies on.

    Raises:
        InvalidInputError: On an empty list, a missing or non-finite
            notional or market value, an unknown asset class or a
            duplicated trade id
    """
    if not trades:
        raise InvalidInputError("at least one trade is required", field="trades")

    seen: set[str] = set()
    for trade in trades:
        trade_id = getattr(trade, "trade_id", None)
        asset_class = getattr(trade, "asset_class", None)
        if asset_class not in TRADE_TYPES:
            raise InvalidInputError(
                f"unrecognized asset class {asset_class!r}",
                field="asset_class",
                trade_id=trade_id,
            )

        notional = getattr(trade, "notional", None)
        if not isinstance(notional, numbers.Real) or not notional > 0:
            raise InvalidInputError(
                f"notional must be a number > 0, got {notional!r}",
                field="notional",
                trade_id=trade_id,
            )

        market_value = getattr(trade, "current_market_value", None)
        if not isinstance(market_value, numbers.Real) or not math.isfinite(market_value):
            raise InvalidInputError(
                f"market value must be a finite number, got {market_value!r}",
                field="current_market_value",
                trade_id=trade_id,
            )

        if trade_id in seen:
            raise InvalidInputError(
                "duplicate trade id in netting set", field="trade_id", trade_id=trade_id
            )
        seen.add(trade_id)


def summarize_input(netting_set: NettingSet, trades: Sequence[Trade]) -> InputSummary:
    """Build the input echo carried on exposure results."""
    return InputSummary(
        netting_set_id=netting_set.netting_set_id,
        trade_count=len(trades),
        asset_classes=tuple(dict.fromkeys(t.asset_class for t in trades)),
        margin_type=netting_set.margin_type,
        total_notional=float(sum(t.notional for t in trades)),
    )


def pfe_multiplier(net_value: float, add_on: float, floor: float) -> float:
    """PFE multiplier min(1, F + (1 - F) x exp(V / (2 x (1 - F) x AddOn))).

    Returns 1 when the add-on is zero. The exponent is capped at zero since
    any non-negative exponent already saturates the outer min at 1.
    """
    if add_on <= 0:
        return 1.0
    exponent = net_value / (2.0 * (1.0 - floor) * add_on)
    return min(1.0, floor + (1.0 - floor) * math.exp(min(exponent, 0.0)))


def net_to_gross_ratio(trades: Sequence[Trade]) -> float:
    """Net over gross positive market value, in [0, 1].

    NGR = max(sum V_i, 0) / sum max(V_i, 0); 1 when no trade is in the money.
    """
    gross = float(sum(max(t.current_market_value, 0.0) for t in trades))
    if gross <= 0:
        return 1.0
    net = max(float(sum(t.current_market_value for t in trades)), 0.0)
    return min(net / gross, 1.0)
