"""
P&L calculator: dollar profit/loss for a trade given its market.

    pnl = (exit - entry) * direction * quantity * multiplier

direction is +1 for BUY and -1 for SELL. The multiplier depends on market:
- STOCKS / CRYPTO / unknown: 1
- OPTIONS: 100 shares per contract, regardless of underlying
- FUTURES: contract value of the symbol's root (ES -> 50), 1 if unknown
- FOREX: lot size guessed from the quantity magnitude alone

The forex heuristic is approximate by nature; its thresholds are kept as-is
because changing them silently re-prices trades that were already imported.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

import numpy as np
import pandas as pd

from ..parsers.field_normalizers import Side
from ..parsers.market_knowledge import (
    FOREX_LOT_SIZES,
    OPTIONS_CONTRACT_SIZE,
    MarketType,
    contract_multiplier,
    normalize_pair,
)

if TYPE_CHECKING:
    from ..parsers.row_materializer import TradeCandidate

logger = logging.getLogger(__name__)

_NANO_SCALE = 100000000


def detect_forex_lot_size(quantity: float) -> float:
    """Units per quantity step, inferred from how big the quantity is."""
    if quantity < 0.01:
        return _NANO_SCALE
    if quantity < 1:
        return FOREX_LOT_SIZES["STANDARD"]
    if quantity >= 1000:
        return 1  # already in base units
    return FOREX_LOT_SIZES["STANDARD"]


def unit_multiplier(
    symbol: Optional[str],
    quantity: float,
    market_type: Optional[MarketType],
) -> float:
    if market_type is MarketType.FUTURES:
        return contract_multiplier(symbol)
    if market_type is MarketType.OPTIONS:
        return OPTIONS_CONTRACT_SIZE
    if market_type is MarketType.FOREX:
        return detect_forex_lot_size(quantity)
    return 1


def calculate_pnl(
    symbol: Optional[str],
    side: Side,
    entry_price: Optional[float],
    exit_price: Optional[float],
    quantity: float,
    market_type: Optional[MarketType],
) -> Optional[float]:
    """Signed P&L, or None when either price is missing."""
    if entry_price is None or exit_price is None:
        return None
    qty = abs(quantity or 0)
    price_diff = exit_price - entry_price
    return price_diff * side.direction * qty * unit_multiplier(symbol, qty, market_type)


def compute_pnl(trade: "TradeCandidate", market_type: Optional[MarketType] = None) -> Optional[float]:
    """P&L for a trade. ``market_type`` defaults to the trade's own market."""
    market = market_type if market_type is not None else trade.market_type
    return calculate_pnl(
        trade.symbol, trade.side, trade.entry_price, trade.exit_price,
        trade.quantity, market,
    )


def compute_pnl_with_commission(
    trade: "TradeCandidate",
    market_type: Optional[MarketType] = None,
    per_trade: float = 0.0,
    per_unit: float = 0.0,
) -> Optional[float]:
    """P&L net of commission.

    Closed trades (exit price present) pay commission on entry and exit;
    open trades pay it once.
    """
    base = compute_pnl(trade, market_type)
    if base is None:
        return None
    unit_cost = per_unit * abs(trade.quantity)
    legs = 2 if trade.exit_price is not None else 1
    return base - legs * (per_trade + unit_cost)


# Approximate USD pip values per standard lot for USD-base pairs
_USD_BASE_PIP_VALUES = {
    "USDJPY": 9.2,
    "USDCHF": 10.5,
    "USDCAD": 7.7,
}


def forex_pip_value(pair: str, lot_size: float = FOREX_LOT_SIZES["STANDARD"]) -> float:
    """Dollar value of one pip. Quote-USD pairs are exact; others approximate."""
    normalized = normalize_pair(pair)
    if normalized.endswith("USD"):
        return 10 * (lot_size / FOREX_LOT_SIZES["STANDARD"])
    return _USD_BASE_PIP_VALUES.get(normalized, 10)


# ---------------------------------------------------------------------------
# Vectorized recomputation for analytics consumers
# ---------------------------------------------------------------------------

def _enum_values(series: pd.Series) -> pd.Series:
    return series.map(lambda v: getattr(v, "value", v)).astype(str)


def compute_pnl_frame(trades: pd.DataFrame) -> pd.Series:
    """Recompute P&L for a DataFrame of trades (one row per trade).

    Expects columns: symbol, side, entry_price, exit_price, quantity,
    market_type. Missing prices yield NaN.
    """
    if trades.empty:
        return pd.Series([], dtype=float, name="pnl")

    entry = pd.to_numeric(trades["entry_price"], errors="coerce").to_numpy(dtype=float)
    exit_ = pd.to_numeric(trades["exit_price"], errors="coerce").to_numpy(dtype=float)
    qty = np.abs(pd.to_numeric(trades["quantity"], errors="coerce").fillna(0).to_numpy(dtype=float))
    side = _enum_values(trades["side"]).str.upper().to_numpy()
    market = _enum_values(trades["market_type"]).str.upper().to_numpy()

    direction = np.where(side == Side.BUY.value, 1.0, -1.0)
    forex_lot = np.select(
        [qty < 0.01, qty < 1, qty >= 1000],
        [float(_NANO_SCALE), float(FOREX_LOT_SIZES["STANDARD"]), 1.0],
        default=float(FOREX_LOT_SIZES["STANDARD"]),
    )
    futures = trades["symbol"].fillna("").astype(str).map(contract_multiplier).astype(float).to_numpy()
    multiplier = np.select(
        [
            market == MarketType.FUTURES.value,
            market == MarketType.OPTIONS.value,
            market == MarketType.FOREX.value,
        ],
        [futures, np.full(len(qty), float(OPTIONS_CONTRACT_SIZE)), forex_lot],
        default=1.0,
    )

    pnl = (exit_ - entry) * direction * qty * multiplier
    logger.debug("[PnLCalculator] Recomputed P&L for %d trades", len(pnl))
    return pd.Series(pnl, index=trades.index, name="pnl")
