"""
Market knowledge base: static definitions for the five supported market types.

Each market carries:
- identifier keywords that betray it in column headers
- symbol patterns (ordered; registry order decides between overlapping patterns)
- the column names exports for that market typically use
- unit multipliers (futures contract values, option contract size, forex lots)

Registry order is FUTURES, OPTIONS, FOREX, CRYPTO, STOCKS. Classification
walks the registry in this order, so a bare two-letter code such as "ES"
resolves to FUTURES before the generic stock pattern gets a chance.

Everything here is built once at import time and never mutated.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Iterator, Mapping, Optional, Union


class MarketType(str, Enum):
    STOCKS = "STOCKS"
    FUTURES = "FUTURES"
    OPTIONS = "OPTIONS"
    FOREX = "FOREX"
    CRYPTO = "CRYPTO"
    UNKNOWN = "UNKNOWN"

    @property
    def label(self) -> str:
        if self is MarketType.UNKNOWN:
            return "Unknown"
        return MARKET_DEFINITIONS[self].name


class LogicalField(str, Enum):
    """Trade fields the column mapper tries to resolve, in resolution order."""

    SYMBOL = "symbol"
    SIDE = "side"
    DATE = "date"
    ENTRY_PRICE = "entry_price"
    EXIT_PRICE = "exit_price"
    EXIT_DATE = "exit_date"
    QUANTITY = "quantity"
    PNL = "pnl"
    COMMISSION = "commission"
    NOTES = "notes"


REQUIRED_FIELDS: tuple[LogicalField, ...] = (
    LogicalField.SYMBOL,
    LogicalField.ENTRY_PRICE,
    LogicalField.QUANTITY,
)


@dataclass(frozen=True)
class MarketDefinition:
    """Static description of one market type."""

    market: MarketType
    name: str
    identifier_keywords: frozenset[str]
    symbol_patterns: tuple[re.Pattern, ...]
    typical_columns: tuple[str, ...]
    column_vocabulary: Mapping[LogicalField, tuple[str, ...]]
    unit_multiplier: Union[float, Mapping[str, float]]
    has_expiration: bool = False
    has_strike: bool = False
    price_format: str = "decimal"
    notes: str = ""

    def matches_symbol(self, symbol: str) -> bool:
        return any(p.search(symbol) for p in self.symbol_patterns)


# ---------------------------------------------------------------------------
# Unit multipliers
# ---------------------------------------------------------------------------

# Dollar value of a one-point move, per futures root
_FUTURES_MULTIPLIERS: dict[str, float] = {
    "ES": 50,         # E-mini S&P 500
    "NQ": 20,         # E-mini Nasdaq
    "RTY": 50,        # E-mini Russell
    "YM": 5,          # E-mini Dow
    "CL": 1000,       # Crude oil, per barrel
    "GC": 100,        # Gold
    "ZB": 1000,       # 30-year T-bond
    "ZN": 1000,       # 10-year T-note
    "ZF": 1000,       # 5-year T-note
    "ZT": 2000,       # 2-year T-note
    "6E": 125000,     # Euro FX
    "6J": 12500000,   # Japanese yen
    "NG": 10000,      # Natural gas
}

OPTIONS_CONTRACT_SIZE = 100

FOREX_LOT_SIZES: Mapping[str, float] = MappingProxyType({
    "STANDARD": 100000,
    "MINI": 10000,
    "MICRO": 1000,
    "NANO": 100,
})

# ---------------------------------------------------------------------------
# Symbol pattern building blocks
# ---------------------------------------------------------------------------

_FUTURES_ROOTS = (
    "ES", "NQ", "RTY", "YM", "ZB", "ZN", "ZF", "ZT", "CL", "GC",
    "SI", "HG", "NG", "6E", "6J", "6B", "6C", "6A", "6S",
)
_FUTURES_MONTH_CODES = "FGHJKMNQUVXZ"

_CURRENCY_CODES = (
    "USD", "EUR", "GBP", "JPY", "CHF", "AUD", "CAD", "NZD", "SEK", "NOK",
    "DKK", "HKD", "SGD", "MXN", "ZAR", "TRY", "PLN", "CNH", "HUF", "CZK",
)
_CCY = "(?:" + "|".join(_CURRENCY_CODES) + ")"

_CRYPTO_COINS = (
    "BTC", "ETH", "SOL", "XRP", "ADA", "DOGE", "LTC", "BNB", "AVAX",
    "SHIB", "MATIC", "XLM", "TRX", "PEPE", "USDT", "USDC",
)
_COIN = "(?:" + "|".join(_CRYPTO_COINS) + ")"

MAJOR_FOREX_PAIRS = (
    "EURUSD", "GBPUSD", "USDJPY", "USDCHF", "AUDUSD", "USDCAD", "NZDUSD",
)

MINOR_FOREX_PAIRS = (
    "EURGBP", "EURJPY", "GBPJPY", "EURCHF", "EURAUD", "EURCAD", "GBPCHF",
    "GBPAUD", "GBPCAD", "AUDJPY", "CADJPY", "CHFJPY", "AUDCAD", "AUDCHF",
)

# ESZ24, ESZ4, ES DEC 24
_FUTURES_ROOT_RE = re.compile(
    r"^(?P<root>" + "|".join(_FUTURES_ROOTS) + r")"
    r"(?:[" + _FUTURES_MONTH_CODES + r"]\d{1,2}|\s[A-Z]{3}\s\d{2})?$"
)
_FUTURES_GENERIC_CONTRACT_RE = re.compile(
    r"^(?P<root>[A-Z0-9]{1,3}?)[" + _FUTURES_MONTH_CODES + r"]\d{1,2}$"
)


def _compile(*patterns: str) -> tuple[re.Pattern, ...]:
    return tuple(re.compile(p) for p in patterns)


# ---------------------------------------------------------------------------
# Column vocabulary
# ---------------------------------------------------------------------------

BASE_FIELD_VOCABULARY: Mapping[LogicalField, tuple[str, ...]] = MappingProxyType({
    LogicalField.SYMBOL: (
        "symbol", "ticker", "stock", "instrument", "asset", "contract",
        "underlying", "name", "security", "pair", "code",
    ),
    LogicalField.SIDE: (
        "side", "direction", "type", "action", "buysell", "buy/sell",
        "order_side", "trade_side", "position", "long/short",
    ),
    LogicalField.DATE: (
        "date", "time", "datetime", "entry_time", "entrytime", "entrydate",
        "open_time", "opentime", "trade_date", "tradedate", "trade_time",
        "executed_at", "filled_at", "timestamp", "created_at", "opened_at",
    ),
    LogicalField.ENTRY_PRICE: (
        "entry", "entry_price", "entryprice", "open", "open_price", "openprice",
        "fill_price", "fillprice", "price", "executed_price", "exec_price",
        "average_price", "avg_price",
    ),
    LogicalField.EXIT_PRICE: (
        "exit", "exit_price", "exitprice", "close", "close_price", "closeprice",
        "closing_price", "sell_price", "realized_price",
    ),
    LogicalField.EXIT_DATE: (
        "exit_date", "exitdate", "close_date", "closedate", "exit_time",
        "exittime", "close_time", "closed_at",
    ),
    LogicalField.QUANTITY: (
        "quantity", "qty", "size", "shares", "units", "contracts", "lots",
        "volume", "position_size", "amount", "filled_qty", "executed_qty",
    ),
    LogicalField.PNL: (
        "pnl", "profit", "loss", "profit_loss", "profit/loss", "pl", "p&l",
        "realized_pnl", "realized", "gain", "return", "result_amount",
    ),
    LogicalField.COMMISSION: (
        "commission", "comm", "fee", "fees", "charges", "brokerage",
    ),
    LogicalField.NOTES: (
        "notes", "note", "comment", "comments", "description", "remarks", "memo",
    ),
})


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

_DEFINITIONS: tuple[MarketDefinition, ...] = (
    MarketDefinition(
        market=MarketType.FUTURES,
        name="Futures",
        identifier_keywords=frozenset({"futures", "future", "contract", "futs", "fut"}),
        symbol_patterns=_compile(
            r"^[A-Z]{1,2}$",                        # ES, NQ, CL, GC
            r"^[A-Z]{2,3}[0-9]{2}$",                # ESZ24, CLK25
            r"^[A-Z]{2,3}\s[A-Z]{3}\s[0-9]{2}$",    # ES DEC 24
            _FUTURES_ROOT_RE.pattern,               # 6E, ESZ4, RTYH25
        ),
        typical_columns=("contract", "expiry", "month", "year", "tick_value", "multiplier"),
        column_vocabulary=MappingProxyType({
            LogicalField.SYMBOL: ("futures_symbol", "contract_code", "futures_contract"),
            LogicalField.QUANTITY: ("num_contracts", "contract_count"),
        }),
        unit_multiplier=MappingProxyType(_FUTURES_MULTIPLIERS),
        has_expiration=True,
        notes="Futures use contract codes like ESZ24 (ES December 2024)",
    ),
    MarketDefinition(
        market=MarketType.OPTIONS,
        name="Options",
        identifier_keywords=frozenset({"option", "options", "opt", "call", "put", "strike", "expiry"}),
        symbol_patterns=_compile(
            r"^[A-Z]{1,5}\s\d{6}[CP]\d+$",                        # AAPL 240119C150
            r"^[A-Z]{1,5}_\d{6}[CP]\d+$",                         # AAPL_240119C150
            r"^[A-Z]{1,6}\d{6}[CP]\d{8}$",                        # AAPL240119C00150000 (OCC)
            r"^[A-Z]{1,5}\s[A-Z]{3}\s\d{1,2}\s\d{4}\s\d+\s[CP]",  # AAPL JAN 19 2024 150 C
        ),
        # No bare "type": generic exports use it for the buy/sell column
        typical_columns=(
            "strike", "expiry", "right", "call_put", "option_type",
            "underlying", "contract_size",
        ),
        column_vocabulary=MappingProxyType({
            LogicalField.SYMBOL: ("option_symbol", "option_code"),
            LogicalField.QUANTITY: ("option_contracts", "num_options"),
        }),
        unit_multiplier=OPTIONS_CONTRACT_SIZE,
        has_expiration=True,
        has_strike=True,
        notes="Options include strike price, expiration date, and type (Call/Put)",
    ),
    MarketDefinition(
        market=MarketType.FOREX,
        name="Forex",
        identifier_keywords=frozenset({
            "forex", "fx", "currency", "currencies", "spot", "pair",
            "eurusd", "gbpusd", "usdjpy", "audusd", "usdcad", "usdchf", "nzdusd",
        }),
        symbol_patterns=_compile(
            rf"^{_CCY}{_CCY}$",       # EURUSD
            rf"^{_CCY}/{_CCY}$",      # EUR/USD
            rf"^{_CCY}-{_CCY}$",      # EUR-USD
            rf"^{_CCY}\s{_CCY}$",     # EUR USD
        ),
        typical_columns=(
            "pair", "base", "quote", "pip", "lot_size", "margin", "volume",
            "lots", "size", "units",
        ),
        column_vocabulary=MappingProxyType({
            LogicalField.SYMBOL: ("currency_pair", "fx_pair", "pair_name"),
            LogicalField.QUANTITY: ("lot_size", "lots", "position"),
        }),
        unit_multiplier=FOREX_LOT_SIZES,
        notes="Forex pairs like EUR/USD, typically traded in lots (100,000 units)",
    ),
    MarketDefinition(
        market=MarketType.CRYPTO,
        name="Cryptocurrency",
        identifier_keywords=frozenset({
            "crypto", "cryptocurrency", "coin", "token", "btc", "eth", "usdt",
            "perpetual", "perp",
        }),
        symbol_patterns=_compile(
            rf"^{_COIN}$",                              # BTC, ETH, DOGE
            r"^[A-Z]{3,5}[-/]?(?:USDT|USDC|BUSD)$",     # BTCUSDT, ETH-USDC
            r"^[A-Z]{3,5}[-/]?USD$",                    # BTCUSD, BTC/USD
            r"^[A-Z]{3,5}-?PERP$",                      # BTCPERP
            rf"^{_COIN}[-/]?[A-Z]{{3,4}}$",             # ETHBTC, SOL/EUR
        ),
        typical_columns=("coin", "token", "base", "quote", "size", "notional"),
        column_vocabulary=MappingProxyType({
            LogicalField.SYMBOL: ("coin", "token", "crypto_pair"),
            LogicalField.QUANTITY: ("coin_amount", "token_amount", "crypto_size"),
        }),
        unit_multiplier=1,
        notes="Cryptocurrency pairs like BTC/USDT, can be spot or perpetual futures",
    ),
    MarketDefinition(
        market=MarketType.STOCKS,
        name="Stocks",
        identifier_keywords=frozenset({"stock", "stocks", "equity", "equities", "share", "shares"}),
        symbol_patterns=_compile(
            r"^[A-Z]{1,5}$",            # AAPL, MSFT, GOOGL
            r"^[A-Z]{1,5}\.[A-Z]$",     # BRK.B
        ),
        typical_columns=("shares", "ticker", "company", "exchange"),
        column_vocabulary=MappingProxyType({}),
        unit_multiplier=1,
        notes="Stock symbols are typically 1-5 uppercase letters",
    ),
)

MARKET_DEFINITIONS: Mapping[MarketType, MarketDefinition] = MappingProxyType(
    {d.market: d for d in _DEFINITIONS}
)


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def iter_definitions() -> Iterator[MarketDefinition]:
    """Yield market definitions in registry (priority) order."""
    return iter(_DEFINITIONS)


def get_definition(market: Optional[MarketType]) -> Optional[MarketDefinition]:
    if market is None or market is MarketType.UNKNOWN:
        return None
    return MARKET_DEFINITIONS.get(MarketType(market))


def field_vocabulary(market: Optional[MarketType]) -> dict[LogicalField, list[str]]:
    """Base column vocabulary plus the market's additions, per logical field."""
    vocab = {f: list(terms) for f, terms in BASE_FIELD_VOCABULARY.items()}
    definition = get_definition(market)
    if definition is not None:
        for f, extra in definition.column_vocabulary.items():
            for term in extra:
                if term not in vocab[f]:
                    vocab[f].append(term)
    return vocab


def market_hint(market: Optional[MarketType]) -> list[str]:
    """Column names to suggest when a file for this market can't be mapped."""
    definition = get_definition(market)
    if definition is None:
        return []
    hint = list(definition.typical_columns)
    for terms in definition.column_vocabulary.values():
        for term in terms:
            if term not in hint:
                hint.append(term)
    return hint


def futures_root(symbol: str) -> str:
    """Strip month/year codes from a futures symbol: ESZ24 -> ES, ES DEC 24 -> ES."""
    sym = symbol.strip().upper()
    if sym in _FUTURES_MULTIPLIERS:
        return sym
    m = _FUTURES_ROOT_RE.match(sym)
    if m:
        return m.group("root")
    if " " in sym:
        return sym.split()[0]
    m = _FUTURES_GENERIC_CONTRACT_RE.match(sym)
    if m and m.group("root"):
        return m.group("root")
    return sym


def contract_multiplier(symbol: Optional[str]) -> float:
    """Futures contract value per point. Unknown roots default to 1."""
    if not symbol:
        return 1
    return _FUTURES_MULTIPLIERS.get(futures_root(symbol), 1)


def normalize_pair(symbol: str) -> str:
    """EUR/USD, EUR-USD, eur usd -> EURUSD."""
    return re.sub(r"[^A-Z]", "", symbol.upper())


def is_forex_pair(symbol: str) -> bool:
    pair = normalize_pair(symbol)
    return pair in MAJOR_FOREX_PAIRS or pair in MINOR_FOREX_PAIRS or bool(
        re.fullmatch(rf"{_CCY}{_CCY}", pair)
    )
