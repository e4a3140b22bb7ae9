"""
Per-cell normalizers: dates, buy/sell side, and numbers.

Every function here is pure and tolerant. A bad cell never raises; it falls
back to a documented default so one malformed value can't sink an import.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class Side(str, Enum):
    BUY = "BUY"
    SELL = "SELL"

    @property
    def direction(self) -> int:
        return 1 if self is Side.BUY else -1


# ---------------------------------------------------------------------------
# Side normalization
# ---------------------------------------------------------------------------

_SIDE_MAP: dict[str, Side] = {
    # Buys
    "buy": Side.BUY,
    "long": Side.BUY,
    "b": Side.BUY,
    "1": Side.BUY,
    "bought": Side.BUY,
    "bot": Side.BUY,
    "purchase": Side.BUY,
    "purchased": Side.BUY,
    "bid": Side.BUY,
    "call": Side.BUY,
    "bullish": Side.BUY,
    "buy to open": Side.BUY,
    "buy to close": Side.BUY,
    "cover": Side.BUY,
    # Sells
    "sell": Side.SELL,
    "short": Side.SELL,
    "s": Side.SELL,
    "-1": Side.SELL,
    "sold": Side.SELL,
    "sld": Side.SELL,
    "sale": Side.SELL,
    "ask": Side.SELL,
    "put": Side.SELL,
    "bearish": Side.SELL,
    "close": Side.SELL,
    "sell short": Side.SELL,
    "sell to open": Side.SELL,
    "sell to close": Side.SELL,
}

# Checked in order for compound actions ("Market buy", "SELL - LIMIT")
_SIDE_SUBSTRINGS: tuple[tuple[str, Side], ...] = (
    ("sell", Side.SELL),
    ("short", Side.SELL),
    ("sold", Side.SELL),
    ("buy", Side.BUY),
    ("long", Side.BUY),
    ("bought", Side.BUY),
)


def _lookup_side(raw: Optional[str]) -> Optional[Side]:
    if raw is None:
        return None
    cleaned = " ".join(str(raw).strip().lower().split())
    if not cleaned:
        return None
    if cleaned in _SIDE_MAP:
        return _SIDE_MAP[cleaned]
    for token, side in _SIDE_SUBSTRINGS:
        if token in cleaned:
            return side
    return None


def normalize_side(raw: Optional[str]) -> Side:
    """Map a broker side/direction token to BUY or SELL. Unknown tokens are BUY."""
    return _lookup_side(raw) or Side.BUY


def is_known_side(raw: Optional[str]) -> bool:
    """True when the side vocabulary recognizes the token."""
    return _lookup_side(raw) is not None


# ---------------------------------------------------------------------------
# Number parsing
# ---------------------------------------------------------------------------

_CURRENCY_PREFIX_RE = re.compile(r"^[A-Z]{3}\s+", re.IGNORECASE)


def parse_number(value: Optional[str]) -> Optional[float]:
    """Parse '1,234.56', '$12', '(45.10)', 'USD 158.50'. Returns None if not numeric."""
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None

    negative = False
    if text.startswith("(") and text.endswith(")"):
        negative = True
        text = text[1:-1].strip()

    text = _CURRENCY_PREFIX_RE.sub("", text)
    text = text.replace("$", "").replace(",", "").replace(" ", "")
    if text.startswith("-"):
        negative = not negative
        text = text[1:]
    elif text.startswith("+"):
        text = text[1:]

    try:
        number = float(text)
    except ValueError:
        return None
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return -number if negative else number


def parse_price(value: Optional[str]) -> Optional[float]:
    """Prices distinguish absent (None) from zero."""
    return parse_number(value)


def parse_quantity(value: Optional[str]) -> float:
    """Quantities default to 0 when absent or non-numeric. Sign is preserved."""
    number = parse_number(value)
    return 0.0 if number is None else number


# ---------------------------------------------------------------------------
# Date parsing
# ---------------------------------------------------------------------------

_ISO_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y/%m/%d",
    "%Y/%m/%d %H:%M:%S",
    "%Y.%m.%d",
    "%Y.%m.%d %H:%M:%S",
    "%Y%m%d",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%b %d, %Y",
    "%b %d %Y",
    "%d %b %Y",
    "%d-%b-%Y",
)

_MONTH_FIRST_FORMATS = (
    "%m/%d/%Y",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %I:%M:%S %p",
    "%m/%d/%y",
    "%m/%d/%y %H:%M",
)

_DAY_FIRST_FORMATS = (
    "%d/%m/%Y",
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y %H:%M",
    "%d/%m/%y",
)

_UNIX_RE = re.compile(r"^-?\d+$")

# Below this a bare integer is read as seconds, at or above as milliseconds
_UNIX_MILLIS_THRESHOLD = 1e10


def to_naive_utc(dt: datetime) -> datetime:
    """Drop the timezone after converting to UTC. Naive values are taken as UTC."""
    if dt.tzinfo is not None:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def utc_now() -> datetime:
    """Current time as a naive UTC datetime, the clock every trade timestamp uses."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _try_formats(text: str, formats: tuple[str, ...]) -> Optional[datetime]:
    for fmt in formats:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def _parse_iso(text: str) -> Optional[datetime]:
    if _UNIX_RE.match(text) and len(text) != 8:
        # Bare integers are timestamps unless they look like YYYYMMDD
        return None
    candidate = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        return to_naive_utc(datetime.fromisoformat(candidate))
    except ValueError:
        pass
    return _try_formats(text, _ISO_FORMATS)


def _parse_unix(text: str) -> Optional[datetime]:
    if not _UNIX_RE.match(text):
        return None
    raw = int(text)
    seconds = raw if abs(raw) < _UNIX_MILLIS_THRESHOLD else raw / 1000.0
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(tzinfo=None)
    except (OverflowError, OSError, ValueError):
        return None


_DATE_PARSERS = (
    _parse_iso,
    lambda text: _try_formats(text, _MONTH_FIRST_FORMATS),
    lambda text: _try_formats(text, _DAY_FIRST_FORMATS),
    _parse_unix,
)


def parse_date_or_none(value: Optional[str]) -> Optional[datetime]:
    """Run the date fallback chain. None when every parser fails."""
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    for parser in _DATE_PARSERS:
        parsed = parser(text)
        if parsed is not None:
            return parsed
    return None


def parse_date(value: Optional[str], default: Optional[datetime] = None) -> datetime:
    """Parse a date cell, falling back to ``default`` (or UTC now) instead of raising."""
    parsed = parse_date_or_none(value)
    if parsed is not None:
        return parsed
    return default if default is not None else utc_now()
