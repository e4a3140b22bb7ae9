"""
Row materializer: turn one raw CSV row into a TradeCandidate.

Uses the batch's ColumnMapping to pull each field through its normalizer,
then applies the acceptance rule:

    symbol present AND quantity > 0 AND
        (entry price > 0  OR  a direct P&L column is mapped)

Columns the mapping did not consume are kept as a free-text annotation so
broker-specific data (fees, tags, account ids) survives the import.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, replace
from datetime import datetime
from typing import Any, Mapping, Optional

from ..analyzers.pnl_calculator import compute_pnl
from ..errors import RowMaterializationError
from .column_mapper import ColumnMapping
from .field_normalizers import (
    Side,
    normalize_side,
    parse_date,
    parse_date_or_none,
    parse_number,
    parse_price,
    parse_quantity,
    to_naive_utc,
    utc_now,
)
from .market_knowledge import LogicalField, MarketType

logger = logging.getLogger(__name__)

# Values that carry no information and are left out of the annotation
MEANINGLESS_VALUES = frozenset({"", "0", "0.0", "0.00", "null", "undefined"})

ANNOTATION_SEPARATOR = " | "


@dataclass(frozen=True)
class TradeCandidate:
    """A normalized trade, ready to hand to persistence or analytics."""

    symbol: str
    side: Side
    entry_price: Optional[float]
    exit_price: Optional[float]
    quantity: float
    market_type: MarketType
    timestamp: datetime
    pnl: Optional[float] = None  # computed; None unless both prices are present
    annotation: Optional[str] = None
    reported_pnl: Optional[float] = None  # from a P&L column in the file
    exit_timestamp: Optional[datetime] = None
    commission: Optional[float] = None
    notes: Optional[str] = None
    row_number: Optional[int] = None

    @property
    def effective_pnl(self) -> Optional[float]:
        return self.pnl if self.pnl is not None else self.reported_pnl

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["side"] = self.side.value
        data["market_type"] = self.market_type.value
        data["timestamp"] = self.timestamp.isoformat()
        data["exit_timestamp"] = self.exit_timestamp.isoformat() if self.exit_timestamp else None
        return data


def build_annotation(raw_row: Mapping[str, str], mapping: ColumnMapping) -> Optional[str]:
    """'Header: value' for every unmapped column with a meaningful value."""
    consumed = mapping.consumed_headers
    parts = []
    for header, value in raw_row.items():
        if header in consumed:
            continue
        text = (value or "").strip()
        if text.lower() in MEANINGLESS_VALUES:
            continue
        parts.append(f"{header}: {text}")
    return ANNOTATION_SEPARATOR.join(parts) if parts else None


def materialize(
    raw_row: Mapping[str, str],
    mapping: ColumnMapping,
    market_type: Optional[MarketType],
    *,
    now: Optional[datetime] = None,
    row_number: Optional[int] = None,
) -> Optional[TradeCandidate]:
    """Build a TradeCandidate from one row, or None if the row should be skipped.

    Raises RowMaterializationError if the row lacks a column the mapping uses.
    """

    def get(logical: LogicalField) -> str:
        header = mapping.header_for(logical)
        if header is None:
            return ""
        if header not in raw_row:
            raise RowMaterializationError(
                f"Column '{header}' ({logical.value}) missing from row",
                row_number=row_number,
                context={"columns": list(raw_row)},
            )
        return (raw_row[header] or "").strip()

    market = market_type or MarketType.UNKNOWN
    symbol = get(LogicalField.SYMBOL).upper()

    quantity = parse_quantity(get(LogicalField.QUANTITY))
    if mapping.has(LogicalField.SIDE):
        side = normalize_side(get(LogicalField.SIDE))
    elif quantity < 0:
        side = Side.SELL  # negative quantity = short
    else:
        side = Side.BUY
    quantity = abs(quantity)

    entry_price = parse_price(get(LogicalField.ENTRY_PRICE))
    exit_price = parse_price(get(LogicalField.EXIT_PRICE))
    has_pnl_column = mapping.has(LogicalField.PNL)

    accepted = bool(symbol) and quantity > 0 and (
        (entry_price is not None and entry_price > 0) or has_pnl_column
    )
    if not accepted:
        logger.debug(
            "[RowMaterializer] Skipping row %s: symbol=%r qty=%s entry=%s",
            row_number, symbol, quantity, entry_price,
        )
        return None

    default_time = to_naive_utc(now) if now is not None else utc_now()
    notes = get(LogicalField.NOTES) or None

    trade = TradeCandidate(
        symbol=symbol,
        side=side,
        entry_price=entry_price,
        exit_price=exit_price,
        quantity=quantity,
        market_type=market,
        timestamp=parse_date(get(LogicalField.DATE), default=default_time),
        annotation=build_annotation(raw_row, mapping),
        reported_pnl=parse_number(get(LogicalField.PNL)) if has_pnl_column else None,
        exit_timestamp=parse_date_or_none(get(LogicalField.EXIT_DATE)),
        commission=parse_number(get(LogicalField.COMMISSION)),
        notes=notes,
        row_number=row_number,
    )
    return replace(trade, pnl=compute_pnl(trade, market))
