"""
Trade importer: text blob in, ImportReport out.

Pipeline:
1. Split the text into a header line and data lines
2. Classify the market from headers, falling back to a symbol sample vote
3. Map columns for that market and check the schema is viable
4. Materialize each row (capped), counting skips and failures
5. Collect heuristic warnings (undetected market, unknown sides, default dates)

Structural and schema problems never raise out of ``parse_string``; they
come back as ``ImportReport.error`` with an empty accepted list.
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

import pandas as pd

from ..config import SPLIT_MODES, IngestSettings, get_settings
from ..errors import IngestionError, RowMaterializationError, SchemaInsufficientError, StructuralError
from .column_mapper import ColumnMapping, check_schema, map_columns, unmapped_headers
from .field_normalizers import is_known_side, parse_date_or_none, to_naive_utc, utc_now
from .market_classifier import classify_from_headers, classify_from_sample, identifier_hits
from .market_knowledge import LogicalField, MarketType
from .row_materializer import TradeCandidate, materialize

logger = logging.getLogger(__name__)

MIN_ROW_TOKENS = 2

# Column order for to_dataframe()
TRADE_COLUMNS = [
    "row_number", "symbol", "side", "quantity", "entry_price", "exit_price",
    "pnl", "reported_pnl", "commission", "market_type", "timestamp",
    "exit_timestamp", "notes", "annotation",
]


# ---------------------------------------------------------------------------
# Report types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ImportFailure:
    kind: str  # "structural" | "schema_insufficient"
    message: str
    missing_fields: list[str] = field(default_factory=list)
    detected_market: str = MarketType.UNKNOWN.label
    hint: list[str] = field(default_factory=list)

    @classmethod
    def from_error(cls, exc: IngestionError, market: Optional[MarketType] = None) -> "ImportFailure":
        if isinstance(exc, SchemaInsufficientError):
            return cls(
                kind=exc.kind,
                message=exc.message,
                missing_fields=list(exc.missing_fields),
                detected_market=exc.detected_market or MarketType.UNKNOWN.label,
                hint=list(exc.hint),
            )
        return cls(
            kind=getattr(exc, "kind", "structural"),
            message=exc.message,
            detected_market=market.label if market else MarketType.UNKNOWN.label,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "message": self.message,
            "missing_fields": list(self.missing_fields),
            "detected_market": self.detected_market,
            "hint": list(self.hint),
        }


@dataclass
class ImportReport:
    accepted: list[TradeCandidate] = field(default_factory=list)
    skipped_count: int = 0
    failed_count: int = 0
    detected_market: Optional[MarketType] = None
    warnings: list[str] = field(default_factory=list)
    mapping: Optional[ColumnMapping] = None
    error: Optional[ImportFailure] = None
    total_rows: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None

    def preview(self, n: int = 5) -> list[TradeCandidate]:
        return self.accepted[:n]

    def summary(self, preview_size: int = 5) -> dict[str, Any]:
        """JSON-ready overview: counts, market, mapping, warnings, first trades."""
        return {
            "ok": self.ok,
            "detected_market": self.detected_market.value if self.detected_market else None,
            "total_rows": self.total_rows,
            "accepted_count": len(self.accepted),
            "skipped_count": self.skipped_count,
            "failed_count": self.failed_count,
            "mapping": self.mapping.as_dict() if self.mapping else {},
            "warnings": list(self.warnings),
            "error": self.error.to_dict() if self.error else None,
            "preview": [t.to_dict() for t in self.preview(preview_size)],
        }

    def to_dict(self) -> dict[str, Any]:
        data = self.summary()
        data.pop("preview")
        data["trades"] = [t.to_dict() for t in self.accepted]
        return data

    def to_dataframe(self) -> pd.DataFrame:
        """Accepted trades as a DataFrame, enums flattened to their string values."""
        if not self.accepted:
            return pd.DataFrame(columns=TRADE_COLUMNS)
        records = []
        for trade in self.accepted:
            records.append({
                "row_number": trade.row_number,
                "symbol": trade.symbol,
                "side": trade.side.value,
                "quantity": trade.quantity,
                "entry_price": trade.entry_price,
                "exit_price": trade.exit_price,
                "pnl": trade.pnl,
                "reported_pnl": trade.reported_pnl,
                "commission": trade.commission,
                "market_type": trade.market_type.value,
                "timestamp": trade.timestamp,
                "exit_timestamp": trade.exit_timestamp,
                "notes": trade.notes,
                "annotation": trade.annotation,
            })
        df = pd.DataFrame.from_records(records, columns=TRADE_COLUMNS)
        df["timestamp"] = pd.to_datetime(df["timestamp"])
        return df


# ---------------------------------------------------------------------------
# Text splitting
# ---------------------------------------------------------------------------

def _clean_cell(value: str) -> str:
    return value.strip().replace('"', "")


def _split_naive(lines: Sequence[str]) -> list[list[str]]:
    return [[_clean_cell(v) for v in line.split(",")] for line in lines]


def _split_csv(lines: Sequence[str]) -> list[list[str]]:
    reader = csv.reader(io.StringIO("\n".join(lines)), skipinitialspace=True)
    return [[v.strip() for v in row] for row in reader]


def _dedupe_headers(headers: Sequence[str]) -> list[str]:
    """Suffix repeated header names (' (2)', ' (3)') so row dicts keep every cell."""
    seen: dict[str, int] = {}
    result = []
    for header in headers:
        count = seen.get(header, 0) + 1
        seen[header] = count
        result.append(header if count == 1 else f"{header} ({count})")
    return result


def split_table(content: str, split_mode: str = "naive") -> tuple[list[str], list[list[str]]]:
    """Return (headers, data rows). Raises StructuralError without header + data."""
    if split_mode not in SPLIT_MODES:
        raise ValueError(f"Unknown split mode '{split_mode}'. Expected one of: {list(SPLIT_MODES)}")

    text = (content or "").replace("\r\n", "\n").replace("\r", "\n").lstrip("\ufeff")
    lines = [line.strip() for line in text.split("\n")]
    lines = [line for line in lines if line]
    if len(lines) < 2:
        raise StructuralError(
            "File must have a header row and at least one data row",
            context={"lines": len(lines)},
        )

    table = _split_csv(lines) if split_mode == "csv" else _split_naive(lines)
    if not any(table[0]):
        raise StructuralError("Header row is empty", context={"lines": len(lines)})
    return _dedupe_headers(table[0]), table[1:]


# ---------------------------------------------------------------------------
# Importer
# ---------------------------------------------------------------------------

class TradeImporter:
    """Runs one import batch at a time. Holds no state between calls."""

    def __init__(self, settings: Optional[IngestSettings] = None):
        self.settings = settings or get_settings()

    def parse_string(
        self,
        content: str,
        *,
        mapping_overrides: Optional[Mapping[str, str]] = None,
        now: Optional[datetime] = None,
        split_mode: Optional[str] = None,
    ) -> ImportReport:
        """Import one text blob.

        ``now`` stands in for missing dates; pass it to make imports repeatable.
        An aware ``now`` is converted to naive UTC like every parsed date.
        Raises ValueError only for caller mistakes (unknown split mode, bad
        mapping overrides).
        """
        now = to_naive_utc(now) if now is not None else utc_now()
        report = ImportReport()
        market: Optional[MarketType] = None

        try:
            headers, data_rows = split_table(content, split_mode or self.settings.split_mode)
            rows, short_rows = self._to_row_dicts(headers, data_rows)
            report.skipped_count += short_rows
            report.total_rows = len(data_rows)

            if len(rows) > self.settings.max_rows:
                report.warnings.append(
                    f"File has {len(rows)} data rows; only the first "
                    f"{self.settings.max_rows} were imported"
                )
                rows = rows[: self.settings.max_rows]

            market, market_warning = self._detect_market(headers, rows, mapping_overrides)
            report.detected_market = market
            if market_warning:
                report.warnings.append(market_warning)
            if market is None:
                report.warnings.append(
                    "Could not detect market type; trades are marked Unknown and use a 1x multiplier"
                )

            mapping = map_columns(headers, market, mapping_overrides)
            report.mapping = mapping
            report.warnings.extend(check_schema(mapping, market))
        except IngestionError as e:
            logger.warning("[TradeImporter] Import rejected (%s): %s", getattr(e, "kind", "error"), e.message)
            report.error = ImportFailure.from_error(e, market)
            return report

        extra = unmapped_headers(headers, mapping)
        if extra:
            logger.info("[TradeImporter] Unmapped columns kept as annotation: %s", extra)

        accepted_rows = []
        for row_number, raw in rows:
            try:
                trade = materialize(raw, mapping, market, now=now, row_number=row_number)
            except (ValueError, TypeError, KeyError, RowMaterializationError) as e:
                logger.debug("[TradeImporter] Row %d failed: %s", row_number, e)
                report.failed_count += 1
                continue
            if trade is None:
                report.skipped_count += 1
            else:
                report.accepted.append(trade)
                accepted_rows.append((row_number, raw))

        report.warnings.extend(self._row_warnings(accepted_rows, mapping))

        logger.info(
            "[TradeImporter] %s import: %d accepted, %d skipped, %d failed of %d rows",
            market.value if market else "UNKNOWN",
            len(report.accepted), report.skipped_count, report.failed_count, report.total_rows,
        )
        return report

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    @staticmethod
    def _to_row_dicts(
        headers: Sequence[str], data_rows: Sequence[Sequence[str]],
    ) -> tuple[list[tuple[int, dict[str, str]]], int]:
        """Zip each row with the headers. Rows with fewer than two cells are skipped."""
        rows = []
        short = 0
        for i, values in enumerate(data_rows, start=1):
            if len(values) < MIN_ROW_TOKENS:
                short += 1
                continue
            row = {h: (values[j] if j < len(values) else "") for j, h in enumerate(headers)}
            rows.append((i, row))
        return rows, short

    def _detect_market(
        self,
        headers: Sequence[str],
        rows: Sequence[tuple[int, dict[str, str]]],
        overrides: Optional[Mapping[str, str]],
    ) -> tuple[Optional[MarketType], Optional[str]]:
        """Return (market, warning). The warning flags a weak header guess."""
        market = classify_from_headers(headers)
        if market is not None and identifier_hits(headers, market):
            logger.info("[TradeImporter] Market from headers: %s", market.value)
            return market, None

        provisional = map_columns(headers, None, overrides)
        sampled = classify_from_sample(
            [row for _, row in rows],
            provisional.header_for(LogicalField.SYMBOL),
            max_sample_size=self.settings.sample_size,
        )

        if market is not None:
            # Header score rests on generic column names only
            logger.info("[TradeImporter] Market from generic headers: %s", market.value)
            if sampled is not None and sampled != market:
                return market, (
                    f"Market {market.label} was inferred only from generic column names, "
                    f"but the symbols look like {sampled.label}; P&L uses {market.label} multipliers"
                )
            return market, None

        if sampled is not None:
            logger.info("[TradeImporter] Market from symbol sample: %s", sampled.value)
        return sampled, None

    @staticmethod
    def _row_warnings(
        rows: Sequence[tuple[int, dict[str, str]]], mapping: ColumnMapping,
    ) -> list[str]:
        """Warnings about defaults applied to accepted rows."""
        warnings = []

        side_header = mapping.header_for(LogicalField.SIDE)
        if side_header:
            unknown = sorted({
                row.get(side_header, "").strip()
                for _, row in rows
                if row.get(side_header, "").strip() and not is_known_side(row.get(side_header))
            })
            if unknown:
                warnings.append(f"Unrecognized side values treated as BUY: {', '.join(unknown)}")

        date_header = mapping.header_for(LogicalField.DATE)
        if date_header is None:
            warnings.append("No date column found; trades use the import time")
        else:
            bad_dates = sum(
                1 for _, row in rows if parse_date_or_none(row.get(date_header)) is None
            )
            if bad_dates:
                warnings.append(f"{bad_dates} row(s) had unparseable dates; the import time was used")

        return warnings


def import_trades(
    content: str,
    *,
    mapping_overrides: Optional[Mapping[str, str]] = None,
    now: Optional[datetime] = None,
    split_mode: Optional[str] = None,
    settings: Optional[IngestSettings] = None,
) -> ImportReport:
    """Import a CSV-like text blob in one call."""
    return TradeImporter(settings).parse_string(
        content, mapping_overrides=mapping_overrides, now=now, split_mode=split_mode,
    )
