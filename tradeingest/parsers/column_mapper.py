"""
Column mapper: resolve logical trade fields to the headers of an export.

Headers and vocabulary terms are compared after lower-casing and stripping
every non-alphanumeric character ("Entry Price" -> "entryprice"). A header
matches a term when either string contains the other. Fields are resolved
in ``LogicalField`` order and each header is bound to at most one field.

For each field an exact normalized match anywhere in the header row wins
over a substring match, so "Exit Price" beats "Exit Date" for the exit
price even when the date column comes first. A header that exactly names
some field is never taken by another field's substring match ("Entry"
stays an entry price even though "entrytime" contains it). Strings
shorter than three characters only match exactly ("pl" must not match
"multiplier").
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Sequence

from ..errors import SchemaInsufficientError
from .market_knowledge import (
    REQUIRED_FIELDS,
    LogicalField,
    MarketType,
    field_vocabulary,
    market_hint,
)

logger = logging.getLogger(__name__)

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")
_MIN_SUBSTRING_LEN = 3
_FIELD_ORDER = {f: i for i, f in enumerate(LogicalField)}


def normalize_header(text: str) -> str:
    return _NON_ALNUM_RE.sub("", text.lower())


@dataclass(frozen=True)
class ColumnMapping:
    """Logical field -> header name for one import batch."""

    fields: Mapping[LogicalField, str] = field(default_factory=dict)

    def header_for(self, logical: LogicalField) -> Optional[str]:
        return self.fields.get(logical)

    def has(self, logical: LogicalField) -> bool:
        return logical in self.fields

    @property
    def consumed_headers(self) -> frozenset[str]:
        return frozenset(self.fields.values())

    def missing_required(self) -> list[LogicalField]:
        return [f for f in REQUIRED_FIELDS if f not in self.fields]

    def is_viable(self) -> bool:
        """Symbol plus either an entry price or a direct P&L column."""
        return self.has(LogicalField.SYMBOL) and (
            self.has(LogicalField.ENTRY_PRICE) or self.has(LogicalField.PNL)
        )

    def as_dict(self) -> dict[str, str]:
        return {f.value: h for f, h in self.fields.items()}

    @classmethod
    def from_dict(cls, raw: Mapping[str, str], headers: Sequence[str]) -> "ColumnMapping":
        """Build a mapping from user input, validating fields and headers."""
        return cls(_apply_overrides(raw, headers))


def _matches(header_norm: str, term_norm: str) -> bool:
    if not header_norm or not term_norm:
        return False
    if len(header_norm) < _MIN_SUBSTRING_LEN or len(term_norm) < _MIN_SUBSTRING_LEN:
        return header_norm == term_norm
    return term_norm in header_norm or header_norm in term_norm


def _apply_overrides(
    overrides: Mapping[str, str], headers: Sequence[str],
) -> dict[LogicalField, str]:
    bound: dict[LogicalField, str] = {}
    for field_name, header in overrides.items():
        try:
            logical = LogicalField(field_name)
        except ValueError:
            raise ValueError(
                f"Unknown field '{field_name}'. "
                f"Expected one of: {[f.value for f in LogicalField]}"
            ) from None
        if header not in headers:
            raise ValueError(f"Column '{header}' (for {field_name}) not found in headers")
        if header in bound.values():
            raise ValueError(f"Column '{header}' is mapped to more than one field")
        bound[logical] = header
    return bound


def map_columns(
    headers: Sequence[str],
    market: Optional[MarketType] = None,
    overrides: Optional[Mapping[str, str]] = None,
) -> ColumnMapping:
    """Propose a best-effort field -> header mapping for ``market``.

    ``overrides`` (field name -> header) are bound first and never replaced.
    """
    vocab = field_vocabulary(market)
    terms = {f: [normalize_header(t) for t in vocab[f]] for f in LogicalField}
    bound = _apply_overrides(overrides or {}, headers)
    used = set(bound.values())
    normalized = [(h, normalize_header(h)) for h in headers]

    # Headers that exactly name a field are reserved for that field
    exact_owner = {h: {f for f in LogicalField if n in terms[f]} for h, n in normalized}

    for logical in LogicalField:
        if logical in bound:
            continue

        candidates = [(h, n) for h, n in normalized if h not in used and n]
        match = next((h for h, n in candidates if logical in exact_owner[h]), None)
        if match is None:
            match = next(
                (
                    h for h, n in candidates
                    if not exact_owner[h] and any(_matches(n, t) for t in terms[logical])
                ),
                None,
            )
        if match is not None:
            bound[logical] = match
            used.add(match)

    mapping = ColumnMapping(dict(sorted(bound.items(), key=lambda kv: _FIELD_ORDER[kv[0]])))
    logger.info(
        "[ColumnMapper] %d/%d headers mapped for %s: %s",
        len(mapping.fields), len(headers),
        market.value if market else "no market", mapping.as_dict(),
    )
    return mapping


def check_schema(mapping: ColumnMapping, market: Optional[MarketType]) -> list[str]:
    """Return warnings for unresolved required fields.

    Raises SchemaInsufficientError when not even the minimum viable subset
    (symbol + entry price or direct P&L) could be mapped.
    """
    missing = [f.value for f in mapping.missing_required()]
    label = market.label if market else "Unknown"

    if not mapping.is_viable():
        hint = market_hint(market)
        message = f"Could not find required columns: {', '.join(missing)}"
        if hint:
            message += f". {label} exports usually include: {', '.join(hint)}"
        raise SchemaInsufficientError(
            message,
            missing_fields=missing,
            detected_market=label,
            hint=hint,
            context={"mapped": mapping.as_dict()},
        )

    if missing:
        return [f"Required fields not mapped: {', '.join(missing)}"]
    return []


def unmapped_headers(headers: Iterable[str], mapping: ColumnMapping) -> list[str]:
    consumed = mapping.consumed_headers
    return [h for h in headers if h not in consumed]
