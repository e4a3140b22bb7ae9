"""
Error classifications for trade ingestion.

Structural and schema failures abort a batch; the importer turns them into
an ``ImportFailure`` on the report instead of letting them escape.
Row-level failures are counted and the batch continues.
"""

from __future__ import annotations

from typing import Any, Optional


class IngestionError(Exception):
    """Base class for ingestion failures that the importer reports gracefully."""

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


class StructuralError(IngestionError):
    """The input text does not have a header line plus at least one data line."""

    kind = "structural"


class SchemaInsufficientError(IngestionError):
    """Required logical fields could not be resolved from the headers."""

    kind = "schema_insufficient"

    def __init__(
        self,
        message: str,
        missing_fields: Optional[list[str]] = None,
        detected_market: Optional[str] = None,
        hint: Optional[list[str]] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.missing_fields = missing_fields or []
        self.detected_market = detected_market
        self.hint = hint or []


class RowMaterializationError(IngestionError):
    """A single data row could not be turned into a trade."""

    def __init__(self, message: str, row_number: Optional[int] = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.row_number = row_number
