"""Tests for header -> logical field mapping and schema checks."""

import pytest

from tradeingest.errors import SchemaInsufficientError
from tradeingest.parsers.column_mapper import (
    ColumnMapping,
    check_schema,
    map_columns,
    normalize_header,
    unmapped_headers,
)
from tradeingest.parsers.market_knowledge import LogicalField, MarketType


def test_normalize_header():
    assert normalize_header("Entry Price") == "entryprice"
    assert normalize_header("P&L") == "pl"
    assert normalize_header("Date/Time") == "datetime"
    assert normalize_header("---") == ""


class TestMapColumns:
    def test_generic_stock_export(self):
        headers = ["Symbol", "Type", "Quantity", "Entry Price", "Entry Date"]
        mapping = map_columns(headers, MarketType.STOCKS)
        assert mapping.as_dict() == {
            "symbol": "Symbol",
            "side": "Type",
            "date": "Entry Date",
            "entry_price": "Entry Price",
            "quantity": "Quantity",
        }

    def test_futures_export(self):
        headers = ["Contract", "Side", "Qty", "Entry", "Exit", "Date"]
        mapping = map_columns(headers, MarketType.FUTURES)
        assert mapping.as_dict() == {
            "symbol": "Contract",
            "side": "Side",
            "date": "Date",
            "entry_price": "Entry",
            "exit_price": "Exit",
            "quantity": "Qty",
        }

    def test_exact_match_beats_earlier_substring(self):
        headers = ["Symbol", "Date", "Exit Date", "Exit Price", "Entry", "Qty"]
        mapping = map_columns(headers)
        assert mapping.header_for(LogicalField.EXIT_PRICE) == "Exit Price"
        assert mapping.header_for(LogicalField.EXIT_DATE) == "Exit Date"

    def test_short_terms_only_match_exactly(self):
        headers = ["Symbol", "Multiplier", "Entry", "Qty", "P/L"]
        mapping = map_columns(headers)
        assert mapping.header_for(LogicalField.PNL) == "P/L"
        assert "Multiplier" not in mapping.consumed_headers

    def test_substring_match(self):
        headers = ["Symbol", "Action", "Quantity", "T. Price", "Date/Time", "Comm/Fee"]
        mapping = map_columns(headers)
        assert mapping.header_for(LogicalField.ENTRY_PRICE) == "T. Price"
        assert mapping.header_for(LogicalField.DATE) == "Date/Time"
        assert mapping.header_for(LogicalField.COMMISSION) == "Comm/Fee"

    def test_each_header_used_once(self):
        headers = ["Symbol", "Side", "Price", "Close", "Qty", "Date", "Notes"]
        mapping = map_columns(headers)
        values = list(mapping.fields.values())
        assert len(values) == len(set(values))

    def test_market_vocabulary_is_used(self):
        headers = ["Currency_Pair", "Side", "Rate", "Lot_Size"]
        mapping = map_columns(headers, MarketType.FOREX)
        assert mapping.header_for(LogicalField.SYMBOL) == "Currency_Pair"
        assert mapping.header_for(LogicalField.QUANTITY) == "Lot_Size"

    def test_blank_headers_never_match(self):
        mapping = map_columns(["Symbol", "---", "Price", "Qty"])
        assert "---" not in mapping.consumed_headers
        assert unmapped_headers(["Symbol", "---", "Price", "Qty"], mapping) == ["---"]


class TestOverrides:
    def test_override_is_bound_first(self):
        mapping = map_columns(["Ticker", "Px", "Shares"], None, {"entry_price": "Px"})
        assert mapping.as_dict() == {
            "symbol": "Ticker",
            "entry_price": "Px",
            "quantity": "Shares",
        }

    def test_override_wins_over_automatic_match(self):
        mapping = map_columns(["Symbol", "Price", "Avg Px", "Qty"], None, {"entry_price": "Avg Px"})
        assert mapping.header_for(LogicalField.ENTRY_PRICE) == "Avg Px"

    def test_unknown_field(self):
        with pytest.raises(ValueError, match="Unknown field"):
            map_columns(["Symbol"], None, {"ticker": "Symbol"})

    def test_unknown_header(self):
        with pytest.raises(ValueError, match="not found"):
            map_columns(["Symbol"], None, {"symbol": "Ticker"})

    def test_duplicate_header(self):
        with pytest.raises(ValueError, match="more than one"):
            ColumnMapping.from_dict({"entry_price": "Price", "exit_price": "Price"}, ["Price"])


class TestCheckSchema:
    def test_complete_mapping_has_no_warnings(self):
        mapping = map_columns(["Symbol", "Qty", "Price"])
        assert check_schema(mapping, MarketType.STOCKS) == []

    def test_pnl_only_is_viable_with_warning(self):
        mapping = map_columns(["Symbol", "Qty", "P&L"])
        assert mapping.is_viable()
        warnings = check_schema(mapping, None)
        assert len(warnings) == 1
        assert "entry_price" in warnings[0]

    def test_insufficient_schema(self):
        mapping = map_columns(["Contract", "Side", "Qty"], MarketType.FUTURES)
        with pytest.raises(SchemaInsufficientError) as exc_info:
            check_schema(mapping, MarketType.FUTURES)
        err = exc_info.value
        assert err.kind == "schema_insufficient"
        assert err.missing_fields == ["entry_price"]
        assert err.detected_market == "Futures"
        assert "contract" in err.hint
        assert "Futures exports usually include" in err.message

    def test_insufficient_without_market(self):
        mapping = map_columns(["Foo", "Bar"])
        with pytest.raises(SchemaInsufficientError) as exc_info:
            check_schema(mapping, None)
        assert exc_info.value.detected_market == "Unknown"
        assert exc_info.value.hint == []
        assert set(exc_info.value.missing_fields) == {"symbol", "entry_price", "quantity"}
