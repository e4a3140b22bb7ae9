"""Tests for side, number and date normalization."""

import time
from datetime import datetime, timedelta, timezone

import pytest

from tradeingest.parsers.field_normalizers import (
    Side,
    is_known_side,
    normalize_side,
    parse_date,
    parse_date_or_none,
    parse_number,
    parse_price,
    parse_quantity,
    to_naive_utc,
)


class TestSide:
    @pytest.mark.parametrize("token", [
        "buy", "BUY", " Buy ", "long", "b", "1", "bought", "BOT", "purchase",
        "bid", "call", "bullish", "Buy to Open", "cover", "Market Buy",
    ])
    def test_buy_tokens(self, token):
        assert normalize_side(token) is Side.BUY
        assert is_known_side(token)

    @pytest.mark.parametrize("token", [
        "sell", "SELL", "short", "s", "-1", "sold", "SLD", "sale", "ask", "put",
        "bearish", "close", "Sell to Close", "SELL - LIMIT", "Short Sale",
    ])
    def test_sell_tokens(self, token):
        assert normalize_side(token) is Side.SELL
        assert is_known_side(token)

    @pytest.mark.parametrize("token", ["", "   ", None, "xyz", "transfer"])
    def test_unknown_defaults_to_buy(self, token):
        assert normalize_side(token) is Side.BUY
        assert not is_known_side(token)

    def test_direction(self):
        assert Side.BUY.direction == 1
        assert Side.SELL.direction == -1


class TestNumbers:
    @pytest.mark.parametrize("raw,expected", [
        ("150.50", 150.5),
        ("$1,234.56", 1234.56),
        ("(45.10)", -45.10),
        ("($45.10)", -45.10),
        ("USD 158.50", 158.5),
        ("-50", -50.0),
        ("+3", 3.0),
        ("1e3", 1000.0),
        (" 7 ", 7.0),
    ])
    def test_parse_number(self, raw, expected):
        assert parse_number(raw) == pytest.approx(expected)

    @pytest.mark.parametrize("raw", [None, "", "  ", "abc", "nan", "inf", "-", "$"])
    def test_not_numeric(self, raw):
        assert parse_number(raw) is None

    def test_zero_price_is_a_price(self):
        assert parse_price("0") == 0.0
        assert parse_price("") is None

    def test_quantity_defaults_to_zero(self):
        assert parse_quantity("") == 0.0
        assert parse_quantity("n/a") == 0.0
        assert parse_quantity("-50") == -50.0


class TestDates:
    @pytest.mark.parametrize("raw,expected", [
        ("2024-01-15", datetime(2024, 1, 15)),
        ("2024-01-15 09:30:00", datetime(2024, 1, 15, 9, 30)),
        ("2024-01-15T09:30:00Z", datetime(2024, 1, 15, 9, 30)),
        ("2024-01-15T09:30:00+02:00", datetime(2024, 1, 15, 7, 30)),
        ("2024/01/15", datetime(2024, 1, 15)),
        ("20240115", datetime(2024, 1, 15)),
        ("Jan 15, 2024", datetime(2024, 1, 15)),
        ("01/15/2024", datetime(2024, 1, 15)),
        ("01/15/2024 09:30:00", datetime(2024, 1, 15, 9, 30)),
        ("01/15/2024 02:30:00 PM", datetime(2024, 1, 15, 14, 30)),
        ("1/5/24", datetime(2024, 1, 5)),
        ("15/01/2024", datetime(2024, 1, 15)),
        ("1705312200", datetime(2024, 1, 15, 9, 50)),
        ("1705312200000", datetime(2024, 1, 15, 9, 50)),
    ])
    def test_formats(self, raw, expected):
        assert parse_date(raw) == expected

    def test_month_first_wins_when_ambiguous(self):
        assert parse_date("02/03/2024") == datetime(2024, 2, 3)

    def test_results_are_naive(self):
        assert parse_date("2024-01-15T09:30:00-05:00").tzinfo is None

    @pytest.mark.parametrize("raw", ["", "garbage", "13/13/2024", None])
    def test_fallback_to_default(self, raw):
        default = datetime(2024, 6, 1, 12, 0)
        assert parse_date(raw, default=default) == default
        assert parse_date_or_none(raw) is None

    @pytest.mark.skipif(not hasattr(time, "tzset"), reason="needs time.tzset")
    def test_fallback_without_default_is_utc_now(self, monkeypatch):
        monkeypatch.setenv("TZ", "Asia/Tokyo")
        time.tzset()
        try:
            parsed = parse_date("not a date")
            utc = datetime.now(timezone.utc).replace(tzinfo=None)
        finally:
            monkeypatch.undo()
            time.tzset()
        assert parsed.tzinfo is None
        assert abs(parsed - utc) < timedelta(minutes=5)

    def test_to_naive_utc(self):
        aware = datetime(2024, 1, 15, 18, 30, tzinfo=timezone(timedelta(hours=9)))
        assert to_naive_utc(aware) == datetime(2024, 1, 15, 9, 30)
        assert to_naive_utc(datetime(2024, 1, 15)) == datetime(2024, 1, 15)
