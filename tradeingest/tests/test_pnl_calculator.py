"""Tests for per-market P&L computation."""

import math
from datetime import datetime

import pandas as pd
import pytest

from tradeingest.analyzers.pnl_calculator import (
    calculate_pnl,
    compute_pnl,
    compute_pnl_frame,
    compute_pnl_with_commission,
    detect_forex_lot_size,
    forex_pip_value,
    unit_multiplier,
)
from tradeingest.parsers.field_normalizers import Side
from tradeingest.parsers.market_knowledge import MarketType
from tradeingest.parsers.row_materializer import TradeCandidate


def _trade(symbol="AAPL", side=Side.BUY, entry=100.0, exit_=110.0, qty=10.0,
           market=MarketType.STOCKS) -> TradeCandidate:
    return TradeCandidate(
        symbol=symbol,
        side=side,
        entry_price=entry,
        exit_price=exit_,
        quantity=qty,
        market_type=market,
        timestamp=datetime(2024, 1, 15),
    )


class TestCalculatePnl:
    @pytest.mark.parametrize("symbol,market,entry,exit_,qty", [
        ("AAPL", MarketType.STOCKS, 150.5, 155.25, 100),
        ("ESZ24", MarketType.FUTURES, 4500, 4510, 2),
        ("AAPL 240119C150", MarketType.OPTIONS, 2.0, 3.5, 3),
        ("EURUSD", MarketType.FOREX, 1.085, 1.09, 0.5),
        ("BTCUSDT", MarketType.CRYPTO, 42000, 41000, 0.25),
        ("XYZ", MarketType.UNKNOWN, 10, 12, 7),
        ("XYZ", None, 10, 12, 7),
    ])
    def test_side_flip_symmetry(self, symbol, market, entry, exit_, qty):
        buy = calculate_pnl(symbol, Side.BUY, entry, exit_, qty, market)
        sell = calculate_pnl(symbol, Side.SELL, entry, exit_, qty, market)
        assert buy == pytest.approx(-sell)

    def test_es_futures(self):
        assert calculate_pnl("ES", Side.BUY, 4500, 4510, 2, MarketType.FUTURES) == 1000

    def test_unknown_futures_root_uses_one(self):
        assert calculate_pnl("ZZZ", Side.BUY, 100, 101, 2, MarketType.FUTURES) == 2

    def test_options_contract_size(self):
        pnl = calculate_pnl("AAPL 240119C150", Side.BUY, 2.0, 3.5, 2, MarketType.OPTIONS)
        assert pnl == pytest.approx(300)

    def test_forex_standard_lots(self):
        pnl = calculate_pnl("EUR/USD", Side.BUY, 1.0850, 1.0900, 0.5, MarketType.FOREX)
        assert pnl == pytest.approx(250)

    def test_forex_base_units(self):
        pnl = calculate_pnl("EUR/USD", Side.SELL, 1.0900, 1.0850, 10000, MarketType.FOREX)
        assert pnl == pytest.approx(50)

    def test_short_stock(self):
        assert calculate_pnl("MSFT", Side.SELL, 380, 375.5, 50, MarketType.STOCKS) == pytest.approx(225)

    def test_quantity_sign_is_ignored(self):
        assert calculate_pnl("AAPL", Side.BUY, 10, 12, -5, MarketType.STOCKS) == 10

    @pytest.mark.parametrize("entry,exit_", [(None, 10.0), (10.0, None), (None, None)])
    def test_missing_price(self, entry, exit_):
        assert calculate_pnl("AAPL", Side.BUY, entry, exit_, 1, MarketType.STOCKS) is None

    def test_zero_price_is_not_missing(self):
        assert calculate_pnl("AAPL", Side.BUY, 0.0, 5.0, 1, MarketType.STOCKS) == 5


class TestMultipliers:
    @pytest.mark.parametrize("qty,lot", [
        (0.005, 100000000),
        (0.01, 100000),
        (0.5, 100000),
        (1, 100000),
        (999, 100000),
        (1000, 1),
        (250000, 1),
    ])
    def test_forex_lot_thresholds(self, qty, lot):
        assert detect_forex_lot_size(qty) == lot

    def test_unit_multiplier(self):
        assert unit_multiplier("NQ", 1, MarketType.FUTURES) == 20
        assert unit_multiplier("AAPL 240119C150", 1, MarketType.OPTIONS) == 100
        assert unit_multiplier("AAPL", 1, MarketType.STOCKS) == 1
        assert unit_multiplier("BTC", 1, MarketType.CRYPTO) == 1
        assert unit_multiplier("ES", 1, None) == 1


class TestTradeHelpers:
    def test_compute_pnl_uses_trade_market(self):
        trade = _trade("ES", entry=4500, exit_=4510, qty=2, market=MarketType.FUTURES)
        assert compute_pnl(trade) == 1000

    def test_compute_pnl_market_override(self):
        trade = _trade("ES", entry=4500, exit_=4510, qty=2, market=MarketType.FUTURES)
        assert compute_pnl(trade, MarketType.STOCKS) == 20

    def test_commission_closed_trade(self):
        trade = _trade(entry=100, exit_=110, qty=100)
        # 1000 gross, (1.00 + 0.01 * 100) per side, two sides
        assert compute_pnl_with_commission(trade, per_trade=1.0, per_unit=0.01) == pytest.approx(996)

    def test_commission_open_trade(self):
        trade = _trade(entry=100, exit_=None, qty=100)
        assert compute_pnl_with_commission(trade, per_trade=1.0) is None

    def test_commission_defaults_to_zero(self):
        trade = _trade(entry=100, exit_=110, qty=10)
        assert compute_pnl_with_commission(trade) == compute_pnl(trade)


class TestPipValue:
    def test_usd_quote(self):
        assert forex_pip_value("EUR/USD") == 10
        assert forex_pip_value("GBPUSD", lot_size=10000) == pytest.approx(1)

    def test_usd_base(self):
        assert forex_pip_value("USDJPY") == pytest.approx(9.2)

    def test_cross_defaults(self):
        assert forex_pip_value("EURGBP") == 10


class TestFrame:
    def test_matches_scalar_computation(self):
        trades = [
            _trade("ES", Side.BUY, 4500, 4510, 2, MarketType.FUTURES),
            _trade("MSFT", Side.SELL, 380, 375.5, 50, MarketType.STOCKS),
            _trade("EURUSD", Side.BUY, 1.085, 1.09, 0.5, MarketType.FOREX),
            _trade("AAPL 240119C150", Side.SELL, 2.0, 3.5, 1, MarketType.OPTIONS),
        ]
        df = pd.DataFrame([
            {
                "symbol": t.symbol,
                "side": t.side,
                "entry_price": t.entry_price,
                "exit_price": t.exit_price,
                "quantity": t.quantity,
                "market_type": t.market_type,
            }
            for t in trades
        ])
        result = compute_pnl_frame(df)
        assert result.name == "pnl"
        for value, trade in zip(result, trades):
            assert value == pytest.approx(compute_pnl(trade))

    def test_string_columns_and_missing_prices(self):
        df = pd.DataFrame({
            "symbol": ["NQ", "AAPL"],
            "side": ["SELL", "BUY"],
            "entry_price": [15800, 150.0],
            "exit_price": [15750, None],
            "quantity": [1, 10],
            "market_type": ["FUTURES", "STOCKS"],
        })
        result = compute_pnl_frame(df)
        assert result.iloc[0] == pytest.approx(1000)
        assert math.isnan(result.iloc[1])

    def test_empty_frame(self):
        df = pd.DataFrame(columns=["symbol", "side", "entry_price", "exit_price", "quantity", "market_type"])
        assert compute_pnl_frame(df).empty

    def test_missing_symbol(self):
        df = pd.DataFrame({
            "symbol": [None, "ES"],
            "side": ["BUY", "BUY"],
            "entry_price": [10.0, 4500],
            "exit_price": [12.0, 4510],
            "quantity": [1, 2],
            "market_type": ["FUTURES", "FUTURES"],
        })
        result = compute_pnl_frame(df)
        assert list(result) == pytest.approx([2.0, 1000.0])
