"""
Sample import files, one per common broker layout.

Served to users as starting points and used by the test suite as realistic
inputs. Each template is a complete CSV (header + rows) the importer accepts.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ImportTemplate:
    name: str
    label: str
    content: str


_TEMPLATES: dict[str, ImportTemplate] = {
    t.name: t
    for t in (
        ImportTemplate(
            name="generic",
            label="Generic",
            content=(
                "Symbol,Type,Quantity,Entry Price,Entry Date,Exit Price,Exit Date,Commission,Notes\n"
                "AAPL,BUY,100,150.50,2024-01-15,155.25,2024-01-20,1.00,Breakout trade\n"
                "MSFT,SELL,50,380.00,2024-01-16,375.50,2024-01-18,1.00,Short on resistance\n"
            ),
        ),
        ImportTemplate(
            name="td_ameritrade",
            label="TD Ameritrade",
            content=(
                "Symbol,Side,Qty,Price,Time,Commission\n"
                "AAPL,BOT,100,150.50,01/15/2024 09:30:00,0.65\n"
                "AAPL,SOLD,100,155.25,01/20/2024 14:30:00,0.65\n"
            ),
        ),
        ImportTemplate(
            name="interactive_brokers",
            label="Interactive Brokers",
            content=(
                "Symbol,Action,Quantity,T. Price,Date/Time,Comm/Fee\n"
                "AAPL,BUY,100,150.50,2024-01-15 09:30:00,1.00\n"
                "AAPL,SELL,100,155.25,2024-01-20 14:30:00,1.00\n"
            ),
        ),
        ImportTemplate(
            name="etrade",
            label="E*TRADE",
            content=(
                "Symbol,Transaction Type,Quantity,Price,Trade Date\n"
                "AAPL,Bought,100,150.50,01/15/2024\n"
                "AAPL,Sold,100,155.25,01/20/2024\n"
            ),
        ),
        ImportTemplate(
            name="futures",
            label="Futures",
            content=(
                "Contract,Side,Qty,Entry,Exit,Date\n"
                "ES,BUY,2,4500,4510,2024-01-15\n"
                "NQ,SELL,1,15800,15750,2024-01-16\n"
            ),
        ),
        ImportTemplate(
            name="forex",
            label="Forex",
            content=(
                "Pair,Side,Lots,Entry Price,Exit Price,Open Time\n"
                "EUR/USD,BUY,0.5,1.0850,1.0900,2024-01-15 09:30:00\n"
                "GBP/USD,SELL,1,1.2700,1.2650,2024-01-16 10:00:00\n"
            ),
        ),
        ImportTemplate(
            name="crypto",
            label="Crypto",
            content=(
                "Coin,Side,Amount,Price,Timestamp\n"
                "BTC,BUY,0.5,42000,1705312200\n"
                "ETH,SELL,2,2500,1705398600\n"
            ),
        ),
    )
}


def list_templates() -> list[ImportTemplate]:
    return list(_TEMPLATES.values())


def get_template(name: str) -> ImportTemplate:
    """Look up a template by name. Raises KeyError for unknown names."""
    key = name.strip().lower()
    if key not in _TEMPLATES:
        raise KeyError(f"Unknown template '{name}'. Available: {sorted(_TEMPLATES)}")
    return _TEMPLATES[key]
