"""Market-aware trade ingestion and P&L normalization."""

from .parsers.market_knowledge import MarketType
from .parsers.field_normalizers import Side
from .parsers.row_materializer import TradeCandidate
from .parsers.trade_importer import ImportFailure, ImportReport, TradeImporter, import_trades

__version__ = "0.1.0"
