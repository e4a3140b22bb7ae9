from .market_knowledge import MarketType, LogicalField, MarketDefinition, MARKET_DEFINITIONS, get_definition, iter_definitions
from .field_normalizers import Side, normalize_side, parse_date, parse_number, parse_price, parse_quantity
from .market_classifier import (
    classify_from_headers,
    classify_from_sample,
    classify_from_symbol,
    identifier_hits,
)
from .column_mapper import ColumnMapping, map_columns, check_schema
from .templates import ImportTemplate, get_template, list_templates
