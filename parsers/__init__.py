"""
Stock report parsers.
"""

from parsers.format_decoder import decode_file, detect_format, RawRow
from parsers.column_resolver import ColumnRoleMap, resolve_columns, ROLE_KEYWORDS
from parsers.row_normalizer import (
    ParsedStockRow,
    RowParseWarning,
    NormalizationResult,
    normalize_rows,
    parse_quantity,
)
from parsers.stock_file_parser import StockFileParseResult, parse_stock_file

__all__ = [
    "decode_file",
    "detect_format",
    "RawRow",
    "ColumnRoleMap",
    "resolve_columns",
    "ROLE_KEYWORDS",
    "ParsedStockRow",
    "RowParseWarning",
    "NormalizationResult",
    "normalize_rows",
    "parse_quantity",
    "StockFileParseResult",
    "parse_stock_file",
]
