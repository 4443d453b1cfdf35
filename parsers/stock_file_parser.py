"""
Stock report parser: decode -> resolve columns -> normalize rows.

Read-only; safe to re-run when the same file is uploaded again.
"""

from dataclasses import dataclass, field
from typing import Optional
import structlog

from parsers.format_decoder import decode_file
from parsers.column_resolver import ColumnRoleMap, resolve_columns
from parsers.row_normalizer import ParsedStockRow, RowParseWarning, normalize_rows

logger = structlog.get_logger(__name__)


@dataclass
class StockFileParseResult:
    """Result of parsing one uploaded stock report."""
    filename: Optional[str]
    columns: ColumnRoleMap
    rows: list[ParsedStockRow] = field(default_factory=list)
    warnings: list[RowParseWarning] = field(default_factory=list)
    dropped: int = 0

    @property
    def has_data(self) -> bool:
        return len(self.rows) > 0


def parse_stock_file(content: bytes, filename: Optional[str]) -> StockFileParseResult:
    """
    Parse an uploaded stock report.

    Raises:
        UnsupportedFormatError: Unrecognized extension
        MalformedInputError: Unreadable file or no data rows
        UnresolvableColumnsError: No name or quantity column
    """
    raw_rows = decode_file(content, filename)
    role_map = resolve_columns(list(raw_rows[0].keys()))
    normalized = normalize_rows(raw_rows, role_map)

    logger.info(
        "stock_file_parsed",
        filename=filename,
        rows=len(normalized.rows),
        warnings=len(normalized.warnings)
    )

    return StockFileParseResult(
        filename=filename,
        columns=role_map,
        rows=normalized.rows,
        warnings=normalized.warnings,
        dropped=normalized.dropped,
    )
