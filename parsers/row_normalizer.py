"""
Row normalizer.

Maps raw rows through a ColumnRoleMap into ParsedStockRow records.
"""

import re
from dataclasses import dataclass, field
from typing import Optional
import structlog

from parsers.column_resolver import ColumnRoleMap
from parsers.format_decoder import RawRow
from utils.text_utils import clean_cell

logger = structlog.get_logger(__name__)

INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")


@dataclass
class ParsedStockRow:
    """One normalized stock report line."""
    product_name: str
    quantity: int
    unit: Optional[str] = None
    category: Optional[str] = None
    row_number: int = 0  # 1-based data row in the source file


@dataclass
class RowParseWarning:
    """Non-fatal problem found in a row that was still kept (or deduplicated)."""
    row_number: int
    field: str
    value: str
    message: str


@dataclass
class NormalizationResult:
    """Rows that passed normalization plus any warnings raised on the way."""
    rows: list[ParsedStockRow] = field(default_factory=list)
    warnings: list[RowParseWarning] = field(default_factory=list)
    dropped: int = 0


def parse_quantity(raw: Optional[str]) -> Optional[int]:
    """
    Strict integer parse.

    "500" -> 500, " +12 " -> 12, "-3" -> -3
    "500.5", "1,000", "" -> None
    """
    if raw is None:
        return None
    text = str(raw).strip()
    if not INTEGER_PATTERN.match(text):
        return None
    return int(text)


def normalize_rows(raw_rows: list[RawRow], role_map: ColumnRoleMap) -> NormalizationResult:
    """
    Normalize raw rows in input order.

    - Empty/whitespace names: row dropped
    - Unparseable quantity: quantity 0 with a RowParseWarning
    - Negative quantity: row dropped
    - Unit/category: trimmed, empty -> None, unresolved role -> None
    """
    result = NormalizationResult()

    for index, raw in enumerate(raw_rows, start=1):
        name = clean_cell(raw.get(role_map.name))
        if not name:
            result.dropped += 1
            continue

        raw_quantity = raw.get(role_map.quantity, "")
        quantity = parse_quantity(raw_quantity)
        if quantity is None:
            result.warnings.append(RowParseWarning(
                row_number=index,
                field="quantity",
                value=str(raw_quantity),
                message=f"Quantity '{raw_quantity}' is not a whole number; imported as 0"
            ))
            quantity = 0
        elif quantity < 0:
            result.dropped += 1
            continue

        result.rows.append(ParsedStockRow(
            product_name=name,
            quantity=quantity,
            unit=clean_cell(raw.get(role_map.unit)) if role_map.unit else None,
            category=clean_cell(raw.get(role_map.category)) if role_map.category else None,
            row_number=index,
        ))

    logger.info(
        "rows_normalized",
        rows=len(result.rows),
        dropped=result.dropped,
        warnings=len(result.warnings)
    )

    return result
