"""
Export service: stock upload templates and current-stock exports.

Every cell written to CSV or XLSX passes through sanitize_row so exported
text can never be evaluated as a spreadsheet formula.
"""

from dataclasses import dataclass
from datetime import date
from io import BytesIO
from typing import Any, Optional, Sequence

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, PatternFill
from openpyxl.utils import get_column_letter
import structlog

from config import settings
from models.stock_import import CatalogEntry
from exceptions import ValidationError

logger = structlog.get_logger(__name__)

# Leading characters spreadsheet software treats as a formula or control
FORMULA_TRIGGERS = ("=", "+", "-", "@", "\t", "\r", "\n")
NEUTRALIZING_PREFIX = "'"

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
CSV_MEDIA_TYPE = "text/csv"

FILE_FORMATS = ("xlsx", "csv")

TEMPLATE_COLUMNS = {
    "standard": ["Product Name", "Quantity", "Unit", "Category"],
    "accounting": ["Product Name", "Closing Stock", "Unit", "Category", "Location"],
}

TEMPLATE_SAMPLE_ROWS = {
    "standard": [
        ["Steel Rods 12mm", 500, "kg", "Construction"],
        ["Copper Wire 2.5mm", 120, "rolls", "Electrical"],
        ["PVC Pipe 4 inch", 75, "pieces", "Plumbing"],
    ],
    "accounting": [
        ["Steel Rods 12mm", 500, "kg", "Construction", "Main Warehouse"],
        ["Copper Wire 2.5mm", 120, "rolls", "Electrical", "Godown 2"],
        ["PVC Pipe 4 inch", 75, "pieces", "Plumbing", "Main Warehouse"],
    ],
}

EXPORT_COLUMNS = ["Product Name", "Current Stock", "Unit", "Category"]
EXPORT_SHEET_NAME = "Inventory"

HEADER_FONT = Font(bold=True, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="1F4E78", end_color="1F4E78", fill_type="solid")


@dataclass
class ExportFile:
    """Generated file ready to stream back."""
    content: bytes
    filename: str
    media_type: str


# ===================
# SANITIZATION
# ===================

def sanitize_cell(value: Any) -> Any:
    """
    Neutralize formula-injection in one cell.

    "=1+1" -> "'=1+1"; "Steel" and 500 pass through unchanged.
    """
    if isinstance(value, str) and value.startswith(FORMULA_TRIGGERS):
        return NEUTRALIZING_PREFIX + value
    return value


def sanitize_row(cells: Sequence[Any]) -> list[Any]:
    """Sanitize every cell of a row."""
    return [sanitize_cell(cell) for cell in cells]


# ===================
# GENERATORS
# ===================

def generate_template(file_format: str = "xlsx", variant: str = "standard") -> ExportFile:
    """
    Blank upload template with three sample rows.

    variant "standard":   Product Name, Quantity, Unit, Category
    variant "accounting": Product Name, Closing Stock, Unit, Category, Location

    Raises:
        ValidationError: Unknown format or variant
    """
    _check_format(file_format)
    if variant not in TEMPLATE_COLUMNS:
        raise ValidationError(
            f"Unknown template variant: {variant}",
            code="INVALID_TEMPLATE_VARIANT",
            details={"valid": list(TEMPLATE_COLUMNS)}
        )

    content = _render(
        TEMPLATE_COLUMNS[variant],
        TEMPLATE_SAMPLE_ROWS[variant],
        file_format,
        sheet_name="Stock Template",
    )

    logger.info("stock_template_generated", file_format=file_format, variant=variant)
    return ExportFile(
        content=content,
        filename=f"stock_template_{variant}.{file_format}",
        media_type=_media_type(file_format),
    )


def generate_stock_export(
    catalog: Sequence[CatalogEntry],
    file_format: str = "xlsx",
    export_date: Optional[date] = None,
) -> ExportFile:
    """
    One row per catalog entry: Product Name, Current Stock, Unit, Category.

    Products without inventory export as quantity 0 in the default unit.
    """
    _check_format(file_format)

    rows = []
    for entry in catalog:
        inventory = entry.current_inventory
        rows.append([
            entry.name,
            inventory.quantity if inventory else 0,
            (inventory.unit if inventory else None) or settings.default_unit,
            entry.category or "",
        ])

    content = _render(EXPORT_COLUMNS, rows, file_format, sheet_name=EXPORT_SHEET_NAME)
    stamp = (export_date or date.today()).isoformat()

    logger.info("stock_export_generated", file_format=file_format, rows=len(rows))
    return ExportFile(
        content=content,
        filename=f"stock_export_{stamp}.{file_format}",
        media_type=_media_type(file_format),
    )


# ===================
# RENDERING
# ===================

def _render(columns: list[str], rows: list[list[Any]], file_format: str, sheet_name: str) -> bytes:
    header = sanitize_row(columns)
    body = [sanitize_row(row) for row in rows]
    if file_format == "csv":
        return _render_csv(header, body)
    return _render_xlsx(header, body, sheet_name)


def _render_csv(header: list[Any], body: list[list[Any]]) -> bytes:
    df = pd.DataFrame(body, columns=header)
    return df.to_csv(index=False).encode("utf-8")


def _render_xlsx(header: list[Any], body: list[list[Any]], sheet_name: str) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name

    ws.append(header)
    for cell in ws[1]:
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal="center")

    for row in body:
        ws.append(row)

    for index, label in enumerate(header, start=1):
        ws.column_dimensions[get_column_letter(index)].width = max(14, len(str(label)) + 4)
    ws.freeze_panes = "A2"

    output = BytesIO()
    wb.save(output)
    return output.getvalue()


def _check_format(file_format: str) -> None:
    if file_format not in FILE_FORMATS:
        raise ValidationError(
            f"Unsupported export format: {file_format}",
            code="INVALID_EXPORT_FORMAT",
            details={"valid": list(FILE_FORMATS)}
        )


def _media_type(file_format: str) -> str:
    return CSV_MEDIA_TYPE if file_format == "csv" else XLSX_MEDIA_TYPE
