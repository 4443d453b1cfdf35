"""
Unit tests for the format decoder.
"""

from io import BytesIO
from unittest.mock import patch

import pytest
from openpyxl import Workbook

from config import settings
from parsers.format_decoder import clean_headers, decode_file, detect_format
from exceptions import UnsupportedFormatError, MalformedInputError


def make_workbook(rows: list[list], extra_sheet: bool = False) -> bytes:
    """Build an .xlsx payload in memory."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Stock"
    for row in rows:
        ws.append(row)
    if extra_sheet:
        other = wb.create_sheet("Other")
        other.append(["Name", "Qty"])
        other.append(["Should not appear", 1])
        wb.active = 1
    output = BytesIO()
    wb.save(output)
    return output.getvalue()


# ===================
# FORMAT DETECTION
# ===================

class TestDetectFormat:
    """Tests for extension detection."""

    def test_csv(self):
        assert detect_format("stock.csv") == "csv"

    def test_xlsx_case_insensitive(self):
        assert detect_format("STOCK.XLSX") == "xlsx"

    def test_xlsm(self):
        assert detect_format("tally_export.xlsm") == "xlsx"

    def test_unknown_extension_rejected(self):
        with pytest.raises(UnsupportedFormatError) as exc_info:
            detect_format("stock.pdf")
        assert exc_info.value.code == "UNSUPPORTED_FORMAT"
        assert ".csv" in exc_info.value.details["supported"]

    def test_missing_filename_rejected(self):
        with pytest.raises(UnsupportedFormatError):
            detect_format(None)

    def test_unsupported_checked_before_content(self):
        """Extension fails even when content is empty."""
        with pytest.raises(UnsupportedFormatError):
            decode_file(b"", "stock.txt")


# ===================
# CSV
# ===================

class TestCsvDecoding:
    """Tests for delimited text input."""

    def test_rows_in_order(self):
        content = b"Product Name,Closing Stock\nSteel Rods,500\nNew Alloy,75"

        rows = decode_file(content, "stock.csv")

        assert rows == [
            {"Product Name": "Steel Rods", "Closing Stock": "500"},
            {"Product Name": "New Alloy", "Closing Stock": "75"},
        ]

    def test_quoted_fields_unescaped(self):
        content = b'Product,Qty\n"Rods, Steel 12mm",5\n"Wire ""Heavy""",3\n'

        rows = decode_file(content, "stock.csv")

        assert rows[0]["Product"] == "Rods, Steel 12mm"
        assert rows[1]["Product"] == 'Wire "Heavy"'

    def test_values_kept_as_text(self):
        content = b"Item,Qty\n00123,007\n"

        rows = decode_file(content, "stock.csv")

        assert rows[0] == {"Item": "00123", "Qty": "007"}

    def test_missing_trailing_field_is_empty_string(self):
        content = b"Name,Qty,Unit\nSteel,5\n"

        rows = decode_file(content, "stock.csv")

        assert rows[0]["Unit"] == ""

    def test_header_whitespace_stripped(self):
        content = b" Product Name , Qty \nSteel,5\n"

        rows = decode_file(content, "stock.csv")

        assert list(rows[0].keys()) == ["Product Name", "Qty"]

    def test_utf8_bom_ignored(self):
        content = "\ufeffProduct,Qty\nSteel,5\n".encode("utf-8")

        rows = decode_file(content, "stock.csv")

        assert "Product" in rows[0]

    def test_latin1_file_decoded(self):
        content = "Product,Qty\nCaf\u00e9 Blend,5\n".encode("latin-1")

        rows = decode_file(content, "stock.csv")

        assert rows == [{"Product": "Caf\u00e9 Blend", "Qty": "5"}]

    def test_blank_header_named_by_position(self):
        content = b",Particulars,Closing Stock\n1,Steel Rods,500\n"

        rows = decode_file(content, "stock.csv")

        assert list(rows[0].keys()) == ["Column 1", "Particulars", "Closing Stock"]
        assert rows[0]["Column 1"] == "1"

    def test_empty_file_malformed(self):
        with pytest.raises(MalformedInputError):
            decode_file(b"", "stock.csv")

    def test_header_only_malformed(self):
        with pytest.raises(MalformedInputError) as exc_info:
            decode_file(b"Product,Qty\n", "stock.csv")
        assert exc_info.value.code == "MALFORMED_INPUT"

    def test_row_limit(self):
        content = b"Product,Qty\nA,1\nB,2\nC,3\n"

        with patch.object(settings, "import_max_rows", 2):
            with pytest.raises(MalformedInputError):
                decode_file(content, "stock.csv")


# ===================
# XLSX
# ===================

class TestExcelDecoding:
    """Tests for spreadsheet input."""

    def test_numbers_and_empty_cells(self):
        content = make_workbook([
            ["Product Name", "Quantity", "Unit"],
            ["Steel Rods", 500, None],
            ["Copper Wire", None, "kg"],
        ])

        rows = decode_file(content, "stock.xlsx")

        assert rows == [
            {"Product Name": "Steel Rods", "Quantity": "500", "Unit": ""},
            {"Product Name": "Copper Wire", "Quantity": "", "Unit": "kg"},
        ]

    def test_first_sheet_only(self):
        content = make_workbook(
            [["Item", "Qty"], ["Steel Rods", 5]],
            extra_sheet=True,
        )

        rows = decode_file(content, "stock.xlsx")

        assert [r["Item"] for r in rows] == ["Steel Rods"]

    def test_blank_header_cell_named_by_position(self):
        content = make_workbook([
            [None, "Particulars", "Closing Stock"],
            [1, "Steel Rods", 500],
        ])

        rows = decode_file(content, "stock.xlsx")

        assert rows == [{"Column 1": "1", "Particulars": "Steel Rods", "Closing Stock": "500"}]

    def test_header_only_sheet_malformed(self):
        content = make_workbook([["Item", "Qty"]])

        with pytest.raises(MalformedInputError):
            decode_file(content, "stock.xlsx")

    def test_corrupt_workbook_malformed(self):
        with pytest.raises(MalformedInputError):
            decode_file(b"not really a zip file", "stock.xlsx")


class TestCleanHeaders:
    """Tests for header label cleanup."""

    @pytest.mark.parametrize("columns,expected", [
        ([" Product ", "Qty"], ["Product", "Qty"]),
        (["Unnamed: 0", "Item", "Qty"], ["Column 1", "Item", "Qty"]),
        (["Item", "", "Qty"], ["Item", "Column 2", "Qty"]),
        (["Item", "  ", "Unnamed: 2"], ["Item", "Column 2", "Column 3"]),
    ])
    def test_clean(self, columns, expected):
        assert clean_headers(columns) == expected

    def test_unnamed_inside_label_kept(self):
        assert clean_headers(["Unnamed: 0 stock"]) == ["Unnamed: 0 stock"]
