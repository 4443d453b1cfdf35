"""
Format decoder for uploaded stock reports.

Turns a CSV or XLSX payload into raw rows: one ordered dict of
header label -> cell text per data row. Empty cells come back as "" so
every row carries every column.
"""

import re
from io import BytesIO
from pathlib import PurePath
from typing import Optional
import structlog

import pandas as pd

from config import settings
from exceptions import UnsupportedFormatError, MalformedInputError

logger = structlog.get_logger(__name__)

RawRow = dict[str, str]

CSV_EXTENSIONS = (".csv",)
EXCEL_EXTENSIONS = (".xlsx", ".xlsm")
SUPPORTED_EXTENSIONS = CSV_EXTENSIONS + EXCEL_EXTENSIONS

# UTF-8 (optional BOM) first; latin-1 decodes any byte sequence
CSV_ENCODINGS = ("utf-8-sig", "latin-1")

# pandas labels a blank header cell "Unnamed: <position>"
PLACEHOLDER_HEADER = re.compile(r"^Unnamed: \d+$")


def detect_format(filename: Optional[str]) -> str:
    """
    Map a filename to "csv" or "xlsx".

    Raises:
        UnsupportedFormatError: Extension missing or not supported
    """
    suffix = PurePath(filename or "").suffix.lower()
    if suffix in CSV_EXTENSIONS:
        return "csv"
    if suffix in EXCEL_EXTENSIONS:
        return "xlsx"
    raise UnsupportedFormatError(filename or "", SUPPORTED_EXTENSIONS)


def decode_file(content: bytes, filename: Optional[str]) -> list[RawRow]:
    """
    Decode an uploaded file into raw rows.

    Args:
        content: Raw file bytes
        filename: Original filename, used only for its extension

    Returns:
        List of RawRow in file order

    Raises:
        UnsupportedFormatError: Unrecognized extension (checked before parsing)
        MalformedInputError: Unreadable content, or no data row under the header
    """
    file_format = detect_format(filename)

    if not content:
        raise MalformedInputError("File is empty", details={"filename": filename})

    if file_format == "csv":
        df = _read_csv(content)
    else:
        df = _read_excel(content)

    df.columns = clean_headers(df.columns)
    df = df.fillna("").astype(str)

    if len(df) == 0:
        raise MalformedInputError(
            "File needs a header row and at least one data row",
            details={"filename": filename, "headers": list(df.columns)}
        )

    if len(df) > settings.import_max_rows:
        raise MalformedInputError(
            f"File has {len(df)} rows; the limit is {settings.import_max_rows}",
            details={"filename": filename, "rows": len(df)}
        )

    rows = df.to_dict(orient="records")

    logger.info(
        "import_file_decoded",
        filename=filename,
        format=file_format,
        columns=len(df.columns),
        rows=len(rows)
    )

    return rows


def clean_headers(columns) -> list[str]:
    """
    Strip header labels and name blank ones by position.

    A blank header cell becomes "Column <n>" (1-based) so it can never
    match a role keyword:
        ["", "Particulars", "Closing Stock"] -> ["Column 1", "Particulars", "Closing Stock"]
    """
    headers = []
    for position, column in enumerate(columns, start=1):
        label = str(column).strip()
        if not label or PLACEHOLDER_HEADER.match(label):
            label = f"Column {position}"
        headers.append(label)
    return headers


def _read_csv(content: bytes) -> pd.DataFrame:
    """Read comma-separated text with double-quote quoting, trying each encoding."""
    last_error: Optional[Exception] = None

    for encoding in CSV_ENCODINGS:
        try:
            df = pd.read_csv(
                BytesIO(content),
                sep=",",
                quotechar='"',
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
                index_col=False,
                encoding=encoding,
            )
        except UnicodeDecodeError as e:
            last_error = e
            continue
        except pd.errors.EmptyDataError as e:
            raise MalformedInputError("File has no header row") from e
        except (pd.errors.ParserError, ValueError) as e:
            logger.error("csv_read_failed", encoding=encoding, error=str(e))
            raise MalformedInputError(
                "Failed to read CSV file",
                details={"original_error": str(e)}
            ) from e

        if encoding != CSV_ENCODINGS[0]:
            logger.info("csv_encoding_fallback", encoding=encoding)
        return df

    logger.error("csv_read_failed", error=str(last_error))
    raise MalformedInputError(
        "Failed to read CSV file",
        details={"original_error": str(last_error)}
    )


def _read_excel(content: bytes) -> pd.DataFrame:
    """Read the first sheet of a workbook; later sheets are ignored."""
    try:
        return pd.read_excel(
            BytesIO(content),
            sheet_name=0,
            dtype=str,
            keep_default_na=False,
            engine="openpyxl",
        )
    except Exception as e:
        logger.error("excel_read_failed", error=str(e))
        raise MalformedInputError(
            "Failed to read Excel file",
            details={"original_error": str(e)}
        ) from e
