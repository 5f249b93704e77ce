"""
Spreadsheet parsing into a tabular shape.

This module turns the bytes of an uploaded workbook (.xlsx, .xls) or CSV file
into a list of sheets, each with its header-derived column names and its
data rows as dicts keyed by header. It also derives the per-sheet analytics
summary that is persisted after a file is opened, and re-emits a sheet as a
standalone .xlsx workbook for download.

Module Input:
    - Raw file bytes and the original file name

Module Output:
    - SheetData objects (name, columns, rows)
    - JSON-ready sheet summaries
    - .xlsx bytes for a single sheet
"""

import csv
import io
import math
import re
from datetime import date, datetime, time
from pathlib import PurePath
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd
from pydantic import BaseModel, Field

from EAP.core.exceptions import SpreadsheetParseError
from EAP.core.logging_config import get_logger
from EAP.core.settings import settings

logger = get_logger(__name__)

CSV_SHEET_NAME = "Sheet1"

_CSV_ENCODINGS = ("utf-8-sig", "cp1252", "latin-1")

_XLSX_MAGIC = b"PK\x03\x04"
_XLS_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"
_INT_PATTERN = re.compile(r"^[+-]?\d+$")
_FLOAT_PATTERN = re.compile(r"^[+-]?(\d+\.\d*|\.\d+|\d+)([eE][+-]?\d+)?$")
_SHEET_TITLE_INVALID = re.compile(r"[\[\]:*?/\\]")


class SheetData(BaseModel):
    """One parsed sheet."""
    name: str
    columns: List[str] = Field(default_factory=list)
    rows: List[Dict[str, Any]] = Field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if value is pd.NaT:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return False


def _plain(value: Any) -> Any:
    """Convert numpy/pandas scalars to plain Python values."""
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, np.bool_):
        return bool(value)
    if isinstance(value, np.integer):
        return int(value)
    if isinstance(value, np.floating):
        return float(value)
    return value


def _coerce_csv_value(value: Any) -> Any:
    """CSV cells arrive as text; numeric text becomes a number."""
    if not isinstance(value, str):
        return value
    text = value.strip()
    if _INT_PATTERN.match(text):
        return int(text)
    if _FLOAT_PATTERN.match(text):
        return float(text)
    return value


def _header_text(value: Any) -> str:
    if _is_blank(value):
        return ""
    value = _plain(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def to_jsonable(value: Any) -> Any:
    """Make a cell value safe for ``json.dumps``."""
    value = _plain(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
        return None
    return value


def detect_format(data: bytes, file_name: str) -> str:
    """
    Return "xlsx", "xls" or "csv".

    Magic bytes win over the extension, so a renamed workbook still parses.
    """
    if data.startswith(_XLSX_MAGIC):
        return "xlsx"
    if data.startswith(_XLS_MAGIC):
        return "xls"
    extension = PurePath(file_name).suffix.lower().lstrip(".")
    if extension in ("xlsx", "xlsm"):
        return "xlsx"
    if extension == "xls":
        return "xls"
    return "csv"


def _decode_csv(data: bytes) -> str:
    """Decode CSV bytes: UTF-8 (with or without BOM), then cp1252, then latin-1."""
    for encoding in _CSV_ENCODINGS[:-1]:
        try:
            return data.decode(encoding)
        except UnicodeDecodeError:
            continue
    return data.decode(_CSV_ENCODINGS[-1])


def _read_csv(data: bytes) -> pd.DataFrame:
    text = _decode_csv(data)
    # Rows may be wider than the first line; size the frame to the widest one.
    widest = max((len(fields) for fields in csv.reader(io.StringIO(text))), default=0)
    if widest == 0:
        return pd.DataFrame()
    frame = pd.read_csv(
        io.StringIO(text),
        header=None,
        names=list(range(widest)),
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=False,
    )
    return frame.map(_coerce_csv_value)


def _read_frames(data: bytes, file_format: str) -> Dict[str, pd.DataFrame]:
    if file_format == "csv":
        return {CSV_SHEET_NAME: _read_csv(data)}

    engine = "openpyxl" if file_format == "xlsx" else "xlrd"
    return pd.read_excel(io.BytesIO(data), sheet_name=None, header=None, engine=engine)


def frame_to_sheet(name: str, frame: pd.DataFrame) -> Optional[SheetData]:
    """
    Build a SheetData from a header-less frame.

    The first non-blank row is the header row. Blank rows between data rows
    are kept as rows of empty strings; trailing blank rows are dropped.
    Returns None for a sheet with no content at all.
    """
    records = [
        [_plain(value) for value in record]
        for record in frame.astype(object).values.tolist()
    ]
    filled = [index for index, record in enumerate(records) if not all(_is_blank(v) for v in record)]
    if not filled:
        return None
    records = records[filled[0]:filled[-1] + 1]

    headers = [_header_text(h) for h in records[0]]
    columns = [h for h in headers if h.strip() != ""]

    rows = []
    for record in records[1:]:
        row = {}
        for index, header in enumerate(headers):
            if header.strip() == "":
                continue
            value = record[index] if index < len(record) else None
            row[header] = "" if _is_blank(value) else value
        rows.append(row)

    return SheetData(name=str(name), columns=columns, rows=rows)


def parse_workbook(data: bytes, file_name: str) -> List[SheetData]:
    """
    Parse every sheet of a workbook or CSV file.

    Args:
        data (bytes): File contents
        file_name (str): Original file name (used for format fallback)

    Returns:
        List[SheetData]: Sheets in workbook order; empty sheets are skipped

    Raises:
        SpreadsheetParseError: If the file cannot be read
    """
    file_format = detect_format(data, file_name)
    try:
        frames = _read_frames(data, file_format)
    except Exception as e:
        logger.error(f"Failed to parse {file_name} as {file_format}: {e}")
        raise SpreadsheetParseError(
            "Failed to parse Excel file",
            details={"file_name": file_name, "format": file_format, "error": str(e)}
        )

    sheets = []
    for name, frame in frames.items():
        sheet = frame_to_sheet(name, frame)
        if sheet is None:
            logger.debug(f"Skipping empty sheet '{name}' in {file_name}")
            continue
        sheets.append(sheet)

    logger.info(
        f"Parsed {file_name}: {len(sheets)} sheet(s), "
        f"{sum(sheet.row_count for sheet in sheets)} row(s)"
    )
    return sheets


def total_rows(sheets: List[SheetData]) -> int:
    return sum(sheet.row_count for sheet in sheets)


def build_sheet_summary(sheet: SheetData, sample_rows: Optional[int] = None) -> Dict[str, Any]:
    """
    Summary persisted to ``analytics_data.data``.

    Example:
        >>> build_sheet_summary(SheetData(name="S", columns=["a"], rows=[{"a": 1}]))
        {'columns': ['a'], 'rowCount': 1, 'sampleData': [{'a': 1}]}
    """
    limit = settings.analytics_sample_rows if sample_rows is None else sample_rows
    return {
        "columns": list(sheet.columns),
        "rowCount": sheet.row_count,
        "sampleData": [
            {key: to_jsonable(value) for key, value in row.items()}
            for row in sheet.rows[:limit]
        ],
    }


def preview_table(sheet: SheetData, limit: Optional[int] = None) -> pd.DataFrame:
    """First ``limit`` rows as display text, one column per header."""
    limit = settings.preview_max_rows if limit is None else limit
    records = [
        ["" if _is_blank(row.get(column)) else str(row.get(column)) for column in sheet.columns]
        for row in sheet.rows[:limit]
    ]
    return pd.DataFrame(records, columns=sheet.columns)


def processed_file_name(original_name: str, sheet_name: str) -> str:
    return f"{original_name}_processed_{sheet_name}.xlsx"


def export_sheet(sheet: SheetData) -> bytes:
    """
    Write one sheet to a new .xlsx workbook.

    Raises:
        SpreadsheetParseError: If the workbook cannot be written
    """
    frame = pd.DataFrame(sheet.rows)
    if frame.empty:
        frame = pd.DataFrame(columns=sheet.columns)

    title = _SHEET_TITLE_INVALID.sub("_", sheet.name)[:31] or CSV_SHEET_NAME
    buffer = io.BytesIO()
    try:
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            frame.to_excel(writer, sheet_name=title, index=False)
    except Exception as e:
        raise SpreadsheetParseError(
            f"Failed to export sheet {sheet.name}",
            details={"sheet": sheet.name, "error": str(e)}
        )
    return buffer.getvalue()
