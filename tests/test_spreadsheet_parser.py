"""Workbook and CSV parsing."""

import io
from datetime import datetime

import pytest
from openpyxl import Workbook, load_workbook

from EAP.core.exceptions import SpreadsheetParseError
from EAP.services.processing import spreadsheet_parser
from EAP.services.processing.spreadsheet_parser import SheetData


def xlsx_bytes(sheets):
    """Build a workbook from {sheet name: list of rows}."""
    workbook = Workbook()
    workbook.remove(workbook.active)
    for name, rows in sheets.items():
        sheet = workbook.create_sheet(name)
        for row in rows:
            sheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def test_parses_every_sheet_with_header_row():
    data = xlsx_bytes({
        "Sales": [["Region", "Amount"], ["North", 100], ["South", None]],
        "Costs": [["Item", "Cost"], ["Rent", 2500]],
    })

    sheets = spreadsheet_parser.parse_workbook(data, "book.xlsx")

    assert [s.name for s in sheets] == ["Sales", "Costs"]
    assert sheets[0].columns == ["Region", "Amount"]
    assert sheets[0].rows == [
        {"Region": "North", "Amount": 100},
        {"Region": "South", "Amount": ""},
    ]
    assert spreadsheet_parser.total_rows(sheets) == 3


def test_empty_sheets_are_skipped():
    data = xlsx_bytes({"Empty": [], "Data": [["a"], [1]]})
    sheets = spreadsheet_parser.parse_workbook(data, "book.xlsx")
    assert [s.name for s in sheets] == ["Data"]


def test_blank_headers_are_not_columns():
    data = xlsx_bytes({"S": [["Name", None, "Age"], ["Ann", "x", 30]]})

    sheet = spreadsheet_parser.parse_workbook(data, "book.xlsx")[0]

    assert sheet.columns == ["Name", "Age"]
    assert sheet.rows == [{"Name": "Ann", "Age": 30}]


def test_zero_and_false_cells_are_kept():
    data = xlsx_bytes({"S": [["n", "flag"], [0, False]]})
    sheet = spreadsheet_parser.parse_workbook(data, "book.xlsx")[0]
    assert sheet.rows == [{"n": 0, "flag": False}]


def test_blank_rows_between_data_are_kept():
    data = xlsx_bytes({"S": [["a", "b"], [1, 2], [None, None], [3, 4]]})
    sheet = spreadsheet_parser.parse_workbook(data, "book.xlsx")[0]
    assert sheet.rows == [{"a": 1, "b": 2}, {"a": "", "b": ""}, {"a": 3, "b": 4}]


def test_blank_row_counts_toward_row_count():
    data = xlsx_bytes({"S": [["a"], [1], [None], [2]]})
    sheets = spreadsheet_parser.parse_workbook(data, "book.xlsx")
    assert sheets[0].row_count == 3
    assert spreadsheet_parser.total_rows(sheets) == 3


def test_leading_and_trailing_blank_csv_lines_are_ignored():
    sheet = spreadsheet_parser.parse_workbook(b"\na\n1\n\n2\n\n\n", "r.csv")[0]
    assert sheet.columns == ["a"]
    assert sheet.rows == [{"a": 1}, {"a": ""}, {"a": 2}]


def test_csv_rows_wider_than_header_are_read():
    sheet = spreadsheet_parser.parse_workbook(b"a,b\n1,2\n3,4,5\n", "r.csv")[0]
    assert sheet.columns == ["a", "b"]
    assert sheet.rows == [{"a": 1, "b": 2}, {"a": 3, "b": 4}]


def test_csv_rows_shorter_than_header_are_padded():
    sheet = spreadsheet_parser.parse_workbook(b"a,b,c\n1\n", "r.csv")[0]
    assert sheet.rows == [{"a": 1, "b": "", "c": ""}]


def test_csv_in_windows_code_page_is_decoded():
    data = "name,city\nJosé,Zürich\n".encode("cp1252")
    sheet = spreadsheet_parser.parse_workbook(data, "r.csv")[0]
    assert sheet.rows == [{"name": "José", "city": "Zürich"}]


def test_csv_is_one_sheet_with_numeric_coercion():
    data = b"name,age,city\nAnn,30,Oslo\nBob,,Rome\nCid,2.5,\n"

    sheets = spreadsheet_parser.parse_workbook(data, "people.csv")

    assert len(sheets) == 1
    assert sheets[0].name == "Sheet1"
    assert sheets[0].rows == [
        {"name": "Ann", "age": 30, "city": "Oslo"},
        {"name": "Bob", "age": "", "city": "Rome"},
        {"name": "Cid", "age": 2.5, "city": ""},
    ]


def test_csv_byte_order_mark_is_stripped():
    sheet = spreadsheet_parser.parse_workbook(b"\xef\xbb\xbfid\n7\n", "bom.csv")[0]
    assert sheet.columns == ["id"]


def test_corrupt_workbook_raises_parse_error():
    with pytest.raises(SpreadsheetParseError) as exc:
        spreadsheet_parser.parse_workbook(b"PK\x03\x04not really a zip", "broken.xlsx")
    assert exc.value.message == "Failed to parse Excel file"
    assert exc.value.details["format"] == "xlsx"


@pytest.mark.parametrize("data,name,expected", [
    (b"PK\x03\x04rest", "renamed.csv", "xlsx"),
    (b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1rest", "old.xlsx", "xls"),
    (b"a,b\n", "book.xls", "xls"),
    (b"a,b\n", "data.csv", "csv"),
])
def test_detect_format(data, name, expected):
    assert spreadsheet_parser.detect_format(data, name) == expected


def test_sheet_summary_keeps_first_rows():
    sheet = SheetData(
        name="S",
        columns=["a", "when"],
        rows=[{"a": i, "when": datetime(2024, 1, i + 1)} for i in range(8)],
    )

    summary = spreadsheet_parser.build_sheet_summary(sheet, sample_rows=5)

    assert summary["columns"] == ["a", "when"]
    assert summary["rowCount"] == 8
    assert len(summary["sampleData"]) == 5
    assert summary["sampleData"][0] == {"a": 0, "when": "2024-01-01T00:00:00"}


def test_preview_table_is_text_and_limited():
    sheet = SheetData(name="S", columns=["a", "b"], rows=[{"a": i, "b": ""} for i in range(150)])

    frame = spreadsheet_parser.preview_table(sheet, limit=100)

    assert len(frame) == 100
    assert list(frame.columns) == ["a", "b"]
    assert frame.iloc[3]["a"] == "3"


def test_export_sheet_round_trips_rows():
    sheet = SheetData(name="Q1/Q2", columns=["x", "y"], rows=[{"x": "a", "y": 1}, {"x": "b", "y": 2}])

    workbook = load_workbook(io.BytesIO(spreadsheet_parser.export_sheet(sheet)))

    assert workbook.sheetnames == ["Q1_Q2"]
    values = list(workbook["Q1_Q2"].values)
    assert values == [("x", "y"), ("a", 1), ("b", 2)]


def test_processed_file_name():
    assert spreadsheet_parser.processed_file_name("sales.xlsx", "Q1") == "sales.xlsx_processed_Q1.xlsx"
