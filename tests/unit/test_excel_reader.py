from __future__ import annotations

import io
from datetime import datetime
from pathlib import Path

import pandas as pd
import pytest

from curriculum_filter.excel.reader import MalformedInputError, Workbook, normalize_sheet, read_workbook


def _make_excel(tmp_path: Path, name: str, sheets: dict[str, list[list[object]]]) -> Path:
    p = tmp_path / name
    with pd.ExcelWriter(p, engine="openpyxl") as writer:
        for sheet, rows in sheets.items():
            df = pd.DataFrame(rows)
            df.to_excel(writer, sheet_name=sheet, header=False, index=False)
    return p


def test_read_workbook_keeps_sheet_order_and_values(temp_workdir: Path):
    excel = _make_excel(
        temp_workdir, "curriculum.xlsx",
        {
            "Science": [
                ["class", "subject_name", "chapter_name", "topic_name", "question"],
                [8, "Physics", "Motion", "Speed", "q5"],
            ],
            "Math": [
                ["class", "subject_name", "chapter_name", "topic_name", "question"],
                [10, "Algebra", "Linear", "Slope", "q1"],
                [9, "Algebra", "Basics", "Terms", "q2"],
            ],
        },
    )
    workbook = read_workbook(excel)
    assert workbook.sheet_names == ["Science", "Math"]
    assert workbook.total_rows == 3
    math = workbook.sheets["Math"]
    assert math.columns == ["class", "subject_name", "chapter_name", "topic_name", "question"]
    assert math.rows[0] == {
        "class": 10,
        "subject_name": "Algebra",
        "chapter_name": "Linear",
        "topic_name": "Slope",
        "question": "q1",
    }
    assert workbook.source_name == str(excel)


def test_blank_cells_are_kept_as_empty_strings(temp_workdir: Path):
    excel = _make_excel(
        temp_workdir, "blanks.xlsx",
        {"Sheet1": [["class", "note", "topic_name"], [10, None, "Slope"], [None, None, "Area"]]},
    )
    rows = read_workbook(excel).sheets["Sheet1"].rows
    assert rows[0] == {"class": 10, "note": "", "topic_name": "Slope"}
    assert rows[1] == {"class": "", "note": "", "topic_name": "Area"}


def test_na_like_strings_are_not_converted(temp_workdir: Path):
    excel = _make_excel(
        temp_workdir, "na.xlsx",
        {"Sheet1": [["class", "note"], [10, "NA"], [11, "null"], [12, "N/A"]]},
    )
    rows = read_workbook(excel).sheets["Sheet1"].rows
    assert [r["note"] for r in rows] == ["NA", "null", "N/A"]


def test_dates_use_configured_format(temp_workdir: Path):
    excel = _make_excel(
        temp_workdir, "dates.xlsx",
        {"Sheet1": [["class", "due"], [10, datetime(2024, 3, 5)]]},
    )
    assert read_workbook(excel).sheets["Sheet1"].rows[0]["due"] == "2024-03-05"
    assert read_workbook(excel, date_format="%d/%m/%Y").sheets["Sheet1"].rows[0]["due"] == "05/03/2024"


def test_fully_blank_rows_are_skipped(temp_workdir: Path):
    excel = _make_excel(
        temp_workdir, "gaps.xlsx",
        {"Sheet1": [["class", "topic_name"], [10, "Slope"], [None, None], [11, "Area"]]},
    )
    rows = read_workbook(excel).sheets["Sheet1"].rows
    assert [r["topic_name"] for r in rows] == ["Slope", "Area"]


def test_whitespace_only_row_is_kept(temp_workdir: Path):
    excel = _make_excel(
        temp_workdir, "spaces.xlsx",
        {"Sheet1": [["class", "topic_name", "note"], [10, "Slope", "a"], [" ", " ", " "]]},
    )
    rows = read_workbook(excel).sheets["Sheet1"].rows
    assert len(rows) == 2
    assert rows[1] == {"class": " ", "topic_name": " ", "note": " "}


def test_header_only_sheet_has_no_rows(temp_workdir: Path):
    excel = _make_excel(
        temp_workdir, "header_only.xlsx",
        {"Empty": [["class", "topic_name"]], "Data": [["class"], [1]]},
    )
    workbook = read_workbook(excel)
    assert workbook.sheets["Empty"].rows == []
    assert workbook.sheets["Empty"].columns == ["class", "topic_name"]
    assert workbook.total_rows == 1


def test_read_from_bytes_and_stream(temp_workdir: Path):
    excel = _make_excel(temp_workdir, "b.xlsx", {"Sheet1": [["class"], [1]]})
    data = excel.read_bytes()
    assert read_workbook(data).sheets["Sheet1"].rows == [{"class": 1}]
    assert read_workbook(io.BytesIO(data)).sheets["Sheet1"].rows == [{"class": 1}]
    assert read_workbook(data).source_name is None


def test_malformed_file_raises(temp_workdir: Path):
    bad = temp_workdir / "bad.xlsx"
    bad.write_bytes(b"this is not a workbook")
    with pytest.raises(MalformedInputError):
        read_workbook(bad)


def test_missing_file_raises_malformed(temp_workdir: Path):
    with pytest.raises(MalformedInputError):
        read_workbook(temp_workdir / "missing.xlsx")


def test_normalize_sheet_header_names():
    df = pd.DataFrame(
        [["class", "", "class", "topic_name"], [10, "", 11, "Slope"]],
        dtype=object,
    )
    sheet = normalize_sheet(df, "Sheet1")
    # 空ヘッダの空列は落とし、重複名は .1 を付ける
    assert sheet.columns == ["class", "class.1", "topic_name"]
    assert sheet.rows == [{"class": 10, "class.1": 11, "topic_name": "Slope"}]


def test_normalize_sheet_keeps_unnamed_column_with_data():
    df = pd.DataFrame([["class", None], [10, "extra"]], dtype=object)
    sheet = normalize_sheet(df, "Sheet1")
    assert sheet.columns == ["class", "Unnamed: 1"]
    assert sheet.rows[0]["Unnamed: 1"] == "extra"


def test_normalize_empty_frame():
    sheet = normalize_sheet(pd.DataFrame(), "Sheet1")
    assert sheet.rows == [] and sheet.columns == []


def test_workbook_from_rows_collects_columns():
    workbook = Workbook.from_rows({"S": [{"a": 1}, {"b": 2, "a": 3}]})
    sheet = workbook.sheets["S"]
    assert sheet.columns == ["a", "b"]
    assert len(sheet) == 2
    assert [s.sheet_name for s in workbook] == ["S"]
