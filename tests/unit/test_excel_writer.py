from __future__ import annotations

import io
from pathlib import Path
from unittest.mock import patch

import openpyxl
import pytest

from curriculum_filter.excel.writer import (
    ExportWriteError,
    collect_columns,
    rows_to_frame,
    safe_sheet_name,
    workbook_to_excel_bytes,
    write_workbook,
)


def test_collect_columns_first_seen_order():
    rows = [{"a": 1, "b": 2}, {"c": 3, "a": 4}]
    assert collect_columns(rows) == ["a", "b", "c"]


def test_rows_to_frame_fills_missing_cells():
    frame = rows_to_frame([{"a": 1}, {"a": 2, "b": "x"}])
    assert list(frame.columns) == ["a", "b"]
    assert frame.iloc[0]["b"] == ""


def test_safe_sheet_name_rules():
    used: set[str] = set()
    assert safe_sheet_name("Math", used) == "Math"
    assert safe_sheet_name("math", used) == "math_1"
    assert safe_sheet_name("a/b:c", used) == "a_b_c"
    long_name = "x" * 40
    first = safe_sheet_name(long_name, used)
    second = safe_sheet_name(long_name, used)
    assert len(first) == 31 and len(second) == 31
    assert first != second
    assert safe_sheet_name("", used) == "Data"


def test_write_workbook_one_sheet_per_category(temp_workdir: Path):
    target = temp_workdir / "out.xlsx"
    rows = {
        "Math": [{"class": 10, "note": ""}, {"class": 9, "note": "x"}],
        "Science": [{"class": 8, "note": "lab"}],
    }
    sheet_names = write_workbook(rows, target)
    assert sheet_names == {"Math": "Math", "Science": "Science"}

    wb = openpyxl.load_workbook(target)
    assert wb.sheetnames == ["Math", "Science"]
    ws = wb["Math"]
    # ヘッダ 1 行 + データ行のみ (末尾の空行なし)
    assert ws.max_row == 3
    assert [c.value for c in ws[1]] == ["class", "note"]
    assert ws.cell(row=3, column=2).value == "x"


def test_write_workbook_skips_empty_categories(temp_workdir: Path):
    target = temp_workdir / "out.xlsx"
    sheet_names = write_workbook({"Math": [{"a": 1}], "Empty": []}, target)
    assert list(sheet_names) == ["Math"]
    assert openpyxl.load_workbook(target).sheetnames == ["Math"]


def test_write_workbook_nothing_selected(temp_workdir: Path):
    with pytest.raises(ExportWriteError):
        write_workbook({}, temp_workdir / "out.xlsx")
    assert not (temp_workdir / "out.xlsx").exists()


def test_write_workbook_wraps_writer_failure(temp_workdir: Path):
    with patch("curriculum_filter.excel.writer.pd.ExcelWriter", side_effect=OSError("disk full")):
        with pytest.raises(ExportWriteError, match="disk full"):
            write_workbook({"Math": [{"a": 1}]}, temp_workdir / "out.xlsx")


def test_write_workbook_to_missing_directory(temp_workdir: Path):
    with pytest.raises(ExportWriteError):
        write_workbook({"Math": [{"a": 1}]}, temp_workdir / "nope" / "out.xlsx")


def test_workbook_to_excel_bytes_roundtrip():
    data = workbook_to_excel_bytes({"Math": [{"a": 1, "b": "x"}]})
    wb = openpyxl.load_workbook(io.BytesIO(data))
    ws = wb["Math"]
    assert [c.value for c in ws[2]] == [1, "x"]


def test_failed_write_leaves_no_file(temp_workdir: Path):
    target = temp_workdir / "out.xlsx"
    # 制御文字は openpyxl が書き込みを拒否する (2 枚目のシートで失敗)
    with pytest.raises(ExportWriteError):
        write_workbook({"A": [{"x": "ok"}], "B": [{"x": "bad\x01"}]}, target)
    assert not target.exists()
    assert list(temp_workdir.glob("out.xlsx*")) == []


def test_failed_write_keeps_previous_file(temp_workdir: Path):
    target = temp_workdir / "out.xlsx"
    write_workbook({"Math": [{"a": 1}]}, target)
    with pytest.raises(ExportWriteError):
        write_workbook({"Math": [{"a": "bad\x01"}]}, target)
    assert openpyxl.load_workbook(target)["Math"]["A2"].value == 1


def test_write_workbook_to_stream():
    buffer = io.BytesIO()
    assert write_workbook({"Math": [{"a": 1}]}, buffer) == {"Math": "Math"}
    assert openpyxl.load_workbook(io.BytesIO(buffer.getvalue())).sheetnames == ["Math"]
