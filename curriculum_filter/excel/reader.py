from __future__ import annotations

import io
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import IO, Any

import pandas as pd

"""Excel reader.

- 1行目をヘッダ行、2行目以降をデータ行として扱う
- Blank cells are kept as ``""`` (never dropped, never NaN); strings such as
  "NA" or "null" are not converted to missing values
- Dates are rendered with one fixed display format; nothing else is reformatted
- Rows without any cell value are skipped; cells holding only spaces are kept
"""

__all__ = [
    "MalformedInputError",
    "SheetData",
    "Workbook",
    "read_workbook",
    "normalize_sheet",
]

ExcelSource = str | Path | bytes | IO[bytes]


class MalformedInputError(Exception):
    """Raised when the uploaded file cannot be parsed into rows at all."""


@dataclass
class SheetData:
    sheet_name: str
    columns: list[str]
    rows: list[dict[str, Any]]  # 列名→値 (空セルは "")

    def __len__(self) -> int:
        return len(self.rows)


@dataclass
class Workbook:
    """Ordered sheets of one uploaded file."""
    sheets: dict[str, SheetData] = field(default_factory=dict)
    source_name: str | None = None

    @property
    def sheet_names(self) -> list[str]:
        return list(self.sheets.keys())

    @property
    def total_rows(self) -> int:
        return sum(len(sheet.rows) for sheet in self.sheets.values())

    def __iter__(self) -> Iterator[SheetData]:
        return iter(self.sheets.values())

    @classmethod
    def from_rows(cls, sheets: Mapping[str, Sequence[Mapping[str, Any]]], source_name: str | None = None) -> Workbook:
        """Build a workbook from rows that were read elsewhere."""
        result: dict[str, SheetData] = {}
        for name, rows in sheets.items():
            columns: list[str] = []
            for row in rows:
                for col in row:
                    if col not in columns:
                        columns.append(col)
            result[str(name)] = SheetData(sheet_name=str(name), columns=columns, rows=[dict(r) for r in rows])
        return cls(sheets=result, source_name=source_name)


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    return bool(pd.api.types.is_scalar(value) and pd.isna(value))


def _cell_value(value: Any, date_format: str) -> Any:
    if _is_missing(value):
        return ""
    if isinstance(value, (pd.Timestamp, datetime, date)):
        return value.strftime(date_format)
    return value


def _header_names(raw: list[Any]) -> list[str]:
    """Header cells -> unique column names (blank -> ``Unnamed: i``, repeats -> ``name.1``)."""
    names: list[str] = []
    seen: dict[str, int] = {}
    for idx, value in enumerate(raw):
        base = f"Unnamed: {idx}" if _is_missing(value) or str(value).strip() == "" else str(value).strip()
        count = seen.get(base, 0)
        seen[base] = count + 1
        names.append(base if count == 0 else f"{base}.{count}")
    return names


def normalize_sheet(df: pd.DataFrame, sheet_name: str, date_format: str = "%Y-%m-%d") -> SheetData:
    """Normalize a raw (header=None) DataFrame into a SheetData.

    Steps:
    1. Use the first row as header
    2. Convert every data cell (missing -> "", dates -> date_format)
    3. Skip rows with no cell values at all (whitespace is a value)
    4. Drop unnamed columns that carry no data at all
    """
    if df.shape[0] == 0:
        return SheetData(sheet_name=sheet_name, columns=[], rows=[])

    columns = _header_names(df.iloc[0].tolist())
    rows: list[dict[str, Any]] = []
    for raw in df.iloc[1:].itertuples(index=False, name=None):
        values = [_cell_value(v, date_format) for v in raw]
        if all(isinstance(v, str) and v == "" for v in values):
            continue
        rows.append(dict(zip(columns, values, strict=False)))

    unnamed_empty = [
        col for col in columns
        if col.startswith("Unnamed: ") and all(row[col] == "" for row in rows)
    ]
    if unnamed_empty:
        columns = [c for c in columns if c not in unnamed_empty]
        rows = [{c: row[c] for c in columns} for row in rows]

    return SheetData(sheet_name=sheet_name, columns=columns, rows=rows)


def read_workbook(source: ExcelSource, *, date_format: str = "%Y-%m-%d") -> Workbook:
    """Read every sheet of an Excel file, preserving sheet order.

    Parameters
    ----------
    source: ファイルパス / bytes / バイナリストリーム
    date_format: 日付セルの表示形式 (strftime)

    Raises
    ------
    MalformedInputError: when the file cannot be opened or parsed
    """
    source_name = str(source) if isinstance(source, (str, Path)) else None
    handle: Any = io.BytesIO(source) if isinstance(source, bytes) else source
    try:
        with pd.ExcelFile(handle) as xls:
            raw_frames = {
                str(name): xls.parse(name, header=None, dtype=object, keep_default_na=False, na_values=[])
                for name in xls.sheet_names
            }
    except Exception as e:
        raise MalformedInputError(f"unable to parse workbook: {e}") from e

    sheets = {name: normalize_sheet(df, name, date_format) for name, df in raw_frames.items()}
    return Workbook(sheets=sheets, source_name=source_name)
