from __future__ import annotations

import io
import re
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import IO, Any

import pandas as pd

"""Excel writer.

One sheet per category: exactly one header row followed by exactly the
supplied rows. The header is the union of the columns of that category's
rows in first-seen order; a cell missing from a row is written as ``""`` so
no trailing column is lost and no trailing blank row is produced.
"""

__all__ = [
    "ExportWriteError",
    "collect_columns",
    "rows_to_frame",
    "safe_sheet_name",
    "write_workbook",
    "workbook_to_excel_bytes",
]

MAX_SHEET_NAME = 31
_INVALID_SHEET_CHARS = re.compile(r"[\[\]:*?/\\]")


class ExportWriteError(Exception):
    """Raised when the filtered workbook cannot be produced."""


def collect_columns(rows: Sequence[Mapping[str, Any]]) -> list[str]:
    columns: list[str] = []
    seen: set[str] = set()
    for row in rows:
        for col in row:
            if col not in seen:
                seen.add(col)
                columns.append(col)
    return columns


def rows_to_frame(rows: Sequence[Mapping[str, Any]]) -> pd.DataFrame:
    """Build a DataFrame with every column present in every row ("" fill)."""
    columns = collect_columns(rows)
    records = [[row.get(col, "") for col in columns] for row in rows]
    return pd.DataFrame(records, columns=columns, dtype=object)


def safe_sheet_name(name: str, used: set[str]) -> str:
    """Excel sheet names: no ``[]:*?/\\``, at most 31 chars, unique per workbook."""
    base = _INVALID_SHEET_CHARS.sub("_", str(name)).strip("'")[:MAX_SHEET_NAME] or "Data"
    candidate = base
    suffix = 1
    while candidate.lower() in used:
        tail = f"_{suffix}"
        candidate = base[: MAX_SHEET_NAME - len(tail)] + tail
        suffix += 1
    used.add(candidate.lower())
    return candidate


def _render_workbook(categories: Sequence[tuple[str, Sequence[Mapping[str, Any]]]]) -> tuple[bytes, dict[str, str]]:
    used: set[str] = set()
    sheet_names: dict[str, str] = {}
    buffer = io.BytesIO()
    try:
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            for category, rows in categories:
                sheet = safe_sheet_name(category, used)
                rows_to_frame(rows).to_excel(writer, sheet_name=sheet, index=False)
                sheet_names[category] = sheet
    except Exception as e:
        raise ExportWriteError(f"failed writing workbook: {e}") from e
    return buffer.getvalue(), sheet_names


def _selected(rows_by_category: Mapping[str, Sequence[Mapping[str, Any]]]) -> list[tuple[str, Sequence[Mapping[str, Any]]]]:
    categories = [(name, rows) for name, rows in rows_by_category.items() if rows]
    if not categories:
        raise ExportWriteError("no rows selected for export")
    return categories


def _write_file(payload: bytes, path: Path) -> None:
    # 完成したブックだけを target に置く (.part から置き換え)
    partial = path.with_name(path.name + ".part")
    try:
        partial.write_bytes(payload)
        partial.replace(path)
    except OSError as e:
        partial.unlink(missing_ok=True)
        raise ExportWriteError(f"failed writing workbook: {e}") from e


def write_workbook(rows_by_category: Mapping[str, Sequence[Mapping[str, Any]]], target: str | Path | IO[bytes]) -> dict[str, str]:
    """Write one sheet per non-empty category to ``target``.

    The workbook is rendered in memory first; ``target`` is only touched once
    every sheet was written, so a failed export leaves no file behind.

    Returns:
        Mapping of category -> sheet name actually used

    Raises:
        ExportWriteError: nothing to write, or the writer failed
    """
    payload, sheet_names = _render_workbook(_selected(rows_by_category))
    if isinstance(target, (str, Path)):
        _write_file(payload, Path(target))
    else:
        try:
            target.write(payload)
        except OSError as e:
            raise ExportWriteError(f"failed writing workbook: {e}") from e
    return sheet_names


def workbook_to_excel_bytes(rows_by_category: Mapping[str, Sequence[Mapping[str, Any]]]) -> bytes:
    """Serialize the projection to XLSX bytes."""
    payload, _ = _render_workbook(_selected(rows_by_category))
    return payload
