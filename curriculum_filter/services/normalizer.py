from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from typing import Any

from ..config.loader import DEFAULT_GROUPING_COLUMNS
from ..models.row_data import RowData
from ..models.tree import Level, Row

"""Row normalizer.

Derives the four group names of a raw row. The category is the sheet name;
class / subject / chapter / topic come from the configured grouping columns.
A blank grouping field is replaced by ``Unknown <Kind> <n>`` where ``n`` is the
1-based row position inside the sheet, so placeholders do not depend on how
the rows were batched.

Cell values are never touched: the original mapping (including blank cells)
is carried through as-is.
"""

__all__ = [
    "RowNormalizer",
    "is_blank",
    "group_name",
    "GROUP_LEVELS",
]

# category 以外のグルーピング階層 (config のキーと対応)
GROUP_LEVELS: tuple[tuple[str, Level], ...] = (
    ("class", Level.CLASS),
    ("subject", Level.SUBJECT),
    ("chapter", Level.CHAPTER),
    ("topic", Level.TOPIC),
)


def is_blank(value: Any) -> bool:
    """True for None, NaN and strings that are empty after trimming."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return str(value).strip() == ""


def group_name(value: Any) -> str:
    """Render a non-blank cell value as a group name.

    Integral floats lose their ``.0`` so that a class read as ``10.0`` groups
    with one read as ``10``.
    """
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


class RowNormalizer:
    """Maps raw rows to RowData using a grouping column configuration."""

    def __init__(self, grouping_columns: Mapping[str, Sequence[str]] | None = None) -> None:
        columns = dict(DEFAULT_GROUPING_COLUMNS)
        if grouping_columns:
            columns.update({k: tuple(v) for k, v in grouping_columns.items()})
        self.grouping_columns: dict[str, tuple[str, ...]] = columns

    def _lookup(self, row: Row, field_name: str) -> Any:
        for column in self.grouping_columns[field_name]:
            if column in row:
                return row[column]
        return None

    def placeholder(self, level: Level, position: int) -> str:
        return f"Unknown {level.kind} {position + 1}"

    def normalize(self, sheet_name: str, row: Row, position: int) -> RowData:
        """Normalize one row.

        Args:
            sheet_name: Sheet the row belongs to (becomes the category)
            row: Original column -> value mapping (kept unmodified)
            position: 0-based data row index within the sheet

        Returns:
            RowData with derived group names and the untouched row values
        """
        names: dict[str, str] = {}
        for field_name, level in GROUP_LEVELS:
            value = self._lookup(row, field_name)
            names[field_name] = self.placeholder(level, position) if is_blank(value) else group_name(value)
        return RowData(
            sheet_name=sheet_name,
            position=position,
            class_name=names["class"],
            subject_name=names["subject"],
            chapter_name=names["chapter"],
            topic_name=names["topic"],
            values=dict(row),
        )
