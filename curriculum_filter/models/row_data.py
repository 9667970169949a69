from __future__ import annotations

from dataclasses import dataclass
from typing import Any

"""RowData model.

RowData is one sheet row after grouping keys have been derived. The original
cell mapping travels untouched in ``values``; only the four group names are
derived (with placeholders for blank fields).
"""

__all__ = [
    "RowData",
]


@dataclass(frozen=True)
class RowData:
    """Normalized row ready for aggregation.

    The ``position`` is the 0-based data-row index within its sheet and is part
    of the row's identity for deduplication.
    """
    sheet_name: str  # category
    position: int  # 0-based data row index within the sheet
    class_name: str
    subject_name: str
    chapter_name: str
    topic_name: str
    values: dict[str, Any]  # 元の行 (空セルも "" のまま保持)

    @property
    def group_path(self) -> tuple[str, str, str, str, str]:
        return (self.sheet_name, self.class_name, self.subject_name, self.chapter_name, self.topic_name)

    @property
    def identity(self) -> tuple[str, str, str, str, str, int]:
        """Deduplication key: group path plus originating row index."""
        return (*self.group_path, self.position)
