from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the JSON Lines error log.

One record per user-facing failure (unreadable upload, failed export, bad
configuration). ``sheet`` is ``<FILE_LEVEL>`` when the failure concerns the
whole file.
"""

__all__ = [
    "ErrorRecord",
    "FILE_LEVEL",
]

FILE_LEVEL = "<FILE_LEVEL>"


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Input or output file name the failure concerns
        sheet: Sheet / category name, or FILE_LEVEL
        error_type: Classification in UPPER_SNAKE_CASE (MALFORMED_INPUT, ...)
        message: Human readable description
    """
    timestamp: str
    file: str
    sheet: str
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(file: str, error_type: str, message: str, sheet: str = FILE_LEVEL) -> ErrorRecord:
        """Create a new ErrorRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            sheet=sheet,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        # 追加キー阻止: dataclass -> dict して json.dumps
        return json.dumps(asdict(self), ensure_ascii=False)
