from __future__ import annotations

import statistics
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .tree import Row

"""Result models for ingestion and export runs.

BatchProgress is what the cooperative loops yield between batches; IngestStats
and ExportResult summarise a completed run and feed the SUMMARY line.
"""

__all__ = [
    "BatchProgress",
    "IngestStats",
    "ExportResult",
    "BatchStatsAccumulator",
]


@dataclass(frozen=True)
class BatchProgress:
    """Progress snapshot yielded after each processed batch.

    ``unit`` is "row" for ingestion and "category" for export.
    """
    stage: str  # ingest / export
    sheet_name: str  # 現在処理中のシート (export ではカテゴリ名)
    processed: int  # processed units so far (whole run)
    total: int  # total units of the run
    batch_size: int  # units handled by this batch
    unit: str = "row"

    @property
    def fraction(self) -> float:
        if self.total <= 0:
            return 1.0
        return min(1.0, self.processed / self.total)


@dataclass(frozen=True)
class IngestStats:
    """Summary of one completed ingestion run."""
    sheets: int  # sheets that produced a category
    skipped_sheets: int  # sheets with zero data rows
    input_rows: int  # rows read from the workbook
    ingested_rows: int  # rows appended to topics
    duplicate_rows: int  # rows dropped by the uniqueness tracker
    elapsed_seconds: float = 0.0
    total_batches: int = 0
    avg_batch_seconds: float = 0.0
    p95_batch_seconds: float = 0.0


@dataclass(frozen=True)
class ExportResult:
    """Projected rows grouped by category, in tree traversal order."""
    rows_by_category: dict[str, list[Row]] = field(default_factory=dict)

    @property
    def exported_sheets(self) -> int:
        return len(self.rows_by_category)

    @property
    def exported_rows(self) -> int:
        return sum(len(rows) for rows in self.rows_by_category.values())

    def __bool__(self) -> bool:
        return bool(self.rows_by_category)


class BatchStatsAccumulator:
    """Collects per-batch timings and reports count / mean / p95."""

    def __init__(self) -> None:
        self.batch_times: list[float] = []

    def add_batch_time(self, elapsed_seconds: float) -> None:
        self.batch_times.append(elapsed_seconds)

    def get_stats(self) -> tuple[int, float, float]:
        """Return ``(total_batches, avg_batch_seconds, p95_batch_seconds)``."""
        if not self.batch_times:
            return (0, 0.0, 0.0)

        total_batches = len(self.batch_times)
        avg_batch_seconds = statistics.mean(self.batch_times)
        if total_batches == 1:
            p95_batch_seconds = self.batch_times[0]
        else:
            # 20 分位の 19 番目 = p95
            p95_batch_seconds = statistics.quantiles(
                self.batch_times, n=20, method="inclusive"
            )[18]
        return (total_batches, avg_batch_seconds, p95_batch_seconds)
