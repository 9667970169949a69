from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass
from typing import Any

from ..excel.reader import Workbook
from ..models.processing_result import BatchProgress, BatchStatsAccumulator, IngestStats
from ..models.row_data import RowData
from ..models.selection_state import CHECKED, SelectionState
from ..models.tree import CategoryTree, Level, NodeKey, Row, TreeNode
from .normalizer import RowNormalizer
from .selection import SelectionStore

logger = logging.getLogger(__name__)

"""Deduplicating aggregator.

Folds normalized rows into the Category > Class > Subject > Chapter > Topic
tree. Every group created along the way gets a default ``checked`` selection
state and a collapsed expansion flag. Rows are deduplicated on
``(sheet, class, subject, chapter, topic, position)`` so that a row delivered
twice (upstream double-processing) is appended once, while content-identical
rows at different positions are all kept.

Ingestion runs in bounded batches. IngestionRun yields a BatchProgress after
every batch so the host can refresh a progress display or abandon the run;
the tree is only handed out once the whole workbook has been folded, so an
abandoned run never touches previously published state.
"""

__all__ = [
    "DEFAULT_BATCH_SIZE",
    "DeduplicatingAggregator",
    "IngestResult",
    "IngestionRun",
    "ingest_workbook",
]

DEFAULT_BATCH_SIZE = 100


@dataclass(frozen=True)
class IngestResult:
    tree: CategoryTree
    selection: SelectionStore
    stats: IngestStats


class DeduplicatingAggregator:
    """Incremental tree builder.

    Rows can be fed sheet by sheet and batch by batch; the result is the same
    whatever the batch boundaries are.
    """

    def __init__(self, normalizer: RowNormalizer | None = None) -> None:
        self.normalizer = normalizer or RowNormalizer()
        self.tree = CategoryTree()
        self.selection: dict[NodeKey, SelectionState] = {}
        self.expanded: dict[NodeKey, bool] = {}
        self._seen: set[tuple[str, str, str, str, str, int]] = set()
        self._next_position: dict[str, int] = {}
        self._next_id = 0
        self.input_rows = 0
        self.ingested_rows = 0
        self.duplicate_rows = 0

    def _new_node(self, name: str, level: Level, parent: TreeNode | None) -> TreeNode:
        key: NodeKey = (name,) if parent is None else (*parent.key, name)
        node = TreeNode(name=name, level=level, key=key, node_id=self._next_id, parent=parent)
        self._next_id += 1
        self.selection[key] = CHECKED
        if level != Level.TOPIC:
            self.expanded[key] = False
        return node

    def _category(self, sheet_name: str) -> TreeNode:
        node = self.tree.categories.get(sheet_name)
        if node is None:
            node = self._new_node(sheet_name, Level.CATEGORY, None)
            self.tree.categories[sheet_name] = node
        return node

    def _child(self, parent: TreeNode, name: str) -> TreeNode:
        node = parent.children.get(name)
        if node is None:
            node = self._new_node(name, Level(parent.level + 1), parent)
            parent.children[name] = node
        return node

    def add(self, normalized: RowData) -> bool:
        """Fold one normalized row into the tree.

        Returns:
            True if the row was appended, False if it was a duplicate
        """
        self.input_rows += 1
        node = self._category(normalized.sheet_name)
        for name in normalized.group_path[1:]:
            node = self._child(node, name)

        identity = normalized.identity
        if identity in self._seen:
            self.duplicate_rows += 1
            logger.debug("duplicate row dropped sheet=%s position=%d", normalized.sheet_name, normalized.position)
            return False
        self._seen.add(identity)
        node.rows.append(normalized.values)
        self.ingested_rows += 1
        return True

    def feed(self, sheet_name: str, rows: Iterable[Row], *, start: int | None = None) -> int:
        """Fold a batch of raw rows of one sheet.

        Args:
            sheet_name: Sheet (category) the rows belong to
            rows: Raw rows in sheet order
            start: Position of the first row in the sheet. When omitted the
                per-sheet counter continues after the last fed row.

        Returns:
            Number of rows appended (duplicates excluded)
        """
        position = self._next_position.get(sheet_name, 0) if start is None else start
        appended = 0
        for row in rows:
            if self.add(self.normalizer.normalize(sheet_name, row, position)):
                appended += 1
            position += 1
        self._next_position[sheet_name] = max(self._next_position.get(sheet_name, 0), position)
        return appended

    def build(self) -> tuple[CategoryTree, SelectionStore]:
        """Hand out the tree with its initial (all checked) selection store.

        The uniqueness tracker is discarded; the aggregator must not be fed
        afterwards.
        """
        self._seen = set()
        store = SelectionStore(self.tree, states=dict(self.selection), expanded=dict(self.expanded))
        return self.tree, store


class IngestionRun:
    """Batch-by-batch ingestion of a whole workbook.

    Iterate to drive the run; each step processes at most ``batch_size`` rows
    and yields a BatchProgress. ``result`` becomes available once iteration
    has completed.
    """

    def __init__(
        self,
        workbook: Workbook,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        normalizer: RowNormalizer | None = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.workbook = workbook
        self.batch_size = batch_size
        self.normalizer = normalizer or RowNormalizer()
        self._result: IngestResult | None = None

    @property
    def done(self) -> bool:
        return self._result is not None

    @property
    def result(self) -> IngestResult:
        if self._result is None:
            raise RuntimeError("ingestion run has not completed")
        return self._result

    def __iter__(self) -> Iterator[BatchProgress]:
        started = time.perf_counter()
        aggregator = DeduplicatingAggregator(self.normalizer)
        batch_stats = BatchStatsAccumulator()
        total = self.workbook.total_rows
        processed = 0
        skipped_sheets = 0

        for sheet in self.workbook:
            if not sheet.rows:
                skipped_sheets += 1
                logger.warning("sheet=%s has no data rows; skipped", sheet.sheet_name)
                continue
            for offset in range(0, len(sheet.rows), self.batch_size):
                batch: Sequence[Any] = sheet.rows[offset : offset + self.batch_size]
                batch_start = time.perf_counter()
                aggregator.feed(sheet.sheet_name, batch, start=offset)
                batch_stats.add_batch_time(time.perf_counter() - batch_start)
                processed += len(batch)
                logger.debug("sheet=%s batch offset=%d size=%d", sheet.sheet_name, offset, len(batch))
                # ここでホストに制御を返す
                yield BatchProgress(
                    stage="ingest",
                    sheet_name=sheet.sheet_name,
                    processed=processed,
                    total=total,
                    batch_size=len(batch),
                )
            logger.info("sheet=%s rows=%d", sheet.sheet_name, len(sheet.rows))

        tree, store = aggregator.build()
        total_batches, avg_batch, p95_batch = batch_stats.get_stats()
        stats = IngestStats(
            sheets=len(tree),
            skipped_sheets=skipped_sheets,
            input_rows=aggregator.input_rows,
            ingested_rows=aggregator.ingested_rows,
            duplicate_rows=aggregator.duplicate_rows,
            elapsed_seconds=time.perf_counter() - started,
            total_batches=total_batches,
            avg_batch_seconds=avg_batch,
            p95_batch_seconds=p95_batch,
        )
        self._result = IngestResult(tree=tree, selection=store, stats=stats)


def ingest_workbook(
    workbook: Workbook,
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
    normalizer: RowNormalizer | None = None,
    on_batch: Callable[[BatchProgress], None] | None = None,
) -> IngestResult:
    """Run a whole ingestion, calling ``on_batch`` between batches."""
    run = IngestionRun(workbook, batch_size=batch_size, normalizer=normalizer)
    for progress in run:
        if on_batch is not None:
            on_batch(progress)
    return run.result
