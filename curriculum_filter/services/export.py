from __future__ import annotations

import logging
from collections.abc import Callable, Iterator

from ..models.processing_result import BatchProgress, ExportResult
from ..models.tree import CategoryTree, Row, TreeNode
from .selection import SelectionStore

logger = logging.getLogger(__name__)

"""Export projector.

Walks the tree together with the selection store and collects, per category,
the rows of every checked topic whose ancestors are all included (checked or
indeterminate). Traversal follows the tree's natural insertion order at every
level; display sorting never applies here. Categories without exported rows
are left out. Inputs are only read, so projecting twice gives the same result.
"""

__all__ = [
    "DEFAULT_EXPORT_BATCH_SIZE",
    "ExportRun",
    "project_category",
    "project_selection",
]

DEFAULT_EXPORT_BATCH_SIZE = 3


def _collect(node: TreeNode, store: SelectionStore, out: list[Row]) -> None:
    state = store.state(node.key)
    if node.is_topic:
        # topic は葉なので checked のみ対象 (indeterminate は不可)
        if state.checked is True:
            out.extend(dict(row) for row in node.rows)
        return
    if not state.included:
        return
    for child in node.children.values():
        _collect(child, store, out)


def project_category(category: TreeNode, store: SelectionStore) -> list[Row]:
    """Selected rows of one category in tree traversal order."""
    rows: list[Row] = []
    _collect(category, store, rows)
    return rows


class ExportRun:
    """Category-batched projection; yields a BatchProgress between batches."""

    def __init__(self, tree: CategoryTree, store: SelectionStore, *, batch_size: int = DEFAULT_EXPORT_BATCH_SIZE) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.tree = tree
        self.store = store
        self.batch_size = batch_size
        self._result: ExportResult | None = None

    @property
    def result(self) -> ExportResult:
        if self._result is None:
            raise RuntimeError("export run has not completed")
        return self._result

    def __iter__(self) -> Iterator[BatchProgress]:
        categories = list(self.tree)
        collected: dict[str, list[Row]] = {}
        for offset in range(0, len(categories), self.batch_size):
            batch = categories[offset : offset + self.batch_size]
            for category in batch:
                rows = project_category(category, self.store)
                if rows:
                    collected[category.name] = rows
                logger.debug("export category=%s rows=%d", category.name, len(rows))
            yield BatchProgress(
                stage="export",
                sheet_name=batch[-1].name,
                processed=offset + len(batch),
                total=len(categories),
                batch_size=len(batch),
                unit="category",
            )
        self._result = ExportResult(rows_by_category=collected)


def project_selection(
    tree: CategoryTree,
    store: SelectionStore,
    *,
    batch_size: int = DEFAULT_EXPORT_BATCH_SIZE,
    on_batch: Callable[[BatchProgress], None] | None = None,
) -> ExportResult:
    """Project the current selection into rows grouped by category."""
    run = ExportRun(tree, store, batch_size=batch_size)
    for progress in run:
        if on_batch is not None:
            on_batch(progress)
    return run.result
