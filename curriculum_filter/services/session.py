from __future__ import annotations

import logging
import time
from collections.abc import Callable
from pathlib import Path
from typing import IO

from ..config.loader import FilterConfig
from ..excel.reader import ExcelSource, Workbook, read_workbook
from ..excel.writer import ExportWriteError, write_workbook
from ..models.processing_result import BatchProgress, ExportResult, IngestStats
from ..models.selection_state import SelectionState
from ..models.tree import CategoryTree, NodeKey
from .aggregator import IngestionRun, IngestResult
from .export import project_selection
from .normalizer import RowNormalizer
from .selection import SelectionStore
from .tree_filter import filter_tree

logger = logging.getLogger(__name__)

"""Session facade used by rendering surfaces and the CLI.

Lifecycle: create-on-ingest, mutate through the selection entry points,
discard on the next upload. A new workbook is always folded off to the side
and only published once ingestion has completed, so a failed or abandoned
upload leaves the previous session untouched.
"""

__all__ = [
    "FilterSession",
    "NoWorkbookLoadedError",
]

ProgressCallback = Callable[[BatchProgress], None]


class NoWorkbookLoadedError(RuntimeError):
    pass


class FilterSession:
    def __init__(self, config: FilterConfig | None = None) -> None:
        self.config = config or FilterConfig()
        self.normalizer = RowNormalizer(self.config.grouping_columns)
        self.tree: CategoryTree | None = None
        self.selection: SelectionStore | None = None
        self.stats: IngestStats | None = None
        self.search_term = ""
        self.has_changes = False

    # -- ingestion -------------------------------------------------------

    @property
    def loaded(self) -> bool:
        return self.tree is not None

    def load(self, source: ExcelSource, *, on_batch: ProgressCallback | None = None) -> IngestStats:
        """Read an uploaded file and ingest it.

        Raises:
            MalformedInputError: the file could not be parsed (session unchanged)
        """
        workbook = read_workbook(source, date_format=self.config.date_format)
        return self.ingest(workbook, on_batch=on_batch)

    def start_ingest(self, workbook: Workbook) -> IngestionRun:
        """Create a host-driven run; pass it to ``publish`` once exhausted."""
        return IngestionRun(workbook, batch_size=self.config.batch_size, normalizer=self.normalizer)

    def ingest(self, workbook: Workbook, *, on_batch: ProgressCallback | None = None) -> IngestStats:
        run = self.start_ingest(workbook)
        for progress in run:
            if on_batch is not None:
                on_batch(progress)
        return self.publish(run.result)

    def publish(self, result: IngestResult | IngestionRun) -> IngestStats:
        """Replace the session aggregate with a completed ingestion result."""
        if isinstance(result, IngestionRun):
            result = result.result
        self.tree = result.tree
        self.selection = result.selection
        self.stats = result.stats
        self.search_term = ""
        self.has_changes = False
        logger.info(
            "ingested sheets=%d rows=%d duplicates=%d",
            result.stats.sheets,
            result.stats.ingested_rows,
            result.stats.duplicate_rows,
        )
        return result.stats

    def reset(self) -> None:
        self.tree = None
        self.selection = None
        self.stats = None
        self.search_term = ""
        self.has_changes = False

    def _require(self) -> tuple[CategoryTree, SelectionStore]:
        if self.tree is None or self.selection is None:
            raise NoWorkbookLoadedError("no workbook loaded")
        return self.tree, self.selection

    # -- selection -------------------------------------------------------

    def state(self, key: NodeKey) -> SelectionState:
        _, store = self._require()
        return store.state(key)

    def set_node(self, key: NodeKey, checked: bool) -> None:
        _, store = self._require()
        store.set_node(key, checked)
        self.has_changes = True

    def check_all(self) -> None:
        _, store = self._require()
        store.check_all()
        self.has_changes = True

    def uncheck_all(self) -> None:
        _, store = self._require()
        store.uncheck_all()
        self.has_changes = True

    def toggle_expanded(self, key: NodeKey) -> bool:
        _, store = self._require()
        return store.toggle_expanded(key)

    # -- search ----------------------------------------------------------

    def search(self, term: str | None) -> CategoryTree:
        self.search_term = term or ""
        return self.view

    @property
    def view(self) -> CategoryTree:
        tree, _ = self._require()
        return filter_tree(tree, self.search_term)

    # -- export ----------------------------------------------------------

    def export_rows(self, *, on_batch: ProgressCallback | None = None) -> ExportResult:
        tree, store = self._require()
        return project_selection(tree, store, batch_size=self.config.export_batch_size, on_batch=on_batch)

    def default_output_name(self, now: float | None = None) -> str:
        millis = int((time.time() if now is None else now) * 1000)
        return self.config.output_name_template.format(timestamp=millis)

    def save(
        self,
        target: str | Path | IO[bytes] | None = None,
        *,
        on_batch: ProgressCallback | None = None,
    ) -> tuple[str | Path | IO[bytes], ExportResult]:
        """Export the current selection to ``target`` (default file name if None).

        Raises:
            ExportWriteError: nothing selected or the writer failed;
                ``has_changes`` is left as it was so the user can retry
        """
        result = self.export_rows(on_batch=on_batch)
        destination = target if target is not None else Path(self.default_output_name())
        try:
            write_workbook(result.rows_by_category, destination)
        except ExportWriteError:
            logger.error("export failed; selection kept for retry")
            raise
        self.has_changes = False
        logger.info("exported sheets=%d rows=%d", result.exported_sheets, result.exported_rows)
        return destination, result
