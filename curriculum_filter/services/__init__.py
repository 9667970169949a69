"""Services: normalization, aggregation, selection, search, export."""

from .aggregator import DeduplicatingAggregator, IngestionRun, IngestResult, ingest_workbook
from .export import ExportRun, project_selection
from .normalizer import RowNormalizer
from .selection import SelectionStore, UnknownNodeError
from .session import FilterSession, NoWorkbookLoadedError
from .tree_filter import filter_tree

__all__ = [
    "DeduplicatingAggregator",
    "ExportRun",
    "FilterSession",
    "IngestResult",
    "IngestionRun",
    "NoWorkbookLoadedError",
    "RowNormalizer",
    "SelectionStore",
    "UnknownNodeError",
    "filter_tree",
    "ingest_workbook",
    "project_selection",
]
