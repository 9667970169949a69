"""Domain models for the curriculum filter.

Tree structure, tri-state selection values, normalized rows and the result
objects produced by ingestion and export runs.
"""

from .error_record import FILE_LEVEL, ErrorRecord
from .processing_result import BatchProgress, BatchStatsAccumulator, ExportResult, IngestStats
from .row_data import RowData
from .selection_state import CHECKED, INDETERMINATE, UNCHECKED, SelectionState
from .tree import CategoryTree, Level, NodeKey, Row, TreeNode, parse_node_path

__all__ = [
    # Tree
    "CategoryTree",
    "Level",
    "NodeKey",
    "Row",
    "TreeNode",
    "parse_node_path",
    # Selection
    "SelectionState",
    "CHECKED",
    "UNCHECKED",
    "INDETERMINATE",
    # Processing
    "RowData",
    "BatchProgress",
    "BatchStatsAccumulator",
    "ExportResult",
    "IngestStats",
    # Errors
    "ErrorRecord",
    "FILE_LEVEL",
]
