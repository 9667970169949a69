"""Curriculum spreadsheet filter.

Ingests a workbook whose rows describe a Category > Class > Subject > Chapter
> Topic hierarchy, keeps tri-state selection over that tree and re-exports
only the selected rows.
"""

from .models.selection_state import SelectionState
from .models.tree import CategoryTree, Level, NodeKey, TreeNode
from .services.aggregator import DeduplicatingAggregator, ingest_workbook
from .services.export import project_selection
from .services.selection import SelectionStore, UnknownNodeError
from .services.session import FilterSession
from .services.tree_filter import filter_tree

__all__ = [
    "CategoryTree",
    "DeduplicatingAggregator",
    "FilterSession",
    "Level",
    "NodeKey",
    "SelectionState",
    "SelectionStore",
    "TreeNode",
    "UnknownNodeError",
    "filter_tree",
    "ingest_workbook",
    "project_selection",
]

__version__ = "0.3.0"
