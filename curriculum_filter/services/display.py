from __future__ import annotations

import math
from collections.abc import Mapping

from ..config.loader import DEFAULT_DISPLAY_LIMITS
from ..models.tree import CategoryTree, Level, TreeNode
from .selection import SelectionStore

"""Display helpers for tree rendering surfaces.

Sorting and truncation here are display-only; export always follows the
tree's natural order.
"""

__all__ = [
    "display_label",
    "display_name",
    "sort_key",
    "sorted_children",
    "sorted_categories",
    "render_tree_lines",
]

_CHILD_NOUNS = {
    Level.CATEGORY: "classes",
    Level.CLASS: "subjects",
    Level.SUBJECT: "chapters",
    Level.CHAPTER: "topics",
    Level.TOPIC: "items",
}

_LIMIT_KEYS = {
    Level.CLASS: "class",
    Level.SUBJECT: "subject",
    Level.CHAPTER: "chapter",
    Level.TOPIC: "topic",
}


def display_name(node: TreeNode) -> str:
    if node.name.strip() == "":
        return f"[Empty {node.level.kind}]"
    return node.name


def display_label(node: TreeNode) -> str:
    """e.g. ``"10 (3 subjects)"`` or ``"Linear Eq (4 items)"``."""
    count = len(node.rows) if node.is_topic else len(node.children)
    return f"{display_name(node)} ({count} {_CHILD_NOUNS[node.level]})"


def _as_number(name: str) -> float | None:
    try:
        value = float(name)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def sort_key(node: TreeNode) -> tuple[int, float, str]:
    """Classes sort numerically when they look like numbers; all else by name."""
    if node.level == Level.CLASS:
        number = _as_number(node.name)
        if number is not None:
            return (0, number, node.name)
    return (1, 0.0, node.name)


def sorted_categories(tree: CategoryTree) -> list[TreeNode]:
    return sorted(tree, key=lambda node: node.name)


def sorted_children(node: TreeNode, limits: Mapping[str, int | None] | None = None) -> list[TreeNode]:
    """Children in display order, truncated to the level's display limit."""
    children = sorted(node.children.values(), key=sort_key)
    if not children:
        return children
    limits = DEFAULT_DISPLAY_LIMITS if limits is None else limits
    limit = limits.get(_LIMIT_KEYS[children[0].level])
    return children if limit is None else children[:limit]


def render_tree_lines(
    view: CategoryTree,
    store: SelectionStore,
    *,
    expand_all: bool = False,
    limits: Mapping[str, int | None] | None = None,
    indent: str = "  ",
) -> list[str]:
    """Text rendering: one ``<marker> <label>`` line per visible node."""
    lines: list[str] = []

    def _walk(node: TreeNode, depth: int) -> None:
        lines.append(f"{indent * depth}{store.state(node.key).marker} {display_label(node)}")
        if node.is_topic:
            return
        if expand_all or store.is_expanded(node.key):
            for child in sorted_children(node, limits):
                _walk(child, depth + 1)

    for category in sorted_categories(view):
        _walk(category, 0)
    return lines
