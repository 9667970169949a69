from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

"""Aggregated curriculum tree.

The tree has five levels: Category (one per sheet) > Class > Subject >
Chapter > Topic. Group nodes (depth 0-3) hold an ordered mapping of child
name -> child node; topic nodes (depth 4) hold the ordered list of original
rows assigned to them.

Node identity is structural: a NodeKey is the tuple of names from the
category down to the node, so no string separator is ever involved and two
different positions can never share a key.
"""

__all__ = [
    "Row",
    "NodeKey",
    "Level",
    "TreeNode",
    "CategoryTree",
    "parse_node_path",
]

# 列名 -> セル値 (空セルは "" として保持)
Row = dict[str, Any]

NodeKey = tuple[str, ...]


class Level(IntEnum):
    """Depth of a node inside the tree."""
    CATEGORY = 0
    CLASS = 1
    SUBJECT = 2
    CHAPTER = 3
    TOPIC = 4

    @property
    def kind(self) -> str:
        """Human readable kind used in placeholders and labels."""
        return self.name.capitalize()


@dataclass(eq=False)
class TreeNode:
    """One position in the tree.

    Attributes:
        name: Group name at this level (sheet name for categories)
        level: Depth of the node
        key: Structural path from the category down to this node
        node_id: Creation order within one ingestion run (stable for the run)
        parent: Back-reference to the parent node (None for categories)
        children: Child nodes keyed by name, in first-seen order (groups only)
        rows: Original rows in ingestion order (topics only)
    """
    name: str
    level: Level
    key: NodeKey
    node_id: int
    parent: TreeNode | None = field(default=None, repr=False)
    children: dict[str, TreeNode] = field(default_factory=dict, repr=False)
    rows: list[Row] = field(default_factory=list, repr=False)

    @property
    def is_topic(self) -> bool:
        return self.level == Level.TOPIC

    @property
    def parent_key(self) -> NodeKey | None:
        return self.key[:-1] if len(self.key) > 1 else None

    def iter_descendants(self) -> Iterator[TreeNode]:
        """Yield every strict descendant in depth-first, insertion order."""
        for child in self.children.values():
            yield child
            yield from child.iter_descendants()

    def iter_topics(self) -> Iterator[TreeNode]:
        if self.is_topic:
            yield self
            return
        for child in self.children.values():
            yield from child.iter_topics()

    def iter_ancestors(self) -> Iterator[TreeNode]:
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def row_count(self) -> int:
        return sum(len(topic.rows) for topic in self.iter_topics())


class CategoryTree:
    """Ordered collection of category nodes.

    Also used for the pruned views produced by the search filter; a view
    shares node keys with the tree it was derived from.
    """

    def __init__(self, categories: dict[str, TreeNode] | None = None) -> None:
        self.categories: dict[str, TreeNode] = categories if categories is not None else {}

    def __len__(self) -> int:
        return len(self.categories)

    def __iter__(self) -> Iterator[TreeNode]:
        return iter(self.categories.values())

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, tuple):
            return False
        return self.get(key) is not None

    def get(self, key: NodeKey) -> TreeNode | None:
        """Return the node at ``key`` or None (at most five dict lookups)."""
        if not key or len(key) > len(Level):
            return None
        node = self.categories.get(key[0])
        for name in key[1:]:
            if node is None:
                return None
            node = node.children.get(name)
        return node

    def iter_nodes(self) -> Iterator[TreeNode]:
        """Yield every node, categories first then their subtrees, depth-first."""
        for category in self.categories.values():
            yield category
            yield from category.iter_descendants()

    def row_count(self) -> int:
        return sum(category.row_count() for category in self.categories.values())

    def to_dict(self) -> dict[str, Any]:
        """Plain nested representation (groups -> dicts, topics -> row lists)."""
        def _convert(node: TreeNode) -> Any:
            if node.is_topic:
                return [dict(row) for row in node.rows]
            return {name: _convert(child) for name, child in node.children.items()}

        return {name: _convert(node) for name, node in self.categories.items()}


def parse_node_path(text: str, separator: str = ">") -> NodeKey:
    """Convert host supplied text such as ``"Sheet1>10>Math"`` into a NodeKey.

    Only used for host input (CLI); the tree itself never joins names.
    """
    parts = tuple(part.strip() for part in text.split(separator))
    if not parts or any(part == "" for part in parts):
        raise ValueError(f"invalid node path: {text!r}")
    if len(parts) > len(Level):
        raise ValueError(f"node path deeper than {len(Level)} levels: {text!r}")
    return parts
