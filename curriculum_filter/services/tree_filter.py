from __future__ import annotations

from typing import Any

from ..models.tree import CategoryTree, TreeNode

"""Search view of the tree.

``filter_tree`` never mutates the tree or any selection state. It returns a
fresh CategoryTree holding:
- original nodes, unfiltered, for every node whose own name matches
- pruned copies for nodes that only have matching descendants

Pruned copies keep the original node keys, so selection lookups work the
same on the view as on the tree.
"""

__all__ = [
    "filter_tree",
    "matches",
]


def matches(value: Any, term: str) -> bool:
    """Case-insensitive substring match; blank values never match."""
    if not term:
        return False
    if value is None or value == "":
        return False
    return term.lower() in str(value).lower()


def _prune(node: TreeNode, term: str, parent: TreeNode | None) -> TreeNode | None:
    if matches(node.name, term):
        return node
    if node.is_topic:
        return None
    copy = TreeNode(
        name=node.name,
        level=node.level,
        key=node.key,
        node_id=node.node_id,
        parent=parent,
    )
    for name, child in node.children.items():
        kept = _prune(child, term, copy)
        if kept is not None:
            copy.children[name] = kept
    return copy if copy.children else None


def filter_tree(tree: CategoryTree, term: str | None) -> CategoryTree:
    """Return the view of ``tree`` restricted to branches matching ``term``.

    An empty term returns ``tree`` itself. Whitespace is searched literally.
    """
    if not term:
        return tree
    view: dict[str, TreeNode] = {}
    for name, category in tree.categories.items():
        kept = _prune(category, term, None)
        if kept is not None:
            view[name] = kept
    return CategoryTree(view)
