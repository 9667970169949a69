from __future__ import annotations

import threading
from collections.abc import Mapping

from ..models.selection_state import CHECKED, INDETERMINATE, UNCHECKED, SelectionState
from ..models.tree import CategoryTree, Level, NodeKey, TreeNode

"""Selection store.

Holds the tri-state selection of every tree node plus the (UI only)
expansion flags. Only two entry points mutate it, ``set_node`` and
``toggle_expanded``; both run under one lock so calls never interleave.

Invariant kept after every call: the state of a node with children is a
function of its children's states:
    all children checked                    -> checked
    any child checked or indeterminate      -> indeterminate
    otherwise                               -> unchecked
"""

__all__ = [
    "SelectionStore",
    "UnknownNodeError",
    "aggregate_state",
]


class UnknownNodeError(KeyError):
    """Raised when a key does not name a position in the tree."""


def aggregate_state(children: list[SelectionState]) -> SelectionState:
    """Parent state derived from its children's states."""
    if all(child.checked for child in children):
        return CHECKED
    if any(child.checked or child.indeterminate for child in children):
        return INDETERMINATE
    return UNCHECKED


def _as_key(key: NodeKey) -> NodeKey:
    """Keys are sequences of names; a bare string would split into characters."""
    if isinstance(key, str):
        raise TypeError(f"node key must be a tuple of names, not str: {key!r}")
    return tuple(key)


class SelectionStore:
    """Tri-state selection over one CategoryTree.

    Args:
        tree: The aggregated tree the keys refer to
        states: Initial states per key. None means every node starts checked.
        expanded: Initial expansion flags. None means every group is collapsed.
    """

    def __init__(
        self,
        tree: CategoryTree,
        states: Mapping[NodeKey, SelectionState] | None = None,
        expanded: Mapping[NodeKey, bool] | None = None,
    ) -> None:
        self.tree = tree
        self._lock = threading.RLock()
        if states is None:
            self._states: dict[NodeKey, SelectionState] = {node.key: CHECKED for node in tree.iter_nodes()}
        else:
            self._states = dict(states)
        if expanded is None:
            self._expanded: dict[NodeKey, bool] = {
                node.key: False for node in tree.iter_nodes() if node.level != Level.TOPIC
            }
        else:
            self._expanded = dict(expanded)

    # -- reads -----------------------------------------------------------

    def state(self, key: NodeKey) -> SelectionState:
        """State of ``key``; keys without an entry read as unchecked."""
        return self._states.get(_as_key(key), UNCHECKED)

    def is_checked(self, key: NodeKey) -> bool:
        return self.state(key).checked

    def is_indeterminate(self, key: NodeKey) -> bool:
        return self.state(key).indeterminate

    def is_expanded(self, key: NodeKey) -> bool:
        return self._expanded.get(_as_key(key), False)

    def __len__(self) -> int:
        return len(self._states)

    def snapshot(self) -> dict[str, dict[NodeKey, object]]:
        """Copies of both maps (states as plain dicts) for comparison/debugging."""
        with self._lock:
            return {
                "selection": {key: state.to_dict() for key, state in self._states.items()},
                "expanded": dict(self._expanded),
            }

    # -- entry points ----------------------------------------------------

    def _node(self, key: NodeKey) -> TreeNode:
        node = self.tree.get(_as_key(key))
        if node is None:
            raise UnknownNodeError(tuple(key))
        return node

    def set_node(self, key: NodeKey, checked: bool) -> SelectionState:
        """Check or uncheck a node and propagate the change.

        1. the node itself becomes checked/unchecked (never indeterminate)
        2. every descendant is forced to the same state
        3. every ancestor is recomputed from its children, bottom-up

        Returns:
            The resulting state of the node's category (root of the change)
        """
        with self._lock:
            node = self._node(key)
            state = CHECKED if checked else UNCHECKED
            self._states[node.key] = state
            for descendant in node.iter_descendants():
                self._states[descendant.key] = state
            for ancestor in node.iter_ancestors():
                self._states[ancestor.key] = aggregate_state(
                    [self.state(child.key) for child in ancestor.children.values()]
                )
            return self.state(node.key[:1])

    def set_all(self, checked: bool) -> None:
        with self._lock:
            for category in self.tree:
                self.set_node(category.key, checked)

    def check_all(self) -> None:
        self.set_all(True)

    def uncheck_all(self) -> None:
        self.set_all(False)

    def toggle_expanded(self, key: NodeKey) -> bool:
        """Flip the expansion flag of ``key``; returns the new value.

        Expansion never affects selection states.
        """
        with self._lock:
            key = _as_key(key)
            value = not self._expanded.get(key, False)
            self._expanded[key] = value
            return value

    def set_expanded(self, key: NodeKey, expanded: bool) -> None:
        with self._lock:
            self._expanded[_as_key(key)] = expanded
