from __future__ import annotations

from dataclasses import dataclass

"""Tri-state checkbox value for one tree node."""

__all__ = [
    "SelectionState",
    "CHECKED",
    "UNCHECKED",
    "INDETERMINATE",
]


@dataclass(frozen=True)
class SelectionState:
    """Checkbox state of a node.

    ``indeterminate`` means the node's children are mixed. An indeterminate
    node always reports ``checked=False``.
    """
    checked: bool = False
    indeterminate: bool = False

    def __post_init__(self) -> None:
        if self.checked and self.indeterminate:
            raise ValueError("a node cannot be checked and indeterminate at the same time")

    @property
    def included(self) -> bool:
        """True when the node takes part in export (checked or mixed)."""
        return self.checked or self.indeterminate

    @property
    def marker(self) -> str:
        if self.checked:
            return "[x]"
        if self.indeterminate:
            return "[-]"
        return "[ ]"

    def to_dict(self) -> dict[str, bool]:
        return {"checked": self.checked, "indeterminate": self.indeterminate}


CHECKED = SelectionState(checked=True, indeterminate=False)
UNCHECKED = SelectionState(checked=False, indeterminate=False)
INDETERMINATE = SelectionState(checked=False, indeterminate=True)
