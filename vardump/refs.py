"""
Shared and circular reference detection.

map_pointers() walks a value graph once before rendering and returns the identities of
reference-like values reached more than once. Those values are labeled ``p<idx>`` on
their first rendering and replaced by the bare label afterwards, which also guarantees
the rendering pass terminates on cyclic graphs.
"""

# Standard library -----------------------------------------------------------------------------------------------------
from dataclasses import dataclass
from typing import Any

# Local ----------------------------------------------------------------------------------------------------------------
from .kinds import Kind
from .values import Value, children

__all__ = ["PointerRef", "map_pointers"]


# Classes --------------------------------------------------------------------------------------------------------------

@dataclass(slots=True)
class PointerRef:
    """
    Label of a shared reference.

    Attributes:
        idx: Dense zero-based id, assigned in first-seen order.
        visited: Set by the rendering pass on the first rendering of the value.
    """
    idx: int
    visited: bool = False

    @property
    def name(self) -> str:
        return f"p{self.idx}"


# Methods --------------------------------------------------------------------------------------------------------------

def map_pointers(root: Value) -> dict[int, PointerRef]:
    """
    Find reference-like values reachable more than once from root.

    The walk is depth first in children() order and does not descend into a value it has
    seen before. Every sighted object is kept alive until the walk returns, so an id()
    cannot be recycled by a temporary produced while walking.

    Args:
        root: Top-level value of the dump.

    Returns:
        dict[int, PointerRef]: Identity of every shared value mapped to its label.

    Raises:
        RecursionError: For graphs nested deeper than the interpreter recursion limit.
    """
    seen: dict[int, Any] = {}
    reused: dict[int, PointerRef] = {}

    def consider(value: Value) -> None:
        if value.type.kind is Kind.INVALID:
            return
        ident = value.identity
        if ident is not None:
            if ident in reused:
                return
            if ident in seen:
                reused[ident] = PointerRef(len(reused))
                return
            seen[ident] = value.obj
        for child in children(value):
            consider(child)

    consider(root)
    return reused
