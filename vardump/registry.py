"""
Formatter registry: per-type overrides of the generic record layout.

A formatter is a callable ``fn(state, obj)`` writing the interior lines of a record. The
engine wraps its output in the usual ``TypeName{`` ... ``}`` frame. Lookup is by exact
type, the last registration for a type wins.

Classes can describe themselves instead by defining ``__dump__(self, state)``, which the
engine checks before the registry.
"""

# Standard library -----------------------------------------------------------------------------------------------------
import collections.abc as abc
import threading

from typing import TYPE_CHECKING, Any, Callable, Iterator, Protocol, Self, runtime_checkable

if TYPE_CHECKING:
    from .engine import DumpState

__all__ = [
    "DumpFunc",
    "Dumpable",
    "FormatterRegistry",
    "default_registry",
    "find_formatter",
    "register_formatter",
    "unregister_formatter",
]

DumpFunc = Callable[["DumpState", Any], None]


# Classes --------------------------------------------------------------------------------------------------------------

@runtime_checkable
class Dumpable(Protocol):
    """Objects which render their own record body."""

    def __dump__(self, state: "DumpState") -> None:
        ...


class FormatterRegistry:
    """
    Mapping of exact types to formatter callables.

    Examples:
        >>> registry = FormatterRegistry()
        >>> registry.register(Point, lambda state, p: state.dump_struct_field("xy", (p.x, p.y)))
        >>> Dumper(registry=registry).sdump(Point(1, 2))
    """

    def __init__(self, formatters: abc.Mapping[type, DumpFunc] | None = None) -> None:
        self._formatters: dict[type, DumpFunc] = {}
        for typ, fn in (formatters or {}).items():
            self.register(typ, fn)

    def register(self, typ: type, fn: DumpFunc) -> Self:
        """
        Register or override the formatter of a type.

        Args:
            typ: The concrete type to format.
            fn: A callable receiving (state, obj) which writes the record body.

        Returns:
            Self, to allow chaining.

        Raises:
            TypeError: If typ is not a type or fn is not callable.
        """
        if not isinstance(typ, type):
            raise TypeError(f"typ must be a type, got {type(typ).__name__}")
        if not callable(fn):
            raise TypeError(f"formatter must be callable, got {type(fn).__name__}")
        self._formatters[typ] = fn
        return self

    def unregister(self, typ: type) -> Self:
        """
        Remove the formatter of a type if there is one.

        Raises:
            TypeError: If typ is not a type.
        """
        if not isinstance(typ, type):
            raise TypeError(f"typ must be a type, got {type(typ).__name__}")
        self._formatters.pop(typ, None)
        return self

    def lookup(self, typ: type) -> DumpFunc | None:
        return self._formatters.get(typ)

    def copy(self) -> "FormatterRegistry":
        return FormatterRegistry(self._formatters)

    def __contains__(self, typ: object) -> bool:
        return typ in self._formatters

    def __iter__(self) -> Iterator[type]:
        return iter(list(self._formatters))

    def __len__(self) -> int:
        return len(self._formatters)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({len(self._formatters)} formatters)"


# Default Registry -----------------------------------------------------------------------------------------------------

_default: FormatterRegistry | None = None
_default_lock = threading.Lock()


def default_registry() -> FormatterRegistry:
    """
    The process-wide registry, seeded with the built-in formatters on first use.
    """
    global _default
    if _default is None:
        with _default_lock:
            if _default is None:
                from .formatters import FORMATTERS
                from .network import NETWORK_FORMATTERS

                _default = FormatterRegistry({**FORMATTERS, **NETWORK_FORMATTERS})
    return _default


def register_formatter(typ: type, fn: DumpFunc) -> None:
    """Register a formatter on the default registry."""
    default_registry().register(typ, fn)


def unregister_formatter(typ: type) -> None:
    """Remove a formatter from the default registry."""
    default_registry().unregister(typ)


def find_formatter(registry: FormatterRegistry, obj: Any) -> DumpFunc | None:
    """Formatter for an object: its own ``__dump__`` first, then the registry."""
    method = getattr(type(obj), "__dump__", None)
    if callable(method):
        return _dump_self
    return registry.lookup(type(obj))


def _dump_self(state: "DumpState", obj: Dumpable) -> None:
    obj.__dump__(state)
