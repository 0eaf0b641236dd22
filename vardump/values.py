"""
Value handles and the traversal order shared by both dump passes.

A Value binds an object to the descriptor of the slot it was found in. children() is the
only place that decides in which order the parts of a value are visited. The identity
pre-pass and the rendering pass both go through it, so a back-reference is always
rendered after the value it points at.
"""

# Standard library -----------------------------------------------------------------------------------------------------
from dataclasses import dataclass, replace
from typing import Any, Iterator

# Local ----------------------------------------------------------------------------------------------------------------
from .kinds import ANY, INVALID_TYPE, FieldDescriptor, Kind, TypeDescriptor, classify, extra_field, fields_of
from .sentinels import INVALID
from .utils import safe_repr

__all__ = ["Value", "children", "key_string", "read_attr"]

_NARROWED_KINDS = (Kind.SEQUENCE, Kind.MAPPING, Kind.CHANNEL)


# Classes --------------------------------------------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class Value:
    """
    An object together with the descriptor of the slot holding it.

    Attributes:
        obj: The inspected object, never modified by the engine.
        type: Static descriptor of the slot, or the runtime descriptor of obj.
    """
    obj: Any
    type: TypeDescriptor

    @classmethod
    def of(cls, obj: Any) -> "Value":
        """Value described by its runtime type."""
        return cls(obj, classify(obj))

    @classmethod
    def typed(cls, obj: Any, static: TypeDescriptor | None) -> "Value":
        """
        Value found in a slot with a static descriptor.

        Dynamic slots keep their descriptor so the engine knows to unwrap them. None in a
        nil-able slot keeps the static descriptor for the None annotation. Otherwise the
        runtime descriptor wins, with container element types taken from the annotation
        when it names them.
        """
        if obj is INVALID:
            return cls(obj, INVALID_TYPE)
        if static is None or static.kind is Kind.DYNAMIC:
            return cls(obj, static or ANY)
        if obj is None:
            return cls(obj, static if static.nilable else ANY)

        runtime = classify(obj)
        if runtime.kind is static.kind and runtime.kind in _NARROWED_KINDS:
            return cls(obj, _narrow(runtime, static))
        return cls(obj, runtime)

    @property
    def identity(self) -> int | None:
        """Memory identity of reference-like values, None for everything else."""
        if self.obj is None or not self.type.reference:
            return None
        return id(self.obj)

    def elem(self) -> "Value":
        """Record view of a pointer."""
        return Value(self.obj, self.type.elem)

    def fields(self) -> Iterator[tuple[FieldDescriptor, "Value"]]:
        """Declared fields first, then attributes only present in the instance ``__dict__``."""
        obj = self.obj
        if self.type.anonymous:
            for field in self.type.fields:
                yield field, Value.typed(read_attr(obj, field.attr), field.type)
            return

        cls = type(obj)
        seen = set()
        for field in fields_of(cls):
            seen.add(field.attr)
            yield field, Value.typed(read_attr(obj, field.attr), field.type)

        state = getattr(obj, "__dict__", None)
        if not isinstance(state, dict):
            return
        for attr, item in list(state.items()):
            if attr not in seen:
                yield extra_field(cls, attr), Value.typed(item, ANY)

    def elements(self) -> list["Value"]:
        items = list(self.obj)
        if self.type.unordered:
            items.sort(key=key_string)
        return [Value.typed(item, self.type.elem) for item in items]

    def entries(self) -> list[tuple["Value", "Value"]]:
        pairs = sorted(self.obj.items(), key=lambda pair: key_string(pair[0]))
        return [(Value.typed(k, self.type.key), Value.typed(v, self.type.elem)) for k, v in pairs]

    def capacity(self) -> int:
        """Bound of a channel, 0 when unbounded."""
        size = read_attr(self.obj, "maxsize")
        if size is INVALID:
            size = read_attr(self.obj, "_maxsize")
        return size if isinstance(size, int) and size > 0 else 0


# Methods --------------------------------------------------------------------------------------------------------------

def children(value: Value) -> Iterator[Value]:
    """
    Parts of a value in rendering order.

    Records yield every field, visible or not. Mappings yield key then value per entry,
    ordered by key string.
    """
    kind = value.type.kind
    if value.obj is None or kind is Kind.INVALID:
        return

    if kind is Kind.POINTER:
        yield value.elem()
    elif kind is Kind.RECORD:
        for _, child in value.fields():
            yield child
    elif kind is Kind.SEQUENCE:
        yield from value.elements()
    elif kind is Kind.MAPPING:
        for key, item in value.entries():
            yield key
            yield item
    elif kind is Kind.DYNAMIC:
        yield Value.of(value.obj)


def key_string(key: Any) -> str:
    """Sort key of mapping keys and set elements: text as is, anything else by repr."""
    return key if isinstance(key, str) else safe_repr(key)


def read_attr(obj: Any, attr: str) -> Any:
    """Read an attribute, INVALID when it is unset or the read raises."""
    try:
        return getattr(obj, attr)
    except Exception:
        return INVALID


# Private Methods ------------------------------------------------------------------------------------------------------

def _narrow(runtime: TypeDescriptor, static: TypeDescriptor) -> TypeDescriptor:
    """Runtime container descriptor with element types from the annotation."""
    changes = {}
    if static.elem is not None and static.elem.kind is not Kind.DYNAMIC:
        changes["elem"] = static.elem
    if static.key is not None and static.key.kind is not Kind.DYNAMIC:
        changes["key"] = static.key
    return replace(runtime, **changes) if changes else runtime
