"""
Type classification for the dump engine.

Every value the engine visits is paired with a TypeDescriptor which tells the engine the
shape kind to render it as, together with the type text used in headers and comments.

Two sources of descriptors exist:

- describe(annotation) builds a static descriptor from a type annotation (a dataclass
  field, a class-level annotation, a container type argument). Static descriptors decide
  how None is rendered and whether a scalar needs an explicit type instantiation.
- classify(obj) builds the runtime descriptor of a concrete value. Container element
  types are inferred from the contents when no annotation supplies them.

Descriptors of classes and hashable annotations are cached for the process lifetime.
"""

# Standard library -----------------------------------------------------------------------------------------------------
import asyncio
import collections
import collections.abc as abc
import dataclasses
import decimal
import enum
import functools
import inspect
import numbers
import queue
import types
import typing

from dataclasses import dataclass, replace
from enum import StrEnum, unique
from functools import cached_property
from multiprocessing.connection import Connection
from multiprocessing.queues import Queue as ProcessQueue
from typing import Any, Final, Iterable

# Local ----------------------------------------------------------------------------------------------------------------
from .sentinels import InvalidType
from .utils import class_name

__all__ = [
    "ANY",
    "INVALID_TYPE",
    "ChanDir",
    "FieldDescriptor",
    "Kind",
    "TypeDescriptor",
    "classify",
    "describe",
    "describe_class",
    "extra_field",
    "fields_of",
    "infer_type",
]


# Classes --------------------------------------------------------------------------------------------------------------

@unique
class Kind(StrEnum):
    """
    Shape kinds the engine dispatches on.

    Attributes:
        INVALID: Absent or unreadable value
        BOOL: bool
        INT: Integral numbers, int is the default width
        FLOAT: Real numbers and Decimal, float is the default width
        COMPLEX: Complex numbers
        ENUM: Enum members
        TEXT: str, bytes, bytearray
        POINTER: Identity-semantics instance with fields, deref yields RECORD
        RECORD: Field-bearing value
        SEQUENCE: Lists, tuples, deques, sets
        MAPPING: dict and other mappings
        CHANNEL: Queues and pipe connections
        FUNCTION: Callables without fields
        DYNAMIC: Slot of unknown static type
        OPAQUE: Anything else, rendered by repr
    """
    INVALID = "invalid"
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    COMPLEX = "complex"
    ENUM = "enum"
    TEXT = "text"
    POINTER = "pointer"
    RECORD = "record"
    SEQUENCE = "sequence"
    MAPPING = "mapping"
    CHANNEL = "channel"
    FUNCTION = "function"
    DYNAMIC = "dynamic"
    OPAQUE = "opaque"


@unique
class ChanDir(StrEnum):
    """Channel directions: both ways, receive-only, send-only."""
    BOTH = "both"
    RECV = "recv"
    SEND = "send"


@dataclass(frozen=True)
class FieldDescriptor:
    """
    A named field of a record.

    Attributes:
        name: Display name, mangled private names are shown as written in the class body.
        attr: Attribute name to read the value with.
        scope: Module of the class declaring the field.
        type: Static descriptor of the field annotation, ANY when unannotated.
    """
    name: str
    attr: str
    scope: str
    type: "TypeDescriptor"

    @property
    def exported(self) -> bool:
        return not self.name.startswith("_")


@dataclass(frozen=True)
class TypeDescriptor:
    """
    Immutable description of a type as the dump engine sees it.

    Container descriptors with ``elem`` set to None are *bare*: the element types are
    unknown and the type text is just the class name.
    """
    kind: Kind
    name: str = ""
    py_type: type | None = None
    elem: "TypeDescriptor | None" = None
    key: "TypeDescriptor | None" = None
    fields: tuple[FieldDescriptor, ...] = ()
    length: int | None = None
    slice_like: bool = False
    unordered: bool = False
    reference: bool = False
    default_width: bool = True
    narrow: bool = False
    direction: ChanDir = ChanDir.BOTH
    anonymous: bool = False
    label: str = ""

    @property
    def nilable(self) -> bool:
        return self.kind in NILABLE_KINDS

    @cached_property
    def text(self) -> str:
        """Rendered type text, as used in headers and None annotations."""
        return _type_text(self)


# Constants ------------------------------------------------------------------------------------------------------------

NILABLE_KINDS: Final = frozenset({Kind.POINTER, Kind.SEQUENCE, Kind.MAPPING, Kind.CHANNEL, Kind.FUNCTION})

ANY: Final[TypeDescriptor] = TypeDescriptor(Kind.DYNAMIC)
INVALID_TYPE: Final[TypeDescriptor] = TypeDescriptor(Kind.INVALID, name="invalid")

_CHANNEL_TYPES: Final = (queue.Queue, queue.SimpleQueue, asyncio.Queue, ProcessQueue, Connection)
_FUNCTION_TYPES: Final = (
    types.FunctionType,
    types.BuiltinFunctionType,
    types.MethodType,
    types.MethodWrapperType,
    functools.partial,
)
_OPAQUE_TYPES: Final = (type, BaseException, types.ModuleType, range)


# Methods --------------------------------------------------------------------------------------------------------------

def describe(annotation: Any) -> TypeDescriptor:
    """
    Static descriptor of a type annotation.

    Unions with None collapse to the other member, other unions and unknown annotations
    are dynamic. Unresolvable forward references are dynamic as well.

    Examples:
        >>> describe(list[int]).text
        '[]int'
        >>> describe(dict[str, bool]).text
        'map[str]bool'
        >>> describe(int | str).kind
        <Kind.DYNAMIC: 'dynamic'>
    """
    try:
        hash(annotation)
    except TypeError:
        return _describe(annotation)
    return _describe_cached(annotation)


@functools.cache
def describe_class(cls: type) -> TypeDescriptor:
    """
    Descriptor of a class with no type arguments.

    Containers come back bare, classify() fills in inferred element types for values.
    """
    name = getattr(cls, "__name__", "") or class_name(cls)

    def make(kind: Kind, **kwargs) -> TypeDescriptor:
        return TypeDescriptor(kind, name=name, py_type=cls, **kwargs)

    if cls is type(None):
        return ANY
    if issubclass(cls, InvalidType):
        return INVALID_TYPE
    if issubclass(cls, bool):
        return make(Kind.BOOL)
    if issubclass(cls, enum.Enum):
        return make(Kind.ENUM)
    if issubclass(cls, numbers.Integral):
        return make(Kind.INT, default_width=cls is int)
    if issubclass(cls, (numbers.Real, decimal.Decimal)):
        return make(Kind.FLOAT, default_width=cls is float)
    if issubclass(cls, numbers.Complex):
        return make(Kind.COMPLEX, narrow=name == "complex64")
    if issubclass(cls, (str, bytes, bytearray)):
        return make(Kind.TEXT)
    if issubclass(cls, _CHANNEL_TYPES):
        return make(Kind.CHANNEL, reference=True)
    if issubclass(cls, _FUNCTION_TYPES):
        return make(Kind.FUNCTION, reference=True, label="func(...)")
    if issubclass(cls, _OPAQUE_TYPES):
        return make(Kind.OPAQUE)
    if _is_namedtuple(cls):
        return make(Kind.RECORD)

    mutable = cls.__hash__ is None
    if issubclass(cls, abc.Mapping):
        return make(Kind.MAPPING, reference=mutable)
    if issubclass(cls, abc.Set):
        return make(Kind.SEQUENCE, slice_like=True, unordered=True, reference=mutable)
    if issubclass(cls, abc.Sequence):
        slice_like = issubclass(cls, abc.MutableSequence)
        return make(Kind.SEQUENCE, slice_like=slice_like, reference=mutable)

    if issubclass(cls, types.SimpleNamespace):
        record = make(Kind.RECORD, anonymous=True)
        return make(Kind.POINTER, elem=record, reference=True)
    if _has_fields(cls):
        record = make(Kind.RECORD)
        if mutable or cls.__hash__ is object.__hash__:
            return make(Kind.POINTER, elem=record, reference=True)
        # Value-hashed but assignable instances can still close a cycle
        return replace(record, reference=not _is_frozen(cls))
    return make(Kind.OPAQUE)


def classify(obj: Any) -> TypeDescriptor:
    """
    Runtime descriptor of a concrete value.

    Element types of containers are inferred from their contents, functions carry
    their signature, anonymous records their per-instance fields.
    """
    if obj is None:
        return ANY
    base = describe_class(type(obj))
    kind = base.kind

    if kind is Kind.SEQUENCE:
        length = None if base.slice_like or base.unordered else len(obj)
        return replace(base, elem=infer_type(obj), length=length)
    if kind is Kind.MAPPING:
        return replace(base, key=infer_type(obj.keys()), elem=infer_type(obj.values()))
    if kind is Kind.FUNCTION:
        return replace(base, label=_function_text(obj))
    if kind is Kind.CHANNEL:
        return replace(base, elem=ANY, direction=_channel_direction(obj))
    if kind is Kind.POINTER and base.elem.anonymous:
        record = replace(base.elem, fields=_namespace_fields(obj))
        return replace(base, elem=record)
    return base


def infer_type(items: Iterable[Any]) -> TypeDescriptor:
    """
    Common descriptor of a collection of values.

    All values must share one exact type, otherwise the result is ANY. None values are
    tolerated when the common type is nil-able.
    """
    seen = {type(item) for item in items}
    has_none = type(None) in seen
    seen.discard(type(None))
    if len(seen) != 1:
        return ANY
    desc = describe_class(seen.pop())
    if has_none and not desc.nilable:
        return ANY
    return desc


@functools.cache
def fields_of(cls: type) -> tuple[FieldDescriptor, ...]:
    """
    Declared fields of a class, in declaration order.

    Sources: namedtuple fields, dataclass fields, class-level annotations (ClassVar and
    properties excluded) and ``__slots__``, walking the MRO from the base class down.
    Attributes only present in an instance ``__dict__`` are not included, see
    extra_field().
    """
    hints = _type_hints(cls)
    found: dict[str, FieldDescriptor] = {}

    def add(attr: str, owner: type) -> None:
        if attr in found:
            return
        found[attr] = FieldDescriptor(
            name=_demangle(attr, owner),
            attr=attr,
            scope=getattr(owner, "__module__", "") or "",
            type=describe(hints[attr]) if attr in hints else ANY,
        )

    if _is_namedtuple(cls):
        for attr in cls._fields:
            add(attr, cls)
        return tuple(found.values())

    if dataclasses.is_dataclass(cls):
        for f in dataclasses.fields(cls):
            add(f.name, _annotation_owner(cls, f.name))
    else:
        for klass in reversed(cls.__mro__):
            for attr in _own_annotations(klass):
                if _is_class_var(hints.get(attr)) or _is_computed(cls, attr):
                    continue
                add(attr, klass)

    for klass in reversed(cls.__mro__):
        for slot in _own_slots(klass):
            add(_mangle(slot, klass), klass)

    return tuple(found.values())


@functools.cache
def extra_field(cls: type, attr: str) -> FieldDescriptor:
    """Field descriptor of an attribute only found in an instance ``__dict__``."""
    owner = cls
    for klass in cls.__mro__:
        if _demangle(attr, klass) != attr:
            owner = klass
            break
    return FieldDescriptor(
        name=_demangle(attr, owner),
        attr=attr,
        scope=getattr(owner, "__module__", "") or "",
        type=ANY,
    )


# Private Methods ------------------------------------------------------------------------------------------------------

@functools.cache
def _describe_cached(annotation: Any) -> TypeDescriptor:
    return _describe(annotation)


def _describe(annotation: Any) -> TypeDescriptor:
    if annotation is typing.Any or annotation is object or annotation is None:
        return ANY
    if isinstance(annotation, (str, typing.ForwardRef, typing.TypeVar)):
        return ANY
    if annotation is abc.Callable:
        return _callable_type(())

    origin = typing.get_origin(annotation)
    args = typing.get_args(annotation)

    if origin is typing.Annotated:
        return describe(args[0])
    if origin in (typing.ClassVar, typing.Final):
        return describe(args[0]) if args else ANY
    if origin is typing.Union or origin is types.UnionType:
        members = [arg for arg in args if arg is not type(None)]
        if len(members) == 1:
            return describe(members[0])
        label = " | ".join("None" if arg is type(None) else describe(arg).text for arg in args)
        return TypeDescriptor(Kind.DYNAMIC, label=label)
    if origin is typing.Literal:
        return infer_type(args)
    if origin is abc.Callable:
        return _callable_type(args)
    if isinstance(origin, type):
        return _parameterize(describe_class(origin), args)
    if isinstance(annotation, type):
        return describe_class(annotation)
    return ANY


def _parameterize(base: TypeDescriptor, args: tuple) -> TypeDescriptor:
    """Apply annotation type arguments to a class descriptor."""
    if not args:
        return base
    if base.kind is Kind.SEQUENCE:
        if not issubclass(base.py_type, tuple):
            return replace(base, elem=describe(args[0]))
        if len(args) == 2 and args[1] is Ellipsis:
            return replace(base, elem=describe(args[0]))
        elems = {describe(arg) for arg in args}
        elem = elems.pop() if len(elems) == 1 else ANY
        return replace(base, elem=elem, length=len(args))
    if base.kind is Kind.MAPPING and len(args) == 2:
        return replace(base, key=describe(args[0]), elem=describe(args[1]))
    if base.kind is Kind.CHANNEL:
        return replace(base, elem=describe(args[0]))
    return base


def _callable_type(args: tuple) -> TypeDescriptor:
    label = "func(...)"
    if len(args) == 2:
        params, result = args
        params = "..." if params is Ellipsis else ", ".join(describe(arg).text for arg in params)
        result = "None" if result is type(None) or result is None else describe(result).text
        label = f"func({params}) -> {result}"
    return TypeDescriptor(Kind.FUNCTION, reference=True, label=label)


def _type_text(desc: TypeDescriptor) -> str:
    kind = desc.kind

    if kind is Kind.INVALID:
        return "invalid"
    if kind is Kind.DYNAMIC:
        return desc.label or "any"
    if kind is Kind.FUNCTION:
        return desc.label or "func(...)"
    if kind is Kind.POINTER:
        return desc.elem.text
    if kind is Kind.RECORD and desc.anonymous:
        fields = ", ".join(f"{f.name}: {f.type.text}" for f in desc.fields)
        return f"namespace({fields})"
    if kind is Kind.CHANNEL:
        elem = desc.elem.text if desc.elem is not None else "any"
        if desc.direction is ChanDir.RECV:
            return f"<-chan {elem}"
        if desc.direction is ChanDir.SEND:
            return f"chan<- {elem}"
        return f"chan {elem}"

    cls_text = class_name(desc.py_type) if desc.py_type is not None else desc.name
    if kind is Kind.SEQUENCE and desc.elem is not None:
        if desc.py_type is list:
            return f"[]{desc.elem.text}"
        if desc.py_type is tuple:
            size = "..." if desc.length is None else desc.length
            return f"[{size}]{desc.elem.text}"
        return f"{cls_text}[{desc.elem.text}]"
    if kind is Kind.MAPPING and desc.elem is not None:
        key = desc.key.text if desc.key is not None else "any"
        if desc.py_type is dict:
            return f"map[{key}]{desc.elem.text}"
        return f"{cls_text}[{key}, {desc.elem.text}]"
    return cls_text


def _function_text(fn: Any) -> str:
    try:
        signature = str(inspect.signature(fn))
    except (TypeError, ValueError):
        signature = "(...)"

    name = getattr(fn, "__qualname__", None)
    if not isinstance(name, str) or name.endswith("<lambda>"):
        return f"func{signature}"
    module = getattr(fn, "__module__", None)
    if not module or module == "builtins":
        return f"{name}{signature}"
    return f"{module.rpartition('.')[2]}.{name}{signature}"


def _channel_direction(obj: Any) -> ChanDir:
    if not isinstance(obj, Connection):
        return ChanDir.BOTH
    if obj.readable and not obj.writable:
        return ChanDir.RECV
    if obj.writable and not obj.readable:
        return ChanDir.SEND
    return ChanDir.BOTH


def _namespace_fields(obj: Any) -> tuple[FieldDescriptor, ...]:
    scope = type(obj).__module__
    return tuple(
        FieldDescriptor(name=attr, attr=attr, scope=scope, type=describe_class(type(value)))
        for attr, value in vars(obj).items()
    )


def _is_namedtuple(cls: type) -> bool:
    return issubclass(cls, tuple) and isinstance(getattr(cls, "_fields", None), tuple)


def _is_frozen(cls: type) -> bool:
    params = getattr(cls, "__dataclass_params__", None)
    return params is not None and params.frozen


def _has_fields(cls: type) -> bool:
    if dataclasses.is_dataclass(cls):
        return True
    if getattr(cls, "__dictoffset__", 0):
        return True
    return any(_own_slots(klass) for klass in cls.__mro__)


def _own_slots(klass: type) -> tuple[str, ...]:
    slots = klass.__dict__.get("__slots__", ())
    if isinstance(slots, str):
        slots = (slots,)
    return tuple(slot for slot in slots if slot not in ("__dict__", "__weakref__"))


def _own_annotations(klass: type) -> dict[str, Any]:
    try:
        return inspect.get_annotations(klass)
    except Exception:
        return dict(klass.__dict__.get("__annotations__", {}))


def _annotation_owner(cls: type, attr: str) -> type:
    for klass in cls.__mro__:
        if attr in _own_annotations(klass):
            return klass
    return cls


def _type_hints(cls: type) -> dict[str, Any]:
    try:
        return typing.get_type_hints(cls)
    except Exception:
        # Unresolvable forward references, keep what evaluates
        hints = {}
        for klass in reversed(cls.__mro__):
            hints.update(_own_annotations(klass))
        return hints


def _is_class_var(hint: Any) -> bool:
    if isinstance(hint, str):
        return hint.startswith(("ClassVar", "typing.ClassVar"))
    return hint is typing.ClassVar or typing.get_origin(hint) is typing.ClassVar


def _is_computed(cls: type, attr: str) -> bool:
    """Annotated names backed by a property or a method are not fields."""
    static = inspect.getattr_static(cls, attr, None)
    return isinstance(static, (property, types.FunctionType))


def _mangle(attr: str, klass: type) -> str:
    if attr.startswith("__") and not attr.endswith("__"):
        return f"_{klass.__name__.lstrip('_')}{attr}"
    return attr


def _demangle(attr: str, klass: type) -> str:
    prefix = f"_{klass.__name__.lstrip('_')}__"
    if attr.startswith(prefix) and len(attr) > len(prefix) and not attr.endswith("__"):
        return attr[len(prefix) - 2:]
    return attr
