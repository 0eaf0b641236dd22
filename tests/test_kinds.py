#
# vardump - Kinds Tests
#

# Standard library -----------------------------------------------------------------------------------------------------
import collections
import datetime
import decimal
import enum
import fractions
import functools
import queue
import types

from collections.abc import Callable
from dataclasses import dataclass, field
from multiprocessing import Pipe
from typing import Annotated, Any, ClassVar, Literal, NamedTuple, Optional

# Third-party ----------------------------------------------------------------------------------------------------------
import pytest

# Local ----------------------------------------------------------------------------------------------------------------
from vardump.kinds import (
    ANY,
    ChanDir,
    Kind,
    classify,
    describe,
    describe_class,
    extra_field,
    fields_of,
    infer_type,
)
from vardump.sentinels import INVALID


# Helpers --------------------------------------------------------------------------------------------------------------

class Color(enum.Enum):
    RED = 1


@dataclass
class Mutable:
    name: str
    tags: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class Frozen:
    x: int
    y: int


@dataclass(eq=False)
class IdentityOnly:
    value: int = 0


@dataclass(unsafe_hash=True)
class ValueHashed:
    value: int = 0


class Plain:
    def __init__(self):
        self.a = 1


class Point(NamedTuple):
    x: int
    y: float


class WithClassVar:
    count: int
    limit: ClassVar[int] = 10
    double: int

    def __init__(self):
        self.count = 0

    @property
    def double(self) -> int:
        return self.count * 2


class Slotted:
    __slots__ = ("a", "__secret")


class Base:
    first: int


class Child(Base):
    second: str


def greet(name: str) -> str:
    return f"hi {name}"


# Tests ----------------------------------------------------------------------------------------------------------------

class TestDescribeClass:
    @pytest.mark.parametrize(
        "cls, kind",
        [
            pytest.param(bool, Kind.BOOL, id="bool"),
            pytest.param(int, Kind.INT, id="int"),
            pytest.param(float, Kind.FLOAT, id="float"),
            pytest.param(decimal.Decimal, Kind.FLOAT, id="decimal"),
            pytest.param(fractions.Fraction, Kind.FLOAT, id="fraction"),
            pytest.param(complex, Kind.COMPLEX, id="complex"),
            pytest.param(Color, Kind.ENUM, id="enum"),
            pytest.param(str, Kind.TEXT, id="str"),
            pytest.param(bytes, Kind.TEXT, id="bytes"),
            pytest.param(list, Kind.SEQUENCE, id="list"),
            pytest.param(tuple, Kind.SEQUENCE, id="tuple"),
            pytest.param(frozenset, Kind.SEQUENCE, id="frozenset"),
            pytest.param(dict, Kind.MAPPING, id="dict"),
            pytest.param(queue.Queue, Kind.CHANNEL, id="queue"),
            pytest.param(types.FunctionType, Kind.FUNCTION, id="function"),
            pytest.param(functools.partial, Kind.FUNCTION, id="partial"),
            pytest.param(Mutable, Kind.POINTER, id="mutable-dataclass"),
            pytest.param(IdentityOnly, Kind.POINTER, id="identity-dataclass"),
            pytest.param(Plain, Kind.POINTER, id="plain-class"),
            pytest.param(Slotted, Kind.POINTER, id="slots-class"),
            pytest.param(types.SimpleNamespace, Kind.POINTER, id="namespace"),
            pytest.param(Frozen, Kind.RECORD, id="frozen-dataclass"),
            pytest.param(Point, Kind.RECORD, id="namedtuple"),
            pytest.param(ValueHashed, Kind.RECORD, id="value-hashed-dataclass"),
            pytest.param(object, Kind.OPAQUE, id="object"),
            pytest.param(datetime.datetime, Kind.OPAQUE, id="datetime"),
            pytest.param(ValueError, Kind.OPAQUE, id="exception"),
            pytest.param(type, Kind.OPAQUE, id="type"),
            pytest.param(range, Kind.OPAQUE, id="range"),
        ],
    )
    def test_kind(self, cls, kind):
        """Classify classes into shape kinds."""
        assert describe_class(cls).kind is kind

    def test_none_is_dynamic(self):
        """Treat NoneType as a dynamic slot."""
        assert describe_class(type(None)) is ANY

    def test_name_and_class(self):
        """Keep the bare class name and the class itself."""
        desc = describe_class(Mutable)
        assert desc.name == "Mutable"
        assert desc.py_type is Mutable
        assert desc.text == "test_kinds.Mutable"

    def test_pointer_elem_is_record(self):
        """Dereference pointers to the record view of the same class."""
        desc = describe_class(Mutable)
        assert desc.elem.kind is Kind.RECORD
        assert desc.elem.py_type is Mutable
        assert desc.reference

    @pytest.mark.parametrize(
        "cls, default_width",
        [
            pytest.param(int, True, id="int"),
            pytest.param(float, True, id="float"),
            pytest.param(decimal.Decimal, False, id="decimal"),
            pytest.param(type("Port", (int,), {}), False, id="int-subclass"),
        ],
    )
    def test_default_width(self, cls, default_width):
        """Mark only int and float as default width numbers."""
        assert describe_class(cls).default_width is default_width

    @pytest.mark.parametrize(
        "cls, reference",
        [
            pytest.param(list, True, id="list"),
            pytest.param(dict, True, id="dict"),
            pytest.param(set, True, id="set"),
            pytest.param(tuple, False, id="tuple"),
            pytest.param(frozenset, False, id="frozenset"),
            pytest.param(str, False, id="str"),
            pytest.param(Frozen, False, id="frozen-record"),
            pytest.param(Point, False, id="namedtuple"),
            pytest.param(ValueHashed, True, id="value-hashed-record"),
        ],
    )
    def test_reference_like(self, cls, reference):
        """Track identity of mutable values only."""
        assert describe_class(cls).reference is reference


class TestDescribe:
    @pytest.mark.parametrize(
        "annotation, text",
        [
            pytest.param(int, "int", id="int"),
            pytest.param(list[int], "[]int", id="list"),
            pytest.param(list, "list", id="bare-list"),
            pytest.param(dict[str, bool], "map[str]bool", id="dict"),
            pytest.param(tuple[int, ...], "[...]int", id="tuple-variadic"),
            pytest.param(tuple[int, int], "[2]int", id="tuple-fixed"),
            pytest.param(tuple[int, str], "[2]any", id="tuple-mixed"),
            pytest.param(set[str], "set[str]", id="set"),
            pytest.param(collections.deque[int], "collections.deque[int]", id="deque"),
            pytest.param(collections.OrderedDict[str, int], "collections.OrderedDict[str, int]", id="ordered-dict"),
            pytest.param(Optional[int], "int", id="optional"),
            pytest.param(list[str] | None, "[]str", id="optional-pipe"),
            pytest.param(int | str, "int | str", id="union"),
            pytest.param(Any, "any", id="any"),
            pytest.param("Unresolved", "any", id="forward-ref"),
            pytest.param(Callable[[int, str], bool], "func(int, str) -> bool", id="callable"),
            pytest.param(Callable[..., None], "func(...) -> None", id="callable-ellipsis"),
            pytest.param(Callable, "func(...)", id="bare-callable"),
            pytest.param(queue.Queue[int], "chan int", id="channel"),
            pytest.param(decimal.Decimal, "decimal.Decimal", id="decimal"),
            pytest.param(Mutable, "test_kinds.Mutable", id="pointer"),
            pytest.param(Literal["a", "b"], "str", id="literal"),
            pytest.param(list[list[int]], "[][]int", id="nested"),
        ],
    )
    def test_text(self, annotation, text):
        """Render annotations in the dump type notation."""
        assert describe(annotation).text == text

    def test_union_kind(self):
        """Describe unions of several types as dynamic."""
        assert describe(int | str).kind is Kind.DYNAMIC

    def test_unhashable_annotation(self):
        """Describe annotations which cannot be cached."""
        assert describe(Annotated[int, []]).kind is Kind.INT


class TestClassify:
    @pytest.mark.parametrize(
        "obj, text",
        [
            pytest.param([1, 2], "[]int", id="list-int"),
            pytest.param([1, "a"], "[]any", id="list-mixed"),
            pytest.param([], "[]any", id="list-empty"),
            pytest.param((1.5, 2.5), "[2]float", id="tuple"),
            pytest.param({"a": True}, "map[str]bool", id="dict"),
            pytest.param({1, 2}, "set[int]", id="set"),
            pytest.param([Mutable("a"), None], "[]test_kinds.Mutable", id="list-nilable"),
            pytest.param([1, None], "[]any", id="list-int-none"),
            pytest.param([[1], [2]], "[]list", id="list-bare-elem"),
            pytest.param(queue.Queue(), "chan any", id="queue"),
            pytest.param(greet, "test_kinds.greet(name: str) -> str", id="function"),
            pytest.param(lambda x, y=1: x, "func(x, y=1)", id="lambda"),
            pytest.param(len, "len(obj, /)", id="builtin"),
            pytest.param(Frozen(1, 2), "test_kinds.Frozen", id="record"),
        ],
    )
    def test_text(self, obj, text):
        """Infer element types and signatures from values."""
        assert classify(obj).text == text

    def test_none(self):
        """Classify None as dynamic."""
        assert classify(None) is ANY

    def test_invalid(self):
        """Classify the INVALID sentinel as invalid."""
        assert classify(INVALID).kind is Kind.INVALID

    def test_namespace(self):
        """Describe a namespace as an anonymous record of its attributes."""
        desc = classify(types.SimpleNamespace(a=1, b="x"))
        assert desc.kind is Kind.POINTER
        assert desc.elem.anonymous
        assert desc.text == "namespace(a: int, b: str)"

    def test_connection_direction(self):
        """Tell receive-only and send-only pipe ends apart."""
        recv, send = Pipe(duplex=False)
        try:
            assert classify(recv).direction is ChanDir.RECV
            assert classify(recv).text == "<-chan any"
            assert classify(send).text == "chan<- any"
        finally:
            recv.close()
            send.close()


class TestInferType:
    @pytest.mark.parametrize(
        "items, kind",
        [
            pytest.param([1, 2, 3], Kind.INT, id="same-type"),
            pytest.param([1, True], Kind.DYNAMIC, id="exact-type-only"),
            pytest.param([], Kind.DYNAMIC, id="empty"),
            pytest.param([None, None], Kind.DYNAMIC, id="only-none"),
            pytest.param([None, {}], Kind.MAPPING, id="none-with-nilable"),
        ],
    )
    def test_kind(self, items, kind):
        """Infer a common descriptor or fall back to dynamic."""
        assert infer_type(items).kind is kind


class TestFieldsOf:
    def test_dataclass_order(self):
        """List dataclass fields in declaration order with their types."""
        fields = fields_of(Mutable)
        assert [f.name for f in fields] == ["name", "tags"]
        assert fields[1].type.text == "[]str"

    def test_namedtuple(self):
        """List namedtuple fields."""
        assert [(f.name, f.type.text) for f in fields_of(Point)] == [("x", "int"), ("y", "float")]

    def test_skips_class_vars_and_properties(self):
        """Exclude ClassVar annotations and computed attributes."""
        assert [f.name for f in fields_of(WithClassVar)] == ["count"]

    def test_inherited_first(self):
        """List base class fields before subclass fields."""
        assert [f.name for f in fields_of(Child)] == ["first", "second"]

    def test_slots_demangled(self):
        """Show mangled slot names as written in the class body."""
        fields = fields_of(Slotted)
        assert [f.name for f in fields] == ["a", "__secret"]
        assert fields[1].attr == "_Slotted__secret"
        assert not fields[1].exported

    def test_scope(self):
        """Record the module of the declaring class."""
        assert {f.scope for f in fields_of(Child)} == {__name__}

    def test_extra_field_demangled(self):
        """Demangle private attributes found in an instance dict."""
        desc = extra_field(Plain, "_Plain__pin")
        assert desc.name == "__pin"
        assert desc.attr == "_Plain__pin"
        assert desc.type is ANY
