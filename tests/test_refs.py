#
# vardump - Shared Reference Tests
#

# Standard library -----------------------------------------------------------------------------------------------------
import types

from dataclasses import dataclass
from typing import Any

# Third-party ----------------------------------------------------------------------------------------------------------
import pytest

# Local ----------------------------------------------------------------------------------------------------------------
from vardump.kinds import Kind, describe
from vardump.refs import PointerRef, map_pointers
from vardump.sentinels import INVALID
from vardump.values import Value, children, key_string, read_attr


# Helpers --------------------------------------------------------------------------------------------------------------

@dataclass(eq=False)
class Node:
    name: str
    next: "Node | None" = None


@dataclass(frozen=True)
class Pair:
    left: Any
    right: Any


@dataclass(unsafe_hash=True)
class Peer:
    name: str
    other: "Peer | None" = None


class Loop:
    def __init__(self):
        self.me = self

    def __eq__(self, other):
        return isinstance(other, Loop)

    def __hash__(self):
        return 0


class Slotted:
    __slots__ = ("a", "b")

    def __init__(self):
        self.a = 1


# Tests ----------------------------------------------------------------------------------------------------------------

class TestMapPointers:
    def test_acyclic_tree(self):
        """Label nothing when every value is reached once."""
        root = Node("a", Node("b", Node("c")))
        assert map_pointers(Value.of(root)) == {}

    def test_self_cycle(self):
        """Label a value pointing at itself."""
        node = Node("a")
        node.next = node
        assert map_pointers(Value.of(node)) == {id(node): PointerRef(0)}

    def test_two_node_cycle(self):
        """Label only the value reached twice."""
        a = Node("a")
        b = Node("b", a)
        a.next = b
        assert map_pointers(Value.of(a)) == {id(a): PointerRef(0)}

    def test_dense_ids_in_reuse_order(self):
        """Assign ids in the order values are seen for the second time."""
        x, y = Node("x"), Node("y")
        pointers = map_pointers(Value.of([x, y, y, x]))
        assert pointers[id(y)].name == "p0"
        assert pointers[id(x)].name == "p1"

    def test_shared_list(self):
        """Track mutable containers reached twice."""
        items = [1, 2]
        pointers = map_pointers(Value.of(Pair(items, items)))
        assert list(pointers) == [id(items)]

    @pytest.mark.parametrize(
        "shared",
        [
            pytest.param((1, 2), id="tuple"),
            pytest.param("text", id="str"),
            pytest.param(frozenset({1}), id="frozenset"),
            pytest.param(10 ** 20, id="int"),
        ],
    )
    def test_value_types_not_tracked(self, shared):
        """Ignore immutable values reached twice."""
        assert map_pointers(Value.of([shared, shared])) == {}

    def test_value_hashed_mutual_cycle(self):
        """Label cycles through records hashed by value."""
        a, b = Peer("a"), Peer("b")
        a.other, b.other = b, a
        assert map_pointers(Value.of(a)) == {id(a): PointerRef(0)}

    def test_value_hashed_self_cycle(self):
        """Label a value-hashed instance holding itself."""
        loop = Loop()
        assert map_pointers(Value.of(loop)) == {id(loop): PointerRef(0)}

    def test_frozen_record_not_tracked(self):
        """Ignore frozen records reached twice."""
        pair = Pair(1, 2)
        assert map_pointers(Value.of([pair, pair])) == {}

    def test_key_and_value(self):
        """Visit mapping keys as well as values."""
        node = Node("k")
        pointers = map_pointers(Value.of({node: node}))
        assert list(pointers) == [id(node)]

    def test_deterministic(self):
        """Return the same labels for repeated walks."""
        a, b = Node("a"), Node("b")
        a.next, b.next = b, a
        graph = [a, b, a]
        assert map_pointers(Value.of(graph)) == map_pointers(Value.of(graph))

    def test_hidden_fields_walked(self):
        """Reach shared values through private fields too."""
        shared = Node("s")
        holder = types.SimpleNamespace(_a=shared, b=shared)
        assert list(map_pointers(Value.of(holder))) == [id(shared)]


class TestChildren:
    def test_pointer_yields_record(self):
        """Dereference pointers to their record view."""
        node = Node("a")
        (child,) = children(Value.of(node))
        assert child.obj is node
        assert child.type.kind is Kind.RECORD

    def test_record_fields_in_order(self):
        """Yield fields in declaration order with their static types."""
        record = Value.of(Node("a")).elem()
        values = list(children(record))
        assert [v.obj for v in values] == ["a", None]
        assert values[1].type.text == "test_refs.Node"

    def test_mapping_key_then_value(self):
        """Yield key then value per entry, ordered by key string."""
        values = list(children(Value.of({"b": 1, "a": 2})))
        assert [v.obj for v in values] == ["a", 2, "b", 1]

    def test_set_ordered(self):
        """Order set elements by their key string."""
        values = list(children(Value.of({3, 1, 2})))
        assert [v.obj for v in values] == [1, 2, 3]

    def test_dynamic_unwrapped(self):
        """Yield the runtime view of a dynamic slot."""
        (child,) = children(Value.typed([1], describe(Any)))
        assert child.type.text == "[]int"

    def test_invalid_field(self):
        """Yield INVALID for unset slots."""
        values = list(children(Value.of(Slotted()).elem()))
        assert values[0].obj == 1
        assert values[1].obj is INVALID
        assert values[1].type.kind is Kind.INVALID

    @pytest.mark.parametrize(
        "obj",
        [
            pytest.param(None, id="none"),
            pytest.param(1, id="int"),
            pytest.param("ab", id="str"),
        ],
    )
    def test_leaves(self, obj):
        """Yield nothing for scalars and None."""
        assert list(children(Value.of(obj))) == []


class TestValueTyped:
    def test_none_in_nilable_slot(self):
        """Keep the static descriptor of a None pointer."""
        value = Value.typed(None, describe(list[int]))
        assert value.type.text == "[]int"

    def test_none_in_scalar_slot(self):
        """Treat None in a scalar slot as dynamic."""
        assert Value.typed(None, describe(int)).type.kind is Kind.DYNAMIC

    def test_static_elem_narrows(self):
        """Take container element types from the annotation."""
        assert Value.typed([], describe(list[int])).type.text == "[]int"

    def test_runtime_wins_over_static_scalar(self):
        """Describe scalars by their runtime type."""
        assert Value.typed(True, describe(int)).type.kind is Kind.BOOL


class TestHelpers:
    @pytest.mark.parametrize(
        "key, expected",
        [
            pytest.param("a", "a", id="str"),
            pytest.param(10, "10", id="int"),
            pytest.param((1, "a"), "(1, 'a')", id="tuple"),
        ],
    )
    def test_key_string(self, key, expected):
        """Sort text keys as is and others by repr."""
        assert key_string(key) == expected

    def test_read_attr_failure(self):
        """Return INVALID when reading raises."""
        assert read_attr(Slotted(), "b") is INVALID
        assert read_attr(Slotted(), "a") == 1
