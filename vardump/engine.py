"""
The recursive dump engine.

DumpState renders one top-level value. It owns the output sink, the indentation depth,
the queue of pending trailing comments and the labels of shared references. Custom
formatters receive the state and use its public methods to write record bodies; those
methods are re-entrant, so a formatter can hand any sub-value back to the engine.

Layout rules:
    - records print one ``name: value,`` line per visible field, indented two spaces per
      depth level, followed by the comments queued while the field was rendered;
    - containers print their elements on one line, broken every page_width elements
      once the container is longer than a page;
    - comments are queued and flushed at the next record header, field line or at the
      end of a top-level value, formatted as `` // a, b``.
"""

# Standard library -----------------------------------------------------------------------------------------------------
from typing import Any, Callable, Mapping

# Local ----------------------------------------------------------------------------------------------------------------
from .kinds import Kind, TypeDescriptor, describe_class
from .output import OutputSink
from .refs import PointerRef
from .registry import DumpFunc, FormatterRegistry, find_formatter
from .styles import NO_STYLES, StyleToken, stylize
from .utils import class_name, safe_repr
from .values import Value

__all__ = ["DumpState", "DEFAULT_PAGE_WIDTH"]

DEFAULT_PAGE_WIDTH = 30

_OVERRIDABLE_KINDS = frozenset({
    Kind.RECORD, Kind.SEQUENCE, Kind.MAPPING, Kind.CHANNEL, Kind.FUNCTION, Kind.OPAQUE,
})


# Classes --------------------------------------------------------------------------------------------------------------

class DumpState:
    """
    Rendering state of a single top-level dump.

    Args:
        sink: Destination of the rendered text.
        registry: Formatter overrides by exact type.
        pointers: Shared references of the value graph, see refs.map_pointers().
        caller: Module the dump was requested from, decides private field visibility.
        styles: Token class to SGR code table.
        page_width: Number of container elements per line.
        show_addresses: Whether pointer comments include the memory identity.
    """

    def __init__(
            self,
            sink: OutputSink,
            *,
            registry: FormatterRegistry,
            pointers: dict[int, PointerRef] | None = None,
            caller: str = "",
            styles: Mapping[str, str] = NO_STYLES,
            page_width: int = DEFAULT_PAGE_WIDTH,
            show_addresses: bool = True,
    ) -> None:
        self.sink = sink
        self.registry = registry
        self.pointers = pointers if pointers is not None else {}
        self.caller = caller
        self.styles = styles
        self.page_width = page_width
        self.show_addresses = show_addresses

        self.depth = 0
        self.comments: list[str] = []
        self.pointer_name = ""
        self.force_type_instantiation = False
        self.force_newlines = False

    # Output -----------------------------------------------------------------------------------------------------------

    def write(self, text: str) -> None:
        self.sink.write(text)

    def print_style(self, token: StyleToken, text: str) -> None:
        self.write(stylize(text, self.styles.get(token, "")))

    def with_temp_buffer(self, fn: Callable[[], object]) -> str:
        """Run fn with output captured and return the captured text."""
        return self.sink.capture(fn)

    # Comments ---------------------------------------------------------------------------------------------------------

    def add_comment(self, comment: str) -> None:
        if comment:
            self.comments.append(comment)

    def reset_comments(self) -> list[str]:
        """Clear the comment queue and return what it held."""
        previous, self.comments = self.comments, []
        return previous

    def format_comments(self) -> str:
        if not self.comments:
            return ""
        return " // " + ", ".join(self.comments)

    def dump_struct_comments(self, value: Value) -> str:
        """
        Flush the comment queue for the end of a field or top-level line.

        Non-default width numbers get their type name prepended, None pointers the
        pointer type they stand for.
        """
        desc = value.type
        note = ""
        if desc.kind in (Kind.INT, Kind.FLOAT) and not desc.default_width and value.obj is not None:
            note = stylize(desc.name, self.styles.get(StyleToken.META, ""))
        elif desc.kind is Kind.POINTER and value.obj is None:
            note = stylize("&" + desc.text, self.styles.get(StyleToken.META, ""))
        if note:
            self.comments.insert(0, note)

        text = self.format_comments()
        self.comments = []
        return text

    # Layout -----------------------------------------------------------------------------------------------------------

    def force_new_lines(self, force: bool) -> bool:
        """Put every container element on its own line, returns the previous setting."""
        previous, self.force_newlines = self.force_newlines, force
        return previous

    def depth_down(self) -> None:
        self.depth += 1

    def depth_up(self) -> None:
        self.depth -= 1

    def pad(self) -> None:
        self.write("  " * self.depth)

    def break_line_if_necessary(self, total: int, index: int) -> bool:
        """
        Break the line before a container element when a page starts.

        Returns:
            bool: True when the element continues the current line and needs a separator.
        """
        if index % self.page_width == 0 or self.force_newlines:
            if total > self.page_width or self.force_newlines:
                self.write("\n")
                self.pad()
            return False
        return True

    # Dispatch ---------------------------------------------------------------------------------------------------------

    def dump(self, obj: Any) -> None:
        """Render any object at the current position."""
        self.dump_value(obj if isinstance(obj, Value) else Value.of(obj))

    def dump_value(self, value: Value) -> None:
        if self._handle_circular_ref(value):
            return

        desc = value.type
        kind = desc.kind
        obj = value.obj

        if kind is Kind.INVALID:
            self.write("<invalid>")
            return
        if self.pointer_name and kind is not Kind.POINTER:
            self.add_comment(stylize(self.pointer_name, self.styles.get(StyleToken.REF, "")))
            self.pointer_name = ""

        if obj is not None and kind in _OVERRIDABLE_KINDS:
            formatter = find_formatter(self.registry, obj)
            if formatter is not None:
                self._dump_custom(value, formatter)
                return

        if kind is Kind.POINTER:
            self._dump_pointer(value)
        elif kind is Kind.RECORD:
            self._dump_record(value)
        elif kind is Kind.SEQUENCE:
            self._dump_sequence(value)
        elif kind is Kind.MAPPING:
            self._dump_mapping(value)
        elif kind is Kind.CHANNEL:
            self._dump_channel(value)
        elif kind is Kind.FUNCTION:
            self._dump_function(value)
        elif kind is Kind.DYNAMIC:
            self._dump_dynamic(value)
        elif kind is Kind.BOOL:
            self.print_style(StyleToken.CONST, "True" if obj else "False")
        elif kind in (Kind.INT, Kind.FLOAT):
            self.dump_scalar(_numeric_literal(obj), desc.name, not desc.default_width)
        elif kind is Kind.COMPLEX:
            self.dump_complex(obj, narrow=desc.narrow)
        elif kind is Kind.ENUM:
            self.print_style(StyleToken.CONST, _enum_text(obj))
        elif kind is Kind.TEXT:
            self._dump_text(obj)
        else:
            self.write(safe_repr(obj))

    # Scalars ----------------------------------------------------------------------------------------------------------

    def dump_string(self, text: str) -> None:
        """Double-quoted text, nothing escaped."""
        self.print_style(StyleToken.CONST, '"')
        self.print_style(StyleToken.STR, text)
        self.print_style(StyleToken.CONST, '"')

    def dump_scalar(self, literal: Any, type_name: str, wrap: bool) -> None:
        """
        Numeric literal, as ``type_name(literal)`` when wrap is set and the type would
        otherwise be lost: at the top level or inside a dynamic slot.
        """
        wrap = wrap and (self.force_type_instantiation or self.depth == 0)
        if wrap:
            self.print_style(StyleToken.NOTE, type_name)
            self.write("(")
        self.print_style(StyleToken.NUM, str(literal))
        if wrap:
            self.write(")")

    def dump_complex(self, value: Any, narrow: bool = False) -> None:
        wrap = narrow and (self.force_type_instantiation or self.depth == 0)
        if wrap:
            self.print_style(StyleToken.NOTE, "complex64")
            self.write("(")
        real, imag = value.real, value.imag
        if imag:
            self.write("complex(")
            self.print_style(StyleToken.NUM, _numeric_literal(real))
            self.write(", ")
            self.print_style(StyleToken.NUM, _numeric_literal(imag))
            self.write(")")
        else:
            self.print_style(StyleToken.NUM, _numeric_literal(real))
        if wrap:
            self.write(")")

    # Records ----------------------------------------------------------------------------------------------------------

    def dump_struct_type(self, desc: TypeDescriptor | type) -> None:
        if isinstance(desc, type):
            desc = describe_class(desc)
        if desc.kind is Kind.POINTER:
            desc = desc.elem
        self.print_style(StyleToken.NOTE, desc.text)
        if desc.anonymous:
            self.add_comment("anonymous record")

    def dump_struct_field(self, name: str, value: Any) -> None:
        """One ``name: value,`` line with its trailing comments."""
        if not isinstance(value, Value):
            value = Value.of(value)
        self.pad()
        self.print_style(_field_style(name), name)
        self.write(": ")
        self.dump_value(value)
        self.write("," + self.dump_struct_comments(value) + "\n")

    def dump_struct_fields(self, value: Any, hide_private: bool | None = None) -> None:
        """
        Field lines of a record.

        Args:
            value: Record, pointer or any object with fields.
            hide_private: None shows private fields only when the dump was requested from
                the module declaring them, True hides and False shows them all.
        """
        if not isinstance(value, Value):
            value = Value.of(value)
        if value.type.kind is Kind.POINTER:
            value = value.elem()

        for field, child in value.fields():
            if not field.exported:
                hidden = field.scope != self.caller if hide_private is None else hide_private
                if hidden:
                    continue
            self.dump_struct_field(field.name, child)

    # Private Methods --------------------------------------------------------------------------------------------------

    def _handle_circular_ref(self, value: Value) -> bool:
        ident = value.identity
        if ident is None:
            return False
        ref = self.pointers.get(ident)
        if ref is None:
            return False
        if not ref.visited:
            ref.visited = True
            self.pointer_name = ref.name
            return False
        self.print_style(StyleToken.REF, ref.name)
        return True

    def _dump_custom(self, value: Value, formatter: DumpFunc) -> None:
        previous = self.reset_comments()
        self.depth_down()

        def body() -> None:
            raw = self.with_temp_buffer(lambda: formatter(self, value.obj))
            lines = raw.split("\n")
            if lines[-1] == "":
                lines.pop()
            for line in lines:
                self.write(line.rstrip(" \t\r") + "\n")

        text = self.with_temp_buffer(body)
        for comment in previous:
            self.add_comment(comment)

        self.dump_struct_type(value.type)
        self.write("{" + self.dump_struct_comments(value) + "\n" + text)
        self.depth_up()
        self.pad()
        self.write("}")

    def _dump_pointer(self, value: Value) -> None:
        if value.obj is None:
            self.print_style(StyleToken.REF, "None")
            if self.depth == 0:
                self.write(self.dump_struct_comments(value))
            return

        previous = self.reset_comments()
        self.add_comment(self.with_temp_buffer(lambda: self._print_pointer_comment(value.obj)))
        self.write("&")
        self.dump_value(value.elem())
        for comment in previous:
            self.add_comment(comment)

    def _print_pointer_comment(self, obj: Any) -> None:
        name, self.pointer_name = self.pointer_name, ""
        if name:
            self.print_style(StyleToken.REF, name)
        if self.show_addresses:
            if name:
                self.write(" ")
            self.write("(")
            self.print_style(StyleToken.META, f"0x{id(obj):08x}")
            self.write(")")

    def _dump_record(self, value: Value) -> None:
        self.dump_struct_type(value.type)
        self.write("{" + self.dump_struct_comments(value) + "\n")
        self.depth_down()
        self.dump_struct_fields(value)
        self.depth_up()
        self.pad()
        self.write("}")

    def _dump_nil(self, value: Value) -> None:
        self.add_comment(stylize(value.type.text, self.styles.get(StyleToken.META, "")))
        self.print_style(StyleToken.REF, "None")

    def _dump_sequence(self, value: Value) -> None:
        if value.obj is None:
            self._dump_nil(value)
        else:
            items = value.elements()
            self._dump_items(value.type, len(items), items, self.dump_value)
        if self.depth == 0:
            self.write(self.dump_struct_comments(value))

    def _dump_mapping(self, value: Value) -> None:
        def dump_entry(entry: tuple[Value, Value]) -> None:
            self.dump_value(entry[0])
            self.write(": ")
            self.dump_value(entry[1])

        if value.obj is None:
            self._dump_nil(value)
        else:
            entries = value.entries()
            self._dump_items(value.type, len(entries), entries, dump_entry)
        if self.depth == 0:
            self.write(self.dump_struct_comments(value))

    def _dump_items(self, desc: TypeDescriptor, total: int, items: list, dump_item: Callable[[Any], None]) -> None:
        self.print_style(StyleToken.NOTE, desc.text)
        self.write("{")
        if self.comments and (total > self.page_width or self.force_newlines):
            self.write(self.format_comments())
            self.comments = []
        if desc.slice_like:
            self.add_comment(stylize(f"len={total}", self.styles.get(StyleToken.META, "")))

        self.depth_down()
        for index, item in enumerate(items):
            if self.break_line_if_necessary(total, index):
                self.write(" ")
            dump_item(item)
            self.write(",")
        self.depth_up()
        self.break_line_if_necessary(total, 0)
        self.write("}")

    def _dump_channel(self, value: Value) -> None:
        if value.obj is None:
            self._dump_nil(value)
        else:
            capacity = value.capacity()
            self.write("make(")
            self.print_style(StyleToken.NOTE, value.type.text)
            if capacity:
                self.write(", ")
                self.print_style(StyleToken.NUM, str(capacity))
            self.write(")")
        if self.depth == 0:
            self.write(self.dump_struct_comments(value))

    def _dump_function(self, value: Value) -> None:
        if value.obj is None:
            self._dump_nil(value)
        else:
            self.print_style(StyleToken.NOTE, value.type.text)
        if self.depth == 0:
            self.write(self.dump_struct_comments(value))

    def _dump_dynamic(self, value: Value) -> None:
        if value.obj is None:
            self.print_style(StyleToken.REF, "None")
            return
        previous = self.force_type_instantiation
        self.force_type_instantiation = True
        try:
            self.dump_value(Value.of(value.obj))
        finally:
            self.force_type_instantiation = previous

    def _dump_text(self, obj: str | bytes | bytearray) -> None:
        if isinstance(obj, str):
            self.dump_string(obj)
            return
        self.print_style(StyleToken.CONST, 'b"')
        self.print_style(StyleToken.STR, bytes(obj).decode("ascii", "backslashreplace"))
        self.print_style(StyleToken.CONST, '"')


# Private Methods ------------------------------------------------------------------------------------------------------

def _numeric_literal(obj: Any) -> str:
    """Literal text of a number, numpy scalars through their Python equivalent."""
    if isinstance(obj, int):
        return int.__repr__(obj)
    if isinstance(obj, float):
        return float.__repr__(obj)
    item = getattr(obj, "item", None)
    if callable(item):
        try:
            plain = item()
        except Exception:
            plain = None
        if isinstance(plain, (int, float)):
            return repr(plain)
    return str(obj)


def _enum_text(member: Any) -> str:
    name = member.name if member.name is not None else repr(member.value)
    return f"{class_name(member)}.{name}"


def _field_style(name: str) -> StyleToken:
    if name.startswith("__"):
        return StyleToken.PRIVATE
    if name.startswith("_"):
        return StyleToken.PROTECTED
    return StyleToken.PUBLIC
