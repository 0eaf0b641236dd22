"""
Public entry points of vardump.

    >>> from vardump.dump import sdump
    >>> sdump({"foo": True})
    'map[str]bool{"foo": True,}\n'

sdump() returns the dump as text, fdump() writes it to a stream, fdump_color() does the
same with ANSI colours and dump() prints to standard output. Each accepts any number of
values; consecutive dumps are separated by a blank line and the output always ends with
one newline.

Process-wide defaults are set with configure() and read with get_options(). A Dumper
carries its own options and formatter registry instead.
"""

# Standard library -----------------------------------------------------------------------------------------------------
import io
import sys
import threading

from dataclasses import dataclass, field, fields, replace
from typing import Any, Literal, Mapping, Self, TextIO

# Local ----------------------------------------------------------------------------------------------------------------
from .engine import DEFAULT_PAGE_WIDTH, DumpState
from .output import OutputSink
from .refs import map_pointers
from .registry import FormatterRegistry, default_registry
from .styles import COLOR_STYLES, NO_STYLES, validate_styles
from .utils import caller_module
from .values import Value

__all__ = [
    "DumpOptions",
    "Dumper",
    "configure",
    "dump",
    "fdump",
    "fdump_color",
    "get_options",
    "sdump",
]

Preset = Literal["plain", "color"]


# Classes --------------------------------------------------------------------------------------------------------------

@dataclass(frozen=True)
class DumpOptions:
    """
    Rendering options of a dump.

    Attributes:
        styles: Token class to SGR code table, see vardump.styles.
        page_width: Container elements per line before wrapping.
        show_addresses: Whether pointer comments include the memory identity of the value.
            Turning it off makes the output of acyclic values stable between runs.
    """
    styles: Mapping[str, str] = field(default_factory=lambda: NO_STYLES, hash=False)
    page_width: int = DEFAULT_PAGE_WIDTH
    show_addresses: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "styles", validate_styles(self.styles))
        if isinstance(self.page_width, bool) or not isinstance(self.page_width, int):
            raise TypeError(f"page_width must be int, but got {type(self.page_width).__name__}")
        if self.page_width < 1:
            raise ValueError(f"page_width must be positive, but got {self.page_width}")
        if not isinstance(self.show_addresses, bool):
            raise TypeError(f"show_addresses must be bool, but got {type(self.show_addresses).__name__}")

    @classmethod
    def plain(cls) -> Self:
        """Options for plain text output."""
        return cls(styles=NO_STYLES)

    @classmethod
    def color(cls) -> Self:
        """Options for 256-colour terminals."""
        return cls(styles=COLOR_STYLES)

    @classmethod
    def preset(cls, name: Preset) -> Self:
        """
        Options preset by name.

        Raises:
            ValueError: If name is not a known preset.
        """
        if name == "plain":
            return cls.plain()
        if name == "color":
            return cls.color()
        raise ValueError(f"unknown preset {name!r}, expected 'plain' or 'color'")

    def merge(self, **kwargs: Any) -> Self:
        """
        Copy with the given options replaced.

        Raises:
            TypeError: If a keyword is not an option name.
        """
        known = {f.name for f in fields(self)}
        unknown = sorted(set(kwargs) - known)
        if unknown:
            raise TypeError(f"unknown option(s): {', '.join(unknown)}")
        return replace(self, **kwargs)


class Dumper:
    """
    Dumps values with fixed options and formatters.

    Args:
        registry: Formatter overrides, the process-wide default registry when None.
        options: Rendering options, the process-wide options at call time when None.

    Examples:
        >>> registry = default_registry().copy().unregister(datetime.datetime)
        >>> Dumper(registry=registry, options=DumpOptions(page_width=10)).sdump(values)
    """

    def __init__(self, registry: FormatterRegistry | None = None, options: DumpOptions | None = None) -> None:
        if registry is not None and not isinstance(registry, FormatterRegistry):
            raise TypeError(f"registry must be a FormatterRegistry, but got {type(registry).__name__}")
        if options is not None and not isinstance(options, DumpOptions):
            raise TypeError(f"options must be DumpOptions, but got {type(options).__name__}")
        self._registry = registry
        self._options = options

    @property
    def registry(self) -> FormatterRegistry:
        return self._registry if self._registry is not None else default_registry()

    @property
    def options(self) -> DumpOptions:
        return self._options if self._options is not None else get_options()

    def sdump(self, *values: Any) -> str:
        """Dump values to a string."""
        out = io.StringIO()
        self._write(out, values, self.options)
        return out.getvalue()

    def fdump(self, out: TextIO, *values: Any) -> None:
        """Dump values to a text stream."""
        self._write(out, values, self.options)

    def fdump_color(self, out: TextIO, *values: Any) -> None:
        """Dump values to a text stream with ANSI colours."""
        self._write(out, values, self.options.merge(styles=COLOR_STYLES))

    def dump(self, *values: Any) -> None:
        """Dump values to standard output."""
        self._write(sys.stdout, values, self.options)

    def _write(self, out: TextIO, values: tuple[Any, ...], options: DumpOptions) -> None:
        sink = OutputSink(out)
        caller = caller_module()
        registry = self.registry

        for i, obj in enumerate(values):
            if i:
                sink.write("\n\n")
            root = Value.of(obj)
            state = DumpState(
                sink,
                registry=registry,
                pointers=map_pointers(root),
                caller=caller,
                styles=options.styles,
                page_width=options.page_width,
                show_addresses=options.show_addresses,
            )
            state.dump_value(root)
        sink.write("\n")


# Configuration --------------------------------------------------------------------------------------------------------

_options = DumpOptions()
_options_lock = threading.Lock()


def configure(preset: Preset | None = None, **overrides: Any) -> None:
    """
    Update the process-wide options.

    Args:
        preset: Start from a named preset instead of the current options.
        **overrides: Option values to replace, see DumpOptions.

    Raises:
        TypeError: If an override is not an option name.
        ValueError: If preset is unknown or an option value is invalid.
    """
    global _options
    with _options_lock:
        base = DumpOptions.preset(preset) if preset is not None else _options
        _options = base.merge(**overrides)


def get_options() -> DumpOptions:
    return _options


# Methods --------------------------------------------------------------------------------------------------------------

def sdump(*values: Any) -> str:
    return Dumper().sdump(*values)


def fdump(out: TextIO, *values: Any) -> None:
    Dumper().fdump(out, *values)


def fdump_color(out: TextIO, *values: Any) -> None:
    Dumper().fdump_color(out, *values)


def dump(*values: Any) -> None:
    Dumper().dump(*values)
