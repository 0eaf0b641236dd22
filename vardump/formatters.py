"""
Built-in formatters for well-known standard library types.

Each formatter writes the body of a record through the DumpState API; the engine adds the
``TypeName{`` header, the indentation and the closing brace.
"""

# Standard library -----------------------------------------------------------------------------------------------------
import datetime as dt
import ipaddress
import math
import pathlib
import uuid

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .engine import DumpState

__all__ = [
    "FORMATTERS",
    "dump_as_string",
    "dump_date",
    "dump_datetime",
    "dump_struct_with_private_fields",
    "format_datetime",
]


# Methods --------------------------------------------------------------------------------------------------------------

def dump_datetime(state: "DumpState", value: dt.datetime) -> None:
    """
    Datetime as a single readable ``date`` field.

    Aware values also get their Unix time as a comment on the date line. Naive values
    have no fixed Unix time and go without.

    Examples:
        datetime.datetime{
          date: "2023-11-14 22:13:20 UTC (Z)", // @1700000000
        }
    """
    if value.tzinfo is not None and value.utcoffset() is not None:
        state.add_comment(f"@{math.floor(value.timestamp())}")
    state.dump_struct_field("date", format_datetime(value))


def dump_date(state: "DumpState", value: dt.date) -> None:
    state.dump_struct_field("date", value.isoformat())


def dump_as_string(state: "DumpState", value: Any) -> None:
    """Body made of the quoted str() of the value, for types whose text form says it all."""
    state.pad()
    state.dump_string(str(value))
    state.write("\n")


def dump_struct_with_private_fields(state: "DumpState", value: Any) -> None:
    """Every field of a record, private ones included whatever module asked for the dump."""
    state.dump_struct_fields(value, hide_private=False)


def format_datetime(value: dt.datetime) -> str:
    """
    Format as ``YYYY-MM-DD HH:MM:SS[.ffffff] ZONE (±HH:MM)``.

    Trailing zeros of the fraction are trimmed, a zero UTC offset is written ``Z`` and
    naive values have no zone part.
    """
    text = value.strftime("%Y-%m-%d %H:%M:%S")
    if value.microsecond:
        text += f".{value.microsecond:06d}".rstrip("0")

    offset = value.utcoffset()
    if offset is None:
        return text

    seconds = int(offset.total_seconds())
    if seconds == 0:
        suffix = "Z"
    else:
        sign = "-" if seconds < 0 else "+"
        hours, minutes = divmod(abs(seconds) // 60, 60)
        suffix = f"{sign}{hours:02d}:{minutes:02d}"

    zone = value.tzname() or ""
    return f"{text} {zone} ({suffix})" if zone else f"{text} ({suffix})"


# Registry Entries -----------------------------------------------------------------------------------------------------

FORMATTERS = {
    dt.datetime: dump_datetime,
    dt.date: dump_date,
    ipaddress.IPv4Address: dump_as_string,
    ipaddress.IPv6Address: dump_as_string,
    ipaddress.IPv4Network: dump_as_string,
    ipaddress.IPv6Network: dump_as_string,
    ipaddress.IPv4Interface: dump_as_string,
    ipaddress.IPv6Interface: dump_as_string,
    uuid.UUID: dump_as_string,
    pathlib.PurePosixPath: dump_as_string,
    pathlib.PureWindowsPath: dump_as_string,
    pathlib.PosixPath: dump_as_string,
    pathlib.WindowsPath: dump_as_string,
}
