"""
Style table for dump output.

A style table is a flat mapping from a token class to an SGR parameter string. An empty
string means "unstyled". Two presets are provided: NO_STYLES for plain text and
COLOR_STYLES for 256-colour ANSI terminals.
"""

# Standard library -----------------------------------------------------------------------------------------------------
from enum import StrEnum, unique
from types import MappingProxyType
from typing import Final, Mapping


# Classes --------------------------------------------------------------------------------------------------------------

@unique
class StyleToken(StrEnum):
    """
    Semantic token classes the engine styles output by.

    Attributes:
        DEFAULT: Fallback class
        NUM: Numeric literals
        CONST: Booleans, enum members, string quotes
        STR: String contents
        NOTE: Type names of records and containers
        REF: None and back-references like ``p0``
        META: Annotations inside comments (addresses, type hints)
        KEY: Header names in HTTP formatters
        INDEX: Reserved for positional markers
        PUBLIC: Field names without leading underscore
        PROTECTED: Field names with a single leading underscore
        PRIVATE: Field names with a double leading underscore
    """
    DEFAULT = "default"
    NUM = "num"
    CONST = "const"
    STR = "str"
    NOTE = "note"
    REF = "ref"
    META = "meta"
    KEY = "key"
    INDEX = "index"
    PUBLIC = "public"
    PROTECTED = "protected"
    PRIVATE = "private"


# Presets --------------------------------------------------------------------------------------------------------------

NO_STYLES: Final[Mapping[str, str]] = MappingProxyType({token.value: "" for token in StyleToken})

COLOR_STYLES: Final[Mapping[str, str]] = MappingProxyType({
    StyleToken.DEFAULT.value: "38;5;208",
    StyleToken.NUM.value: "1;38;5;38",
    StyleToken.CONST.value: "1;38;5;208",
    StyleToken.STR.value: "1;38;5;113",
    StyleToken.NOTE.value: "38;5;38",
    StyleToken.REF.value: "38;5;245",
    StyleToken.META.value: "38;5;170",
    StyleToken.KEY.value: "38;5;113",
    StyleToken.INDEX.value: "38;5;38",
    StyleToken.PUBLIC.value: "",
    StyleToken.PROTECTED.value: "",
    StyleToken.PRIVATE.value: "",
})


# Methods --------------------------------------------------------------------------------------------------------------

def stylize(text: str, code: str) -> str:
    """Wrap text in an SGR escape sequence, or return it unchanged for an empty code."""
    if not code:
        return text
    return f"\033[{code}m{text}\033[m"


def validate_styles(styles: Mapping[str, str]) -> Mapping[str, str]:
    """
    Check a style table and return a read-only copy.

    Token classes missing from the table are unstyled. Unknown token classes are
    rejected so that typos do not silently lose styling.

    Raises:
        TypeError: If styles is not a mapping of str to str.
        ValueError: If styles contains an unknown token class.
    """
    if not isinstance(styles, Mapping):
        raise TypeError(f"styles must be a mapping, but got {type(styles).__name__}")

    known = {token.value for token in StyleToken}
    table = dict(NO_STYLES)
    for key, code in styles.items():
        if key not in known:
            raise ValueError(f"unknown style token {key!r}, expected one of: {', '.join(sorted(known))}")
        if not isinstance(code, str):
            raise TypeError(f"style code for {key!r} must be str, but got {type(code).__name__}")
        table[str(key)] = code
    return MappingProxyType(table)
