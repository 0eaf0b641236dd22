"""
Sentinel objects used by the dump engine.

INVALID marks a value that could not be read: an unset ``__slots__`` attribute, an
attribute whose read raised, or a body a formatter failed to read. It is rendered as
``<invalid>`` and compared by identity only.

Example:
    >>> value = getattr(obj, "missing", INVALID)
    >>> if value is INVALID:
    ...     ...
"""

from typing import Any, Final

__all__ = [
    "INVALID",
    "InvalidType",
]


# Base Sentinel --------------------------------------------------------------------------------------------------------

class _SentinelBase:
    """
    Base class for sentinel objects.

    Sentinels are singleton objects optimized for identity checks.
    """
    __slots__ = ("_name",)

    def __init__(self, name: str) -> None:
        self._name = name

    def __repr__(self) -> str:
        return f"<{self._name}>"

    def __eq__(self, other: Any) -> bool:
        return self is other

    def __hash__(self) -> int:
        return id(self)

    def __bool__(self) -> bool:
        return False

    def __reduce__(self) -> tuple:
        return (self.__class__, ())


# Sentinel Types -------------------------------------------------------------------------------------------------------

class InvalidType(_SentinelBase):
    """
    Sentinel type for INVALID.

    Stands in for a value which exists structurally but cannot be read.
    """
    _instance: "InvalidType | None" = None

    def __new__(cls) -> "InvalidType":
        """Ensures singleton behavior."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        if not hasattr(self, "_name"):
            super().__init__("invalid")


# Sentinel Instances ---------------------------------------------------------------------------------------------------

INVALID: Final[InvalidType] = InvalidType()
