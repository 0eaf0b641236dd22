"""
vardump utilities shared across the package.

Contains functions used by multiple modules to avoid circular imports.
"""

# Standard library -----------------------------------------------------------------------------------------------------
import inspect

from typing import Any

# Local ----------------------------------------------------------------------------------------------------------------
PACKAGE = "vardump"


# Methods --------------------------------------------------------------------------------------------------------------


def class_name(obj: Any, qualified: bool = True) -> str:
    """
    Get the display name of an object's class or of a class.

    Returns the class name whether given an instance or the class itself. Non-builtin
    classes are qualified with the last segment of their module path, so the name stays
    short while still telling apart classes with the same name from different modules.

    Parameters:
        obj (Any): An object or a class.
        qualified (bool): If false, the bare class name is returned.

    Returns:
        str: The class name.

    Examples:
        >>> class_name(10)
        'int'
        >>> class_name(decimal.Decimal("1.5"))
        'decimal.Decimal'
        >>> class_name(http.client.HTTPResponse)
        'client.HTTPResponse'
    """
    cls = obj if isinstance(obj, type) else type(obj)
    name = getattr(cls, "__name__", None) or repr(cls)
    module = getattr(cls, "__module__", None) or ""

    if not qualified or module == "builtins" or not module:
        return name
    return f"{module.rpartition('.')[2]}.{name}"


def safe_repr(obj: Any) -> str:
    """
    Defensive repr() call, a broken __repr__ yields the <TypeName> placeholder.
    """
    try:
        return repr(obj)
    except Exception:
        return f"<{class_name(obj)}>"


def caller_module(package: str = PACKAGE) -> str:
    """Gets the name of the first module on the call stack outside a package.

    Walks the stack from the current frame outwards and skips every frame whose
    module belongs to ``package``. Used to decide which private fields the code that
    asked for a dump is allowed to see.

    Args:
        package (str): Dotted package name whose frames are skipped.

    Returns:
        str: The ``__name__`` of the calling module, or an empty string when every
            frame belongs to the package.
    """
    frame = inspect.currentframe()
    try:
        while frame is not None:
            name = frame.f_globals.get("__name__", "")
            if name != package and not name.startswith(package + "."):
                return name
            frame = frame.f_back
        return ""
    finally:
        # Break the frame reference cycle
        del frame
