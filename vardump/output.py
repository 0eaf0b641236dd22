"""
Output sink of the dump engine.

Everything the engine emits goes through one OutputSink. The sink can be temporarily
pointed at a scratch buffer to render a fragment (a type text, a pointer comment, the
body of a custom formatter) before deciding where it goes.
"""

# Standard library -----------------------------------------------------------------------------------------------------
import io

from contextlib import contextmanager
from typing import Callable, Iterator, TextIO

__all__ = ["OutputSink"]


# Classes --------------------------------------------------------------------------------------------------------------

class OutputSink:
    """
    Current text destination of a dump.

    Args:
        out: Any object with a ``write(str)`` method.
    """

    def __init__(self, out: TextIO) -> None:
        if not callable(getattr(out, "write", None)):
            raise TypeError(f"out must have a write() method, got {type(out).__name__}")
        self._out = out

    def write(self, text: str) -> None:
        if text:
            self._out.write(text)

    @contextmanager
    def redirect(self) -> Iterator[io.StringIO]:
        """
        Context manager sending all writes to a scratch buffer.

        The previous destination is restored on exit, also when the block raises.
        """
        buffer = io.StringIO()
        previous, self._out = self._out, buffer
        try:
            yield buffer
        finally:
            self._out = previous

    def capture(self, fn: Callable[[], object]) -> str:
        """Run fn with writes redirected and return what it wrote."""
        with self.redirect() as buffer:
            fn()
        return buffer.getvalue()
