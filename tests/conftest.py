#
# Pytest Fixtures
#

# Standard library -----------------------------------------------------------------------------------------------------
import re

from typing import Callable

# Third-party ----------------------------------------------------------------------------------------------------------
import pytest

# Local ----------------------------------------------------------------------------------------------------------------
from vardump.dump import configure

ADDRESS_RE = re.compile(r"\(0x[0-9a-f]+\)")


# Fixtures -------------------------------------------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def plain_options():
    """Reset process-wide dump options around every test."""
    configure(preset="plain")
    yield
    configure(preset="plain")


@pytest.fixture
def normalize() -> Callable[[str], str]:
    """Replace memory addresses in pointer comments with a fixed placeholder."""

    def _normalize(text: str) -> str:
        return ADDRESS_RE.sub("(0xADDR)", text)

    return _normalize
