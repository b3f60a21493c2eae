"""Project-level conftest for synchronizer.

Every test starts and ends with the built-in defaults, no captured thread exception and
no uncaught exception handler installed, so configuration never leaks between tests.
"""

from collections.abc import Iterator

import pytest

from imbue.synchronizer.defaults import reset


@pytest.fixture(autouse=True)
def reset_synchronizer_state() -> Iterator[None]:
    reset()
    yield
    reset()
