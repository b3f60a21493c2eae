"""Entry points for waiting on conditions produced by other threads.

Typical usage in a test:

    await_().at_most(2, TimeUnit.SECONDS).until(lambda: repository.value == 1)
    await_("value published").until(call_to(repository).get_value(), lambda value: value > 0)

All entry points start from the process-wide defaults (see defaults.py); call reset()
between test cases.
"""

from datetime import timedelta

from imbue.synchronizer.defaults import catch_uncaught_exceptions
from imbue.synchronizer.defaults import get_defaults
from imbue.synchronizer.defaults import reset
from imbue.synchronizer.defaults import set_default_poll_interval
from imbue.synchronizer.defaults import set_default_timeout
from imbue.synchronizer.primitives import Duration
from imbue.synchronizer.primitives import TimeUnit
from imbue.synchronizer.proxy import call_to
from imbue.synchronizer.wait_specification import WaitSpecification

__all__ = [
    "await_",
    "call_to",
    "catch_uncaught_exceptions",
    "catching_uncaught_exceptions",
    "get_defaults",
    "reset",
    "set_default_poll_interval",
    "set_default_timeout",
    "wait_at_most",
    "with_poll_interval",
    "with_timeout",
]


def await_(alias: str | None = None) -> WaitSpecification:
    """Start a wait from the current defaults, optionally labelled for timeout messages."""
    return WaitSpecification.from_defaults(alias)


def with_poll_interval(amount_or_duration: Duration | timedelta | int, unit: TimeUnit | None = None) -> WaitSpecification:
    return await_().with_poll_interval(amount_or_duration, unit)


def with_timeout(amount_or_duration: Duration | timedelta | int, unit: TimeUnit | None = None) -> WaitSpecification:
    return await_().with_timeout(amount_or_duration, unit)


def wait_at_most(amount_or_duration: Duration | timedelta | int, unit: TimeUnit | None = None) -> WaitSpecification:
    return await_().at_most(amount_or_duration, unit)


def catching_uncaught_exceptions() -> WaitSpecification:
    """Enable catching globally, like catch_uncaught_exceptions(), and continue fluently.

        catching_uncaught_exceptions().and_().await_().forever().until(...)
    """
    catch_uncaught_exceptions()
    return await_()
