from datetime import timedelta
from typing import Final

from loguru import logger
from pydantic import Field

from imbue.synchronizer.models import FrozenModel
from imbue.synchronizer.models import to_update
from imbue.synchronizer.primitives import Duration
from imbue.synchronizer.primitives import FOREVER
from imbue.synchronizer.primitives import InvalidDurationError
from imbue.synchronizer.primitives import ONE_HUNDRED_MILLISECONDS
from imbue.synchronizer.primitives import TimeUnit
from imbue.synchronizer.primitives import to_duration
from imbue.synchronizer.uncaught_exceptions import install_uncaught_exception_handler
from imbue.synchronizer.uncaught_exceptions import UNCAUGHT_EXCEPTION_HOLDER
from imbue.synchronizer.uncaught_exceptions import uninstall_uncaught_exception_handler

BUILT_IN_POLL_INTERVAL: Final[Duration] = ONE_HUNDRED_MILLISECONDS
BUILT_IN_TIMEOUT: Final[Duration] = FOREVER


class SynchronizerDefaults(FrozenModel):
    """Values every new wait specification starts from."""

    poll_interval: Duration = Field(default=BUILT_IN_POLL_INTERVAL, description="Delay between evaluations")
    timeout: Duration = Field(default=BUILT_IN_TIMEOUT, description="Maximum time to wait")
    is_catching_uncaught_exceptions: bool = Field(
        default=False,
        description="Whether waits fail when a background thread dies with an uncaught exception",
    )


# =============================================================================
# Process-wide defaults
#
# The only mutable state besides the uncaught exception holder. Every setter
# below replaces the snapshot, so a specification created earlier keeps the
# values it was seeded with. Not thread-safe: tests are expected to configure
# defaults sequentially and call reset() between test cases.
# =============================================================================

_defaults: SynchronizerDefaults = SynchronizerDefaults()


def get_defaults() -> SynchronizerDefaults:
    return _defaults


def set_default_timeout(amount_or_duration: Duration | timedelta | int, unit: TimeUnit | None = None) -> None:
    global _defaults
    timeout = to_duration(amount_or_duration, unit)
    _defaults = _defaults.model_copy_update(to_update(_defaults.field_ref().timeout, timeout))
    logger.debug("Default timeout set to {}", timeout)


def set_default_poll_interval(amount_or_duration: Duration | timedelta | int, unit: TimeUnit | None = None) -> None:
    global _defaults
    poll_interval = to_duration(amount_or_duration, unit)
    if poll_interval.is_forever:
        raise InvalidDurationError("The poll interval cannot be forever")
    _defaults = _defaults.model_copy_update(to_update(_defaults.field_ref().poll_interval, poll_interval))
    logger.debug("Default poll interval set to {}", poll_interval)


def catch_uncaught_exceptions() -> None:
    """Make every subsequent wait fail as soon as any thread dies with an uncaught exception."""
    global _defaults
    install_uncaught_exception_handler()
    _defaults = _defaults.model_copy_update(to_update(_defaults.field_ref().is_catching_uncaught_exceptions, True))


def reset() -> None:
    """Restore the built-in defaults and forget any captured thread exception.

    Call this between test cases so configuration and stale exceptions do not leak.
    """
    global _defaults
    _defaults = SynchronizerDefaults()
    uninstall_uncaught_exception_handler()
    UNCAUGHT_EXCEPTION_HOLDER.clear()
