from collections.abc import Callable
import threading
from threading import Lock
from typing import Final

from loguru import logger
from pydantic import ConfigDict
from pydantic import PrivateAttr

from imbue.synchronizer.models import FrozenModel
from imbue.synchronizer.models import MutableModel

# =============================================================================
# Uncaught Exception Holder
#
# A single process-wide slot for the first exception that escapes a background
# thread while catching is enabled. Worker threads write to it through
# threading.excepthook, so access is guarded by a lock.
# =============================================================================


class CapturedThreadException(FrozenModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    exception: BaseException
    thread_name: str | None


class UncaughtExceptionHolder(MutableModel):
    """Lock-guarded single slot where the first captured exception wins."""

    _lock: Lock = PrivateAttr(default_factory=Lock)
    _captured: CapturedThreadException | None = PrivateAttr(default=None)

    def offer(self, exception: BaseException, thread_name: str | None) -> bool:
        """Store the exception if the slot is empty. Returns whether it was stored."""
        with self._lock:
            if self._captured is not None:
                return False
            self._captured = CapturedThreadException(exception=exception, thread_name=thread_name)
            return True

    def peek(self) -> CapturedThreadException | None:
        with self._lock:
            return self._captured

    def take(self) -> CapturedThreadException | None:
        """Return the captured exception (if any) and empty the slot."""
        with self._lock:
            captured = self._captured
            self._captured = None
            return captured

    def clear(self) -> None:
        with self._lock:
            self._captured = None


UNCAUGHT_EXCEPTION_HOLDER: Final[UncaughtExceptionHolder] = UncaughtExceptionHolder()

# The hook that was active before ours was installed, restored on uninstall.
_previous_excepthook: Callable[[threading.ExceptHookArgs], object] | None = None


def report_uncaught_exception(exception: BaseException, thread_name: str | None = None) -> bool:
    """Hand an exception from a background thread to the holder.

    Returns True if it was captured, False if an earlier exception already occupies the slot.
    """
    is_captured = UNCAUGHT_EXCEPTION_HOLDER.offer(exception, thread_name)
    if is_captured:
        logger.opt(exception=exception).debug("Captured uncaught exception in thread '{}'", thread_name)
    else:
        logger.debug(
            "Discarding uncaught exception in thread '{}' because an earlier one is already captured: {!r}",
            thread_name,
            exception,
        )
    return is_captured


def _capture_uncaught_exception(args: threading.ExceptHookArgs) -> None:
    # The default hook silently ignores SystemExit, so we do too.
    if args.exc_type is SystemExit or args.exc_value is None:
        return
    thread_name = args.thread.name if args.thread is not None else None
    report_uncaught_exception(args.exc_value, thread_name)


def is_uncaught_exception_handler_installed() -> bool:
    return threading.excepthook is _capture_uncaught_exception


def install_uncaught_exception_handler() -> None:
    """Route exceptions that escape any thread into the holder. Idempotent."""
    global _previous_excepthook
    if is_uncaught_exception_handler_installed():
        return
    _previous_excepthook = threading.excepthook
    threading.excepthook = _capture_uncaught_exception
    logger.trace("Installed uncaught exception handler")


def uninstall_uncaught_exception_handler() -> None:
    """Restore the hook that was active before install. Idempotent.

    If someone else replaced our hook in the meantime, theirs is left in place.
    """
    global _previous_excepthook
    if is_uncaught_exception_handler_installed():
        threading.excepthook = _previous_excepthook or threading.__excepthook__
        logger.trace("Uninstalled uncaught exception handler")
    _previous_excepthook = None
