import time
from threading import Event

from loguru import logger

from imbue.synchronizer.conditions import Condition
from imbue.synchronizer.data_types import WaitSettings
from imbue.synchronizer.errors import ConditionTimeoutError
from imbue.synchronizer.errors import UncaughtThreadExceptionError
from imbue.synchronizer.uncaught_exceptions import install_uncaught_exception_handler
from imbue.synchronizer.uncaught_exceptions import UNCAUGHT_EXCEPTION_HOLDER


def _raise_if_background_thread_failed() -> None:
    captured = UNCAUGHT_EXCEPTION_HOLDER.take()
    if captured is None:
        return
    raise UncaughtThreadExceptionError(captured.thread_name, captured.exception) from captured.exception


def _poll_until_fulfilled(settings: WaitSettings, condition: Condition, start_time: float) -> int:
    """Run the evaluate, holder, timeout, sleep cycle and return the number of evaluations."""
    timeout_seconds = settings.timeout.to_seconds()
    poll_interval_seconds = settings.poll_interval.to_seconds()
    # Each wait gets its own event; nothing ever sets it, it is only used to block.
    sleeper = Event()
    poll_count = 1

    while not condition.evaluate():
        if settings.is_catching_uncaught_exceptions:
            _raise_if_background_thread_failed()

        elapsed_seconds = time.monotonic() - start_time
        if elapsed_seconds >= timeout_seconds:
            raise ConditionTimeoutError(
                condition_description=condition.describe(),
                timeout=settings.timeout,
                elapsed_seconds=elapsed_seconds,
                alias=settings.alias,
            )

        logger.trace("Condition not fulfilled on evaluation {}, polling again", poll_count)
        sleeper.wait(timeout=min(poll_interval_seconds, timeout_seconds - elapsed_seconds))
        poll_count += 1

    return poll_count


def await_condition(settings: WaitSettings, condition: Condition) -> None:
    """Block until condition holds, the timeout elapses, or a background thread dies.

    Every tick runs in a fixed order: evaluate the condition, then (if catching) check for
    a captured thread exception, then check the timeout, then sleep. The first evaluation
    happens without any sleep.

    Errors raised while evaluating the condition propagate unchanged.
    """
    if settings.is_catching_uncaught_exceptions:
        install_uncaught_exception_handler()

    with logger.contextualize(alias=settings.alias):
        logger.debug(
            "Awaiting {} (timeout={}, poll interval={})",
            condition.describe(),
            settings.timeout,
            settings.poll_interval,
        )
        start_time = time.monotonic()
        try:
            poll_count = _poll_until_fulfilled(settings, condition, start_time)
        except BaseException:
            logger.trace("Awaiting condition [failed after {:.5f} sec]", time.monotonic() - start_time)
            raise
        UNCAUGHT_EXCEPTION_HOLDER.clear()
        logger.trace(
            "Condition fulfilled after {} evaluation(s) [done in {:.5f} sec]",
            poll_count,
            time.monotonic() - start_time,
        )
