from collections.abc import Callable
from datetime import timedelta
from typing import Any
from typing import Self
from typing import TypeVar
from typing import overload

from imbue.synchronizer.awaiter import await_condition
from imbue.synchronizer.conditions import Condition
from imbue.synchronizer.conditions import to_condition
from imbue.synchronizer.conditions import ValueCondition
from imbue.synchronizer.data_types import WaitSettings
from imbue.synchronizer.defaults import get_defaults
from imbue.synchronizer.models import to_update
from imbue.synchronizer.primitives import Duration
from imbue.synchronizer.primitives import FOREVER
from imbue.synchronizer.primitives import InvalidDurationError
from imbue.synchronizer.primitives import TimeUnit
from imbue.synchronizer.primitives import to_duration

T = TypeVar("T")


class WaitSpecification(WaitSettings):
    """Fluent description of a single wait, terminated by until().

    Every builder method returns a new specification; an existing one never changes, so
    a specification can be reused or shared between waits.
    """

    @classmethod
    def from_defaults(cls, alias: str | None = None) -> Self:
        """Seed a specification from a snapshot of the current process-wide defaults."""
        defaults = get_defaults()
        return cls(
            poll_interval=defaults.poll_interval,
            timeout=defaults.timeout,
            alias=alias,
            is_catching_uncaught_exceptions=defaults.is_catching_uncaught_exceptions,
        )

    def at_most(self, amount_or_duration: Duration | timedelta | int, unit: TimeUnit | None = None) -> Self:
        return self.model_copy_update(to_update(self.field_ref().timeout, to_duration(amount_or_duration, unit)))

    def with_timeout(self, amount_or_duration: Duration | timedelta | int, unit: TimeUnit | None = None) -> Self:
        return self.at_most(amount_or_duration, unit)

    def forever(self) -> Self:
        return self.model_copy_update(to_update(self.field_ref().timeout, FOREVER))

    def with_poll_interval(self, amount_or_duration: Duration | timedelta | int, unit: TimeUnit | None = None) -> Self:
        poll_interval = to_duration(amount_or_duration, unit)
        if poll_interval.is_forever:
            raise InvalidDurationError("The poll interval cannot be forever")
        return self.model_copy_update(to_update(self.field_ref().poll_interval, poll_interval))

    def with_alias(self, alias: str) -> Self:
        return self.model_copy_update(to_update(self.field_ref().alias, alias))

    def catch_uncaught_exceptions(self) -> Self:
        """Fail this wait (only) when a background thread dies with an uncaught exception."""
        return self.model_copy_update(to_update(self.field_ref().is_catching_uncaught_exceptions, True))

    def and_(self) -> Self:
        return self

    def await_(self, alias: str | None = None) -> Self:
        if alias is None:
            return self
        return self.with_alias(alias)

    @overload
    def until(self, condition: Condition | Callable[[], Any]) -> None: ...

    @overload
    def until(self, condition: Callable[[], T], matcher: Callable[[T], Any]) -> T: ...

    def until(self, condition: Any, matcher: Callable[[Any], Any] | None = None) -> Any:
        """Block until the condition holds and return the matched value, if any.

        Either pass a single condition (a Condition or a zero-argument callable whose result
        is used as a boolean), or a producer and a matcher: the producer is called on every
        poll and its result handed to the matcher. In the second form the value that
        satisfied the matcher is returned.

        Raises ConditionTimeoutError on timeout and UncaughtThreadExceptionError if catching
        is enabled and a background thread died. Errors raised by the condition itself
        propagate unchanged.
        """
        if matcher is None:
            await_condition(self, to_condition(condition))
            return None
        value_condition = ValueCondition(producer=condition, matcher=matcher)
        await_condition(self, value_condition)
        return value_condition.last_value
