import math
from datetime import timedelta
from enum import StrEnum
from enum import auto
from typing import Final
from typing import Self

from pydantic import Field

from imbue.synchronizer.models import FrozenModel


class InvalidDurationError(ValueError):
    """Raised when a value cannot be used as a timeout or poll interval."""


class TimeUnit(StrEnum):
    """Granularity of a Duration amount."""

    NANOSECONDS = auto()
    MICROSECONDS = auto()
    MILLISECONDS = auto()
    SECONDS = auto()
    MINUTES = auto()
    HOURS = auto()
    DAYS = auto()

    @property
    def nanoseconds(self) -> int:
        return _NANOSECONDS_PER_UNIT[self]


_NANOSECONDS_PER_UNIT: Final[dict[TimeUnit, int]] = {
    TimeUnit.NANOSECONDS: 1,
    TimeUnit.MICROSECONDS: 1_000,
    TimeUnit.MILLISECONDS: 1_000_000,
    TimeUnit.SECONDS: 1_000_000_000,
    TimeUnit.MINUTES: 60 * 1_000_000_000,
    TimeUnit.HOURS: 60 * 60 * 1_000_000_000,
    TimeUnit.DAYS: 24 * 60 * 60 * 1_000_000_000,
}


class Duration(FrozenModel):
    """An amount of time in a given unit, used for timeouts and poll intervals.

    A forever duration has no meaningful amount and never elapses.
    """

    amount: int = Field(ge=0, description="Number of units")
    unit: TimeUnit = Field(description="Unit the amount is expressed in")
    is_forever: bool = Field(default=False, description="Whether this duration never elapses")

    @classmethod
    def of(cls, amount: int, unit: TimeUnit) -> Self:
        return cls(amount=amount, unit=unit)

    @classmethod
    def from_timedelta(cls, value: timedelta) -> Self:
        """Build a Duration from a timedelta, keeping microsecond precision."""
        if value < timedelta(0):
            raise InvalidDurationError(f"Duration cannot be negative, got {value}")
        # timedelta stores days, seconds and microseconds separately; fold them into one integer.
        total_microseconds = (value.days * 86_400 + value.seconds) * 1_000_000 + value.microseconds
        return cls(amount=total_microseconds, unit=TimeUnit.MICROSECONDS)

    def to_nanoseconds(self) -> int:
        """Canonical integer representation, used for comparisons."""
        if self.is_forever:
            raise InvalidDurationError("A forever duration has no finite length")
        return self.amount * self.unit.nanoseconds

    def to_seconds(self) -> float:
        if self.is_forever:
            return math.inf
        return self.to_nanoseconds() / 1_000_000_000

    def __str__(self) -> str:
        if self.is_forever:
            return "forever"
        if self.amount == 1:
            return f"1 {self.unit.removesuffix('s')}"
        return f"{self.amount} {self.unit}"


ONE_MILLISECOND: Final[Duration] = Duration.of(1, TimeUnit.MILLISECONDS)
ONE_HUNDRED_MILLISECONDS: Final[Duration] = Duration.of(100, TimeUnit.MILLISECONDS)
FIVE_HUNDRED_MILLISECONDS: Final[Duration] = Duration.of(500, TimeUnit.MILLISECONDS)
ONE_SECOND: Final[Duration] = Duration.of(1, TimeUnit.SECONDS)
TWO_SECONDS: Final[Duration] = Duration.of(2, TimeUnit.SECONDS)
FIVE_SECONDS: Final[Duration] = Duration.of(5, TimeUnit.SECONDS)
TEN_SECONDS: Final[Duration] = Duration.of(10, TimeUnit.SECONDS)
ONE_MINUTE: Final[Duration] = Duration.of(1, TimeUnit.MINUTES)
TWO_MINUTES: Final[Duration] = Duration.of(2, TimeUnit.MINUTES)
FIVE_MINUTES: Final[Duration] = Duration.of(5, TimeUnit.MINUTES)
TEN_MINUTES: Final[Duration] = Duration.of(10, TimeUnit.MINUTES)
FOREVER: Final[Duration] = Duration(amount=0, unit=TimeUnit.DAYS, is_forever=True)


def to_duration(amount_or_duration: Duration | timedelta | int, unit: TimeUnit | None = None) -> Duration:
    """Normalize the ways callers can express a duration.

    Accepts a Duration, a timedelta, or an integer amount together with a TimeUnit.
    """
    if isinstance(amount_or_duration, Duration):
        if unit is not None:
            raise InvalidDurationError("A unit cannot be given together with a Duration")
        return amount_or_duration
    if isinstance(amount_or_duration, timedelta):
        if unit is not None:
            raise InvalidDurationError("A unit cannot be given together with a timedelta")
        return Duration.from_timedelta(amount_or_duration)
    # bool is an int subclass but never a sensible amount
    if isinstance(amount_or_duration, bool) or not isinstance(amount_or_duration, int):
        raise InvalidDurationError(f"Expected a Duration, timedelta or int amount, got {amount_or_duration!r}")
    if unit is None:
        raise InvalidDurationError(f"A TimeUnit is required together with the amount {amount_or_duration}")
    if amount_or_duration < 0:
        raise InvalidDurationError(f"Duration amount must be >= 0, got {amount_or_duration}")
    return Duration.of(amount_or_duration, unit)
