from abc import ABC
from abc import abstractmethod
from collections.abc import Callable
import threading
from threading import Event
from threading import Lock
from typing import Any
from typing import final


def wait_interval(timeout: float) -> None:
    """Wait for a specified interval using Event.wait instead of time.sleep."""
    Event().wait(timeout=timeout)


def run_in_background(
    target: Callable[[], Any],
    delay_seconds: float = 0.0,
    name: str | None = None,
) -> threading.Thread:
    """Run target on a daemon thread after a delay.

    Exceptions escaping target are left to threading.excepthook, which is exactly what the
    uncaught exception handler observes.
    """

    def _delayed_target() -> None:
        wait_interval(delay_seconds)
        target()

    thread = threading.Thread(target=_delayed_target, name=name, daemon=True)
    thread.start()
    return thread


class FakeRepository(ABC):
    @abstractmethod
    def get_value(self) -> int: ...

    @abstractmethod
    def set_value(self, value: int) -> None: ...


class FakeRepositoryImpl(FakeRepository):
    def __init__(self) -> None:
        self._lock = Lock()
        self._value = 0

    def get_value(self) -> int:
        with self._lock:
            return self._value

    def set_value(self, value: int) -> None:
        with self._lock:
            self._value = value

    def get_value_plus(self, offset: int, scale: int = 1) -> int:
        return (self.get_value() + offset) * scale


@final
class FinalFakeRepositoryImpl(FakeRepository):
    def __init__(self) -> None:
        self._value = 0

    def get_value(self) -> int:
        return self._value

    def set_value(self, value: int) -> None:
        self._value = value


class ExceptionThrowingFakeRepository(FakeRepository):
    def get_value(self) -> int:
        raise ValueError("Repository is broken")

    def set_value(self, value: int) -> None:
        pass


class Counter:
    """Plain class without any abstract base, so call_to has to subclass it."""

    def __init__(self, start: int = 0) -> None:
        self.count = start

    @property
    def doubled(self) -> int:
        return self.count * 2

    def increment(self) -> None:
        self.count += 1

    def current(self) -> int:
        return self.count

    def plus(self, offset: int, scale: int = 1) -> int:
        return (self.count + offset) * scale


@final
class FinalClass:
    def get_value(self) -> int:
        return 1


def set_value_after(repository: FakeRepository, value: int = 1, delay_seconds: float = 0.1) -> threading.Thread:
    """Publish a value on the repository from a background thread after a delay."""
    return run_in_background(lambda: repository.set_value(value), delay_seconds, name="set-value")


class BackgroundWorkerError(Exception):
    """Raised on purpose by background threads in tests."""


def fail_after(delay_seconds: float = 0.1, message: str = "worker crashed") -> threading.Thread:
    """Crash a background thread with an uncaught BackgroundWorkerError after a delay."""

    def _fail() -> None:
        raise BackgroundWorkerError(message)

    return run_in_background(_fail, delay_seconds, name="failing-worker")
