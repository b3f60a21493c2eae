from abc import ABC
from abc import abstractmethod
from collections.abc import Callable
from typing import Any

from pydantic import ConfigDict
from pydantic import PrivateAttr

from imbue.synchronizer.errors import InvalidConditionError
from imbue.synchronizer.models import MutableModel


def describe_callable(func: Callable[..., Any]) -> str:
    """Human readable name for a producer, matcher or predicate."""
    describe = getattr(func, "describe", None)
    if callable(describe):
        return str(describe())
    name = getattr(func, "__qualname__", None)
    if name is not None:
        return name
    return repr(func)


class Condition(ABC):
    """Something the polling loop can evaluate over and over until it holds.

    Implementations must be safe to evaluate repeatedly and must let errors raised
    during evaluation propagate.
    """

    @abstractmethod
    def evaluate(self) -> bool: ...

    @abstractmethod
    def describe(self) -> str: ...


class PredicateCondition(MutableModel, Condition):
    """A self-contained condition backed by a zero-argument predicate."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    predicate: Callable[[], Any]

    def evaluate(self) -> bool:
        return bool(self.predicate())

    def describe(self) -> str:
        return describe_callable(self.predicate)


class ValueCondition(MutableModel, Condition):
    """Produces a value on every evaluation and checks it against a matcher."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    producer: Callable[[], Any]
    matcher: Callable[[Any], Any]

    _last_value: Any = PrivateAttr(default=None)
    _is_evaluated: bool = PrivateAttr(default=False)

    @property
    def last_value(self) -> Any:
        """The value produced by the most recent evaluation."""
        return self._last_value

    @property
    def is_evaluated(self) -> bool:
        return self._is_evaluated

    def evaluate(self) -> bool:
        value = self.producer()
        self._last_value = value
        self._is_evaluated = True
        return bool(self.matcher(value))

    def describe(self) -> str:
        description = f"{describe_callable(self.producer)} matching {describe_callable(self.matcher)}"
        if self._is_evaluated:
            description += f" (last value: {self._last_value!r})"
        return description


def to_condition(condition: Condition | Callable[[], Any]) -> Condition:
    if isinstance(condition, Condition):
        return condition
    if not callable(condition):
        raise InvalidConditionError(condition)
    return PredicateCondition(predicate=condition)
