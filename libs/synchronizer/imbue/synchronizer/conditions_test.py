"""Tests for condition types."""

import pytest

from imbue.synchronizer.conditions import Condition
from imbue.synchronizer.conditions import describe_callable
from imbue.synchronizer.conditions import PredicateCondition
from imbue.synchronizer.conditions import to_condition
from imbue.synchronizer.conditions import ValueCondition
from imbue.synchronizer.errors import InvalidConditionError
from imbue.synchronizer.errors import SynchronizerError


def _is_ready() -> bool:
    return True


def test_predicate_condition_evaluates_truthiness() -> None:
    assert PredicateCondition(predicate=lambda: 1).evaluate()
    assert not PredicateCondition(predicate=lambda: []).evaluate()


def test_predicate_condition_describes_predicate() -> None:
    assert PredicateCondition(predicate=_is_ready).describe() == "_is_ready"


def test_value_condition_remembers_last_value() -> None:
    values = iter([1, 2, 3])
    condition = ValueCondition(producer=lambda: next(values), matcher=lambda value: value == 2)

    assert not condition.evaluate()
    assert condition.last_value == 1
    assert condition.evaluate()
    assert condition.last_value == 2


def test_value_condition_description_includes_last_value() -> None:
    condition = ValueCondition(producer=lambda: 41, matcher=lambda value: value == 42)
    assert "last value" not in condition.describe()

    condition.evaluate()

    assert "(last value: 41)" in condition.describe()


def test_condition_errors_propagate() -> None:
    def _broken() -> int:
        raise KeyError("missing")

    with pytest.raises(KeyError):
        ValueCondition(producer=_broken, matcher=lambda value: True).evaluate()
    with pytest.raises(KeyError):
        PredicateCondition(predicate=_broken).evaluate()


def test_to_condition_wraps_callables() -> None:
    condition = to_condition(_is_ready)
    assert isinstance(condition, PredicateCondition)
    assert condition.evaluate()


def test_to_condition_passes_conditions_through() -> None:
    class AlwaysTrue(Condition):
        def evaluate(self) -> bool:
            return True

        def describe(self) -> str:
            return "always true"

    condition = AlwaysTrue()
    assert to_condition(condition) is condition


def test_to_condition_rejects_non_callables() -> None:
    with pytest.raises(InvalidConditionError) as exc_info:
        to_condition(True)  # type: ignore[arg-type]

    assert exc_info.value.condition is True
    assert isinstance(exc_info.value, TypeError)
    assert isinstance(exc_info.value, SynchronizerError)


def test_describe_callable_prefers_describe_method() -> None:
    class Described:
        def __call__(self) -> int:
            return 1

        def describe(self) -> str:
            return "a described producer"

    assert describe_callable(Described()) == "a described producer"
