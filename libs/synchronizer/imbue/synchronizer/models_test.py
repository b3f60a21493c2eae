"""Tests for the pydantic model bases and field update helpers."""

import pytest
from pydantic import ValidationError

from imbue.synchronizer.models import FieldProxy
from imbue.synchronizer.models import FrozenModel
from imbue.synchronizer.models import MutableModel
from imbue.synchronizer.models import NestedFieldUpdateError
from imbue.synchronizer.models import to_update
from imbue.synchronizer.models import to_update_dict


class _Settings(FrozenModel):
    name: str
    retries: int = 0


class _State(MutableModel):
    count: int = 0


def test_field_ref_produces_field_names() -> None:
    settings = _Settings(name="a")
    assert str(settings.field_ref().retries) == "retries"
    assert repr(settings.field_ref().name) == "FieldProxy('name')"


def test_model_copy_update_leaves_original_untouched() -> None:
    settings = _Settings(name="a")

    updated = settings.model_copy_update(
        to_update(settings.field_ref().retries, 3),
        to_update(settings.field_ref().name, "b"),
    )

    assert updated == _Settings(name="b", retries=3)
    assert settings == _Settings(name="a")


def test_mutable_model_copy_update() -> None:
    state = _State(count=1)
    updated = state.model_copy_update(to_update(state.field_ref().count, 2))

    assert updated.count == 2
    assert state.count == 1


def test_nested_field_updates_are_rejected() -> None:
    with pytest.raises(NestedFieldUpdateError):
        to_update_dict(to_update(FieldProxy().outer.inner, 1))


def test_frozen_model_rejects_mutation_and_extra_fields() -> None:
    settings = _Settings(name="a")
    with pytest.raises(ValidationError):
        settings.name = "b"  # type: ignore[misc]
    with pytest.raises(ValidationError):
        _Settings(name="a", unknown=1)  # type: ignore[call-arg]
