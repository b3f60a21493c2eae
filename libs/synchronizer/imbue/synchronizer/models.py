from typing import Any
from typing import Self
from typing import TypeVar

from pydantic import BaseModel
from pydantic import ConfigDict

_T = TypeVar("_T")


class NestedFieldUpdateError(ValueError):
    """Raised when an update names a dotted field path, which model_copy would silently mishandle."""


class FieldProxy:
    """Stands in for a model inside field_ref(), turning attribute access into a field name.

    field_ref() is typed as returning Self, so `spec.field_ref().timeout` type-checks as the
    field's declared type and to_update() can check the new value against it.
    """

    __slots__ = ("_path",)

    def __init__(self, path: str = "") -> None:
        object.__setattr__(self, "_path", path)

    def __getattr__(self, name: str) -> "FieldProxy":
        path: str = object.__getattribute__(self, "_path")
        return FieldProxy(f"{path}.{name}" if path else name)

    def __str__(self) -> str:
        return object.__getattribute__(self, "_path")

    def __repr__(self) -> str:
        return f"FieldProxy({str(self)!r})"


def to_update(field: _T, value: _T) -> tuple[str, Any]:
    """Pair a field reference from field_ref() with its new value."""
    return (str(field), value)


def to_update_dict(*updates: tuple[str, Any]) -> dict[str, Any]:
    for field_name, _value in updates:
        if "." in field_name:
            raise NestedFieldUpdateError(f"Only top-level fields can be updated, got {field_name!r}")
    return dict(updates)


class FrozenModel(BaseModel):
    """Base class for immutable pydantic models that prevent attribute mutation after construction."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        arbitrary_types_allowed=False,
    )

    def field_ref(self) -> Self:
        """Return a proxy for type-safe field references with to_update()."""
        return FieldProxy()  # type: ignore[return-value]

    def model_copy_update(self, *updates: tuple[str, Any]) -> Self:
        """Create an updated copy using to_update() pairs; the original is left untouched."""
        return self.model_copy(update=to_update_dict(*updates))


class MutableModel(BaseModel):
    """Base class for mutable pydantic models that allow attribute mutation after construction."""

    model_config = ConfigDict(
        frozen=False,
        extra="forbid",
        arbitrary_types_allowed=False,
    )

    def field_ref(self) -> Self:
        """Return a proxy for type-safe field references with to_update()."""
        return FieldProxy()  # type: ignore[return-value]

    def model_copy_update(self, *updates: tuple[str, Any]) -> Self:
        return self.model_copy(update=to_update_dict(*updates))
