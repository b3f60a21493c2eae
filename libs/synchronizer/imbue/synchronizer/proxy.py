import inspect
import types
from abc import ABC
from typing import Any
from typing import Final
from typing import Generic
from typing import Protocol
from typing import TypeVar

from loguru import logger
from pydantic import ConfigDict
from pydantic import Field

from imbue.synchronizer.errors import CannotCreateProxyError
from imbue.synchronizer.errors import UnrecordableAttributeError
from imbue.synchronizer.errors import UnrecordableSpecialMethodError
from imbue.synchronizer.models import FrozenModel

T = TypeVar("T")

_MISSING: Final[object] = object()

# Bases that carry no capabilities of their own and are never used as proxy bases.
_IGNORED_BASES: Final[tuple[type, ...]] = (object, ABC, Generic, Protocol)  # type: ignore[arg-type]

# Standard library abstractions (Mapping, Iterable, SupportsInt, ...). Classes usually pick
# these up for free, so they only stand in for a target that cannot be subclassed.
_GENERIC_INTERFACE_MODULES: Final[frozenset[str]] = frozenset(
    {"_collections_abc", "collections.abc", "contextlib", "io", "numbers", "os", "typing"}
)


class ProxyInvocation(FrozenModel):
    """A recorded method call (or attribute read) on a call_to proxy.

    Calling the record replays the identical access against the real target and returns
    the fresh result, so it can be handed to until() as a producer.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    target: Any = Field(description="The real object the call is replayed against")
    name: str = Field(description="Name of the recorded method or attribute")
    args: tuple[Any, ...] = Field(default=(), description="Positional arguments of the recorded call")
    kwargs: dict[str, Any] = Field(default_factory=dict, description="Keyword arguments of the recorded call")
    is_attribute_read: bool = Field(default=False, description="Whether this records a read instead of a call")

    def __call__(self) -> Any:
        attribute = getattr(self.target, self.name)
        if self.is_attribute_read:
            return attribute
        return attribute(*self.args, **self.kwargs)

    def describe(self) -> str:
        owner = type(self.target).__name__
        if self.is_attribute_read:
            return f"{owner}.{self.name}"
        arguments = [repr(arg) for arg in self.args] + [f"{key}={value!r}" for key, value in self.kwargs.items()]
        return f"{owner}.{self.name}({', '.join(arguments)})"


class RecordedMethod(FrozenModel):
    """What a proxy hands out for a method name: calling it records the call's arguments."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    target: Any = Field(description="The real object the call will be replayed against")
    name: str = Field(description="Name of the method")

    def __call__(self, *args: Any, **kwargs: Any) -> ProxyInvocation:
        return ProxyInvocation(target=self.target, name=self.name, args=args, kwargs=kwargs)


def _find_declared_attribute(bases: tuple[type, ...], name: str) -> Any:
    for base in bases:
        for cls in base.__mro__:
            if cls in _IGNORED_BASES:
                continue
            if name in cls.__dict__:
                return cls.__dict__[name]
    return _MISSING


def _is_method(declared: Any) -> bool:
    if isinstance(declared, (staticmethod, classmethod)):
        return True
    return callable(declared)


def _record_access(target: Any, bases: tuple[type, ...], is_subclass_proxy: bool, name: str) -> Any:
    declared = _find_declared_attribute(bases, name)
    if declared is _MISSING:
        # Plain instance attributes only exist on the target itself, so only a subclass proxy
        # (which promises the target's full surface) records them.
        if is_subclass_proxy and name in getattr(target, "__dict__", {}):
            return ProxyInvocation(target=target, name=name, is_attribute_read=True)
        raise UnrecordableAttributeError(type(target), name)
    if not _is_method(declared):
        return ProxyInvocation(target=target, name=name, is_attribute_read=True)
    return RecordedMethod(target=target, name=name)


def _refuse_special_method(self: Any, *args: Any, **kwargs: Any) -> Any:
    # Special methods bypass __getattribute__, so there is nothing to record.
    raise UnrecordableSpecialMethodError("Special methods cannot be recorded by a call_to proxy")


class CallRecorder:
    """Mixin placed first in the bases of every generated call_to proxy.

    The generated class sets the dunder class attributes below; pydantic ignores dunder
    names, and __getattribute__ hands them through untouched.
    """

    __slots__ = ()

    __recorded_target__: Any = None
    __recorded_bases__: tuple[type, ...] = ()
    __is_subclass_recorder__: bool = False

    def __getattribute__(self, name: str) -> Any:
        if name.startswith("__") and name.endswith("__"):
            return object.__getattribute__(self, name)
        proxy_type = type(self)
        return _record_access(
            proxy_type.__recorded_target__,
            proxy_type.__recorded_bases__,
            proxy_type.__is_subclass_recorder__,
            name,
        )

    def __repr__(self) -> str:
        return f"<call_to proxy for {type(self).__recorded_target__!r}>"


def _is_interface(cls: type) -> bool:
    """An abstract base class with abstract members, or an explicit Protocol base."""
    if cls in _IGNORED_BASES:
        return False
    if getattr(cls, "_is_protocol", False):
        return True
    return inspect.isabstract(cls)


def _is_generic_interface(cls: type) -> bool:
    return cls.__module__ in _GENERIC_INTERFACE_MODULES


def _find_interfaces(target_type: type, is_generic: bool) -> tuple[type, ...]:
    interfaces: list[type] = []
    for cls in target_type.__mro__[1:]:
        if not _is_interface(cls) or _is_generic_interface(cls) != is_generic:
            continue
        # A more specific interface already brings this one along.
        if any(issubclass(found, cls) for found in interfaces):
            continue
        interfaces.append(cls)
    return tuple(interfaces)


def _is_final(target_type: type) -> bool:
    return bool(getattr(target_type, "__final__", False))


def _allocate(proxy_type: type) -> Any:
    """Create an instance without running any constructor written in Python.

    Built-in types (dict, list, deque, ...) only accept instances allocated by their own
    __new__, so the first allocator implemented in C along the MRO is used.
    """
    for cls in proxy_type.__mro__:
        allocator = cls.__dict__.get("__new__")
        if isinstance(allocator, types.BuiltinFunctionType):
            return allocator(proxy_type)
    return object.__new__(proxy_type)


def _build_proxy(target: Any, bases: tuple[type, ...], is_subclass_proxy: bool) -> Any:
    """Build a stand-in deriving from bases that records accesses instead of running them."""
    target_type = type(target)
    namespace: dict[str, Any] = {
        "__recorded_target__": target,
        "__recorded_bases__": bases,
        "__is_subclass_recorder__": is_subclass_proxy,
    }
    for base in bases:
        for abstract_name in getattr(base, "__abstractmethods__", ()):
            namespace[abstract_name] = _refuse_special_method

    proxy_bases = (CallRecorder, *bases)
    try:
        metaclass, body, keywords = types.prepare_class(f"{target_type.__name__}CallRecorder", proxy_bases)
        body.update(namespace)
        proxy_type = metaclass(f"{target_type.__name__}CallRecorder", proxy_bases, body, **keywords)
        return _allocate(proxy_type)
    except TypeError as e:
        raise CannotCreateProxyError(target_type, f"deriving from {bases} failed: {e}") from e


def _build_interface_proxy(target: Any, interfaces: tuple[type, ...]) -> Any | None:
    if not interfaces:
        return None
    try:
        return _build_proxy(target, interfaces, is_subclass_proxy=False)
    except CannotCreateProxyError as e:
        logger.trace("Falling back from interface proxy: {}", e)
        return None


def call_to(target: T) -> T:
    """Return a stand-in for target whose method calls are recorded instead of executed.

    Calling a method on the stand-in returns a ProxyInvocation that re-runs the same call
    against target every time it is invoked:

        await_().until(call_to(repository).get_value(), lambda value: value > 0)

    The type checker sees the stand-in as T, so the recorded call appears to return the
    method's declared type even though at runtime it is a ProxyInvocation.

    The stand-in derives from the abstract base classes target implements, otherwise from
    target's own class. Standard library abstractions (Mapping, Iterable, ...) are only
    used when target's class cannot be subclassed. Raises CannotCreateProxyError when none
    of this works.
    """
    target_type = type(target)
    proxy = _build_interface_proxy(target, _find_interfaces(target_type, is_generic=False))
    if proxy is not None:
        return proxy

    failure: CannotCreateProxyError | None = None
    if not _is_final(target_type):
        try:
            return _build_proxy(target, (target_type,), is_subclass_proxy=True)
        except CannotCreateProxyError as e:
            failure = e

    proxy = _build_interface_proxy(target, _find_interfaces(target_type, is_generic=True))
    if proxy is not None:
        return proxy
    if failure is not None:
        raise failure
    raise CannotCreateProxyError(target_type, "the class is final and implements no abstract base class")
