from imbue.synchronizer.primitives import Duration


class SynchronizerError(Exception):
    """Base exception for all synchronizer errors."""

    ...


class ConditionTimeoutError(SynchronizerError, TimeoutError):
    """Raised when a condition is not fulfilled before the wait times out."""

    def __init__(
        self,
        condition_description: str,
        timeout: Duration,
        elapsed_seconds: float,
        alias: str | None = None,
    ) -> None:
        self.condition_description = condition_description
        self.timeout = timeout
        self.elapsed_seconds = elapsed_seconds
        self.alias = alias
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.alias is not None:
            subject = f"Condition with alias '{self.alias}' ({self.condition_description})"
        else:
            subject = f"Condition {self.condition_description}"
        return f"{subject} was not fulfilled within {self.timeout} (waited {self.elapsed_seconds:.3f} sec)"


class CannotCreateProxyError(SynchronizerError, TypeError):
    """Raised by call_to when no proxy can be built for the target's type."""

    def __init__(self, proxied_type: type, reason: str) -> None:
        self.proxied_type = proxied_type
        self.reason = reason
        super().__init__(
            f"Cannot create a proxy for {proxied_type.__module__}.{proxied_type.__qualname__}: {reason}"
        )


class UnrecordableAttributeError(SynchronizerError, AttributeError):
    """Raised when a call_to proxy is asked for a name it cannot record."""

    def __init__(self, proxied_type: type, attribute_name: str) -> None:
        self.proxied_type = proxied_type
        self.attribute_name = attribute_name
        super().__init__(f"'{proxied_type.__name__}' proxy has no recordable attribute '{attribute_name}'")


class UnrecordableSpecialMethodError(SynchronizerError, TypeError):
    """Raised when a special method (len(), iteration, ...) is used on a call_to proxy."""

    ...


class InvalidConditionError(SynchronizerError, TypeError):
    """Raised when until() receives something that is neither a Condition nor a callable."""

    def __init__(self, condition: object) -> None:
        self.condition = condition
        super().__init__(f"Expected a Condition or a callable, got {condition!r}")


class UncaughtThreadExceptionError(SynchronizerError, RuntimeError):
    """Raised in the waiting thread when a background thread died with an uncaught exception.

    The original exception is available as __cause__.
    """

    def __init__(self, thread_name: str | None, exception: BaseException) -> None:
        self.thread_name = thread_name
        super().__init__(f"Uncaught exception in thread '{thread_name}': {exception!r}")
