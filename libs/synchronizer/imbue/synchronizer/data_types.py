from pydantic import Field

from imbue.synchronizer.models import FrozenModel
from imbue.synchronizer.primitives import Duration


class WaitSettings(FrozenModel):
    """Everything the polling loop needs to know about how to wait."""

    poll_interval: Duration = Field(description="Delay between two evaluations of the condition")
    timeout: Duration = Field(description="Maximum time to wait for the condition")
    alias: str | None = Field(default=None, description="Label shown in timeout messages")
    is_catching_uncaught_exceptions: bool = Field(
        default=False,
        description="Whether an uncaught exception in a background thread aborts the wait",
    )
