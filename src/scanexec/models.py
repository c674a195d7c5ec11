"""Data models shared by the runner, the policy builder and the adapters."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from scanexec.errors import (
    ExecutionCancelled,
    ExecutionTimeout,
    OutputCapExceeded,
    StartFailure,
)

DEFAULT_TIMEOUT_SECONDS = 300.0  # 5 minutes
DEFAULT_MAX_OUTPUT_BYTES = 50 * 1024 * 1024  # 50 MiB


class CancelToken:
    """Cooperative cancellation handle owned by the caller.

    Callbacks run synchronously on ``cancel()``, so it must be called from the
    event loop thread (a signal handler installed with
    ``loop.add_signal_handler`` qualifies). A callback registered after
    cancellation runs immediately.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def add_callback(self, callback: Callable[[], None]) -> None:
        if self._cancelled:
            callback()
            return
        self._callbacks.append(callback)

    def remove_callback(self, callback: Callable[[], None]) -> None:
        try:
            self._callbacks.remove(callback)
        except ValueError:
            pass

    def __repr__(self) -> str:
        return f"CancelToken(cancelled={self._cancelled})"


class CompletionStatus(StrEnum):
    EXITED = "exited"
    TIMED_OUT = "timed_out"
    OUTPUT_CAPPED = "output_capped"
    CANCELLED = "cancelled"
    FAILED_TO_START = "failed_to_start"


class ExecutionPolicy(BaseModel):
    """Limits and cancellation governing one invocation."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)
    max_output_bytes: int = Field(default=DEFAULT_MAX_OUTPUT_BYTES, gt=0)
    cancel: CancelToken | None = None
    stdin_data: str | None = None


class ExecutionRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    executable: str
    args: list[str] = Field(default_factory=list)
    cwd: str | None = None
    env: Mapping[str, str] | None = None
    stdin_data: str | None = None
    policy: ExecutionPolicy | None = None

    def effective_policy(self) -> ExecutionPolicy:
        return self.policy or ExecutionPolicy()

    def effective_stdin(self) -> str | None:
        if self.stdin_data is not None:
            return self.stdin_data
        return self.effective_policy().stdin_data


class ExecutionResult(BaseModel):
    """Terminal outcome of one invocation."""

    status: CompletionStatus
    stdout: str = ""
    stderr: str = ""
    exit_code: int | None = Field(
        default=None, description="Set only when status is EXITED"
    )
    signal: int | None = Field(
        default=None, description="Signal that killed the process, if any"
    )
    error: str | None = None
    limit: float | None = Field(
        default=None, description="Violated timeout (s) or output cap (bytes)"
    )

    @property
    def ok(self) -> bool:
        return self.status is CompletionStatus.EXITED and self.exit_code == 0

    def raise_for_status(self) -> None:
        """Raise the matching error unless the process exited on its own."""
        match self.status:
            case CompletionStatus.EXITED:
                return
            case CompletionStatus.TIMED_OUT:
                raise ExecutionTimeout(self.limit or 0.0)
            case CompletionStatus.OUTPUT_CAPPED:
                raise OutputCapExceeded(int(self.limit or 0))
            case CompletionStatus.CANCELLED:
                raise ExecutionCancelled()
            case CompletionStatus.FAILED_TO_START:
                raise StartFailure(self.error or "Failed to start process")
