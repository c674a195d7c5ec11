"""Execution policy builder."""

from __future__ import annotations

from scanexec.models import DEFAULT_MAX_OUTPUT_BYTES, DEFAULT_TIMEOUT_SECONDS, CancelToken, ExecutionPolicy


def resolve_timeout(
    timeout_seconds: float | None = None,
    default_timeout_seconds: float | None = None,
) -> float:
    """Per-call timeout beats the tool default; the runner default applies last."""
    if timeout_seconds is not None:
        return timeout_seconds
    if default_timeout_seconds is not None:
        return default_timeout_seconds
    return DEFAULT_TIMEOUT_SECONDS


def build_policy(
    cancel: CancelToken | None,
    *,
    timeout_seconds: float | None = None,
    default_timeout_seconds: float | None = None,
    stdin_data: str | None = None,
    max_output_bytes: int | None = None,
) -> ExecutionPolicy:
    """Merge per-call overrides and a tool default into one policy.

    The cancel token is passed through untouched. Raises pydantic's
    ValidationError if the resulting timeout or cap is not positive.
    """
    return ExecutionPolicy(
        timeout_seconds=resolve_timeout(timeout_seconds, default_timeout_seconds),
        max_output_bytes=max_output_bytes if max_output_bytes is not None else DEFAULT_MAX_OUTPUT_BYTES,
        cancel=cancel,
        stdin_data=stdin_data,
    )
