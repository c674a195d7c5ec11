"""Turn a finished process into the text every adapter returns."""

from __future__ import annotations

from scanexec.errors import ToolFailure
from scanexec.models import ExecutionResult
from scanexec.sanitize import strip_ansi as remove_ansi


def format_tool_result(
    result: ExecutionResult,
    tool_name: str,
    *,
    include_stderr: bool = False,
    strip_ansi: bool = False,
    empty_message: str | None = None,
) -> str:
    """Convert an ExecutionResult into a single block of success text.

    - Raises ToolFailure on a non-zero exit code, with stderr (or stdout)
      as the detail.
    - Composes stdout, plus stderr when include_stderr is set, falling back
      to stderr when stdout is empty.
    - Strips ANSI codes from the composed text when strip_ansi is set.
    - Returns empty_message (or a default) when there is nothing to show.

    Results that did not exit on their own raise their runner error first.
    """
    result.raise_for_status()

    if result.exit_code != 0:
        detail = result.stderr or result.stdout or "Unknown error"
        if strip_ansi:
            detail = remove_ansi(detail)
        raise ToolFailure(tool_name, result.exit_code if result.exit_code is not None else 1, detail)

    output = result.stdout
    if include_stderr and result.stderr:
        output += result.stderr
    elif not output and result.stderr:
        output = result.stderr

    if strip_ansi:
        output = remove_ansi(output)

    return output or empty_message or f"No output from {tool_name}."
