"""Error taxonomy for tool execution."""

from __future__ import annotations


class ScanExecError(Exception):
    """Base class for every failure surfaced by the execution layer."""


class StartFailure(ScanExecError):
    """The executable could not be started (missing, not executable, bad cwd)."""


class ExecutionTimeout(ScanExecError):
    def __init__(self, timeout_seconds: float) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Process timed out after {timeout_seconds:g}s")


class OutputCapExceeded(ScanExecError):
    def __init__(self, max_output_bytes: int) -> None:
        self.max_output_bytes = max_output_bytes
        super().__init__(f"Output exceeded {max_output_bytes} bytes limit")


class ExecutionCancelled(ScanExecError):
    """The caller withdrew the request. Not a tool malfunction."""

    def __init__(self, message: str = "Execution cancelled") -> None:
        super().__init__(message)


class ToolFailure(ScanExecError):
    """The tool ran to completion but exited non-zero."""

    def __init__(self, tool: str, exit_code: int, detail: str) -> None:
        self.tool = tool
        self.exit_code = exit_code
        self.detail = detail
        super().__init__(f"{tool} exited with code {exit_code}:\n{detail}")


class PathTraversal(ScanExecError, ValueError):
    def __init__(self, path: str, base: str) -> None:
        self.path = path
        self.base = base
        super().__init__("Path traversal detected - access denied")


class ConfigError(ScanExecError):
    """A config file could not be read, parsed or validated."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        super().__init__(f"Invalid config {path}: {reason}")
