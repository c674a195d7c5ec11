"""Shared adapter plumbing: params schema, policy, spawn, normalize."""

from __future__ import annotations

import shutil

from pydantic import BaseModel, Field

from scanexec.config import ExecConfig
from scanexec.models import CancelToken
from scanexec.policy import build_policy
from scanexec.result import format_tool_result
from scanexec.runner import secure_spawn


class ToolParams(BaseModel):
    """Request accepted by every adapter."""

    targets: list[str] = Field(default_factory=list, description="Hosts, IPs or URLs")
    args: list[str] = Field(default_factory=list, description="Extra tool arguments")
    wordlist: str | None = Field(default=None, description="Wordlist path, relative to the SecLists root")
    timeout_seconds: float | None = Field(
        default=None, gt=0, description="Maximum execution time in seconds (default: 300)"
    )


class ToolAdapter:
    name: str = ""
    default_timeout_seconds: float | None = None
    include_stderr: bool = False
    strip_ansi: bool = False

    def __init__(self, config: ExecConfig | None = None) -> None:
        self.config = config or ExecConfig()

    @property
    def binary(self) -> str:
        return self.config.binary_for(self.name)

    def is_available(self) -> bool:
        return shutil.which(self.binary) is not None

    def build_args(self, params: ToolParams) -> list[str]:
        raise NotImplementedError

    def stdin_data(self, params: ToolParams) -> str | None:
        return None

    async def run(self, params: ToolParams, cancel: CancelToken | None = None) -> str:
        """Run the tool once and return its normalized output.

        Raises a ScanExecError subclass on any failure.
        """
        args = self.build_args(params)
        policy = build_policy(
            cancel,
            timeout_seconds=params.timeout_seconds,
            default_timeout_seconds=self.config.tool_timeouts.get(
                self.name, self.default_timeout_seconds
            ),
            stdin_data=self.stdin_data(params),
            max_output_bytes=self.config.max_output_bytes,
        )
        result = await secure_spawn(self.binary, args, policy=policy)
        return format_tool_result(
            result,
            self.name,
            include_stderr=self.include_stderr,
            strip_ansi=self.strip_ansi,
        )
