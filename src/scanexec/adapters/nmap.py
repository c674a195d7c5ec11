"""Nmap port scanner adapter."""

from __future__ import annotations

from scanexec.adapters.base import ToolAdapter, ToolParams


class NmapAdapter(ToolAdapter):
    name = "nmap"
    include_stderr = True

    def build_args(self, params: ToolParams) -> list[str]:
        if not params.targets:
            raise ValueError("nmap requires at least one target")
        return [*params.args, *params.targets]
