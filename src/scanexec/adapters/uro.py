"""uro URL deduplicator adapter. URLs are passed via stdin."""

from __future__ import annotations

from scanexec.adapters.base import ToolAdapter, ToolParams


class UroAdapter(ToolAdapter):
    name = "uro"
    strip_ansi = True

    def build_args(self, params: ToolParams) -> list[str]:
        if not params.targets:
            raise ValueError("uro requires at least one URL")
        return list(params.args)

    def stdin_data(self, params: ToolParams) -> str | None:
        return "\n".join(params.targets) + "\n"
