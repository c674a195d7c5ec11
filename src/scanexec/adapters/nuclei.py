"""Nuclei template scanner adapter."""

from __future__ import annotations

from urllib.parse import urlparse

from scanexec.adapters.base import ToolAdapter, ToolParams


class NucleiAdapter(ToolAdapter):
    name = "nuclei"
    default_timeout_seconds = 600.0
    strip_ansi = True

    def build_args(self, params: ToolParams) -> list[str]:
        args: list[str] = []
        for target in params.targets:
            parsed = urlparse(target)
            if parsed.scheme not in {"http", "https"} or not parsed.netloc:
                continue
            args.extend(["-u", target])

        if not args:
            raise ValueError("nuclei requires at least one http(s) URL target")
        return [*args, *params.args]
