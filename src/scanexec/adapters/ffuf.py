"""ffuf web fuzzer adapter."""

from __future__ import annotations

from scanexec.adapters.base import ToolAdapter, ToolParams
from scanexec.sanitize import sanitize_path


class FfufAdapter(ToolAdapter):
    name = "ffuf"
    include_stderr = True

    def build_args(self, params: ToolParams) -> list[str]:
        if len(params.targets) != 1:
            raise ValueError("ffuf takes exactly one target URL (with FUZZ keyword)")

        args = ["-u", params.targets[0]]
        if params.wordlist:
            # Wordlists are only read from inside the SecLists root.
            args.extend(["-w", sanitize_path(params.wordlist, self.config.wordlists_path)])
        return [*args, *params.args]
