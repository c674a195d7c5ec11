"""Adapter registry."""

from __future__ import annotations

from scanexec.adapters.base import ToolAdapter, ToolParams
from scanexec.adapters.ffuf import FfufAdapter
from scanexec.adapters.nmap import NmapAdapter
from scanexec.adapters.nuclei import NucleiAdapter
from scanexec.adapters.uro import UroAdapter
from scanexec.config import ExecConfig

ADAPTER_CLASSES: dict[str, type[ToolAdapter]] = {
    "nmap": NmapAdapter,
    "nuclei": NucleiAdapter,
    "ffuf": FfufAdapter,
    "uro": UroAdapter,
}


def list_available_adapters(config: ExecConfig | None = None) -> list[str]:
    return [name for name, cls in ADAPTER_CLASSES.items() if cls(config).is_available()]


def get_adapter(name: str, config: ExecConfig | None = None) -> ToolAdapter:
    cls = ADAPTER_CLASSES[name]
    return cls(config)


__all__ = ["ADAPTER_CLASSES", "ToolAdapter", "ToolParams", "get_adapter", "list_available_adapters"]
