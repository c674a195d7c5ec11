"""TOML configuration loader."""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from scanexec.errors import ConfigError
from scanexec.models import DEFAULT_MAX_OUTPUT_BYTES

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATHS = [
    Path("scanexec.toml"),
    Path.home() / ".config" / "scanexec" / "config.toml",
    Path("/etc/scanexec/config.toml"),
]


class ExecConfig(BaseModel):
    """Configuration built once at startup and handed to every adapter."""

    model_config = ConfigDict(extra="forbid")

    max_output_bytes: int = Field(
        default=DEFAULT_MAX_OUTPUT_BYTES,
        gt=0,
        description="Combined stdout+stderr budget per invocation",
    )
    wordlists_path: str = Field(default="/opt/seclists", description="SecLists root")
    binaries: dict[str, str] = Field(
        default_factory=dict,
        description="Tool name -> executable path (defaults to the tool name on PATH)",
    )
    tool_timeouts: dict[str, float] = Field(
        default_factory=dict,
        description="Tool name -> default timeout in seconds",
    )
    log_level: str | None = Field(default=None, description="Overridden by --log-level")

    def binary_for(self, tool: str) -> str:
        return self.binaries.get(tool, tool)


def find_config(config_path: Path | None = None) -> Path | None:
    """Return the explicit path if it exists, else the first default that does."""
    if config_path is not None:
        if not config_path.exists():
            raise ConfigError(str(config_path), "file not found")
        return config_path
    return next((path for path in DEFAULT_CONFIG_PATHS if path.exists()), None)


def load_config(config_path: Path | None = None) -> ExecConfig:
    """Load the [exec] table of a TOML config, or defaults if there is none.

    Raises ConfigError naming the file on unreadable TOML, unknown keys or
    invalid values.
    """
    path = find_config(config_path)
    if path is None:
        return ExecConfig()
    logger.debug("loading config from %s", path)

    try:
        data = tomllib.loads(path.read_text())
    except OSError as exc:
        raise ConfigError(str(path), exc.strerror or str(exc)) from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(str(path), str(exc)) from exc

    exec_data = data.get("exec", {})
    if not isinstance(exec_data, dict):
        raise ConfigError(str(path), "[exec] must be a table")
    try:
        return ExecConfig(**exec_data)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        raise ConfigError(str(path), problems) from exc
