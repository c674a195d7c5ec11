"""CLI entry point using Typer."""

from __future__ import annotations

import asyncio
import contextlib
import json
import signal
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape

from scanexec import __version__
from scanexec.adapters import ToolAdapter, ToolParams
from scanexec.config import ExecConfig, load_config
from scanexec.errors import ConfigError, ExecutionCancelled, ScanExecError, ToolFailure
from scanexec.log import setup_logging
from scanexec.models import CancelToken
from scanexec.sanitize import truncate_output

app = typer.Typer(
    name="scanexec",
    help="Run external security tools with timeouts, output caps and cancellation.",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    if value:
        console.print(f"scanexec {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option("--version", "-V", callback=version_callback, is_eager=True),
    ] = None,
    log_level: Annotated[
        str | None, typer.Option("--log-level", help="DEBUG, INFO, WARNING, ERROR")
    ] = None,
) -> None:
    """scanexec: bounded execution of external security tools."""
    try:
        setup_logging(log_level)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--log-level") from exc
    ctx.obj = log_level


def _load(ctx: typer.Context, path: Path | None) -> ExecConfig:
    try:
        cfg = load_config(path)
        if cfg.log_level is not None:
            setup_logging(ctx.obj, cfg.log_level)
    except (ConfigError, ValueError) as exc:
        err_console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(2) from exc
    return cfg


@app.command(context_settings={"allow_extra_args": True, "ignore_unknown_options": True})
def run(
    ctx: typer.Context,
    tool: Annotated[str, typer.Argument(help="Tool name (see `scanexec status`)")],
    target: Annotated[
        list[str] | None, typer.Option("--target", "-t", help="Target host/IP/URL (repeatable)")
    ] = None,
    wordlist: Annotated[
        str | None, typer.Option("--wordlist", "-w", help="Wordlist path inside the SecLists root")
    ] = None,
    timeout: Annotated[
        float | None, typer.Option("--timeout", help="Maximum execution time in seconds")
    ] = None,
    max_chars: Annotated[
        int | None, typer.Option("--max-chars", help="Truncate output to this many characters")
    ] = None,
    config: Annotated[
        Path | None, typer.Option("--config", help="Config file path")
    ] = None,
) -> None:
    """Run one tool; arguments not recognised here are passed to the tool."""
    from scanexec.adapters import ADAPTER_CLASSES, get_adapter

    cfg = _load(ctx, config)
    if tool not in ADAPTER_CLASSES:
        err_console.print(f"[red]Unknown tool '{tool}'.[/red] Known: {', '.join(ADAPTER_CLASSES)}")
        raise typer.Exit(2)

    try:
        params = ToolParams(
            targets=target or [],
            args=list(ctx.args),
            wordlist=wordlist,
            timeout_seconds=timeout,
        )
        output = asyncio.run(_run_tool(get_adapter(tool, cfg), params))
    except ExecutionCancelled:
        err_console.print("[yellow]Cancelled.[/yellow]")
        raise typer.Exit(130)
    except ToolFailure as exc:
        err_console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(1)
    except (ScanExecError, ValueError) as exc:
        err_console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(2)

    if max_chars is not None:
        output = truncate_output(output, max_chars)
    console.print(output, markup=False, highlight=False)


async def _run_tool(adapter: ToolAdapter, params: ToolParams) -> str:
    cancel = CancelToken()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel.cancel)
    except (NotImplementedError, RuntimeError):
        pass  # No signal handlers outside the main thread or on Windows.

    try:
        return await adapter.run(params, cancel)
    finally:
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.remove_signal_handler(signal.SIGINT)


@app.command()
def status(
    ctx: typer.Context,
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help="Config file path")
    ] = None,
) -> None:
    """Show known tools and whether their binaries are installed."""
    from scanexec.adapters import ADAPTER_CLASSES

    cfg = _load(ctx, config)
    console.print(f"[bold]scanexec[/bold] v{__version__}\n")
    console.print("[bold]Tools:[/bold]")

    for name, cls in ADAPTER_CLASSES.items():
        adapter = cls(cfg)
        icon = "[green]✓[/green]" if adapter.is_available() else "[dim]✗[/dim]"
        console.print(f"  {icon} {name} [dim]({adapter.binary})[/dim]")


@app.command(name="config")
def config_show(
    ctx: typer.Context,
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help="Config file path")
    ] = None,
) -> None:
    """Show current configuration."""
    cfg = _load(ctx, config)
    console.print_json(json.dumps(cfg.model_dump(), default=str))


@app.command()
def wordlists(
    ctx: typer.Context,
    path: Annotated[str, typer.Argument(help="Path relative to the SecLists root")] = "",
    pattern: Annotated[
        str | None, typer.Option("--pattern", "-p", help="Case-insensitive filename filter")
    ] = None,
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help="Config file path")
    ] = None,
) -> None:
    """List or search wordlists under the configured SecLists root."""
    from scanexec.wordlists import list_wordlists

    cfg = _load(ctx, config)
    try:
        text = list_wordlists(cfg.wordlists_path, path, pattern)
    except (ScanExecError, OSError) as exc:
        err_console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(2)
    console.print(text, markup=False, highlight=False)
