"""Tests for tool adapters."""

import sys

import pytest

from scanexec.adapters import ADAPTER_CLASSES, get_adapter, list_available_adapters
from scanexec.adapters.base import ToolParams
from scanexec.adapters.ffuf import FfufAdapter
from scanexec.adapters.nmap import NmapAdapter
from scanexec.adapters.nuclei import NucleiAdapter
from scanexec.adapters.uro import UroAdapter
from scanexec.config import ExecConfig
from scanexec.errors import ExecutionCancelled, ExecutionTimeout, PathTraversal, ToolFailure
from scanexec.models import CancelToken


def _python_config(**kwargs) -> ExecConfig:
    binaries = {name: sys.executable for name in ADAPTER_CLASSES}
    return ExecConfig(binaries=binaries, **kwargs)


def test_registry():
    assert set(ADAPTER_CLASSES) == {"nmap", "nuclei", "ffuf", "uro"}
    assert isinstance(get_adapter("nmap"), NmapAdapter)


def test_available_with_binary_override():
    assert set(list_available_adapters(_python_config())) == set(ADAPTER_CLASSES)


def test_unavailable_binary():
    config = ExecConfig(binaries={"nmap": "nonexistent-binary-abc123"})
    assert NmapAdapter(config).is_available() is False


def test_nmap_args():
    params = ToolParams(targets=["10.0.0.1"], args=["-sV", "-p", "80"])
    assert NmapAdapter().build_args(params) == ["-sV", "-p", "80", "10.0.0.1"]


def test_nmap_requires_target():
    with pytest.raises(ValueError):
        NmapAdapter().build_args(ToolParams())


def test_nuclei_args_skip_non_http_targets():
    params = ToolParams(
        targets=["https://a.example", "ftp://b.example", "c.example", "http://d.example"],
        args=["-severity", "high"],
    )
    assert NucleiAdapter().build_args(params) == [
        "-u", "https://a.example", "-u", "http://d.example", "-severity", "high",
    ]


def test_nuclei_requires_url():
    with pytest.raises(ValueError):
        NucleiAdapter().build_args(ToolParams(targets=["not a url"]))


def test_ffuf_wordlist_resolved_inside_root(tmp_path):
    adapter = FfufAdapter(ExecConfig(wordlists_path=str(tmp_path)))
    params = ToolParams(
        targets=["https://example.com/FUZZ"],
        wordlist="Discovery/Web-Content/common.txt",
        args=["-mc", "200"],
    )
    assert adapter.build_args(params) == [
        "-u", "https://example.com/FUZZ",
        "-w", str(tmp_path / "Discovery" / "Web-Content" / "common.txt"),
        "-mc", "200",
    ]


def test_ffuf_wordlist_traversal_rejected(tmp_path):
    adapter = FfufAdapter(ExecConfig(wordlists_path=str(tmp_path)))
    params = ToolParams(targets=["https://example.com/FUZZ"], wordlist="../../etc/passwd")
    with pytest.raises(PathTraversal):
        adapter.build_args(params)


def test_uro_stdin():
    params = ToolParams(targets=["https://a.com", "https://b.com"])
    adapter = UroAdapter()
    assert adapter.build_args(params) == []
    assert adapter.stdin_data(params) == "https://a.com\nhttps://b.com\n"


@pytest.mark.asyncio
async def test_run_success():
    adapter = NmapAdapter(_python_config())
    params = ToolParams(
        targets=["10.0.0.1"],
        args=["-c", "import sys; print('scanned', sys.argv[1])"],
    )
    assert (await adapter.run(params)).strip() == "scanned 10.0.0.1"


@pytest.mark.asyncio
async def test_run_feeds_stdin():
    adapter = UroAdapter(_python_config())
    params = ToolParams(
        targets=["https://a.com", "https://b.com"],
        args=["-c", "import sys; sys.stdout.write(sys.stdin.read().upper())"],
    )
    assert await adapter.run(params) == "HTTPS://A.COM\nHTTPS://B.COM\n"


@pytest.mark.asyncio
async def test_run_tool_failure():
    adapter = NmapAdapter(_python_config())
    params = ToolParams(
        targets=["x"],
        args=["-c", "import sys; sys.stderr.write('bad flag'); sys.exit(2)"],
    )
    with pytest.raises(ToolFailure, match="nmap exited with code 2") as exc_info:
        await adapter.run(params)
    assert "bad flag" in str(exc_info.value)


@pytest.mark.asyncio
async def test_run_uses_configured_tool_timeout():
    adapter = NmapAdapter(_python_config(tool_timeouts={"nmap": 0.3}))
    params = ToolParams(targets=["x"], args=["-c", "import time; time.sleep(30)"])
    with pytest.raises(ExecutionTimeout) as exc_info:
        await adapter.run(params)
    assert exc_info.value.timeout_seconds == 0.3


@pytest.mark.asyncio
async def test_run_call_timeout_beats_tool_timeout():
    adapter = NmapAdapter(_python_config(tool_timeouts={"nmap": 60}))
    params = ToolParams(
        targets=["x"], args=["-c", "import time; time.sleep(30)"], timeout_seconds=0.3
    )
    with pytest.raises(ExecutionTimeout) as exc_info:
        await adapter.run(params)
    assert exc_info.value.timeout_seconds == 0.3


@pytest.mark.asyncio
async def test_run_cancelled():
    token = CancelToken()
    token.cancel()
    adapter = NmapAdapter(_python_config())
    with pytest.raises(ExecutionCancelled):
        await adapter.run(ToolParams(targets=["x"], args=["-c", "pass"]), token)
