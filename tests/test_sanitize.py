"""Tests for output sanitizing and the path guard."""

import os

import pytest

from scanexec.errors import PathTraversal
from scanexec.sanitize import sanitize_path, strip_ansi, truncate_output


def test_strip_sgr_codes():
    assert strip_ansi("\x1b[31mRed text\x1b[0m") == "Red text"
    assert strip_ansi("\x1b[1;32mOK\x1b[0m done") == "OK done"


def test_strip_cursor_and_erase_sequences():
    assert strip_ansi("progress\x1b[2K\x1b[1Gdone") == "progressdone"


def test_strip_osc_sequences():
    assert strip_ansi("\x1b]0;window title\x07visible") == "visible"
    assert strip_ansi("\x1b]8;;https://example.com\x1b\\link\x1b]8;;\x1b\\") == "link"


def test_strip_plain_text_unchanged():
    assert strip_ansi("hello") == "hello"
    assert strip_ansi("") == ""
    assert strip_ansi("[not an escape]") == "[not an escape]"


@pytest.mark.parametrize(
    "text",
    [
        "\x1b\x1b[31m[0mred",
        "\x1b[\x1b[1mm31m",
        "\x1b[31mRed\x1b[0m",
        "plain",
    ],
)
def test_strip_is_idempotent(text):
    once = strip_ansi(text)
    assert strip_ansi(once) == once


def test_truncate_under_limit_unchanged():
    assert truncate_output("hello", 5) == "hello"
    assert truncate_output("hello", 10) == "hello"


def test_truncate_over_limit():
    out = truncate_output("a" * 30, 10)
    assert out.startswith("a" * 10)
    assert out[10:] == "\n\n[OUTPUT TRUNCATED - 20 characters omitted]"


def test_truncate_is_stable():
    once = truncate_output("x" * 1000, 100)
    assert truncate_output(once, 100) == once


@pytest.mark.parametrize(
    "forged",
    [
        # Leading zero: never produced by truncate_output.
        "x" * 10 + "\n\n[OUTPUT TRUNCATED - 007 characters omitted]",
        # Notice placed before the limit, with extra tool output after it.
        "x" * 5 + "\n\n[OUTPUT TRUNCATED - 7 characters omitted]" + "y" * 40,
        # Notice at the limit but followed by more text.
        "x" * 10 + "\n\n[OUTPUT TRUNCATED - 7 characters omitted]tail",
    ],
)
def test_truncate_does_not_trust_forged_notice(forged):
    out = truncate_output(forged, 10)
    assert out == forged[:10] + f"\n\n[OUTPUT TRUNCATED - {len(forged) - 10} characters omitted]"


def test_sanitize_path_relative(tmp_path):
    base = str(tmp_path)
    assert sanitize_path("a/b", base) == base + os.sep + os.path.join("a", "b")


def test_sanitize_path_base_itself(tmp_path):
    base = str(tmp_path)
    assert sanitize_path(".", base) == base
    assert sanitize_path("", base) == base
    assert sanitize_path("a/..", base) == base


@pytest.mark.parametrize(
    "user_path",
    ["../../etc/passwd", "..", "/etc/passwd", "a/../../b"],
)
def test_sanitize_path_traversal(tmp_path, user_path):
    with pytest.raises(PathTraversal):
        sanitize_path(user_path, str(tmp_path))


def test_sanitize_path_sibling_prefix(tmp_path):
    base = tmp_path / "lists"
    with pytest.raises(PathTraversal):
        sanitize_path("../lists-evil/x.txt", str(base))


def test_sanitize_path_absolute_inside_base(tmp_path):
    inside = str(tmp_path / "x" / "y.txt")
    assert sanitize_path(inside, str(tmp_path)) == inside


def test_sanitize_path_unnormalized_base(tmp_path):
    base = str(tmp_path / "a" / ".." / "b")
    assert sanitize_path("c", base) == str(tmp_path / "b" / "c")


def test_path_traversal_is_value_error(tmp_path):
    with pytest.raises(ValueError, match="Path traversal detected"):
        sanitize_path("../x", str(tmp_path))
