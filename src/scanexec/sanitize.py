"""Output sanitizing and path guarding."""

from __future__ import annotations

import os
import re

from scanexec.errors import PathTraversal

# OSC (title, hyperlinks) terminated by BEL or ST, then CSI/SGR and the
# single-character escapes (charset selection, keypad modes, ...).
ANSI_RE = re.compile(
    r"\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)"
    r"|[\x1b\x9b][\[()#;?]*(?:[0-9]{1,4}(?:;[0-9]{0,4})*)?[0-9A-ORZcf-nqry=><~]"
)

TRUNCATION_NOTICE = "\n\n[OUTPUT TRUNCATED - {omitted} characters omitted]"
_NOTICE_RE = re.compile(r"\n\n\[OUTPUT TRUNCATED - ([1-9][0-9]*) characters omitted\]")


def strip_ansi(text: str) -> str:
    """Remove terminal escape sequences, leaving the visible text."""
    # Removing one sequence can splice the pieces of another together,
    # so repeat until nothing matches.
    while True:
        stripped = ANSI_RE.sub("", text)
        if stripped == text:
            return stripped
        text = stripped


def _is_truncated(text: str, max_length: int) -> bool:
    """True when text is exactly what truncate_output produces at max_length."""
    match = _NOTICE_RE.fullmatch(text, max_length)
    if match is None:
        return False
    notice = TRUNCATION_NOTICE.format(omitted=int(match.group(1)))
    return len(text) == max_length + len(notice)


def truncate_output(text: str, max_length: int) -> str:
    """Cut text to max_length characters plus a notice of how much was dropped."""
    if len(text) <= max_length:
        return text
    if _is_truncated(text, max_length):
        return text
    omitted = len(text) - max_length
    return text[:max_length] + TRUNCATION_NOTICE.format(omitted=omitted)


def sanitize_path(user_path: str, allowed_base: str) -> str:
    """Resolve user_path against allowed_base, refusing anything outside it.

    Both paths are normalized lexically (symlinks are not followed). Returns
    the absolute path; raises PathTraversal when it escapes the base.
    """
    resolved_base = os.path.abspath(os.path.normpath(allowed_base))
    resolved = os.path.abspath(os.path.join(resolved_base, os.path.normpath(user_path or ".")))

    prefix = resolved_base if resolved_base.endswith(os.sep) else resolved_base + os.sep
    if resolved != resolved_base and not resolved.startswith(prefix):
        raise PathTraversal(user_path, resolved_base)
    return resolved
