"""Browse and search a SecLists checkout without leaving its root."""

from __future__ import annotations

from pathlib import Path

from scanexec.sanitize import sanitize_path

MAX_SEARCH_RESULTS = 50
SKIP_DIRS = {".git", "node_modules"}


def format_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def find_files(
    directory: Path, pattern: str, base: Path, max_results: int = MAX_SEARCH_RESULTS
) -> list[str]:
    """Depth-first search for file names containing pattern (case-insensitive)."""
    results: list[str] = []
    needle = pattern.lower()

    def walk(current: Path) -> None:
        for entry in sorted(current.iterdir(), key=lambda p: p.name):
            if len(results) >= max_results:
                return
            if entry.is_dir():
                if entry.name not in SKIP_DIRS:
                    walk(entry)
            elif needle in entry.name.lower():
                results.append(str(entry.relative_to(base)))

    walk(directory)
    return results


def list_wordlists(base: str, path: str = "", pattern: str | None = None) -> str:
    """Describe the wordlists under base/path, or search them when pattern is set.

    Raises PathTraversal if path escapes base.
    """
    base_path = Path(base)
    target = Path(sanitize_path(path, base)) if path else base_path

    if pattern:
        matches = find_files(target, pattern, base_path)
        header = f"Search results for '{pattern}'"
        if path:
            header += f" in {path}"
        lines = [f"  {base_path / m}" for m in matches]
        return f"{header} ({len(matches)} matches):\n\n" + "\n".join(lines)

    if not target.is_dir():
        return f"'{path}' is a file ({format_size(target.stat().st_size)}). Full path: {target}"

    dirs: list[str] = []
    files: list[tuple[str, int]] = []
    for entry in target.iterdir():
        if entry.name.startswith("."):
            continue
        if entry.is_dir():
            dirs.append(entry.name + "/")
        else:
            files.append((entry.name, entry.stat().st_size))
    dirs.sort()
    files.sort()

    output = f"Contents of {path}:\n\n" if path else "SecLists categories:\n\n"
    if dirs:
        output += "Directories:\n" + "\n".join(f"  {d}" for d in dirs) + "\n\n"
    if files:
        output += "Files:\n" + "\n".join(f"  {name} ({format_size(size)})" for name, size in files)
    if not dirs and not files:
        output += "(empty)"
    return output
