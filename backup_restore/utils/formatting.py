"""
Formatting Utilities

Human-readable sizes and directory tree rendering for logs and listings.
"""

from pathlib import Path
from typing import List, Union


def format_bytes(bytes_value: float) -> str:
    """
    Format bytes into human-readable string.

    Args:
        bytes_value: Number of bytes

    Returns:
        Formatted string (e.g., "1.50 MB")
    """
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if bytes_value < 1024.0:
            return f"{bytes_value:.2f} {unit}"
        bytes_value /= 1024.0
    return f"{bytes_value:.2f} PB"


def render_tree(root: Union[str, Path], max_depth: int = 3) -> List[str]:
    """
    Render a directory as an indented tree.

    Directories are listed before files at each level and names are suffixed
    with ``/``. Entries deeper than ``max_depth`` are not listed.

    Example:
        ```python
        for line in render_tree("/tmp/restore-20240201_120000_000000"):
            logger.debug(line)
        ```

    Returns:
        One line per entry, root first
    """
    root = Path(root)
    lines = [f"{root.name}/"]

    def walk(directory: Path, depth: int, prefix: str) -> None:
        if depth > max_depth:
            return
        try:
            entries = sorted(directory.iterdir(), key=lambda p: (not p.is_dir(), p.name))
        except OSError:
            return
        for i, entry in enumerate(entries):
            last = i == len(entries) - 1
            connector = "└── " if last else "├── "
            lines.append(f"{prefix}{connector}{entry.name}{'/' if entry.is_dir() else ''}")
            if entry.is_dir():
                walk(entry, depth + 1, prefix + ("    " if last else "│   "))

    if root.is_dir():
        walk(root, 1, "")
    return lines
