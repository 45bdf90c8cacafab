"""Shared utilities for archguard."""

from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path


def to_posix(file_path: str | Path) -> str:
    """Normalize a relative path to POSIX form without a leading ``./``.

    Examples:
        >>> to_posix("src//routes/users.ts")
        'src/routes/users.ts'
        >>> to_posix("./README.md")
        'README.md'
    """
    path_str = file_path.as_posix() if isinstance(file_path, Path) else str(file_path)
    parts = [
        part for part in path_str.replace("\\", "/").split("/") if part and part != "."
    ]
    return "/".join(parts)


@lru_cache(maxsize=512)
def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Compile a path glob into an anchored regular expression.

    ``*`` and ``?`` never cross a ``/``; ``**`` spans zero or more whole
    directories (``src/**/*.ts`` matches ``src/a.ts`` and ``src/x/y/a.ts``).
    """
    pattern = to_posix(pattern)
    out: list[str] = []
    i = 0
    n = len(pattern)
    while i < n:
        char = pattern[i]
        if char == "*":
            if pattern.startswith("**", i):
                i += 2
                if i < n and pattern[i] == "/":
                    # "**/" may match nothing at all.
                    i += 1
                    out.append("(?:.*/)?")
                else:
                    out.append(".*")
                continue
            out.append("[^/]*")
        elif char == "?":
            out.append("[^/]")
        elif char == "[":
            end = pattern.find("]", i + 1)
            if end == -1:
                out.append(re.escape(char))
            else:
                body = pattern[i + 1 : end]
                if body.startswith("!"):
                    body = "^" + body[1:]
                out.append(f"[{body}]")
                i = end
        else:
            out.append(re.escape(char))
        i += 1
    return re.compile("".join(out) + r"\Z")


def match_glob(path: str, pattern: str) -> bool:
    """Return True when a relative POSIX path matches a glob.

    Patterns without a ``/`` also match against the basename, so an exception
    such as ``.env.example`` covers the file at any depth.
    """
    rel_path = to_posix(path)
    if glob_to_regex(pattern).match(rel_path):
        return True
    if "/" not in to_posix(pattern):
        basename = rel_path.rsplit("/", 1)[-1]
        return glob_to_regex(pattern).match(basename) is not None
    return False


def match_any(path: str, patterns: tuple[str, ...] | list[str]) -> bool:
    return any(match_glob(path, pattern) for pattern in patterns)
