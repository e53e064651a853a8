"""Path glob matching for repository-relative POSIX paths.

Matching is segment aware: ``*``, ``?`` and ``[...]`` apply within a single
path segment, a ``**`` segment spans zero or more whole segments, and
``{a,b}`` alternatives are expanded before matching. Dot-prefixed segments
(``.github``) are ordinary names and match wildcards.
"""

from __future__ import annotations

from collections.abc import Iterable
from fnmatch import fnmatchcase
from functools import lru_cache


def normalize_path(path: str) -> str:
    """Convert a changed-file path to a normalized POSIX form."""
    normalized = path.strip().replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


def _split(value: str) -> tuple[str, ...]:
    return tuple(part for part in value.split("/") if part and part != ".")


def _find_brace_group(pattern: str) -> tuple[int, int] | None:
    depth = 0
    start = -1
    for index, char in enumerate(pattern):
        if char == "{":
            if depth == 0:
                start = index
            depth += 1
        elif char == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                return start, index
    return None


def _split_alternatives(body: str) -> list[str]:
    alternatives: list[str] = []
    depth = 0
    current = ""
    for char in body:
        if char == "," and depth == 0:
            alternatives.append(current)
            current = ""
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        current += char
    alternatives.append(current)
    return alternatives


@lru_cache(maxsize=1024)
def expand_braces(pattern: str) -> tuple[str, ...]:
    """Expand ``{a,b}`` alternatives; a group without a comma is literal."""
    group = _find_brace_group(pattern)
    if group is None:
        return (pattern,)

    start, end = group
    alternatives = _split_alternatives(pattern[start + 1 : end])
    prefix, suffix = pattern[:start], pattern[end + 1 :]

    if len(alternatives) < 2:
        # "{x}" carries no alternatives; keep it and expand the remainder
        return tuple(prefix + pattern[start : end + 1] + rest for rest in expand_braces(suffix))

    expanded: list[str] = []
    for alternative in alternatives:
        for candidate in expand_braces(prefix + alternative + suffix):
            if candidate not in expanded:
                expanded.append(candidate)
    return tuple(expanded)


@lru_cache(maxsize=1024)
def _compile(pattern: str) -> tuple[tuple[str, ...], ...]:
    return tuple(_split(normalize_path(candidate)) for candidate in expand_braces(pattern))


def _match_segments(path_parts: tuple[str, ...], pattern_parts: tuple[str, ...]) -> bool:
    if not pattern_parts:
        return not path_parts

    head, rest = pattern_parts[0], pattern_parts[1:]
    if head == "**":
        return any(_match_segments(path_parts[skip:], rest) for skip in range(len(path_parts) + 1))

    if not path_parts:
        return False
    return fnmatchcase(path_parts[0], head) and _match_segments(path_parts[1:], rest)


def matches_glob(path: str, pattern: str) -> bool:
    """Return True if ``path`` matches ``pattern``."""
    path_parts = _split(normalize_path(path))
    return any(_match_segments(path_parts, compiled) for compiled in _compile(pattern))


def matches_any_pattern(path: str, patterns: Iterable[str]) -> bool:
    """Return True if ``path`` matches at least one of ``patterns``."""
    return any(matches_glob(path, pattern) for pattern in patterns)


def filter_matching(paths: Iterable[str], patterns: Iterable[str]) -> list[str]:
    """Return the paths (in input order) that match any pattern."""
    pattern_list = list(patterns)
    return [path for path in paths if matches_any_pattern(path, pattern_list)]
