"""Glob pattern compilation with brace expansion and character classes."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable, List, Optional

from tidyname.errors import InvalidPatternError

LOGGER = logging.getLogger(__name__)

_CLASS_SPECIALS = frozenset("\\]^[&~|")
MAX_BRACE_EXPANSIONS = 1024


@dataclass(frozen=True)
class GlobMatcher:
    """Compiled glob pattern.

    Attributes:
        pattern: Source glob pattern.
        case_sensitive: Whether matching respects letter case.
        regex: Compiled expression, or None when the pattern could not compile.
    """

    pattern: str
    case_sensitive: bool
    regex: Optional[re.Pattern[str]]

    def test(self, name: str) -> bool:
        """Return True when ``name`` matches the whole pattern."""
        if self.regex is None:
            return False
        return self.regex.fullmatch(name) is not None


def expand_braces(pattern: str, *, limit: int = MAX_BRACE_EXPANSIONS) -> List[str]:
    """Expand the brace groups of ``pattern`` into plain glob patterns.

    The first top-level group is split on top-level commas and each
    alternative is expanded recursively, so ``{a,b}.{x,y}`` yields four
    patterns. Unbalanced braces are left untouched.

    Args:
        pattern: Glob pattern possibly containing ``{a,b}`` groups.
        limit: Maximum number of expanded patterns.

    Returns:
        List[str]: Expanded patterns in left-to-right order.

    Raises:
        InvalidPatternError: If the expansion would exceed ``limit`` patterns.
    """

    start = -1
    end = -1
    depth = 0
    index = 0
    while index < len(pattern):
        char = pattern[index]
        if char == "\\":
            index += 2
            continue
        if char == "{":
            if depth == 0:
                start = index
            depth += 1
        elif char == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                end = index
                break
        index += 1

    if start == -1 or end == -1:
        return [pattern]

    prefix = pattern[:start]
    suffix = pattern[end + 1 :]
    alternatives: List[str] = []
    current: List[str] = []
    depth = 0
    index = start + 1
    while index < end:
        char = pattern[index]
        if char == "\\" and index + 1 < end:
            current.append(pattern[index : index + 2])
            index += 2
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        if char == "," and depth == 0:
            alternatives.append("".join(current))
            current = []
        else:
            current.append(char)
        index += 1
    alternatives.append("".join(current))

    expanded: List[str] = []
    for alternative in alternatives:
        expanded.extend(expand_braces(prefix + alternative + suffix, limit=limit))
        if len(expanded) > limit:
            raise InvalidPatternError(
                f"Brace expansion of {pattern!r} exceeds {limit} patterns.",
                errors=[f"Brace expansion yields more than {limit} patterns."],
            )
    return expanded


def glob_to_regex(pattern: str) -> str:
    """Translate a brace-free glob pattern into a regular expression body."""
    parts: List[str] = []
    index = 0
    length = len(pattern)
    while index < length:
        char = pattern[index]

        if char == "\\" and index + 1 < length:
            parts.append(re.escape(pattern[index + 1]))
            index += 2
            continue

        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        elif char == "[":
            translated, consumed = _translate_class(pattern, index)
            if translated is None:
                parts.append(re.escape(char))
            else:
                parts.append(translated)
                index = consumed
                continue
        else:
            parts.append(re.escape(char))
        index += 1

    return "".join(parts)


def _translate_class(pattern: str, start: int) -> tuple[Optional[str], int]:
    """Translate the character class opening at ``start``.

    Returns the regex class and the index just past the closing bracket, or
    ``(None, start)`` when the class is never closed.
    """

    index = start + 1
    negated = False
    if index < len(pattern) and pattern[index] in "!^":
        negated = True
        index += 1

    members: List[str] = []
    first = True
    while index < len(pattern):
        char = pattern[index]
        if char == "]" and not first:
            body = "".join(members)
            return (f"[^{body}]" if negated else f"[{body}]"), index + 1
        if char == "\\" and index + 1 < len(pattern):
            members.append(re.escape(pattern[index + 1]))
            index += 2
            first = False
            continue
        members.append("\\" + char if char in _CLASS_SPECIALS else char)
        first = False
        index += 1

    return None, start


@lru_cache(maxsize=512)
def compile_glob(pattern: str, case_sensitive: bool = False) -> GlobMatcher:
    """Compile ``pattern`` into a reusable matcher.

    Matching is anchored at both ends and case-insensitive unless
    ``case_sensitive`` is set. A pattern that cannot be compiled produces a
    matcher that matches nothing, as does one whose braces expand
    past ``MAX_BRACE_EXPANSIONS`` alternatives.

    Args:
        pattern: Glob pattern supporting ``* ? [..] [!..] {a,b}`` and escapes.
        case_sensitive: Whether to respect letter case.

    Returns:
        GlobMatcher: Matcher exposing ``test(name)``.
    """

    try:
        expansions = expand_braces(pattern)
    except InvalidPatternError as exc:
        LOGGER.debug("Glob pattern %r matches nothing: %s", pattern, exc)
        return GlobMatcher(pattern=pattern, case_sensitive=case_sensitive, regex=None)
    bodies = [glob_to_regex(expanded) for expanded in expansions]
    combined = bodies[0] if len(bodies) == 1 else "(?:" + "|".join(bodies) + ")"
    flags = re.DOTALL if case_sensitive else re.DOTALL | re.IGNORECASE
    try:
        regex: Optional[re.Pattern[str]] = re.compile(combined, flags)
    except re.error as exc:
        LOGGER.debug("Glob pattern %r could not be compiled: %s", pattern, exc)
        regex = None
    return GlobMatcher(pattern=pattern, case_sensitive=case_sensitive, regex=regex)


def match_glob(pattern: str, name: str, *, case_sensitive: bool = False) -> bool:
    """Return True when ``name`` matches ``pattern``."""
    return compile_glob(pattern, case_sensitive).test(name)


def filter_by_glob(
    pattern: str, names: Iterable[str], *, case_sensitive: bool = False
) -> List[str]:
    """Return the names matching ``pattern``, preserving input order."""
    matcher = compile_glob(pattern, case_sensitive)
    return [name for name in names if matcher.test(name)]


def validate_glob_pattern(pattern: str) -> List[str]:
    """Return human-readable problems found in ``pattern``.

    Reports empty patterns, empty ``[]`` classes, empty brace alternatives,
    unclosed brackets or braces, and brace groups that expand past
    ``MAX_BRACE_EXPANSIONS`` patterns. An empty list means the pattern is valid.
    """

    if not pattern or not pattern.strip():
        return ["Pattern cannot be empty or whitespace-only."]

    problems: List[str] = []
    bracket_start: Optional[int] = None
    brace_stack: List[int] = []
    index = 0
    while index < len(pattern):
        char = pattern[index]
        if char == "\\" and index + 1 < len(pattern):
            index += 2
            continue
        if bracket_start is not None:
            if char == "]":
                if index == bracket_start + 1:
                    problems.append(
                        f"Empty character class [] is not allowed (position {bracket_start})."
                    )
                bracket_start = None
        elif char == "[":
            bracket_start = index
        elif char == "{":
            brace_stack.append(index)
        elif char == "}":
            if brace_stack:
                brace_stack.pop()
        elif char == "," and brace_stack and pattern[index - 1] in "{,":
            problems.append(
                f"Empty alternative in brace expansion is not allowed (position {index})."
            )
        index += 1

    if bracket_start is not None:
        problems.append(f"Unclosed character class [ (position {bracket_start}).")
    if brace_stack:
        problems.append(f"Unclosed brace {{ (position {brace_stack[0]}).")
    else:
        try:
            expand_braces(pattern)
        except InvalidPatternError as exc:
            problems.extend(exc.errors)
    return problems


__all__ = [
    "MAX_BRACE_EXPANSIONS",
    "GlobMatcher",
    "expand_braces",
    "glob_to_regex",
    "compile_glob",
    "match_glob",
    "filter_by_glob",
    "validate_glob_pattern",
]
