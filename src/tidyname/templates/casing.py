"""Case normalization for proposed filenames."""

from __future__ import annotations

import re
from enum import Enum
from typing import List

_SEPARATORS = re.compile(r"[ _\-.]+")
_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")


class CaseStyle(str, Enum):
    """Supported case styles for filename stems."""

    NONE = "none"
    LOWERCASE = "lowercase"
    UPPERCASE = "uppercase"
    CAPITALIZE = "capitalize"
    TITLE_CASE = "title-case"
    KEBAB_CASE = "kebab-case"
    SNAKE_CASE = "snake_case"
    CAMEL_CASE = "camelCase"
    PASCAL_CASE = "PascalCase"


def split_words(value: str) -> List[str]:
    """Split on separators and on camelCase or ACRONYMWord boundaries."""
    words: List[str] = []
    for chunk in _SEPARATORS.split(value):
        if not chunk:
            continue
        chunk = _CAMEL_BOUNDARY.sub(r"\1 \2", chunk)
        chunk = _ACRONYM_BOUNDARY.sub(r"\1 \2", chunk)
        words.extend(part for part in chunk.split(" ") if part)
    return words


def _capitalize(word: str) -> str:
    return word[:1].upper() + word[1:].lower()


def normalize_case(value: str, style: CaseStyle | str) -> str:
    """Return ``value`` rewritten in ``style``.

    ``lowercase`` and ``uppercase`` keep the existing separators; the word
    based styles rebuild the value from its words. ``none`` and empty input
    are returned unchanged.
    """

    style = CaseStyle(style)
    if style is CaseStyle.NONE or not value:
        return value
    if style is CaseStyle.LOWERCASE:
        return value.lower()
    if style is CaseStyle.UPPERCASE:
        return value.upper()
    if style is CaseStyle.CAPITALIZE:
        return _capitalize(value)

    words = split_words(value)
    if not words:
        return value
    if style is CaseStyle.TITLE_CASE:
        return "_".join(_capitalize(word) for word in words)
    if style is CaseStyle.KEBAB_CASE:
        return "-".join(word.lower() for word in words)
    if style is CaseStyle.SNAKE_CASE:
        return "_".join(word.lower() for word in words)
    if style is CaseStyle.CAMEL_CASE:
        return words[0].lower() + "".join(_capitalize(word) for word in words[1:])
    return "".join(_capitalize(word) for word in words)


__all__ = ["CaseStyle", "split_words", "normalize_case"]
