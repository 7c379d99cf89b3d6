"""Tokenizer for ``{placeholder}`` template patterns."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Union

from tidyname.errors import TemplateParseError

from .sources import is_known_placeholder


@dataclass(frozen=True)
class LiteralToken:
    text: str


@dataclass(frozen=True)
class PlaceholderToken:
    name: str
    position: int


Token = Union[LiteralToken, PlaceholderToken]


@dataclass(frozen=True)
class ParsedTemplate:
    """Tokens of a pattern plus its unique placeholder names in order."""

    pattern: str
    tokens: List[Token] = field(default_factory=list)
    placeholders: List[str] = field(default_factory=list)


def parse_template(pattern: str) -> ParsedTemplate:
    """Split ``pattern`` into literal and placeholder tokens.

    ``{{`` and ``}}`` produce literal braces. Placeholder names are trimmed.

    Args:
        pattern: Template pattern such as ``{year}-{original}``.

    Returns:
        ParsedTemplate: Parsed tokens and unique placeholder names.

    Raises:
        TemplateParseError: On an unclosed brace, a stray ``}``, or an empty
            ``{}`` placeholder.
    """

    tokens: List[Token] = []
    placeholders: List[str] = []
    literal: List[str] = []
    index = 0
    length = len(pattern)

    def flush() -> None:
        if literal:
            tokens.append(LiteralToken("".join(literal)))
            literal.clear()

    while index < length:
        char = pattern[index]
        pair = pattern[index : index + 2]

        if pair in ("{{", "}}"):
            literal.append(char)
            index += 2
            continue

        if char == "}":
            raise TemplateParseError(
                f"Unexpected closing brace at position {index}", position=index
            )

        if char == "{":
            close = pattern.find("}", index + 1)
            nested = pattern.find("{", index + 1)
            if close == -1 or (nested != -1 and nested < close):
                raise TemplateParseError(f"Unclosed brace at position {index}", position=index)
            name = pattern[index + 1 : close].strip()
            if not name:
                raise TemplateParseError(
                    "Empty placeholder {} is not allowed", position=index
                )
            flush()
            tokens.append(PlaceholderToken(name=name, position=index))
            if name not in placeholders:
                placeholders.append(name)
            index = close + 1
            continue

        literal.append(char)
        index += 1

    flush()
    return ParsedTemplate(pattern=pattern, tokens=tokens, placeholders=placeholders)


def extract_placeholders(pattern: str) -> List[str]:
    """Return unique placeholder names, or an empty list for malformed patterns."""
    try:
        return parse_template(pattern).placeholders
    except TemplateParseError:
        return []


def validate_template(pattern: str) -> List[str]:
    """Return warnings for ``pattern``; malformed patterns raise.

    Raises:
        TemplateParseError: If the pattern cannot be parsed.
    """

    if not pattern.strip():
        raise TemplateParseError("Template pattern cannot be empty.", position=0)
    parsed = parse_template(pattern)
    warnings = [
        f"Unknown placeholder {{{name}}} will only resolve through a fallback."
        for name in parsed.placeholders
        if not is_known_placeholder(name)
    ]
    if not parsed.placeholders:
        warnings.append("Template has no placeholders; every file would get the same name.")
    return warnings


__all__ = [
    "LiteralToken",
    "PlaceholderToken",
    "Token",
    "ParsedTemplate",
    "parse_template",
    "extract_placeholders",
    "validate_template",
]
