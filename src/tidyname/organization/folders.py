"""Folder pattern validation and resolution for organize mode."""

from __future__ import annotations

import logging
import re
from typing import List, Mapping, Optional

from tidyname.errors import InvalidPatternError, MissingMetadataError
from tidyname.files.models import UnifiedMetadata
from tidyname.templates.models import PlaceholderSource
from tidyname.templates.parser import LiteralToken, parse_template
from tidyname.templates.resolver import resolve_placeholders
from tidyname.templates.sanitize import WINDOWS_RESERVED_NAMES
from tidyname.templates.sources import ResolutionContext, is_known_placeholder

from .models import FolderPatternValidation, FolderResolution

LOGGER = logging.getLogger(__name__)

_INVALID_PATH_CHARS = re.compile(r'[<>:"|?*\x00-\x1f]')
_PLACEHOLDER = re.compile(r"\{[^{}]*\}")
_SLASH_RUN = re.compile(r"/+")
_RELATIVE_SEGMENTS = frozenset({".", ".."})


def normalize_folder_pattern(pattern: str) -> str:
    """Use forward slashes, collapse runs and drop leading/trailing separators."""
    normalized = _SLASH_RUN.sub("/", pattern.replace("\\", "/"))
    return normalized.strip("/")


def _brace_errors(pattern: str) -> List[str]:
    errors: List[str] = []
    depth = 0
    opened_at = -1
    for index, char in enumerate(pattern):
        if char == "{":
            if depth:
                errors.append(f"Nested braces at position {index}.")
            depth += 1
            opened_at = index
        elif char == "}":
            if not depth:
                errors.append(f"Unexpected closing brace at position {index}.")
                continue
            depth -= 1
            if index == opened_at + 1:
                errors.append(f"Empty placeholder at position {opened_at}.")
    if depth:
        errors.append(f"Unclosed brace at position {opened_at}.")
    return errors


def validate_folder_pattern(pattern: str) -> FolderPatternValidation:
    """Check a folder pattern without resolving it.

    Invalid characters outside placeholders and malformed braces are errors.
    Unknown placeholders, reserved device names and segments ending in a dot
    or a space are warnings.

    Args:
        pattern: Folder pattern such as ``{year}/{month}``.

    Returns:
        FolderPatternValidation: Errors, warnings, placeholders and the
        normalized pattern.
    """

    if not pattern.strip():
        return FolderPatternValidation(valid=False, errors=["Folder pattern cannot be empty."])

    normalized = normalize_folder_pattern(pattern)
    errors = _brace_errors(normalized)
    warnings: List[str] = []

    literal_text = _PLACEHOLDER.sub("", normalized)
    invalid = sorted({char for char in _INVALID_PATH_CHARS.findall(literal_text)})
    if invalid:
        errors.append(
            "Folder pattern contains invalid characters: " + " ".join(repr(c) for c in invalid)
        )

    placeholders: List[str] = []
    for match in _PLACEHOLDER.finditer(normalized):
        name = match.group(0)[1:-1].strip()
        if name and name not in placeholders:
            placeholders.append(name)
    for name in placeholders:
        if not is_known_placeholder(name):
            warnings.append(
                f"Unknown placeholder {{{name}}} will only resolve through a fallback."
            )

    for segment in normalized.split("/"):
        literal = _PLACEHOLDER.sub("", segment)
        if not literal:
            continue
        if segment in _RELATIVE_SEGMENTS:
            errors.append(f"Segment {segment!r} is a relative directory reference.")
            continue
        if literal == segment and segment.split(".")[0].lower() in WINDOWS_RESERVED_NAMES:
            warnings.append(f"Segment {segment!r} is a reserved name on Windows.")
        if segment.endswith("."):
            warnings.append(f"Segment {segment!r} ends with a dot.")
        if segment.endswith(" "):
            warnings.append(f"Segment {segment!r} ends with a space.")

    return FolderPatternValidation(
        valid=not errors,
        errors=errors,
        warnings=warnings,
        placeholders=placeholders,
        normalized_pattern=normalized,
    )


def clean_segment_value(value: str) -> str:
    """Make a placeholder value safe to place inside a single path segment."""
    cleaned = _INVALID_PATH_CHARS.sub("", value)
    cleaned = cleaned.replace("/", "-").replace("\\", "-")
    return cleaned.strip()


class FolderPathResolver:
    """Resolve folder patterns into relative destination directories."""

    def resolve(
        self,
        pattern: str,
        metadata: UnifiedMetadata,
        *,
        fallbacks: Optional[Mapping[str, str]] = None,
    ) -> FolderResolution:
        """Resolve ``pattern`` for one file.

        The base directory is never part of the result; callers prefix it.

        Args:
            pattern: Folder pattern such as ``{year}/{camera}``.
            metadata: Unified metadata of the file.
            fallbacks: Values used for placeholders that resolve to nothing.

        Returns:
            FolderResolution: Normalized relative path and placeholder details.

        Raises:
            InvalidPatternError: If the pattern is empty or malformed, or a
                resolved segment is ``.`` or ``..``.
            MissingMetadataError: If placeholders lack both a value and a fallback.
        """

        validation = validate_folder_pattern(pattern)
        if not validation.valid:
            raise InvalidPatternError(
                f"Invalid folder pattern {pattern!r}: {'; '.join(validation.errors)}",
                errors=validation.errors,
            )

        parsed = parse_template(validation.normalized_pattern)
        context = ResolutionContext(metadata=metadata, template_pattern=pattern)
        resolved, missing = resolve_placeholders(parsed.placeholders, context, fallbacks)
        if missing:
            raise MissingMetadataError(missing)

        raw = "".join(
            token.text
            if isinstance(token, LiteralToken)
            else clean_segment_value(resolved[token.name].value)
            for token in parsed.tokens
        )
        resolved_path = normalize_folder_pattern(raw)
        relative = [
            segment for segment in resolved_path.split("/") if segment in _RELATIVE_SEGMENTS
        ]
        if relative:
            raise InvalidPatternError(
                f"Folder pattern {pattern!r} resolved to {resolved_path!r}, "
                "which is not a plain relative path.",
                errors=[f"Resolved segment {segment!r} is not allowed." for segment in relative],
            )
        LOGGER.debug("Folder pattern %s resolved to %s", pattern, resolved_path)
        return FolderResolution(
            resolved_path=resolved_path,
            resolved_placeholders=resolved,
            missing_placeholders=[],
            used_fallbacks=any(
                placeholder.source is PlaceholderSource.FALLBACK
                for placeholder in resolved.values()
            ),
        )


__all__ = [
    "normalize_folder_pattern",
    "validate_folder_pattern",
    "clean_segment_value",
    "FolderPathResolver",
]
