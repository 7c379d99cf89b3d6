"""Filename sanitization helpers."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple

MAX_NAME_LENGTH = 200
MAX_OS_FILENAME_LENGTH = 255

_INVALID_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
_SEPARATOR_RUNS = re.compile(r"[-_\s]+")
_OS_INVALID_CHARS = re.compile(r'[/\\:*?"<>|]')
_TRAILING = re.compile(r"[. ]+$")
WINDOWS_RESERVED_NAMES = frozenset(
    ["con", "prn", "aux", "nul"]
    + [f"com{index}" for index in range(1, 10)]
    + [f"lpt{index}" for index in range(1, 10)]
)


def sanitize_filename(value: str) -> str:
    """Make ``value`` safe for use inside a filename.

    Illegal and control characters become underscores, runs of hyphens,
    underscores and whitespace collapse to a single underscore, and leading or
    trailing underscores are dropped. Length is left alone; callers warn about
    long names and the OS-level sanitizer enforces the hard limit.
    """

    if not value:
        return ""

    result = _INVALID_CHARS.sub("_", value)
    return _SEPARATOR_RUNS.sub("_", result).strip("_").strip()


def split_filename(filename: str) -> Tuple[str, str]:
    """Split ``filename`` into stem and extension (with its dot).

    Dotfiles such as ``.gitignore`` have no extension.
    """

    if not filename:
        return "", ""
    if filename.startswith(".") and "." not in filename[1:]:
        return filename, ""
    dot = filename.rfind(".")
    if dot <= 0:
        return filename, ""
    return filename[:dot], filename[dot:]


def is_valid_filename(name: str) -> bool:
    """Return True when ``name`` is usable on every major platform."""
    if not name or len(name) > MAX_OS_FILENAME_LENGTH:
        return False
    if _INVALID_CHARS.search(name):
        return False
    stem, _ = split_filename(name)
    if stem.lower() in WINDOWS_RESERVED_NAMES:
        return False
    if name[0] in ". " or name[-1] in ". ":
        return False
    return True


class SanitizeChangeType(str, Enum):
    """Kind of adjustment made by the OS-level sanitizer."""

    CHAR_REPLACEMENT = "char_replacement"
    RESERVED_NAME = "reserved_name"
    TRAILING_FIX = "trailing_fix"
    TRUNCATION = "truncation"

    @property
    def issue_code(self) -> str:
        return f"SANITIZED_{self.name}"


@dataclass(frozen=True)
class SanitizeChange:
    type: SanitizeChangeType
    original: str
    replacement: str
    message: str


@dataclass
class SanitizeResult:
    original: str
    sanitized: str
    changes: List[SanitizeChange] = field(default_factory=list)

    @property
    def was_modified(self) -> bool:
        return self.sanitized != self.original


def sanitize_for_os(
    filename: str,
    *,
    replacement: str = "_",
    max_length: int = MAX_OS_FILENAME_LENGTH,
) -> SanitizeResult:
    """Apply cross-platform filename rules to a complete filename.

    Steps, in order: replace universally invalid characters, collapse
    repeated replacements, suffix Windows reserved device names with
    ``_file``, drop trailing dots and spaces, then truncate to
    ``max_length`` with an ellipsis while keeping the extension.

    Args:
        filename: Full filename including the extension.
        replacement: Substitute for invalid characters.
        max_length: Maximum length of the result.

    Returns:
        SanitizeResult: Sanitized name and the list of changes applied.
    """

    result = SanitizeResult(original=filename, sanitized=filename)
    if not filename:
        return result

    current = filename
    invalid = sorted(set(_OS_INVALID_CHARS.findall(current)), key=current.index)
    if invalid:
        current = _OS_INVALID_CHARS.sub(replacement, current)
        result.changes.append(
            SanitizeChange(
                type=SanitizeChangeType.CHAR_REPLACEMENT,
                original="".join(invalid),
                replacement=replacement * len(invalid),
                message="Replaced invalid characters: "
                + ", ".join(f'"{char}"' for char in invalid),
            )
        )
    if replacement:
        current = re.sub(f"(?:{re.escape(replacement)}){{2,}}", replacement, current)

    stem, extension = split_filename(current)
    if stem.lower() in WINDOWS_RESERVED_NAMES:
        result.changes.append(
            SanitizeChange(
                type=SanitizeChangeType.RESERVED_NAME,
                original=stem,
                replacement=f"{stem}_file",
                message=f'"{stem}" is a reserved name on Windows',
            )
        )
        current = f"{stem}_file{extension}"

    stem, extension = split_filename(current)
    trimmed_stem = _TRAILING.sub("", stem)
    trimmed = _TRAILING.sub("", trimmed_stem + extension)
    if trimmed != current:
        result.changes.append(
            SanitizeChange(
                type=SanitizeChangeType.TRAILING_FIX,
                original=current,
                replacement=trimmed,
                message="Removed trailing spaces/periods (invalid on Windows)",
            )
        )
        current = trimmed

    if len(current) > max_length:
        truncated = _truncate(current, max_length)
        result.changes.append(
            SanitizeChange(
                type=SanitizeChangeType.TRUNCATION,
                original=current,
                replacement=truncated,
                message=f"Truncated from {len(current)} to {len(truncated)} characters",
            )
        )
        current = truncated

    result.sanitized = current
    return result


def _truncate(filename: str, max_length: int) -> str:
    stem, extension = split_filename(filename)
    available = max_length - len(extension)
    if available < 1:
        return filename[:max_length]
    ellipsis = "..."
    if available > len(ellipsis):
        return stem[: available - len(ellipsis)] + ellipsis + extension
    return stem[:available] + extension


__all__ = [
    "MAX_NAME_LENGTH",
    "MAX_OS_FILENAME_LENGTH",
    "WINDOWS_RESERVED_NAMES",
    "sanitize_filename",
    "split_filename",
    "is_valid_filename",
    "SanitizeChangeType",
    "SanitizeChange",
    "SanitizeResult",
    "sanitize_for_os",
]
