"""Value sources for template and folder placeholders.

Each placeholder has a fixed source order. Dates come from EXIF, then the
PDF or Office creation date, then the file's modification time. Titles and
authors come from the document block, cameras and locations from EXIF, and
the remaining placeholders from the file descriptor itself.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Optional, Tuple

from tidyname.files.models import UnifiedMetadata

from .models import PlaceholderSource

DATE_PLACEHOLDERS = ("year", "month", "day", "date")
METADATA_PLACEHOLDERS = ("title", "author", "camera", "location")
FILE_PLACEHOLDERS = ("ext", "original", "name", "ai", "size")
KNOWN_PLACEHOLDERS = DATE_PLACEHOLDERS + METADATA_PLACEHOLDERS + FILE_PLACEHOLDERS

_CAMERA_NOISE = re.compile(r"\s*\b(corporation|corp\.?|inc\.?|ltd\.?)(?=\s|$)\s*", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")

_DATE_START_PATTERNS = (
    re.compile(r"^(\d{4}[-_]\d{2}[-_]\d{2})[-_\s]+"),
    re.compile(r"^(\d{8})[-_\s]+"),
    re.compile(r"^(\d{2}[-_]\d{2}[-_]\d{4})[-_\s]+"),
    re.compile(r"^(\d{4}[-_]\d{2})[-_\s]+(?=\D)"),
    re.compile(r"^(\d{4})[-_\s]+(?=\D)"),
)
_DATE_END_PATTERNS = (
    re.compile(r"[-_\s]+(\d{4}[-_]\d{2}[-_]\d{2})$"),
    re.compile(r"[-_\s]+(\d{8})$"),
    re.compile(r"[-_\s]+(\d{2}[-_]\d{2}[-_]\d{4})$"),
    re.compile(r"(?<!\d[-_])[-_\s]+(\d{4}[-_]\d{2})$"),
    re.compile(r"(?<!\d[-_])[-_\s]+(\d{4})$"),
)

Lookup = Optional[Tuple[str, PlaceholderSource]]


@dataclass(frozen=True)
class ResolutionContext:
    """Inputs shared by every placeholder lookup for one file.

    Attributes:
        metadata: Unified metadata, including the file descriptor.
        template_pattern: Pattern being resolved; drives date stripping for ``{name}``.
        suggestion: Precomputed AI name suggestion for ``{name}`` and ``{ai}``.
    """

    metadata: UnifiedMetadata
    template_pattern: str = ""
    suggestion: Optional[str] = None


def format_bytes(size: int) -> str:
    """Render a byte count such as ``1.5MB`` or ``512B``."""
    if size <= 0:
        return "0B"
    for unit, threshold in (("GB", 1024**3), ("MB", 1024**2), ("KB", 1024)):
        if size >= threshold:
            rendered = f"{size / threshold:.1f}"
            if rendered.endswith(".0"):
                rendered = rendered[:-2]
            return f"{rendered}{unit}"
    return f"{size}B"


def _strip_once(value: str, patterns: Tuple[re.Pattern[str], ...], *, leading: bool) -> str:
    for pattern in patterns:
        match = pattern.search(value)
        if match:
            stripped = value[match.end() :] if leading else value[: match.start()]
            if stripped:
                return stripped
    return value


def strip_date_patterns(value: str) -> str:
    """Drop a date at the start and at the end of ``value`` when other text remains."""
    return _strip_once(
        _strip_once(value, _DATE_START_PATTERNS, leading=True), _DATE_END_PATTERNS, leading=False
    )


def has_date_placeholder(pattern: str) -> bool:
    lowered = pattern.lower()
    return any(f"{{{name}" in lowered for name in DATE_PLACEHOLDERS)


def best_date(metadata: UnifiedMetadata) -> Tuple[datetime, PlaceholderSource]:
    """Return the most specific date known for a file and its source."""
    if metadata.image is not None and metadata.image.date_taken is not None:
        return metadata.image.date_taken, PlaceholderSource.EXIF
    if metadata.pdf is not None and metadata.pdf.creation_date is not None:
        return metadata.pdf.creation_date, PlaceholderSource.DOCUMENT
    if metadata.office is not None and metadata.office.created is not None:
        return metadata.office.created, PlaceholderSource.DOCUMENT
    return metadata.file.modified_at, PlaceholderSource.FILESYSTEM


def _date(fmt: str) -> Callable[[ResolutionContext], Lookup]:
    def lookup(context: ResolutionContext) -> Lookup:
        moment, source = best_date(context.metadata)
        return moment.strftime(fmt), source

    return lookup


def _title(context: ResolutionContext) -> Lookup:
    metadata = context.metadata
    if metadata.pdf is not None and metadata.pdf.title:
        return metadata.pdf.title.strip(), PlaceholderSource.DOCUMENT
    if metadata.office is not None and metadata.office.title:
        return metadata.office.title.strip(), PlaceholderSource.DOCUMENT
    if metadata.file.name:
        return metadata.file.name, PlaceholderSource.FILESYSTEM
    return None


def _author(context: ResolutionContext) -> Lookup:
    metadata = context.metadata
    if metadata.pdf is not None and metadata.pdf.author:
        return metadata.pdf.author.strip(), PlaceholderSource.DOCUMENT
    if metadata.office is not None and metadata.office.creator:
        return metadata.office.creator.strip(), PlaceholderSource.DOCUMENT
    return None


def _camera(context: ResolutionContext) -> Lookup:
    image = context.metadata.image
    if image is None:
        return None
    make = (image.camera_make or "").strip()
    model = (image.camera_model or "").strip()
    if not make and not model:
        return None
    if make and model:
        camera = model if make.lower() in model.lower() else f"{make} {model}"
    else:
        camera = make or model
    camera = _CAMERA_NOISE.sub(" ", _WHITESPACE.sub(" ", camera)).strip()
    return camera, PlaceholderSource.EXIF


def _coordinate(value: float, positive: str, negative: str) -> str:
    return f"{abs(value):.4f}{positive if value >= 0 else negative}"


def _location(context: ResolutionContext) -> Lookup:
    image = context.metadata.image
    if image is None or image.gps is None:
        return None
    latitude = _coordinate(image.gps.latitude, "N", "S")
    longitude = _coordinate(image.gps.longitude, "E", "W")
    return f"{latitude}_{longitude}", PlaceholderSource.EXIF


def _extension(context: ResolutionContext) -> Lookup:
    extension = context.metadata.file.extension
    return (extension, PlaceholderSource.FILESYSTEM) if extension else None


def _original(context: ResolutionContext) -> Lookup:
    name = context.metadata.file.name
    return (name, PlaceholderSource.FILESYSTEM) if name else None


def _smart_name(context: ResolutionContext) -> Lookup:
    strip_dates = has_date_placeholder(context.template_pattern)
    if context.suggestion:
        value = strip_date_patterns(context.suggestion) if strip_dates else context.suggestion
        return value, PlaceholderSource.LLM
    name = context.metadata.file.name
    if not name:
        return None
    return (strip_date_patterns(name) if strip_dates else name), PlaceholderSource.FILESYSTEM


def _ai(context: ResolutionContext) -> Lookup:
    return (context.suggestion, PlaceholderSource.LLM) if context.suggestion else None


def _size(context: ResolutionContext) -> Lookup:
    return format_bytes(context.metadata.file.size), PlaceholderSource.FILESYSTEM


_LOOKUPS: Dict[str, Callable[[ResolutionContext], Lookup]] = {
    "year": _date("%Y"),
    "month": _date("%m"),
    "day": _date("%d"),
    "date": _date("%Y-%m-%d"),
    "title": _title,
    "author": _author,
    "camera": _camera,
    "location": _location,
    "ext": _extension,
    "original": _original,
    "name": _smart_name,
    "ai": _ai,
    "size": _size,
}


def is_known_placeholder(name: str) -> bool:
    return name in _LOOKUPS


def lookup_placeholder(name: str, context: ResolutionContext) -> Lookup:
    """Return the value and source for ``name``, or None when unavailable.

    Unknown placeholders and blank values both yield None so that callers
    can apply fallbacks uniformly.
    """

    lookup = _LOOKUPS.get(name)
    if lookup is None:
        return None
    found = lookup(context)
    if found is None or not found[0].strip():
        return None
    return found


__all__ = [
    "DATE_PLACEHOLDERS",
    "METADATA_PLACEHOLDERS",
    "FILE_PLACEHOLDERS",
    "KNOWN_PLACEHOLDERS",
    "ResolutionContext",
    "format_bytes",
    "strip_date_patterns",
    "has_date_placeholder",
    "best_date",
    "is_known_placeholder",
    "lookup_placeholder",
]
