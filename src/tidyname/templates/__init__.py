"""Template parsing, placeholder resolution, and filename sanitization."""

from .casing import CaseStyle, normalize_case
from .models import PlaceholderSource, ResolvedName, ResolvedPlaceholder, Template
from .parser import extract_placeholders, parse_template, validate_template
from .resolver import PlaceholderResolver
from .sanitize import sanitize_filename, sanitize_for_os

__all__ = [
    "CaseStyle",
    "PlaceholderResolver",
    "PlaceholderSource",
    "ResolvedName",
    "ResolvedPlaceholder",
    "Template",
    "extract_placeholders",
    "normalize_case",
    "parse_template",
    "sanitize_filename",
    "sanitize_for_os",
    "validate_template",
]
