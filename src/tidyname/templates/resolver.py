"""Resolve template patterns into proposed filenames."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from tidyname.errors import InvalidFilenameError, MissingMetadataError
from tidyname.files.models import UnifiedMetadata

from .models import PlaceholderSource, ResolvedName, ResolvedPlaceholder
from .parser import LiteralToken, parse_template
from .sanitize import MAX_NAME_LENGTH, sanitize_filename
from .sources import ResolutionContext, lookup_placeholder

LOGGER = logging.getLogger(__name__)

_PATH_CHARACTERS = ("/", "\\", "\x00")


def resolve_placeholders(
    names: Iterable[str],
    context: ResolutionContext,
    fallbacks: Optional[Mapping[str, str]] = None,
) -> Tuple[Dict[str, ResolvedPlaceholder], List[str]]:
    """Look up every placeholder, applying fallbacks to missing or blank values.

    Args:
        names: Placeholder names to resolve.
        context: Metadata and template context for the file.
        fallbacks: Caller-supplied values keyed by placeholder name.

    Returns:
        Tuple[Dict[str, ResolvedPlaceholder], List[str]]: Resolved placeholders
        keyed by name, and the names that could not be resolved at all.
    """

    fallbacks = fallbacks or {}
    resolved: Dict[str, ResolvedPlaceholder] = {}
    missing: List[str] = []

    for name in names:
        if name in resolved or name in missing:
            continue
        found = lookup_placeholder(name, context)
        if found is not None:
            value, source = found
            resolved[name] = ResolvedPlaceholder(name=name, value=value, source=source)
            continue

        fallback = fallbacks.get(name)
        if fallback is not None and fallback.strip():
            LOGGER.debug("Using fallback for {%s}", name)
            resolved[name] = ResolvedPlaceholder(
                name=name, value=fallback, source=PlaceholderSource.FALLBACK
            )
        else:
            missing.append(name)

    return resolved, missing


class PlaceholderResolver:
    """Turn a template pattern into a filename for a single file.

    Attributes:
        sanitize: Whether illegal characters and separator runs are cleaned.
        include_extension: Whether the file's extension is appended.
    """

    def __init__(self, *, sanitize: bool = True, include_extension: bool = True) -> None:
        self.sanitize = sanitize
        self.include_extension = include_extension

    def resolve(
        self,
        template: str,
        metadata: UnifiedMetadata,
        *,
        fallbacks: Optional[Mapping[str, str]] = None,
        suggestion: Optional[str] = None,
    ) -> ResolvedName:
        """Resolve ``template`` against ``metadata``.

        Args:
            template: Pattern such as ``{date}_{original}``.
            metadata: Unified metadata of the file, descriptor included.
            fallbacks: Values used for placeholders that resolve to nothing.
            suggestion: Precomputed name suggestion used by ``{name}``/``{ai}``.

        Returns:
            ResolvedName: Final name plus per-placeholder diagnostics.

        Raises:
            TemplateParseError: If the pattern is malformed.
            MissingMetadataError: If placeholders lack both a value and a fallback.
            InvalidFilenameError: If the result is not a usable filename.
        """

        parsed = parse_template(template)
        context = ResolutionContext(
            metadata=metadata, template_pattern=template, suggestion=suggestion
        )
        resolved, missing = resolve_placeholders(parsed.placeholders, context, fallbacks)
        if missing:
            raise MissingMetadataError(missing)

        raw = "".join(
            token.text if isinstance(token, LiteralToken) else resolved[token.name].value
            for token in parsed.tokens
        )
        return self.finalize(
            raw,
            metadata.file.extension,
            placeholders=[resolved[name] for name in parsed.placeholders],
        )

    def finalize(
        self,
        raw: str,
        extension: str,
        *,
        placeholders: Optional[List[ResolvedPlaceholder]] = None,
    ) -> ResolvedName:
        """Sanitize ``raw`` and append ``extension`` once.

        Raises:
            InvalidFilenameError: If nothing usable remains.
        """

        stem = raw
        appended = ""
        if self.include_extension and extension:
            suffix = f".{extension}"
            if stem.lower().endswith(suffix.lower()):
                stem = stem[: -len(suffix)]
            appended = extension

        stem = sanitize_filename(stem) if self.sanitize else stem.strip()
        if not stem.strip() or stem in (".", ".."):
            raise InvalidFilenameError(f"Template resolved to an empty name: {raw!r}", name=raw)
        if any(char in stem for char in _PATH_CHARACTERS):
            raise InvalidFilenameError(
                f"Resolved name contains path separators: {stem!r}", name=stem
            )

        name = f"{stem}.{appended}" if appended else stem
        warnings: List[str] = []
        if len(name) > MAX_NAME_LENGTH:
            warnings.append(f"Name is {len(name)} characters long (limit {MAX_NAME_LENGTH}).")

        placeholders = placeholders or []
        return ResolvedName(
            name=name,
            stem=stem,
            extension=appended,
            placeholders=placeholders,
            used_fallbacks=any(p.source is PlaceholderSource.FALLBACK for p in placeholders),
            warnings=warnings,
        )


__all__ = ["PlaceholderResolver", "resolve_placeholders"]
