"""Template and placeholder resolution models."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Template(BaseModel):
    """A named filename pattern.

    Attributes:
        id: Unique identifier referenced by rules.
        name: Display name.
        pattern: Literal text mixed with ``{placeholder}`` tokens.
        description: Optional description.
        file_types: Extensions the template is meant for; empty means any.
        is_default: Whether the template is used when no rule matches.
        created_at: Creation timestamp.
        updated_at: Last update timestamp.
    """

    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = Field(min_length=1)
    pattern: str = Field(min_length=1)
    description: Optional[str] = None
    file_types: List[str] = Field(default_factory=list)
    is_default: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class PlaceholderSource(str, Enum):
    """Where a placeholder value came from."""

    EXIF = "exif"
    DOCUMENT = "document"
    FILESYSTEM = "filesystem"
    FALLBACK = "fallback"
    LLM = "llm"


class ResolvedPlaceholder(BaseModel):
    """A placeholder together with the value chosen for it."""

    name: str
    value: str
    source: PlaceholderSource


class ResolvedName(BaseModel):
    """Outcome of resolving a template for one file.

    Attributes:
        name: Final filename, extension included when requested.
        stem: Filename without the appended extension.
        extension: Extension that was appended (without dot), if any.
        placeholders: Per-placeholder values and sources.
        used_fallbacks: Whether any caller-supplied fallback was used.
        warnings: Non-fatal observations such as an overly long name.
    """

    name: str
    stem: str
    extension: str = ""
    placeholders: List[ResolvedPlaceholder] = Field(default_factory=list)
    used_fallbacks: bool = False
    warnings: List[str] = Field(default_factory=list)

    @property
    def fallback_placeholders(self) -> List[str]:
        return [
            placeholder.name
            for placeholder in self.placeholders
            if placeholder.source is PlaceholderSource.FALLBACK
        ]


__all__ = ["Template", "PlaceholderSource", "ResolvedPlaceholder", "ResolvedName"]
