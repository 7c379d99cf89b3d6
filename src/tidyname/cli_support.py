"""Helpers shared by tidyname CLI commands."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError

from tidyname.files.models import FileDescriptor, UnifiedMetadata
from tidyname.organization.models import LLMSuggestion, RenamePreview, RenameProposal


class ManifestError(ValueError):
    """Raised when a file manifest cannot be read or validated."""


@dataclass
class Manifest:
    """Files, metadata and suggestions loaded from a manifest document.

    Attributes:
        source: Path of the manifest file.
        files: Descriptors in manifest order.
        metadata: Extracted metadata keyed by file path.
        suggestions: Name suggestions keyed by file path.
        base_directory: Organize-mode base directory declared by the manifest.
    """

    source: Path
    files: List[FileDescriptor] = field(default_factory=list)
    metadata: Dict[Path, UnifiedMetadata] = field(default_factory=dict)
    suggestions: Dict[Path, LLMSuggestion] = field(default_factory=dict)
    base_directory: Optional[Path] = None

    def find(self, name_or_path: str) -> FileDescriptor:
        """Return the descriptor whose path or full name equals ``name_or_path``.

        Raises:
            ManifestError: If no file matches.
        """

        for descriptor in self.files:
            if name_or_path in (str(descriptor.path), descriptor.full_name):
                return descriptor
        raise ManifestError(f"File '{name_or_path}' is not listed in {self.source}.")


def _read_document(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            return json.loads(text)
        return yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ManifestError(f"Failed to parse manifest {path}: {exc}") from exc


def _resolve(raw: Any, root: Path) -> Path:
    candidate = Path(str(raw)).expanduser()
    return candidate if candidate.is_absolute() else root / candidate


def load_manifest(path: Path) -> Manifest:
    """Load a YAML or JSON manifest describing files to preview.

    Each ``files`` entry carries a ``path`` (relative paths are resolved
    against the manifest's directory), optional ``size``, ``created_at`` and
    ``modified_at``, an optional ``metadata`` mapping with ``image``, ``pdf``
    or ``office`` blocks, and an optional ``suggestion`` with
    ``suggested_name`` and ``confidence``.

    Args:
        path: Manifest location.

    Returns:
        Manifest: Parsed descriptors, metadata and suggestions.

    Raises:
        ManifestError: If the document is malformed or an entry is invalid.
    """

    document = _read_document(path)
    if not isinstance(document, dict) or not isinstance(document.get("files", []), list):
        raise ManifestError("Manifest must be a mapping with a 'files' list.")

    root = path.parent.resolve()
    manifest = Manifest(source=path)
    if document.get("base_directory"):
        manifest.base_directory = _resolve(document["base_directory"], root)

    for index, entry in enumerate(document.get("files") or []):
        if not isinstance(entry, dict) or "path" not in entry:
            raise ManifestError(f"files[{index}] must be a mapping with a 'path'.")
        file_path = _resolve(entry["path"], root)
        try:
            descriptor = FileDescriptor.from_path(
                file_path,
                size=int(entry.get("size", 0)),
                created_at=entry.get("created_at"),
                modified_at=entry.get("modified_at"),
                root=root,
                mime_type=entry.get("mime_type"),
            )
            manifest.files.append(descriptor)
            if entry.get("metadata"):
                manifest.metadata[file_path] = UnifiedMetadata.model_validate(
                    {**entry["metadata"], "file": descriptor}
                )
            if entry.get("suggestion"):
                manifest.suggestions[file_path] = LLMSuggestion.model_validate(entry["suggestion"])
        except (ValidationError, TypeError, ValueError) as exc:
            raise ManifestError(f"files[{index}] ({entry['path']}) is invalid: {exc}") from exc

    return manifest


def parse_fallbacks(values: tuple[str, ...]) -> Dict[str, str]:
    """Parse repeated ``key=value`` options into a mapping.

    Raises:
        ManifestError: If an entry has no ``=`` or an empty key.
    """

    fallbacks: Dict[str, str] = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise ManifestError(f"Fallback '{item}' must look like key=value.")
        fallbacks[key.strip().strip("{}")] = value
    return fallbacks


def proposal_to_record(proposal: RenameProposal) -> Dict[str, Any]:
    """Return a JSON-serializable representation of ``proposal``."""
    return proposal.model_dump(mode="json")


def preview_to_payload(preview: RenamePreview, *, manifest: Path) -> Dict[str, Any]:
    """Return the JSON payload emitted by ``tidyname preview --json``."""
    return {
        "context": {
            "manifest": str(manifest),
            "generated_at": preview.generated_at.isoformat(),
        },
        "summary": preview.summary.model_dump(mode="json"),
        "proposals": [proposal_to_record(proposal) for proposal in preview.proposals],
    }


__all__ = [
    "Manifest",
    "ManifestError",
    "load_manifest",
    "parse_fallbacks",
    "proposal_to_record",
    "preview_to_payload",
]
