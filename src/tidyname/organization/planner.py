"""Planner that turns scanned files into a rename preview."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Mapping, Optional

from tidyname.config.models import AppConfig
from tidyname.errors import (
    InvalidBaseDirectoryError,
    InvalidFilenameError,
    InvalidPatternError,
    MissingMetadataError,
    NoDefaultTemplateError,
    PreviewCancelledError,
    TemplateParseError,
)
from tidyname.files.models import ExtractionStatus, FileDescriptor, UnifiedMetadata
from tidyname.rules.models import RuleRef
from tidyname.rules.priority import resolve_priority
from tidyname.templates.casing import CaseStyle, normalize_case
from tidyname.templates.models import PlaceholderSource, ResolvedName, ResolvedPlaceholder, Template
from tidyname.templates.resolver import PlaceholderResolver
from tidyname.templates.sanitize import MAX_NAME_LENGTH, is_valid_filename, sanitize_for_os

from .folders import FolderPathResolver
from .models import (
    IssueSeverity,
    LLMSuggestion,
    PreviewSummary,
    RenameIssue,
    RenamePreview,
    RenameProposal,
    RenameStatus,
    TemplateSource,
)

LOGGER = logging.getLogger(__name__)

CancelCheck = Callable[[], bool]


@dataclass
class _Selection:
    """Template chosen for one file and how it was chosen."""

    template: Template
    source: TemplateSource
    rule: Optional[RuleRef] = None
    folder_structure_id: Optional[str] = None
    issues: List[RenameIssue] = field(default_factory=list)


class PreviewPlanner:
    """Derive rename proposals from descriptors, metadata and configuration.

    The planner performs no filesystem access; all inputs are materialized by
    the caller and the configuration is treated as read-only.
    """

    def __init__(self, config: AppConfig) -> None:
        self.config = config
        self.folder_resolver = FolderPathResolver()

    def build_preview(
        self,
        files: Iterable[FileDescriptor],
        metadata_map: Optional[Mapping[Path, UnifiedMetadata]] = None,
        *,
        base_directory: Path | str | None = None,
        fallbacks: Optional[Mapping[str, str]] = None,
        include_extension: Optional[bool] = None,
        sanitize_filenames: Optional[bool] = None,
        llm_suggestions: Optional[Mapping[Path, LLMSuggestion]] = None,
        cancel_check: Optional[CancelCheck] = None,
    ) -> RenamePreview:
        """Produce proposals and a summary for ``files``.

        Args:
            files: Descriptors produced by the scanner.
            metadata_map: Extracted metadata keyed by file path.
            base_directory: Root for organize-mode destinations; defaults to
                each file's own directory.
            fallbacks: Values for placeholders that resolve to nothing.
            include_extension: Overrides ``preferences.include_extension``.
            sanitize_filenames: Overrides ``preferences.sanitize_filenames``.
            llm_suggestions: Precomputed name suggestions keyed by file path.
            cancel_check: Callable polled between phases and files; a truthy
                return aborts the preview.

        Returns:
            RenamePreview: One proposal per file plus the batch summary.

        Raises:
            InvalidBaseDirectoryError: If ``base_directory`` is empty or relative.
            NoDefaultTemplateError: If no default template is configured.
            PreviewCancelledError: If ``cancel_check`` signals an abort.
        """

        self._check_cancelled(cancel_check, "validation")
        base = self._validate_base_directory(base_directory)
        default_template = self.config.default_template()
        if default_template is None:
            raise NoDefaultTemplateError()

        preferences = self.config.preferences
        resolver = PlaceholderResolver(
            sanitize=(
                preferences.sanitize_filenames if sanitize_filenames is None else sanitize_filenames
            ),
            include_extension=(
                preferences.include_extension if include_extension is None else include_extension
            ),
        )
        metadata_map = metadata_map or {}

        proposals: List[RenameProposal] = []
        for descriptor in files:
            self._check_cancelled(cancel_check, "resolution")
            metadata = metadata_map.get(descriptor.path) or UnifiedMetadata.empty(descriptor)
            suggestion = llm_suggestions.get(descriptor.path) if llm_suggestions else None
            proposals.append(
                self._build_proposal(
                    descriptor,
                    metadata,
                    default_template,
                    resolver,
                    base=base,
                    fallbacks=fallbacks,
                    suggestion=suggestion,
                    llm_enabled=llm_suggestions is not None,
                )
            )

        self._check_cancelled(cancel_check, "conflicts")
        proposals = self._mark_conflicts(proposals)
        summary = PreviewSummary.from_proposals(proposals)
        LOGGER.debug(
            "Preview built for %d file(s): %d ready, %d conflict(s)",
            summary.total,
            summary.ready,
            summary.conflicts,
        )
        return RenamePreview(proposals=proposals, summary=summary)

    # Helpers ----------------------------------------------------------

    @staticmethod
    def _check_cancelled(cancel_check: Optional[CancelCheck], phase: str) -> None:
        if cancel_check is not None and cancel_check():
            raise PreviewCancelledError(phase)

    @staticmethod
    def _validate_base_directory(base_directory: Path | str | None) -> Optional[Path]:
        if base_directory is None:
            return None
        if not str(base_directory).strip():
            raise InvalidBaseDirectoryError(base_directory)
        base = Path(base_directory)
        if not base.is_absolute():
            raise InvalidBaseDirectoryError(base_directory)
        return base

    def _select_template(
        self,
        descriptor: FileDescriptor,
        metadata: UnifiedMetadata,
        default_template: Template,
    ) -> _Selection:
        resolution = resolve_priority(
            descriptor,
            metadata,
            self.config.metadata_rules,
            self.config.filename_rules,
            self.config.preferences.rule_priority_mode,
        )
        winner = resolution.winner
        if winner is None:
            return _Selection(template=default_template, source=TemplateSource.DEFAULT)

        template = self.config.find_template(winner.template_id)
        if template is None:
            LOGGER.debug(
                "Rule %r references missing template %s", winner.name, winner.template_id
            )
            return _Selection(
                template=default_template,
                source=TemplateSource.FALLBACK,
                issues=[
                    RenameIssue(
                        code="RULE_TEMPLATE_MISSING",
                        message=(
                            f"Rule {winner.name!r} matched but template "
                            f"{winner.template_id!r} was not found; using the default template."
                        ),
                    )
                ],
            )
        return _Selection(
            template=template,
            source=TemplateSource.RULE,
            rule=RuleRef.of(winner),
            folder_structure_id=winner.folder_structure_id,
        )

    def _build_proposal(
        self,
        descriptor: FileDescriptor,
        metadata: UnifiedMetadata,
        default_template: Template,
        resolver: PlaceholderResolver,
        *,
        base: Optional[Path],
        fallbacks: Optional[Mapping[str, str]],
        suggestion: Optional[LLMSuggestion],
        llm_enabled: bool,
    ) -> RenameProposal:
        selection = self._select_template(descriptor, metadata, default_template)
        issues = list(selection.issues)
        source = selection.source
        status = RenameStatus.READY
        original_name = descriptor.full_name
        proposed_name = original_name
        proposed_path = descriptor.path
        folder_structure_id: Optional[str] = None
        placeholders: List[ResolvedPlaceholder] = []

        if metadata.extraction_status is ExtractionStatus.FAILED:
            issues.append(
                RenameIssue(
                    code="EXTRACTION_FAILED",
                    message=f"Metadata extraction failed: {metadata.extraction_error or 'unknown'}",
                )
            )

        threshold = self.config.preferences.llm_confidence_threshold
        use_suggestion = suggestion is not None and suggestion.confidence >= threshold
        if llm_enabled and suggestion is None:
            issues.append(
                RenameIssue(
                    code="LLM_ANALYSIS_FAILED",
                    message="No name suggestion was available; using template-based naming.",
                    severity=IssueSeverity.INFO,
                )
            )

        try:
            if use_suggestion and suggestion is not None:
                resolved = resolver.finalize(
                    suggestion.suggested_name,
                    descriptor.extension,
                    placeholders=[
                        ResolvedPlaceholder(
                            name="ai", value=suggestion.suggested_name, source=PlaceholderSource.LLM
                        )
                    ],
                )
                source = TemplateSource.LLM
                issues.append(
                    RenameIssue(
                        code="LLM_SUGGESTION_USED",
                        message=f"Using suggested name (confidence: {suggestion.confidence:.0%}).",
                        severity=IssueSeverity.INFO,
                    )
                )
            else:
                resolved = resolver.resolve(
                    selection.template.pattern,
                    metadata,
                    fallbacks=fallbacks,
                    suggestion=suggestion.suggested_name if suggestion is not None else None,
                )
        except MissingMetadataError as exc:
            status = RenameStatus.MISSING_DATA
            issues.extend(
                RenameIssue(
                    code="MISSING_METADATA",
                    message=f"Placeholder {{{name}}} could not be filled.",
                    severity=IssueSeverity.ERROR,
                    field=name,
                )
                for name in exc.missing_fields
            )
        except TemplateParseError as exc:
            status = RenameStatus.MISSING_DATA
            issues.append(
                RenameIssue(code="TEMPLATE_ERROR", message=str(exc), severity=IssueSeverity.ERROR)
            )
        except InvalidFilenameError as exc:
            status = RenameStatus.INVALID_NAME
            issues.append(
                RenameIssue(code="INVALID_NAME", message=str(exc), severity=IssueSeverity.ERROR)
            )
        else:
            placeholders = list(resolved.placeholders)
            issues.extend(
                RenameIssue(
                    code="USED_FALLBACK",
                    message=f"Used fallback value for {{{name}}}.",
                    field=name,
                )
                for name in resolved.fallback_placeholders
            )
            proposed_name = self._finish_name(resolved, issues)
            proposed_path = descriptor.directory / proposed_name
            if not is_valid_filename(proposed_name):
                status = RenameStatus.INVALID_NAME
                issues.append(
                    RenameIssue(
                        code="INVALID_NAME",
                        message=f"Proposed filename {proposed_name!r} is not valid.",
                        severity=IssueSeverity.ERROR,
                    )
                )
            elif selection.folder_structure_id is not None:
                folder_path, folder_structure_id, failure = self._resolve_folder(
                    selection.folder_structure_id, metadata, fallbacks
                )
                if failure is not None:
                    status = RenameStatus.MISSING_DATA
                    issues.append(failure)
                elif folder_path is not None:
                    root = base if base is not None else descriptor.directory
                    proposed_path = root / folder_path / proposed_name

        if status is RenameStatus.READY and proposed_path == descriptor.path:
            status = RenameStatus.NO_CHANGE

        return RenameProposal(
            original_path=descriptor.path,
            original_name=original_name,
            proposed_name=proposed_name,
            proposed_path=proposed_path,
            status=status,
            issues=issues,
            template_source=source,
            template_id=None if source is TemplateSource.LLM else selection.template.id,
            applied_rule=selection.rule if source is TemplateSource.RULE else None,
            is_move_operation=proposed_path.parent != descriptor.directory,
            folder_structure_id=folder_structure_id,
            placeholders=placeholders,
        )

    def _finish_name(self, resolved: ResolvedName, issues: List[RenameIssue]) -> str:
        """Apply case normalization and OS-level sanitization to a resolved name."""
        style = self.config.preferences.case_normalization
        stem = resolved.stem
        if style is not CaseStyle.NONE:
            stem = normalize_case(stem, style)
        name = f"{stem}.{resolved.extension}" if resolved.extension else stem

        result = sanitize_for_os(name)
        issues.extend(
            RenameIssue(code=change.type.issue_code, message=change.message)
            for change in result.changes
        )
        if len(result.sanitized) > MAX_NAME_LENGTH:
            issues.append(
                RenameIssue(
                    code="NAME_TOO_LONG",
                    message=(
                        f"Proposed name is {len(result.sanitized)} characters long "
                        f"(recommended limit {MAX_NAME_LENGTH})."
                    ),
                )
            )
        return result.sanitized

    def _resolve_folder(
        self,
        structure_id: str,
        metadata: UnifiedMetadata,
        fallbacks: Optional[Mapping[str, str]],
    ) -> tuple[Optional[str], Optional[str], Optional[RenameIssue]]:
        structure = self.config.find_folder_structure(structure_id)
        if structure is None or not structure.enabled:
            LOGGER.debug("Folder structure %s is missing or disabled", structure_id)
            return None, None, None
        try:
            resolution = self.folder_resolver.resolve(
                structure.pattern, metadata, fallbacks=fallbacks
            )
        except (InvalidPatternError, MissingMetadataError, TemplateParseError) as exc:
            return (
                None,
                None,
                RenameIssue(
                    code="FOLDER_RESOLUTION_FAILED",
                    message=f"Folder structure {structure.name!r} could not be resolved: {exc}",
                    severity=IssueSeverity.ERROR,
                ),
            )
        return resolution.resolved_path, structure.id, None

    def _mark_conflicts(self, proposals: List[RenameProposal]) -> List[RenameProposal]:
        """Downgrade every member of a group sharing one destination to ``conflict``."""
        case_sensitive = self.config.preferences.conflict_case_sensitive
        groups: Dict[str, List[int]] = {}
        for index, proposal in enumerate(proposals):
            if proposal.status not in (RenameStatus.READY, RenameStatus.NO_CHANGE):
                continue
            key = proposal.proposed_path.as_posix()
            groups.setdefault(key if case_sensitive else key.lower(), []).append(index)

        updated = list(proposals)
        for key, members in groups.items():
            if len(members) < 2:
                continue
            LOGGER.debug("%d proposals share destination %s", len(members), key)
            for index in members:
                proposal = updated[index]
                updated[index] = proposal.model_copy(
                    update={
                        "status": RenameStatus.CONFLICT,
                        "issues": [
                            *proposal.issues,
                            RenameIssue(
                                code="DUPLICATE_NAME",
                                message=(
                                    f"{len(members)} files would be renamed to "
                                    f"{proposal.proposed_path.as_posix()}."
                                ),
                                severity=IssueSeverity.ERROR,
                            ),
                        ],
                    }
                )
        return updated


__all__ = ["PreviewPlanner", "CancelCheck"]
