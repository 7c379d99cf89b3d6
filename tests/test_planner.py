"""Tests for the rename preview planner."""

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest

from tidyname.config.models import AppConfig, Preferences, default_templates
from tidyname.errors import (
    InvalidBaseDirectoryError,
    NoDefaultTemplateError,
    PreviewCancelledError,
)
from tidyname.files.models import (
    ExtractionStatus,
    FileDescriptor,
    ImageMetadata,
    PdfMetadata,
    UnifiedMetadata,
)
from tidyname.organization.models import (
    FolderStructure,
    IssueSeverity,
    LLMSuggestion,
    RenameProposal,
    RenameStatus,
    TemplateSource,
)
from tidyname.organization.planner import PreviewPlanner
from tidyname.rules.models import FilenamePatternRule, MetadataPatternRule, RuleCondition
from tidyname.templates.casing import CaseStyle
from tidyname.templates.models import Template

MODIFIED = datetime(2024, 3, 5, 12, 0, tzinfo=timezone.utc)
TAKEN = datetime(2026, 1, 10, 8, 0)


def _file(path: str) -> FileDescriptor:
    return FileDescriptor.from_path(Path(path), size=1024, modified_at=MODIFIED)


def _image(descriptor: FileDescriptor, **image: Any) -> UnifiedMetadata:
    return UnifiedMetadata(
        file=descriptor,
        image=ImageMetadata.model_validate({"date_taken": TAKEN, **image}),
        extraction_status=ExtractionStatus.SUCCESS,
    )


def _config(**overrides: Any) -> AppConfig:
    templates = [*default_templates(), Template(id="keep", name="Keep", pattern="{original}")]
    return AppConfig(**{"templates": templates, **overrides})


def _codes(proposal: RenameProposal) -> list[str]:
    return [issue.code for issue in proposal.issues]


def test_default_template_uses_exif_date() -> None:
    descriptor = _file("/home/user/vacation.jpg")
    planner = PreviewPlanner(_config())

    preview = planner.build_preview([descriptor], {descriptor.path: _image(descriptor)})

    proposal = preview.proposals[0]
    assert proposal.proposed_name == "2026_01_10_vacation.jpg"
    assert proposal.proposed_path == Path("/home/user/2026_01_10_vacation.jpg")
    assert proposal.status is RenameStatus.READY
    assert proposal.template_source is TemplateSource.DEFAULT
    assert proposal.template_id == "date-original"
    assert proposal.applied_rule is None
    assert proposal.is_move_operation is False
    assert preview.summary.ready == 1
    assert preview.summary.rename_only == 1


def test_missing_metadata_falls_back_to_descriptor() -> None:
    descriptor = _file("/home/user/notes.txt")

    preview = PreviewPlanner(_config()).build_preview([descriptor])

    assert preview.proposals[0].proposed_name == "2024_03_05_notes.txt"


def test_empty_batch_produces_empty_preview() -> None:
    preview = PreviewPlanner(_config()).build_preview([])

    assert preview.proposals == []
    assert preview.summary.total == 0


def test_rule_winner_supplies_template_and_folder() -> None:
    structure = FolderStructure(id="by-month", name="By month", pattern="{year}/{month}")
    rule = FilenamePatternRule(
        id="photos",
        name="Photos",
        template_id="keep",
        pattern="*.jpg",
        folder_structure_id="by-month",
    )
    config = _config(filename_rules=[rule], folder_structures=[structure])
    descriptor = _file("/inbox/photo.jpg")

    preview = PreviewPlanner(config).build_preview(
        [descriptor], {descriptor.path: _image(descriptor)}, base_directory="/library"
    )

    proposal = preview.proposals[0]
    assert proposal.proposed_path == Path("/library/2026/01/photo.jpg")
    assert proposal.template_source is TemplateSource.RULE
    assert proposal.applied_rule is not None
    assert proposal.applied_rule.id == "photos"
    assert proposal.folder_structure_id == "by-month"
    assert proposal.is_move_operation is True
    assert preview.summary.move_operations == 1


def test_same_destination_marks_every_member_as_conflict() -> None:
    structure = FolderStructure(id="by-month", name="By month", pattern="{year}/{month}")
    rule = FilenamePatternRule(
        name="Photos", template_id="keep", pattern="*.jpg", folder_structure_id="by-month"
    )
    config = _config(filename_rules=[rule], folder_structures=[structure])
    first, second = _file("/a/photo.jpg"), _file("/b/PHOTO.jpg")

    preview = PreviewPlanner(config).build_preview(
        [first, second],
        {first.path: _image(first), second.path: _image(second)},
        base_directory="/library",
    )

    assert [proposal.status for proposal in preview.proposals] == [RenameStatus.CONFLICT] * 2
    assert all("DUPLICATE_NAME" in _codes(proposal) for proposal in preview.proposals)
    assert preview.summary.conflicts == 2


def test_case_sensitive_conflicts_are_opt_in() -> None:
    config = _config(
        preferences=Preferences(default_template_id="keep", conflict_case_sensitive=True)
    )
    first, second = _file("/a/Report.txt"), _file("/a/report.txt")

    preview = PreviewPlanner(config).build_preview([first, second])

    assert [proposal.status for proposal in preview.proposals] == [RenameStatus.NO_CHANGE] * 2


def test_unchanged_name_is_no_change() -> None:
    config = _config(preferences=Preferences(default_template_id="keep"))
    descriptor = _file("/a/report.txt")

    preview = PreviewPlanner(config).build_preview([descriptor])

    assert preview.proposals[0].status is RenameStatus.NO_CHANGE
    assert preview.summary.no_change == 1


def test_deleted_rule_template_falls_back_to_default() -> None:
    rule = FilenamePatternRule(name="Orphan", template_id="gone", pattern="*")
    config = _config(filename_rules=[rule])
    descriptor = _file("/a/vacation.jpg")

    preview = PreviewPlanner(config).build_preview(
        [descriptor], {descriptor.path: _image(descriptor)}
    )

    proposal = preview.proposals[0]
    assert proposal.template_source is TemplateSource.FALLBACK
    assert proposal.template_id == "date-original"
    assert proposal.applied_rule is None
    assert "RULE_TEMPLATE_MISSING" in _codes(proposal)
    assert proposal.status is RenameStatus.READY


def test_repeated_previews_report_the_same_rule() -> None:
    rule = MetadataPatternRule(
        id="iphone",
        name="iPhone",
        template_id="photo",
        conditions=[RuleCondition(field="image.cameraMake", operator="equals", value="Apple")],
    )
    planner = PreviewPlanner(_config(metadata_rules=[rule]))
    descriptor = _file("/a/beach.jpg")
    metadata = {descriptor.path: _image(descriptor, camera_make="Apple", camera_model="iPhone 15")}

    first = planner.build_preview([descriptor], metadata).proposals[0]
    second = planner.build_preview([descriptor], metadata).proposals[0]

    assert first.proposed_name == "2026_01_10_Apple_iPhone_15_beach.jpg"
    assert first.applied_rule == second.applied_rule
    assert first.proposed_path == second.proposed_path


def test_missing_placeholder_becomes_missing_data() -> None:
    descriptor = _file("/a/scan.pdf")
    config = _config(preferences=Preferences(default_template_id="document"))

    preview = PreviewPlanner(config).build_preview([descriptor])

    proposal = preview.proposals[0]
    assert proposal.status is RenameStatus.MISSING_DATA
    assert proposal.proposed_path == descriptor.path
    missing = [issue for issue in proposal.issues if issue.code == "MISSING_METADATA"]
    assert [issue.field for issue in missing] == ["author"]
    assert missing[0].severity is IssueSeverity.ERROR


def test_fallbacks_resolve_missing_placeholders() -> None:
    descriptor = _file("/a/scan.pdf")
    config = _config(preferences=Preferences(default_template_id="document"))

    preview = PreviewPlanner(config).build_preview([descriptor], fallbacks={"author": "Unknown"})

    proposal = preview.proposals[0]
    assert proposal.proposed_name == "scan_Unknown.pdf"
    assert "USED_FALLBACK" in _codes(proposal)


def test_folder_failure_becomes_missing_data() -> None:
    structure = FolderStructure(id="by-camera", name="Camera", pattern="{camera}")
    rule = FilenamePatternRule(
        name="All", template_id="keep", pattern="*", folder_structure_id="by-camera"
    )
    config = _config(filename_rules=[rule], folder_structures=[structure])
    descriptor = _file("/a/clip.mp4")

    proposal = PreviewPlanner(config).build_preview([descriptor]).proposals[0]

    assert proposal.status is RenameStatus.MISSING_DATA
    assert "FOLDER_RESOLUTION_FAILED" in _codes(proposal)



def test_folder_value_cannot_escape_base_directory() -> None:
    structure = FolderStructure(id="by-author", name="Author", pattern="{author}/docs")
    rule = FilenamePatternRule(
        name="PDFs", template_id="keep", pattern="*.pdf", folder_structure_id="by-author"
    )
    config = _config(filename_rules=[rule], folder_structures=[structure])
    descriptor = _file("/inbox/report.pdf")
    metadata = UnifiedMetadata(file=descriptor, pdf=PdfMetadata(author=".."))

    proposal = PreviewPlanner(config).build_preview(
        [descriptor], {descriptor.path: metadata}, base_directory="/library"
    ).proposals[0]

    assert proposal.status is RenameStatus.MISSING_DATA
    assert "FOLDER_RESOLUTION_FAILED" in _codes(proposal)
    assert proposal.proposed_path == Path("/inbox/report.pdf")


def test_disabled_folder_structure_is_ignored() -> None:
    structure = FolderStructure(id="off", name="Off", pattern="{year}", enabled=False)
    rule = FilenamePatternRule(
        name="All", template_id="date-original", pattern="*", folder_structure_id="off"
    )
    config = _config(filename_rules=[rule], folder_structures=[structure])
    descriptor = _file("/a/clip.mp4")

    proposal = PreviewPlanner(config).build_preview([descriptor]).proposals[0]

    assert proposal.proposed_path == Path("/a/2024_03_05_clip.mp4")
    assert proposal.folder_structure_id is None


def test_confident_suggestion_is_used() -> None:
    descriptor = _file("/a/IMG_0001.jpg")
    suggestions = {descriptor.path: LLMSuggestion(suggested_name="Beach Sunset", confidence=0.9)}

    proposal = PreviewPlanner(_config()).build_preview(
        [descriptor], llm_suggestions=suggestions
    ).proposals[0]

    assert proposal.proposed_name == "Beach_Sunset.jpg"
    assert proposal.template_source is TemplateSource.LLM
    assert proposal.template_id is None
    assert "LLM_SUGGESTION_USED" in _codes(proposal)


def test_low_confidence_suggestion_falls_back_to_template() -> None:
    descriptor = _file("/a/IMG_0001.jpg")
    other = _file("/a/IMG_0002.jpg")
    suggestions = {descriptor.path: LLMSuggestion(suggested_name="Beach", confidence=0.3)}

    preview = PreviewPlanner(_config()).build_preview(
        [descriptor, other], llm_suggestions=suggestions
    )

    first, second = preview.proposals
    assert first.template_source is TemplateSource.DEFAULT
    assert first.proposed_name == "2024_03_05_IMG_0001.jpg"
    assert "LLM_ANALYSIS_FAILED" in _codes(second)
    assert preview.summary.llm_suggested == 0


def test_case_normalization_and_os_sanitizing() -> None:
    config = _config(
        preferences=Preferences(default_template_id="keep", case_normalization=CaseStyle.KEBAB_CASE)
    )
    descriptor = _file("/a/My Holiday Photo.jpg")

    proposal = PreviewPlanner(config).build_preview([descriptor]).proposals[0]

    assert proposal.proposed_name == "my-holiday-photo.jpg"
    assert proposal.status is RenameStatus.READY


def test_long_name_is_flagged_and_truncated_to_os_limit() -> None:
    config = _config(preferences=Preferences(default_template_id="keep"))
    descriptor = _file("/a/" + "a" * 300 + ".txt")

    proposal = PreviewPlanner(config).build_preview([descriptor]).proposals[0]

    assert len(proposal.proposed_name) == 255
    assert proposal.proposed_name.endswith("....txt")
    assert proposal.status is RenameStatus.READY
    assert "SANITIZED_TRUNCATION" in _codes(proposal)
    assert "NAME_TOO_LONG" in _codes(proposal)


def test_reserved_name_is_sanitized_with_issue() -> None:
    config = _config(preferences=Preferences(default_template_id="keep"))
    descriptor = _file("/a/con.txt")

    proposal = PreviewPlanner(config).build_preview(
        [descriptor], sanitize_filenames=False
    ).proposals[0]

    assert proposal.proposed_name == "con_file.txt"
    assert "SANITIZED_RESERVED_NAME" in _codes(proposal)


def test_extraction_failure_is_reported() -> None:
    descriptor = _file("/a/broken.jpg")
    metadata = UnifiedMetadata(
        file=descriptor,
        extraction_status=ExtractionStatus.FAILED,
        extraction_error="truncated EXIF",
    )

    proposal = PreviewPlanner(_config()).build_preview(
        [descriptor], {descriptor.path: metadata}
    ).proposals[0]

    assert "EXTRACTION_FAILED" in _codes(proposal)
    assert proposal.status is RenameStatus.READY


def test_no_default_template_raises() -> None:
    config = AppConfig(templates=[Template(id="plain", name="Plain", pattern="{original}")])

    with pytest.raises(NoDefaultTemplateError):
        PreviewPlanner(config).build_preview([_file("/a/x.txt")])


@pytest.mark.parametrize("base_directory", ["", "relative/dir"])
def test_invalid_base_directory_raises(base_directory: str) -> None:
    with pytest.raises(InvalidBaseDirectoryError):
        PreviewPlanner(_config()).build_preview(
            [_file("/a/x.txt")], base_directory=base_directory
        )


def test_cancel_check_aborts_between_files() -> None:
    calls: list[int] = []

    def cancel() -> bool:
        calls.append(1)
        return len(calls) > 2

    with pytest.raises(PreviewCancelledError) as excinfo:
        PreviewPlanner(_config()).build_preview(
            [_file("/a/one.txt"), _file("/a/two.txt"), _file("/a/three.txt")],
            cancel_check=cancel,
        )

    assert excinfo.value.phase == "resolution"
    assert excinfo.value.kind == "cancelled"


def test_cancel_before_start() -> None:
    with pytest.raises(PreviewCancelledError) as excinfo:
        PreviewPlanner(_config()).build_preview([], cancel_check=lambda: True)

    assert excinfo.value.phase == "validation"


def test_planner_does_not_mutate_config() -> None:
    config = _config()
    snapshot = config.model_dump()

    PreviewPlanner(config).build_preview([_file("/a/x.txt")])

    assert config.model_dump() == snapshot
