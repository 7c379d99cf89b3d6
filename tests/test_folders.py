"""Tests for folder pattern validation and resolution."""

from datetime import datetime
from pathlib import Path

import pytest

from tidyname.errors import InvalidPatternError, MissingMetadataError
from tidyname.files.models import (
    FileDescriptor,
    ImageMetadata,
    PdfMetadata,
    UnifiedMetadata,
)
from tidyname.organization.folders import (
    FolderPathResolver,
    clean_segment_value,
    normalize_folder_pattern,
    validate_folder_pattern,
)


def _photo(**image: object) -> UnifiedMetadata:
    descriptor = FileDescriptor.from_path(Path("/in/photo.jpg"))
    return UnifiedMetadata(
        file=descriptor,
        image=ImageMetadata.model_validate({"date_taken": datetime(2026, 1, 10), **image}),
    )


def test_normalize_folder_pattern() -> None:
    assert normalize_folder_pattern("\\{year}//{month}/") == "{year}/{month}"


def test_validate_accepts_known_placeholders() -> None:
    validation = validate_folder_pattern("Photos/{year}/{month}")

    assert validation.valid
    assert validation.errors == []
    assert validation.warnings == []
    assert validation.placeholders == ["year", "month"]


def test_validate_reports_errors() -> None:
    assert validate_folder_pattern("  ").errors == ["Folder pattern cannot be empty."]

    braces = validate_folder_pattern("{year/{}")
    assert not braces.valid
    assert any("Nested braces" in error for error in braces.errors)

    characters = validate_folder_pattern("Photos|Old/{year}")
    assert not characters.valid
    assert "invalid characters" in characters.errors[0]


def test_validate_reports_warnings() -> None:
    validation = validate_folder_pattern("con/{project}/Draft./trailing ")

    assert validation.valid
    assert any("reserved name" in warning for warning in validation.warnings)
    assert any("{project}" in warning for warning in validation.warnings)
    assert any("ends with a dot" in warning for warning in validation.warnings)
    assert any("ends with a space" in warning for warning in validation.warnings)


def test_clean_segment_value() -> None:
    assert clean_segment_value(' AC/DC: "Live" ') == "AC-DC Live"


def test_resolve_builds_relative_path() -> None:
    resolution = FolderPathResolver().resolve("/{year}/{month}/", _photo())

    assert resolution.resolved_path == "2026/01"
    assert resolution.used_fallbacks is False
    assert resolution.resolved_placeholders["year"].value == "2026"


def test_resolve_keeps_values_inside_one_segment() -> None:
    resolution = FolderPathResolver().resolve(
        "{camera}", _photo(camera_make="Foo/Bar", camera_model="X1")
    )

    assert resolution.resolved_path == "Foo-Bar X1"


def test_resolve_uses_fallbacks() -> None:
    resolution = FolderPathResolver().resolve(
        "{year}/{camera}", _photo(), fallbacks={"camera": "Unknown"}
    )

    assert resolution.resolved_path == "2026/Unknown"
    assert resolution.used_fallbacks is True


def test_resolve_raises_for_missing_and_invalid() -> None:
    resolver = FolderPathResolver()

    with pytest.raises(MissingMetadataError) as excinfo:
        resolver.resolve("{camera}/{location}", _photo())
    assert excinfo.value.missing_fields == ["camera", "location"]

    with pytest.raises(InvalidPatternError) as invalid:
        resolver.resolve("", _photo())
    assert invalid.value.errors == ["Folder pattern cannot be empty."]


def _report(author: str) -> UnifiedMetadata:
    descriptor = FileDescriptor.from_path(Path("/in/report.pdf"))
    return UnifiedMetadata(file=descriptor, pdf=PdfMetadata(author=author))


@pytest.mark.parametrize("author", ["..", ".", " .. "])
def test_resolve_rejects_relative_directory_values(author: str) -> None:
    with pytest.raises(InvalidPatternError) as excinfo:
        FolderPathResolver().resolve("{author}/docs", _report(author))

    assert excinfo.value.errors == [f"Resolved segment {author.strip()!r} is not allowed."]


def test_relative_directory_literals_are_invalid() -> None:
    validation = validate_folder_pattern("archive/../{year}")

    assert not validation.valid
    assert validation.errors == ["Segment '..' is a relative directory reference."]
