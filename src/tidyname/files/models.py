"""File descriptor and extracted metadata models."""

from __future__ import annotations

import mimetypes
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class FrozenModel(BaseModel):
    """Immutable base for records produced by upstream collaborators."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class FileCategory(str, Enum):
    """Broad file category derived from the extension."""

    IMAGE = "image"
    DOCUMENT = "document"
    VIDEO = "video"
    AUDIO = "audio"
    ARCHIVE = "archive"
    CODE = "code"
    DATA = "data"
    OTHER = "other"


class MetadataCapability(str, Enum):
    """Level of metadata extraction available for a file type."""

    FULL = "full"
    BASIC = "basic"


class ExtractionStatus(str, Enum):
    """Outcome of the upstream metadata extraction."""

    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"
    UNSUPPORTED = "unsupported"


_EXTENSION_CATEGORIES: dict[str, FileCategory] = {}
for _category, _extensions in (
    (
        FileCategory.IMAGE,
        "jpg jpeg png gif webp heic heif bmp tiff tif svg ico raw cr2 nef arw dng",
    ),
    (
        FileCategory.DOCUMENT,
        "pdf doc docx txt md rtf odt xls xlsx csv ods ppt pptx odp",
    ),
    (FileCategory.VIDEO, "mp4 avi mkv mov wmv flv webm m4v mpeg mpg"),
    (FileCategory.AUDIO, "mp3 wav flac aac ogg wma m4a opus"),
    (FileCategory.ARCHIVE, "zip tar gz bz2 xz 7z rar iso"),
    (
        FileCategory.CODE,
        "js ts jsx tsx py rs go java c cpp h hpp cs rb php swift kt scala html css scss "
        "less json yaml yml xml toml sql sh bash ps1",
    ),
    (FileCategory.DATA, "db sqlite mdb accdb"),
):
    for _extension in _extensions.split():
        _EXTENSION_CATEGORIES[_extension] = _category

METADATA_SUPPORTED_EXTENSIONS = frozenset(
    "jpg jpeg png heic heif webp gif tiff tif pdf docx xlsx pptx".split()
)


def normalize_extension(extension: str) -> str:
    """Return an extension without its leading dot."""
    return extension[1:] if extension.startswith(".") else extension


def category_for_extension(extension: str) -> FileCategory:
    """Return the category associated with an extension (case-insensitive)."""
    return _EXTENSION_CATEGORIES.get(normalize_extension(extension).lower(), FileCategory.OTHER)


def is_metadata_supported(extension: str) -> bool:
    """Return True when rich metadata can be extracted for the extension."""
    return normalize_extension(extension).lower() in METADATA_SUPPORTED_EXTENSIONS


class FileDescriptor(FrozenModel):
    """Describes a file discovered by the scanner.

    Attributes:
        path: Absolute path to the file.
        name: File name without its extension.
        extension: Extension without the leading dot (empty when absent).
        size: Size in bytes.
        created_at: Creation timestamp reported by the filesystem.
        modified_at: Last modification timestamp reported by the filesystem.
        category: Category derived from the extension.
        metadata_capability: Depth of metadata available for the file type.
        relative_path: Path relative to the scanned root, when known.
        mime_type: Detected MIME type, when known.
    """

    path: Path
    name: str
    extension: str = ""
    size: int = Field(default=0, ge=0)
    created_at: datetime
    modified_at: datetime
    category: FileCategory = FileCategory.OTHER
    metadata_capability: MetadataCapability = MetadataCapability.BASIC
    relative_path: Optional[str] = None
    mime_type: Optional[str] = None

    @field_validator("extension")
    @classmethod
    def _strip_dot(cls, value: str) -> str:
        return normalize_extension(value)

    @property
    def full_name(self) -> str:
        """Return the file name including its extension."""
        return f"{self.name}.{self.extension}" if self.extension else self.name

    @property
    def directory(self) -> Path:
        """Return the directory containing the file."""
        return self.path.parent

    @property
    def metadata_supported(self) -> bool:
        """Return True when the file type supports rich metadata extraction."""
        return self.metadata_capability == MetadataCapability.FULL

    @classmethod
    def from_path(
        cls,
        path: Path | str,
        *,
        size: int = 0,
        created_at: Optional[datetime] = None,
        modified_at: Optional[datetime] = None,
        root: Optional[Path] = None,
        mime_type: Optional[str] = None,
    ) -> "FileDescriptor":
        """Build a descriptor from a path and scanner-supplied attributes.

        Args:
            path: Path to the file; it does not need to exist.
            size: Size in bytes.
            created_at: Creation timestamp; defaults to ``modified_at`` or now.
            modified_at: Modification timestamp; defaults to ``created_at`` or now.
            root: Optional scan root used to compute ``relative_path``.
            mime_type: Explicit MIME type; guessed from the name when omitted.

        Returns:
            FileDescriptor: Descriptor with category and capability derived.
        """

        file_path = Path(path)
        extension = normalize_extension(file_path.suffix)
        name = file_path.stem if extension else file_path.name
        fallback_time = created_at or modified_at or datetime.now(timezone.utc)

        relative: Optional[str] = None
        if root is not None:
            try:
                relative = file_path.relative_to(root).as_posix()
            except ValueError:
                relative = None

        return cls(
            path=file_path,
            name=name,
            extension=extension,
            size=size,
            created_at=created_at or fallback_time,
            modified_at=modified_at or fallback_time,
            category=category_for_extension(extension),
            metadata_capability=(
                MetadataCapability.FULL
                if is_metadata_supported(extension)
                else MetadataCapability.BASIC
            ),
            relative_path=relative,
            mime_type=mime_type or mimetypes.guess_type(file_path.name)[0],
        )


class GpsCoordinates(FrozenModel):
    """Decimal GPS coordinates."""

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class ImageMetadata(FrozenModel):
    """EXIF-derived image metadata.

    Attributes:
        date_taken: Capture timestamp.
        camera_make: Camera manufacturer.
        camera_model: Camera model name.
        gps: Capture location.
        width: Pixel width.
        height: Pixel height.
        orientation: EXIF orientation flag (1-8).
        exposure_time: Exposure time as reported (e.g. ``1/250``).
        f_number: Aperture f-number.
        iso: ISO speed rating.
    """

    date_taken: Optional[datetime] = None
    camera_make: Optional[str] = None
    camera_model: Optional[str] = None
    gps: Optional[GpsCoordinates] = None
    width: Optional[int] = None
    height: Optional[int] = None
    orientation: Optional[int] = None
    exposure_time: Optional[str] = None
    f_number: Optional[float] = None
    iso: Optional[int] = None


class PdfMetadata(FrozenModel):
    """Document information dictionary of a PDF."""

    title: Optional[str] = None
    author: Optional[str] = None
    subject: Optional[str] = None
    keywords: Optional[str] = None
    creator: Optional[str] = None
    producer: Optional[str] = None
    creation_date: Optional[datetime] = None
    modification_date: Optional[datetime] = None
    page_count: Optional[int] = None


class OfficeMetadata(FrozenModel):
    """Core and app properties of an Office Open XML document."""

    title: Optional[str] = None
    subject: Optional[str] = None
    creator: Optional[str] = None
    keywords: Optional[str] = None
    description: Optional[str] = None
    last_modified_by: Optional[str] = None
    created: Optional[datetime] = None
    modified: Optional[datetime] = None
    revision: Optional[int] = None
    category: Optional[str] = None
    application: Optional[str] = None
    app_version: Optional[str] = None
    page_count: Optional[int] = None
    word_count: Optional[int] = None


class UnifiedMetadata(FrozenModel):
    """A file plus at most one type-specific metadata block.

    Attributes:
        file: Descriptor of the file the metadata belongs to.
        image: EXIF block for images.
        pdf: Document information for PDFs.
        office: Core properties for Office documents.
        extraction_status: Outcome of extraction.
        extraction_error: Error message reported by a failed extraction.
    """

    file: FileDescriptor
    image: Optional[ImageMetadata] = None
    pdf: Optional[PdfMetadata] = None
    office: Optional[OfficeMetadata] = None
    extraction_status: ExtractionStatus = ExtractionStatus.UNSUPPORTED
    extraction_error: Optional[str] = None

    @model_validator(mode="after")
    def _single_block(self) -> "UnifiedMetadata":
        populated = [block for block in (self.image, self.pdf, self.office) if block is not None]
        if len(populated) > 1:
            raise ValueError("At most one of image, pdf, or office metadata may be populated.")
        return self

    @classmethod
    def empty(cls, file: FileDescriptor) -> "UnifiedMetadata":
        """Return metadata for a file without any extracted block."""
        return cls(file=file, extraction_status=ExtractionStatus.UNSUPPORTED)


__all__ = [
    "FileCategory",
    "MetadataCapability",
    "ExtractionStatus",
    "METADATA_SUPPORTED_EXTENSIONS",
    "normalize_extension",
    "category_for_extension",
    "is_metadata_supported",
    "FileDescriptor",
    "GpsCoordinates",
    "ImageMetadata",
    "PdfMetadata",
    "OfficeMetadata",
    "UnifiedMetadata",
]
