"""Typed access to metadata fields referenced by rule conditions."""

from __future__ import annotations

import json
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional

from pydantic import BaseModel

from .models import ImageMetadata, UnifiedMetadata


class FieldNamespace(str, Enum):
    """Top-level namespace of a metadata field path."""

    IMAGE = "image"
    PDF = "pdf"
    OFFICE = "office"
    FILE = "file"


class MetadataField(str, Enum):
    """Every dotted field path a rule condition may reference."""

    IMAGE_DATE_TAKEN = "image.dateTaken"
    IMAGE_CAMERA_MAKE = "image.cameraMake"
    IMAGE_CAMERA_MODEL = "image.cameraModel"
    IMAGE_CAMERA = "image.camera"
    IMAGE_MAKE = "image.make"
    IMAGE_MODEL = "image.model"
    IMAGE_GPS = "image.gps"
    IMAGE_GPS_LATITUDE = "image.gps.latitude"
    IMAGE_GPS_LONGITUDE = "image.gps.longitude"
    IMAGE_WIDTH = "image.width"
    IMAGE_HEIGHT = "image.height"
    IMAGE_ORIENTATION = "image.orientation"
    IMAGE_EXPOSURE_TIME = "image.exposureTime"
    IMAGE_F_NUMBER = "image.fNumber"
    IMAGE_ISO = "image.iso"

    PDF_TITLE = "pdf.title"
    PDF_AUTHOR = "pdf.author"
    PDF_SUBJECT = "pdf.subject"
    PDF_KEYWORDS = "pdf.keywords"
    PDF_CREATOR = "pdf.creator"
    PDF_PRODUCER = "pdf.producer"
    PDF_CREATION_DATE = "pdf.creationDate"
    PDF_MODIFICATION_DATE = "pdf.modificationDate"
    PDF_PAGE_COUNT = "pdf.pageCount"

    OFFICE_TITLE = "office.title"
    OFFICE_SUBJECT = "office.subject"
    OFFICE_CREATOR = "office.creator"
    OFFICE_AUTHOR = "office.author"
    OFFICE_KEYWORDS = "office.keywords"
    OFFICE_DESCRIPTION = "office.description"
    OFFICE_LAST_MODIFIED_BY = "office.lastModifiedBy"
    OFFICE_CREATED = "office.created"
    OFFICE_MODIFIED = "office.modified"
    OFFICE_REVISION = "office.revision"
    OFFICE_CATEGORY = "office.category"
    OFFICE_APPLICATION = "office.application"
    OFFICE_APP_VERSION = "office.appVersion"
    OFFICE_PAGE_COUNT = "office.pageCount"
    OFFICE_WORD_COUNT = "office.wordCount"

    FILE_PATH = "file.path"
    FILE_NAME = "file.name"
    FILE_EXTENSION = "file.extension"
    FILE_FULL_NAME = "file.fullName"
    FILE_SIZE = "file.size"
    FILE_CREATED_AT = "file.createdAt"
    FILE_MODIFIED_AT = "file.modifiedAt"
    FILE_RELATIVE_PATH = "file.relativePath"
    FILE_MIME_TYPE = "file.mimeType"
    FILE_CATEGORY = "file.category"
    FILE_METADATA_SUPPORTED = "file.metadataSupported"
    FILE_METADATA_CAPABILITY = "file.metadataCapability"

    @property
    def namespace(self) -> FieldNamespace:
        """Return the namespace portion of the field path."""
        return FieldNamespace(self.value.split(".", 1)[0])


def _camera(image: ImageMetadata) -> Optional[str]:
    if image.camera_make and image.camera_model:
        return f"{image.camera_make} {image.camera_model}"
    return image.camera_make or image.camera_model


def _image(getter: Callable[[ImageMetadata], Any]) -> Callable[[UnifiedMetadata], Any]:
    return lambda metadata: getter(metadata.image) if metadata.image is not None else None


def _pdf(attribute: str) -> Callable[[UnifiedMetadata], Any]:
    return lambda metadata: getattr(metadata.pdf, attribute) if metadata.pdf is not None else None


def _office(attribute: str) -> Callable[[UnifiedMetadata], Any]:
    return lambda metadata: (
        getattr(metadata.office, attribute) if metadata.office is not None else None
    )


def _file(getter: Callable[[Any], Any]) -> Callable[[UnifiedMetadata], Any]:
    return lambda metadata: getter(metadata.file)


_ACCESSORS: dict[MetadataField, Callable[[UnifiedMetadata], Any]] = {
    MetadataField.IMAGE_DATE_TAKEN: _image(lambda image: image.date_taken),
    MetadataField.IMAGE_CAMERA_MAKE: _image(lambda image: image.camera_make),
    MetadataField.IMAGE_CAMERA_MODEL: _image(lambda image: image.camera_model),
    MetadataField.IMAGE_CAMERA: _image(_camera),
    MetadataField.IMAGE_MAKE: _image(lambda image: image.camera_make),
    MetadataField.IMAGE_MODEL: _image(lambda image: image.camera_model),
    MetadataField.IMAGE_GPS: _image(lambda image: image.gps),
    MetadataField.IMAGE_GPS_LATITUDE: _image(
        lambda image: image.gps.latitude if image.gps else None
    ),
    MetadataField.IMAGE_GPS_LONGITUDE: _image(
        lambda image: image.gps.longitude if image.gps else None
    ),
    MetadataField.IMAGE_WIDTH: _image(lambda image: image.width),
    MetadataField.IMAGE_HEIGHT: _image(lambda image: image.height),
    MetadataField.IMAGE_ORIENTATION: _image(lambda image: image.orientation),
    MetadataField.IMAGE_EXPOSURE_TIME: _image(lambda image: image.exposure_time),
    MetadataField.IMAGE_F_NUMBER: _image(lambda image: image.f_number),
    MetadataField.IMAGE_ISO: _image(lambda image: image.iso),
    MetadataField.PDF_TITLE: _pdf("title"),
    MetadataField.PDF_AUTHOR: _pdf("author"),
    MetadataField.PDF_SUBJECT: _pdf("subject"),
    MetadataField.PDF_KEYWORDS: _pdf("keywords"),
    MetadataField.PDF_CREATOR: _pdf("creator"),
    MetadataField.PDF_PRODUCER: _pdf("producer"),
    MetadataField.PDF_CREATION_DATE: _pdf("creation_date"),
    MetadataField.PDF_MODIFICATION_DATE: _pdf("modification_date"),
    MetadataField.PDF_PAGE_COUNT: _pdf("page_count"),
    MetadataField.OFFICE_TITLE: _office("title"),
    MetadataField.OFFICE_SUBJECT: _office("subject"),
    MetadataField.OFFICE_CREATOR: _office("creator"),
    MetadataField.OFFICE_AUTHOR: _office("creator"),
    MetadataField.OFFICE_KEYWORDS: _office("keywords"),
    MetadataField.OFFICE_DESCRIPTION: _office("description"),
    MetadataField.OFFICE_LAST_MODIFIED_BY: _office("last_modified_by"),
    MetadataField.OFFICE_CREATED: _office("created"),
    MetadataField.OFFICE_MODIFIED: _office("modified"),
    MetadataField.OFFICE_REVISION: _office("revision"),
    MetadataField.OFFICE_CATEGORY: _office("category"),
    MetadataField.OFFICE_APPLICATION: _office("application"),
    MetadataField.OFFICE_APP_VERSION: _office("app_version"),
    MetadataField.OFFICE_PAGE_COUNT: _office("page_count"),
    MetadataField.OFFICE_WORD_COUNT: _office("word_count"),
    MetadataField.FILE_PATH: _file(lambda file: file.path),
    MetadataField.FILE_NAME: _file(lambda file: file.name),
    MetadataField.FILE_EXTENSION: _file(lambda file: file.extension),
    MetadataField.FILE_FULL_NAME: _file(lambda file: file.full_name),
    MetadataField.FILE_SIZE: _file(lambda file: file.size),
    MetadataField.FILE_CREATED_AT: _file(lambda file: file.created_at),
    MetadataField.FILE_MODIFIED_AT: _file(lambda file: file.modified_at),
    MetadataField.FILE_RELATIVE_PATH: _file(lambda file: file.relative_path),
    MetadataField.FILE_MIME_TYPE: _file(lambda file: file.mime_type),
    MetadataField.FILE_CATEGORY: _file(lambda file: file.category),
    MetadataField.FILE_METADATA_SUPPORTED: _file(lambda file: file.metadata_supported),
    MetadataField.FILE_METADATA_CAPABILITY: _file(lambda file: file.metadata_capability),
}


def is_known_field(path: str) -> bool:
    """Return True when ``path`` names a supported metadata field."""
    try:
        MetadataField(path)
    except ValueError:
        return False
    return True


def get_field_value(metadata: UnifiedMetadata, field: MetadataField | str) -> Any:
    """Return the raw value stored at ``field`` or None when absent.

    Args:
        metadata: Unified metadata for a single file.
        field: Field enum member or its dotted path.

    Returns:
        Any: The raw value, or None when the block or the value is missing.

    Raises:
        ValueError: If ``field`` is not a supported path.
    """

    return _ACCESSORS[MetadataField(field)](metadata)


def field_value_to_string(value: Any) -> Optional[str]:
    """Render a raw field value as the string used for comparisons."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Path):
        return value.as_posix()
    if isinstance(value, BaseModel):
        return json.dumps(value.model_dump(mode="json"), sort_keys=True)
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True, default=str)
    return str(value)


def resolve_field(metadata: UnifiedMetadata, field: MetadataField | str) -> Optional[str]:
    """Return the string form of ``field`` or None when it is absent."""
    return field_value_to_string(get_field_value(metadata, field))


__all__ = [
    "FieldNamespace",
    "MetadataField",
    "is_known_field",
    "get_field_value",
    "field_value_to_string",
    "resolve_field",
]
