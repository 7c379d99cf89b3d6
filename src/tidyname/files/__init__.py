"""File descriptors, extracted metadata, and field access helpers."""

from .fields import MetadataField, get_field_value, resolve_field
from .models import (
    ExtractionStatus,
    FileCategory,
    FileDescriptor,
    GpsCoordinates,
    ImageMetadata,
    MetadataCapability,
    OfficeMetadata,
    PdfMetadata,
    UnifiedMetadata,
)

__all__ = [
    "ExtractionStatus",
    "FileCategory",
    "FileDescriptor",
    "GpsCoordinates",
    "ImageMetadata",
    "MetadataCapability",
    "MetadataField",
    "OfficeMetadata",
    "PdfMetadata",
    "UnifiedMetadata",
    "get_field_value",
    "resolve_field",
]
