"""Data models for the bridge."""

from bridge.models.item import Item
from bridge.models.annotation import (
    AnnotationPosition,
    AnnotationRecord,
    AttachmentRecord,
    ChildrenResponse,
    CreateAnnotationRequest,
    CreateAnnotationResponse,
    HighlightColor,
    ItemRecord,
    PingResponse,
)

__all__ = [
    "Item",
    "AnnotationPosition",
    "AnnotationRecord",
    "AttachmentRecord",
    "ChildrenResponse",
    "CreateAnnotationRequest",
    "CreateAnnotationResponse",
    "HighlightColor",
    "ItemRecord",
    "PingResponse",
]
