"""
Request and response models for the bridge's annotation and item endpoints.

These are the typed views used by Python callers of the bridge
(``bridge.zotero.client``); the wire format uses camelCase field names.
"""

from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from bridge.models.item import DEFAULT_ANNOTATION_COLOR


class HighlightColor(str, Enum):
    """Semantic highlight colors and their hex codes."""

    SECTION1 = "#2ea8e5"  # Blue: primary organization
    SECTION2 = "#a28ae5"  # Purple: secondary organization
    SECTION3 = "#e56eee"  # Magenta: tertiary organization
    POSITIVE = "#5fb236"  # Green: agreement, support
    DETAIL = "#aaaaaa"    # Grey: detail, context
    NEGATIVE = "#ff6666"  # Red: disagreement, criticism
    CODE = "#f19837"      # Orange: code, technical content

    @property
    def hex(self) -> str:
        return self.value

    @property
    def description(self) -> str:
        return COLOR_DESCRIPTIONS[self]

    @classmethod
    def from_name(cls, name: str) -> "HighlightColor":
        """
        Look up a color by its lowercase name, e.g. ``"positive"``.

        Raises:
            ValueError: If no color has that name
        """
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown highlight color: {name}") from None


COLOR_DESCRIPTIONS = {
    HighlightColor.SECTION1: "Section 1 / Primary organization",
    HighlightColor.SECTION2: "Section 2 / Secondary organization",
    HighlightColor.SECTION3: "Section 3 / Tertiary organization",
    HighlightColor.POSITIVE: "Positive point / Agreement",
    HighlightColor.DETAIL: "Point detail / Context",
    HighlightColor.NEGATIVE: "Negative point / Criticism",
    HighlightColor.CODE: "Code / Technical content",
}


class WireModel(BaseModel):
    """Base model serializing to camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class AnnotationPosition(WireModel):
    """Position of an annotation on a PDF page."""

    page_index: int = Field(..., ge=0, description="Zero-based page index")
    rects: list[list[float]] = Field(
        default_factory=list,
        description="Rectangles [x1, y1, x2, y2] in PDF coordinates"
    )


class CreateAnnotationRequest(WireModel):
    """Request to create an annotation on a PDF attachment."""

    parent_item_key: str = Field(..., description="Key of the parent PDF attachment")
    annotation_type: Optional[str] = None
    text: Optional[str] = None
    comment: Optional[str] = None
    color: Optional[str] = None
    page_label: Optional[str] = None
    sort_index: Optional[str] = None
    position: Optional[AnnotationPosition] = None

    @classmethod
    def highlight(
        cls,
        parent_item_key: str,
        text: str,
        page_index: int,
        rects: list[list[float]],
    ) -> "CreateAnnotationRequest":
        """Create a highlight request for text on a 0-based page."""
        return cls(
            parent_item_key=parent_item_key,
            annotation_type="highlight",
            text=text,
            color=DEFAULT_ANNOTATION_COLOR,
            page_label=str(page_index + 1),
            position=AnnotationPosition(page_index=page_index, rects=rects),
        )

    @classmethod
    def area(
        cls,
        parent_item_key: str,
        page_index: int,
        rect: list[float],
    ) -> "CreateAnnotationRequest":
        """
        Create an area (image) annotation request.

        Area annotations select a region such as a figure and carry no text.
        """
        return cls(
            parent_item_key=parent_item_key,
            annotation_type="image",
            color=DEFAULT_ANNOTATION_COLOR,
            page_label=str(page_index + 1),
            position=AnnotationPosition(page_index=page_index, rects=[list(rect)]),
        )

    def with_comment(self, comment: str) -> "CreateAnnotationRequest":
        return self.model_copy(update={"comment": comment})

    def with_color(self, color: str) -> "CreateAnnotationRequest":
        return self.model_copy(update={"color": color})

    def with_semantic_color(self, color: HighlightColor) -> "CreateAnnotationRequest":
        return self.with_color(color.hex)


class AnnotationRecord(WireModel):
    """Annotation as returned by the bridge."""

    id: Optional[int] = None
    key: Optional[str] = None
    parent_item_key: Optional[str] = None
    type: Optional[str] = None
    text: Optional[str] = None
    color: Optional[str] = None
    page_label: Optional[str] = None


class CreateAnnotationResponse(WireModel):
    """Response from annotation creation."""

    success: bool
    annotation: Optional[AnnotationRecord] = None
    error: Optional[str] = None


class ItemRecord(WireModel):
    """Summary of a library item."""

    id: Optional[int] = None
    key: str
    item_type: str
    title: Optional[str] = None
    creators: list[dict[str, Any]] = Field(default_factory=list)
    date: Optional[str] = None
    extra: Optional[str] = None
    citekey: Optional[str] = None
    attachments: list["AttachmentRecord"] = Field(default_factory=list)


class AttachmentRecord(WireModel):
    """File attachment of an item."""

    id: Optional[int] = None
    key: str
    title: Optional[str] = None
    content_type: Optional[str] = None
    path: Optional[str] = None


class PingResponse(WireModel):
    """Response from the ping endpoint."""

    status: str
    plugin: Optional[str] = None
    version: Optional[str] = None
    host_version: Optional[str] = None


class ChildrenResponse(WireModel):
    """Response from the children endpoint."""

    parent_key: Optional[str] = None
    children: list[dict[str, Any]] = Field(default_factory=list)


ItemRecord.model_rebuild()
