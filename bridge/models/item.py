"""
Data models for library items.
"""

from typing import Optional
from pydantic import BaseModel, Field


ATTACHMENT = "attachment"
NOTE = "note"
ANNOTATION = "annotation"

# Item types that are never regular (bibliographic) items
CHILD_ITEM_TYPES = (ATTACHMENT, NOTE, ANNOTATION)

DEFAULT_ANNOTATION_COLOR = "#ffd400"
PDF_CONTENT_TYPE = "application/pdf"


class Item(BaseModel):
    """
    A node in the library's item graph.

    Regular items carry bibliographic fields and creators, attachments carry
    content type and file path, notes carry a body and annotations carry the
    annotation field set. ``id`` and ``key`` are assigned by the item store
    when the item is first saved.
    """

    id: Optional[int] = Field(None, description="Internal item ID, assigned by the store")
    key: Optional[str] = Field(None, description="Library-unique item key")
    library_id: int = Field(default=1, description="Owning library")
    item_type: str = Field(..., description="Zotero item type, e.g. journalArticle")
    parent_id: Optional[int] = Field(None, description="ID of the parent item")

    fields: dict[str, str] = Field(default_factory=dict, description="Bibliographic fields")
    creators: list[dict[str, str]] = Field(default_factory=list, description="Creator records")
    date_added: Optional[str] = None
    date_modified: Optional[str] = None

    # Attachment
    attachment_content_type: Optional[str] = None
    attachment_path: Optional[str] = None

    # Note
    note: Optional[str] = None

    # Annotation
    annotation_type: Optional[str] = None
    annotation_text: Optional[str] = None
    annotation_comment: Optional[str] = None
    annotation_color: Optional[str] = None
    annotation_page_label: Optional[str] = None
    annotation_sort_index: Optional[str] = None
    annotation_position: Optional[str] = None

    def is_regular_item(self) -> bool:
        return self.item_type not in CHILD_ITEM_TYPES

    def is_attachment(self) -> bool:
        return self.item_type == ATTACHMENT

    def is_note(self) -> bool:
        return self.item_type == NOTE

    def is_annotation(self) -> bool:
        return self.item_type == ANNOTATION

    def get_field(self, name: str) -> str:
        """Get a bibliographic field, returning an empty string when unset."""
        return self.fields.get(name) or ""

    def set_field(self, name: str, value: str):
        self.fields[name] = value

    def get_creators_json(self) -> list[dict[str, str]]:
        """Get a copy of the creator records."""
        return [dict(creator) for creator in self.creators]
