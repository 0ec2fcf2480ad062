"""
Projections of store items into the compact JSON records returned to callers.
"""

from typing import Any

from bridge.models.item import Item


def item_summary(item: Item) -> dict[str, Any]:
    """Search result summary of a regular item."""
    return {
        "id": item.id,
        "key": item.key,
        "itemType": item.item_type,
        "title": item.get_field("title"),
        "creators": item.get_creators_json(),
        "date": item.get_field("date"),
        "extra": item.get_field("extra"),
    }


def attachment_summary(attachment: Item) -> dict[str, Any]:
    return {
        "id": attachment.id,
        "key": attachment.key,
        "title": attachment.get_field("title"),
        "contentType": attachment.attachment_content_type,
        "path": attachment.attachment_path,
    }


def attachment_child(attachment: Item) -> dict[str, Any]:
    summary = attachment_summary(attachment)
    summary["itemType"] = "attachment"
    return summary


def note_child(note: Item) -> dict[str, Any]:
    return {
        "id": note.id,
        "key": note.key,
        "itemType": "note",
        "note": note.note or "",
    }


def annotation_child(annotation: Item) -> dict[str, Any]:
    """Full field set of an annotation."""
    return {
        "id": annotation.id,
        "key": annotation.key,
        "itemType": "annotation",
        "annotationType": annotation.annotation_type,
        "text": annotation.annotation_text,
        "comment": annotation.annotation_comment,
        "color": annotation.annotation_color,
        "pageLabel": annotation.annotation_page_label,
        "sortIndex": annotation.annotation_sort_index,
        "position": annotation.annotation_position,
    }
