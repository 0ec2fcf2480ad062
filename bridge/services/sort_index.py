"""
Annotation sort index and position synthesis.

Annotations are ordered within a document by their sort index, a string of
three zero-padded groups ``PPPPP|OOOOOO|LLLLL`` (page index, character
offset, character length). The store compares sort indexes as plain strings,
so the group widths must never change.
"""

import json
import math
import re
from typing import Any, Optional, Union

PAGE_INDEX_WIDTH = 5
OFFSET_WIDTH = 6
LENGTH_WIDTH = 5

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def format_sort_index(page_index: int, offset: int = 0, length: int = 0) -> str:
    """Format the three sort index groups with their fixed widths."""
    return "|".join([
        str(page_index).zfill(PAGE_INDEX_WIDTH),
        str(offset).zfill(OFFSET_WIDTH),
        str(length).zfill(LENGTH_WIDTH),
    ])


def parse_leading_int(value: Any) -> Optional[int]:
    """
    Parse the leading integer of a value, e.g. ``"12a"`` -> 12.

    Returns None for booleans, empty values, non-finite floats (JSON
    ``1e400``, ``NaN``) and strings without a leading integer.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def derive_page_index(
    position: Union[dict[str, Any], str, None] = None,
    page_label: Any = None,
) -> int:
    """
    Derive the 0-based page index of an annotation.

    A numeric ``pageIndex`` in a structured position wins. Otherwise the
    1-based page label is converted; anything unparsable yields page 0.
    """
    if isinstance(position, dict):
        page_index = position.get("pageIndex")
        if isinstance(page_index, float) and not math.isfinite(page_index):
            page_index = None
        if isinstance(page_index, (int, float)) and not isinstance(page_index, bool):
            return max(int(page_index), 0)

    if page_label:
        page_number = parse_leading_int(page_label)
        if page_number is not None:
            return max(page_number - 1, 0)

    return 0


def synthesize_sort_index(
    sort_index: Optional[str] = None,
    position: Union[dict[str, Any], str, None] = None,
    page_label: Any = None,
) -> str:
    """
    Get the sort index to store for an annotation.

    An explicit sort index is used verbatim. Offset and length cannot be
    derived from a page-level description and are always zero.
    """
    if sort_index:
        return str(sort_index)
    return format_sort_index(derive_page_index(position, page_label))


def serialize_position(position: Union[dict[str, Any], list, str, None]) -> Optional[str]:
    """Serialize a position payload to the text form stored on the annotation."""
    if position is None or position == "":
        return None
    if isinstance(position, str):
        return position
    return json.dumps(position, separators=(",", ":"))
