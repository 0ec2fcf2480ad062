"""
Request body normalization.

Request bodies arrive as already-parsed mappings, raw bytes, JSON text or
percent-encoded JSON text (some HTTP clients send ``text/plain`` bodies
URL-encoded). Everything is turned into one plain dict before any handler
logic runs.
"""

import json
import logging
from typing import Any, Mapping, Optional, Union
from urllib.parse import unquote

from bridge.errors import MalformedRequest

logger = logging.getLogger(__name__)

PERCENT_ENCODED_MARKER = "%"

RawBody = Union[Mapping[str, Any], bytes, str, None]


def normalize_body(raw: RawBody, tolerant: bool = False) -> dict[str, Any]:
    """
    Normalize a raw request body into a dict of field name to value.

    Args:
        raw: Parsed mapping, bytes, JSON text or percent-encoded JSON text
        tolerant: Return an empty dict instead of failing on unparsable input

    Returns:
        Canonical request mapping (empty for an absent or blank body)

    Raises:
        MalformedRequest: If the body is not a JSON object and ``tolerant`` is False
    """
    if isinstance(raw, Mapping):
        return dict(raw)

    try:
        text = _as_text(raw)
        if text is None:
            return {}
        if text.startswith(PERCENT_ENCODED_MARKER):
            text = unquote(text)
        data = json.loads(text)
        if not isinstance(data, dict):
            raise MalformedRequest(
                f"Expected a JSON object, got {type(data).__name__}"
            )
        return data

    except MalformedRequest:
        if tolerant:
            logger.debug("Ignoring malformed request body")
            return {}
        raise
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        if tolerant:
            logger.debug(f"Ignoring malformed request body: {e}")
            return {}
        raise MalformedRequest(str(e)) from e


def _as_text(raw: RawBody) -> Optional[str]:
    if raw is None:
        return None
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    if not raw.strip():
        return None
    return raw.strip()
