"""
Error taxonomy for bridge operations.

Each error knows the HTTP status and the JSON body it is reported with, so
route handlers only have to raise.
"""

from typing import Any, Optional


class BridgeError(Exception):
    """Base class for failures reported to the external caller."""

    status_code: int = 500
    error: str = "Internal error"

    def __init__(self, message: Optional[str] = None, error: Optional[str] = None, **details: Any):
        if error:
            self.error = error
        super().__init__(message or self.error)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        """Render the JSON error body."""
        body: dict[str, Any] = {"error": self.error}
        if self.message is not None:
            body["message"] = self.message
        body.update(self.details)
        return body


class MalformedRequest(BridgeError):
    """Request body could not be parsed as a JSON object."""

    status_code = 400
    error = "Invalid JSON"


class MissingField(BridgeError):
    """A required request field is absent or empty."""

    status_code = 400

    def __init__(self, field: str):
        super().__init__(error=f"Missing required field: {field}")
        self.field = field


class NotFound(BridgeError):
    """A referenced item, parent or citekey does not exist."""

    status_code = 404
    error = "Item not found"

    def __init__(self, error: Optional[str] = None, **details: Any):
        super().__init__(error=error, **details)


class InternalError(BridgeError):
    """Unexpected failure while talking to the item store."""

    status_code = 500
    error = "Internal error"

    def __init__(self, message: str):
        super().__init__(message)


class StoreError(Exception):
    """Raised by item store implementations when an operation fails."""
