"""Error taxonomy shared by the store, the AI adapter and the HTTP layer.

Every error carries the HTTP status the endpoint layer answers with, so the
app needs a single exception handler for the whole family.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class InventoryError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, *, hint: Optional[str] = None) -> None:
        self.message = message or self.default_message
        self.hint = hint
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.message}
        if self.hint:
            payload["message"] = self.hint
        return payload


class ValidationError(InventoryError):
    status_code = 400
    default_message = "Invalid request"


class NotFoundError(InventoryError):
    status_code = 404
    default_message = "Product not found"


class StorageError(InventoryError):
    status_code = 500
    default_message = "Database error"


class AIUnavailableError(InventoryError):
    status_code = 503
    default_message = "AI service unavailable"


class AIRateLimitError(InventoryError):
    status_code = 429
    default_message = "Rate limit exceeded. Please wait and try again."


class AIConfigurationError(InventoryError):
    status_code = 500
    default_message = "AI service misconfigured: the OpenAI API key was rejected"


class AIFailureError(InventoryError):
    status_code = 500
    default_message = "AI analysis failed"


__all__ = [
    "InventoryError",
    "ValidationError",
    "NotFoundError",
    "StorageError",
    "AIUnavailableError",
    "AIRateLimitError",
    "AIConfigurationError",
    "AIFailureError",
]
