"""
Error taxonomy shared by the services and the HTTP layer.

Services raise these; the app factory turns them into ``{"error": ...}``
JSON responses with the matching status code.
"""

from __future__ import annotations

from typing import Optional

from pydantic import ValidationError


class ApiError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_payload(self) -> dict:
        return {"error": self.message}


class InvalidInput(ApiError):
    status_code = 400
    default_message = "Invalid input"

    def __init__(self, message: str | None = None, fields: Optional[dict] = None):
        super().__init__(message)
        self.fields = fields or {}

    def to_payload(self) -> dict:
        payload = super().to_payload()
        if self.fields:
            payload["fields"] = self.fields
        return payload

    @classmethod
    def from_errors(cls, errors: list[dict]) -> "InvalidInput":
        """Build from pydantic-style error dicts (``loc``, ``msg``, ``type``)."""
        fields: dict[str, str] = {}
        for error in errors:
            loc = [
                str(part)
                for part in error.get("loc", ())
                if part != "body" and not isinstance(part, int)
            ]
            name = ".".join(loc) or "body"
            fields.setdefault(name, _describe(name, error))
        return cls("; ".join(fields.values()) or None, fields=fields)

    @classmethod
    def from_validation_error(cls, exc: ValidationError) -> "InvalidInput":
        return cls.from_errors(exc.errors())


class Unauthenticated(ApiError):
    status_code = 401
    default_message = "Authentication failed"


class Forbidden(ApiError):
    status_code = 403
    default_message = "Access denied"


class NotFound(ApiError):
    status_code = 404
    default_message = "Not found"


class ServiceUnavailable(ApiError):
    status_code = 500
    default_message = "Service unavailable"


class InternalError(ApiError):
    """Unexpected failure; the detail stays in the logs."""

    status_code = 500


def _describe(name: str, error: dict) -> str:
    if error.get("type") == "missing":
        return f"{name} is required"
    msg = str(error.get("msg", "is invalid"))
    if msg.startswith("Value error, "):
        return msg[len("Value error, "):]
    return f"{name}: {msg}"
