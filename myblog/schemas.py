"""
Pydantic schemas for the blog API.

Request schemas do the trimming, defaulting and coercion of client input, so
services only ever see clean values.
"""

from __future__ import annotations

import math
import re
from typing import Any, Literal, Optional

from pydantic import BaseModel, ValidationError, ValidationInfo, field_validator

from myblog.errors import InvalidInput

CONTACT_TYPES = ("whatsapp", "telegram", "email", "phone", "website", "other")

TITLE_MAX_LENGTH = 200
CONTENT_MAX_LENGTH = 10000

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")

# Bounds of the 32-bit "order" column.
ORDER_MIN = -(2**31)
ORDER_MAX = 2**31 - 1


def _required_text(value: str, info: ValidationInfo) -> str:
    value = value.strip()
    if not value:
        raise ValueError(f"{info.field_name} is required")
    return value


def coerce_order(value: Any) -> Optional[int]:
    """Best-effort integer parse: ``"12px"`` -> 12, ``2.9`` -> 2, junk -> 0.

    Results are clamped to the range the store can hold.
    """
    if value is None:
        return None
    return max(ORDER_MIN, min(ORDER_MAX, _parse_order(value)))


def _parse_order(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        if not match:
            return 0
        number = match.group(1)
        if len(number.lstrip("+-").lstrip("0")) > 12:
            # Skip parsing huge digit runs; they clamp anyway.
            return ORDER_MIN if number.startswith("-") else ORDER_MAX
        return int(number)
    return 0


def parse_input(schema: type[BaseModel], payload: Any) -> Any:
    """Validate ``payload`` against ``schema``, raising ``InvalidInput``."""
    if isinstance(payload, schema):
        return payload
    try:
        return schema.model_validate(payload)
    except ValidationError as exc:
        raise InvalidInput.from_validation_error(exc)


class PostInput(BaseModel):
    title: str
    content: str

    @field_validator("title", "content")
    @classmethod
    def _strip(cls, value: str, info: ValidationInfo) -> str:
        value = _required_text(value, info)
        limit = TITLE_MAX_LENGTH if info.field_name == "title" else CONTENT_MAX_LENGTH
        if len(value) > limit:
            raise ValueError(f"{info.field_name} must be at most {limit} characters")
        return value


class ContactInput(BaseModel):
    type: str
    label: str
    value: str
    icon: Optional[str] = None
    isActive: Optional[bool] = None
    order: Optional[int] = None

    @field_validator("type")
    @classmethod
    def _normalize_type(cls, value: str, info: ValidationInfo) -> str:
        value = _required_text(value, info).lower()
        if value not in CONTACT_TYPES:
            raise ValueError("Invalid contact type")
        return value

    @field_validator("label", "value")
    @classmethod
    def _strip(cls, value: str, info: ValidationInfo) -> str:
        return _required_text(value, info)

    @field_validator("icon")
    @classmethod
    def _strip_icon(cls, value: Optional[str]) -> Optional[str]:
        return value.strip() if value is not None else None

    @field_validator("order", mode="before")
    @classmethod
    def _coerce_order(cls, value: Any) -> Optional[int]:
        return coerce_order(value)


class SupportMessageInput(BaseModel):
    name: str
    email: str
    message: str
    subject: Optional[str] = None

    @field_validator("name", "message")
    @classmethod
    def _strip(cls, value: str, info: ValidationInfo) -> str:
        return _required_text(value, info)

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str, info: ValidationInfo) -> str:
        value = _required_text(value, info).lower()
        if not EMAIL_PATTERN.match(value):
            raise ValueError("Invalid email format")
        return value

    @field_validator("subject")
    @classmethod
    def _strip_subject(cls, value: Optional[str]) -> str:
        return (value or "").strip()


class PostResponse(BaseModel):
    id: str
    title: str
    content: str
    authorId: str
    createdAt: str
    updatedAt: str


class ContactResponse(BaseModel):
    id: str
    type: str
    label: str
    value: str
    icon: str
    isActive: bool
    order: int
    createdAt: str
    updatedAt: str


class SupportMessageResponse(BaseModel):
    id: str
    name: str
    email: str
    subject: str
    message: str
    status: Literal["new", "read", "replied"]
    telegramSent: bool
    createdAt: str


class SupportCreatedResponse(BaseModel):
    id: str
    message: str
    telegramSent: bool


class DeletedResponse(BaseModel):
    message: str
    id: Optional[str] = None


class MessageResponse(BaseModel):
    message: str


class MediaFileResponse(BaseModel):
    id: str
    originalName: str
    filename: str
    mimetype: str
    size: int
    path: str
    type: Literal["image", "video"]
    uploadedAt: str
    uploadedBy: str


class MediaUploadResponse(BaseModel):
    message: str
    files: list[MediaFileResponse]


class HealthResponse(BaseModel):
    status: str
    timestamp: str
