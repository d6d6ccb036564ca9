# app/schemas.py
# ------------------------------------------------------------
# Pydantic v2 schemas, organized by domain
# ------------------------------------------------------------
from datetime import datetime
import re
from typing import Optional, List

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from app.models.event import naive_utc


_CONTROL_CHAR_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")


def _strip_control_chars(value):
    """Drop control characters; emptiness is judged later by the model's validation."""
    # Non-strings fall through to pydantic's own str validation.
    if not isinstance(value, str):
        return value
    return _CONTROL_CHAR_RE.sub("", value)


# ============================================================
# Users
# ============================================================

class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: Optional[str] = None


# ============================================================
# Events
# ============================================================

class EventParams(BaseModel):
    """The only event fields a client may set, on create and on update alike.

    Anything else in the request body is ignored. On update only the fields
    actually sent are applied (``model_dump(exclude_unset=True)``).
    """

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = Field(default=None, max_length=255)
    includes_food: Optional[bool] = None
    includes_drinks: Optional[bool] = None
    price: Optional[float] = Field(default=None, ge=0)
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    capacity: Optional[int] = Field(default=None, ge=0)
    active: Optional[bool] = None
    category_ids: Optional[List[int]] = None

    @field_validator("name", "description", "location", mode="before")
    @classmethod
    def _clean_text(cls, value: Optional[str]) -> Optional[str]:
        return _strip_control_chars(value)

    @field_validator("starts_at", "ends_at")
    @classmethod
    def _to_naive_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return naive_utc(value)

    @field_validator("category_ids")
    @classmethod
    def _dedupe_category_ids(cls, value: Optional[List[int]]) -> Optional[List[int]]:
        if value is None:
            return value
        return list(dict.fromkeys(value))


class EventRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str
    location: Optional[str] = None
    includes_food: bool
    includes_drinks: bool
    price: Optional[float] = None
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    capacity: Optional[int] = None
    active: bool
    user_id: int
    category_ids: List[int] = Field(default_factory=list)
    bargain: bool = Field(default=False, validation_alias=AliasChoices("is_bargain", "bargain"))
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MessageResponse(BaseModel):
    message: str
