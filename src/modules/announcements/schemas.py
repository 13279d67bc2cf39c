"""
Announcements Module - Pydantic Schemas
"""
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.modules.announcements.models import AnnouncementSource, AnnouncementTarget


class AnnouncementCreate(BaseModel):
    source: AnnouncementSource
    source_id: uuid.UUID | None = None
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    target_type: AnnouncementTarget = AnnouncementTarget.ALL_HOUSEHOLDS
    target_id: uuid.UUID | None = None
    expires_at: datetime | None = None

    @model_validator(mode="after")
    def check_ids(self) -> "AnnouncementCreate":
        if self.source != AnnouncementSource.SYSTEM and self.source_id is None:
            raise ValueError("source_id is required for community and building announcements")
        if self.target_type != AnnouncementTarget.ALL_HOUSEHOLDS and self.target_id is None:
            raise ValueError("target_id is required unless targeting all households")
        return self


class AnnouncementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    source: str
    source_id: uuid.UUID | None = None
    title: str
    message: str
    target_type: str
    target_id: uuid.UUID | None = None
    created_by: uuid.UUID | None = None
    expires_at: datetime | None = None
    is_active: bool
    created_at: datetime
    is_read: bool = False


class AnnouncementFeed(BaseModel):
    announcements: list[AnnouncementResponse]
    grouped: dict[str, list[AnnouncementResponse]]
    unread_count: int
