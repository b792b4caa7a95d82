from __future__ import annotations

from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from jobflow.core.timeutil import as_utc
from jobflow.schemas.enums import EventType


class EventCreate(BaseModel):
    type: EventType
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    # Defaults to "now" in the store.
    date: Optional[datetime] = None
    completed: bool = False
    scheduled_at: Optional[datetime] = None

    @field_validator("title", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v


class EventOut(BaseModel):
    id: Union[int, str]
    application_id: Union[int, str]
    type: EventType
    title: str
    description: Optional[str] = None
    date: datetime
    created_at: datetime
    completed: bool = False
    scheduled_at: Optional[datetime] = None

    @field_validator("date", "created_at", "scheduled_at")
    @classmethod
    def _utc(cls, dt: Optional[datetime]) -> Optional[datetime]:
        return as_utc(dt)

    model_config = ConfigDict(from_attributes=True)
