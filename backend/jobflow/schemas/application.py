from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from jobflow.core.timeutil import as_utc
from jobflow.schemas.contact import ContactCreate
from jobflow.schemas.enums import ApplicationStatus, Platform, Priority
from jobflow.schemas.event import EventCreate
from jobflow.schemas.reminder import ReminderImport

# Local rows use integer ids, server rows use UUID strings.
ApplicationId = Union[int, str]


class ApplicationCreate(BaseModel):
    """Draft handed to ``create_application``; the store stamps every timestamp."""

    company: str = Field(min_length=1, max_length=255)
    role: str = Field(min_length=1, max_length=255)
    location: Optional[str] = None
    salary: Optional[str] = None
    url: Optional[str] = None
    platform: Platform = Platform.OTHER
    status: ApplicationStatus = ApplicationStatus.SAVED
    priority: Optional[Priority] = None
    archived: bool = False
    notes: Optional[str] = None

    # Runs before the length check, so whitespace-only values are rejected.
    @field_validator("company", "role", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v


class ApplicationImport(ApplicationCreate):
    """
    Draft used by bulk creation (guest migration, CSV import). Unlike a regular
    create, the caller's ``applied_at``/``last_touch_at`` are kept.
    """

    applied_at: Optional[datetime] = None
    last_touch_at: Optional[datetime] = None
    events: List[EventCreate] = []
    contacts: List[ContactCreate] = []
    reminders: List[ReminderImport] = []


class ApplicationUpdate(BaseModel):
    company: Optional[str] = Field(default=None, min_length=1, max_length=255)
    role: Optional[str] = Field(default=None, min_length=1, max_length=255)
    location: Optional[str] = None
    salary: Optional[str] = None
    url: Optional[str] = None
    platform: Optional[Platform] = None
    status: Optional[ApplicationStatus] = None
    priority: Optional[Priority] = None
    archived: Optional[bool] = None
    notes: Optional[str] = None

    @field_validator("company", "role", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v


class StatusUpdate(BaseModel):
    status: ApplicationStatus


class ApplicationOut(BaseModel):
    id: ApplicationId
    company: str
    role: str
    location: Optional[str] = None
    salary: Optional[str] = None
    url: Optional[str] = None
    platform: Platform
    status: ApplicationStatus
    priority: Optional[Priority] = None
    archived: bool = False
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    applied_at: Optional[datetime] = None
    last_touch_at: datetime

    @field_validator("created_at", "updated_at", "applied_at", "last_touch_at")
    @classmethod
    def _utc(cls, dt: Optional[datetime]) -> Optional[datetime]:
        return as_utc(dt)

    model_config = ConfigDict(from_attributes=True)


class BulkCreateIn(BaseModel):
    items: List[ApplicationImport]


class BulkCreateOut(BaseModel):
    ids: List[ApplicationId]
    migrated: int
