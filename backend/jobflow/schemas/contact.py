from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ContactCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    role: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    linkedin: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v


class ContactOut(ContactCreate):
    id: Union[int, str]
    application_id: Union[int, str]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
