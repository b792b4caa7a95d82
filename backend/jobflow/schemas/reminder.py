from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ReminderCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    due_at: datetime

    @field_validator("title", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v


class ReminderImport(ReminderCreate):
    # Carried over as-is when guest data moves to an account.
    completed: bool = False


class ReminderOut(ReminderCreate):
    id: Union[int, str]
    application_id: Union[int, str]
    completed: bool = False
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
