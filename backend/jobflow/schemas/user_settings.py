from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_SETTINGS = {
    "weekly_goal": 8,
    "daily_goal": 2,
    "follow_up_days": 7,
    "interview_follow_up_days": 2,
    "ghosted_days": 21,
    "streak_grace_days": 2,
    "dark_mode": True,
}


class UserSettingsOut(BaseModel):
    weekly_goal: int = DEFAULT_SETTINGS["weekly_goal"]
    daily_goal: int = DEFAULT_SETTINGS["daily_goal"]
    follow_up_days: int = DEFAULT_SETTINGS["follow_up_days"]
    interview_follow_up_days: int = DEFAULT_SETTINGS["interview_follow_up_days"]
    # Reserved: not auto-applied to applications yet.
    ghosted_days: int = DEFAULT_SETTINGS["ghosted_days"]
    streak_grace_days: int = DEFAULT_SETTINGS["streak_grace_days"]
    # Display only.
    dark_mode: bool = DEFAULT_SETTINGS["dark_mode"]

    model_config = ConfigDict(from_attributes=True)


class UpdateSettingsIn(BaseModel):
    weekly_goal: int | None = Field(default=None, ge=1, le=100)
    daily_goal: int | None = Field(default=None, ge=1, le=50)
    follow_up_days: int | None = Field(default=None, ge=1, le=90)
    interview_follow_up_days: int | None = Field(default=None, ge=1, le=30)
    ghosted_days: int | None = Field(default=None, ge=1, le=365)
    streak_grace_days: int | None = Field(default=None, ge=0, le=5)
    dark_mode: bool | None = None
