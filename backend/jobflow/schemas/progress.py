from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from jobflow.core.timeutil import as_utc
from jobflow.schemas.enums import BadgeType, MilestoneType


class WeeklyStats(BaseModel):
    week_start: datetime
    applications: int = 0
    interviews: int = 0
    follow_ups: int = 0
    offers: int = 0
    rejections: int = 0

    @field_validator("week_start")
    @classmethod
    def _utc(cls, dt: datetime) -> datetime:
        return as_utc(dt)


class UserProgress(BaseModel):
    xp: int = 0
    level: int = 1
    current_streak: int = 0
    longest_streak: int = 0
    # None until the first streak-counting activity.
    last_active_date: Optional[datetime] = None
    streak_grace_used: bool = False
    total_applications: int = 0
    total_interviews: int = 0
    total_offers: int = 0
    total_follow_ups: int = 0
    badges: List[BadgeType] = []
    milestones: List[MilestoneType] = []
    weekly_stats: List[WeeklyStats] = []

    @field_validator("last_active_date")
    @classmethod
    def _utc(cls, dt: Optional[datetime]) -> Optional[datetime]:
        return as_utc(dt)

    model_config = ConfigDict(from_attributes=True)
