from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from jobflow.schemas.application import ApplicationOut
from jobflow.schemas.enums import ApplicationStatus, NextActionType, Platform, Priority


class NextAction(BaseModel):
    id: str
    type: NextActionType
    application: ApplicationOut
    description: str
    due_at: Optional[datetime] = None
    priority: Priority


class PlatformStats(BaseModel):
    platform: Platform
    total: int
    response_rate: int
    interview_rate: int


class Analytics(BaseModel):
    total: int
    applied: int
    response_rate: int
    interview_rate: int
    avg_time_to_response: int
    platform_stats: List[PlatformStats]


class FunnelStage(BaseModel):
    stage: ApplicationStatus
    count: int
    percentage: int


class GoalProgress(BaseModel):
    applied: int
    goal: int
    percentage: int


class HeatmapDay(BaseModel):
    date: datetime
    count: int
