"""
Derived views over an application list: staleness, next actions, analytics and
goal progress. Pure functions; every one that depends on the current time takes
an optional ``now``.
"""
from __future__ import annotations

import math
from collections import Counter
from datetime import datetime, timedelta
from typing import Iterable, Optional, Sequence

from jobflow.core.timeutil import DAY, as_utc, utcnow, week_start, whole_days_between
from jobflow.schemas.application import ApplicationOut
from jobflow.schemas.enums import (
    INTERVIEW_STATUSES,
    NO_RESPONSE_STATUSES,
    PRIORITY_RANK,
    TERMINAL_STATUSES,
    ApplicationStatus,
    NextActionType,
    Priority,
)
from jobflow.schemas.insights import (
    Analytics,
    FunnelStage,
    GoalProgress,
    HeatmapDay,
    NextAction,
    PlatformStats,
)
from jobflow.schemas.user_settings import UserSettingsOut

# Days since the last touch under which an interview-stage application gets a prep nudge.
PREP_WINDOW_DAYS = 3

FUNNEL_ORDER = (
    ApplicationStatus.SAVED,
    ApplicationStatus.APPLIED,
    ApplicationStatus.SCREEN,
    ApplicationStatus.INTERVIEW1,
    ApplicationStatus.INTERVIEW2,
    ApplicationStatus.FINAL,
    ApplicationStatus.OFFER,
)

_INTERVIEWED = INTERVIEW_STATUSES | {ApplicationStatus.OFFER}


def round_half_up(value: float) -> int:
    """Rounding used for every percentage (0.5 goes up, unlike ``round``)."""
    return int(math.floor(value + 0.5))


def _percent(part: int, whole: int) -> int:
    return round_half_up(part / whole * 100) if whole > 0 else 0


def _now(now: Optional[datetime]) -> datetime:
    return as_utc(now) if now is not None else utcnow()


# -------------------------
# Per-application views
# -------------------------
def days_in_stage(app: ApplicationOut, now: Optional[datetime] = None) -> int:
    return whole_days_between(app.updated_at, _now(now))


def days_since_last_touch(app: ApplicationOut, now: Optional[datetime] = None) -> int:
    return whole_days_between(app.last_touch_at, _now(now))


def is_stale(app: ApplicationOut, follow_up_days: int = 7, now: Optional[datetime] = None) -> bool:
    if app.status in TERMINAL_STATUSES:
        return False
    return days_since_last_touch(app, now) >= follow_up_days


def suggested_follow_up_date(app: ApplicationOut, settings: UserSettingsOut) -> Optional[datetime]:
    if app.status == ApplicationStatus.APPLIED:
        return app.last_touch_at + timedelta(days=settings.follow_up_days)
    if app.status in INTERVIEW_STATUSES:
        return app.last_touch_at + timedelta(days=settings.interview_follow_up_days)
    return None


def _stage_word(status: ApplicationStatus) -> str:
    return "screening" if status == ApplicationStatus.SCREEN else "interview"


def next_actions(
    apps: Iterable[ApplicationOut],
    settings: UserSettingsOut,
    now: Optional[datetime] = None,
) -> list[NextAction]:
    """
    Suggested actions, high priority first. An interview-stage application can
    yield both a follow-up and a prep action.
    """
    current = _now(now)
    actions: list[NextAction] = []

    for app in apps:
        if app.status in TERMINAL_STATUSES:
            continue

        days = days_since_last_touch(app, current)

        if app.status == ApplicationStatus.SAVED:
            actions.append(
                NextAction(
                    id=f"apply-{app.id}",
                    type=NextActionType.APPLY,
                    application=app,
                    description=f"Apply to {app.company}",
                    priority=app.priority or Priority.MEDIUM,
                )
            )

        if app.status == ApplicationStatus.APPLIED and days >= settings.follow_up_days:
            actions.append(
                NextAction(
                    id=f"followup-{app.id}",
                    type=NextActionType.FOLLOW_UP,
                    application=app,
                    description=f"Follow up with {app.company} ({days} days since applying)",
                    due_at=current,
                    priority=Priority.HIGH,
                )
            )

        if app.status in INTERVIEW_STATUSES:
            if days >= settings.interview_follow_up_days:
                actions.append(
                    NextAction(
                        id=f"followup-{app.id}",
                        type=NextActionType.FOLLOW_UP,
                        application=app,
                        description=f"Follow up after {_stage_word(app.status)} with {app.company}",
                        due_at=current,
                        priority=Priority.HIGH,
                    )
                )
            if days < PREP_WINDOW_DAYS:
                actions.append(
                    NextAction(
                        id=f"prep-{app.id}",
                        type=NextActionType.PREP,
                        application=app,
                        description=f"Prepare for {app.company} {_stage_word(app.status)}",
                        priority=Priority.HIGH,
                    )
                )

    # sorted() is stable, so ties keep list order.
    return sorted(actions, key=lambda a: PRIORITY_RANK[a.priority])


# -------------------------
# Aggregates
# -------------------------
def calculate_analytics(apps: Sequence[ApplicationOut]) -> Analytics:
    total = len(apps)
    applied = sum(1 for a in apps if a.status != ApplicationStatus.SAVED)
    with_response = sum(1 for a in apps if a.status not in NO_RESPONSE_STATUSES)
    with_interview = sum(1 for a in apps if a.status in _INTERVIEWED)

    # updated_at stands in for the first-response date, which is not tracked separately.
    response_times = []
    for a in apps:
        if a.applied_at is None or a.status in (ApplicationStatus.APPLIED, ApplicationStatus.GHOSTED):
            continue
        days = whole_days_between(a.applied_at, a.updated_at)
        if days > 0:
            response_times.append(days)
    avg = round_half_up(sum(response_times) / len(response_times)) if response_times else 0

    # Insertion order of first appearance, like the list itself.
    per_platform: dict = {}
    for a in apps:
        stats = per_platform.setdefault(a.platform, {"total": 0, "responses": 0, "interviews": 0})
        stats["total"] += 1
        if a.status not in NO_RESPONSE_STATUSES:
            stats["responses"] += 1
        if a.status in _INTERVIEWED:
            stats["interviews"] += 1

    return Analytics(
        total=total,
        applied=applied,
        response_rate=_percent(with_response, applied),
        interview_rate=_percent(with_interview, applied),
        avg_time_to_response=avg,
        platform_stats=[
            PlatformStats(
                platform=platform,
                total=s["total"],
                response_rate=_percent(s["responses"], s["total"]),
                interview_rate=_percent(s["interviews"], s["total"]),
            )
            for platform, s in per_platform.items()
        ],
    )


def funnel(apps: Sequence[ApplicationOut]) -> list[FunnelStage]:
    counts = Counter(a.status for a in apps)
    total = len(apps)
    return [
        FunnelStage(stage=status, count=counts.get(status, 0), percentage=_percent(counts.get(status, 0), total))
        for status in FUNNEL_ORDER
    ]


def _goal(applied: int, goal: int) -> GoalProgress:
    percentage = min(100, _percent(applied, goal)) if goal > 0 else 0
    return GoalProgress(applied=applied, goal=goal, percentage=percentage)


def weekly_progress(
    apps: Iterable[ApplicationOut],
    settings: UserSettingsOut,
    now: Optional[datetime] = None,
) -> GoalProgress:
    start = week_start(_now(now))
    end = start + timedelta(weeks=1)
    applied = sum(1 for a in apps if a.applied_at is not None and start <= as_utc(a.applied_at) < end)
    return _goal(applied, settings.weekly_goal)


def daily_progress(
    apps: Iterable[ApplicationOut],
    settings: UserSettingsOut,
    now: Optional[datetime] = None,
) -> GoalProgress:
    today = _now(now).date()
    applied = sum(1 for a in apps if a.applied_at is not None and as_utc(a.applied_at).date() == today)
    return _goal(applied, settings.daily_goal)


def activity_heatmap(
    apps: Iterable[ApplicationOut],
    days: int = 365,
    now: Optional[datetime] = None,
) -> list[HeatmapDay]:
    """One entry per UTC day from ``days`` ago through today, counting applications submitted that day."""
    counts = Counter(as_utc(a.applied_at).date() for a in apps if a.applied_at is not None)
    today = _now(now).replace(hour=0, minute=0, second=0, microsecond=0)
    first = today - days * DAY
    return [
        HeatmapDay(date=first + i * DAY, count=counts.get((first + i * DAY).date(), 0))
        for i in range(days + 1)
    ]
