from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from jobflow.core.timeutil import whole_days_between, week_start
from jobflow.schemas.enums import (
    INTERVIEW_STATUSES,
    ApplicationStatus,
    BadgeType,
    MilestoneType,
)
from jobflow.schemas.progress import UserProgress, WeeklyStats

XP_REWARDS = {
    "apply": 10,
    "follow-up": 15,
    "prep": 5,
    "interview": 25,
    "offer": 100,
}

LEVEL_THRESHOLDS = (0, 100, 250, 500, 1000, 2000, 3500, 5500, 8000, 11000)

DEFAULT_STREAK_GRACE_DAYS = 2

APPLICATION_COUNT_BADGES = (
    (10, BadgeType.TEN_APPS),
    (50, BadgeType.FIFTY_APPS),
    (100, BadgeType.HUNDRED_APPS),
)

STREAK_BADGES = (
    (3, BadgeType.APPLICATION_STREAK_3),
    (7, BadgeType.APPLICATION_STREAK_7),
    (14, BadgeType.APPLICATION_STREAK_14),
)

STREAK_MILESTONES = (
    (7, MilestoneType.WEEK_STREAK),
    (30, MilestoneType.MONTH_STREAK),
)

INTERVIEW_PRO_COUNT = 10
FOLLOW_UP_PRO_COUNT = 10
NETWORKER_CONTACTS = 10
CONSISTENT_WEEKS = 4
WEEKLY_STATS_KEPT = 52


@dataclass(frozen=True)
class ProgressContext:
    """What a progress transition needs to know beyond the progress row itself."""

    now: datetime
    grace_days: int = DEFAULT_STREAK_GRACE_DAYS
    weekly_goal: int = 8


# -------------------------
# Primitives
# -------------------------
def level_for_xp(xp: int) -> int:
    for index in range(len(LEVEL_THRESHOLDS) - 1, -1, -1):
        if xp >= LEVEL_THRESHOLDS[index]:
            return index + 1
    return 1


def add_xp(progress: UserProgress, amount: int) -> UserProgress:
    if amount <= 0:
        raise ValueError("XP awards must be positive")
    xp = progress.xp + amount
    # xp only grows, so the recomputed level can never be lower; max() keeps that explicit.
    return progress.model_copy(update={"xp": xp, "level": max(progress.level, level_for_xp(xp))})


def update_streak(
    progress: UserProgress,
    now: datetime,
    grace_days: int = DEFAULT_STREAK_GRACE_DAYS,
) -> UserProgress:
    """
    Advance the daily activity streak.

    A gap of up to ``grace_days + 1`` days is forgiven once; the grace is given
    back on the next consecutive-day update.
    """
    if progress.last_active_date is None:
        return progress.model_copy(
            update={
                "current_streak": 1,
                "longest_streak": max(progress.longest_streak, 1),
                "last_active_date": now,
                "streak_grace_used": False,
            }
        )

    days = whole_days_between(progress.last_active_date, now)

    if days <= 0:
        return progress

    if days == 1:
        streak = progress.current_streak + 1
        return progress.model_copy(
            update={
                "current_streak": streak,
                "longest_streak": max(progress.longest_streak, streak),
                "last_active_date": now,
                "streak_grace_used": False,
            }
        )

    if days <= grace_days + 1 and not progress.streak_grace_used:
        return progress.model_copy(update={"last_active_date": now, "streak_grace_used": True})

    return progress.model_copy(
        update={
            "current_streak": 1,
            "longest_streak": max(progress.longest_streak, 1),
            "last_active_date": now,
            "streak_grace_used": False,
        }
    )


def award_badge_if_new(progress: UserProgress, badge: BadgeType) -> tuple[UserProgress, bool]:
    if badge in progress.badges:
        return progress, False
    return progress.model_copy(update={"badges": [*progress.badges, badge]}), True


def award_milestone_if_new(progress: UserProgress, milestone: MilestoneType) -> tuple[UserProgress, bool]:
    if milestone in progress.milestones:
        return progress, False
    return progress.model_copy(update={"milestones": [*progress.milestones, milestone]}), True


def record_weekly_stat(progress: UserProgress, now: datetime, field: str, amount: int = 1) -> UserProgress:
    start = week_start(now)
    stats = [s.model_copy() for s in progress.weekly_stats]
    bucket = next((s for s in stats if s.week_start == start), None)
    if bucket is None:
        bucket = WeeklyStats(week_start=start)
        stats.append(bucket)
    setattr(bucket, field, getattr(bucket, field) + amount)
    stats.sort(key=lambda s: s.week_start)
    return progress.model_copy(update={"weekly_stats": stats[-WEEKLY_STATS_KEPT:]})


def _met_goal_streak(progress: UserProgress, now: datetime, goal: int, weeks: int) -> bool:
    by_week = {s.week_start: s for s in progress.weekly_stats}
    current = week_start(now)
    for i in range(weeks):
        bucket = by_week.get(current - timedelta(weeks=i))
        if bucket is None or bucket.applications < goal:
            return False
    return True


def _streak_rewards(progress: UserProgress) -> UserProgress:
    for length, badge in STREAK_BADGES:
        if progress.current_streak >= length:
            progress, _ = award_badge_if_new(progress, badge)
    for length, milestone in STREAK_MILESTONES:
        if progress.current_streak >= length:
            progress, _ = award_milestone_if_new(progress, milestone)
    return progress


def _bump(progress: UserProgress, counter: str) -> UserProgress:
    return progress.model_copy(update={counter: getattr(progress, counter) + 1})


# -------------------------
# Transitions invoked by the stores
# -------------------------
def record_submission(progress: UserProgress, ctx: ProgressContext) -> UserProgress:
    """An application left "saved" for the first time."""
    p = add_xp(progress, XP_REWARDS["apply"])
    p = _streak_rewards(update_streak(p, ctx.now, ctx.grace_days))

    if p.total_applications == 0:
        p, _ = award_badge_if_new(p, BadgeType.FIRST_APPLICATION)
    p = _bump(p, "total_applications")

    for threshold, badge in APPLICATION_COUNT_BADGES:
        if p.total_applications >= threshold:
            p, _ = award_badge_if_new(p, badge)
    if p.total_applications >= 10:
        p, _ = award_milestone_if_new(p, MilestoneType.FIRST_10_APPS)

    p = record_weekly_stat(p, ctx.now, "applications")
    if _met_goal_streak(p, ctx.now, ctx.weekly_goal, CONSISTENT_WEEKS):
        p, _ = award_badge_if_new(p, BadgeType.CONSISTENT_WEEK)
    return p


def record_status_change(
    progress: UserProgress,
    ctx: ProgressContext,
    old: ApplicationStatus,
    new: ApplicationStatus,
    *,
    first_submission: bool,
) -> UserProgress:
    p = progress
    if first_submission:
        p = record_submission(p, ctx)

    if new == old:
        return p

    if new in INTERVIEW_STATUSES:
        p = add_xp(p, XP_REWARDS["interview"])
        if p.total_interviews == 0:
            p, _ = award_badge_if_new(p, BadgeType.FIRST_INTERVIEW)
            p, _ = award_milestone_if_new(p, MilestoneType.FIRST_INTERVIEW)
        p = _bump(p, "total_interviews")
        if p.total_interviews >= INTERVIEW_PRO_COUNT:
            p, _ = award_badge_if_new(p, BadgeType.INTERVIEW_PRO)
        p = record_weekly_stat(p, ctx.now, "interviews")
    elif new == ApplicationStatus.OFFER:
        p = add_xp(p, XP_REWARDS["offer"])
        p, _ = award_badge_if_new(p, BadgeType.FIRST_OFFER)
        p, _ = award_milestone_if_new(p, MilestoneType.FIRST_OFFER)
        p = _bump(p, "total_offers")
        p = record_weekly_stat(p, ctx.now, "offers")
    elif new == ApplicationStatus.REJECTED:
        p = record_weekly_stat(p, ctx.now, "rejections")
    return p


def record_follow_up(progress: UserProgress, ctx: ProgressContext) -> UserProgress:
    p = add_xp(progress, XP_REWARDS["follow-up"])
    p = _streak_rewards(update_streak(p, ctx.now, ctx.grace_days))
    if p.total_follow_ups == 0:
        p, _ = award_milestone_if_new(p, MilestoneType.FIRST_FOLLOW_UP)
    p = _bump(p, "total_follow_ups")
    if p.total_follow_ups >= FOLLOW_UP_PRO_COUNT:
        p, _ = award_badge_if_new(p, BadgeType.FOLLOW_UP_PRO)
    return record_weekly_stat(p, ctx.now, "follow_ups")


def record_prep(progress: UserProgress, ctx: ProgressContext) -> UserProgress:  # noqa: ARG001
    return add_xp(progress, XP_REWARDS["prep"])


def record_contact_added(progress: UserProgress, total_contacts: int) -> UserProgress:
    if total_contacts >= NETWORKER_CONTACTS:
        progress, _ = award_badge_if_new(progress, BadgeType.NETWORKER)
    return progress
