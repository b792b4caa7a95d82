from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from jobflow.core.timeutil import week_start
from jobflow.schemas.enums import ApplicationStatus, BadgeType, MilestoneType
from jobflow.schemas.progress import UserProgress, WeeklyStats
from jobflow.services import gamification as g

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def _ctx(now: datetime = NOW, **kwargs) -> g.ProgressContext:
    return g.ProgressContext(now=now, **kwargs)


# ---------------------------------------------------------------------------
# XP and levels
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "xp,level",
    [(0, 1), (99, 1), (100, 2), (249, 2), (250, 3), (10999, 9), (11000, 10), (50000, 10)],
)
def test_level_for_xp_follows_ladder(xp, level):
    assert g.level_for_xp(xp) == level


def test_add_xp_rejects_non_positive_amounts():
    with pytest.raises(ValueError):
        g.add_xp(UserProgress(), 0)
    with pytest.raises(ValueError):
        g.add_xp(UserProgress(), -10)


def test_level_never_drops_across_awards():
    p = UserProgress()
    levels = []
    for amount in (10, 90, 5, 150, 1, 500):
        p = g.add_xp(p, amount)
        levels.append(p.level)
    assert levels == sorted(levels)
    assert p.xp == 756
    assert p.level == 4


def test_add_xp_crossing_threshold_levels_up():
    p = g.add_xp(UserProgress(), 100)
    assert (p.xp, p.level) == (100, 2)


# ---------------------------------------------------------------------------
# Streaks
# ---------------------------------------------------------------------------


def test_first_activity_starts_streak():
    p = g.update_streak(UserProgress(), NOW)
    assert p.current_streak == 1
    assert p.longest_streak == 1
    assert p.last_active_date == NOW


def test_same_day_activity_is_noop():
    p = UserProgress(current_streak=4, longest_streak=4, last_active_date=NOW)
    assert g.update_streak(p, NOW + timedelta(hours=5)) == p


def test_consecutive_day_extends_and_restores_grace():
    p = UserProgress(current_streak=4, longest_streak=6, last_active_date=NOW, streak_grace_used=True)
    out = g.update_streak(p, NOW + timedelta(days=1))
    assert out.current_streak == 5
    assert out.longest_streak == 6
    assert out.streak_grace_used is False


def test_grace_is_used_once_then_streak_resets():
    p = UserProgress(current_streak=5, longest_streak=5, last_active_date=NOW - timedelta(days=2))

    first = g.update_streak(p, NOW)
    assert first.current_streak == 5
    assert first.streak_grace_used is True
    assert first.last_active_date == NOW

    second = g.update_streak(first, NOW + timedelta(days=2))
    assert second.current_streak == 1
    assert second.longest_streak == 5
    assert second.streak_grace_used is False


def test_default_grace_covers_three_day_gap_but_not_four():
    p = UserProgress(current_streak=3, longest_streak=3, last_active_date=NOW - timedelta(days=3))
    assert g.update_streak(p, NOW).current_streak == 3

    p = UserProgress(current_streak=3, longest_streak=3, last_active_date=NOW - timedelta(days=4))
    assert g.update_streak(p, NOW).current_streak == 1


def test_zero_grace_days_resets_on_any_gap():
    p = UserProgress(current_streak=3, longest_streak=3, last_active_date=NOW - timedelta(days=2))
    out = g.update_streak(p, NOW, grace_days=0)
    assert out.current_streak == 1


def test_longest_streak_never_below_current():
    p = UserProgress()
    for day in range(10):
        p = g.update_streak(p, NOW + timedelta(days=day))
        assert p.longest_streak >= p.current_streak
    assert p.current_streak == 10


# ---------------------------------------------------------------------------
# Badges / milestones / weekly stats
# ---------------------------------------------------------------------------


def test_award_badge_only_once():
    p, awarded = g.award_badge_if_new(UserProgress(), BadgeType.NETWORKER)
    assert awarded is True
    p2, awarded_again = g.award_badge_if_new(p, BadgeType.NETWORKER)
    assert awarded_again is False
    assert p2.badges == [BadgeType.NETWORKER]


def test_weekly_stat_buckets_by_monday():
    p = g.record_weekly_stat(UserProgress(), NOW, "applications")
    p = g.record_weekly_stat(p, NOW + timedelta(days=3), "applications")
    p = g.record_weekly_stat(p, NOW + timedelta(days=7), "interviews")

    assert [s.week_start for s in p.weekly_stats] == [week_start(NOW), week_start(NOW) + timedelta(weeks=1)]
    assert p.weekly_stats[0].applications == 2
    assert p.weekly_stats[1].interviews == 1


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


def test_record_submission_from_fresh_progress():
    p = g.record_submission(UserProgress(), _ctx())
    assert p.xp == 10
    assert p.current_streak == 1
    assert p.total_applications == 1
    assert p.badges == [BadgeType.FIRST_APPLICATION]
    assert p.weekly_stats[0].applications == 1


def test_ten_submissions_award_count_badge_and_milestone():
    p = UserProgress()
    for _ in range(10):
        p = g.record_submission(p, _ctx())
    assert p.xp == 100
    assert p.level == 2
    assert BadgeType.TEN_APPS in p.badges
    assert MilestoneType.FIRST_10_APPS in p.milestones
    assert p.badges.count(BadgeType.FIRST_APPLICATION) == 1


def test_streak_badge_awarded_at_three_days():
    p = UserProgress(current_streak=2, longest_streak=2, last_active_date=NOW - timedelta(days=1), total_applications=2)
    p = g.record_submission(p, _ctx())
    assert p.current_streak == 3
    assert BadgeType.APPLICATION_STREAK_3 in p.badges


def test_consistent_week_needs_four_goal_weeks():
    start = week_start(NOW)
    stats = [WeeklyStats(week_start=start - timedelta(weeks=i), applications=8) for i in (3, 2, 1)]
    stats.append(WeeklyStats(week_start=start, applications=7))
    p = UserProgress(total_applications=31, weekly_stats=stats)

    p = g.record_submission(p, _ctx(weekly_goal=8))
    assert BadgeType.CONSISTENT_WEEK in p.badges


def test_leaving_saved_awards_apply_xp_once():
    p = g.record_status_change(
        UserProgress(), _ctx(), ApplicationStatus.SAVED, ApplicationStatus.APPLIED, first_submission=True
    )
    assert p.xp == 10
    assert p.total_applications == 1


def test_interview_stage_awards_xp_and_first_interview():
    p = g.record_status_change(
        UserProgress(), _ctx(), ApplicationStatus.APPLIED, ApplicationStatus.SCREEN, first_submission=False
    )
    assert p.xp == 25
    assert p.total_interviews == 1
    assert BadgeType.FIRST_INTERVIEW in p.badges
    assert MilestoneType.FIRST_INTERVIEW in p.milestones
    assert p.weekly_stats[0].interviews == 1


def test_offer_and_rejection_side_effects():
    p = g.record_status_change(
        UserProgress(), _ctx(), ApplicationStatus.FINAL, ApplicationStatus.OFFER, first_submission=False
    )
    assert p.xp == 100
    assert p.total_offers == 1
    assert BadgeType.FIRST_OFFER in p.badges

    p = g.record_status_change(p, _ctx(), ApplicationStatus.APPLIED, ApplicationStatus.REJECTED, first_submission=False)
    assert p.xp == 100
    assert p.weekly_stats[0].rejections == 1


def test_follow_up_awards_xp_and_milestone():
    p = g.record_follow_up(UserProgress(), _ctx())
    assert p.xp == 15
    assert p.total_follow_ups == 1
    assert MilestoneType.FIRST_FOLLOW_UP in p.milestones
    assert p.weekly_stats[0].follow_ups == 1


def test_prep_awards_five_xp():
    assert g.record_prep(UserProgress(), _ctx()).xp == 5


def test_networker_at_ten_contacts():
    assert g.record_contact_added(UserProgress(), 9).badges == []
    assert g.record_contact_added(UserProgress(), 10).badges == [BadgeType.NETWORKER]
