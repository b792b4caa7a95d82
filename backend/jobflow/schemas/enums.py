from __future__ import annotations

from enum import Enum


class ApplicationStatus(str, Enum):
    SAVED = "saved"
    APPLIED = "applied"
    SCREEN = "screen"
    INTERVIEW1 = "interview1"
    INTERVIEW2 = "interview2"
    FINAL = "final"
    OFFER = "offer"
    REJECTED = "rejected"
    GHOSTED = "ghosted"


TERMINAL_STATUSES = frozenset(
    {ApplicationStatus.OFFER, ApplicationStatus.REJECTED, ApplicationStatus.GHOSTED}
)

INTERVIEW_STATUSES = frozenset(
    {
        ApplicationStatus.SCREEN,
        ApplicationStatus.INTERVIEW1,
        ApplicationStatus.INTERVIEW2,
        ApplicationStatus.FINAL,
    }
)

# Statuses that count as "the company answered".
NO_RESPONSE_STATUSES = frozenset(
    {ApplicationStatus.SAVED, ApplicationStatus.APPLIED, ApplicationStatus.GHOSTED}
)


class Platform(str, Enum):
    LINKEDIN = "linkedin"
    GREENHOUSE = "greenhouse"
    LEVER = "lever"
    WORKDAY = "workday"
    INDEED = "indeed"
    GLASSDOOR = "glassdoor"
    COMPANY_SITE = "company-site"
    REFERRAL = "referral"
    OTHER = "other"


class EventType(str, Enum):
    APPLIED = "applied"
    PHONE_SCREEN = "phone-screen"
    TECHNICAL = "technical"
    TAKE_HOME = "take-home"
    ONSITE = "onsite"
    OFFER = "offer"
    REJECTION = "rejection"
    FOLLOW_UP = "follow-up"
    NOTE = "note"
    STATUS_CHANGE = "status-change"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


PRIORITY_RANK = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}


class BadgeType(str, Enum):
    FIRST_APPLICATION = "first-application"
    APPLICATION_STREAK_3 = "application-streak-3"
    APPLICATION_STREAK_7 = "application-streak-7"
    APPLICATION_STREAK_14 = "application-streak-14"
    FIRST_INTERVIEW = "first-interview"
    INTERVIEW_PRO = "interview-pro"
    FOLLOW_UP_PRO = "follow-up-pro"
    FIRST_OFFER = "first-offer"
    NETWORKER = "networker"
    CONSISTENT_WEEK = "consistent-week"
    TEN_APPS = "ten-apps"
    FIFTY_APPS = "fifty-apps"
    HUNDRED_APPS = "hundred-apps"


class MilestoneType(str, Enum):
    FIRST_10_APPS = "first-10-apps"
    FIRST_INTERVIEW = "first-interview"
    FIRST_OFFER = "first-offer"
    FIRST_FOLLOW_UP = "first-follow-up"
    WEEK_STREAK = "week-streak"
    MONTH_STREAK = "month-streak"


class NextActionType(str, Enum):
    FOLLOW_UP = "follow-up"
    PREP = "prep"
    APPLY = "apply"
