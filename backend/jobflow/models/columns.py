"""
Column sets shared by the server tables (models/*.py) and the device tables
(models/local.py). Only ids, ownership and foreign keys differ between the two.
"""
from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.types import JSON

class ApplicationColumns:
    company = Column(String(255), nullable=False)
    role = Column(String(255), nullable=False)
    location = Column(String(255), nullable=True)
    salary = Column(String(120), nullable=True)
    url = Column(String(500), nullable=True)

    # linkedin, greenhouse, lever, workday, indeed, glassdoor, company-site, referral, other
    platform = Column(String(32), nullable=False, default="other")
    # saved, applied, screen, interview1, interview2, final, offer, rejected, ghosted
    status = Column(String(32), nullable=False, default="saved", index=True)
    priority = Column(String(16), nullable=True)
    archived = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, index=True)
    # Set once, the first time the application leaves "saved".
    applied_at = Column(DateTime(timezone=True), nullable=True)
    last_touch_at = Column(DateTime(timezone=True), nullable=False)


class EventColumns:
    # applied, phone-screen, technical, take-home, onsite, offer, rejection, follow-up, note, status-change
    type = Column(String(32), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    date = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    completed = Column(Boolean, nullable=False, default=False)
    scheduled_at = Column(DateTime(timezone=True), nullable=True)

class ContactColumns:
    name = Column(String(255), nullable=False)
    role = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(64), nullable=True)
    linkedin = Column(String(500), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

class ReminderColumns:
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    due_at = Column(DateTime(timezone=True), nullable=False, index=True)
    completed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

class SettingsColumns:
    weekly_goal = Column(Integer, nullable=False, default=8)
    daily_goal = Column(Integer, nullable=False, default=2)
    follow_up_days = Column(Integer, nullable=False, default=7)
    interview_follow_up_days = Column(Integer, nullable=False, default=2)
    ghosted_days = Column(Integer, nullable=False, default=21)
    streak_grace_days = Column(Integer, nullable=False, default=2)
    dark_mode = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

class ProgressColumns:
    xp = Column(Integer, nullable=False, default=0)
    level = Column(Integer, nullable=False, default=1)
    current_streak = Column(Integer, nullable=False, default=0)
    longest_streak = Column(Integer, nullable=False, default=0)
    last_active_date = Column(DateTime(timezone=True), nullable=True)
    streak_grace_used = Column(Boolean, nullable=False, default=False)
    total_applications = Column(Integer, nullable=False, default=0)
    total_interviews = Column(Integer, nullable=False, default=0)
    total_offers = Column(Integer, nullable=False, default=0)
    total_follow_ups = Column(Integer, nullable=False, default=0)
    # Lists of badge / milestone identifiers, and weekly rollup dicts.
    badges = Column(JSON, nullable=False, default=list)
    milestones = Column(JSON, nullable=False, default=list)
    weekly_stats = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
