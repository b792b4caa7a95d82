"""
Device-side tables for the guest scope. Integer autoincrement ids, no ownership
column: the whole file belongs to whoever is using this device.
"""
from sqlalchemy import Column, ForeignKey, Integer, String

from jobflow.core.base import LocalBase
from jobflow.models.columns import (
    ApplicationColumns,
    ContactColumns,
    EventColumns,
    ProgressColumns,
    ReminderColumns,
    SettingsColumns,
)


class LocalApplication(ApplicationColumns, LocalBase):
    __tablename__ = "applications"

    id = Column(Integer, primary_key=True, autoincrement=True)


class LocalApplicationEvent(EventColumns, LocalBase):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    application_id = Column(Integer, ForeignKey("applications.id"), nullable=False, index=True)


class LocalContact(ContactColumns, LocalBase):
    __tablename__ = "contacts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    application_id = Column(Integer, ForeignKey("applications.id"), nullable=False, index=True)


class LocalReminder(ReminderColumns, LocalBase):
    __tablename__ = "reminders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    application_id = Column(Integer, ForeignKey("applications.id"), nullable=False, index=True)


class LocalSettings(SettingsColumns, LocalBase):
    __tablename__ = "settings"

    id = Column(Integer, primary_key=True, autoincrement=True)


class LocalProgress(ProgressColumns, LocalBase):
    __tablename__ = "user_progress"

    id = Column(Integer, primary_key=True, autoincrement=True)


class LocalFlag(LocalBase):
    """
    Device key/value flags: the per-identity migration marker and guest-only UI
    preferences (keys prefixed ``guest:``).
    """

    __tablename__ = "flags"

    key = Column(String(255), primary_key=True)
    value = Column(String(255), nullable=False)
