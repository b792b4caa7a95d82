from __future__ import annotations

from typing import Protocol, Sequence

from jobflow.schemas.application import (
    ApplicationCreate,
    ApplicationId,
    ApplicationImport,
    ApplicationOut,
    ApplicationUpdate,
)
from jobflow.schemas.contact import ContactCreate, ContactOut
from jobflow.schemas.enums import ApplicationStatus
from jobflow.schemas.event import EventCreate, EventOut
from jobflow.schemas.progress import UserProgress
from jobflow.schemas.reminder import ReminderCreate, ReminderOut
from jobflow.schemas.user_settings import UpdateSettingsIn, UserSettingsOut


class StoreError(Exception):
    pass


class AuthenticationRequiredError(StoreError):
    """Raised before any network call when the remote store has no signed-in identity."""


class PersistenceError(StoreError):
    """A database write failed; the session has already been rolled back."""


class RemoteStoreError(StoreError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ApplicationStore(Protocol):
    """
    Read/write contract shared by the device store and the remote store.
    Not-found is ``None`` (or an empty list), never an exception.
    """

    def refresh(self) -> None:
        ...

    def list_applications(self) -> list[ApplicationOut]:
        ...

    def get_application(self, app_id: ApplicationId) -> ApplicationOut | None:
        ...

    def create_application(self, draft: ApplicationCreate) -> ApplicationId:
        ...

    def update_application_status(
        self, app_id: ApplicationId, status: ApplicationStatus
    ) -> ApplicationOut | None:
        ...

    def update_application(self, app_id: ApplicationId, patch: ApplicationUpdate) -> ApplicationOut | None:
        ...

    def delete_application(self, app_id: ApplicationId) -> bool:
        ...

    def bulk_create_applications(self, items: Sequence[ApplicationImport]) -> list[ApplicationId]:
        ...

    def add_event(self, app_id: ApplicationId, draft: EventCreate) -> EventOut | None:
        ...

    def list_events(self, app_id: ApplicationId) -> list[EventOut]:
        ...

    def mark_follow_up_sent(self, app_id: ApplicationId) -> EventOut | None:
        ...

    def mark_prep_done(self, app_id: ApplicationId) -> EventOut | None:
        ...

    def add_contact(self, app_id: ApplicationId, draft: ContactCreate) -> ContactOut | None:
        ...

    def list_contacts(self, app_id: ApplicationId) -> list[ContactOut]:
        ...

    def add_reminder(self, app_id: ApplicationId, draft: ReminderCreate) -> ReminderOut | None:
        ...

    def list_reminders(self, app_id: ApplicationId) -> list[ReminderOut]:
        ...

    def complete_reminder(self, app_id: ApplicationId, reminder_id: ApplicationId) -> ReminderOut | None:
        ...

    def get_settings(self) -> UserSettingsOut:
        ...

    def update_settings(self, patch: UpdateSettingsIn) -> UserSettingsOut:
        ...

    def get_user_progress(self) -> UserProgress:
        ...

    def reset(self) -> None:
        ...
