"""
One-time move of guest data from the device store to a signed-in account.

The "done" marker lives in the device flag table, keyed by identity, so the
move happens at most once per identity per device. It is not deduplicated
across devices.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from jobflow.auth.identity import Identity
from jobflow.core.timeutil import utcnow
from jobflow.schemas.application import ApplicationCreate, ApplicationImport, ApplicationOut
from jobflow.schemas.contact import ContactCreate
from jobflow.schemas.event import EventCreate
from jobflow.schemas.reminder import ReminderImport
from jobflow.stores.base import ApplicationStore, AuthenticationRequiredError, StoreError
from jobflow.stores.local import LocalStore

logger = logging.getLogger(__name__)

MIGRATION_MARKER_PREFIX = "migration_done:"

_DRAFT_FIELDS = set(ApplicationCreate.model_fields)


class MigrationStatus(str, Enum):
    ALREADY_DONE = "already-done"
    NOTHING_TO_MIGRATE = "nothing-to-migrate"
    MIGRATED = "migrated"
    FAILED = "failed"


@dataclass(frozen=True)
class MigrationResult:
    status: MigrationStatus
    migrated: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status != MigrationStatus.FAILED


def marker_key(identity: Identity) -> str:
    return f"{MIGRATION_MARKER_PREFIX}{identity.key}"


class MigrationEngine:
    def __init__(self, local: LocalStore, remote: ApplicationStore) -> None:
        self.local = local
        self.remote = remote

    def is_done(self, identity: Identity) -> bool:
        return self.local.get_flag(marker_key(identity)) is not None

    def _draft(self, app: ApplicationOut) -> ApplicationImport:
        return ApplicationImport(
            **app.model_dump(include=_DRAFT_FIELDS),
            applied_at=app.applied_at,
            last_touch_at=app.last_touch_at,
            events=[
                EventCreate.model_validate(ev.model_dump(exclude={"id", "application_id", "created_at"}))
                for ev in self.local.list_events(app.id)
            ],
            contacts=[
                ContactCreate.model_validate(c.model_dump(exclude={"id", "application_id", "created_at"}))
                for c in self.local.list_contacts(app.id)
            ],
            reminders=[
                ReminderImport.model_validate(r.model_dump(exclude={"id", "application_id", "created_at"}))
                for r in self.local.list_reminders(app.id)
            ],
        )

    def collect_drafts(self) -> list[ApplicationImport]:
        # Oldest first, so the server sees them in the order they were created locally.
        apps = sorted(self.local.list_applications(), key=lambda a: (a.created_at, a.id))
        return [self._draft(app) for app in apps]

    def run(self, identity: Identity) -> MigrationResult:
        if not identity.is_authenticated:
            raise AuthenticationRequiredError("Migration needs a signed-in identity")

        key = marker_key(identity)
        if self.local.get_flag(key) is not None:
            return MigrationResult(MigrationStatus.ALREADY_DONE)

        if self.local.count_applications() == 0:
            self.local.set_flag(key, utcnow().isoformat())
            return MigrationResult(MigrationStatus.NOTHING_TO_MIGRATE)

        drafts = self.collect_drafts()
        logger.info("Migrating %s guest applications for %s", len(drafts), identity.to_debug_dict())
        try:
            self.remote.bulk_create_applications(drafts)
        except StoreError as exc:
            # Marker withheld and local data untouched, so the next sign-in retries the whole batch.
            logger.exception("Guest data migration failed for %s", identity.to_debug_dict())
            return MigrationResult(MigrationStatus.FAILED, error=str(exc))

        self.local.set_flag(key, utcnow().isoformat())
        self.local.clear_all()
        logger.info("Migrated %s guest applications", len(drafts))
        return MigrationResult(MigrationStatus.MIGRATED, migrated=len(drafts))
