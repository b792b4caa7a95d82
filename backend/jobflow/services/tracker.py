"""
Unified action API.

The one place that decides which store serves a call: the device store for the
guest scope, the optimistic remote store once an identity is signed in. Store
failures stop here; they are logged and the caller gets an empty result.
"""
from __future__ import annotations

import functools
import logging
from datetime import datetime
from typing import Callable, Optional, Sequence

from jobflow.auth.identity import Identity
from jobflow.core.timeutil import utcnow
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
from jobflow.schemas.insights import Analytics, FunnelStage, GoalProgress, HeatmapDay, NextAction
from jobflow.schemas.progress import UserProgress
from jobflow.schemas.reminder import ReminderCreate, ReminderOut
from jobflow.schemas.user_settings import UpdateSettingsIn, UserSettingsOut
from jobflow.services import csv_io, insights
from jobflow.services.cache import ApplicationListCache
from jobflow.services.migration import MigrationEngine, MigrationResult
from jobflow.services.optimistic import OptimisticStore
from jobflow.stores.base import ApplicationStore, StoreError
from jobflow.stores.local import LocalStore
from jobflow.stores.remote import RemoteStore

logger = logging.getLogger(__name__)

RemoteFactory = Callable[[Identity], RemoteStore]


def guarded(default: Callable[[], object]):
    """Log a StoreError raised by the wrapped action and return ``default()`` instead."""

    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(self, *args, **kwargs):
            try:
                return fn(self, *args, **kwargs)
            except StoreError:
                logger.exception("Action %s failed (identity=%s)", fn.__name__, self.identity.to_debug_dict())
                return default()

        return wrapper

    return decorator


def _none() -> None:
    return None


class Tracker:
    def __init__(
        self,
        local: LocalStore,
        *,
        remote_factory: RemoteFactory = RemoteStore.connect,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.local = local
        self._remote_factory = remote_factory
        self._clock = clock
        self.identity = Identity.guest()
        self._remote: Optional[OptimisticStore] = None
        self._connection: Optional[RemoteStore] = None
        self.last_migration: Optional[MigrationResult] = None

    # -------------------------
    # Scope
    # -------------------------
    @property
    def store(self) -> ApplicationStore:
        if self.identity.is_authenticated and self._remote is not None:
            return self._remote
        return self.local

    def sign_in(self, identity: Identity) -> MigrationResult:
        """
        Switch to the account scope and move any guest data over first.
        A failed migration leaves the guest data in place and is retried on the next sign-in.
        """
        self.sign_out()
        remote = self._remote_factory(identity)
        try:
            self.last_migration = MigrationEngine(self.local, remote).run(identity)
        except Exception:
            remote.close()
            raise
        self.identity = identity
        self._connection = remote
        self._remote = OptimisticStore(remote, cache=ApplicationListCache(), clock=self._clock)
        logger.info("Signed in %s (migration=%s)", identity.to_debug_dict(), self.last_migration.status.value)
        return self.last_migration

    def sign_out(self) -> None:
        if self._remote is not None:
            self._remote.shutdown()
            self._remote.cache.clear()
        # Closed only after the worker has drained its pending writes.
        if self._connection is not None:
            self._connection.close()
        self._remote = None
        self._connection = None
        self.identity = Identity.guest()

    def flush(self) -> None:
        """Wait for background remote writes (no-op in the guest scope)."""
        if isinstance(self.store, OptimisticStore):
            self.store.flush()

    # -------------------------
    # Applications
    # -------------------------
    @guarded(list)
    def list_applications(self, *, force: bool = False) -> list[ApplicationOut]:
        if force:
            self.store.refresh()
        return self.store.list_applications()

    @guarded(_none)
    def get_application(self, app_id: ApplicationId) -> Optional[ApplicationOut]:
        return self.store.get_application(app_id)

    @guarded(_none)
    def create_application(self, draft: ApplicationCreate) -> Optional[ApplicationId]:
        return self.store.create_application(draft)

    @guarded(_none)
    def update_application_status(self, app_id: ApplicationId, status: ApplicationStatus) -> Optional[ApplicationOut]:
        return self.store.update_application_status(app_id, status)

    @guarded(_none)
    def update_application(self, app_id: ApplicationId, patch: ApplicationUpdate) -> Optional[ApplicationOut]:
        return self.store.update_application(app_id, patch)

    @guarded(lambda: False)
    def delete_application(self, app_id: ApplicationId) -> bool:
        return self.store.delete_application(app_id)

    @guarded(list)
    def bulk_create_applications(self, items: Sequence[ApplicationImport]) -> list[ApplicationId]:
        return self.store.bulk_create_applications(items)

    # -------------------------
    # Timeline
    # -------------------------
    @guarded(_none)
    def add_event(self, app_id: ApplicationId, draft: EventCreate) -> Optional[EventOut]:
        return self.store.add_event(app_id, draft)

    @guarded(list)
    def list_events(self, app_id: ApplicationId) -> list[EventOut]:
        return self.store.list_events(app_id)

    @guarded(_none)
    def mark_follow_up_sent(self, app_id: ApplicationId) -> Optional[EventOut]:
        return self.store.mark_follow_up_sent(app_id)

    @guarded(_none)
    def mark_prep_done(self, app_id: ApplicationId) -> Optional[EventOut]:
        return self.store.mark_prep_done(app_id)

    @guarded(_none)
    def add_contact(self, app_id: ApplicationId, draft: ContactCreate) -> Optional[ContactOut]:
        return self.store.add_contact(app_id, draft)

    @guarded(list)
    def list_contacts(self, app_id: ApplicationId) -> list[ContactOut]:
        return self.store.list_contacts(app_id)

    @guarded(_none)
    def add_reminder(self, app_id: ApplicationId, draft: ReminderCreate) -> Optional[ReminderOut]:
        return self.store.add_reminder(app_id, draft)

    @guarded(list)
    def list_reminders(self, app_id: ApplicationId) -> list[ReminderOut]:
        return self.store.list_reminders(app_id)

    @guarded(_none)
    def complete_reminder(self, app_id: ApplicationId, reminder_id: ApplicationId) -> Optional[ReminderOut]:
        return self.store.complete_reminder(app_id, reminder_id)

    # -------------------------
    # Settings / progress
    # -------------------------
    @guarded(UserSettingsOut)
    def get_settings(self) -> UserSettingsOut:
        return self.store.get_settings()

    @guarded(_none)
    def update_settings(self, patch: UpdateSettingsIn) -> Optional[UserSettingsOut]:
        return self.store.update_settings(patch)

    @guarded(UserProgress)
    def get_user_progress(self) -> UserProgress:
        return self.store.get_user_progress()

    @guarded(_none)
    def reset(self) -> None:
        if self.store is self.local:
            self.local.clear_all()
        else:
            self.store.reset()

    # -------------------------
    # Derived views
    # -------------------------
    def next_actions(self, now: Optional[datetime] = None) -> list[NextAction]:
        return insights.next_actions(self.list_applications(), self.get_settings(), now or self._clock())

    def stale_applications(self, now: Optional[datetime] = None) -> list[ApplicationOut]:
        follow_up_days = self.get_settings().follow_up_days
        return [a for a in self.list_applications() if insights.is_stale(a, follow_up_days, now or self._clock())]

    def analytics(self) -> Analytics:
        return insights.calculate_analytics(self.list_applications())

    def funnel(self) -> list[FunnelStage]:
        return insights.funnel(self.list_applications())

    def weekly_progress(self, now: Optional[datetime] = None) -> GoalProgress:
        return insights.weekly_progress(self.list_applications(), self.get_settings(), now or self._clock())

    def daily_progress(self, now: Optional[datetime] = None) -> GoalProgress:
        return insights.daily_progress(self.list_applications(), self.get_settings(), now or self._clock())

    def activity_heatmap(self, days: int = 365, now: Optional[datetime] = None) -> list[HeatmapDay]:
        return insights.activity_heatmap(self.list_applications(), days, now or self._clock())

    # -------------------------
    # CSV
    # -------------------------
    def export_csv(self) -> str:
        return csv_io.export_csv(self.list_applications(force=True))

    def import_csv(self, text: str) -> csv_io.ImportResult:
        result = csv_io.import_csv(self.store, text, now=self._clock())
        self.store.refresh()
        return result
