"""
Optimistic front for the remote store.

Application list writes are applied to the cached list immediately and sent to
the server on a single background worker, so network writes run in the order
they were issued. Each successful write invalidates the cache timestamp; a
failed write restores the record it touched and is logged.
"""
from __future__ import annotations

import logging
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from typing import Any, Callable, Optional, Sequence, TypeVar

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
from jobflow.schemas.progress import UserProgress
from jobflow.schemas.reminder import ReminderCreate, ReminderOut
from jobflow.schemas.user_settings import UpdateSettingsIn, UserSettingsOut
from jobflow.services.cache import ApplicationListCache
from jobflow.stores.base import ApplicationStore

logger = logging.getLogger(__name__)

TEMP_ID_PREFIX = "temp-"

R = TypeVar("R")
Applications = list[ApplicationOut]


def is_temp_id(app_id: ApplicationId) -> bool:
    return isinstance(app_id, str) and app_id.startswith(TEMP_ID_PREFIX)


def _find(items: Optional[Applications], ids: set) -> Optional[ApplicationOut]:
    if not items:
        return None
    return next((a for a in items if a.id in ids), None)


class OptimisticStore:
    def __init__(
        self,
        remote: ApplicationStore,
        *,
        cache: ApplicationListCache | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.remote = remote
        self.cache: ApplicationListCache = cache or ApplicationListCache()
        self._clock = clock
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="jobflow-sync")
        # temp id -> server id; written on the worker thread once a create lands.
        self._aliases: dict[str, ApplicationId] = {}

    # -------------------------
    # Worker plumbing
    # -------------------------
    def _resolve(self, app_id: ApplicationId) -> ApplicationId:
        if is_temp_id(app_id):
            return self._aliases.get(app_id, app_id)
        return app_id

    def _ids(self, app_id: ApplicationId) -> set:
        """Every id the cached row may carry: the one given and the server id it maps to."""
        return {app_id, self._resolve(app_id)}

    def _run(self, fn: Callable[[], R]) -> R:
        """Run ``fn`` after every pending background write and wait for it."""
        return self._executor.submit(fn).result()

    def _background(self, label: str, call: Callable[[], Any], revert: Callable[[], None]) -> Future:
        def task() -> None:
            try:
                call()
            except Exception:
                logger.exception("Background %s failed; reverting optimistic change", label)
                revert()
                self.cache.invalidate()
                return
            self.cache.invalidate()

        return self._executor.submit(task)

    def flush(self) -> None:
        """Block until every write issued so far has settled."""
        self._run(lambda: None)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)

    # -------------------------
    # Reads
    # -------------------------
    def refresh(self) -> None:
        self.cache.invalidate()

    def list_applications(self, *, force: bool = False) -> Applications:
        if not force:
            cached = self.cache.get()
            if cached is not None:
                return cached
        items = self._run(self.remote.list_applications)
        return self.cache.set(items)

    def get_application(self, app_id: ApplicationId) -> ApplicationOut | None:
        if is_temp_id(app_id):
            pending = _find(self.cache.peek(), self._ids(app_id))
            if pending is not None:
                return pending
        return self._run(lambda: self.remote.get_application(self._resolve(app_id)))

    # -------------------------
    # Optimistic writes
    # -------------------------
    def create_application(self, draft: ApplicationCreate) -> ApplicationId:
        now = self._clock()
        temp_id = f"{TEMP_ID_PREFIX}{uuid.uuid4()}"
        placeholder = ApplicationOut(
            id=temp_id,
            **draft.model_dump(),
            created_at=now,
            updated_at=now,
            last_touch_at=now,
            applied_at=None if draft.status == ApplicationStatus.SAVED else now,
        )
        self.cache.apply(lambda items: [placeholder, *items])

        def call() -> None:
            real_id = self.remote.create_application(draft)
            self._aliases[temp_id] = real_id
            # Swap the id in place; later optimistic edits to the row are kept.
            self.cache.apply(
                lambda items: [a.model_copy(update={"id": real_id}) if a.id == temp_id else a for a in items]
            )

        def revert() -> None:
            self.cache.apply(lambda items: [a for a in items if a.id != temp_id])

        self._background("create", call, revert)
        return temp_id

    def _write_one(
        self,
        label: str,
        app_id: ApplicationId,
        change: Callable[[ApplicationOut], ApplicationOut],
        call: Callable[[ApplicationId], Any],
    ) -> ApplicationOut | None:
        snapshot = _find(self.cache.peek(), self._ids(app_id))
        updated = change(snapshot) if snapshot is not None else None
        if updated is not None:
            self.cache.apply(lambda items: [updated if a.id == snapshot.id else a for a in items])

        def revert() -> None:
            if snapshot is None:
                return
            ids = self._ids(app_id)
            self.cache.apply(
                lambda items: [snapshot.model_copy(update={"id": a.id}) if a.id in ids else a for a in items]
            )

        self._background(label, lambda: call(self._resolve(app_id)), revert)
        return updated

    def update_application_status(
        self, app_id: ApplicationId, status: ApplicationStatus
    ) -> ApplicationOut | None:
        status = ApplicationStatus(status)

        def change(app: ApplicationOut) -> ApplicationOut:
            now = self._clock()
            update: dict[str, Any] = {"status": status, "updated_at": now, "last_touch_at": max(now, app.last_touch_at)}
            if app.status == ApplicationStatus.SAVED and status != ApplicationStatus.SAVED and app.applied_at is None:
                update["applied_at"] = now
            return app.model_copy(update=update)

        return self._write_one(
            "status change",
            app_id,
            change,
            lambda rid: self.remote.update_application_status(rid, status),
        )

    def update_application(self, app_id: ApplicationId, patch: ApplicationUpdate) -> ApplicationOut | None:
        fields = {k: v for k, v in patch.model_dump(exclude_unset=True).items() if v is not None or k == "notes"}

        def change(app: ApplicationOut) -> ApplicationOut:
            now = self._clock()
            update: dict[str, Any] = {**fields, "updated_at": now, "last_touch_at": max(now, app.last_touch_at)}
            new_status = fields.get("status")
            if (
                new_status is not None
                and app.status == ApplicationStatus.SAVED
                and new_status != ApplicationStatus.SAVED
                and app.applied_at is None
            ):
                update["applied_at"] = now
            return app.model_copy(update=update)

        return self._write_one(
            "update",
            app_id,
            change,
            lambda rid: self.remote.update_application(rid, patch),
        )

    def delete_application(self, app_id: ApplicationId) -> bool:
        ids = self._ids(app_id)
        items = self.cache.peek() or []
        index = next((i for i, a in enumerate(items) if a.id in ids), None)
        snapshot = items[index] if index is not None else None
        if snapshot is not None:
            self.cache.apply(lambda current: [a for a in current if a.id not in ids])

        def revert() -> None:
            if snapshot is None:
                return
            restored = snapshot.model_copy(update={"id": self._resolve(snapshot.id)})
            self.cache.apply(lambda current: [*current[:index], restored, *current[index:]])

        self._background("delete", lambda: self.remote.delete_application(self._resolve(app_id)), revert)
        return True

    # -------------------------
    # Pass-through writes (ordered behind pending optimistic writes)
    # -------------------------
    def _write_through(self, fn: Callable[[], R]) -> R:
        result = self._run(fn)
        self.cache.invalidate()
        return result

    def bulk_create_applications(self, items: Sequence[ApplicationImport]) -> list[ApplicationId]:
        return self._write_through(lambda: self.remote.bulk_create_applications(items))

    def add_event(self, app_id: ApplicationId, draft: EventCreate) -> EventOut | None:
        return self._write_through(lambda: self.remote.add_event(self._resolve(app_id), draft))

    def list_events(self, app_id: ApplicationId) -> list[EventOut]:
        return self._run(lambda: self.remote.list_events(self._resolve(app_id)))

    def mark_follow_up_sent(self, app_id: ApplicationId) -> EventOut | None:
        return self._write_through(lambda: self.remote.mark_follow_up_sent(self._resolve(app_id)))

    def mark_prep_done(self, app_id: ApplicationId) -> EventOut | None:
        return self._write_through(lambda: self.remote.mark_prep_done(self._resolve(app_id)))

    def add_contact(self, app_id: ApplicationId, draft: ContactCreate) -> ContactOut | None:
        return self._run(lambda: self.remote.add_contact(self._resolve(app_id), draft))

    def list_contacts(self, app_id: ApplicationId) -> list[ContactOut]:
        return self._run(lambda: self.remote.list_contacts(self._resolve(app_id)))

    def add_reminder(self, app_id: ApplicationId, draft: ReminderCreate) -> ReminderOut | None:
        return self._run(lambda: self.remote.add_reminder(self._resolve(app_id), draft))

    def list_reminders(self, app_id: ApplicationId) -> list[ReminderOut]:
        return self._run(lambda: self.remote.list_reminders(self._resolve(app_id)))

    def complete_reminder(self, app_id: ApplicationId, reminder_id: ApplicationId) -> ReminderOut | None:
        return self._run(lambda: self.remote.complete_reminder(self._resolve(app_id), reminder_id))

    def get_settings(self) -> UserSettingsOut:
        return self._run(self.remote.get_settings)

    def update_settings(self, patch: UpdateSettingsIn) -> UserSettingsOut:
        return self._run(lambda: self.remote.update_settings(patch))

    def get_user_progress(self) -> UserProgress:
        return self._run(self.remote.get_user_progress)

    def reset(self) -> None:
        self._run(self.remote.reset)
        self.cache.clear()
