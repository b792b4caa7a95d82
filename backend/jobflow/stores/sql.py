"""
SQL implementation of the store contract.

The device database (guest scope) and the server database (one scope per
identity) run the exact same write rules through this class, so the two
backends cannot drift apart. The only differences are the model set (integer vs
UUID ids) and whether rows are filtered by ``user_id``.
"""
from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Sequence

from sqlalchemy import desc, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from jobflow.core.timeutil import as_utc, utcnow
from jobflow.models.application import Application
from jobflow.models.application_event import ApplicationEvent
from jobflow.models.contact import Contact
from jobflow.models.local import (
    LocalApplication,
    LocalApplicationEvent,
    LocalContact,
    LocalProgress,
    LocalReminder,
    LocalSettings,
)
from jobflow.models.reminder import Reminder
from jobflow.models.user_progress import UserProgress as UserProgressRow
from jobflow.models.user_settings import UserSettings
from jobflow.schemas.application import (
    ApplicationCreate,
    ApplicationId,
    ApplicationImport,
    ApplicationOut,
    ApplicationUpdate,
)
from jobflow.schemas.contact import ContactCreate, ContactOut
from jobflow.schemas.enums import ApplicationStatus, EventType
from jobflow.schemas.event import EventCreate, EventOut
from jobflow.schemas.progress import UserProgress
from jobflow.schemas.reminder import ReminderCreate, ReminderOut
from jobflow.schemas.user_settings import DEFAULT_SETTINGS, UpdateSettingsIn, UserSettingsOut
from jobflow.services.gamification import (
    ProgressContext,
    record_contact_added,
    record_follow_up,
    record_prep,
    record_status_change,
    record_submission,
)
from jobflow.stores.base import PersistenceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelSet:
    application: type
    event: type
    contact: type
    reminder: type
    settings: type
    progress: type
    # True when application/settings/progress rows carry a user_id owner column.
    scoped: bool


SERVER_MODELS = ModelSet(
    application=Application,
    event=ApplicationEvent,
    contact=Contact,
    reminder=Reminder,
    settings=UserSettings,
    progress=UserProgressRow,
    scoped=True,
)

LOCAL_MODELS = ModelSet(
    application=LocalApplication,
    event=LocalApplicationEvent,
    contact=LocalContact,
    reminder=LocalReminder,
    settings=LocalSettings,
    progress=LocalProgress,
    scoped=False,
)

_APPLICATION_FIELDS = set(ApplicationCreate.model_fields)
_REQUIRED_PATCH_FIELDS = {"company", "role", "platform", "archived"}

ProgressTransition = Callable[[UserProgress, ProgressContext], UserProgress]


def _column_values(data: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for k, v in data.items():
        if isinstance(v, Enum):
            v = v.value
        elif isinstance(v, str):
            v = v.strip() or None
        out[k] = v
    return out


def atomic(fn):
    """
    Wrap a store write: any database error (flushes included) rolls the session
    back, so a long-lived session stays usable, and is re-raised as PersistenceError.
    """

    @functools.wraps(fn)
    def wrapper(self, *args, **kwargs):
        try:
            return fn(self, *args, **kwargs)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.warning("Store write %s failed for scope %s: %s", fn.__name__, self.owner_id or "guest", exc)
            raise PersistenceError(str(getattr(exc, "orig", None) or exc)) from exc

    return wrapper


def _progress_columns(progress: UserProgress) -> dict[str, Any]:
    data = progress.model_dump(exclude={"badges", "milestones", "weekly_stats"})
    data["badges"] = [b.value for b in progress.badges]
    data["milestones"] = [m.value for m in progress.milestones]
    data["weekly_stats"] = [s.model_dump(mode="json") for s in progress.weekly_stats]
    return data


class SqlStore:
    def __init__(
        self,
        db: Session,
        models: ModelSet,
        *,
        owner_id: str | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if models.scoped and not owner_id:
            raise ValueError("owner_id is required for identity-scoped tables")
        self.db = db
        self.models = models
        self.owner_id = owner_id
        self._clock = clock

    # -------------------------
    # Internals
    # -------------------------
    def _now(self) -> datetime:
        return as_utc(self._clock())

    def _owned(self, model):
        qry = self.db.query(model)
        if self.models.scoped:
            qry = qry.filter(model.user_id == self.owner_id)
        return qry

    def _new_owned(self, model, **values):
        row = model(**values)
        if self.models.scoped:
            row.user_id = self.owner_id
        return row

    def _key(self, raw: ApplicationId) -> ApplicationId | None:
        if self.models.scoped:
            return str(raw)
        try:
            return int(raw)
        except (TypeError, ValueError):
            return None

    def _app_row(self, app_id: ApplicationId):
        key = self._key(app_id)
        if key is None:
            return None
        A = self.models.application
        return self._owned(A).filter(A.id == key).first()

    def _commit(self) -> None:
        # Rollback on failure is handled by @atomic around the whole write.
        self.db.commit()

    def _insert_event(
        self,
        app_row,
        *,
        type: EventType,
        title: str,
        now: datetime,
        description: str | None = None,
        date: datetime | None = None,
        completed: bool = True,
        scheduled_at: datetime | None = None,
    ):
        ev = self.models.event(
            application_id=app_row.id,
            type=EventType(type).value,
            title=title,
            description=description,
            date=date or now,
            created_at=now,
            completed=completed,
            scheduled_at=scheduled_at,
        )
        self.db.add(ev)
        # Let caller decide commit timing; flush so `id` can be used.
        self.db.flush()
        return ev

    @staticmethod
    def _touch(app_row, now: datetime) -> None:
        app_row.updated_at = now
        last = as_utc(app_row.last_touch_at)
        app_row.last_touch_at = now if last is None or now > last else last

    def _settings_row(self, *, create: bool):
        S = self.models.settings
        row = self._owned(S).first()
        if row is None and create:
            now = self._now()
            row = self._new_owned(S, **DEFAULT_SETTINGS, created_at=now, updated_at=now)
            self.db.add(row)
            self.db.flush()
        return row

    def _progress_row(self, *, create: bool):
        P = self.models.progress
        row = self._owned(P).first()
        if row is None and create:
            now = self._now()
            row = self._new_owned(P, **_progress_columns(UserProgress()), created_at=now, updated_at=now)
            self.db.add(row)
            self.db.flush()
        return row

    def _apply_progress(self, transition: ProgressTransition, now: datetime) -> None:
        settings_ = self.get_settings()
        ctx = ProgressContext(
            now=now,
            grace_days=settings_.streak_grace_days,
            weekly_goal=settings_.weekly_goal,
        )
        row = self._progress_row(create=True)
        before = UserProgress.model_validate(row)
        after = transition(before, ctx)
        for k, v in _progress_columns(after).items():
            setattr(row, k, v)
        row.updated_at = now
        if after.level > before.level:
            logger.info("Level up for scope %s: %s -> %s", self.owner_id or "guest", before.level, after.level)

    def _transition(self, app_row, new: ApplicationStatus, now: datetime) -> None:
        old = ApplicationStatus(app_row.status)
        first_submission = (
            old == ApplicationStatus.SAVED
            and new != ApplicationStatus.SAVED
            and app_row.applied_at is None
        )
        app_row.status = new.value
        if first_submission:
            app_row.applied_at = now

        self._insert_event(
            app_row,
            type=EventType.STATUS_CHANGE,
            title=f"Moved to {new.value}",
            description=f"{old.value} -> {new.value}",
            now=now,
        )

        if first_submission or new != old:
            self._apply_progress(
                lambda p, ctx: record_status_change(p, ctx, old, new, first_submission=first_submission),
                now,
            )

    @staticmethod
    def _out(app_row) -> ApplicationOut:
        return ApplicationOut.model_validate(app_row)

    # -------------------------
    # Applications
    # -------------------------
    def refresh(self) -> None:
        self.db.expire_all()

    def count_applications(self) -> int:
        return self._owned(self.models.application).count()

    def list_applications(self) -> list[ApplicationOut]:
        A = self.models.application
        rows = (
            self._owned(A)
            .order_by(desc(A.updated_at), desc(A.created_at), desc(A.id))
            .all()
        )
        return [self._out(r) for r in rows]

    def get_application(self, app_id: ApplicationId) -> ApplicationOut | None:
        row = self._app_row(app_id)
        return self._out(row) if row is not None else None

    @atomic
    def create_application(self, draft: ApplicationCreate) -> ApplicationId:
        now = self._now()
        status = ApplicationStatus(draft.status)
        data = _column_values(draft.model_dump(include=_APPLICATION_FIELDS))

        row = self._new_owned(
            self.models.application,
            **data,
            created_at=now,
            updated_at=now,
            last_touch_at=now,
            applied_at=None if status == ApplicationStatus.SAVED else now,
        )
        self.db.add(row)
        self.db.flush()

        if status == ApplicationStatus.SAVED:
            self._insert_event(row, type=EventType.NOTE, title=f"Saved {row.company}", now=now)
        else:
            self._insert_event(row, type=EventType.APPLIED, title=f"Applied to {row.company}", now=now)
            self._apply_progress(record_submission, now)

        app_id = row.id
        self._commit()
        return app_id

    @atomic
    def update_application_status(
        self, app_id: ApplicationId, status: ApplicationStatus
    ) -> ApplicationOut | None:
        row = self._app_row(app_id)
        if row is None:
            return None
        now = self._now()
        self._transition(row, ApplicationStatus(status), now)
        self._touch(row, now)
        self._commit()
        return self._out(row)

    @atomic
    def update_application(self, app_id: ApplicationId, patch: ApplicationUpdate) -> ApplicationOut | None:
        row = self._app_row(app_id)
        if row is None:
            return None
        now = self._now()

        data = patch.model_dump(exclude_unset=True)
        new_status = data.pop("status", None)

        for k, v in _column_values(data).items():
            if v is None and k in _REQUIRED_PATCH_FIELDS:
                continue
            setattr(row, k, v)

        # A patched status goes through the same rules as an explicit transition.
        if new_status is not None and ApplicationStatus(new_status) != ApplicationStatus(row.status):
            self._transition(row, ApplicationStatus(new_status), now)

        self._touch(row, now)
        self._commit()
        return self._out(row)

    @atomic
    def delete_application(self, app_id: ApplicationId) -> bool:
        row = self._app_row(app_id)
        if row is None:
            return False
        for model in (self.models.event, self.models.contact, self.models.reminder):
            self.db.query(model).filter(model.application_id == row.id).delete(synchronize_session=False)
        self.db.delete(row)
        self._commit()
        return True

    @atomic
    def bulk_create_applications(self, items: Sequence[ApplicationImport]) -> list[ApplicationId]:
        """
        Insert prepared drafts (guest migration, CSV import) in one transaction.
        Supplied ``applied_at``/``last_touch_at`` and nested events/contacts are kept.
        """
        now = self._now()
        ids: list[ApplicationId] = []

        for item in items:
            status = ApplicationStatus(item.status)
            last_touch = as_utc(item.last_touch_at) or now
            applied_at = as_utc(item.applied_at)
            if applied_at is None and status != ApplicationStatus.SAVED:
                applied_at = last_touch
            created_at = min(d for d in (now, last_touch, applied_at) if d is not None)

            row = self._new_owned(
                self.models.application,
                **_column_values(item.model_dump(include=_APPLICATION_FIELDS)),
                created_at=created_at,
                updated_at=max(now, last_touch),
                last_touch_at=last_touch,
                applied_at=applied_at,
            )
            self.db.add(row)
            self.db.flush()

            for ev in item.events:
                self._insert_event(
                    row,
                    type=ev.type,
                    title=ev.title,
                    description=ev.description,
                    date=as_utc(ev.date),
                    completed=ev.completed,
                    scheduled_at=as_utc(ev.scheduled_at),
                    now=now,
                )
            for c in item.contacts:
                self.db.add(
                    self.models.contact(application_id=row.id, **_column_values(c.model_dump()), created_at=now)
                )
            for r in item.reminders:
                self.db.add(
                    self.models.reminder(
                        application_id=row.id,
                        title=r.title.strip(),
                        description=r.description,
                        due_at=as_utc(r.due_at),
                        completed=r.completed,
                        created_at=now,
                    )
                )

            if status != ApplicationStatus.SAVED:
                self._apply_progress(record_submission, now)
            ids.append(row.id)

        self._commit()
        logger.info("Bulk-created %s applications for scope %s", len(ids), self.owner_id or "guest")
        return ids

    # -------------------------
    # Timeline: events, contacts, reminders
    # -------------------------
    @atomic
    def add_event(self, app_id: ApplicationId, draft: EventCreate) -> EventOut | None:
        row = self._app_row(app_id)
        if row is None:
            return None
        now = self._now()
        ev = self._insert_event(
            row,
            type=draft.type,
            title=draft.title.strip(),
            description=draft.description,
            date=as_utc(draft.date),
            completed=draft.completed,
            scheduled_at=as_utc(draft.scheduled_at),
            now=now,
        )
        self._touch(row, now)
        if EventType(draft.type) == EventType.FOLLOW_UP:
            self._apply_progress(record_follow_up, now)
        self._commit()
        return EventOut.model_validate(ev)

    def mark_follow_up_sent(self, app_id: ApplicationId) -> EventOut | None:
        return self.add_event(app_id, EventCreate(type=EventType.FOLLOW_UP, title="Follow-up sent", completed=True))

    @atomic
    def mark_prep_done(self, app_id: ApplicationId) -> EventOut | None:
        row = self._app_row(app_id)
        if row is None:
            return None
        now = self._now()
        ev = self._insert_event(row, type=EventType.NOTE, title="Prepared for interview", now=now)
        self._touch(row, now)
        self._apply_progress(record_prep, now)
        self._commit()
        return EventOut.model_validate(ev)

    def list_events(self, app_id: ApplicationId) -> list[EventOut]:
        row = self._app_row(app_id)
        if row is None:
            return []
        E = self.models.event
        events = (
            self.db.query(E)
            .filter(E.application_id == row.id)
            .order_by(desc(E.date), desc(E.created_at))
            .all()
        )
        return [EventOut.model_validate(e) for e in events]

    def _count_contacts(self) -> int:
        C, A = self.models.contact, self.models.application
        qry = self.db.query(func.count(C.id))
        if self.models.scoped:
            qry = qry.join(A, A.id == C.application_id).filter(A.user_id == self.owner_id)
        return int(qry.scalar() or 0)

    @atomic
    def add_contact(self, app_id: ApplicationId, draft: ContactCreate) -> ContactOut | None:
        row = self._app_row(app_id)
        if row is None:
            return None
        now = self._now()
        contact = self.models.contact(application_id=row.id, **_column_values(draft.model_dump()), created_at=now)
        self.db.add(contact)
        self.db.flush()

        total = self._count_contacts()
        self._apply_progress(lambda p, ctx: record_contact_added(p, total), now)
        self._commit()
        return ContactOut.model_validate(contact)

    def list_contacts(self, app_id: ApplicationId) -> list[ContactOut]:
        row = self._app_row(app_id)
        if row is None:
            return []
        C = self.models.contact
        contacts = self.db.query(C).filter(C.application_id == row.id).order_by(desc(C.created_at)).all()
        return [ContactOut.model_validate(c) for c in contacts]

    @atomic
    def add_reminder(self, app_id: ApplicationId, draft: ReminderCreate) -> ReminderOut | None:
        row = self._app_row(app_id)
        if row is None:
            return None
        reminder = self.models.reminder(
            application_id=row.id,
            title=draft.title.strip(),
            description=draft.description,
            due_at=as_utc(draft.due_at),
            completed=False,
            created_at=self._now(),
        )
        self.db.add(reminder)
        self._commit()
        return ReminderOut.model_validate(reminder)

    def list_reminders(self, app_id: ApplicationId) -> list[ReminderOut]:
        row = self._app_row(app_id)
        if row is None:
            return []
        R = self.models.reminder
        reminders = self.db.query(R).filter(R.application_id == row.id).order_by(R.due_at.asc()).all()
        return [ReminderOut.model_validate(r) for r in reminders]

    @atomic
    def complete_reminder(self, app_id: ApplicationId, reminder_id: ApplicationId) -> ReminderOut | None:
        row = self._app_row(app_id)
        key = self._key(reminder_id)
        if row is None or key is None:
            return None
        R = self.models.reminder
        reminder = self.db.query(R).filter(R.id == key, R.application_id == row.id).first()
        if reminder is None:
            return None
        reminder.completed = True
        self._commit()
        return ReminderOut.model_validate(reminder)

    # -------------------------
    # Singletons
    # -------------------------
    def get_settings(self) -> UserSettingsOut:
        row = self._settings_row(create=False)
        return UserSettingsOut.model_validate(row) if row is not None else UserSettingsOut()

    @atomic
    def update_settings(self, patch: UpdateSettingsIn) -> UserSettingsOut:
        row = self._settings_row(create=True)
        for k, v in patch.model_dump(exclude_unset=True).items():
            if v is None:
                continue
            setattr(row, k, v)
        row.updated_at = self._now()
        self._commit()
        return UserSettingsOut.model_validate(row)

    def get_user_progress(self) -> UserProgress:
        row = self._progress_row(create=False)
        return UserProgress.model_validate(row) if row is not None else UserProgress()

    @atomic
    def reset(self) -> None:
        """Full data reset of this scope."""
        A = self.models.application
        app_ids = [r[0] for r in self._owned(A).with_entities(A.id).all()]
        if app_ids:
            for model in (self.models.event, self.models.contact, self.models.reminder):
                self.db.query(model).filter(model.application_id.in_(app_ids)).delete(synchronize_session=False)
        for model in (A, self.models.settings, self.models.progress):
            self._owned(model).delete(synchronize_session=False)
        self._commit()
        logger.info("Reset all data for scope %s", self.owner_id or "guest")
