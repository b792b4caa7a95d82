from fastapi import APIRouter, Depends, status

from jobflow.dependencies.auth import get_identity_key
from jobflow.dependencies.store import get_store, not_found
from jobflow.schemas.contact import ContactCreate, ContactOut
from jobflow.schemas.event import EventCreate, EventOut
from jobflow.schemas.reminder import ReminderCreate, ReminderOut
from jobflow.stores.sql import SqlStore

router = APIRouter(prefix="/applications", tags=["timeline"], dependencies=[Depends(get_identity_key)])


def _found(result):
    if result is None:
        raise not_found()
    return result


def _require_application(store: SqlStore, app_id: str) -> None:
    if store.get_application(app_id) is None:
        raise not_found()


# -------------------------
# Events
# -------------------------
@router.get("/{app_id}/events", response_model=list[EventOut])
def list_events(app_id: str, store: SqlStore = Depends(get_store)):
    _require_application(store, app_id)
    return store.list_events(app_id)


@router.post("/{app_id}/events", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def add_event(app_id: str, payload: EventCreate, store: SqlStore = Depends(get_store)):
    return _found(store.add_event(app_id, payload))


@router.post("/{app_id}/follow-up", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def mark_follow_up_sent(app_id: str, store: SqlStore = Depends(get_store)):
    return _found(store.mark_follow_up_sent(app_id))


@router.post("/{app_id}/prep", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def mark_prep_done(app_id: str, store: SqlStore = Depends(get_store)):
    return _found(store.mark_prep_done(app_id))


# -------------------------
# Contacts
# -------------------------
@router.get("/{app_id}/contacts", response_model=list[ContactOut])
def list_contacts(app_id: str, store: SqlStore = Depends(get_store)):
    _require_application(store, app_id)
    return store.list_contacts(app_id)


@router.post("/{app_id}/contacts", response_model=ContactOut, status_code=status.HTTP_201_CREATED)
def add_contact(app_id: str, payload: ContactCreate, store: SqlStore = Depends(get_store)):
    return _found(store.add_contact(app_id, payload))


# -------------------------
# Reminders
# -------------------------
@router.get("/{app_id}/reminders", response_model=list[ReminderOut])
def list_reminders(app_id: str, store: SqlStore = Depends(get_store)):
    _require_application(store, app_id)
    return store.list_reminders(app_id)


@router.post("/{app_id}/reminders", response_model=ReminderOut, status_code=status.HTTP_201_CREATED)
def add_reminder(app_id: str, payload: ReminderCreate, store: SqlStore = Depends(get_store)):
    return _found(store.add_reminder(app_id, payload))


@router.post("/{app_id}/reminders/{reminder_id}/complete", response_model=ReminderOut)
def complete_reminder(app_id: str, reminder_id: str, store: SqlStore = Depends(get_store)):
    reminder = store.complete_reminder(app_id, reminder_id)
    if reminder is None:
        raise not_found("Reminder not found")
    return reminder
