"""
HTTP client for the server-backed store.

Every call carries the signed-in identity's bearer token. Calls made without an
authenticated identity fail with ``AuthenticationRequiredError`` before any
request is sent.
"""
from __future__ import annotations

import logging
from typing import Any, Sequence

import httpx
from pydantic import BaseModel

from jobflow.auth.identity import Identity
from jobflow.core.config import settings
from jobflow.schemas.application import (
    ApplicationCreate,
    ApplicationId,
    ApplicationImport,
    ApplicationOut,
    ApplicationUpdate,
    BulkCreateIn,
    BulkCreateOut,
    StatusUpdate,
)
from jobflow.schemas.contact import ContactCreate, ContactOut
from jobflow.schemas.enums import ApplicationStatus
from jobflow.schemas.event import EventCreate, EventOut
from jobflow.schemas.progress import UserProgress
from jobflow.schemas.reminder import ReminderCreate, ReminderOut
from jobflow.schemas.user_settings import UpdateSettingsIn, UserSettingsOut
from jobflow.stores.base import AuthenticationRequiredError, RemoteStoreError

logger = logging.getLogger(__name__)

_MISSING = object()


class RemoteStore:
    def __init__(self, client: httpx.Client, identity: Identity) -> None:
        self.client = client
        self.identity = identity

    @classmethod
    def connect(cls, identity: Identity, *, base_url: str | None = None) -> RemoteStore:
        client = httpx.Client(
            base_url=base_url or settings.API_BASE_URL,
            timeout=settings.REMOTE_TIMEOUT_SECONDS,
        )
        return cls(client, identity)

    def close(self) -> None:
        self.client.close()

    # -------------------------
    # Transport
    # -------------------------
    def _request(self, method: str, path: str, *, json: Any = None) -> Any:
        """
        Returns decoded JSON, or ``_MISSING`` on 404.
        """
        if not self.identity.is_authenticated:
            raise AuthenticationRequiredError("Sign in required for remote store access")

        headers = {"Authorization": f"Bearer {self.identity.token}"}
        try:
            response = self.client.request(method, path, json=json, headers=headers)
        except httpx.HTTPError as exc:
            raise RemoteStoreError(f"{method} {path} failed: {exc}") from exc

        if response.status_code == 404:
            return _MISSING
        if response.status_code == 401:
            raise AuthenticationRequiredError("Remote store rejected the credentials")
        if response.status_code >= 400:
            message = _error_message(response)
            logger.warning("Remote store %s %s -> %s: %s", method, path, response.status_code, message)
            raise RemoteStoreError(message, status_code=response.status_code)

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteStoreError("Invalid JSON from remote store", status_code=response.status_code) from exc

    @staticmethod
    def _body(payload: BaseModel, **kwargs: Any) -> dict[str, Any]:
        return payload.model_dump(mode="json", **kwargs)

    # -------------------------
    # Applications
    # -------------------------
    def refresh(self) -> None:
        # Nothing is held client-side; the server is always authoritative.
        return None

    def list_applications(self) -> list[ApplicationOut]:
        data = self._request("GET", "/applications")
        return [ApplicationOut.model_validate(x) for x in data or []]

    def get_application(self, app_id: ApplicationId) -> ApplicationOut | None:
        data = self._request("GET", f"/applications/{app_id}")
        return None if data is _MISSING else ApplicationOut.model_validate(data)

    def create_application(self, draft: ApplicationCreate) -> ApplicationId:
        data = self._request("POST", "/applications", json=self._body(draft))
        return ApplicationOut.model_validate(data).id

    def update_application_status(
        self, app_id: ApplicationId, status: ApplicationStatus
    ) -> ApplicationOut | None:
        data = self._request(
            "POST",
            f"/applications/{app_id}/status",
            json=self._body(StatusUpdate(status=status)),
        )
        return None if data is _MISSING else ApplicationOut.model_validate(data)

    def update_application(self, app_id: ApplicationId, patch: ApplicationUpdate) -> ApplicationOut | None:
        data = self._request("PATCH", f"/applications/{app_id}", json=self._body(patch, exclude_unset=True))
        return None if data is _MISSING else ApplicationOut.model_validate(data)

    def delete_application(self, app_id: ApplicationId) -> bool:
        return self._request("DELETE", f"/applications/{app_id}") is not _MISSING

    def bulk_create_applications(self, items: Sequence[ApplicationImport]) -> list[ApplicationId]:
        data = self._request("POST", "/applications/bulk", json=self._body(BulkCreateIn(items=list(items))))
        return BulkCreateOut.model_validate(data).ids

    # -------------------------
    # Timeline
    # -------------------------
    def add_event(self, app_id: ApplicationId, draft: EventCreate) -> EventOut | None:
        data = self._request("POST", f"/applications/{app_id}/events", json=self._body(draft))
        return None if data is _MISSING else EventOut.model_validate(data)

    def list_events(self, app_id: ApplicationId) -> list[EventOut]:
        data = self._request("GET", f"/applications/{app_id}/events")
        return [] if data is _MISSING else [EventOut.model_validate(x) for x in data]

    def mark_follow_up_sent(self, app_id: ApplicationId) -> EventOut | None:
        data = self._request("POST", f"/applications/{app_id}/follow-up")
        return None if data is _MISSING else EventOut.model_validate(data)

    def mark_prep_done(self, app_id: ApplicationId) -> EventOut | None:
        data = self._request("POST", f"/applications/{app_id}/prep")
        return None if data is _MISSING else EventOut.model_validate(data)

    def add_contact(self, app_id: ApplicationId, draft: ContactCreate) -> ContactOut | None:
        data = self._request("POST", f"/applications/{app_id}/contacts", json=self._body(draft))
        return None if data is _MISSING else ContactOut.model_validate(data)

    def list_contacts(self, app_id: ApplicationId) -> list[ContactOut]:
        data = self._request("GET", f"/applications/{app_id}/contacts")
        return [] if data is _MISSING else [ContactOut.model_validate(x) for x in data]

    def add_reminder(self, app_id: ApplicationId, draft: ReminderCreate) -> ReminderOut | None:
        data = self._request("POST", f"/applications/{app_id}/reminders", json=self._body(draft))
        return None if data is _MISSING else ReminderOut.model_validate(data)

    def list_reminders(self, app_id: ApplicationId) -> list[ReminderOut]:
        data = self._request("GET", f"/applications/{app_id}/reminders")
        return [] if data is _MISSING else [ReminderOut.model_validate(x) for x in data]

    def complete_reminder(self, app_id: ApplicationId, reminder_id: ApplicationId) -> ReminderOut | None:
        data = self._request("POST", f"/applications/{app_id}/reminders/{reminder_id}/complete")
        return None if data is _MISSING else ReminderOut.model_validate(data)

    # -------------------------
    # Singletons
    # -------------------------
    def get_settings(self) -> UserSettingsOut:
        data = self._request("GET", "/settings")
        return UserSettingsOut() if data is _MISSING else UserSettingsOut.model_validate(data)

    def update_settings(self, patch: UpdateSettingsIn) -> UserSettingsOut:
        data = self._request("PATCH", "/settings", json=self._body(patch, exclude_unset=True))
        return UserSettingsOut.model_validate(data)

    def get_user_progress(self) -> UserProgress:
        data = self._request("GET", "/progress")
        return UserProgress() if data is _MISSING else UserProgress.model_validate(data)

    def reset(self) -> None:
        self._request("DELETE", "/data")


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return f"Remote store error ({response.status_code})"
    if isinstance(payload, dict):
        msg = payload.get("message")
        if isinstance(msg, str) and msg:
            return msg
    return f"Remote store error ({response.status_code})"
