from datetime import timedelta

import pytest

from jobflow.auth.identity import Identity
from jobflow.schemas.application import ApplicationCreate
from jobflow.schemas.contact import ContactCreate
from jobflow.schemas.enums import ApplicationStatus
from jobflow.schemas.reminder import ReminderCreate
from jobflow.services.migration import MigrationEngine, MigrationStatus, marker_key
from jobflow.stores.base import AuthenticationRequiredError, RemoteStoreError


class RecordingRemote:
    def __init__(self, inner, *, fail: bool = False) -> None:
        self.inner = inner
        self.fail = fail
        self.bulk_calls = 0

    def bulk_create_applications(self, items):
        self.bulk_calls += 1
        if self.fail:
            raise RemoteStoreError("server unavailable", status_code=503)
        return self.inner.bulk_create_applications(items)


def _seed_guest_data(local_store, clock):
    first = local_store.create_application(ApplicationCreate(company="Guest A", role="Dev"))
    local_store.add_contact(first, ContactCreate(name="Recruiter"))
    local_store.add_reminder(first, ReminderCreate(title="Ping", due_at=clock.now + timedelta(days=3)))
    clock.advance(hours=1)
    second = local_store.create_application(
        ApplicationCreate(company="Guest B", role="Dev", status=ApplicationStatus.APPLIED)
    )
    return first, second


def test_migrates_guest_data_and_clears_device(local_store, remote_store, identity, clock):
    _seed_guest_data(local_store, clock)
    local_store.set_flag("guest:tour", "seen")
    remote = RecordingRemote(remote_store)

    result = MigrationEngine(local_store, remote).run(identity)

    assert result.status == MigrationStatus.MIGRATED
    assert result.migrated == 2
    assert result.ok

    server_apps = {a.company: a for a in remote_store.list_applications()}
    assert set(server_apps) == {"Guest A", "Guest B"}
    assert server_apps["Guest B"].applied_at is not None
    assert [c.name for c in remote_store.list_contacts(server_apps["Guest A"].id)] == ["Recruiter"]
    assert [r.title for r in remote_store.list_reminders(server_apps["Guest A"].id)] == ["Ping"]
    assert len(remote_store.list_events(server_apps["Guest A"].id)) == 1

    assert local_store.count_applications() == 0
    assert local_store.get_flag("guest:tour") is None
    assert local_store.get_flag(marker_key(identity)) is not None


def test_second_run_makes_no_remote_writes(local_store, remote_store, identity, clock):
    _seed_guest_data(local_store, clock)
    remote = RecordingRemote(remote_store)
    engine = MigrationEngine(local_store, remote)
    engine.run(identity)

    # New guest data after the marker was set stays on the device.
    local_store.create_application(ApplicationCreate(company="Later", role="Dev"))
    result = engine.run(identity)

    assert result.status == MigrationStatus.ALREADY_DONE
    assert remote.bulk_calls == 1
    assert local_store.count_applications() == 1


def test_nothing_to_migrate_sets_marker(local_store, remote_store, identity):
    remote = RecordingRemote(remote_store)

    result = MigrationEngine(local_store, remote).run(identity)

    assert result.status == MigrationStatus.NOTHING_TO_MIGRATE
    assert remote.bulk_calls == 0
    assert MigrationEngine(local_store, remote).is_done(identity)


def test_failure_keeps_local_data_and_retries(local_store, remote_store, identity, clock, caplog):
    _seed_guest_data(local_store, clock)
    remote = RecordingRemote(remote_store, fail=True)
    engine = MigrationEngine(local_store, remote)

    result = engine.run(identity)

    assert result.status == MigrationStatus.FAILED
    assert not result.ok
    assert result.error == "server unavailable"
    assert local_store.count_applications() == 2
    assert not engine.is_done(identity)
    assert "Guest data migration failed" in caplog.text

    remote.fail = False
    assert engine.run(identity).status == MigrationStatus.MIGRATED
    assert remote.bulk_calls == 2
    assert len(remote_store.list_applications()) == 2


def test_marker_is_per_identity(local_store, remote_store, identity):
    MigrationEngine(local_store, RecordingRemote(remote_store)).run(identity)

    other = Identity.signed_in("user-b", "token-b")
    assert not MigrationEngine(local_store, RecordingRemote(remote_store)).is_done(other)


def test_guest_identity_is_rejected(local_store, remote_store):
    with pytest.raises(AuthenticationRequiredError):
        MigrationEngine(local_store, RecordingRemote(remote_store)).run(Identity.guest())


def test_drafts_are_oldest_first(local_store, remote_store, clock):
    _seed_guest_data(local_store, clock)
    drafts = MigrationEngine(local_store, remote_store).collect_drafts()

    assert [d.company for d in drafts] == ["Guest A", "Guest B"]
    assert drafts[0].applied_at is None
    assert drafts[0].events[0].title == "Saved Guest A"
    assert drafts[0].reminders[0].completed is False
