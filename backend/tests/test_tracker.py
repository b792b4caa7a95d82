import logging
from datetime import timedelta

import httpx
import pytest
from fastapi.testclient import TestClient

from jobflow.auth.identity import Identity
from jobflow.core.security import create_access_token
from jobflow.schemas.application import ApplicationCreate
from jobflow.schemas.enums import ApplicationStatus, NextActionType
from jobflow.services.migration import MigrationStatus
from jobflow.services.optimistic import OptimisticStore
from jobflow.services.tracker import Tracker
from jobflow.stores.base import AuthenticationRequiredError
from jobflow.stores.remote import RemoteStore


@pytest.fixture()
def api(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def tracker(local_store, app, clock):
    # One client per sign-in, since sign_out closes it.
    t = Tracker(local_store, remote_factory=lambda identity: RemoteStore(TestClient(app), identity), clock=clock)
    yield t
    t.sign_out()


def _down_factory(identity):
    def handler(request):
        raise httpx.ConnectError("offline", request=request)

    client = httpx.Client(base_url="http://api.test", transport=httpx.MockTransport(handler))
    return RemoteStore(client, identity)


def _user(key: str = "user-a") -> Identity:
    return Identity.signed_in(key, create_access_token(key))


def test_guest_actions_use_device_store(tracker, local_store):
    app_id = tracker.create_application(ApplicationCreate(company="Stripe", role="SWE"))

    assert tracker.store is local_store
    assert isinstance(app_id, int)
    assert tracker.update_application_status(app_id, ApplicationStatus.APPLIED).applied_at is not None
    assert tracker.get_user_progress().xp == 10


def test_sign_in_migrates_and_switches_to_remote(tracker, local_store):
    tracker.create_application(ApplicationCreate(company="Stripe", role="SWE"))

    result = tracker.sign_in(_user())

    assert result.status == MigrationStatus.MIGRATED
    assert isinstance(tracker.store, OptimisticStore)
    assert [a.company for a in tracker.list_applications()] == ["Stripe"]
    assert local_store.count_applications() == 0


def test_writes_after_sign_in_reach_server(tracker, api):
    tracker.sign_in(_user())
    temp_id = tracker.create_application(ApplicationCreate(company="Remote Co", role="SWE"))
    tracker.update_application_status(temp_id, ApplicationStatus.APPLIED)
    tracker.flush()

    res = api.get("/applications", headers={"Authorization": f"Bearer {create_access_token('user-a')}"})
    [row] = res.json()
    assert row["company"] == "Remote Co"
    assert row["status"] == "applied"


def test_store_failure_returns_default_and_logs(local_store, clock, caplog):
    tracker = Tracker(local_store, remote_factory=_down_factory, clock=clock)
    tracker.sign_in(_user())

    with caplog.at_level(logging.ERROR, logger="jobflow.services.tracker"):
        assert tracker.list_applications() == []
        assert tracker.get_settings().weekly_goal == 8

    assert "Action list_applications failed" in caplog.text
    tracker.sign_out()



class _Opened:
    """Remote factory that keeps every store it hands out."""

    def __init__(self, factory) -> None:
        self.factory = factory
        self.stores: list[RemoteStore] = []

    def __call__(self, identity):
        store = self.factory(identity)
        self.stores.append(store)
        return store


def test_sign_out_closes_remote_client(local_store, clock):
    opened = _Opened(_down_factory)
    tracker = Tracker(local_store, remote_factory=opened, clock=clock)

    tracker.sign_in(_user("user-a"))
    tracker.sign_in(_user("user-b"))
    assert [s.client.is_closed for s in opened.stores] == [True, False]

    tracker.sign_out()
    assert all(s.client.is_closed for s in opened.stores)


def test_rejected_sign_in_closes_client_and_stays_guest(local_store, clock):
    opened = _Opened(_down_factory)
    tracker = Tracker(local_store, remote_factory=opened, clock=clock)

    with pytest.raises(AuthenticationRequiredError):
        tracker.sign_in(Identity.guest())

    assert opened.stores[0].client.is_closed
    assert tracker.store is local_store
    assert not tracker.identity.is_authenticated


def test_rejected_write_is_logged_and_device_store_recovers(tracker, local_store, caplog):
    blank = ApplicationCreate.model_construct(company="   ", role="SWE")

    with caplog.at_level(logging.ERROR, logger="jobflow.services.tracker"):
        assert tracker.create_application(blank) is None

    assert "Action create_application failed" in caplog.text
    app_id = tracker.create_application(ApplicationCreate(company="Stripe", role="SWE"))
    assert [a.id for a in tracker.list_applications()] == [app_id]
    assert local_store.count_applications() == 1


def test_failed_migration_keeps_guest_data(local_store, clock):
    local_store.create_application(ApplicationCreate(company="Guest", role="Dev"))
    tracker = Tracker(local_store, remote_factory=_down_factory, clock=clock)

    result = tracker.sign_in(_user())

    assert result.status == MigrationStatus.FAILED
    assert tracker.identity.is_authenticated
    assert local_store.count_applications() == 1

    tracker.sign_out()
    assert tracker.store is local_store
    assert [a.company for a in tracker.list_applications()] == ["Guest"]


def test_sign_out_returns_to_guest_scope(tracker, local_store):
    tracker.sign_in(_user())
    tracker.create_application(ApplicationCreate(company="Remote Co", role="SWE"))
    tracker.flush()

    tracker.sign_out()

    assert not tracker.identity.is_authenticated
    assert tracker.store is local_store
    assert tracker.list_applications() == []


def test_guest_reset_clears_device(tracker, local_store):
    tracker.create_application(ApplicationCreate(company="Stripe", role="SWE"))
    local_store.set_flag("guest:tour", "seen")

    tracker.reset()

    assert tracker.list_applications() == []
    assert local_store.get_flag("guest:tour") is None


def test_derived_views_follow_current_scope(tracker, clock):
    tracker.create_application(ApplicationCreate(company="Stripe", role="SWE", status=ApplicationStatus.APPLIED))
    clock.advance(days=10)

    actions = tracker.next_actions()
    assert [a.type for a in actions] == [NextActionType.FOLLOW_UP]
    assert [a.company for a in tracker.stale_applications()] == ["Stripe"]
    assert tracker.analytics().applied == 1
    assert tracker.weekly_progress(clock.now - timedelta(days=10)).applied == 1
    assert tracker.daily_progress().applied == 0
    assert sum(d.count for d in tracker.activity_heatmap(days=30)) == 1
    assert tracker.funnel()[1].count == 1


def test_csv_round_trip_through_tracker(tracker):
    tracker.create_application(ApplicationCreate(company="Stripe", role="SWE"))
    text = tracker.export_csv()
    tracker.reset()

    result = tracker.import_csv(text)

    assert (result.success, result.count) == (True, 1)
    assert [a.company for a in tracker.list_applications()] == ["Stripe"]
