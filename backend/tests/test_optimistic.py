from __future__ import annotations

import logging
import threading

import pytest

from jobflow.schemas.application import ApplicationCreate, ApplicationUpdate
from jobflow.schemas.enums import ApplicationStatus
from jobflow.services.cache import ApplicationListCache
from jobflow.services.optimistic import OptimisticStore, is_temp_id
from jobflow.stores.base import RemoteStoreError


class CountingRemote:
    """Wraps a store and counts calls per method name."""

    def __init__(self, inner) -> None:
        self.inner = inner
        self.calls: dict[str, int] = {}

    def __getattr__(self, name):
        target = getattr(self.inner, name)
        if not callable(target):
            return target

        def wrapper(*args, **kwargs):
            self.calls[name] = self.calls.get(name, 0) + 1
            return target(*args, **kwargs)

        return wrapper


class FlakyRemote(CountingRemote):
    """Methods listed in ``failing`` raise ``error`` (a transport error by default) instead of reaching the server."""

    def __init__(self, inner, failing: set[str], error: Exception | None = None) -> None:
        super().__init__(inner)
        self.failing = failing
        self.error = error or RemoteStoreError("server unavailable", status_code=503)

    def __getattr__(self, name):
        if name in self.failing:

            def fail(*args, **kwargs):
                raise self.error

            return fail
        return super().__getattr__(name)


class GatedRemote(CountingRemote):
    """Holds ``create_application`` until the gate opens."""

    def __init__(self, inner) -> None:
        super().__init__(inner)
        self.gate = threading.Event()

    def create_application(self, draft):
        assert self.gate.wait(timeout=5)
        return self.inner.create_application(draft)


@pytest.fixture()
def make_store(monotonic, clock):
    created = []

    def _make(remote) -> OptimisticStore:
        store = OptimisticStore(remote, cache=ApplicationListCache(30, clock=monotonic), clock=clock)
        created.append(store)
        return store

    yield _make
    for store in created:
        store.shutdown()


def test_list_is_cached_within_ttl(remote_store, make_store, monotonic):
    remote = CountingRemote(remote_store)
    store = make_store(remote)

    first = store.list_applications()
    monotonic.advance(10)
    second = store.list_applications()

    assert second is first
    assert remote.calls["list_applications"] == 1

    monotonic.advance(25)
    store.list_applications()
    assert remote.calls["list_applications"] == 2


def test_force_bypasses_cache(remote_store, make_store):
    remote = CountingRemote(remote_store)
    store = make_store(remote)

    store.list_applications()
    store.list_applications(force=True)
    assert remote.calls["list_applications"] == 2


def test_create_shows_placeholder_then_real_id(remote_store, make_store):
    remote = GatedRemote(remote_store)
    store = make_store(remote)
    store.list_applications()

    temp_id = store.create_application(ApplicationCreate(company="Stripe", role="SWE"))
    assert is_temp_id(temp_id)
    cached = store.cache.peek()
    assert [a.id for a in cached] == [temp_id]
    assert store.get_application(temp_id).company == "Stripe"

    remote.gate.set()
    store.flush()

    ids = [a.id for a in store.cache.peek()]
    assert len(ids) == 1
    assert not is_temp_id(ids[0])
    assert remote_store.get_application(ids[0]).company == "Stripe"


def test_status_change_on_pending_create_reaches_server(remote_store, make_store, clock):
    remote = GatedRemote(remote_store)
    store = make_store(remote)
    store.list_applications()

    temp_id = store.create_application(ApplicationCreate(company="Stripe", role="SWE"))
    clock.advance(minutes=1)
    optimistic = store.update_application_status(temp_id, ApplicationStatus.APPLIED)
    assert optimistic.status == ApplicationStatus.APPLIED
    assert optimistic.applied_at == clock.now

    remote.gate.set()
    store.flush()

    [server_app] = remote_store.list_applications()
    assert server_app.status == ApplicationStatus.APPLIED
    assert remote_store.get_user_progress().xp == 10


def test_successful_write_invalidates_cache(remote_store, make_store):
    remote = CountingRemote(remote_store)
    store = make_store(remote)
    store.list_applications()

    store.create_application(ApplicationCreate(company="Stripe", role="SWE"))
    store.flush()

    assert store.cache.get() is None
    assert [a.company for a in store.list_applications()] == ["Stripe"]
    assert remote.calls["list_applications"] == 2


def test_failed_create_removes_placeholder(remote_store, make_store, caplog):
    store = make_store(FlakyRemote(remote_store, {"create_application"}))
    store.list_applications()

    with caplog.at_level(logging.ERROR, logger="jobflow.services.optimistic"):
        store.create_application(ApplicationCreate(company="Stripe", role="SWE"))
        store.flush()

    assert store.cache.peek() == []
    assert "Background create failed" in caplog.text



def test_unexpected_worker_error_still_reverts(remote_store, make_store, caplog):
    remote = FlakyRemote(remote_store, {"create_application"}, error=RuntimeError("serializer bug"))
    store = make_store(remote)
    store.list_applications()

    with caplog.at_level(logging.ERROR, logger="jobflow.services.optimistic"):
        store.create_application(ApplicationCreate(company="Stripe", role="SWE"))
        store.flush()

    assert store.cache.peek() == []
    assert "Background create failed" in caplog.text
    assert "serializer bug" in caplog.text
    # Worker thread survives and later writes still go through.
    remote.failing.clear()
    store.create_application(ApplicationCreate(company="Acme", role="Dev"))
    store.flush()
    assert [a.company for a in store.list_applications(force=True)] == ["Acme"]


def test_failed_status_change_reverts(remote_store, make_store):
    app_id = remote_store.create_application(ApplicationCreate(company="Stripe", role="SWE"))
    store = make_store(FlakyRemote(remote_store, {"update_application_status"}))
    store.list_applications()

    out = store.update_application_status(app_id, ApplicationStatus.APPLIED)
    assert out.status == ApplicationStatus.APPLIED
    store.flush()

    [cached] = store.cache.peek()
    assert cached.status == ApplicationStatus.SAVED
    assert cached.applied_at is None


def test_failed_update_reverts(remote_store, make_store):
    app_id = remote_store.create_application(ApplicationCreate(company="Stripe", role="SWE"))
    store = make_store(FlakyRemote(remote_store, {"update_application"}))
    store.list_applications()

    assert store.update_application(app_id, ApplicationUpdate(notes="draft")).notes == "draft"
    store.flush()

    assert store.cache.peek()[0].notes is None


def test_failed_delete_restores_position(remote_store, make_store, clock):
    first = remote_store.create_application(ApplicationCreate(company="A", role="Dev"))
    clock.advance(minutes=1)
    remote_store.create_application(ApplicationCreate(company="B", role="Dev"))
    store = make_store(FlakyRemote(remote_store, {"delete_application"}))
    before = [a.company for a in store.list_applications()]

    assert store.delete_application(first) is True
    assert [a.company for a in store.cache.peek()] == ["B"]
    store.flush()

    assert [a.company for a in store.cache.peek()] == before


def test_reset_clears_cache(remote_store, make_store):
    store = make_store(CountingRemote(remote_store))
    store.create_application(ApplicationCreate(company="Stripe", role="SWE"))
    store.flush()
    store.list_applications()

    store.reset()
    assert store.cache.peek() is None
    assert store.list_applications() == []
