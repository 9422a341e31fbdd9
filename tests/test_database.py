import time

import pytest
from bson import ObjectId
from pymongo.errors import AutoReconnect, ConnectionFailure

from database import ConnectionManager, storage_errors, to_public
from errors import StorageUnavailable


class FakeDatabase:
    name = "landingpage"


class FakeAdmin:
    def __init__(self, client):
        self.client = client

    def command(self, name):
        if self.client.factory.down:
            raise ConnectionFailure("connection refused")
        return {"ok": 1.0}


class FakeClient:
    def __init__(self, factory, url):
        self.factory = factory
        self.url = url
        self.closed = False
        self.admin = FakeAdmin(self)

    def get_default_database(self, default=None):
        return FakeDatabase()

    def close(self):
        self.closed = True


class FakeClientFactory:
    def __init__(self, down=False):
        self.down = down
        self.clients = []

    def __call__(self, url, **kwargs):
        client = FakeClient(self, url)
        self.clients.append(client)
        return client


def wait_for(condition, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.01)
    return False


def test_without_url_runs_without_database():
    factory = FakeClientFactory()
    manager = ConnectionManager(None, client_factory=factory)
    manager.start()
    assert not manager.is_connected
    assert factory.clients == []
    with pytest.raises(StorageUnavailable):
        manager.get_db()


def test_connect_and_get_db():
    manager = ConnectionManager("mongodb://db", client_factory=FakeClientFactory())
    assert manager.connect()
    assert manager.is_connected
    assert manager.get_db().name == "landingpage"


def test_failed_connect_leaves_manager_disconnected():
    manager = ConnectionManager("mongodb://db", client_factory=FakeClientFactory(down=True))
    assert not manager.connect()
    assert not manager.is_connected


def test_failed_ping_drops_connection():
    factory = FakeClientFactory()
    manager = ConnectionManager("mongodb://db", client_factory=factory)
    manager.connect()
    factory.down = True
    assert not manager.check()
    assert not manager.is_connected
    assert factory.clients[0].closed


def test_retry_task_reconnects_until_stopped():
    factory = FakeClientFactory(down=True)
    manager = ConnectionManager("mongodb://db", retry_delay=0.01, client_factory=factory)
    manager.start()
    try:
        assert wait_for(lambda: len(factory.clients) >= 3)
        assert not manager.is_connected

        factory.down = False
        assert wait_for(lambda: manager.is_connected)

        factory.down = True
        assert wait_for(lambda: not manager.is_connected)

        factory.down = False
        assert wait_for(lambda: manager.is_connected)
    finally:
        manager.stop()
    assert not manager.is_connected
    assert factory.clients[-1].closed


def test_retry_task_survives_unexpected_errors():
    factory = FakeClientFactory()
    failures = []

    def flaky_factory(url, **kwargs):
        if len(failures) < 2:
            failures.append(url)
            raise RuntimeError("resolver exploded")
        return factory(url, **kwargs)

    manager = ConnectionManager("mongodb://db", retry_delay=0.01, client_factory=flaky_factory)
    manager.start()
    try:
        assert wait_for(lambda: manager.is_connected)
    finally:
        manager.stop()
    assert len(failures) == 2


def test_storage_errors():
    with pytest.raises(StorageUnavailable):
        with storage_errors():
            raise AutoReconnect("primary stepped down")


def test_to_public():
    oid = ObjectId()
    assert to_public({"_id": oid, "owner": oid, "title": "x"}) == {"id": str(oid), "owner": str(oid), "title": "x"}
    assert to_public({}) == {}
