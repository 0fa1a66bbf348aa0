"""Shared pytest fixtures for the log relay test suite."""

import threading

import pytest
from werkzeug.serving import make_server

from log_relay.config import ProducerConfig, SinkConfig
from log_relay.sink import create_app
from log_relay.store import LogStore


class FakeTransport:
    """In-memory transport whose availability can be toggled."""

    def __init__(self, up: bool = True):
        self.up = up
        self.delivered: list[dict] = []
        self.attempts = 0
        self.closed = False

    def send(self, payload: dict) -> bool:
        self.attempts += 1
        if not self.up:
            return False
        self.delivered.append(payload)
        return True

    def close(self):
        self.closed = True


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def producer_config():
    return ProducerConfig(server_url="http://127.0.0.1:1/debug/log", context_url="test")


@pytest.fixture
def store(tmp_path):
    return LogStore(str(tmp_path / "debug.log"))


@pytest.fixture
def app(store):
    application = create_app(SinkConfig(log_file=store.path), store)
    application.config["TESTING"] = True
    return application


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def live_sink(app):
    """Serve the sink on an OS-assigned port. Yields the /debug/log URL."""
    server = make_server("127.0.0.1", 0, app, threaded=True)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_port}/debug/log"
    finally:
        server.shutdown()
        thread.join(timeout=5)
