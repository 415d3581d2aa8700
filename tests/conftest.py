"""
Test Configuration

Shared fixtures and test doubles for the transaction core.
"""

import threading

import pytest

from apmcore.config import AgentSettings, ApplicationLoggingSettings, ConnectReply
from apmcore.core.types import RequestInfo
from apmcore.harvest import Harvest
from apmcore.runtime import Application
from apmcore.transaction import Transaction, TransactionInput


class RecordingSink:
    """Response sink that remembers everything written to it."""

    def __init__(self, headers: dict[str, str] | None = None):
        self.headers = dict(headers or {})
        self.body = bytearray()
        self.codes: list[int] = []
        self._lock = threading.Lock()

    def write(self, data: bytes) -> int:
        with self._lock:
            self.body.extend(data)
        return len(data)

    def write_header(self, code: int) -> None:
        with self._lock:
            self.codes.append(code)


class CountingConsumer:
    """Harvest consumer that counts hand-offs and merges into its own harvest."""

    def __init__(self, settings: AgentSettings | None = None):
        self.calls = 0
        self.run_ids: list[str] = []
        self.harvest = Harvest(settings)
        self._lock = threading.Lock()

    def consume(self, run_id: str, txn: Transaction) -> None:
        with self._lock:
            self.calls += 1
            self.run_ids.append(run_id)
            txn.merge_into_harvest(self.harvest)


@pytest.fixture
def settings():
    """Baseline local settings."""
    return AgentSettings(app_name="test-app", hostname="test-host")


@pytest.fixture
def reply():
    """Baseline connect reply permitting all collection."""
    return ConnectReply(run_id="run-1", entity_guid="GUID-1")


@pytest.fixture
def consumer(settings):
    return CountingConsumer(settings)


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def web_request():
    """A typical inbound GET request."""
    return RequestInfo(
        method="GET",
        url="http://example.com/orders?id=1",
        headers={
            "Accept": "application/json",
            "Host": "example.com",
            "User-Agent": "pytest",
        },
    )


@pytest.fixture
def make_txn(settings, reply, consumer, sink, web_request):
    """Factory for transactions wired to the counting consumer."""

    def _make(
        name: str = "/orders",
        *,
        web: bool = True,
        settings: AgentSettings = settings,
        reply: ConnectReply = reply,
        request: RequestInfo | None = None,
        sink: RecordingSink = sink,
    ) -> Transaction:
        if web and request is None:
            request = web_request
        return Transaction(
            TransactionInput(
                sink=sink,
                request=request if web else None,
                settings=settings,
                reply=reply,
                consumer=consumer,
            ),
            name,
        )

    return _make


@pytest.fixture
def decorating_settings():
    """Settings with local log decoration turned on."""
    return AgentSettings(
        app_name="N",
        hostname="H",
        application_logging=ApplicationLoggingSettings(local_decorating_enabled=True),
    )


@pytest.fixture
def connected_app(decorating_settings):
    """An application connected with entity GUID `G`."""
    app = Application(decorating_settings)
    app.connect(ConnectReply(run_id="run-1", entity_guid="G"))
    return app


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow tests")
