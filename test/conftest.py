import asyncio

import pytest

from pingmonitor.client.state import RangeStore
from pingmonitor.client.storage import RangeStorage
from pingmonitor.database import init_db, make_engine, make_session_factory
from pingmonitor.services.scanner.prober import ProbeResult


class FakeProber:
    """Prober en memoria: responde los hosts de `online` con `latency` ms."""

    def __init__(self, online=(), latency=7, gate: asyncio.Event = None):
        self.online = set(online)
        self.latency = latency
        self.gate = gate
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.cancelled = 0

    async def probe(self, address: str) -> ProbeResult:
        self.calls.append(address)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                await self.gate.wait()
            else:
                await asyncio.sleep(0)
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        finally:
            self.in_flight -= 1

        host = int(address.rsplit(".", 1)[1])
        if host in self.online:
            return ProbeResult(reachable=True, latency_ms=self.latency)
        return ProbeResult.unreachable()


class FakeWebSocket:
    def __init__(self):
        self.accepted = False
        self.closed = False
        self.sent = []

    async def accept(self):
        self.accepted = True

    async def send_json(self, data):
        if self.closed:
            raise RuntimeError("WebSocket cerrado")
        self.sent.append(data)


@pytest.fixture
def make_prober():
    return FakeProber


@pytest.fixture
def make_websocket():
    return FakeWebSocket


@pytest.fixture
def storage(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'client.db'}")
    init_db(engine)
    return RangeStorage(make_session_factory(engine))


@pytest.fixture
def store(storage):
    return RangeStore(storage, default_range="10.0.0").load()
