import asyncio

import pytest

from pingmonitor.client import cli
from pingmonitor.client.connection import MonitorClient
from pingmonitor.client.state import ClientError


@pytest.fixture
def patched_store(monkeypatch, store):
    monkeypatch.setattr(cli, "build_store", lambda settings: store)
    return store


def test_add_list_remove(patched_store, capsys):
    assert cli.main(["add", "172.16.4"]) == 0
    added = patched_store.find("172.16.4")
    assert added is not None

    assert cli.main(["list"]) == 0
    assert "172.16.4.1-255" in capsys.readouterr().out

    assert cli.main(["remove", str(added.id)]) == 0
    assert patched_store.find("172.16.4") is None


def test_add_invalid_prefix(patched_store, capsys):
    assert cli.main(["add", "172.16"]) == 1
    assert "Prefijo inválido" in capsys.readouterr().err


def test_remove_unknown_id(patched_store):
    assert cli.main(["remove", "42"]) == 1


def test_scan_without_ranges(patched_store, capsys):
    patched_store.ranges = []
    assert cli.main(["scan"]) == 1
    assert "No hay rangos" in capsys.readouterr().err


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args([])


class FlakyClient(MonitorClient):
    """Cliente "conectado" cuyo request_scan falla `failures` veces."""

    def __init__(self, store, failures):
        super().__init__(store, "ws://monitor/ws", delay=0.01)
        self.failures = failures
        self.requests = 0
        self.connected.set()

    async def request_scan(self):
        self.requests += 1
        if self.requests <= self.failures:
            raise ClientError("No hay conexión con el servidor")


@pytest.mark.asyncio
async def test_request_retries_after_delay(store, monkeypatch):
    client = FlakyClient(store, failures=2)
    delays = []

    async def fake_sleep(delay):
        delays.append(delay)

    monkeypatch.setattr(cli.asyncio, "sleep", fake_sleep)

    await cli.request_when_connected(client)

    assert client.requests == 3
    assert delays == [0.01, 0.01]


@pytest.mark.asyncio
async def test_request_without_ranges_stops_retrying(store):
    store.ranges = []
    client = FlakyClient(store, failures=0)

    with pytest.raises(ClientError):
        await asyncio.wait_for(cli.request_when_connected(client), timeout=1)

    assert client.requests == 0
