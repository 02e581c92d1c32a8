import asyncio

import pytest

from pingmonitor.schemas.scan import CompleteEvent, ErrorEvent, ProgressEvent, ScanRequest
from pingmonitor.services.scanner.batch_scheduler import BatchScheduler
from pingmonitor.services.scanner.session import ScanSession


def scan_request(*prefixes):
    return ScanRequest(type="scan", ranges=[{"prefix": p} for p in prefixes])


class Recorder:
    """emit que guarda los eventos; puede fallar en la llamada número `fail_on`."""

    def __init__(self, fail_on=None, fail_always_after=None):
        self.events = []
        self.calls = 0
        self.fail_on = fail_on
        self.fail_always_after = fail_always_after

    async def __call__(self, event):
        self.calls += 1
        if self.calls == self.fail_on:
            raise ConnectionError("socket cerrado")
        if self.fail_always_after is not None and self.calls > self.fail_always_after:
            raise ConnectionError("socket cerrado")
        self.events.append(event)


@pytest.mark.asyncio
async def test_single_range_event_sequence(make_prober):
    session = ScanSession(BatchScheduler(make_prober(online={5}, latency=9), batch_size=50))
    emit = Recorder()

    ok = await session.run(scan_request("10.0.0"), emit)

    assert ok is True
    progress = [e for e in emit.events if isinstance(e, ProgressEvent)]
    assert len(progress) == 6
    assert [p.percent for p in progress] == [20, 39, 59, 78, 98, 100]
    assert [p.results[-1].index + 1 for p in progress] == [50, 100, 150, 200, 250, 255]

    complete = emit.events[-1]
    assert isinstance(complete, CompleteEvent)
    assert len(emit.events) == 7
    assert complete.prefix == "10.0.0"
    assert [r.index for r in complete.results] == list(range(255))
    assert complete.results[4].reachable and complete.results[4].latency_ms == 9
    assert complete.timestamp.tzinfo is not None


@pytest.mark.asyncio
async def test_all_unreachable_range(make_prober):
    session = ScanSession(BatchScheduler(make_prober(), batch_size=50))
    emit = Recorder()

    await session.run(scan_request("10.9.9"), emit)

    complete = emit.events[-1]
    assert len(complete.results) == 255
    assert all(not r.reachable and r.latency_ms == 0 for r in complete.results)


@pytest.mark.asyncio
async def test_ranges_are_scanned_sequentially(make_prober):
    prober = make_prober()
    session = ScanSession(BatchScheduler(prober, batch_size=50))
    emit = Recorder()

    await session.run(scan_request("10.0.0", "10.0.1"), emit)

    prefixes = [e.prefix for e in emit.events]
    assert prefixes == ["10.0.0"] * 7 + ["10.0.1"] * 7
    assert isinstance(emit.events[6], CompleteEvent)
    # Ningún ping del segundo rango antes de terminar el primero
    first_second = next(i for i, ip in enumerate(prober.calls) if ip.startswith("10.0.1."))
    assert first_second == 255


@pytest.mark.asyncio
async def test_emit_failure_reports_error_and_aborts(make_prober):
    prober = make_prober()
    session = ScanSession(BatchScheduler(prober, batch_size=50))
    emit = Recorder(fail_on=2)

    ok = await session.run(scan_request("10.0.0", "10.0.1"), emit)

    assert ok is False
    assert isinstance(emit.events[0], ProgressEvent)
    assert isinstance(emit.events[-1], ErrorEvent)
    assert "socket cerrado" in emit.events[-1].message
    assert len(emit.events) == 2
    assert len(prober.calls) == 100
    assert not any(ip.startswith("10.0.1.") for ip in prober.calls)


@pytest.mark.asyncio
async def test_broken_channel_stops_without_raising(make_prober):
    prober = make_prober()
    session = ScanSession(BatchScheduler(prober, batch_size=50))
    emit = Recorder(fail_always_after=1)

    ok = await session.run(scan_request("10.0.0", "10.0.1"), emit)

    assert ok is False
    assert len(emit.events) == 1
    assert len(prober.calls) == 100


@pytest.mark.asyncio
async def test_cancellation_propagates(make_prober):
    gate = asyncio.Event()
    prober = make_prober(gate=gate)
    session = ScanSession(BatchScheduler(prober, batch_size=50))
    emit = Recorder()

    task = asyncio.create_task(session.run(scan_request("10.0.0", "10.0.1"), emit))
    while len(prober.calls) < 50:
        await asyncio.sleep(0)

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert len(prober.calls) == 50
    assert prober.cancelled == 50
    assert emit.events == []
