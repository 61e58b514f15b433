"""Tests for the session handshake and heartbeat retrieval."""

import asyncio
import json
from unittest.mock import AsyncMock

import aiohttp
import pytest

from manifootball.fastcast.session import SessionCoordinator, topic_channel
from manifootball.fastcast import transport as transport_module
from manifootball.fastcast.transport import FastcastTransport
from tests.fakes import FakeHttpSession, FakeWebSocket, wait_until


def make_transport() -> FastcastTransport:
    transport = FastcastTransport()
    transport.send = AsyncMock()
    return transport


def feed(transport: FastcastTransport, data: dict) -> None:
    transport._handle_message(json.dumps(data))


def heartbeat(url: str, mid: int) -> dict:
    return {"op": "H", "pl": url, "tc": "gp-hockey-nhl-401559000", "mid": mid, "useCDN": True}


def test_topic_channel():
    assert topic_channel("401520000", "football-college-football") == "gp-football-college-football-401520000"


@pytest.mark.asyncio
async def test_session_id_replayed_to_late_observer():
    transport = make_transport()
    coordinator = SessionCoordinator(transport, fetch_document=AsyncMock())

    feed(transport, {"op": "C", "sid": "S1", "rc": 200, "hbi": 30})

    seen = []
    coordinator.on_sid(seen.append)
    assert seen == ["S1"]
    assert await asyncio.wait_for(coordinator.wait_for_sid(), timeout=0.1) == "S1"


@pytest.mark.asyncio
async def test_session_id_observer_sees_new_values():
    transport = make_transport()
    coordinator = SessionCoordinator(transport, fetch_document=AsyncMock())
    seen = []
    coordinator.on_sid(seen.append)

    feed(transport, {"op": "C", "sid": "S1"})
    feed(transport, {"op": "C", "sid": "S2"})

    assert seen == ["S1", "S2"]
    assert coordinator.sid == "S2"


@pytest.mark.asyncio
async def test_session_request_sent_once_on_first_sid():
    transport = make_transport()
    coordinator = SessionCoordinator(transport, fetch_document=AsyncMock())

    task = coordinator.subscribe_topic("401520000", "football-college-football")
    await asyncio.sleep(0)
    transport.send.assert_not_called()

    feed(transport, {"op": "C", "sid": "S1"})
    await task
    feed(transport, {"op": "C", "sid": "S2"})
    await asyncio.sleep(0.01)

    transport.send.assert_awaited_once_with(
        {"op": "S", "sid": "S1", "tc": "gp-football-college-football-401520000"}
    )
    await coordinator.close()


@pytest.mark.asyncio
async def test_session_request_uses_already_known_sid():
    transport = make_transport()
    coordinator = SessionCoordinator(transport, fetch_document=AsyncMock())
    feed(transport, {"op": "C", "sid": "S1"})

    await coordinator.subscribe_topic("401559000", "hockey-nhl")

    transport.send.assert_awaited_once_with({"op": "S", "sid": "S1", "tc": "gp-hockey-nhl-401559000"})


@pytest.mark.asyncio
async def test_heartbeats_fetched_one_at_a_time_in_order():
    transport = make_transport()
    calls = []
    release = {"https://cdn.test/1": asyncio.Event(), "https://cdn.test/2": asyncio.Event()}

    async def slow_fetch(url):
        calls.append(("start", url))
        await release[url].wait()
        calls.append(("end", url))
        return {"source": url}

    coordinator = SessionCoordinator(transport, fetch_document=slow_fetch)
    documents = []
    coordinator.open_heartbeats(lambda mid, doc: documents.append((mid, doc)))

    feed(transport, heartbeat("https://cdn.test/1", 1))
    feed(transport, heartbeat("https://cdn.test/2", 2))

    await wait_until(lambda: calls)
    release["https://cdn.test/2"].set()
    await asyncio.sleep(0.02)
    assert calls == [("start", "https://cdn.test/1")]

    release["https://cdn.test/1"].set()
    await wait_until(lambda: len(documents) == 2)

    assert calls == [
        ("start", "https://cdn.test/1"),
        ("end", "https://cdn.test/1"),
        ("start", "https://cdn.test/2"),
        ("end", "https://cdn.test/2"),
    ]
    assert documents == [(1, {"source": "https://cdn.test/1"}), (2, {"source": "https://cdn.test/2"})]
    await coordinator.close()


@pytest.mark.asyncio
async def test_failed_heartbeat_is_skipped():
    transport = make_transport()

    async def flaky_fetch(url):
        if url.endswith("/bad"):
            raise aiohttp.ClientError("503 from payload host")
        if url.endswith("/garbled"):
            raise json.JSONDecodeError("Expecting value", "<html>", 0)
        return {"ok": url}

    coordinator = SessionCoordinator(transport, fetch_document=flaky_fetch)
    documents = []
    coordinator.open_heartbeats(lambda mid, doc: documents.append(mid))

    feed(transport, heartbeat("https://cdn.test/bad", 1))
    feed(transport, heartbeat("https://cdn.test/garbled", 2))
    feed(transport, heartbeat("https://cdn.test/good", 3))

    await wait_until(lambda: documents)
    assert documents == [3]
    await coordinator.close()


@pytest.mark.asyncio
async def test_close_cancels_heartbeat_workers():
    transport = make_transport()
    coordinator = SessionCoordinator(transport, fetch_document=AsyncMock(return_value={}))
    worker = coordinator.open_heartbeats(lambda mid, doc: None)

    await coordinator.close()

    assert worker.cancelled()


@pytest.mark.asyncio
async def test_unexpected_fetch_error_does_not_stop_worker():
    transport = make_transport()

    async def fetch(url):
        if url is None:
            raise TypeError("Constructor parameter should be str")
        return {"ok": url}

    coordinator = SessionCoordinator(transport, fetch_document=fetch)
    documents = []
    worker = coordinator.open_heartbeats(lambda mid, doc: documents.append(mid))

    feed(transport, {"op": "H", "pl": None, "mid": 1})
    feed(transport, heartbeat("https://cdn.test/doc", 2))

    await wait_until(lambda: documents)
    assert documents == [2]
    assert not worker.done()
    await coordinator.close()


@pytest.mark.asyncio
async def test_failing_document_handler_does_not_stop_worker():
    transport = make_transport()
    coordinator = SessionCoordinator(transport, fetch_document=AsyncMock(side_effect=lambda url: {"url": url}))
    documents = []

    def on_document(mid, doc):
        if mid == 1:
            raise KeyError("gp")
        documents.append(mid)

    worker = coordinator.open_heartbeats(on_document)

    feed(transport, heartbeat("https://cdn.test/1", 1))
    feed(transport, heartbeat("https://cdn.test/2", 2))

    await wait_until(lambda: documents)
    assert documents == [2]
    assert not worker.done()
    await coordinator.close()


@pytest.mark.asyncio
async def test_closing_the_transport_stops_heartbeat_workers(monkeypatch):
    ws = FakeWebSocket()

    async def fake_connect(url, **kwargs):
        return ws

    monkeypatch.setattr(transport_module.websockets, "connect", fake_connect)
    transport = FastcastTransport(
        http_session=FakeHttpSession({"ip": "1.2.3.4", "port": 80, "securePort": 443, "token": "tok"})
    )
    await transport.connect()
    coordinator = SessionCoordinator(transport, fetch_document=AsyncMock(return_value={}))
    worker = coordinator.open_heartbeats(lambda mid, doc: None)
    pending = coordinator.subscribe_topic("401520000", "football-college-football")

    await transport.close()
    await asyncio.gather(worker, pending, return_exceptions=True)

    assert transport.cancelled.is_set()
    assert worker.cancelled()
    assert pending.cancelled()
