"""Tests for the `live` subcommand wiring."""

import asyncio
import json

import pytest

from manifootball.commands import live as live_module
from manifootball.commands.live import LiveCommand
from manifootball.config import Config, LiveConfig
from manifootball.fastcast import SnapshotBuilder
from tests.fakes import wait_until


class FakeTransport:
    connected = False


class FakeConnection:
    instances = []

    def __init__(self, config):
        self.config = config
        self.transport = FakeTransport()
        self.builder = SnapshotBuilder()
        self.close_callbacks = []
        self.subscribed = None
        self.closed = False
        FakeConnection.instances.append(self)

    def on_close(self, callback):
        self.close_callbacks.append(callback)

    async def connect(self):
        self.transport.connected = True

    def subscribe(self, game, topic):
        self.subscribed = (game, topic)
        return self.builder

    async def close(self):
        self.closed = True


@pytest.fixture
def fake_connection(monkeypatch):
    FakeConnection.instances = []
    monkeypatch.setattr(live_module, "FastcastConnection", FakeConnection)
    return FakeConnection


@pytest.mark.asyncio
async def test_records_snapshots_until_feed_closes(tmp_path, fake_connection):
    command = LiveCommand(Config(live=LiveConfig(data_dir=str(tmp_path))))
    run = asyncio.create_task(command.run("401559000", "hockey-nhl"))

    await wait_until(lambda: fake_connection.instances and fake_connection.instances[0].subscribed)
    fc = fake_connection.instances[0]
    assert fc.subscribed == ("401559000", "hockey-nhl")

    fc.builder.update_sid("S1")
    fc.builder.update_document(3, {"gp": {"period": 1}})
    fc.builder.update_operations([{"op": "replace", "path": "/gp/period", "value": 2}])

    for callback in fc.close_callbacks:
        callback()
    await asyncio.wait_for(run, timeout=1)

    assert json.loads((tmp_path / "S1" / "3.json").read_text()) == {"gp": {"period": 2}}
    assert fc.closed
    assert command.recorder.recorded == 1


@pytest.mark.asyncio
async def test_stop_ends_the_run(tmp_path, fake_connection):
    command = LiveCommand(Config(live=LiveConfig(data_dir=str(tmp_path))))
    run = asyncio.create_task(command.run("401520000", "football-college-football"))
    await wait_until(lambda: fake_connection.instances and fake_connection.instances[0].subscribed)

    command.stop()
    await asyncio.wait_for(run, timeout=1)

    assert fake_connection.instances[0].closed
