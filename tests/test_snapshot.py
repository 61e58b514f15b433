"""Tests for combine-latest snapshot assembly."""

import copy

import pytest

from manifootball.fastcast.snapshot import SnapshotBuilder


@pytest.fixture
def builder():
    return SnapshotBuilder()


@pytest.fixture
def emitted(builder):
    snapshots = []
    builder.on_snapshot(lambda s: snapshots.append((s.sid, s.mid, copy.deepcopy(s.document), s.document)))
    return snapshots


def replace(path, value):
    return {"op": "replace", "path": path, "value": value}


def test_waits_for_all_three_inputs(builder, emitted):
    builder.update_sid("S1")
    builder.update_document(1, {"score": {}})
    assert emitted == []

    builder.update_operations([])
    assert len(emitted) == 1
    assert emitted[0][:3] == ("S1", 1, {"score": {}})


def test_batches_accumulate_on_latest_heartbeat_document(builder, emitted):
    d1 = {"score": {"home": 0, "away": 0}}
    builder.update_sid("S1")
    builder.update_document(10, d1)

    builder.update_operations([replace("/score/home", 7)])
    builder.update_operations([replace("/score/away", 3)])

    assert len(emitted) == 2
    assert all(mid == 10 and document is d1 for _, mid, _, document in emitted)
    assert emitted[0][2] == {"score": {"home": 7, "away": 0}}
    assert emitted[1][2] == {"score": {"home": 7, "away": 3}}


def test_new_heartbeat_reapplies_latest_batch(builder, emitted):
    builder.update_sid("S1")
    builder.update_document(1, {"clock": "15:00"})
    builder.update_operations([replace("/clock", "14:00")])

    builder.update_document(2, {"clock": "13:30", "period": 2})

    assert len(emitted) == 2
    assert emitted[1][:3] == ("S1", 2, {"clock": "14:00", "period": 2})


def test_session_id_change_emits_with_latest_values(builder, emitted):
    builder.update_sid("S1")
    builder.update_document(1, {})
    builder.update_operations([])

    builder.update_sid("S2")

    assert [sid for sid, *_ in emitted] == ["S1", "S2"]


def test_inputs_can_arrive_in_any_order(builder, emitted):
    builder.update_operations([replace("/possession", "home")])
    builder.update_document(4, {})
    builder.update_sid("S9")

    assert emitted[0][:3] == ("S9", 4, {"possession": "home"})


def test_close_stops_emission(builder, emitted):
    builder.update_sid("S1")
    builder.update_document(1, {})
    builder.close()

    builder.update_operations([])

    assert emitted == []
    assert builder.closed


def test_failing_observer_does_not_block_others(builder):
    received = []

    def broken(snapshot):
        raise RuntimeError("disk full")

    builder.on_snapshot(broken)
    builder.on_snapshot(received.append)

    builder.update_sid("S1")
    builder.update_document(1, {})
    builder.update_operations([])

    assert len(received) == 1
    assert builder.emitted == 1
