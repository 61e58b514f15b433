"""Tests for the live snapshot dump."""

import json

from manifootball.models import Snapshot
from manifootball.modules import SnapshotRecorder


def test_writes_pretty_json_per_session_and_message(tmp_path):
    recorder = SnapshotRecorder(str(tmp_path / "live-data"))
    document = {"gp": {"score": {"home": 7, "away": 0}}}

    path = recorder.record(Snapshot(sid="S1", mid=42, document=document))

    assert path == tmp_path / "live-data" / "S1" / "42.json"
    assert json.loads(path.read_text()) == document
    assert path.read_text() == json.dumps(document, indent=2)
    assert recorder.recorded == 1
    assert recorder.last_path == path


def test_document_is_serialized_at_record_time(tmp_path):
    recorder = SnapshotRecorder(str(tmp_path))
    document = {"clock": "15:00"}

    path = recorder.record(Snapshot(sid="S1", mid=1, document=document))
    document["clock"] = "14:00"

    assert json.loads(path.read_text()) == {"clock": "15:00"}


def test_same_message_id_overwrites(tmp_path):
    recorder = SnapshotRecorder(str(tmp_path))

    recorder.record(Snapshot(sid="S1", mid=1, document={"v": 1}))
    path = recorder.record(Snapshot(sid="S1", mid=1, document={"v": 2}))

    assert json.loads(path.read_text()) == {"v": 2}
    assert len(list((tmp_path / "S1").iterdir())) == 1
