"""Tests for the game to market match store."""

import json

import pytest

from manifootball.modules import GameMatches


def test_missing_file_starts_empty(tmp_path):
    matches = GameMatches(str(tmp_path / "matching-games.json")).load()

    assert len(matches) == 0
    assert matches.confirmed() == {}


def test_confirmed_keeps_only_accepted_matches(tmp_path):
    path = tmp_path / "matching-games.json"
    path.write_text(json.dumps({"401520000_abc123": True, "401520001_def456": False}))

    matches = GameMatches(str(path)).load()

    assert matches.confirmed() == {"401520000": "abc123"}
    assert matches.market_for(401520000) == "abc123"
    assert matches.market_for(401520001) is None


def test_mark_and_save_round_trip(tmp_path):
    path = tmp_path / "data" / "matching-games.json"
    matches = GameMatches(str(path))

    matches.mark(401520000, "abc123", False)
    matches.mark(401520000, "xyz789", True)
    matches.save()

    assert json.loads(path.read_text()) == {"401520000_abc123": False, "401520000_xyz789": True}
    assert GameMatches(str(path)).load().market_for("401520000") == "xyz789"


def test_corrupt_file_raises(tmp_path):
    path = tmp_path / "matching-games.json"
    path.write_text("[1, 2")

    with pytest.raises(ValueError):
        GameMatches(str(path)).load()
