"""Tests for the on-disk response cache."""

import json

from manifootball.cache import ResponseCache, cache_key_hash


def test_save_then_load(tmp_path):
    cache = ResponseCache(str(tmp_path / "games"))
    games = [{"id": 401520000, "home_team": "Georgia", "away_team": "TCU"}]

    cache.save("https://api.test/games?week=1-W/\"abc\"", games)

    assert cache.load("https://api.test/games?week=1-W/\"abc\"") == games


def test_entries_are_wrapped_with_timestamp(tmp_path):
    cache = ResponseCache(str(tmp_path))
    cache.save("key", {"a": 1})

    with open(tmp_path / f"{cache_key_hash('key')}.json") as f:
        stored = json.load(f)

    assert stored["data"] == {"a": 1}
    assert isinstance(stored["ts"], int)


def test_unwrapped_entries_are_returned_as_is(tmp_path):
    (tmp_path / f"{cache_key_hash('legacy')}.json").write_text(json.dumps([1, 2, 3]))

    assert ResponseCache(str(tmp_path)).load("legacy") == [1, 2, 3]


def test_miss_returns_none(tmp_path):
    assert ResponseCache(str(tmp_path / "new")).load("nothing") is None
    assert (tmp_path / "new").is_dir()


def test_corrupt_entry_is_a_miss(tmp_path):
    (tmp_path / f"{cache_key_hash('broken')}.json").write_text("{not json")

    assert ResponseCache(str(tmp_path)).load("broken") is None


def test_falsy_key_is_ignored(tmp_path):
    cache = ResponseCache(str(tmp_path))
    cache.save("", {"a": 1})

    assert cache.load("") is None
    assert list(tmp_path.iterdir()) == []


def test_key_hash_is_stable_and_distinct():
    assert cache_key_hash("a") == cache_key_hash("a")
    assert cache_key_hash("a") != cache_key_hash("b")
    assert len(cache_key_hash("a")) == 40
