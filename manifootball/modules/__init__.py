"""Core modules for the manifootball tools."""

from .game_matches import GameMatches
from .snapshot_recorder import SnapshotRecorder

__all__ = ["GameMatches", "SnapshotRecorder"]
