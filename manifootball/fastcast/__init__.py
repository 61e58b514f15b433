"""Live game data feed client."""

from .connection import FastcastConnection
from .patch import apply_operations, as_path, decode_result
from .session import SessionCoordinator, topic_channel
from .snapshot import SnapshotBuilder
from .transport import FastcastError, FastcastTransport

__all__ = [
    "FastcastConnection",
    "FastcastError",
    "FastcastTransport",
    "SessionCoordinator",
    "SnapshotBuilder",
    "apply_operations",
    "as_path",
    "decode_result",
    "topic_channel",
]
