"""Combine-latest assembly of live snapshots."""

import logging
from typing import Any, Callable, Optional

from ..models import Snapshot
from .patch import apply_operations

logger = logging.getLogger(__name__)

_UNSET = object()


class SnapshotBuilder:
    """
    Holds the latest session id, heartbeat document and operation batch.

    Any update recomputes once all three inputs have been seen: the latest
    batch is applied to the latest document in place and a Snapshot is
    emitted to every observer. The same document is reused (and keeps
    accumulating patches) until a new heartbeat replaces it.
    """

    def __init__(self):
        self._sid: Any = _UNSET
        self._mid: Optional[int] = None
        self._document: Any = _UNSET
        self._operations: Any = _UNSET

        self._snapshot_callbacks: list[Callable[[Snapshot], None]] = []
        self._closed = False
        self.emitted = 0

    def on_snapshot(self, callback: Callable[[Snapshot], None]) -> None:
        """Register callback for emitted snapshots."""
        self._snapshot_callbacks.append(callback)

    @property
    def closed(self) -> bool:
        return self._closed

    def update_sid(self, sid: str) -> None:
        self._sid = sid
        self._recompute()

    def update_document(self, mid: int, document: Any) -> None:
        self._mid = mid
        self._document = document
        self._recompute()

    def update_operations(self, ops: list) -> None:
        self._operations = ops
        self._recompute()

    def _recompute(self) -> None:
        if self._closed:
            return
        if self._sid is _UNSET or self._document is _UNSET or self._operations is _UNSET:
            return

        apply_operations(self._document, self._operations)
        snapshot = Snapshot(sid=self._sid, mid=self._mid, document=self._document)
        self.emitted += 1

        for callback in list(self._snapshot_callbacks):
            try:
                callback(snapshot)
            except Exception as e:
                logger.error(f"Error in snapshot callback: {e}")

    def close(self) -> None:
        """Stop emitting."""
        self._closed = True
        self._snapshot_callbacks.clear()
