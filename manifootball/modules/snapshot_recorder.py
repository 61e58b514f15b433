"""
Snapshot Recorder Module

Dumps every live snapshot to `<data_dir>/<sid>/<mid>.json`.
"""

import json
import logging
from pathlib import Path
from typing import Optional

from ..models import Snapshot

logger = logging.getLogger(__name__)


class SnapshotRecorder:
    """
    Persists live snapshots as pretty-printed JSON files.

    Each call serializes the document immediately; the document object is
    patched in place by later batches.
    """

    def __init__(self, data_dir: str = "live-data"):
        self.data_dir = Path(data_dir)
        self._recorded = 0
        self._last_path: Optional[Path] = None

    @property
    def recorded(self) -> int:
        return self._recorded

    @property
    def last_path(self) -> Optional[Path]:
        return self._last_path

    def snapshot_path(self, sid: str, mid: int) -> Path:
        return self.data_dir / sid / f"{mid}.json"

    def record(self, snapshot: Snapshot) -> Path:
        """Write one snapshot and return the file path."""
        path = self.snapshot_path(snapshot.sid, snapshot.mid)
        content = json.dumps(snapshot.document, indent=2)

        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)

        self._recorded += 1
        self._last_path = path
        logger.debug(f"Recorded snapshot sid={snapshot.sid} mid={snapshot.mid} -> {path}")
        return path
