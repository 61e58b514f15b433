"""
Response Cache

On-disk JSON cache keyed by a hash of a request-identifying string.
"""

import hashlib
import hmac
import json
import logging
import time
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


def cache_key_hash(key: str) -> str:
    """Hash a request key into a file-name-safe digest."""
    return hmac.new(key.encode("utf-8"), digestmod=hashlib.sha1).hexdigest()


class ResponseCache:
    """Stores payloads as `<path>/<hash>.json` wrapped in `{"ts", "data"}`."""

    def __init__(self, path: str):
        self.path = Path(path)

    def _file(self, key: str) -> Path:
        return self.path / f"{cache_key_hash(key)}.json"

    def load(self, key: str) -> Optional[Any]:
        """Return the cached payload for `key`, or None on a miss."""
        if not key:
            logger.warning("cache.load(): cache key is falsy, nothing will be loaded")
            return None

        try:
            self.path.mkdir(parents=True, exist_ok=True)
        except OSError:
            logger.warning(f"cache.load(): could not create cache directory; path={self.path}")

        file = self._file(key)
        if not file.exists():
            return None

        try:
            with open(file, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"cache.load(): error reading cache data; file={file}: {e}")
            return None

        logger.debug(f"cache.load(): cache read; file={file}")
        if isinstance(data, dict) and "ts" in data:
            return data.get("data")
        return data

    def save(self, key: str, data: Any) -> None:
        """Store `data` under `key`. Write failures are logged, not raised."""
        if not key:
            logger.warning("cache.save(): cache key is falsy, nothing will be saved")
            return

        file = self._file(key)
        try:
            self.path.mkdir(parents=True, exist_ok=True)
            with open(file, "w", encoding="utf-8") as f:
                json.dump({"ts": int(time.time() * 1000), "data": data}, f)
            logger.debug(f"cache.save(): cache write; file={file}")
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"cache.save(): could not save data to cache: {e}")
