"""
Live Command

Follows one event on the live feed and dumps every snapshot to disk.
"""

import asyncio
import logging
import os
import signal
import sys
from typing import Optional

from ..config import Config
from ..fastcast import FastcastConnection
from ..modules import SnapshotRecorder

logger = logging.getLogger(__name__)

# Ctrl-C as a raw byte (stdin in raw mode or piped)
INTERRUPT_BYTE = 0x03


class LiveCommand:
    """Runs until the feed closes, a signal arrives, or 0x03 is read from stdin."""

    def __init__(self, config: Config):
        self.config = config
        self.fc: Optional[FastcastConnection] = None
        self.recorder = SnapshotRecorder(config.live.data_dir)
        self._done = asyncio.Event()
        self._stdin_fd: Optional[int] = None

    def stop(self) -> None:
        self._done.set()

    async def run(self, game: str, topic: str) -> None:
        logger.debug(f"game {game}")
        logger.debug(f"topic {topic}")

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self.stop)
        self._watch_stdin(loop)

        self.fc = FastcastConnection(self.config.fastcast)
        self.fc.on_close(self.stop)

        try:
            await self.fc.connect()
            self.fc.subscribe(game, topic).on_snapshot(self.recorder.record)
            await self._done.wait()
        finally:
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)
            self._unwatch_stdin(loop)
            await self.close()

        logger.info(f"Recorded {self.recorder.recorded} snapshot(s) to {self.recorder.data_dir}")
        logger.debug("done")

    def _watch_stdin(self, loop: asyncio.AbstractEventLoop) -> None:
        try:
            fd = sys.stdin.fileno()
        except (AttributeError, OSError, ValueError):
            return

        def on_input() -> None:
            data = os.read(fd, 1024)
            if not data:
                self._unwatch_stdin(loop)
                return
            if data[0] == INTERRUPT_BYTE:
                logger.debug("exit")
                self.stop()

        try:
            loop.add_reader(fd, on_input)
            self._stdin_fd = fd
        except (NotImplementedError, OSError, ValueError) as e:
            logger.debug(f"Not watching stdin: {e}")

    def _unwatch_stdin(self, loop: asyncio.AbstractEventLoop) -> None:
        if self._stdin_fd is not None:
            loop.remove_reader(self._stdin_fd)
            self._stdin_fd = None

    async def close(self) -> None:
        """Dispose the feed connection if it was established."""
        if self.fc and self.fc.transport.connected:
            await self.fc.close()
