"""Live event feed connection."""

import logging
from typing import Any, Awaitable, Callable, Optional

import aiohttp

from ..config import FastcastConfig
from ..models import Frame, OpCode, ResultFrame
from .patch import decode_result
from .session import SessionCoordinator
from .snapshot import SnapshotBuilder
from .transport import FastcastError, FastcastTransport

logger = logging.getLogger(__name__)


class FastcastConnection:
    """
    Client for the live game data feed.

    Usage:
        async with FastcastConnection() as fc:
            await fc.connect()
            fc.subscribe("401520000", "football-college-football").on_snapshot(print)
            ...
    """

    def __init__(
        self,
        config: Optional[FastcastConfig] = None,
        http_session: Optional[aiohttp.ClientSession] = None,
        fetch_document: Optional[Callable[[str], Awaitable[Any]]] = None,
    ):
        self.transport = FastcastTransport(config, http_session=http_session)
        self.coordinator = SessionCoordinator(
            self.transport,
            fetch_document=fetch_document,
            http_session=http_session,
        )
        self._subscriptions: list[SnapshotBuilder] = []

        # Discovery and every heartbeat fetch share one HTTP session
        self.http_session = http_session
        self._owns_http_session = http_session is None

    async def __aenter__(self) -> "FastcastConnection":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self.transport.connected:
            await self.close()

    # Lifecycle observers

    def on_open(self, callback: Callable[[], None]) -> None:
        self.transport.on_open(callback)

    def on_closing(self, callback: Callable[[], None]) -> None:
        self.transport.on_closing(callback)

    def on_close(self, callback: Callable[[], None]) -> None:
        self.transport.on_close(callback)

    def on_sid(self, callback: Callable[[str], None]) -> None:
        self.coordinator.on_sid(callback)

    @property
    def sid(self) -> Optional[str]:
        return self.coordinator.sid

    async def connect(self) -> None:
        """Discover the push host, connect and start the handshake."""
        if self.http_session is None:
            self.http_session = aiohttp.ClientSession()
        self.transport.http_session = self.http_session
        self.coordinator.http_session = self.http_session

        try:
            await self.transport.connect()
        except Exception:
            await self._close_http_session()
            raise

    async def _close_http_session(self) -> None:
        if self._owns_http_session and self.http_session is not None:
            await self.http_session.close()
            self.http_session = None

    def subscribe(self, game: str, topic: str) -> SnapshotBuilder:
        """
        Subscribe to one event and return the builder emitting its snapshots.

        Args:
            game: Event id, e.g. "401520000"
            topic: Sport/league slug, e.g. "football-college-football"
        """
        if not self.transport.connected:
            raise FastcastError("connect before subscribing")

        builder = SnapshotBuilder()
        self._subscriptions.append(builder)

        self.coordinator.subscribe_topic(game, topic)
        self.coordinator.on_sid(builder.update_sid)
        self.coordinator.open_heartbeats(builder.update_document)
        self.transport.on_frame(lambda frame: self._handle_result(builder, frame))

        return builder

    @staticmethod
    def _handle_result(builder: SnapshotBuilder, frame: Frame) -> None:
        if frame.op != OpCode.RESULT or not isinstance(frame, ResultFrame):
            return
        ops = decode_result(frame)
        logger.debug(f"ops {ops}")
        builder.update_operations(ops)

    async def close(self) -> None:
        """Dispose every subscription, then close the transport."""
        if not self.transport.connected:
            raise FastcastError("connect before closing")

        for builder in self._subscriptions:
            builder.close()
        self._subscriptions.clear()

        await self.coordinator.close()
        await self.transport.close()
        await self._close_http_session()
