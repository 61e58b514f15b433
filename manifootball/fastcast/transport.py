"""Push channel transport: discovery, websocket lifecycle and frame fan-out."""

import asyncio
import json
import logging
from typing import Any, Callable, Optional

import aiohttp
import websockets
from websockets.exceptions import ConnectionClosed

from ..config import FastcastConfig
from ..models import Frame, OpCode, WebSocketHost, parse_frame

logger = logging.getLogger(__name__)


class FastcastError(Exception):
    """Misuse of the live feed protocol (e.g. subscribing before connecting)."""


class FastcastTransport:
    """
    Owns the single push channel connection for one run.

    Observers are plain callables registered with the `on_*` methods and
    are called in registration order on the event loop.
    """

    def __init__(
        self,
        config: Optional[FastcastConfig] = None,
        http_session: Optional[aiohttp.ClientSession] = None,
    ):
        self.config = config or FastcastConfig()
        self.http_session = http_session
        self._ws = None
        self._reader_task: Optional[asyncio.Task] = None

        self._open_callbacks: list[Callable[[], None]] = []
        self._closing_callbacks: list[Callable[[], None]] = []
        self._close_callbacks: list[Callable[[], None]] = []
        self._frame_callbacks: list[Callable[[Frame], None]] = []

        # Cancellation signal shared with everything derived from this transport
        self.cancelled = asyncio.Event()
        self._close_notified = False

    @property
    def connected(self) -> bool:
        return self._ws is not None

    def on_open(self, callback: Callable[[], None]) -> None:
        """Register callback for the connection opening."""
        self._open_callbacks.append(callback)

    def on_closing(self, callback: Callable[[], None]) -> None:
        """Register callback for a client-initiated close starting."""
        self._closing_callbacks.append(callback)

    def on_close(self, callback: Callable[[], None]) -> None:
        """Register callback for the connection being closed (either side)."""
        self._close_callbacks.append(callback)

    def on_frame(self, callback: Callable[[Frame], None]) -> None:
        """Register callback for every inbound frame."""
        self._frame_callbacks.append(callback)

    async def discover(self) -> WebSocketHost:
        """Ask the discovery endpoint where to connect."""
        session = self.http_session
        owns_session = session is None
        if owns_session:
            session = aiohttp.ClientSession()

        try:
            async with session.get(self.config.discovery_url) as resp:
                resp.raise_for_status()
                data = await resp.json(content_type=None)
        finally:
            if owns_session:
                await session.close()

        try:
            return WebSocketHost.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise FastcastError(f"Unexpected discovery response: {data!r}") from e

    async def connect(self) -> None:
        """
        Open the push channel and start the connection handshake.

        Discovery and connection failures propagate to the caller; there is
        no retry.
        """
        host = await self.discover()
        url = self.config.ws_url(host.ip, host.secure_port, host.token)
        logger.debug(f"Connecting to {url}")

        self._ws = await websockets.connect(url)
        logger.debug("open")
        self._notify(self._open_callbacks)

        self._reader_task = asyncio.create_task(self._listen())
        await self.send({"op": OpCode.CONNECT.value})

    async def send(self, payload: dict[str, Any]) -> None:
        """Send one frame."""
        if self._ws is None:
            raise FastcastError("connect before sending")
        logger.debug(f"send {payload}")
        await self._ws.send(json.dumps(payload))

    async def _listen(self) -> None:
        """Read frames until the socket closes or the transport is cancelled."""
        try:
            async for message in self._ws:
                if self.cancelled.is_set():
                    break
                self._handle_message(message)
        except ConnectionClosed as e:
            logger.info(f"Push channel closed: {e}")
        finally:
            self._notify_close()

    def _handle_message(self, message: Any) -> None:
        try:
            data = json.loads(message)
        except (TypeError, ValueError) as e:
            logger.warning(f"Ignoring undecodable frame {message!r:.200}: {e}")
            return

        if not isinstance(data, dict):
            logger.warning(f"Ignoring non-object frame: {data!r:.200}")
            return

        logger.debug(f"message {data}")
        frame = parse_frame(data)

        for callback in list(self._frame_callbacks):
            try:
                callback(frame)
            except Exception as e:
                logger.error(f"Error in frame callback: {e}")

    def _notify(self, callbacks: list[Callable[[], None]]) -> None:
        for callback in list(callbacks):
            try:
                callback()
            except Exception as e:
                logger.error(f"Error in lifecycle callback: {e}")

    def _notify_close(self) -> None:
        if self._close_notified:
            return
        self._close_notified = True
        logger.debug("close")
        self._notify(self._close_callbacks)

    async def close(self) -> None:
        """Cancel everything derived from this transport and close the socket."""
        if self._ws is None:
            raise FastcastError("connect before closing")
        if self.cancelled.is_set():
            return

        logger.debug("dispose")
        self.cancelled.set()
        logger.debug("closing")
        self._notify(self._closing_callbacks)

        if self._reader_task and not self._reader_task.done():
            self._reader_task.cancel()
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass

        try:
            await self._ws.close()
        except Exception as e:
            logger.warning(f"Error closing push channel: {e}")

        self._notify_close()
        self._frame_callbacks.clear()
