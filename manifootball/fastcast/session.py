"""Session handshake and heartbeat document retrieval."""

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Optional

import aiohttp

from ..models import ConnectFrame, Frame, HeartbeatFrame, OpCode
from .transport import FastcastTransport

logger = logging.getLogger(__name__)

FetchDocument = Callable[[str], Awaitable[Any]]


def topic_channel(game: str, topic: str) -> str:
    """Build the channel tag for one event, e.g. gp-hockey-nhl-401559000."""
    return f"gp-{topic}-{game}"


class SessionCoordinator:
    """
    Derives the session id and the rolling heartbeat documents from the
    transport's frame stream.

    The session id is cached: observers registered after it is known are
    called back immediately with the last value.
    """

    def __init__(
        self,
        transport: FastcastTransport,
        fetch_document: Optional[FetchDocument] = None,
        http_session: Optional[aiohttp.ClientSession] = None,
    ):
        self.transport = transport
        self._fetch_document = fetch_document or self._http_fetch_document
        self.http_session = http_session

        self._sid: Optional[str] = None
        self._sid_known = asyncio.Event()
        self._sid_callbacks: list[Callable[[str], None]] = []

        self._heartbeat_queues: list[asyncio.Queue] = []
        self._tasks: list[asyncio.Task] = []

        transport.on_frame(self._handle_frame)
        transport.on_closing(self._cancel_tasks)

    @property
    def sid(self) -> Optional[str]:
        return self._sid

    def on_sid(self, callback: Callable[[str], None]) -> None:
        """Register callback for session ids, replaying the last one if known."""
        self._sid_callbacks.append(callback)
        if self._sid is not None:
            callback(self._sid)

    async def wait_for_sid(self) -> str:
        """Return the session id, waiting for the first connect frame if needed."""
        await self._sid_known.wait()
        return self._sid

    def _handle_frame(self, frame: Frame) -> None:
        if frame.op == OpCode.CONNECT and isinstance(frame, ConnectFrame):
            self._handle_connect(frame)
        elif frame.op == OpCode.HEARTBEAT and isinstance(frame, HeartbeatFrame):
            for queue in self._heartbeat_queues:
                queue.put_nowait(frame)

    def _handle_connect(self, frame: ConnectFrame) -> None:
        self._sid = frame.sid
        self._sid_known.set()
        logger.debug(f"Session id: {frame.sid}")

        for callback in list(self._sid_callbacks):
            try:
                callback(frame.sid)
            except Exception as e:
                logger.error(f"Error in session id callback: {e}")

    def subscribe_topic(self, game: str, topic: str) -> asyncio.Task:
        """
        Send the session request for one event channel.

        The request goes out once, with the first session id available.
        """
        channel = topic_channel(game, topic)

        async def send_session_request() -> None:
            sid = await self.wait_for_sid()
            if self.transport.cancelled.is_set():
                return
            logger.info(f"Subscribing to {channel} (sid={sid})")
            await self.transport.send({"op": OpCode.SESSION.value, "sid": sid, "tc": channel})

        return self._spawn(send_session_request())

    def open_heartbeats(self, on_document: Callable[[int, Any], None]) -> asyncio.Task:
        """
        Start delivering heartbeat documents as `on_document(mid, document)`.

        Heartbeats are fetched one at a time in arrival order. A failed fetch
        is logged and skipped. The worker stops when the transport closes.
        """
        queue: asyncio.Queue = asyncio.Queue()
        self._heartbeat_queues.append(queue)

        async def run() -> None:
            while not self.transport.cancelled.is_set():
                frame: HeartbeatFrame = await queue.get()
                try:
                    document = await self._fetch_document(frame.url)
                except Exception as e:
                    logger.error(f"Failed to fetch heartbeat document mid={frame.mid} url={frame.url}: {e!r}")
                    continue

                if self.transport.cancelled.is_set():
                    return
                try:
                    on_document(frame.mid, document)
                except Exception as e:
                    logger.error(f"Heartbeat document handler failed mid={frame.mid}: {e!r}")

        return self._spawn(run())

    def _spawn(self, coro: Awaitable[None]) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.append(task)
        task.add_done_callback(self._log_task_failure)
        return task

    @staticmethod
    def _log_task_failure(task: asyncio.Task) -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Live feed task failed: {task.exception()!r}")

    async def _http_fetch_document(self, url: str) -> Any:
        """GET a heartbeat payload and parse it as JSON."""
        session = self.http_session
        owns_session = session is None
        if owns_session:
            session = aiohttp.ClientSession()

        try:
            async with session.get(url) as resp:
                resp.raise_for_status()
                text = await resp.text()
        finally:
            if owns_session:
                await session.close()

        return json.loads(text)

    def _cancel_tasks(self) -> None:
        for task in self._tasks:
            task.cancel()

    async def close(self) -> None:
        """Cancel the session request and every heartbeat worker."""
        self._cancel_tasks()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.debug(f"Task ended with {e!r} during close")

        self._tasks.clear()
        self._heartbeat_queues.clear()
        self._sid_callbacks.clear()
