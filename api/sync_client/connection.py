"""Client-owned realtime connection to the server's /ws endpoint."""
import asyncio
import json
import logging
from contextlib import suppress
from typing import Any, Awaitable, Callable
from urllib.parse import urlencode

from pydantic import ValidationError
from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from sync_client.config import ClientSettings
from sync_client.events import ServerEvent, UnknownEventError, parse_server_event

logger = logging.getLogger(__name__)

EventHandler = Callable[[ServerEvent], Awaitable[None]]


class ConnectionUnavailable(Exception):
    """Raised when the socket cannot be (re)established or is not connected."""
    pass


class RealtimeConnection:
    """
    One WebSocket connection with an explicit lifecycle.

    Construct it, `connect()`, hand it to whatever needs realtime events, and
    `close()` it when done. Incoming frames are parsed into typed events and
    handlers are awaited one at a time, in arrival order.
    """

    def __init__(self, settings: ClientSettings, user_id: int, token: str | None = None):
        self.settings = settings
        self.user_id = user_id
        self.token = token
        self._ws: ClientConnection | None = None
        self._reader: asyncio.Task | None = None
        self._handlers: dict[str, EventHandler] = {}
        self._connect_lock = asyncio.Lock()

    @property
    def connected(self) -> bool:
        return self._ws is not None and self._reader is not None and not self._reader.done()

    @property
    def url(self) -> str:
        return f'{self.settings.ws_url}?{urlencode({"user_id": self.user_id})}'

    def on(self, event: str, handler: EventHandler):
        """Set the handler for event, replacing any previous one."""
        self._handlers[event] = handler

    def off(self, event: str):
        self._handlers.pop(event, None)

    async def connect(self):
        """Open the socket, retrying with a fixed delay. Concurrent callers share one attempt."""
        async with self._connect_lock:
            if self.connected:
                return

            headers = {'Authorization': f'Bearer {self.token}'} if self.token else None
            attempts = max(1, self.settings.reconnection_attempts)
            last_error: Exception | None = None
            for attempt in range(1, attempts + 1):
                try:
                    self._ws = await connect(
                        self.url,
                        additional_headers=headers,
                        open_timeout=self.settings.connect_timeout_seconds,
                    )
                    break
                except (OSError, asyncio.TimeoutError, WebSocketException) as e:
                    last_error = e
                    logger.warning(f'Connect attempt {attempt}/{attempts} to {self.url} failed: {e}')
                    if attempt < attempts:
                        await asyncio.sleep(self.settings.reconnection_delay_seconds)
            else:
                raise ConnectionUnavailable(f'Could not connect to {self.url}') from last_error

            self._reader = asyncio.create_task(self._read_loop(self._ws))
            logger.info(f'Realtime connection open for user {self.user_id}')

    async def ensure_connected(self) -> bool:
        try:
            await self.connect()
        except ConnectionUnavailable as e:
            logger.error(f'Realtime connection unavailable: {e}')
            return False
        return True

    async def emit(self, event: str, data: Any = None):
        if not self.connected:
            raise ConnectionUnavailable('Socket is not connected')
        try:
            await self._ws.send(json.dumps({'event': event, 'data': data}))
        except ConnectionClosed as e:
            raise ConnectionUnavailable(f'Socket closed while sending {event}') from e

    async def close(self):
        reader, ws = self._reader, self._ws
        self._reader = None
        self._ws = None
        if reader is not None:
            reader.cancel()
            with suppress(asyncio.CancelledError):
                await reader
        if ws is not None:
            await ws.close()
        logger.info(f'Realtime connection closed for user {self.user_id}')

    async def _read_loop(self, ws: ClientConnection):
        try:
            async for raw in ws:
                await self.dispatch(raw)
        except ConnectionClosed as e:
            logger.info(f'Realtime connection dropped: {e}')

    async def dispatch(self, raw: str | bytes):
        """Parse one frame and await its handler. Unhandled or malformed frames are dropped."""
        try:
            frame = json.loads(raw)
        except ValueError:
            logger.warning(f'Dropping non-JSON frame: {raw[:80]!r}')
            return
        if not isinstance(frame, dict):
            logger.warning(f'Dropping frame without envelope: {frame!r}')
            return

        name = frame.get('event')
        handler = self._handlers.get(name)
        if handler is None:
            return

        try:
            event = parse_server_event(name, frame.get('data'))
        except (ValidationError, UnknownEventError) as e:
            logger.warning(f'Dropping invalid {name} event: {e}')
            return

        await handler(event)
