from __future__ import annotations

import asyncio
import threading
from logging import getLogger
from typing import Any, AsyncIterator, Mapping, Optional, Union

from websockets import ConnectionClosed

from rtsession.channel import EventChannel
from rtsession.connection import (
    RealtimeConnection,
    RealtimeConnectionConfig,
    WebSocketConnection,
    close_code,
    is_benign_close,
    is_handshake_rejected,
)
from rtsession.decoder import decode_frame, FrameDecodeError
from rtsession.events import EventType, RealtimeEvent
from rtsession.messages import OutboundMessage, SessionConfiguration, SessionUpdate, serialize_message


logger = getLogger(__name__)


Configuration = Union[SessionConfiguration, Mapping[str, Any]]


class RealtimeSession:
    """
    One realtime session bound to one connection.

    Construction (inside a running event loop) starts everything:
      - the connection is started,
      - ``session.update`` with the configuration is scheduled as the first frame,
      - the receive loop is armed.

    Inbound frames are decoded and published on a buffered channel drained via
    ``events()``. The iterator ends when the session is torn down, for whatever
    reason; that is the only termination signal callers get. Look at preceding
    ``ErrorEvent`` values for details.

    ``send()`` and ``disconnect()`` never raise. After ``disconnect()`` no frame
    is sent and no event is published.

    The session lives on the event loop that constructed it. ``disconnect()``
    may also be called from any other thread: the teardown flag flips before
    it returns and the rest of the teardown is handed to the owning loop.
    """

    def __init__(self, connection: RealtimeConnection, configuration: Configuration) -> None:
        self._connection = connection
        self._configuration = configuration
        self._loop = asyncio.get_running_loop()
        # Guards the teardown flag against disconnect() from foreign threads.
        self._state_lock = threading.Lock()
        self._tearing_down = False
        self._channel = EventChannel()
        self._send_lock = asyncio.Lock()
        self._close_task: Optional[asyncio.Task] = None

        self._config_task = asyncio.create_task(self._transmit(SessionUpdate(session=configuration)))
        self._connection.start()
        self._rx_task: Optional[asyncio.Task] = asyncio.create_task(self._recv_loop())

    async def __aenter__(self) -> "RealtimeSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def configuration(self) -> Configuration:
        return self._configuration

    @property
    def is_closed(self) -> bool:
        """True once teardown has begun. Never resets."""
        return self._tearing_down

    @property
    def receiving(self) -> bool:
        return self._rx_task is not None and not self._rx_task.done()

    def events(self) -> AsyncIterator[RealtimeEvent]:
        """
        Async iterator over events received on this session.

        Events received before the first call are buffered, not lost. Calling
        again hands delivery to the new iterator and ends the old one.
        """
        return self._channel.subscribe()

    async def send(self, message: Union[OutboundMessage, Mapping[str, Any]]) -> None:
        """Send a message. Failures are logged, not raised."""
        # Configuration always goes out first.
        await asyncio.shield(self._config_task)
        await self._transmit(message)

    def disconnect(self) -> None:
        """Tear the session down. Idempotent, callable from any thread."""
        with self._state_lock:
            if self._tearing_down:
                return
            self._tearing_down = True
        logger.debug("[RT] Disconnecting from realtime session")

        if self._on_own_loop():
            self._finish_teardown()
            return
        try:
            self._loop.call_soon_threadsafe(self._finish_teardown)
        except RuntimeError:
            # Loop already closed, its tasks are gone with it.
            logger.debug("[RT] Event loop is closed, nothing left to tear down.")

    async def close(self) -> None:
        """Disconnect and wait until the connection is closed and the receive loop is gone."""
        self.disconnect()
        # A disconnect() from another thread may not have reached the loop yet.
        self._finish_teardown()
        await asyncio.gather(self._close_task, self._rx_task, self._config_task, return_exceptions=True)

    # -----------------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------------

    def _on_own_loop(self) -> bool:
        try:
            return asyncio.get_running_loop() is self._loop
        except RuntimeError:
            return False

    def _finish_teardown(self) -> None:
        """Loop-side half of disconnect(). Runs once."""
        if self._close_task is not None:
            return
        self._channel.close()
        if self._rx_task is not None and self._rx_task is not asyncio.current_task(self._loop):
            self._rx_task.cancel()
        self._close_task = self._loop.create_task(self._close_connection())

    def _publish(self, event: RealtimeEvent) -> None:
        # Checked under the state lock so nothing is published once disconnect() returned.
        with self._state_lock:
            if not self._tearing_down:
                self._channel.publish(event)

    async def _transmit(self, message: Union[OutboundMessage, Mapping[str, Any]]) -> None:
        if self._tearing_down:
            logger.debug("[RT] Ignoring send, the session is tearing down.")
            return

        try:
            frame = serialize_message(message)
        except (TypeError, ValueError) as e:
            logger.error("[RT] Could not serialize %s: %s", type(message).__name__, e)
            return

        async with self._send_lock:
            # Teardown may have happened while waiting for the lock.
            if self._tearing_down:
                logger.debug("[RT] Ignoring send, the session is tearing down.")
                return
            try:
                await self._connection.send(frame)
            except ConnectionClosed as e:
                logger.warning("[RT] Connection closed while sending: %s", e)
            except Exception as e:
                logger.error("[RT] Could not send message: %r", e)

    async def _close_connection(self) -> None:
        try:
            await self._connection.close()
        except Exception as e:
            logger.debug("[RT] Error while closing connection: %r", e)

    async def _recv_loop(self) -> None:
        """Background task receiving and publishing frames."""
        try:
            while not self._tearing_down:
                frame = await self._connection.recv()
                if self._tearing_down:
                    # Caller already disconnected, nothing goes back to them.
                    break

                try:
                    discriminator, event = decode_frame(frame)
                except FrameDecodeError as e:
                    logger.error("[RT] Received data we don't understand: %s", e)
                    self.disconnect()
                    break

                logger.debug("[RT] Received %s", discriminator)
                if event is not None:
                    self._publish(event)

                if discriminator == EventType.ERROR.value:
                    logger.warning("[RT] Server reported an error, receiving stopped: %s",
                                   getattr(event, "message", None))
                    break

        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._on_transport_error(e)

    def _on_transport_error(self, exc: Exception) -> None:
        if self._tearing_down:
            return

        if is_benign_close(exc):
            logger.info("[RT] Session closed (code=%s).", close_code(exc))
        elif is_handshake_rejected(exc):
            logger.warning("[RT] Connection refused (%s). Check OPENAI_API_KEY and realtime access.", exc)
        elif isinstance(exc, ConnectionClosed):
            logger.error("[RT] Connection closed unexpectedly: %s", exc)
        else:
            logger.exception("[RT] Receiver crashed: %r", exc)
        self.disconnect()


def open_session(
        configuration: Configuration,
        connection_config: Optional[RealtimeConnectionConfig] = None,
) -> RealtimeSession:
    """Create a websocket-backed session. Must be called inside a running event loop."""
    return RealtimeSession(WebSocketConnection(connection_config), configuration)
