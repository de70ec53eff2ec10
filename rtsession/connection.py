"""
Realtime connection: the duplex transport a session drives.

The session never talks to a socket directly. It owns an object satisfying the
RealtimeConnection protocol defined here. The protocol uses structural typing
(typing.Protocol), so transports (and test fakes) do not need to inherit from
it.

Lifecycle
---------
1. **Construction**: instantiate the connection. No network calls happen here.

2. **Start**: the session calls ``start()`` synchronously from its
   constructor. A connection may begin opening in the background; it must not
   block.

3. **Traffic**: ``send(frame)`` writes one frame, ``recv()`` returns the next
   inbound frame (``str`` or ``bytes``). Both may raise; the session treats a
   failing ``recv()`` as the end of the transport and a failing ``send()`` as a
   lost message.

4. **Close**: ``close()`` terminates the transport. Afterwards ``send`` and
   ``recv`` raise ``ConnectionClosedOK``.

WebSocketConnection
-------------------
The production transport: ``websockets.connect`` against the realtime endpoint,
authenticated with a bearer key. Opening is launched by ``start()`` and awaited
lazily by the first ``send``/``recv``, so a failed handshake surfaces through
them (and from there through the session's normal error path).
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from logging import getLogger
from typing import Optional, Protocol, Union
from urllib.parse import urlencode

from websockets import connect, ConnectionClosed, ConnectionClosedOK
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import InvalidStatus

from config import (
    OPENAI_API_KEY,
    REALTIME_BASE_URL,
    REALTIME_MODEL,
    REALTIME_BETA_HEADER,
    WS_PING_INTERVAL_S,
    WS_PING_TIMEOUT_S,
    WS_CLOSE_TIMEOUT_S,
    WS_OPEN_TIMEOUT_S,
    WS_MAX_QUEUE,
)


logger = getLogger(__name__)


Data = Union[str, bytes]

# Normal closure and "going away" (server shutdown / idle session expiry).
BENIGN_CLOSE_CODES = frozenset({1000, 1001})


class RealtimeConnection(Protocol):
    """
    Structural protocol for the transport a RealtimeSession owns.

    See the module docstring for lifecycle details.
    """
    def start(self) -> None: ...

    async def send(self, frame: Data) -> None: ...
    async def recv(self) -> Data: ...
    async def close(self) -> None: ...


# ---------------------------------------------------------------------------
# Transport error classification
# ---------------------------------------------------------------------------


def close_code(exc: ConnectionClosed) -> Optional[int]:
    """Close code received from the peer, else the one we sent, else None."""
    if exc.rcvd is not None:
        return exc.rcvd.code
    if exc.sent is not None:
        return exc.sent.code
    return None


def is_benign_close(exc: BaseException) -> bool:
    """True for transport failures that are an expected end of the session."""
    if isinstance(exc, ConnectionClosedOK):
        return True
    if isinstance(exc, ConnectionClosed):
        return close_code(exc) in BENIGN_CLOSE_CODES
    return False


def is_handshake_rejected(exc: BaseException) -> bool:
    """Server refused the websocket upgrade (bad key, no realtime access, ...)."""
    return isinstance(exc, InvalidStatus) and exc.response.status_code in (401, 403)


# ---------------------------------------------------------------------------
# WebSocket transport
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RealtimeConnectionConfig:
    """
    Configuration for the realtime websocket transport.

    Defaults come from config.py and can be overridden here.
    """
    api_key: Optional[str] = OPENAI_API_KEY

    model: str = REALTIME_MODEL
    base_url: str = REALTIME_BASE_URL
    beta_header: Optional[str] = REALTIME_BETA_HEADER

    ping_interval: float = WS_PING_INTERVAL_S
    ping_timeout: float = WS_PING_TIMEOUT_S
    close_timeout: float = WS_CLOSE_TIMEOUT_S
    open_timeout: float = WS_OPEN_TIMEOUT_S
    max_queue: int = WS_MAX_QUEUE


class WebSocketConnection(RealtimeConnection):
    """
    Realtime endpoint over WebSocket.

    Protocol:
      - Connect to wss://api.openai.com/v1/realtime?model=<model>
      - Authorization: Bearer <api key>, OpenAI-Beta: realtime=v1
      - JSON text frames both ways
    """

    def __init__(self, cfg: Optional[RealtimeConnectionConfig] = None) -> None:
        self._cfg = cfg or RealtimeConnectionConfig()
        self._connect_task: Optional[asyncio.Task[ClientConnection]] = None
        self._closed = False

    def _build_url(self) -> str:
        """Build WebSocket URL with query parameters."""
        return f"{self._cfg.base_url}?{urlencode({'model': self._cfg.model})}"

    def _build_headers(self) -> dict:
        headers = {"Authorization": f"Bearer {self._cfg.api_key}"}
        if self._cfg.beta_header:
            headers["OpenAI-Beta"] = self._cfg.beta_header
        return headers

    async def _connect(self) -> ClientConnection:
        if not self._cfg.api_key:
            raise ValueError("OpenAI API key is required (set OPENAI_API_KEY)")

        url = self._build_url()
        logger.debug("[RT] Connecting to %s", url)
        ws = await connect(
            url,
            additional_headers=self._build_headers(),
            open_timeout=self._cfg.open_timeout,
            ping_interval=self._cfg.ping_interval,
            ping_timeout=self._cfg.ping_timeout,
            close_timeout=self._cfg.close_timeout,
            max_queue=self._cfg.max_queue,
        )
        logger.info("[RT] WebSocket connected.")
        return ws

    def start(self) -> None:
        if self._connect_task is None:
            self._connect_task = asyncio.create_task(self._connect())

    async def _ws(self) -> ClientConnection:
        if self._closed:
            raise ConnectionClosedOK(None, None)
        if self._connect_task is None:
            raise RuntimeError("WebSocketConnection used before start()")
        # Shielded so a cancelled send/recv does not abort the handshake for everyone else.
        try:
            return await asyncio.shield(self._connect_task)
        except asyncio.CancelledError:
            if self._closed and self._connect_task.cancelled():
                # close() interrupted the handshake
                raise ConnectionClosedOK(None, None)
            raise

    async def send(self, frame: Data) -> None:
        ws = await self._ws()
        await ws.send(frame)

    async def recv(self) -> Data:
        ws = await self._ws()
        return await ws.recv()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        task = self._connect_task
        if task is None:
            return
        if not task.done():
            task.cancel()
            return
        if task.cancelled() or task.exception() is not None:
            return
        await task.result().close()
