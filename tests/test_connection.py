from __future__ import annotations

import unittest

from websockets import ConnectionClosedOK, ConnectionClosedError
from websockets.datastructures import Headers
from websockets.exceptions import InvalidStatus
from websockets.frames import Close
from websockets.http11 import Response

from rtsession.connection import (
    RealtimeConnectionConfig,
    WebSocketConnection,
    close_code,
    is_benign_close,
    is_handshake_rejected,
)


def _invalid_status(status: int) -> InvalidStatus:
    return InvalidStatus(Response(status, "rejected", Headers(), b""))


class TestTransportErrorClassification(unittest.TestCase):

    def test_benign_closes(self) -> None:
        self.assertTrue(is_benign_close(ConnectionClosedOK(Close(1000, ""), Close(1000, ""), True)))
        self.assertTrue(is_benign_close(ConnectionClosedOK(None, None)))
        self.assertTrue(is_benign_close(ConnectionClosedError(Close(1001, "going away"), None)))

    def test_unexpected_closes(self) -> None:
        self.assertFalse(is_benign_close(ConnectionClosedError(Close(1011, "internal error"), None)))
        self.assertFalse(is_benign_close(ConnectionClosedError(None, None)))
        self.assertFalse(is_benign_close(OSError("connection reset")))

    def test_close_code_prefers_received_frame(self) -> None:
        self.assertEqual(close_code(ConnectionClosedError(Close(1011, ""), Close(1000, ""), True)), 1011)
        self.assertEqual(close_code(ConnectionClosedError(None, Close(1008, "policy"))), 1008)
        self.assertIsNone(close_code(ConnectionClosedError(None, None)))

    def test_handshake_rejection(self) -> None:
        self.assertTrue(is_handshake_rejected(_invalid_status(401)))
        self.assertTrue(is_handshake_rejected(_invalid_status(403)))
        self.assertFalse(is_handshake_rejected(_invalid_status(500)))
        self.assertFalse(is_handshake_rejected(ValueError("no key")))


class TestWebSocketConnection(unittest.IsolatedAsyncioTestCase):

    def _cfg(self, **kwargs) -> RealtimeConnectionConfig:
        defaults = dict(api_key="sk-test", model="test-model", base_url="ws://127.0.0.1:9/v1/realtime")
        defaults.update(kwargs)
        return RealtimeConnectionConfig(**defaults)

    def test_url_and_headers(self) -> None:
        conn = WebSocketConnection(self._cfg())
        self.assertEqual(conn._build_url(), "ws://127.0.0.1:9/v1/realtime?model=test-model")
        self.assertEqual(
            conn._build_headers(),
            {"Authorization": "Bearer sk-test", "OpenAI-Beta": "realtime=v1"},
        )

    def test_beta_header_is_optional(self) -> None:
        conn = WebSocketConnection(self._cfg(beta_header=None))
        self.assertEqual(conn._build_headers(), {"Authorization": "Bearer sk-test"})

    async def test_use_before_start_fails(self) -> None:
        conn = WebSocketConnection(self._cfg())
        with self.assertRaises(RuntimeError):
            await conn.recv()

    async def test_closed_connection_raises_connection_closed(self) -> None:
        conn = WebSocketConnection(self._cfg())
        conn.start()
        await conn.close()

        with self.assertRaises(ConnectionClosedOK):
            await conn.recv()
        with self.assertRaises(ConnectionClosedOK):
            await conn.send("{}")
        # second close is a no-op
        await conn.close()

    async def test_missing_api_key_fails_on_first_use(self) -> None:
        conn = WebSocketConnection(self._cfg(api_key=None))
        conn.start()

        with self.assertRaises(ValueError):
            await conn.recv()
        with self.assertRaises(ValueError):
            await conn.send("{}")
        await conn.close()
