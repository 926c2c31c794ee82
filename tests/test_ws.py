"""Tests for WebSocket attach channels."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from websockets.datastructures import Headers
from websockets.exceptions import InvalidHandshake, InvalidStatus
from websockets.http11 import Response

from docker_transport.errors import (
    DockerConnectionError,
    DockerResponseError,
    DockerUpgradeError,
)
from docker_transport.transport import (
    EncryptedTcpTransport,
    TcpTransport,
    UnixTransport,
)
from docker_transport.ws import connect_websocket, websocket_url

ATTACH_PATH = "/containers/abc/attach/ws?stream=1&stdin=1"


class TestWebsocketUrl:
    """Tests for websocket_url()."""

    def test_unix(self) -> None:
        transport = UnixTransport(session=MagicMock(), socket_path="/x.sock")
        assert websocket_url(transport, ATTACH_PATH) == f"ws://localhost{ATTACH_PATH}"

    def test_tcp(self) -> None:
        transport = TcpTransport(session=MagicMock(), host="tcp://10.0.0.5:2375")
        assert websocket_url(transport, "/x") == "ws://10.0.0.5:2375/x"

    def test_encrypted(self) -> None:
        transport = EncryptedTcpTransport(
            session=MagicMock(), host="tcp://10.0.0.5:2376", ssl_context=MagicMock()
        )
        assert websocket_url(transport, "/x") == "wss://10.0.0.5:2376/x"


class TestConnectWebsocket:
    """Tests for connect_websocket()."""

    async def test_unix_uses_socket_path(self) -> None:
        """Test Unix transports connect through the socket file."""
        transport = UnixTransport(session=MagicMock(), socket_path="/x.sock")
        mock_ws = AsyncMock()

        with patch(
            "docker_transport.ws.unix_connect", AsyncMock(return_value=mock_ws)
        ) as mock_connect:
            result = await connect_websocket(transport, ATTACH_PATH)

        assert result is mock_ws
        assert mock_connect.call_args.args == ("/x.sock", f"ws://localhost{ATTACH_PATH}")
        assert mock_connect.call_args.kwargs["max_size"] is None

    async def test_encrypted_passes_ssl_context(self) -> None:
        """Test the TLS context is reused for the WebSocket."""
        ssl_context = MagicMock()
        transport = EncryptedTcpTransport(
            session=MagicMock(), host="tcp://10.0.0.5:2376", ssl_context=ssl_context
        )

        with patch(
            "docker_transport.ws.connect", AsyncMock(return_value=AsyncMock())
        ) as mock_connect:
            await connect_websocket(transport, "/x")

        assert mock_connect.call_args.args == ("wss://10.0.0.5:2376/x",)
        assert mock_connect.call_args.kwargs["ssl"] is ssl_context

    async def test_plain_tcp_leaves_ssl_default(self) -> None:
        """Test plain TCP lets websockets pick TLS from the URL scheme."""
        transport = TcpTransport(session=MagicMock(), host="https://10.0.0.5:443")

        with patch(
            "docker_transport.ws.connect", AsyncMock(return_value=AsyncMock())
        ) as mock_connect:
            await connect_websocket(transport, "/x")

        assert mock_connect.call_args.args == ("wss://10.0.0.5:443/x",)
        assert "ssl" not in mock_connect.call_args.kwargs

    async def test_rejected_status(self) -> None:
        """Test an HTTP error during the handshake is an API error."""
        transport = TcpTransport(session=MagicMock(), host="tcp://10.0.0.5:2375")
        error = InvalidStatus(
            Response(404, "Not Found", Headers(), b"no such container")
        )

        with patch("docker_transport.ws.connect", AsyncMock(side_effect=error)):
            with pytest.raises(DockerResponseError) as exc_info:
                await connect_websocket(transport, "/x")

        assert exc_info.value.status == 404
        assert exc_info.value.body == "no such container"

    async def test_handshake_failure(self) -> None:
        """Test other handshake failures are upgrade errors."""
        transport = TcpTransport(session=MagicMock(), host="tcp://10.0.0.5:2375")

        with patch(
            "docker_transport.ws.connect",
            AsyncMock(side_effect=InvalidHandshake("bad")),
        ):
            with pytest.raises(DockerUpgradeError, match="handshake failed"):
                await connect_websocket(transport, "/x")

    async def test_connection_failure(self) -> None:
        """Test socket errors are transport errors."""
        transport = TcpTransport(session=MagicMock(), host="tcp://10.0.0.5:2375")

        with patch(
            "docker_transport.ws.connect",
            AsyncMock(side_effect=ConnectionRefusedError()),
        ):
            with pytest.raises(DockerConnectionError, match="connection failed"):
                await connect_websocket(transport, "/x")
