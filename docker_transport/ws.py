"""WebSocket channels to the Docker daemon (``/containers/{id}/attach/ws``)."""

from __future__ import annotations

import asyncio
from urllib.parse import urlsplit

from websockets.asyncio.client import ClientConnection, connect, unix_connect
from websockets.exceptions import (
    InvalidHandshake,
    InvalidStatus,
    InvalidURI,
    WebSocketException,
)

from .errors import (
    DockerConnectionError,
    DockerResponseError,
    DockerTimeout,
    DockerUpgradeError,
)
from .transport import (
    UNIX_URL_HOST,
    EncryptedTcpTransport,
    TcpTransport,
    Transport,
    UnixTransport,
)


def websocket_url(transport: Transport, path: str) -> str:
    """Return the ``ws://``/``wss://`` URL for ``path`` on ``transport``."""
    if isinstance(transport, UnixTransport):
        return f"ws://{UNIX_URL_HOST}{path}"
    parts = urlsplit(transport.host)
    if isinstance(transport, EncryptedTcpTransport) or parts.scheme == "https":
        return f"wss://{parts.netloc}{path}"
    if isinstance(transport, TcpTransport):
        return f"ws://{parts.netloc}{path}"
    raise TypeError(f"Unknown transport: {transport!r}")


async def connect_websocket(
    transport: Transport,
    path: str,
    *,
    ping_interval: float | None = 20,
    timeout: float | None = None,
) -> ClientConnection:
    """Open a WebSocket to the daemon over the same channel as ``transport``.

    Args:
        transport: Transport selecting socket, host and TLS material
        path: Endpoint path including query string
        ping_interval: Interval for ping frames, ``None`` to disable
        timeout: Optional bound on the opening handshake
    """
    url = websocket_url(transport, path)
    if isinstance(transport, UnixTransport):
        opening = unix_connect(
            transport.socket_path,
            url,
            ping_interval=ping_interval,
            open_timeout=None,
            close_timeout=5,
            max_size=None,
        )
    else:
        # wss:// without an explicit context falls back to default verification
        extra = (
            {"ssl": transport.ssl_context}
            if isinstance(transport, EncryptedTcpTransport)
            else {}
        )
        opening = connect(
            url,
            ping_interval=ping_interval,
            open_timeout=None,
            close_timeout=5,
            max_size=None,
            **extra,
        )
    try:
        return await asyncio.wait_for(opening, timeout=timeout)
    except TimeoutError as err:
        raise DockerTimeout("WebSocket connection timed out") from err
    except InvalidStatus as err:
        body = (err.response.body or b"").decode("utf-8", errors="replace")
        raise DockerResponseError(err.response.status_code, body) from err
    except (InvalidHandshake, InvalidURI) as err:
        raise DockerUpgradeError("WebSocket handshake failed") from err
    except (OSError, WebSocketException) as err:
        raise DockerConnectionError("WebSocket connection failed") from err
