"""HTTP connection upgrade to a raw byte channel.

The daemon's attach and exec endpoints answer ``Upgrade: tcp`` requests with
``101 Switching Protocols`` and then speak raw bytes in both directions on
the same connection. The request goes through the transport's aiohttp
session; once upgraded, the connection is owned by the returned stream and
leaves the session's pool when the stream is closed.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Mapping

import aiohttp
from aiohttp.http import StreamWriter

from .errors import (
    DockerConnectionError,
    DockerResponseError,
    DockerTimeout,
    DockerUpgradeError,
)
from .http import Payload, raise_for_status, send
from .transport import Transport

_LOGGER = logging.getLogger(__name__)

_READ_SIZE = 64 * 1024


class _RawStreamParser:
    """Payload parser handing upgraded bytes to a reader unchanged."""

    def __init__(self, reader: aiohttp.StreamReader) -> None:
        self._reader = reader

    def feed_data(self, data: bytes) -> tuple[bool, bytes]:
        self._reader.feed_data(data)
        return False, b""

    def feed_eof(self) -> None:
        self._reader.feed_eof()


class UpgradedStream:
    """Bidirectional byte stream over an upgraded daemon connection.

    Usage:
        stream = await upgrade(transport, "POST", "/exec/abc/start", body=...)
        async with stream:
            await stream.write(b"ls\\n")
            async for data in stream:
                ...
    """

    def __init__(self, resp: aiohttp.ClientResponse) -> None:
        connection = resp.connection
        if connection is None:
            raise DockerUpgradeError("Upgraded response has no connection")
        loop = asyncio.get_running_loop()
        self._resp = resp
        self._protocol = connection.protocol
        self._reader = aiohttp.StreamReader(self._protocol, _READ_SIZE, loop=loop)
        self._writer = StreamWriter(self._protocol, loop)
        self._closed = False
        self.headers: Mapping[str, str] = resp.headers

        # Flushes bytes received together with the response head.
        self._protocol.set_parser(_RawStreamParser(self._reader), self._reader)
        if self._protocol.transport is None:
            # The daemon hung up before the parser was attached.
            self._reader.feed_eof()

    @property
    def closed(self) -> bool:
        return self._closed or self._protocol.transport is None

    async def read(self, n: int = -1) -> bytes:
        """Read up to ``n`` bytes; ``b""`` means the daemon closed its side."""
        try:
            return await self._reader.read(n)
        except (aiohttp.ClientError, OSError) as err:
            raise DockerConnectionError(f"Upgraded stream read failed: {err}") from err

    async def readexactly(self, n: int) -> bytes:
        """Read exactly ``n`` bytes or raise ``DockerConnectionError``."""
        try:
            return await self._reader.readexactly(n)
        except asyncio.IncompleteReadError as err:
            raise DockerConnectionError(
                f"Upgraded stream ended after {len(err.partial)} of {n} bytes"
            ) from err
        except (aiohttp.ClientError, OSError) as err:
            raise DockerConnectionError(f"Upgraded stream read failed: {err}") from err

    async def write(self, data: bytes) -> None:
        """Send ``data`` and wait until it is flushed to the socket."""
        if self._closed:
            raise DockerConnectionError("Upgraded stream is closed")
        try:
            await self._writer.write(data)
            await self._writer.drain()
        except (aiohttp.ClientError, OSError) as err:
            raise DockerConnectionError(f"Upgraded stream write failed: {err}") from err

    async def write_eof(self) -> None:
        """Half-close the connection so the daemon sees end of input."""
        transport = self._protocol.transport
        if transport is not None and transport.can_write_eof():
            transport.write_eof()

    async def close(self) -> None:
        """Close the connection; safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._resp.close()

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._iter_chunks()

    async def _iter_chunks(self) -> AsyncIterator[bytes]:
        while data := await self.read(_READ_SIZE):
            yield data

    async def __aenter__(self) -> UpgradedStream:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()


def _upgrade_headers(headers: Mapping[str, str] | None) -> dict[str, str]:
    merged = {
        name: value
        for name, value in (headers or {}).items()
        if name.lower() not in ("connection", "upgrade")
    }
    merged["Connection"] = "Upgrade"
    merged["Upgrade"] = "tcp"
    return merged


async def upgrade(
    transport: Transport,
    method: str,
    path: str,
    *,
    body: Payload | None = None,
    headers: Mapping[str, str] | None = None,
) -> UpgradedStream:
    """Send a request asking the daemon to upgrade the connection.

    Returns:
        The upgraded stream. The caller must close it.

    Raises:
        DockerResponseError: The daemon declined the upgrade.
        DockerUpgradeError: The daemon's response could not be parsed.
        DockerConnectionError: The daemon could not be reached.
    """
    try:
        resp = await send(
            transport, method, path, body=body, headers=_upgrade_headers(headers)
        )
        if resp.status != 101:
            async with resp:
                await raise_for_status(resp)
                raise DockerResponseError(
                    resp.status, await resp.text(errors="replace")
                )
    except (aiohttp.ServerDisconnectedError, aiohttp.ClientResponseError) as err:
        raise DockerUpgradeError(
            f"{method} {path}: invalid upgrade response: {err}"
        ) from err
    except TimeoutError as err:
        raise DockerTimeout(f"{method} {path} upgrade timed out") from err
    except (aiohttp.ClientError, OSError) as err:
        raise DockerConnectionError(f"{method} {path} upgrade failed: {err}") from err

    _LOGGER.info("%s %s: connection upgraded", method, path)
    try:
        return UpgradedStream(resp)
    except BaseException:
        resp.close()
        raise
