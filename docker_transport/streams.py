"""Streaming response bodies from the Docker daemon.

Every stream here is an async generator driven by its consumer: nothing is
read from the network until the next item is requested. Closing a stream
early (``aclose()`` or ``contextlib.aclosing``) leaves the response context,
which drops the underlying connection.

``stream_json`` expects every chunk to hold whole JSON documents, which is
how the daemon writes progress and stats feeds. A document split over two
chunks is reported as a decode error instead of being reassembled.
``stream_json_lines`` buffers up to the next newline and is used for the
event feed.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncGenerator, Mapping
from typing import Any

import aiohttp

from .errors import DockerConnectionError, DockerDecodeError, DockerTimeout
from .http import Payload, raise_for_status, send
from .transport import Transport

_LOGGER = logging.getLogger(__name__)

_DECODER = json.JSONDecoder()
_WHITESPACE = " \t\n\r"


async def stream_chunks(
    transport: Transport,
    method: str,
    path: str,
    *,
    body: Payload | None = None,
    headers: Mapping[str, str] | None = None,
) -> AsyncGenerator[bytes, None]:
    """Yield the response body chunk by chunk as it arrives.

    With chunked transfer encoding each item is one HTTP chunk; otherwise
    items are whatever the connection delivers per read.

    Raises:
        DockerResponseError: Non-2xx status, raised before any chunk.
        DockerConnectionError: The connection failed before or during the body.
    """
    try:
        async with send(transport, method, path, body=body, headers=headers) as resp:
            await raise_for_status(resp)
            chunked = "chunked" in resp.headers.get("Transfer-Encoding", "").lower()
            pending = bytearray()
            async for data, end_of_chunk in resp.content.iter_chunks():
                pending += data
                if pending and (end_of_chunk or not chunked):
                    yield bytes(pending)
                    pending.clear()
            if pending:
                yield bytes(pending)
            _LOGGER.debug("%s %s: end of stream", method, path)
    except TimeoutError as err:
        raise DockerTimeout(f"{method} {path} stream timed out") from err
    except (aiohttp.ClientError, OSError) as err:
        raise DockerConnectionError(f"{method} {path} stream failed: {err}") from err


def _decode_text(chunk: bytes) -> str:
    try:
        return chunk.decode("utf-8")
    except UnicodeDecodeError as err:
        raise DockerDecodeError(f"Stream chunk is not UTF-8: {err}") from err


async def decode_json_chunks(
    chunks: AsyncGenerator[bytes, None],
) -> AsyncGenerator[Any, None]:
    """Decode each chunk as one or more back-to-back JSON documents.

    Values decoded before a bad document in the same chunk are still
    yielded; the bad document then raises ``DockerDecodeError`` and the
    stream ends.
    """
    try:
        async for chunk in chunks:
            text = _decode_text(chunk)
            pos = 0
            end = len(text)
            while True:
                while pos < end and text[pos] in _WHITESPACE:
                    pos += 1
                if pos == end:
                    break
                try:
                    value, pos = _DECODER.raw_decode(text, pos)
                except json.JSONDecodeError as err:
                    raise DockerDecodeError(
                        f"Invalid JSON in stream chunk: {err}"
                    ) from err
                yield value
    finally:
        await chunks.aclose()


async def decode_json_lines(
    chunks: AsyncGenerator[bytes, None],
) -> AsyncGenerator[Any, None]:
    """Decode newline-delimited JSON, joining lines split across chunks.

    Blank lines are skipped. Bytes left after the last newline when the
    stream ends are decoded as a final line.
    """
    buffer = bytearray()
    try:
        async for chunk in chunks:
            buffer += chunk
            while (newline := buffer.find(b"\n")) != -1:
                line = bytes(buffer[:newline])
                del buffer[: newline + 1]
                if line.strip():
                    yield _decode_line(line)
        if buffer.strip():
            yield _decode_line(bytes(buffer))
    finally:
        await chunks.aclose()


def _decode_line(line: bytes) -> Any:
    text = _decode_text(line.rstrip(b"\r"))
    try:
        return json.loads(text)
    except ValueError as err:
        raise DockerDecodeError(f"Invalid JSON line in stream: {err}") from err


def stream_json(
    transport: Transport,
    method: str,
    path: str,
    *,
    body: Payload | None = None,
    headers: Mapping[str, str] | None = None,
) -> AsyncGenerator[Any, None]:
    """Stream JSON values from a response whose chunks hold whole documents."""
    return decode_json_chunks(
        stream_chunks(transport, method, path, body=body, headers=headers)
    )


def stream_json_lines(
    transport: Transport,
    method: str,
    path: str,
    *,
    body: Payload | None = None,
    headers: Mapping[str, str] | None = None,
) -> AsyncGenerator[Any, None]:
    """Stream JSON values from a newline-delimited response body."""
    return decode_json_lines(
        stream_chunks(transport, method, path, body=body, headers=headers)
    )
