"""Pytest configuration and fixtures for docker_transport tests."""

from __future__ import annotations

import shutil
from collections.abc import AsyncIterator, Iterable
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from docker_transport.transport import TcpTransport

TLS_FIXTURES = Path(__file__).parent / "fixtures" / "tls"


@pytest.fixture
def mock_session() -> MagicMock:
    """Create a mock aiohttp ClientSession."""
    import aiohttp

    return MagicMock(spec=aiohttp.ClientSession)


@pytest.fixture
def transport(mock_session: MagicMock) -> TcpTransport:
    """Plain TCP transport backed by the mock session."""
    return TcpTransport(session=mock_session, host="tcp://localhost:2375")


@pytest.fixture
def tls_dir(tmp_path: Path) -> Path:
    """Certificate directory laid out like ``DOCKER_CERT_PATH``."""
    for name in ("ca.pem", "cert.pem", "key.pem"):
        shutil.copy(TLS_FIXTURES / name, tmp_path / name)
    return tmp_path


async def aiter_items(items: Iterable[Any]) -> AsyncIterator[Any]:
    """Yield ``items`` asynchronously, raising any exception instances."""
    for item in items:
        if isinstance(item, BaseException):
            raise item
        yield item


def create_mock_response(
    status: int = 200,
    json_data: dict[str, Any] | None = None,
    text_data: str | None = None,
    read_data: bytes | None = None,
) -> AsyncMock:
    """Create a configured mock response.

    Args:
        status: HTTP status code
        json_data: Data to return from json() call
        text_data: Data to return from text() call
        read_data: Data to return from read() call

    Returns:
        Configured AsyncMock response
    """
    response = AsyncMock()
    response.status = status
    response.headers = {}

    if json_data is not None:
        response.json.return_value = json_data
    if text_data is not None:
        response.text.return_value = text_data
    if read_data is not None:
        response.read.return_value = read_data

    response.__aenter__.return_value = response
    response.__aexit__.return_value = None

    return response


def create_stream_response(
    chunks: Iterable[bytes | tuple[bytes, bool] | BaseException],
    *,
    status: int = 200,
    chunked: bool = True,
    text_data: str | None = None,
) -> AsyncMock:
    """Create a response whose body is delivered through ``content.iter_chunks()``.

    Plain ``bytes`` items are complete HTTP chunks; ``(data, end_of_chunk)``
    tuples allow splitting one HTTP chunk into several reads; exception
    instances are raised when reached.
    """
    items = [
        (item, True) if isinstance(item, bytes) else item for item in chunks
    ]
    response = create_mock_response(status=status, text_data=text_data)
    response.headers = {"Transfer-Encoding": "chunked"} if chunked else {}
    response.content = MagicMock()
    response.content.iter_chunks = MagicMock(return_value=aiter_items(items))
    return response
