"""One-shot HTTP requests against the Docker daemon."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import aiohttp

from .errors import (
    DockerConnectionError,
    DockerDecodeError,
    DockerResponseError,
    DockerTimeout,
)
from .transport import Transport, base_url

_LOGGER = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"


@dataclass(frozen=True, slots=True)
class Payload:
    """Request body together with its declared content type."""

    data: bytes
    content_type: str = JSON_CONTENT_TYPE


def json_payload(value: Any) -> Payload:
    """Serialize ``value`` as a JSON request body."""
    return Payload(json.dumps(value).encode(), JSON_CONTENT_TYPE)


def _headers(
    body: Payload | None, headers: Mapping[str, str] | None
) -> dict[str, str]:
    merged = dict(headers or {})
    if body is not None and not any(
        name.lower() == "content-type" for name in merged
    ):
        merged["Content-Type"] = body.content_type
    return merged


def send(
    transport: Transport,
    method: str,
    path: str,
    *,
    body: Payload | None = None,
    headers: Mapping[str, str] | None = None,
):
    """Start a request and return aiohttp's response context manager.

    Redirects are never followed. Callers translate aiohttp errors.
    """
    _LOGGER.debug("%s %s", method, path)
    return transport.session.request(
        method,
        base_url(transport) + path,
        data=body.data if body is not None else None,
        headers=_headers(body, headers),
        allow_redirects=False,
    )


async def raise_for_status(resp: aiohttp.ClientResponse) -> None:
    """Raise ``DockerResponseError`` with the body when ``resp`` is not 2xx."""
    if 200 <= resp.status < 300:
        return
    body = await resp.text(errors="replace")
    raise DockerResponseError(resp.status, body)


async def request_text(
    transport: Transport,
    method: str,
    path: str,
    *,
    body: Payload | None = None,
    headers: Mapping[str, str] | None = None,
) -> str:
    """Send one request and return the whole response body as text.

    Raises:
        DockerResponseError: The daemon answered with a non-2xx status.
        DockerTimeout: A caller-applied timeout expired.
        DockerConnectionError: The daemon could not be reached or the
            connection failed while reading the response.
    """
    try:
        async with send(transport, method, path, body=body, headers=headers) as resp:
            await raise_for_status(resp)
            return await resp.text(errors="replace")
    except TimeoutError as err:
        raise DockerTimeout(f"{method} {path} timed out") from err
    except (aiohttp.ClientError, OSError) as err:
        raise DockerConnectionError(f"{method} {path} failed: {err}") from err


async def request_json(
    transport: Transport,
    method: str,
    path: str,
    *,
    body: Payload | None = None,
    headers: Mapping[str, str] | None = None,
) -> Any:
    """Like :func:`request_text`, decoding the body as a single JSON document.

    Raises:
        DockerDecodeError: The successful response is not valid JSON.
    """
    text = await request_text(transport, method, path, body=body, headers=headers)
    try:
        return json.loads(text)
    except ValueError as err:
        raise DockerDecodeError(f"Invalid JSON from {method} {path}: {err}") from err
