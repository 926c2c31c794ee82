"""Client entry point used by resource-level helpers."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncGenerator, AsyncIterator, Mapping, Sequence
from typing import Any
from urllib.parse import urlencode

from websockets.asyncio.client import ClientConnection

from .config import DockerConfig
from .errors import DockerDecodeError
from .events import DockerEvent
from .http import Payload, request_json, request_text
from .streams import stream_chunks, stream_json, stream_json_lines
from .transport import Transport, build_transport
from .upgrade import UpgradedStream, upgrade
from .ws import connect_websocket

_LOGGER = logging.getLogger(__name__)


class DockerClient:
    """Requests and streams against one Docker daemon.

    Usage:
        async with DockerClient.from_env() as docker:
            print(await docker.ping())
            async for event in docker.events(filters={"type": ["container"]}):
                ...
    """

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    @classmethod
    def from_env(cls, config: DockerConfig | None = None) -> DockerClient:
        """Connect to ``DOCKER_HOST`` (or the local socket) using ``config``."""
        return cls(build_transport(config=config or DockerConfig.from_env()))

    @classmethod
    def from_host(cls, host: str, config: DockerConfig | None = None) -> DockerClient:
        """Connect to an explicit daemon address."""
        return cls(build_transport(host, config=config or DockerConfig.from_env()))

    @property
    def transport(self) -> Transport:
        return self._transport

    async def close(self) -> None:
        await self._transport.close()

    async def __aenter__(self) -> DockerClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # Generic entry points

    async def request_text(
        self,
        method: str,
        path: str,
        *,
        body: Payload | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> str:
        return await request_text(
            self._transport, method, path, body=body, headers=headers
        )

    async def request_json(
        self,
        method: str,
        path: str,
        *,
        body: Payload | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        return await request_json(
            self._transport, method, path, body=body, headers=headers
        )

    def stream_chunks(
        self,
        method: str,
        path: str,
        *,
        body: Payload | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> AsyncGenerator[bytes, None]:
        return stream_chunks(self._transport, method, path, body=body, headers=headers)

    def stream_json(
        self,
        method: str,
        path: str,
        *,
        body: Payload | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> AsyncGenerator[Any, None]:
        return stream_json(self._transport, method, path, body=body, headers=headers)

    def stream_json_lines(
        self,
        method: str,
        path: str,
        *,
        body: Payload | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> AsyncGenerator[Any, None]:
        return stream_json_lines(
            self._transport, method, path, body=body, headers=headers
        )

    async def upgrade(
        self,
        method: str,
        path: str,
        *,
        body: Payload | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> UpgradedStream:
        return await upgrade(self._transport, method, path, body=body, headers=headers)

    async def attach_websocket(self, path: str) -> ClientConnection:
        """Open a WebSocket to an ``.../attach/ws`` endpoint."""
        return await connect_websocket(self._transport, path)

    # Verb helpers

    async def get(self, path: str) -> str:
        return await self.request_text("GET", path)

    async def get_json(self, path: str) -> Any:
        return await self.request_json("GET", path)

    async def post(self, path: str, body: Payload | None = None) -> str:
        return await self.request_text("POST", path, body=body)

    async def post_json(
        self,
        path: str,
        body: Payload | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        return await self.request_json("POST", path, body=body, headers=headers)

    async def put(self, path: str, body: Payload | None = None) -> str:
        return await self.request_text("PUT", path, body=body)

    async def delete(self, path: str) -> str:
        return await self.request_text("DELETE", path)

    async def delete_json(self, path: str) -> Any:
        return await self.request_json("DELETE", path)

    def stream_get(self, path: str) -> AsyncGenerator[bytes, None]:
        return self.stream_chunks("GET", path)

    def stream_post(
        self,
        path: str,
        body: Payload | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> AsyncGenerator[bytes, None]:
        return self.stream_chunks("POST", path, body=body, headers=headers)

    def stream_post_into(
        self,
        path: str,
        body: Payload | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> AsyncGenerator[Any, None]:
        """POST and stream the JSON values the daemon writes back (build, pull)."""
        return self.stream_json("POST", path, body=body, headers=headers)

    async def stream_post_upgrade(
        self, path: str, body: Payload | None = None
    ) -> UpgradedStream:
        return await self.upgrade("POST", path, body=body)

    # Daemon-level operations

    async def ping(self) -> str:
        """Return ``OK`` when the daemon is reachable."""
        return await self.get("/_ping")

    async def version(self) -> dict[str, Any]:
        return await self.get_json("/version")

    async def info(self) -> dict[str, Any]:
        return await self.get_json("/info")

    async def events(
        self,
        *,
        since: int | None = None,
        until: int | None = None,
        filters: Mapping[str, Sequence[str]] | None = None,
    ) -> AsyncIterator[DockerEvent]:
        """Follow the daemon event feed.

        Args:
            since: Only events after this Unix timestamp
            until: Stop the feed at this Unix timestamp
            filters: Filter name to accepted values, e.g. ``{"type": ["container"]}``
        """
        params: dict[str, str] = {}
        if since is not None:
            params["since"] = str(since)
        if until is not None:
            params["until"] = str(until)
        if filters:
            params["filters"] = json.dumps({k: list(v) for k, v in filters.items()})
        path = "/events"
        if params:
            path = f"{path}?{urlencode(params)}"

        stream = self.stream_json_lines("GET", path)
        try:
            async for raw in stream:
                try:
                    event = DockerEvent.from_dict(raw)
                except (KeyError, TypeError, ValueError, AttributeError) as err:
                    raise DockerDecodeError(f"Unexpected event payload: {raw!r}") from err
                yield event
        finally:
            await stream.aclose()
            _LOGGER.debug("Event feed closed")
