"""Client error types for Docker daemon interactions."""

from __future__ import annotations

import json


class DockerClientError(Exception):
    """Base error for Docker client failures."""


class DockerConfigError(DockerClientError):
    """A transport could not be built from the given configuration."""


class DockerCapabilityError(DockerConfigError):
    """The requested transport is not available on this platform."""


class DockerTlsError(DockerConfigError):
    """TLS material could not be read."""


class DockerTlsDecodeError(DockerTlsError):
    """TLS material was read but is not usable."""


class DockerConnectionError(DockerClientError):
    """Network connection to the daemon failed."""


class DockerTimeout(DockerConnectionError):
    """Timeout while communicating with the daemon."""


class DockerUpgradeError(DockerConnectionError):
    """The daemon answered an upgrade request with a malformed response."""


class DockerDecodeError(DockerClientError):
    """A response body or stream item is not valid JSON."""


class DockerResponseError(DockerClientError):
    """HTTP response error from the daemon."""

    def __init__(self, status: int, body: str) -> None:
        self.status = status
        self.body = body
        self.message = _error_message(body)
        super().__init__(f"Docker daemon returned {status}: {self.message}")


def _error_message(body: str) -> str:
    """Pull the daemon's ``message`` field out of a JSON error body."""
    try:
        data = json.loads(body)
    except ValueError:
        return body.strip()
    if isinstance(data, dict) and isinstance(data.get("message"), str):
        return data["message"]
    return body.strip()
