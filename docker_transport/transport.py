"""Transport selection for the Docker daemon.

A transport is one of three variants, chosen once from the daemon address:

- ``UnixTransport``: HTTP over a local Unix-domain socket
- ``TcpTransport``: plain HTTP over TCP
- ``EncryptedTcpTransport``: HTTPS over TCP with a client certificate

Each variant owns an ``aiohttp.ClientSession`` bound to its connector and is
immutable afterwards. Code that needs variant-specific behaviour checks the
variant with ``isinstance`` rather than asking the connector.
"""

from __future__ import annotations

import logging
import socket
import ssl
from dataclasses import dataclass
from typing import TypeAlias
from urllib.parse import urlsplit

import aiohttp

from .config import DockerConfig
from .errors import DockerCapabilityError, DockerConfigError
from .tls import load_tls_material

_LOGGER = logging.getLogger(__name__)

DEFAULT_PORT = 80

# Host used in request URLs sent over a Unix socket; the daemon ignores it.
UNIX_URL_HOST = "localhost"

_NETWORK_SCHEMES = frozenset({"tcp", "http", "https"})


class _TransportBase:
    """Lifecycle helpers shared by all transport variants."""

    session: aiohttp.ClientSession

    async def close(self) -> None:
        """Close the underlying HTTP session and its connections."""
        await self.session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()


@dataclass(frozen=True, eq=False)
class UnixTransport(_TransportBase):
    """HTTP over a Unix-domain socket."""

    session: aiohttp.ClientSession
    socket_path: str


@dataclass(frozen=True, eq=False)
class TcpTransport(_TransportBase):
    """Plain HTTP over TCP; ``host`` is ``scheme://hostname:port``."""

    session: aiohttp.ClientSession
    host: str


@dataclass(frozen=True, eq=False)
class EncryptedTcpTransport(_TransportBase):
    """HTTPS over TCP authenticated with a client certificate."""

    session: aiohttp.ClientSession
    host: str
    ssl_context: ssl.SSLContext


Transport: TypeAlias = UnixTransport | TcpTransport | EncryptedTcpTransport


def _new_session(connector: aiohttp.BaseConnector) -> aiohttp.ClientSession:
    # No internal timeouts; callers bound their own operations.
    return aiohttp.ClientSession(
        connector=connector,
        timeout=aiohttp.ClientTimeout(),
    )


def unix_transport(socket_path: str) -> UnixTransport:
    """Build a transport talking to the daemon over a Unix-domain socket.

    Connections are closed after every request instead of being pooled.
    """
    if not hasattr(socket, "AF_UNIX"):
        raise DockerCapabilityError("Unix socket support is not available")
    if not socket_path:
        raise DockerConfigError("Unix socket path must not be empty")
    connector = aiohttp.UnixConnector(path=socket_path, force_close=True)
    _LOGGER.info("Using Unix socket transport at %s", socket_path)
    return UnixTransport(session=_new_session(connector), socket_path=socket_path)


def tcp_transport(host: str) -> TcpTransport:
    """Build a plain HTTP transport for a normalized ``scheme://host:port``."""
    _LOGGER.info("Using TCP transport to %s", host)
    return TcpTransport(session=_new_session(aiohttp.TCPConnector()), host=host)


def encrypted_tcp_transport(
    host: str, cert_path: str, *, verify: bool = False
) -> EncryptedTcpTransport:
    """Build an HTTPS transport using the TLS material found in ``cert_path``."""
    material = load_tls_material(cert_path, verify=verify)
    connector = aiohttp.TCPConnector(ssl=material.ssl_context)
    _LOGGER.info("Using TLS transport to %s (verify=%s)", host, verify)
    return EncryptedTcpTransport(
        session=_new_session(connector),
        host=host,
        ssl_context=material.ssl_context,
    )


def normalize_host(address: str) -> str:
    """Rebuild a network address as ``scheme://hostname:port``.

    Raises:
        DockerConfigError: The address is not a usable network address.
    """
    parts = urlsplit(address)
    if parts.scheme not in _NETWORK_SCHEMES:
        raise DockerConfigError(f"Unsupported Docker host address: {address!r}")
    try:
        port = parts.port
    except ValueError as err:
        raise DockerConfigError(
            f"Invalid port in Docker host address: {address!r}"
        ) from err
    if not parts.hostname:
        raise DockerConfigError(f"Missing host in Docker host address: {address!r}")
    hostname = parts.hostname
    if ":" in hostname:
        hostname = f"[{hostname}]"
    return f"{parts.scheme}://{hostname}:{port or DEFAULT_PORT}"


def build_transport(
    host: str | None = None, *, config: DockerConfig | None = None
) -> Transport:
    """Select and build the transport for a daemon address.

    Must be called while an event loop is running.

    Args:
        host: Daemon address. Defaults to ``config.host``.
        config: Settings read from the environment. Defaults to
            ``DockerConfig.from_env()``.

    Raises:
        DockerConfigError: The address is malformed or TLS material is invalid.
        DockerCapabilityError: A Unix socket was requested but is unsupported.
    """
    if config is None:
        config = DockerConfig.from_env()
    address = host if host is not None else config.host

    if urlsplit(address).scheme == "unix":
        return unix_transport(urlsplit(address).path)

    normalized = normalize_host(address)
    if config.cert_path:
        return encrypted_tcp_transport(
            normalized, config.cert_path, verify=config.tls_verify
        )
    return tcp_transport(normalized)


def base_url(transport: Transport) -> str:
    """Return the URL prefix requests over ``transport`` are resolved against."""
    if isinstance(transport, UnixTransport):
        return f"http://{UNIX_URL_HOST}"
    _, _, authority = transport.host.partition("://")
    if isinstance(transport, EncryptedTcpTransport):
        return f"https://{authority}"
    if isinstance(transport, TcpTransport):
        scheme = transport.host.partition("://")[0]
        return f"{'http' if scheme == 'tcp' else scheme}://{authority}"
    raise TypeError(f"Unknown transport: {transport!r}")


async def close_transport(transport: Transport) -> None:
    """Close the session held by ``transport``."""
    await transport.close()
