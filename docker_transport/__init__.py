"""Docker daemon transport and streaming client."""

__version__ = "0.1.0"

from .client import DockerClient
from .config import DockerConfig
from .errors import (
    DockerCapabilityError,
    DockerClientError,
    DockerConfigError,
    DockerConnectionError,
    DockerDecodeError,
    DockerResponseError,
    DockerTimeout,
    DockerTlsDecodeError,
    DockerTlsError,
    DockerUpgradeError,
)
from .events import DockerEvent, DockerEventActor
from .http import Payload, json_payload, request_json, request_text
from .streams import (
    decode_json_chunks,
    decode_json_lines,
    stream_chunks,
    stream_json,
    stream_json_lines,
)
from .tls import TlsMaterial, load_tls_material
from .transport import (
    EncryptedTcpTransport,
    TcpTransport,
    Transport,
    UnixTransport,
    build_transport,
    close_transport,
    unix_transport,
)
from .upgrade import UpgradedStream, upgrade
from .ws import connect_websocket

__all__ = [
    "DockerCapabilityError",
    "DockerClient",
    "DockerClientError",
    "DockerConfig",
    "DockerConfigError",
    "DockerConnectionError",
    "DockerDecodeError",
    "DockerEvent",
    "DockerEventActor",
    "DockerResponseError",
    "DockerTimeout",
    "DockerTlsDecodeError",
    "DockerTlsError",
    "DockerUpgradeError",
    "EncryptedTcpTransport",
    "Payload",
    "TcpTransport",
    "TlsMaterial",
    "Transport",
    "UnixTransport",
    "UpgradedStream",
    "__version__",
    "build_transport",
    "close_transport",
    "connect_websocket",
    "decode_json_chunks",
    "decode_json_lines",
    "json_payload",
    "load_tls_material",
    "request_json",
    "request_text",
    "stream_chunks",
    "stream_json",
    "stream_json_lines",
    "unix_transport",
    "upgrade",
]
