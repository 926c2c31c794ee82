"""Client certificate material for TLS connections to the Docker daemon."""

from __future__ import annotations

import binascii
import logging
import re
import ssl
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from .errors import DockerTlsDecodeError, DockerTlsError

_LOGGER = logging.getLogger(__name__)

CA_FILE = "ca.pem"
CERT_FILE = "cert.pem"
KEY_FILE = "key.pem"

_PEM_BLOCK = re.compile(
    r"-----BEGIN (?P<label>[A-Z0-9 ]+)-----\s*(?P<body>.*?)\s*-----END (?P=label)-----",
    re.DOTALL,
)

KeyFormat = Literal["rsa", "pkcs8"]

# PEM labels accepted for the client key.
_KEY_LABELS: dict[str, KeyFormat] = {
    "RSA PRIVATE KEY": "rsa",
    "PRIVATE KEY": "pkcs8",
}


@dataclass(frozen=True, slots=True)
class TlsMaterial:
    """Certificates and key loaded from a Docker certificate directory."""

    cert_dir: Path
    ca_certs: tuple[str, ...] | None
    cert_chain: tuple[str, ...]
    key_format: KeyFormat
    ssl_context: ssl.SSLContext

    @property
    def verifies_server(self) -> bool:
        """Whether the daemon's certificate is checked against ``ca.pem``."""
        return self.ca_certs is not None


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="ascii")
    except UnicodeDecodeError as err:
        raise DockerTlsDecodeError(f"{path} is not a PEM file") from err
    except OSError as err:
        raise DockerTlsError(f"Unable to read {path}: {err.strerror}") from err


def _pem_blocks(text: str) -> list[tuple[str, str]]:
    blocks = []
    for match in _PEM_BLOCK.finditer(text):
        label = match.group("label")
        body = match.group("body")
        try:
            binascii.a2b_base64("".join(body.split()), strict_mode=True)
        except binascii.Error as err:
            raise DockerTlsDecodeError(f"Corrupt PEM block {label!r}") from err
        blocks.append((label, match.group(0)))
    return blocks


def _read_certificates(path: Path) -> tuple[str, ...]:
    certs = tuple(
        block for label, block in _pem_blocks(_read_text(path)) if label == "CERTIFICATE"
    )
    if not certs:
        raise DockerTlsDecodeError(f"No certificates found in {path}")
    return certs


def _check_private_key(path: Path) -> KeyFormat:
    """Return the encoding of the single private key stored in ``path``.

    Exactly one RSA (PKCS#1) or PKCS#8 key is accepted. Other key types and
    files holding several keys are rejected rather than guessed at.
    """
    keys = [label for label, _ in _pem_blocks(_read_text(path)) if "PRIVATE KEY" in label]
    if not keys:
        raise DockerTlsDecodeError(f"No private key found in {path}")
    if len(keys) > 1:
        raise DockerTlsDecodeError(
            f"Expected one private key in {path}, found {len(keys)}"
        )
    label = keys[0]
    if label not in _KEY_LABELS:
        raise DockerTlsDecodeError(
            f"Unsupported private key type {label!r} in {path}; "
            "expected an RSA or PKCS#8 key"
        )
    return _KEY_LABELS[label]


def load_tls_material(cert_dir: str | Path, *, verify: bool) -> TlsMaterial:
    """Load ``cert.pem``/``key.pem`` (and ``ca.pem`` when verifying) from a directory.

    When ``verify`` is false no trust root is loaded and the daemon's
    certificate is not checked at all. This follows the historical Docker
    client convention for ``DOCKER_CERT_PATH`` without ``DOCKER_TLS_VERIFY``
    and leaves the connection open to interception.

    Raises:
        DockerTlsError: A file is missing or unreadable.
        DockerTlsDecodeError: A file does not hold usable certificates or key.
    """
    cert_dir = Path(cert_dir)
    cert_file = cert_dir / CERT_FILE
    key_file = cert_dir / KEY_FILE

    cert_chain = _read_certificates(cert_file)
    key_format = _check_private_key(key_file)
    ca_certs = _read_certificates(cert_dir / CA_FILE) if verify else None

    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    try:
        if ca_certs is None:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        else:
            context.load_verify_locations(cadata="\n".join(ca_certs))
        context.load_cert_chain(certfile=cert_file, keyfile=key_file)
    except ssl.SSLError as err:
        raise DockerTlsDecodeError(f"Invalid TLS material in {cert_dir}: {err}") from err

    if ca_certs is None:
        _LOGGER.warning(
            "TLS verification disabled for %s; the daemon certificate is not checked",
            cert_dir,
        )
    else:
        _LOGGER.debug("Loaded %d CA certificates from %s", len(ca_certs), cert_dir)

    return TlsMaterial(
        cert_dir=cert_dir,
        ca_certs=ca_certs,
        cert_chain=cert_chain,
        key_format=key_format,
        ssl_context=context,
    )
