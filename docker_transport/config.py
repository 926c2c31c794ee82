"""Environment-derived configuration for reaching the Docker daemon."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

DEFAULT_DOCKER_HOST = "unix:///var/run/docker.sock"

ENV_DOCKER_HOST = "DOCKER_HOST"
ENV_CERT_PATH = "DOCKER_CERT_PATH"
ENV_TLS_VERIFY = "DOCKER_TLS_VERIFY"


@dataclass(frozen=True, slots=True)
class DockerConfig:
    """Where the daemon lives and how to authenticate to it.

    Attributes:
        host: Daemon address, e.g. ``unix:///var/run/docker.sock`` or
            ``tcp://10.0.0.5:2376``.
        cert_path: Directory holding ``ca.pem``, ``cert.pem`` and ``key.pem``.
            When set, network addresses use TLS with a client certificate.
        tls_verify: Verify the daemon's certificate against ``ca.pem``.
    """

    host: str = DEFAULT_DOCKER_HOST
    cert_path: str | None = None
    tls_verify: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> DockerConfig:
        """Read ``DOCKER_HOST``, ``DOCKER_CERT_PATH`` and ``DOCKER_TLS_VERIFY``.

        Empty values count as unset.
        """
        env = os.environ if environ is None else environ
        return cls(
            host=env.get(ENV_DOCKER_HOST) or DEFAULT_DOCKER_HOST,
            cert_path=env.get(ENV_CERT_PATH) or None,
            tls_verify=bool(env.get(ENV_TLS_VERIFY)),
        )
