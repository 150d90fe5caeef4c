"""Server configuration.

Settings come from three layers, each overriding the one before:

1. The defaults on ``ServerConfig``.
2. ``PY_HTTPD_*`` environment variables (``ServerConfig.from_env``).
3. Command line flags (applied by the CLI with ``dataclasses.replace``).

The config is a frozen dataclass so a running server cannot have its
settings changed underneath it.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from py_httpd.http.response import DEFAULT_CONTENT_TYPE, DEFAULT_SERVER_NAME

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8080
DEFAULT_CHUNK_SIZE = 1024
DEFAULT_MAX_REQUEST_BYTES = 1_048_576
DEFAULT_READ_TIMEOUT = 30.0
DEFAULT_BACKLOG = 5

ENV_PREFIX = "PY_HTTPD_"
_MAX_PORT = 65_535
_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


class ConfigError(Exception):
    """Raise when a configuration value is invalid."""


def _parse_flag(raw: str) -> bool:
    """Interpret an environment value as a boolean switch."""
    return raw.strip().lower() in _TRUE_VALUES


# Environment variable suffix -> (field name, converter)
_ENV_FIELDS: dict[str, tuple[str, Callable[[str], Any]]] = {
    "HOST": ("host", str),
    "PORT": ("port", int),
    "CHUNK_SIZE": ("chunk_size", int),
    "MAX_REQUEST_BYTES": ("max_request_bytes", int),
    "READ_TIMEOUT": ("read_timeout", float),
    "CONTENT_TYPE": ("content_type", str),
    "CONFINE": ("confine_to_root", _parse_flag),
}


@dataclass(frozen=True)
class ServerConfig:
    """Everything the server needs to know before it starts.

    Attributes:
        document_root: Directory that request paths are appended to.
        host: Address to bind the listening socket to.
        port: Port to listen on (0 picks a free one).
        chunk_size: Bytes asked for per ``recv`` call.
        max_request_bytes: Largest request accepted.
        read_timeout: Seconds a connection may stay silent.
        content_type: ``Content-Type`` header sent with every response.
        server_name: ``Server`` header sent with every response.
        confine_to_root: Refuse paths that resolve outside the root.
        backlog: Pending-connection queue length for ``listen``.

    """

    document_root: str
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    chunk_size: int = DEFAULT_CHUNK_SIZE
    max_request_bytes: int = DEFAULT_MAX_REQUEST_BYTES
    read_timeout: float = DEFAULT_READ_TIMEOUT
    content_type: str = DEFAULT_CONTENT_TYPE
    server_name: str = DEFAULT_SERVER_NAME
    confine_to_root: bool = False
    backlog: int = DEFAULT_BACKLOG

    @classmethod
    def from_env(cls, document_root: str, environ: Mapping[str, str]) -> ServerConfig:
        """Build a config from defaults overridden by environment variables.

        Args:
            document_root: Directory to serve.
            environ: Environment mapping (usually ``os.environ``).

        Returns:
            The resulting configuration (not yet validated).

        Raises:
            ConfigError: If a numeric variable does not parse.

        """
        overrides: dict[str, Any] = {}
        for suffix, (name, convert) in _ENV_FIELDS.items():
            raw = environ.get(ENV_PREFIX + suffix)
            if raw is None:
                continue
            try:
                overrides[name] = convert(raw)
            except ValueError as e:
                msg = f"Invalid {ENV_PREFIX}{suffix}: {raw!r}"
                raise ConfigError(msg) from e
        return cls(document_root=document_root, **overrides)

    def validate(self) -> None:
        """Check that every setting is usable.

        Raises:
            ConfigError: On the first invalid setting found.

        """
        if not Path(self.document_root).is_dir():
            msg = f"Document root is not a directory: {self.document_root}"
            raise ConfigError(msg)
        if not 0 <= self.port <= _MAX_PORT:
            msg = f"Port out of range: {self.port}"
            raise ConfigError(msg)
        if self.chunk_size <= 0:
            msg = f"Chunk size must be positive: {self.chunk_size}"
            raise ConfigError(msg)
        if self.max_request_bytes <= 0:
            msg = f"Request limit must be positive: {self.max_request_bytes}"
            raise ConfigError(msg)
        if self.read_timeout <= 0:
            msg = f"Read timeout must be positive: {self.read_timeout}"
            raise ConfigError(msg)
