"""Per-connection service — one request in, one response out.

Each accepted connection walks a fixed, one-way state machine:

    READING → PARSING → BUILDING → SERIALIZING → WRITING → CLOSED

Only BUILDING has escape hatches.  If the requested file is missing the
service builds ``/404.html`` instead (status 404); if it exists but
cannot be read the service builds ``/500.html`` (status 500).  A failing
fallback is not retried: it ends the connection like every other error.

Everything else is fatal for the connection and is raised to the caller
as a ``ServiceError`` without writing a single byte:

- **TransportError** — ``recv``/``sendall`` failed (timeouts included).
- **RequestTooLargeError** — the client sent more than the limit.
- **EncodingError** — the request bytes are not UTF-8 text.
- **ProtocolError** — the text is not an HTTP request.
- **FallbackError** — the 404/500 page itself could not be built.

The service holds no per-connection state, so one instance can be
shared by every connection thread of a server.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, BinaryIO, Protocol

from py_httpd.config import DEFAULT_CHUNK_SIZE, DEFAULT_MAX_REQUEST_BYTES
from py_httpd.http.errors import BuildError, ParseError, ResourceNotFoundError
from py_httpd.http.request import parse_request
from py_httpd.http.response import (
    DEFAULT_CONTENT_TYPE,
    DEFAULT_SERVER_NAME,
    HttpResponse,
    HttpStatus,
    build_response,
    format_response,
)
from py_httpd.logging import Logger, LogLevel

if TYPE_CHECKING:
    from py_httpd.config import ServerConfig

NOT_FOUND_PAGE = "/404.html"
SERVER_ERROR_PAGE = "/500.html"

_SOURCE = "service"


class ServiceError(Exception):
    """Raise when a connection cannot be served."""


class TransportError(ServiceError):
    """Raise when reading from or writing to the connection fails."""


class RequestTooLargeError(ServiceError):
    """Raise when a request exceeds the configured size limit."""


class EncodingError(ServiceError):
    """Raise when the request bytes are not valid UTF-8."""


class ProtocolError(ServiceError):
    """Raise when the request text cannot be parsed."""


class FallbackError(ServiceError):
    """Raise when the 404 or 500 fallback page cannot be built."""


class ServiceState(StrEnum):
    """Stages a connection passes through, in order."""

    READING = "reading"
    PARSING = "parsing"
    BUILDING = "building"
    SERIALIZING = "serializing"
    WRITING = "writing"
    CLOSED = "closed"


class Connection(Protocol):
    """Interface a connection must satisfy (``socket.socket`` does)."""

    def recv(self, bufsize: int, /) -> bytes:
        """Read up to *bufsize* bytes."""
        ...  # pragma: no cover

    def sendall(self, data: bytes, /) -> None:
        """Write all of *data*."""
        ...  # pragma: no cover


class StreamConnection:
    """Adapt a pair of binary streams to the Connection interface.

    This lets the service answer a request read from stdin on stdout,
    the way a CGI-style program would.
    """

    def __init__(self, reader: BinaryIO, writer: BinaryIO) -> None:
        """Wrap *reader* (for recv) and *writer* (for sendall)."""
        self._reader = reader
        self._writer = writer

    def recv(self, bufsize: int, /) -> bytes:
        """Read up to *bufsize* bytes from the reader."""
        return self._reader.read(bufsize)

    def sendall(self, data: bytes, /) -> None:
        """Write *data* to the writer and flush it."""
        self._writer.write(data)
        self._writer.flush()


def read_request(
    connection: Connection,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    max_request_bytes: int = DEFAULT_MAX_REQUEST_BYTES,
) -> bytes:
    """Read one request from *connection*.

    Reads ``chunk_size`` bytes at a time until a read comes back short
    (an empty read at end-of-stream counts as short).

    Raises:
        TransportError: If a read fails or times out.
        RequestTooLargeError: If more than *max_request_bytes* arrive.

    """
    buffer = bytearray()
    while True:
        try:
            chunk = connection.recv(chunk_size)
        except OSError as e:
            msg = f"Read failed: {e}"
            raise TransportError(msg) from e
        buffer.extend(chunk)
        if len(buffer) > max_request_bytes:
            msg = f"Request exceeds {max_request_bytes} bytes"
            raise RequestTooLargeError(msg)
        if len(chunk) < chunk_size:
            return bytes(buffer)


class ConnectionService:
    """Serve one request per connection from a document root."""

    def __init__(
        self,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_request_bytes: int = DEFAULT_MAX_REQUEST_BYTES,
        content_type: str = DEFAULT_CONTENT_TYPE,
        server_name: str = DEFAULT_SERVER_NAME,
        confine_to_root: bool = False,
        logger: Logger | None = None,
    ) -> None:
        """Create a service.

        Args:
            chunk_size: Bytes asked for per ``recv`` call.
            max_request_bytes: Largest request accepted.
            content_type: ``Content-Type`` header for every response.
            server_name: ``Server`` header for every response.
            confine_to_root: Treat paths escaping the root as missing.
            logger: Where to record requests (a private one if omitted).

        """
        self._chunk_size = chunk_size
        self._max_request_bytes = max_request_bytes
        self._content_type = content_type
        self._server_name = server_name
        self._confine_to_root = confine_to_root
        self._logger = logger if logger is not None else Logger()

    @classmethod
    def from_config(cls, config: ServerConfig, *, logger: Logger | None = None) -> ConnectionService:
        """Create a service using the settings in *config*."""
        return cls(
            chunk_size=config.chunk_size,
            max_request_bytes=config.max_request_bytes,
            content_type=config.content_type,
            server_name=config.server_name,
            confine_to_root=config.confine_to_root,
            logger=logger,
        )

    @property
    def logger(self) -> Logger:
        """Return the logger this service writes to."""
        return self._logger

    def serve(self, connection: Connection, document_root: str, *, peer: str = "-") -> HttpResponse:
        """Read a request from *connection*, answer it, and return the answer.

        The connection is left open; closing it is the caller's job.

        Args:
            connection: Where the request comes from and the response goes.
            document_root: Directory the request path is appended to.
            peer: Client address, for log entries.

        Returns:
            The response that was written.

        Raises:
            ServiceError: If the connection could not be served.  No
                bytes are written in that case.

        """
        self._enter(ServiceState.READING, peer)
        raw = read_request(
            connection,
            chunk_size=self._chunk_size,
            max_request_bytes=self._max_request_bytes,
        )
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            msg = f"Request is not valid UTF-8: {e}"
            raise EncodingError(msg) from e

        self._enter(ServiceState.PARSING, peer)
        try:
            request = parse_request(text)
        except ParseError as e:
            msg = f"Bad request: {e}"
            raise ProtocolError(msg) from e

        self._enter(ServiceState.BUILDING, peer)
        response = self._build_with_fallback(request.path, document_root, peer)

        self._enter(ServiceState.SERIALIZING, peer)
        data = format_response(response).encode()

        self._enter(ServiceState.WRITING, peer)
        try:
            connection.sendall(data)
        except OSError as e:
            msg = f"Write failed: {e}"
            raise TransportError(msg) from e

        self._enter(ServiceState.CLOSED, peer)
        self._logger.log(
            LogLevel.INFO,
            f"{request.method} {request.path} -> {response.status.value}",
            source=_SOURCE,
            peer=peer,
        )
        return response

    def _build(self, resource_path: str, document_root: str, status: HttpStatus) -> HttpResponse:
        return build_response(
            resource_path,
            document_root,
            status=status,
            content_type=self._content_type,
            server_name=self._server_name,
            confine_to_root=self._confine_to_root,
        )

    def _build_with_fallback(self, resource_path: str, document_root: str, peer: str) -> HttpResponse:
        """Build the requested page, or the 404/500 page if that fails."""
        try:
            return self._build(resource_path, document_root, HttpStatus.OK)
        except ResourceNotFoundError as e:
            page, status = NOT_FOUND_PAGE, HttpStatus.NOT_FOUND
            cause: BuildError = e
        except BuildError as e:
            page, status = SERVER_ERROR_PAGE, HttpStatus.INTERNAL_SERVER_ERROR
            cause = e

        self._logger.log(LogLevel.WARNING, f"{cause}; serving {page}", source=_SOURCE, peer=peer)
        try:
            return self._build(page, document_root, status)
        except BuildError as e:
            msg = f"Fallback page {page} unavailable: {e}"
            raise FallbackError(msg) from e

    def _enter(self, state: ServiceState, peer: str) -> None:
        self._logger.log(LogLevel.DEBUG, f"state -> {state}", source=_SOURCE, peer=peer)


def serve(connection: Connection, document_root: str) -> HttpResponse:
    """Serve one connection with default settings.

    See ``ConnectionService.serve``.
    """
    return ConnectionService().serve(connection, document_root)
