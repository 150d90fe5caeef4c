"""TCP accept loop — hand each connection to the service on its own thread.

The standard server lifecycle:

    socket() → bind(host, port) → listen() → accept() → serve → close

``HttpServer`` owns the listening socket.  Every accepted connection
gets a read timeout and a daemon thread that runs
``ConnectionService.serve`` once and then closes the socket.  A failed
connection is logged and forgotten; the loop keeps accepting.

The accept call itself polls with a short timeout so that ``shutdown``
(called from another thread or a signal handler) is noticed promptly.
"""

from __future__ import annotations

import socket
import threading
from enum import StrEnum
from typing import TYPE_CHECKING

from py_httpd.logging import Logger, LogLevel
from py_httpd.service import ConnectionService, ServiceError

if TYPE_CHECKING:
    from py_httpd.config import ServerConfig

ACCEPT_POLL_INTERVAL = 0.5

_SOURCE = "server"


class ServerState(StrEnum):
    """Lifecycle states of the server."""

    CREATED = "created"
    LISTENING = "listening"
    STOPPED = "stopped"


def _format_peer(address: tuple[str, int]) -> str:
    """Render a socket address as ``host:port``."""
    return f"{address[0]}:{address[1]}"


class HttpServer:
    """Accept TCP connections and serve one request on each."""

    def __init__(
        self,
        config: ServerConfig,
        *,
        logger: Logger | None = None,
        service: ConnectionService | None = None,
    ) -> None:
        """Create a server (nothing is bound until ``start``).

        Args:
            config: Validated server settings.
            logger: Shared log for the server and its service.
            service: Service to run per connection (built from *config*
                if omitted).

        """
        self._config = config
        self._logger = logger if logger is not None else Logger()
        self._service = (
            service
            if service is not None
            else ConnectionService.from_config(config, logger=self._logger)
        )
        self._socket: socket.socket | None = None
        self._state = ServerState.CREATED
        self._stop = threading.Event()
        self._workers: set[threading.Thread] = set()
        self._workers_lock = threading.Lock()

    @property
    def state(self) -> ServerState:
        """Return the current lifecycle state."""
        return self._state

    @property
    def logger(self) -> Logger:
        """Return the server's logger."""
        return self._logger

    @property
    def address(self) -> tuple[str, int]:
        """Return the bound ``(host, port)``; useful when port 0 was asked for.

        Raises:
            RuntimeError: If the server is not listening.

        """
        if self._socket is None:
            msg = f"Server is {self._state}, expected listening"
            raise RuntimeError(msg)
        host, port = self._socket.getsockname()[:2]
        return host, port

    def start(self) -> None:
        """Bind and listen on the configured address.

        Raises:
            RuntimeError: If the server was already started.
            OSError: If the address cannot be bound.

        """
        if self._state is not ServerState.CREATED:
            msg = f"Cannot start: server is {self._state}"
            raise RuntimeError(msg)
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self._config.host, self._config.port))
            sock.listen(self._config.backlog)
            sock.settimeout(ACCEPT_POLL_INTERVAL)
        except OSError:
            sock.close()
            raise
        self._socket = sock
        self._state = ServerState.LISTENING
        host, port = self.address
        self._logger.log(
            LogLevel.INFO,
            f"serving {self._config.document_root} on http://{host}:{port}",
            source=_SOURCE,
        )

    def serve_forever(self) -> None:
        """Accept connections until ``shutdown`` is called."""
        if self._socket is None:
            self.start()
        listener = self._socket
        assert listener is not None  # noqa: S101
        try:
            while not self._stop.is_set():
                try:
                    conn, address = listener.accept()
                except TimeoutError:
                    continue
                except OSError as e:
                    self._logger.log(LogLevel.ERROR, f"accept failed: {e}", source=_SOURCE)
                    continue
                self._spawn(conn, _format_peer(address))
        finally:
            self._close()

    def handle(self, conn: socket.socket, peer: str) -> None:
        """Serve one accepted connection and close it."""
        with conn:
            conn.settimeout(self._config.read_timeout)
            try:
                self._service.serve(conn, self._config.document_root, peer=peer)
            except ServiceError as e:
                self._logger.log(LogLevel.ERROR, str(e), source=_SOURCE, peer=peer)

    def shutdown(self, *, wait: bool = True) -> None:
        """Ask the accept loop to stop, optionally joining live connections."""
        self._stop.set()
        if wait:
            with self._workers_lock:
                workers = list(self._workers)
            for worker in workers:
                worker.join()

    def _spawn(self, conn: socket.socket, peer: str) -> None:
        worker = threading.Thread(target=self._run_worker, args=(conn, peer), daemon=True)
        with self._workers_lock:
            self._workers.add(worker)
        worker.start()

    def _run_worker(self, conn: socket.socket, peer: str) -> None:
        try:
            self.handle(conn, peer)
        finally:
            with self._workers_lock:
                self._workers.discard(threading.current_thread())

    def _close(self) -> None:
        if self._socket is not None:
            self._socket.close()
            self._socket = None
        self._state = ServerState.STOPPED
        self._logger.log(LogLevel.INFO, "stopped", source=_SOURCE)
