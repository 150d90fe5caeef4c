"""Command line entry point.

Two ways to run the server::

    py-httpd ./public                  # listen on 127.0.0.1:8080
    py-httpd ./public --stdio < req    # answer one request from stdin

Listening mode runs until Ctrl+C.  Errors on a single connection are
logged and the server keeps going.  In ``--stdio`` mode a failed
request is fatal: the error is printed and the process exits with
status 1, as does any startup problem (missing document root, bad
configuration, port already in use).
"""

from __future__ import annotations

import argparse
import dataclasses
import os
import sys
from typing import TYPE_CHECKING, Any, BinaryIO, TextIO

from py_httpd.config import ConfigError, ServerConfig
from py_httpd.http.response import VERSION
from py_httpd.logging import Logger, LogLevel
from py_httpd.server import HttpServer
from py_httpd.service import ConnectionService, ServiceError, StreamConnection

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

EXIT_OK = 0
EXIT_FAILURE = 1


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser for ``py-httpd``."""
    parser = argparse.ArgumentParser(
        prog="py-httpd",
        description="Minimal HTTP/1.0 static-file server.",
    )
    parser.add_argument("document_root", nargs="?", help="directory to serve")
    parser.add_argument("--host", help="address to bind (default 127.0.0.1)")
    parser.add_argument("--port", type=int, help="port to listen on (default 8080)")
    parser.add_argument("--chunk-size", type=int, help="bytes per read")
    parser.add_argument("--read-timeout", type=float, help="seconds before a silent client is dropped")
    parser.add_argument(
        "--confine",
        action="store_true",
        help="refuse paths that resolve outside the document root",
    )
    parser.add_argument(
        "--stdio",
        action="store_true",
        help="serve a single request from stdin to stdout",
    )
    parser.add_argument("--verbose", action="store_true", help="log state transitions too")
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    return parser


def _apply_flags(config: ServerConfig, args: argparse.Namespace) -> ServerConfig:
    """Override *config* with any flags given on the command line."""
    overrides: dict[str, Any] = {}
    for name in ("host", "port", "chunk_size", "read_timeout"):
        value = getattr(args, name)
        if value is not None:
            overrides[name] = value
    if args.confine:
        overrides["confine_to_root"] = True
    return dataclasses.replace(config, **overrides)


def log_exit(text: str, stderr: TextIO) -> int:
    """Print *text* as an error and return the failure exit status."""
    print(f"error: {text}", file=stderr)
    return EXIT_FAILURE


def main(
    argv: Sequence[str] | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    stdin: BinaryIO | None = None,
    stdout: BinaryIO | None = None,
    stderr: TextIO | None = None,
) -> int:
    """Run ``py-httpd`` and return the process exit status.

    The keyword arguments default to the real process streams and
    environment; tests pass their own.
    """
    err = stderr if stderr is not None else sys.stderr
    args = build_parser().parse_args(argv)
    if args.document_root is None:
        return log_exit("not enough args", err)

    try:
        config = ServerConfig.from_env(
            args.document_root,
            environ if environ is not None else os.environ,
        )
        config = _apply_flags(config, args)
        config.validate()
    except ConfigError as e:
        return log_exit(str(e), err)

    logger = Logger(
        sink=lambda entry: print(entry, file=err),
        min_level=LogLevel.DEBUG if args.verbose else LogLevel.INFO,
    )

    if args.stdio:
        service = ConnectionService.from_config(config, logger=logger)
        connection = StreamConnection(
            stdin if stdin is not None else sys.stdin.buffer,
            stdout if stdout is not None else sys.stdout.buffer,
        )
        try:
            service.serve(connection, config.document_root)
        except ServiceError as e:
            return log_exit(str(e), err)
        return EXIT_OK

    server = HttpServer(config, logger=logger)
    try:
        server.start()
    except OSError as e:
        return log_exit(f"cannot listen on {config.host}:{config.port}: {e}", err)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        server.shutdown(wait=False)
    return EXIT_OK
