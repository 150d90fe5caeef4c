r"""HTTP/1.0 request parsing.

A request arrives as one block of text with a fixed shape:

    GET /index.html HTTP/1.0\r\n          <- request line
    Host: localhost\r\n                   <- header lines
    User-Agent: curl/8.0\r\n
    \r\n                                  <- blank line
    [body]                                <- everything else

The parser is deliberately narrow.  It splits the request line on
whitespace, reads the protocol minor version from the *last character*
of the version token (it does not check for the ``HTTP/`` prefix), and
splits each header on the first ``": "``.  The method is not checked
against a list and the path is taken verbatim: no percent-decoding, no
``..`` normalization.

Key properties:
    - **Pure** — ``parse_request`` looks only at its argument.
    - **Last write wins** — a repeated header name keeps its final value.
    - **Round-trip** — ``parse_request(format_request(r))`` gives back
      the same method, path, version, headers and body.
"""

from dataclasses import dataclass, field

from py_httpd.http.errors import (
    MalformedHeaderError,
    MalformedRequestError,
    MalformedRequestLineError,
    MalformedVersionError,
)

_CRLF = "\r\n"
_HEAD_SEPARATOR = "\r\n\r\n"
_HEADER_SEPARATOR = ": "
_MIN_REQUEST_LINE_PARTS = 3
_DIGITS = "0123456789"


def _empty_headers() -> dict[str, str]:
    """Return an empty headers dict (typed factory for dataclass fields)."""
    return {}


@dataclass(frozen=True)
class HttpRequest:
    """A parsed HTTP request.

    Attributes:
        method: The request method token (e.g. "GET"), as sent.
        path: The request target (e.g. "/index.html"), as sent.
        protocol_minor_version: The trailing digit of the version token.
        headers: Header names mapped to values; names keep their case.
        body: Everything after the blank line (default empty).

    """

    method: str
    path: str
    protocol_minor_version: int = 0
    headers: dict[str, str] = field(default_factory=_empty_headers)
    body: str = ""

    @property
    def length(self) -> int:
        """Return the byte length of the body."""
        return len(self.body.encode())


def _parse_version(token: str) -> int:
    """Return the minor version encoded in the last character of *token*."""
    last = token[-1]
    if last not in _DIGITS:
        msg = f"Malformed version: {token}"
        raise MalformedVersionError(msg)
    return int(last)


def _parse_headers(lines: list[str]) -> dict[str, str]:
    """Parse header lines up to the first empty one."""
    headers: dict[str, str] = {}
    for line in lines:
        if not line:
            break
        name, separator, value = line.partition(_HEADER_SEPARATOR)
        if not separator:
            msg = f"Malformed header: {line}"
            raise MalformedHeaderError(msg)
        headers[name] = value
    return headers


def parse_request(buffer: str) -> HttpRequest:
    """Parse request text into an HttpRequest.

    Args:
        buffer: The full request as received, decoded to text.

    Returns:
        The structured request.

    Raises:
        MalformedRequestError: If the blank-line separator is missing.
        MalformedRequestLineError: If the request line has fewer than
            three tokens.
        MalformedVersionError: If the version token does not end in a digit.
        MalformedHeaderError: If a header line has no ``": "``.

    """
    head, separator, body = buffer.partition(_HEAD_SEPARATOR)
    if not separator:
        msg = "Malformed request: missing blank line after headers"
        raise MalformedRequestError(msg)

    lines = head.split(_CRLF)
    request_line = lines[0]
    parts = request_line.split()
    if len(parts) < _MIN_REQUEST_LINE_PARTS:
        msg = f"Malformed request line: {request_line!r}"
        raise MalformedRequestLineError(msg)

    method, path, version = parts[:_MIN_REQUEST_LINE_PARTS]
    return HttpRequest(
        method=method,
        path=path,
        protocol_minor_version=_parse_version(version),
        headers=_parse_headers(lines[1:]),
        body=body,
    )


def format_request(request: HttpRequest) -> str:
    r"""Serialize an HttpRequest to wire-format text.

    Wire format::

        METHOD /path HTTP/1.N\r\n
        Header-Name: value\r\n
        ...\r\n
        \r\n
        [body]
    """
    parts = [f"{request.method} {request.path} HTTP/1.{request.protocol_minor_version}"]
    parts.extend(f"{name}{_HEADER_SEPARATOR}{value}" for name, value in request.headers.items())
    return _CRLF.join(parts) + _HEAD_SEPARATOR + request.body
