r"""HTTP/1.0 response building and serialization.

A response is built from a file: the request path is appended to the
document root, the file is read as UTF-8 text, and four fixed headers
are attached:

    HTTP/1.0 200 OK\r\n
    Content-Length: 12\r\n
    Content-Type: text/html; charset=utf-8\r\n
    Server: py-httpd/0.1.0\r\n
    Connection: Close\r\n
    \r\n
    <h1>hi</h1>\n

The header order above is canonical: ``build_response`` inserts them in
that order and ``format_response`` writes them in insertion order, so
the same file always produces the same bytes.

Path resolution is plain string concatenation.  A request for
``/../secret`` therefore escapes the document root unless the caller
asks for ``confine_to_root``.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path

from py_httpd.http.errors import ResourceNotFoundError, ResourceReadError

VERSION = "0.1.0"
DEFAULT_CONTENT_TYPE = "text/html; charset=utf-8"
DEFAULT_SERVER_NAME = f"py-httpd/{VERSION}"

_CRLF = "\r\n"
_HTTP_VERSION = "HTTP/1.0"


class HttpStatus(IntEnum):
    """HTTP response status codes this server can send.

    - 200 OK — the file was found and read.
    - 404 Not Found — the file does not exist (the 404 page is served).
    - 500 Internal Server Error — the file could not be read.
    """

    OK = 200
    NOT_FOUND = 404
    INTERNAL_SERVER_ERROR = 500


_REASON_PHRASES: dict[HttpStatus, str] = {
    HttpStatus.OK: "OK",
    HttpStatus.NOT_FOUND: "Not Found",
    HttpStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
}


def status_reason(status: HttpStatus) -> str:
    """Return the standard reason phrase for a status code."""
    return _REASON_PHRASES[status]


def _empty_headers() -> dict[str, str]:
    """Return an empty headers dict (typed factory for dataclass fields)."""
    return {}


@dataclass(frozen=True)
class HttpResponse:
    """An HTTP response ready to be serialized.

    Attributes:
        status: Status code (200, 404, etc.).
        headers: Header names mapped to values, in wire order.
        body: The file contents as text (default empty).

    """

    status: HttpStatus
    headers: dict[str, str] = field(default_factory=_empty_headers)
    body: str = ""

    @property
    def reason(self) -> str:
        """Return the reason phrase for this response's status."""
        return status_reason(self.status)


def _resolve(resource_path: str, document_root: str, *, confine_to_root: bool) -> Path:
    """Map a request path onto a file path under the document root."""
    path = Path(document_root + resource_path)
    if not confine_to_root:
        return path
    try:
        inside = path.resolve().is_relative_to(Path(document_root).resolve())
    except (OSError, ValueError) as e:
        msg = f"Cannot resolve resource {resource_path!r}: {e}"
        raise ResourceReadError(msg) from e
    if not inside:
        msg = f"Resource outside document root: {resource_path}"
        raise ResourceNotFoundError(msg)
    return path


def _read_text(path: Path) -> str:
    """Read a whole file as UTF-8 text, keeping line endings as stored."""
    try:
        return path.read_bytes().decode("utf-8")
    except FileNotFoundError as e:
        msg = f"Resource not found: {path}"
        raise ResourceNotFoundError(msg) from e
    except (OSError, ValueError) as e:
        # ValueError covers undecodable bytes and paths with an embedded NUL
        msg = f"Cannot read resource {path!r}: {e}"
        raise ResourceReadError(msg) from e


def build_response(
    resource_path: str,
    document_root: str,
    *,
    status: HttpStatus = HttpStatus.OK,
    content_type: str = DEFAULT_CONTENT_TYPE,
    server_name: str = DEFAULT_SERVER_NAME,
    confine_to_root: bool = False,
) -> HttpResponse:
    """Load a file and wrap it in an HttpResponse.

    Args:
        resource_path: The request path (e.g. "/index.html").
        document_root: The directory the path is appended to.
        status: The status to report (fallback pages pass 404 or 500).
        content_type: Value of the ``Content-Type`` header.
        server_name: Value of the ``Server`` header.
        confine_to_root: Treat paths that resolve outside the document
            root as missing.

    Returns:
        The response, with ``Content-Length`` matching the body.

    Raises:
        ResourceNotFoundError: If the file does not exist.
        ResourceReadError: If the file cannot be read or is not UTF-8.

    """
    path = _resolve(resource_path, document_root, confine_to_root=confine_to_root)
    body = _read_text(path)
    headers = {
        "Content-Length": str(len(body.encode())),
        "Content-Type": content_type,
        "Server": server_name,
        "Connection": "Close",
    }
    return HttpResponse(status=status, headers=headers, body=body)


def format_response(response: HttpResponse) -> str:
    r"""Serialize an HttpResponse to wire-format text.

    Wire format::

        HTTP/1.0 200 OK\r\n
        Header-Name: value\r\n
        ...\r\n
        \r\n
        [body]
    """
    lines = [f"{_HTTP_VERSION} {response.status.value} {response.reason}"]
    lines.extend(f"{name}: {value}" for name, value in response.headers.items())
    return _CRLF.join(lines) + _CRLF + _CRLF + response.body
