"""HTTP protocol layer — request parsing and response building.

Re-exports public symbols so callers can write::

    from py_httpd.http import parse_request, build_response
"""

from py_httpd.http.errors import (
    BuildError,
    HttpError,
    MalformedHeaderError,
    MalformedRequestError,
    MalformedRequestLineError,
    MalformedVersionError,
    ParseError,
    ResourceNotFoundError,
    ResourceReadError,
)
from py_httpd.http.request import HttpRequest, format_request, parse_request
from py_httpd.http.response import (
    DEFAULT_CONTENT_TYPE,
    DEFAULT_SERVER_NAME,
    VERSION,
    HttpResponse,
    HttpStatus,
    build_response,
    format_response,
    status_reason,
)

__all__ = [
    "DEFAULT_CONTENT_TYPE",
    "DEFAULT_SERVER_NAME",
    "VERSION",
    "BuildError",
    "HttpError",
    "HttpRequest",
    "HttpResponse",
    "HttpStatus",
    "MalformedHeaderError",
    "MalformedRequestError",
    "MalformedRequestLineError",
    "MalformedVersionError",
    "ParseError",
    "ResourceNotFoundError",
    "ResourceReadError",
    "build_response",
    "format_request",
    "format_response",
    "parse_request",
    "status_reason",
]
