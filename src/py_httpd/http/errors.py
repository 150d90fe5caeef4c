"""HTTP-layer error taxonomy.

Two families of failure can happen between the wire and the file system:

- **ParseError** — the request bytes did not have the shape of an
  HTTP request.  These are always fatal for the connection: the server
  cannot even tell what was asked for, so no response is sent.
- **BuildError** — the request was fine, but the file behind it could
  not be loaded.  These are recoverable: the connection service swaps
  in a fallback page (404 or 500) and answers anyway.

Each concrete error is its own class so callers can tell them apart
with ``except`` (or ``isinstance``) instead of comparing message text.
"""


class HttpError(Exception):
    """Raise when an HTTP operation fails."""


# -- Parsing -----------------------------------------------------------------


class ParseError(HttpError):
    """Raise when a request buffer cannot be parsed."""


class MalformedRequestError(ParseError):
    """Raise when the blank line between head and body is missing."""


class MalformedRequestLineError(ParseError):
    """Raise when the request line has fewer than three tokens."""


class MalformedVersionError(ParseError):
    """Raise when the version token does not end in a decimal digit."""


class MalformedHeaderError(ParseError):
    """Raise when a header line has no ``": "`` separator."""


# -- Building ----------------------------------------------------------------


class BuildError(HttpError):
    """Raise when a response cannot be built from a resource."""


class ResourceNotFoundError(BuildError):
    """Raise when the requested file does not exist."""


class ResourceReadError(BuildError):
    """Raise when the requested file exists but cannot be read as text."""
