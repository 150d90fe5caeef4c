"""Tests for the ``py-httpd`` command line.

The ``--stdio`` mode is exercised end to end with in-memory streams;
listening mode is covered by the server tests.
"""

import io
from pathlib import Path

import pytest

from py_httpd.cli import EXIT_FAILURE, EXIT_OK, main

INDEX_BODY = "<h1>hi</h1>\n"


@pytest.fixture
def docroot(tmp_path: Path) -> str:
    """Return a document root with an index page and a 404 page."""
    (tmp_path / "index.html").write_text(INDEX_BODY)
    (tmp_path / "404.html").write_text("nope")
    return str(tmp_path)


def _run_stdio(args: list[str], request: bytes) -> tuple[int, bytes, str]:
    """Run main in --stdio mode; return (status, stdout bytes, stderr text)."""
    stdout = io.BytesIO()
    stderr = io.StringIO()
    status = main(
        [*args, "--stdio"],
        environ={},
        stdin=io.BytesIO(request),
        stdout=stdout,
        stderr=stderr,
    )
    return status, stdout.getvalue(), stderr.getvalue()


class TestArguments:
    """Verify argument handling."""

    def test_no_args(self) -> None:
        """Without a document root the CLI reports and exits 1."""
        stderr = io.StringIO()
        assert main([], environ={}, stderr=stderr) == EXIT_FAILURE
        assert stderr.getvalue() == "error: not enough args\n"

    def test_root_not_directory(self, tmp_path: Path) -> None:
        """A missing document root is a configuration error."""
        stderr = io.StringIO()
        status = main([str(tmp_path / "nope"), "--stdio"], environ={}, stderr=stderr)
        assert status == EXIT_FAILURE
        assert stderr.getvalue().startswith("error: Document root is not a directory")

    def test_bad_environment(self, docroot: str) -> None:
        """A bad environment value is reported, not raised."""
        stderr = io.StringIO()
        status = main([docroot, "--stdio"], environ={"PY_HTTPD_PORT": "x"}, stderr=stderr)
        assert status == EXIT_FAILURE
        assert "PY_HTTPD_PORT" in stderr.getvalue()

    def test_unknown_flag(self) -> None:
        """argparse rejects unknown flags with a non-zero exit."""
        with pytest.raises(SystemExit) as exc_info:
            main(["--bogus"], environ={}, stderr=io.StringIO())
        assert exc_info.value.code != 0


class TestStdioMode:
    """Verify serving one request from stdin to stdout."""

    def test_serves_file(self, docroot: str) -> None:
        """A good request is answered on stdout and logged on stderr."""
        status, out, err = _run_stdio([docroot], b"GET /index.html HTTP/1.0\r\n\r\n")
        assert status == EXIT_OK
        assert out.startswith(b"HTTP/1.0 200 OK\r\n")
        assert out.endswith(INDEX_BODY.encode())
        assert "GET /index.html -> 200" in err

    def test_missing_file(self, docroot: str) -> None:
        """A missing file is answered with the 404 page."""
        status, out, _ = _run_stdio([docroot], b"GET /missing.html HTTP/1.0\r\n\r\n")
        assert status == EXIT_OK
        assert out.startswith(b"HTTP/1.0 404 Not Found\r\n")

    def test_bad_request_is_fatal(self, docroot: str) -> None:
        """A malformed request writes nothing and exits 1."""
        status, out, err = _run_stdio([docroot], b"GET /index.html\r\n\r\n")
        assert status == EXIT_FAILURE
        assert out == b""
        assert err.startswith("error: Bad request")

    def test_nul_in_path_gets_500(self, docroot: str) -> None:
        """A NUL in the path is answered with the 500 page, not a traceback."""
        Path(docroot, "500.html").write_text("oops")
        status, out, _ = _run_stdio([docroot], b"GET /a\x00b.html HTTP/1.0\r\n\r\n")
        assert status == EXIT_OK
        assert out.startswith(b"HTTP/1.0 500 Internal Server Error\r\n")
        assert out.endswith(b"oops")

    def test_confine_flag(self, tmp_path: Path) -> None:
        """--confine turns an escaping path into a 404."""
        root = tmp_path / "www"
        root.mkdir()
        (root / "404.html").write_text("nope")
        (tmp_path / "secret.txt").write_text("hidden")
        status, out, _ = _run_stdio(
            [str(root), "--confine"],
            b"GET /../secret.txt HTTP/1.0\r\n\r\n",
        )
        assert status == EXIT_OK
        assert out.startswith(b"HTTP/1.0 404 Not Found\r\n")
        assert b"hidden" not in out

    def test_verbose_echoes_states(self, docroot: str) -> None:
        """--verbose also prints DEBUG state transitions."""
        _, _, err = _run_stdio([docroot, "--verbose"], b"GET /index.html HTTP/1.0\r\n\r\n")
        assert "state -> reading" in err
