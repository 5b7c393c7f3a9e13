"""Generic programmable HTTP mock server.

Tests register canned responses (``response``, ``error_response``,
``add_default_response``) or dynamic handlers (``handler``), point the code
under test at ``endpoint()``, and inspect ``requests`` afterwards.

Resolution order for each request:

1. a dynamic handler registered for the exact path;
2. a static response for ``(path, METHOD)``;
3. a static response for ``path`` with no method;
4. a default response whose ``{id}`` placeholders match the path;
5. otherwise a 404 "not configured" answer, also kept in
   ``unexpected_requests``.
"""

from __future__ import annotations

import json
import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Callable, Optional
from urllib.parse import unquote, urlsplit

from pydantic import BaseModel

from .config import MockServerConfig
from .models import RequestLogEntry
from .routes import ID_PLACEHOLDER, ResponseTable, join_pattern, split_pattern

logger = logging.getLogger(__name__)

__all__ = [
    "HandlerFunc",
    "MockRequestHandler",
    "MockServer",
    "to_json",
]


def to_json(obj: Any) -> str:
    """Serialise a pydantic model or plain JSON-compatible value."""
    if isinstance(obj, BaseModel):
        return obj.model_dump_json()
    return json.dumps(obj)


class MockRequestHandler(BaseHTTPRequestHandler):
    """Per-request handler; dynamic handlers receive this object.

    Use ``body`` (or ``read_body()``) for the request payload and
    ``send_body()`` to answer. Whatever is sent through ``send_body`` is what
    ends up in the request log.
    """

    server: "_Listener"
    server_version = "IronicMock/1.0"

    def setup(self) -> None:
        super().setup()
        self._body: Optional[str] = None
        self.status_code: Optional[int] = None
        self.response_body = ""

    @property
    def mock(self) -> "MockServer":
        return self.server.mock

    @property
    def url_path(self) -> str:
        return unquote(urlsplit(self.path).path)

    @property
    def body(self) -> str:
        return self.read_body()

    def read_body(self) -> str:
        """Read and cache the request body.

        Raises ValueError for a malformed Content-Length or a payload that is
        not UTF-8, OSError if the connection fails mid-read.
        """
        if self._body is not None:
            return self._body
        if "chunked" in (self.headers.get("Transfer-Encoding") or "").lower():
            raw = self._read_chunked()
        else:
            length = int(self.headers.get("Content-Length") or 0)
            if length < 0:
                raise ValueError(f"Invalid Content-Length: {length}")
            raw = self.rfile.read(length) if length else b""
            if len(raw) < length:
                raise OSError(f"Short read: expected {length} bytes, got {len(raw)}")
        self._body = raw.decode("utf-8")
        return self._body

    def _read_chunked(self) -> bytes:
        chunks = []
        while True:
            size_line = self.rfile.readline()
            if not size_line:
                raise OSError("Connection closed inside chunked body")
            size = int(size_line.split(b";", 1)[0].strip(), 16)
            if size == 0:
                # trailer section ends with an empty line
                while self.rfile.readline() not in (b"\r\n", b"\n", b""):
                    pass
                return b"".join(chunks)
            chunks.append(self.rfile.read(size))
            self.rfile.readline()

    def send_body(self, status_code: int, body: str = "", content_type: str = "application/json") -> None:
        payload = body.encode("utf-8")
        self.send_response(status_code)
        if payload:
            self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        if payload and self.command != "HEAD":
            self.wfile.write(payload)
        self.status_code = status_code
        self.response_body = body

    def send_json(self, status_code: int, obj: Any) -> None:
        self.send_body(status_code, to_json(obj))

    def log_message(self, format, *args):  # noqa: A002 - signature from BaseHTTPRequestHandler
        logger.debug(f"{self.mock.name}: {self.address_string()} {format % args}")

    def _dispatch(self) -> None:
        self.mock._dispatch(self)

    do_GET = _dispatch
    do_HEAD = _dispatch
    do_POST = _dispatch
    do_PUT = _dispatch
    do_PATCH = _dispatch
    do_DELETE = _dispatch
    do_OPTIONS = _dispatch


HandlerFunc = Callable[[MockRequestHandler], None]


class _Listener(ThreadingHTTPServer):
    daemon_threads = True
    request_queue_size = 64

    def __init__(self, address: tuple[str, int], mock: "MockServer"):
        self.mock = mock
        super().__init__(address, MockRequestHandler)


class MockServer:
    """A threaded local HTTP server answering from registered routes.

    The listener is bound and serving as soon as the object is created, so
    ``endpoint()`` is usable right away. Use as a context manager, or call
    ``stop()`` when done.
    """

    def __init__(
        self,
        name: str | None = None,
        *,
        config: MockServerConfig | None = None,
        start: bool = True,
    ):
        self.config = config or MockServerConfig()
        self.name = name or self.config.name
        self._lock = threading.Lock()
        self._responses = ResponseTable()
        self._handlers: dict[str, HandlerFunc] = {}
        self._requests: list[RequestLogEntry] = []
        self._unexpected: list[RequestLogEntry] = []
        self._httpd: Optional[_Listener] = None
        self._thread: Optional[threading.Thread] = None
        self._address: Optional[tuple[str, int]] = None
        if start:
            self.start()

    # ---------------------------
    # Lifecycle
    # ---------------------------
    def start(self) -> "MockServer":
        if self._httpd is not None:
            raise RuntimeError(f"{self.name}: mock server already running at {self.endpoint()}")
        self._httpd = _Listener((self.config.host, self.config.port), self)
        host, port = self._httpd.server_address[:2]
        self._address = (str(host), int(port))
        self._thread = threading.Thread(
            target=self._httpd.serve_forever,
            name=f"{self.name}-mock-server",
            daemon=True,
        )
        self._thread.start()
        logger.info(f"{self.name}: mock server listening on {self.endpoint()}")
        return self

    def stop(self) -> None:
        httpd, thread = self._httpd, self._thread
        self._httpd = None
        self._thread = None
        if httpd is None:
            return
        try:
            httpd.shutdown()
        finally:
            httpd.server_close()
        if thread is not None:
            thread.join(timeout=5)
        logger.info(f"{self.name}: mock server stopped")

    @property
    def running(self) -> bool:
        return self._httpd is not None

    def __enter__(self):
        if not self.running:
            self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
        return False

    def endpoint(self) -> str:
        """Base URL of the listener, with a trailing slash."""
        if self._address is None:
            raise RuntimeError(f"{self.name}: mock server was never started")
        host, port = self._address
        if ":" in host:
            host = f"[{host}]"
        return f"http://{host}:{port}/"

    # ---------------------------
    # Registration
    # ---------------------------
    def handler(self, pattern: str, func: HandlerFunc) -> "MockServer":
        """Install a callback for every request to ``pattern``."""
        if not pattern.startswith("/"):
            raise ValueError(f"Pattern must start with '/': {pattern!r}")
        with self._lock:
            self._handlers[pattern] = func
        logger.debug(f"{self.name}: handler registered for {pattern}")
        return self

    def response_with_code(self, pattern: str, body: str, code: int) -> "MockServer":
        """Answer ``pattern`` with ``code`` and ``body``.

        ``pattern`` is a path, optionally suffixed with ``:METHOD``.
        """
        path, method = split_pattern(pattern)
        return self.add_response(path, code, body, method=method)

    def add_response(self, path: str, code: int, body: str, *, method: str | None = None) -> "MockServer":
        """Answer ``path`` literally, for ``method`` or for every method when None."""
        with self._lock:
            self._responses.add_exact(path, method, code, body)
        logger.debug(f"{self.name}: response {code} registered for {join_pattern(path, method)}")
        return self

    def response(self, pattern: str, body: str) -> "MockServer":
        return self.response_with_code(pattern, body, 200)

    def response_json(self, pattern: str, obj: Any, code: int = 200) -> "MockServer":
        return self.response_with_code(pattern, to_json(obj), code)

    def error_response(self, pattern: str, code: int) -> "MockServer":
        path, method = split_pattern(pattern)
        return self.add_error_response(path, code, method=method)

    def add_error_response(self, path: str, code: int, *, method: str | None = None) -> "MockServer":
        if 200 <= code < 300:
            raise ValueError(f"Error response for {path} needs a non-2xx code, got {code}")
        return self.add_response(path, code, "", method=method)

    def add_default_response(self, pattern: str, placeholder: str, code: int, body: str) -> "MockServer":
        """Fallback answer for any method on ``pattern``.

        With a non-empty ``placeholder`` every ``{id}`` in pattern and body is
        replaced by it now; otherwise ``{id}`` matches a single path segment
        and the matched value is substituted into the body per request.
        """
        if placeholder:
            pattern = pattern.replace(ID_PLACEHOLDER, placeholder)
            body = body.replace(ID_PLACEHOLDER, placeholder)
        with self._lock:
            self._responses.add_default(pattern, code, body)
        logger.debug(f"{self.name}: default response {code} registered for {pattern}")
        return self

    def add_default_response_json(self, pattern: str, placeholder: str, code: int, obj: Any) -> "MockServer":
        return self.add_default_response(pattern, placeholder, code, to_json(obj))

    # ---------------------------
    # Recorded traffic
    # ---------------------------
    @property
    def requests(self) -> list[RequestLogEntry]:
        with self._lock:
            return list(self._requests)

    @property
    def unexpected_requests(self) -> list[RequestLogEntry]:
        """Requests that matched no handler or response."""
        with self._lock:
            return list(self._unexpected)

    def requests_for(self, path: str, method: str | None = None) -> list[RequestLogEntry]:
        if method is None:
            path, method = split_pattern(path)
        return [
            r for r in self.requests
            if r.path == path and (method is None or r.method == method.upper())
        ]

    def clear_requests(self) -> None:
        with self._lock:
            self._requests.clear()
            self._unexpected.clear()

    # ---------------------------
    # Request handling
    # ---------------------------
    def _record(self, request: MockRequestHandler, *, unexpected: bool = False) -> RequestLogEntry:
        entry = RequestLogEntry(
            method=request.command,
            path=request.url_path,
            body=request._body or "",
            status_code=request.status_code or 0,
            response_body=request.response_body,
        )
        with self._lock:
            self._requests.append(entry)
            if unexpected:
                self._unexpected.append(entry)
        logger.info(
            f"{self.name}: {entry.method} {entry.path} -> {entry.status_code} {entry.response_body!r}"
        )
        return entry

    def _dispatch(self, request: MockRequestHandler) -> None:
        path, method = request.url_path, request.command

        try:
            request.read_body()
        except (OSError, ValueError) as e:
            logger.error(f"{self.name}: failed to read body of {method} {path}: {e}")
            request.send_json(500, {"error": f"failed to read request body: {e}"})
            self._record(request)
            return

        with self._lock:
            func = self._handlers.get(path)
            match = None if func is not None else self._responses.lookup(path, method)

        if func is not None:
            try:
                func(request)
            except Exception as e:
                logger.exception(f"{self.name}: handler for {method} {path} failed")
                if request.status_code is None:
                    request.send_json(500, {"error": str(e)})
            if request.status_code is None:
                logger.error(f"{self.name}: handler for {method} {path} sent no response")
                request.send_json(500, {"error": "handler sent no response"})
            self._record(request)
            return

        if match is not None:
            code, body = match
            request.send_body(code, body)
            self._record(request)
            return

        logger.warning(f"{self.name}: no response configured for {join_pattern(path, method)}")
        request.send_json(404, {"error": f"no response configured for {method} {path}"})
        self._record(request, unexpected=True)
