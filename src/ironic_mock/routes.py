"""Static response table for the mock server.

Patterns are plain URL paths, optionally suffixed with ``:<METHOD>`` to bind a
response to a single HTTP method (``/v1/nodes/abc:PATCH``). Default responses
may contain the ``{id}`` placeholder, which matches exactly one path segment.
"""

from __future__ import annotations

import re
from typing import Optional

from .models import RegisteredResponse

__all__ = [
    "ID_PLACEHOLDER",
    "HTTP_METHODS",
    "Match",
    "ResponseTable",
    "split_pattern",
    "join_pattern",
    "compile_placeholder",
]

ID_PLACEHOLDER = "{id}"

HTTP_METHODS = frozenset({"GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"})

Match = tuple[int, str]


def split_pattern(pattern: str) -> tuple[str, Optional[str]]:
    """Split ``/path:METHOD`` into ``("/path", "METHOD")``.

    A pattern without a recognised method suffix applies to every method.
    """
    path, sep, method = pattern.rpartition(":")
    if sep and method.upper() in HTTP_METHODS:
        return path, method.upper()
    return pattern, None


def join_pattern(path: str, method: Optional[str]) -> str:
    return f"{path}:{method.upper()}" if method else path


def compile_placeholder(pattern: str) -> re.Pattern[str]:
    parts = [re.escape(p) for p in pattern.split(ID_PLACEHOLDER)]
    return re.compile("([^/]+)".join(parts))


class _DefaultRoute:
    def __init__(self, response: RegisteredResponse):
        self.response = response
        self.regex = compile_placeholder(response.pattern)

    def match(self, path: str) -> Optional[Match]:
        m = self.regex.fullmatch(path)
        if m is None:
            return None
        body = self.response.body
        if m.groups():
            body = body.replace(ID_PLACEHOLDER, m.group(1))
        return self.response.status_code, body


class ResponseTable:
    """Exact-path responses plus placeholder-based defaults.

    Not thread-safe on its own; the owning server serialises access.
    """

    def __init__(self) -> None:
        self._responses: dict[tuple[str, Optional[str]], RegisteredResponse] = {}
        self._defaults: dict[str, _DefaultRoute] = {}

    def __len__(self) -> int:
        return len(self._responses) + len(self._defaults)

    def add(self, pattern: str, status_code: int, body: str) -> RegisteredResponse:
        path, method = split_pattern(pattern)
        return self.add_exact(path, method, status_code, body)

    def add_exact(self, path: str, method: Optional[str], status_code: int, body: str) -> RegisteredResponse:
        """Register ``path`` as-is; a ``:suffix`` in it is never read as a method."""
        resp = RegisteredResponse(pattern=path, method=method, status_code=status_code, body=body)
        self._responses[(resp.pattern, resp.method)] = resp
        return resp

    def add_default(self, pattern: str, status_code: int, body: str) -> RegisteredResponse:
        resp = RegisteredResponse(pattern=pattern, status_code=status_code, body=body)
        self._defaults[pattern] = _DefaultRoute(resp)
        return resp

    def get(self, pattern: str) -> Optional[RegisteredResponse]:
        path, method = split_pattern(pattern)
        return self._responses.get((path, method))

    def lookup(self, path: str, method: str) -> Optional[Match]:
        """Resolve a request to ``(status_code, body)`` or ``None``.

        Method-specific entries win over method-agnostic ones, which win over
        defaults.
        """
        for key in ((path, method.upper()), (path, None)):
            resp = self._responses.get(key)
            if resp is not None:
                return resp.status_code, resp.body
        for route in self._defaults.values():
            found = route.match(path)
            if found is not None:
                return found
        return None
