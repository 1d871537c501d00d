"""HTTP request.

Raw metadata is fixed at creation. The derived ``pathname`` and ``query``
are filled in by ``App.handle_request()`` before the middleware stack
runs, and ``state`` carries values from one middleware to the next.
"""

from __future__ import annotations

import json
from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from typing import Any

from conduit._internal.asgi import Receive
from conduit.http.headers import Headers
from conduit.http.query import QueryParams


async def _empty_receive() -> dict[str, Any]:
    return {"type": "http.request", "body": b"", "more_body": False}


@dataclass(slots=True)
class Request:
    """An HTTP request as seen by middleware.

    ``url`` is the raw request target (path plus query string) and is
    never percent-decoded. ``pathname`` and ``query`` are derived from
    it; middleware scoping matches against ``pathname``.

    The body is read on demand: ``await req.body()``, ``text()`` or ``json()``.
    """

    method: str
    url: str
    headers: Headers = field(default_factory=Headers)
    http_version: str = "1.1"
    server: tuple[str, int] | None = None
    client: tuple[str, int] | None = None

    # Derived from ``url`` by App.handle_request()
    pathname: str = ""
    query: QueryParams = field(default_factory=QueryParams)

    # Free-form per-request values shared between middleware
    state: dict[str, Any] = field(default_factory=dict)

    # Private: ASGI receive callable, consumed by stream()/body()
    _receive: Receive = field(default=_empty_receive, repr=False, compare=False)

    # Private: the full body once body() has read it
    _body: bytes | None = field(default=None, repr=False, compare=False)

    # -- Header shortcuts --

    @property
    def content_type(self) -> str | None:
        return self.headers.get("content-type")

    @property
    def content_length(self) -> int | None:
        """Declared body size, or None when absent or malformed."""
        declared = self.headers.get("content-length", "")
        return int(declared) if declared.isdigit() else None

    # -- Body --

    async def stream(self) -> AsyncGenerator[bytes]:
        """Yield body chunks as the server delivers them.

        Stops at the last chunk or when the client disconnects. The
        receive channel can only be drained once; use ``body()`` when
        several middleware need the payload.
        """
        more = True
        while more:
            message = await self._receive()
            if message["type"] != "http.request":
                return
            more = message.get("more_body", False)
            if chunk := message.get("body", b""):
                yield chunk

    async def body(self) -> bytes:
        """The whole body, read on first call and kept for later ones."""
        if self._body is None:
            self._body = b"".join([chunk async for chunk in self.stream()])
        return self._body

    async def text(self, encoding: str = "utf-8") -> str:
        return (await self.body()).decode(encoding)

    async def json(self) -> Any:
        """Decode the body as JSON. Raises ``ValueError`` on bad input."""
        return json.loads(await self.body())

    # -- Factory --

    @classmethod
    def from_asgi(cls, scope: dict[str, Any], receive: Receive) -> Request:
        """Build the request for an ASGI HTTP *scope*.

        ``url`` is rebuilt from ``raw_path`` when the server provides it,
        so percent-escapes survive; ``path`` is the fallback.
        """
        raw_path: bytes | None = scope.get("raw_path")
        target = raw_path.decode("latin-1") if raw_path else scope["path"]
        if query_string := scope.get("query_string", b""):
            target = f"{target}?{query_string.decode('latin-1')}"
        server, client = scope.get("server"), scope.get("client")
        return cls(
            method=scope["method"],
            url=target,
            headers=Headers(scope.get("headers", ())),
            http_version=scope.get("http_version", "1.1"),
            server=(server[0], server[1]) if server else None,
            client=(client[0], client[1]) if client else None,
            _receive=receive,
        )
