"""HTTP response sink over ASGI ``send``.

Middleware writes to the response imperatively — set the status and
headers, ``write()`` chunks, ``end()`` it. Writes are queued as ASGI
messages and delivered by ``flush()``, which the dispatcher calls each
time a middleware settles. Async middleware can ``await res.flush()``
to push bytes out early (long-polling, progressive output).
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, TypeAlias

import anyio

from conduit._internal.asgi import Message, Send
from conduit.errors import ResponseStateError

HeaderValue: TypeAlias = str | int | Iterable[str]


def _body_allowed(status: int) -> bool:
    """Whether an HTTP status code permits a response body."""
    # RFC: 1xx, 204, and 304 responses do not include a message body.
    return not (100 <= status < 200 or status in {204, 304})


def _encode(chunk: str | bytes) -> bytes:
    return chunk.encode("utf-8") if isinstance(chunk, str) else chunk


async def _discard(message: Message) -> None:
    return None


class Response:
    """A mutable response bound to one request.

    States, in order: open (headers may change) → headers sent
    (``write()`` or ``end()`` was called) → finished (``end()`` was
    called) → closed (the final ASGI message was delivered).

    Usage in middleware::

        def hello(req, res, next):
            res.set_header("Content-Type", "text/plain")
            res.end("hello, world!")
    """

    __slots__ = (
        "_closed",
        "_closed_event",
        "_finished",
        "_flush_lock",
        "_head",
        "_headers",
        "_headers_sent",
        "_pending",
        "_send",
        "_status",
    )

    def __init__(self, send: Send = _discard, *, head: bool = False) -> None:
        self._send = send
        self._head = head
        self._status = 200
        self._headers: list[tuple[str, str]] = []
        self._pending: list[Message] = []
        self._headers_sent = False
        self._finished = False
        self._closed = False
        self._closed_event: anyio.Event | None = None
        self._flush_lock: anyio.Lock | None = None

    @classmethod
    def from_asgi(cls, scope: dict[str, Any], send: Send) -> Response:
        """Create a Response for an ASGI HTTP scope."""
        return cls(send, head=scope.get("method") == "HEAD")

    # -- State --

    @property
    def status(self) -> int:
        """The status code that is (or will be) sent. Defaults to 200."""
        return self._status

    @status.setter
    def status(self, value: int) -> None:
        self._check_headers_open("status")
        self._status = int(value)

    @property
    def headers_sent(self) -> bool:
        """True once the status line and headers have been committed."""
        return self._headers_sent

    @property
    def finished(self) -> bool:
        """True once ``end()`` has been called."""
        return self._finished

    @property
    def closed(self) -> bool:
        """True once the final ASGI body message has been delivered."""
        return self._closed

    @property
    def headers(self) -> tuple[tuple[str, str], ...]:
        """Snapshot of the headers set so far, in order."""
        return tuple(self._headers)

    # -- Headers --

    def get_header(self, name: str) -> str | None:
        """Return the first value set for *name* (case-insensitive)."""
        lower = name.lower()
        for key, value in self._headers:
            if key.lower() == lower:
                return value
        return None

    def has_header(self, name: str) -> bool:
        return self.get_header(name) is not None

    def set_header(self, name: str, value: HeaderValue) -> None:
        """Set *name*, replacing any previous value.

        An iterable of strings sets one header line per item
        (e.g. several ``Set-Cookie`` values).
        """
        self._check_headers_open("headers")
        self._remove(name)
        if isinstance(value, str | int):
            self._headers.append((name, str(value)))
        else:
            self._headers.extend((name, str(item)) for item in value)

    def remove_header(self, name: str) -> None:
        self._check_headers_open("headers")
        self._remove(name)

    def write_head(
        self,
        status: int,
        headers: dict[str, HeaderValue] | None = None,
    ) -> None:
        """Set the status and headers in one call and commit them."""
        self.status = status
        for name, value in (headers or {}).items():
            self.set_header(name, value)
        self._start()

    # -- Body --

    def write(self, chunk: str | bytes) -> None:
        """Queue a body chunk. Commits the headers on first call."""
        if self._finished:
            msg = "Cannot write to a response after end() was called."
            raise ResponseStateError(msg)
        self._start()
        data = _encode(chunk)
        if data and self._may_send_body():
            self._pending.append({"type": "http.response.body", "body": data, "more_body": True})

    def end(self, chunk: str | bytes | None = None) -> None:
        """Queue the last body chunk (if any) and finish the response.

        When nothing was written before, ``Content-Length`` is set from
        *chunk*. Calling ``end()`` again without a chunk is a no-op.
        """
        if self._finished:
            if chunk:
                msg = "Cannot write to a response after end() was called."
                raise ResponseStateError(msg)
            return
        data = _encode(chunk) if chunk is not None else b""
        if not self._headers_sent and not self.has_header("content-length"):
            length = len(data) if _body_allowed(self._status) else 0
            self._headers.append(("Content-Length", str(length)))
        self._start()
        self._finished = True
        body = data if self._may_send_body() else b""
        self._pending.append({"type": "http.response.body", "body": body, "more_body": False})

    # -- Delivery --

    async def flush(self) -> None:
        """Deliver queued ASGI messages, in order."""
        if not self._pending:
            return
        if self._flush_lock is None:
            self._flush_lock = anyio.Lock()
        async with self._flush_lock:
            while self._pending:
                message = self._pending.pop(0)
                await self._send(message)
                if message["type"] == "http.response.body" and not message["more_body"]:
                    self._closed = True
                    if self._closed_event is not None:
                        self._closed_event.set()

    async def wait_closed(self) -> None:
        """Block until the final body message has been delivered."""
        if self._closed:
            return
        if self._closed_event is None:
            self._closed_event = anyio.Event()
        await self._closed_event.wait()

    # -- Internal --

    def _check_headers_open(self, what: str) -> None:
        if self._headers_sent:
            msg = f"Cannot change response {what} after the headers were sent."
            raise ResponseStateError(msg)

    def _remove(self, name: str) -> None:
        lower = name.lower()
        self._headers = [(k, v) for k, v in self._headers if k.lower() != lower]

    def _may_send_body(self) -> bool:
        return not self._head and _body_allowed(self._status)

    def _start(self) -> None:
        if self._headers_sent:
            return
        self._headers_sent = True
        raw_headers = [
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, value in self._headers
        ]
        self._pending.append(
            {"type": "http.response.start", "status": self._status, "headers": raw_headers}
        )
