"""Socket listener — serves an ASGI app with uvicorn in the running loop.

The listener binds the socket itself so bind failures surface as
``OSError`` (and reach the app's ``"error"`` observers) instead of
uvicorn's process exit, then hands the bound socket to
``uvicorn.Server.serve()`` running as a background task.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import socket
from collections.abc import Callable
from typing import Any, TypeAlias

import uvicorn

from conduit._internal.invoke import invoke
from conduit.config import AppConfig

logger = logging.getLogger("conduit.server")

Address: TypeAlias = tuple[str, int] | str


def bind_socket(
    host: str | None = None,
    port: int | None = None,
    *,
    path: str | None = None,
    backlog: int = 2048,
) -> socket.socket:
    """Bind a listening TCP socket, or a Unix socket when *path* is given.

    Port ``0`` picks a free ephemeral port. A host containing ``:`` is
    treated as IPv6.

    Raises:
        OSError: If the address is in use or cannot be bound.
    """
    if path is not None:
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.bind(path)
            sock.listen(backlog)
        except OSError:
            sock.close()
            raise
        return sock

    host = host or "127.0.0.1"
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    return socket.create_server((host, port or 0), family=family, backlog=backlog)


class Listener:
    """Binds a socket and serves *app* on it until ``stop()``.

    Usage::

        listener = Listener(app, AppConfig(), on_error=print)
        await listener.start(port=0)
        host, port = listener.address()
        ...
        await listener.stop()
    """

    __slots__ = ("_app", "_config", "_on_error", "_path", "_server", "_socket", "_task")

    def __init__(
        self,
        app: Callable[..., Any],
        config: AppConfig,
        *,
        on_error: Callable[[BaseException], Any],
    ) -> None:
        self._app = app
        self._config = config
        self._on_error = on_error
        self._server: uvicorn.Server | None = None
        self._socket: socket.socket | None = None
        self._task: asyncio.Task[None] | None = None
        self._path: str | None = None

    @property
    def listening(self) -> bool:
        return self._server is not None and self._server.started

    async def start(
        self,
        port: int | None = None,
        host: str | None = None,
        *,
        path: str | None = None,
        on_ready: Callable[[], Any] | None = None,
    ) -> bool:
        """Bind and start serving. Returns False if binding failed.

        Bind failures are passed to ``on_error`` rather than raised.
        *on_ready* (sync or async) runs once the server accepts
        connections.
        """
        if self._server is not None:
            msg = "Listener is already started."
            raise RuntimeError(msg)

        try:
            sock = bind_socket(host, port, path=path, backlog=self._config.backlog)
        except OSError as exc:
            logger.debug("listen failed: %s", exc)
            self._on_error(exc)
            return False

        config = uvicorn.Config(
            self._app,
            lifespan="off",
            log_config=None,
            log_level=self._config.log_level,
            access_log=self._config.access_log,
            backlog=self._config.backlog,
        )
        server = uvicorn.Server(config)
        self._server = server
        self._socket = sock
        self._path = path
        self._task = asyncio.create_task(server.serve(sockets=[sock]))

        while not server.started:
            if self._task.done():
                exc = self._task.exception()
                self._cleanup()
                if exc is not None:
                    self._on_error(exc)
                return False
            await asyncio.sleep(0.01)

        logger.debug("listening on %s", self.address())
        if on_ready is not None:
            await invoke(on_ready)
        return True

    def address(self) -> Address | None:
        """The bound ``(host, port)``, the Unix socket path, or None."""
        if self._socket is None:
            return None
        if self._path is not None:
            return self._path
        host, port = self._socket.getsockname()[:2]
        return (host, port)

    async def stop(self) -> None:
        """Stop serving and release the socket. Idempotent."""
        if self._server is None:
            return
        self._server.should_exit = True
        if self._task is not None:
            await self._task
        self._cleanup()

    def _cleanup(self) -> None:
        if self._socket is not None:
            self._socket.close()
        if self._path is not None:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(self._path)
        self._server = None
        self._socket = None
        self._task = None
        self._path = None
