"""Conduit application class.

Mutable during setup (middleware registration).
Frozen at runtime when the first request is dispatched.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeAlias, overload

import anyio

from conduit._internal.asgi import Receive, Scope, Send
from conduit._internal.invoke import invoke
from conduit.config import AppConfig
from conduit.dispatch.dispatcher import Dispatcher
from conduit.dispatch.invoker import HandlerInvoker
from conduit.dispatch.stack import Handler, MiddlewareEntry, MiddlewareStack, max_positional_args
from conduit.errors import ConfigurationError
from conduit.events import Callback, EventChannel
from conduit.http.request import Request
from conduit.http.response import Response
from conduit.http.url import parse_target
from conduit.server.terminal import finalize

if TYPE_CHECKING:
    from conduit.server.listener import Address, Listener

logger = logging.getLogger("conduit.app")

# Called with the final error (or None) once the stack has been scanned
Terminal: TypeAlias = Callable[..., Any]


class App:
    """The conduit application: an ordered, path-scoped middleware pipeline.

    Mutable during setup (``use()``). Frozen when the first request is
    dispatched; registering middleware after that raises ``RuntimeError``.

    The app is an ASGI 3.0 callable, so any ASGI server can host it, and
    ``handle_request()`` is itself a middleware, so apps nest::

        api = App()
        api.use(authenticate)

        app = App()
        app.use("/api", api.handle_request)

    Thread safety:
        The setup phase is single-threaded. The freeze transition uses a
        Lock + double-check so exactly one thread freezes the stack.
        After freezing, the stack is an immutable tuple shared by all
        requests; each request owns its pending-error value.
    """

    __slots__ = (
        "_events",
        "_freeze_lock",
        "_frozen",
        "_listener",
        "_stack",
        "config",
    )

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config: AppConfig = config or AppConfig()
        self._stack = MiddlewareStack()
        self._events = EventChannel()
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()
        self._listener: Listener | None = None

    # -- Middleware registration --

    @overload
    def use(self, handler: Handler, /) -> Handler: ...

    @overload
    def use(self, path: str, handler: Handler, /) -> Handler: ...

    @overload
    def use(self, path: str, /) -> Callable[[Handler], Handler]: ...

    def use(self, *args: Any) -> Any:
        """Append a middleware to the pipeline.

        Forms::

            app.use(handler)            # applies to every path
            app.use("/admin", handler)  # /admin and everything below it

            @app.use                    # decorator, every path
            def log(req, res, next): ...

            @app.use("/admin")          # decorator, scoped
            def guard(req, res, next): ...

        Handlers declaring four positional parameters
        ``(err, req, res, next)`` are error middleware; anything else is
        normal middleware ``(req, res, next)``.

        Raises:
            ConfigurationError: If the path is not a string, the handler
                is not callable, or the arguments are wrong.
        """
        if len(args) == 1 and isinstance(args[0], str):
            path = args[0]

            def decorator(func: Handler) -> Handler:
                self._register(path, func)
                return func

            return decorator
        if len(args) == 1:
            self._register("/", args[0])
            return args[0]
        if len(args) == 2:
            self._register(args[0], args[1])
            return args[1]
        msg = f"use() takes a handler and an optional path, got {len(args)} arguments"
        raise ConfigurationError(msg)

    def _register(self, path: Any, handler: Any) -> None:
        self._check_not_frozen()
        if not isinstance(path, str):
            msg = f"Middleware path must be a string, got {type(path).__name__}"
            raise ConfigurationError(msg)
        if not callable(handler):
            msg = f"Middleware must be callable, got {type(handler).__name__}"
            raise ConfigurationError(msg)
        # Kept as registered: "/foo/" only matches "/foo/" and below.
        self._stack.register(MiddlewareEntry.create(path, handler))

    @property
    def stack(self) -> MiddlewareStack:
        """The registered middleware, in order."""
        return self._stack

    # -- Observer channel --

    def on(self, topic: str, callback: Callback) -> Callback:
        """Subscribe to an app event. Listener faults arrive as ``"error"``."""
        return self._events.on(topic, callback)

    def off(self, topic: str, callback: Callback) -> None:
        self._events.off(topic, callback)

    def emit(self, topic: str, *args: Any) -> bool:
        """Publish an event to the app's subscribers."""
        return self._events.emit(topic, *args)

    def _forward_listener_error(self, exc: BaseException) -> None:
        logger.debug("listener error: %r", exc)
        self.emit("error", exc)

    # -- Request handling --

    async def handle_request(
        self,
        request: Request,
        response: Response,
        terminal: Terminal | None = None,
    ) -> None:
        """Run *request* through the middleware pipeline.

        Derives ``request.pathname`` and ``request.query`` from
        ``request.url``, scans the stack, then calls ``terminal(error)``
        with whatever error is left (``None`` if none). Without a
        *terminal*, the default 404/500 responder answers instead.

        A middleware that never calls ``next()`` and never returns an
        awaitable stalls this call indefinitely; nothing times it out.
        """
        self._ensure_frozen()

        target = parse_target(request.url)
        request.pathname = target.pathname
        request.query = target.query

        failure: Exception | None = None
        async with anyio.create_task_group() as tg:
            try:
                dispatcher = Dispatcher(HandlerInvoker(tg))
                error = await dispatcher.run(self._stack.entries(), request, response)
                if terminal is None:
                    await finalize(
                        request, response, error, production=self.config.production
                    )
                elif max_positional_args(terminal) == 0:
                    await invoke(terminal)
                else:
                    await invoke(terminal, error)
                await response.flush()
            except Exception as exc:
                failure = exc
        if failure is not None:
            raise failure

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point.

        Returns when the pipeline is done, or as soon as the response has
        been completely sent, whichever comes first. In the second case a
        pipeline still waiting on a middleware that never settled is
        cancelled, since it can no longer affect the response.
        """
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return
        if scope["type"] != "http":
            return

        request = Request.from_asgi(scope, receive)
        response = Response.from_asgi(scope, send)
        done = False

        async with anyio.create_task_group() as tg:

            async def dispatch() -> None:
                nonlocal done
                await self.handle_request(request, response)
                done = True
                tg.cancel_scope.cancel()

            tg.start_soon(dispatch)
            await response.wait_closed()
            if not done:
                logger.debug(
                    "response to %s %s sent before the pipeline settled; abandoning it",
                    request.method,
                    request.url,
                )
            tg.cancel_scope.cancel()

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Acknowledge the ASGI lifespan protocol; freeze at startup."""
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                self._ensure_frozen()
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return

    # -- Server --

    async def listen(
        self,
        port: int | None = None,
        host: str | None = None,
        *,
        path: str | None = None,
        on_ready: Callable[[], Any] | None = None,
    ) -> bool:
        """Serve the app on a TCP port or Unix socket in the running loop.

        Defaults come from ``config.host`` / ``config.port``; pass
        ``port=0`` for an ephemeral port and read it back with
        ``address()``. Bind failures are emitted as ``"error"`` (and
        raised if nobody subscribed). Returns True once serving.
        """
        if path is None:
            port = self.config.port if port is None else port
            host = host or self.config.host
        if self._listener is None:
            from conduit.server.listener import Listener

            self._listener = Listener(self, self.config, on_error=self._forward_listener_error)
        return await self._listener.start(port, host, path=path, on_ready=on_ready)

    def address(self) -> Address | None:
        """Where ``listen()`` bound: ``(host, port)``, a socket path, or None."""
        if self._listener is None:
            return None
        return self._listener.address()

    async def close(self) -> None:
        """Stop the server started by ``listen()``."""
        if self._listener is not None:
            await self._listener.stop()

    def run(self, host: str | None = None, port: int | None = None, *, uds: str | None = None) -> None:
        """Serve the app with uvicorn until interrupted (blocking)."""
        from conduit.server.runner import run_server

        self._ensure_frozen()
        run_server(
            self,
            host or self.config.host,
            port or self.config.port,
            uds=uds,
            log_level=self.config.log_level,
            access_log=self.config.access_log,
        )

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._stack.freeze()
            self._frozen = True

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register middleware before the first request."
            )
            raise RuntimeError(msg)


def create_app(config: AppConfig | None = None) -> App:
    """Create an :class:`App`."""
    return App(config)
