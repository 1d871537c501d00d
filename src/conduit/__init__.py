"""Conduit — ordered, path-scoped HTTP middleware for ASGI.

Requests flow through a stack of middleware in registration order.
Each middleware is scoped to a path prefix and either handles the
request or hands it on with ``next()``; faults skip ahead to error
middleware.

Basic usage::

    from conduit import App

    app = App()

    def hello(req, res, next):
        res.end("hello, world!")

    app.use(hello)
    app.run()

Error middleware declares four parameters::

    def on_error(err, req, res, next):
        res.status = 500
        res.end("boom")

    app.use(on_error)
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "ConduitError",
    "ConfigurationError",
    "EventChannel",
    "HTTPError",
    "MiddlewareKind",
    "NotFound",
    "Request",
    "Response",
    "ResponseStateError",
    "create_app",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import conduit`` fast while providing a clean top-level API.
    """
    if name in ("App", "create_app"):
        from conduit import app as _app

        return getattr(_app, name)

    if name == "AppConfig":
        from conduit.config import AppConfig

        return AppConfig

    if name == "Request":
        from conduit.http.request import Request

        return Request

    if name == "Response":
        from conduit.http.response import Response

        return Response

    if name == "MiddlewareKind":
        from conduit.dispatch.stack import MiddlewareKind

        return MiddlewareKind

    if name == "EventChannel":
        from conduit.events import EventChannel

        return EventChannel

    if name in (
        "ConduitError",
        "ConfigurationError",
        "HTTPError",
        "NotFound",
        "ResponseStateError",
    ):
        from conduit import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
