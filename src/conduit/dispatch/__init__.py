"""Dispatch engine — path scoping, the middleware stack, and the per-request scan.

A middleware is any callable matching one of::

    def mw(req, res, next): ...          # normal middleware
    def mw(err, req, res, next): ...     # error middleware

Either form may be ``async def``. No base class required; the stack
classifies each handler by how many positional parameters it declares.
"""

from conduit.dispatch.dispatcher import Dispatcher
from conduit.dispatch.invoker import HandlerInvoker, Settlement
from conduit.dispatch.matcher import path_matches
from conduit.dispatch.stack import (
    Handler,
    MiddlewareEntry,
    MiddlewareKind,
    MiddlewareStack,
    classify_handler,
)

__all__ = [
    "Dispatcher",
    "Handler",
    "HandlerInvoker",
    "MiddlewareEntry",
    "MiddlewareKind",
    "MiddlewareStack",
    "Settlement",
    "classify_handler",
    "path_matches",
]
