"""Per-request dispatch — one ordered scan of the middleware stack.

The scan threads a single value, the pending error, through the entries:

=================  ===============  ==========================================
pending error      entry kind       action
=================  ===============  ==========================================
None               NORMAL           run ``handler(req, res, next)``
None               ERROR            run ``handler(None, req, res, next)``
set                NORMAL           skip
set                ERROR            run ``handler(err, req, res, next)``
=================  ===============  ==========================================

Entries whose path does not match ``request.pathname`` are skipped
regardless. Each run's outcome replaces the pending error. A fault never
stops the scan; it only changes which later entries are eligible.
"""

import logging
from collections.abc import Iterable
from typing import Any

from conduit.dispatch.invoker import HandlerInvoker
from conduit.dispatch.matcher import path_matches
from conduit.dispatch.stack import MiddlewareEntry, MiddlewareKind
from conduit.http.request import Request
from conduit.http.response import Response

logger = logging.getLogger("conduit.dispatch")


class Dispatcher:
    """Runs the middleware state machine for one request at a time."""

    __slots__ = ("_invoker",)

    def __init__(self, invoker: HandlerInvoker) -> None:
        self._invoker = invoker

    async def run(
        self,
        entries: Iterable[MiddlewareEntry],
        request: Request,
        response: Response,
    ) -> Any:
        """Scan *entries* in order and return the error left at the end.

        Returns ``None`` when the last matching entry finished cleanly
        (or nothing matched).
        """
        error: Any = None
        for entry in entries:
            if not path_matches(entry.path, request.pathname):
                continue
            if error is not None and entry.kind is MiddlewareKind.NORMAL:
                continue

            logger.debug(
                "dispatch %s %s -> %s %s (pending error: %r)",
                request.method,
                request.pathname,
                entry.kind.name,
                entry.path,
                error,
            )
            try:
                if entry.kind is MiddlewareKind.ERROR:
                    error = await self._invoker.call_error(entry, error, request, response)
                else:
                    error = await self._invoker.call_normal(entry, request, response)
            except Exception as exc:
                logger.debug("dispatch: invocation failed: %r", exc)
                error = exc

            await response.flush()

        logger.debug("dispatch %s %s done (error: %r)", request.method, request.pathname, error)
        return error
