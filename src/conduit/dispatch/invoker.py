"""Handler invocation — one uniform outcome per middleware call.

A middleware can report completion three ways:

- call ``next()`` (success) or ``next(err)`` (fault),
- return an awaitable that finishes (success) or raises (fault),
- raise synchronously (fault).

Whichever signal arrives first settles the call; later signals from the
same invocation are dropped. The outcome is ``None`` for success or the
fault object itself, never wrapped.

Awaitables are driven in the request's task group rather than awaited
inline, so a middleware that calls ``next()`` and keeps working lets the
pipeline move on, exactly like one that calls ``next()`` from a callback.
"""

import asyncio
import inspect
import logging
import threading
from collections.abc import Awaitable
from typing import Any

import anyio
from anyio.abc import TaskGroup

from conduit.dispatch.stack import MiddlewareEntry
from conduit.http.request import Request
from conduit.http.response import Response

logger = logging.getLogger("conduit.dispatch")


class Settlement:
    """One-shot completion slot. The first ``settle()`` wins.

    Instances are handed to middleware as their ``next`` continuation,
    so ``next()`` and ``next(err)`` both land in ``settle()``.

    Thread safety:
        Must be created inside the request's event loop. ``settle()`` may
        then be called from any thread; a call from outside the loop
        thread wakes the waiter through ``call_soon_threadsafe``.
    """

    __slots__ = ("_error", "_event", "_lock", "_loop", "_loop_thread", "_settled")

    def __init__(self) -> None:
        self._settled = False
        self._error: Any = None
        self._event = anyio.Event()
        self._lock = threading.Lock()
        self._loop = asyncio.get_running_loop()
        self._loop_thread = threading.get_ident()

    def __call__(self, error: Any = None) -> None:
        self.settle(error)

    @property
    def settled(self) -> bool:
        return self._settled

    def settle(self, error: Any = None) -> bool:
        """Record the outcome. Returns False if one was already recorded."""
        with self._lock:
            if self._settled:
                logger.debug("ignoring extra completion signal: error=%r", error)
                return False
            self._settled = True
            self._error = error
        if threading.get_ident() == self._loop_thread:
            self._event.set()
        else:
            self._loop.call_soon_threadsafe(self._event.set)
        return True

    async def wait(self) -> Any:
        """Block until settled, then return the recorded error (or None)."""
        await self._event.wait()
        return self._error


class HandlerInvoker:
    """Calls middleware and turns every completion style into one outcome.

    Bound to the task group of a single request; awaitables returned by
    middleware run there and may outlive their own settlement.
    """

    __slots__ = ("_task_group",)

    def __init__(self, task_group: TaskGroup) -> None:
        self._task_group = task_group

    async def call_normal(
        self,
        entry: MiddlewareEntry,
        request: Request,
        response: Response,
    ) -> Any:
        """Invoke ``handler(req, res, next)``. Returns the fault or None."""
        return await self._call(entry, response, request, response)

    async def call_error(
        self,
        entry: MiddlewareEntry,
        error: Any,
        request: Request,
        response: Response,
    ) -> Any:
        """Invoke ``handler(err, req, res, next)``. Returns the fault or None."""
        return await self._call(entry, response, error, request, response)

    async def _call(self, entry: MiddlewareEntry, response: Response, *args: Any) -> Any:
        settlement = Settlement()
        call_args = (*args, settlement)
        if entry.max_args is not None:
            call_args = call_args[: entry.max_args]

        try:
            result = entry.handler(*call_args)
        except Exception as exc:
            settlement.settle(exc)
        else:
            if inspect.isawaitable(result):
                self._task_group.start_soon(_drive, result, settlement, response)
            else:
                # Sync middleware may have ended the response without
                # calling next(); deliver what it wrote right away.
                await response.flush()

        return await settlement.wait()


async def _drive(awaitable: Awaitable[Any], settlement: Settlement, response: Response) -> None:
    """Await a middleware's return value and settle with its outcome."""
    try:
        await awaitable
    except Exception as exc:
        settlement.settle(exc)
    else:
        settlement.settle()
    await response.flush()
