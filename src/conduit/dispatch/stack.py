"""Middleware stack — ordered, append-only registry of pipeline entries.

Mutable during setup, frozen into a tuple the first time a request is
dispatched. Entries are never removed or reordered.
"""

import inspect
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeAlias

logger = logging.getLogger("conduit.dispatch")

# Middleware: ``(req, res, next)`` or, for error middleware,
# ``(err, req, res, next)``. Sync or async.
Handler: TypeAlias = Callable[..., Any]

# Positional parameters that make a handler an error handler
ERROR_HANDLER_ARITY = 4

_POSITIONAL = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
)


class MiddlewareKind(Enum):
    """How the dispatcher treats an entry while an error is (not) pending."""

    NORMAL = "normal"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class MiddlewareEntry:
    """One registered pipeline step.

    ``max_args`` is how many positional arguments the handler accepts
    (``None`` when it takes ``*args``); the invoker never passes more.
    """

    kind: MiddlewareKind
    path: str
    handler: Handler
    max_args: int | None = None

    @classmethod
    def create(cls, path: str, handler: Handler) -> "MiddlewareEntry":
        """Build an entry, classifying *handler* by its arity."""
        return cls(
            kind=classify_handler(handler),
            path=path,
            handler=handler,
            max_args=max_positional_args(handler),
        )


def handler_arity(handler: Handler) -> int:
    """Count the declared positional parameters of *handler*.

    Counting stops at the first parameter that has a default value, and
    ``*args`` is not counted, so ``def mw(req, res, next=None)`` has an
    arity of 2. Bound methods and callable objects report the parameters
    their callers supply (``self`` excluded).
    """
    try:
        sig = inspect.signature(handler)
    except (TypeError, ValueError):
        return 0
    count = 0
    for param in sig.parameters.values():
        if param.kind not in _POSITIONAL or param.default is not inspect.Parameter.empty:
            break
        count += 1
    return count


def max_positional_args(func: Callable[..., Any]) -> int | None:
    """How many positional arguments *func* accepts, or ``None`` if unbounded."""
    try:
        sig = inspect.signature(func)
    except (TypeError, ValueError):
        return None
    count = 0
    for param in sig.parameters.values():
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            return None
        if param.kind in _POSITIONAL:
            count += 1
    return count


def classify_handler(handler: Handler) -> MiddlewareKind:
    """ERROR for handlers declaring four or more positional parameters."""
    if handler_arity(handler) >= ERROR_HANDLER_ARITY:
        return MiddlewareKind.ERROR
    return MiddlewareKind.NORMAL


class MiddlewareStack:
    """Ordered registry of middleware entries.

    Thread safety:
        Registration is a single-threaded setup phase. ``freeze()``
        swaps the list for a tuple, after which the stack is read-only
        and safe to share between concurrent requests.
    """

    __slots__ = ("_entries", "_frozen")

    def __init__(self) -> None:
        self._entries: list[MiddlewareEntry] | tuple[MiddlewareEntry, ...] = []
        self._frozen = False

    def register(self, entry: MiddlewareEntry) -> None:
        """Append *entry* to the end of the stack."""
        if self._frozen:
            msg = (
                "Cannot modify the middleware stack after it has started serving "
                "requests. Register middleware before the first request."
            )
            raise RuntimeError(msg)
        logger.debug("register middleware: %s %s", entry.kind.name, entry.path)
        self._entries.append(entry)  # type: ignore[union-attr]

    def freeze(self) -> None:
        """Make the stack immutable. Idempotent."""
        if not self._frozen:
            self._entries = tuple(self._entries)
            self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def entries(self) -> tuple[MiddlewareEntry, ...]:
        """The entries in registration order."""
        return tuple(self._entries)

    def __iter__(self) -> Iterator[MiddlewareEntry]:
        return iter(self.entries())

    def __len__(self) -> int:
        return len(self._entries)
