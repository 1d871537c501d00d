"""Conduit exception hierarchy.

Shared across the dispatcher, the app facade, and the default terminal
so every module raises and catches the same types.
"""

from dataclasses import dataclass


class ConduitError(Exception):
    """Base for all conduit-specific errors."""


class ConfigurationError(ConduitError):
    """Raised when a middleware registration is invalid.

    Typically raised from ``App.use()`` at setup time.
    """


class ResponseStateError(ConduitError):
    """Raised when a response is modified in a state that forbids it.

    Writing after ``end()``, or changing the status or headers once
    they have been sent.
    """


@dataclass(frozen=True, slots=True)
class HTTPError(ConduitError):
    """An error that maps directly to an HTTP status code.

    Raise it from a handler (or pass it to ``next``) and, if nothing
    downstream clears it, the default terminal answers with ``status``
    and adds ``headers`` to the response.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818 (conventional name in web frameworks)
    """404 — nothing in the stack could serve the request path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)
