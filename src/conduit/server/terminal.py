"""Default terminal — answers requests the middleware stack left open.

Used when ``App.handle_request()`` is called without a terminal
continuation (which is always the case for the ASGI entry point):

- no error left: ``404 Cannot GET /path``
- error left: the error's status (or the response's, or 500) with an
  escaped description of the error

Nothing is emitted once the headers have gone out.
"""

import html
import logging
import traceback
from http import HTTPStatus
from typing import Any
from urllib.parse import quote

from conduit.http.request import Request
from conduit.http.response import Response

logger = logging.getLogger("conduit.server")

# Characters a request path may keep unescaped when echoed back
_URL_SAFE = "!#$&'()*+,/:;=?@[]~%"


def escape_html(text: str) -> str:
    """Escape ``& < > " '`` for HTML text and attribute content."""
    return html.escape(text, quote=True).replace("&#x27;", "&#39;")


def encode_url(path: str) -> str:
    """Percent-encode characters that are not valid in a URL.

    Existing ``%XX`` escapes and reserved characters are left alone.
    """
    return quote(path, safe=_URL_SAFE)


def html_document(message: str) -> str:
    """Wrap already-escaped *message* in a minimal HTML page."""
    return (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n'
        "<head>\n"
        '<meta charset="utf-8">\n'
        "<title>Error</title>\n"
        "</head>\n"
        "<body>\n"
        f"<pre>{message}</pre>\n"
        "</body>\n"
        "</html>\n"
    )


def error_status(error: Any) -> int | None:
    """The HTTP status carried by *error* (``status`` or ``status_code``).

    Only client and server error codes (400-599) count.
    """
    for attr in ("status", "status_code"):
        status = getattr(error, attr, None)
        if isinstance(status, int) and 400 <= status < 600:
            return status
    return None


def response_status(error: Any, response: Response) -> int:
    """Pick the status for an error response.

    The error's own status wins; then a status a middleware already set
    on the response, unless it is still a success code; then 500.
    """
    status = error_status(error)
    if status is not None:
        return status
    if 400 <= response.status < 600:
        return response.status
    return 500


def reason_phrase(status: int) -> str:
    """Standard reason phrase for *status*, or the bare number."""
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return str(status)


def describe_error(error: Any, status: int, *, production: bool) -> str:
    """Plain-text description of *error* for the response body.

    Exceptions are rendered as their traceback, other values passed to
    ``next`` with ``str()``. In production only the reason phrase for
    *status* is shown.
    """
    if production:
        return reason_phrase(status)
    if isinstance(error, BaseException):
        return "".join(traceback.format_exception(error)).rstrip("\n")
    return str(error)


def error_headers(error: Any) -> tuple[tuple[str, str], ...]:
    """Extra response headers carried by *error* (pairs or a mapping)."""
    headers = getattr(error, "headers", None) or ()
    if isinstance(headers, dict):
        return tuple(headers.items())
    return tuple(headers)


def render_message(text: str) -> str:
    """Escape *text* and keep its line breaks and indentation visible."""
    return escape_html(text).replace("\n", "<br>").replace("  ", " &nbsp;")


async def finalize(
    request: Request,
    response: Response,
    error: Any,
    *,
    production: bool = False,
) -> None:
    """Send the fallback response for *request* and flush it."""
    if error is not None:
        logger.error(
            "unhandled error for %s %s",
            request.method,
            request.pathname,
            exc_info=error if isinstance(error, BaseException) else None,
        )
        status = response_status(error, response)
        message = describe_error(error, status, production=production)
        headers = error_headers(error) if error_status(error) is not None else ()
    else:
        status = 404
        message = f"Cannot {request.method} {encode_url(request.pathname)}"
        headers = ()

    if response.headers_sent:
        logger.debug(
            "cannot %d after headers sent for %s %s",
            status,
            request.method,
            request.pathname,
        )
        return

    for name in [name for name, _ in response.headers]:
        response.remove_header(name)
    for name, value in headers:
        response.set_header(name, value)

    body = html_document(render_message(message))
    response.status = status
    response.set_header("Content-Security-Policy", "default-src 'none'")
    response.set_header("X-Content-Type-Options", "nosniff")
    response.set_header("Content-Type", "text/html; charset=utf-8")
    response.set_header("Content-Length", len(body.encode("utf-8")))
    response.end(body)
    await response.flush()
