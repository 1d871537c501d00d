"""Request-target parsing.

Splits the raw request target into the pathname used for middleware
scoping and the decoded query mapping. Decoding is left to
``urllib.parse``.
"""

from dataclasses import dataclass
from urllib.parse import urlsplit

from conduit.http.query import QueryParams


@dataclass(frozen=True, slots=True)
class ParsedTarget:
    """Result of :func:`parse_target`."""

    pathname: str
    query: QueryParams


def parse_target(target: str) -> ParsedTarget:
    """Parse a raw request target (``/path?query``) into path and query.

    The pathname is kept percent-encoded, exactly as it arrived. An
    absolute-form target (``http://host/path``) yields its path part.
    An empty path becomes ``"/"``.
    """
    if target.startswith("/"):
        # Origin-form: urlsplit would read a leading "//" as a netloc.
        target = target.partition("#")[0]
        path, _, query = target.partition("?")
    else:
        parts = urlsplit(target)
        path, query = parts.path, parts.query
    return ParsedTarget(pathname=path or "/", query=QueryParams(query))
