"""Path scoping for middleware entries.

A middleware registered under a path applies to that exact path and to
everything below it, splitting only at segment boundaries::

    path_matches("/foo", "/foo")      # True
    path_matches("/foo", "/foo/bar")  # True
    path_matches("/foo", "/foobar")   # False
    path_matches("/", "/anything")    # True
"""


def path_matches(scope_path: str, request_path: str) -> bool:
    """Whether a middleware scoped to *scope_path* applies to *request_path*."""
    if scope_path == "/":
        return True
    if scope_path == request_path:
        return True
    return request_path.startswith(scope_path + "/")
