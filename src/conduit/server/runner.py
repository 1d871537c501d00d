"""Blocking server entry point.

Starts uvicorn with the live conduit App object. Used by ``App.run()``
and ``conduit run``.
"""

from __future__ import annotations


def run_server(
    app: object,
    host: str,
    port: int,
    *,
    uds: str | None = None,
    log_level: str = "info",
    access_log: bool = False,
) -> None:
    """Serve *app* with uvicorn until the process is interrupted.

    Args:
        app: ASGI callable (conduit App instance).
        host: Bind host address.
        port: Bind port number.
        uds: Serve on this Unix domain socket instead of host/port.
        log_level: uvicorn log level.
        access_log: Emit one uvicorn access-log line per request.
    """
    import uvicorn

    uvicorn.run(
        app,
        host=host,
        port=port,
        uds=uds,
        log_level=log_level,
        access_log=access_log,
    )
