"""Conduit CLI — serve an app from an import string.

Entry point registered as ``conduit`` in ``pyproject.toml``::

    [project.scripts]
    conduit = "conduit.cli:main"
"""

import argparse
import sys


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``conduit`` command."""
    parser = argparse.ArgumentParser(
        prog="conduit",
        description="Conduit — ordered, path-scoped HTTP middleware.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- conduit run -------------------------------------------------------
    run_parser = subparsers.add_parser("run", help="Serve an app with uvicorn")
    run_parser.add_argument(
        "app",
        help="Import string (e.g. myapp:app)",
    )
    run_parser.add_argument("--host", default=None, help="Bind host address")
    run_parser.add_argument("--port", type=int, default=None, help="Bind port number")
    run_parser.add_argument("--uds", default=None, help="Bind to a Unix domain socket")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "run":
        from conduit.cli._run import run

        run(args)
