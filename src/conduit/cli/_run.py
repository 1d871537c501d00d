"""``conduit run`` — serve an app until interrupted."""

import argparse
import sys

from conduit.cli._resolve import resolve_app


def run(args: argparse.Namespace) -> None:
    """Resolve ``args.app`` to a conduit App and serve it.

    ``--host`` / ``--port`` override the app's config; ``--uds`` replaces
    both with a Unix domain socket.
    """
    try:
        app = resolve_app(args.app)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    app.run(args.host, args.port, uds=args.uds)
