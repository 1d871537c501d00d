"""Locate the App named by a ``module:attribute`` import string."""

import importlib

from conduit.app import App


def resolve_app(import_string: str) -> App:
    """Import *import_string* and return the conduit App it names.

    ``"pkg.module:name"`` looks up ``name``; a bare ``"pkg.module"``
    looks up ``app``. When the attribute is a factory (any callable that
    is not itself an App) it is called with no arguments.

    Raises:
        ModuleNotFoundError: The module does not exist.
        AttributeError: The module has no such attribute.
        TypeError: The factory failed, or the result is not an App.
    """
    module_name, _, attribute = import_string.partition(":")
    target = getattr(importlib.import_module(module_name), attribute or "app")

    if not isinstance(target, App) and callable(target):
        try:
            target = target()
        except Exception as exc:
            msg = f"App factory {import_string!r} raised an error: {exc}"
            raise TypeError(msg) from exc

    if isinstance(target, App):
        return target
    msg = f"{import_string!r} resolved to {type(target).__name__}, not a conduit.App instance"
    raise TypeError(msg)
