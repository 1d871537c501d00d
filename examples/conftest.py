"""Shared pytest configuration for conduit examples.

``example_app`` executes the ``app.py`` beside the requesting test in a
fresh module namespace and returns its ``app``, so registrations never
leak from one test into the next.
"""

import importlib.util
from pathlib import Path

import pytest


@pytest.fixture
def example_app(request: pytest.FixtureRequest):
    """A freshly loaded App from the sibling ``app.py``."""
    app_path = Path(request.path).parent / "app.py"
    spec = importlib.util.spec_from_file_location(f"example_{app_path.parent.name}", app_path)
    assert spec is not None and spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module.app
