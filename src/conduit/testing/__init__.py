"""Test utilities for conduit applications.

Provides an in-process test client that drives the ASGI interface::

    from conduit.testing import TestClient
"""

from conduit.testing.client import TestClient, TestResponse

__all__ = [
    "TestClient",
    "TestResponse",
]
