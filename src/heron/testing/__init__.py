"""Test utilities for heron gateways.

    from heron.testing import TestClient
"""

from heron.testing.client import TestClient, TestResponse

__all__ = ["TestClient", "TestResponse"]
