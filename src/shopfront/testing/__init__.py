"""Test utilities for shopfront applications.

Provides an in-process ASGI test client with a cookie jar and response
assertions::

    from shopfront.testing import TestClient, assert_redirects_to
"""

from shopfront.testing.assertions import (
    assert_json,
    assert_page_contains,
    assert_redirects_to,
)
from shopfront.testing.client import TestClient

__all__ = [
    "TestClient",
    "assert_json",
    "assert_page_contains",
    "assert_redirects_to",
]
