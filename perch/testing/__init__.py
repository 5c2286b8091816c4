"""
Perch Testing - in-process clients and ASGI helpers.
"""

from .client import TestClient, TestResponse
from .utils import make_test_receive, make_test_scope

__all__ = ["TestClient", "TestResponse", "make_test_receive", "make_test_scope"]
