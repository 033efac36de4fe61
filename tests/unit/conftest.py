"""
Unit test conftest.py - Component-specific fixtures.

Outbound HTTP is never performed in unit tests; channels and the credit
tracker receive a mocked requests session instead.
"""

from unittest.mock import Mock

import pytest
import requests


@pytest.fixture
def http():
    """Mocked requests session; configure ``get``/``post`` per test."""
    return Mock(spec=requests.Session)
