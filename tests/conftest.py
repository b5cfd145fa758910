"""Pytest configuration and fixtures for all tests.

This module ensures tests run in isolation from deployment environment variables.
"""

import os

import pytest

from allocator_api.core.config import ALL_ENV_VARS


@pytest.fixture(autouse=True)
def isolate_from_env():
    """Clear ALLOCATOR_* env vars before each test so defaults are predictable.

    This fixture runs automatically for every test (autouse=True).
    It saves original values, clears them for the test, then restores after.
    """
    original_values = {}
    for var in ALL_ENV_VARS:
        if var in os.environ:
            original_values[var] = os.environ.pop(var)

    yield

    for var, value in original_values.items():
        os.environ[var] = value
