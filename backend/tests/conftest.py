"""
Pytest configuration for the CryptoPulse test suite.
"""

import logging

import pytest


@pytest.fixture(autouse=True)
def setup_logging(caplog):
    """Capture service logs at INFO for every test."""
    caplog.set_level(logging.INFO)
