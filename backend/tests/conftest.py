"""Pytest configuration and fixtures."""

import os

import pytest


@pytest.fixture(autouse=True)
def _clean_marketwatch_env(monkeypatch):
    """Keep MARKETWATCH_* variables from the host environment out of tests."""
    for key in list(os.environ):
        if key.startswith("MARKETWATCH_"):
            monkeypatch.delenv(key, raising=False)
