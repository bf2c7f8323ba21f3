"""
Pytest fixtures for the condition agent. Keeps PROMETHEUS_HEADER_* vars from
the host environment out of the tests and resets the in-memory event feed.
"""

from __future__ import annotations

import os

import pytest


@pytest.fixture(autouse=True)
def clean_header_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("PROMETHEUS_HEADER_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def client():
    """FastAPI TestClient with an empty event feed."""
    from fastapi.testclient import TestClient

    from condition_agent import main

    main.EVENT_LOG.clear()
    return TestClient(main.app)
