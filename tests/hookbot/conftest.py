"""Shared fixtures for hookbot tests."""

import os

import pytest


@pytest.fixture(autouse=True)
def clean_hookbot_env(monkeypatch):
    """Remove HOOKBOT_ variables so tests see only what they set."""
    for key in list(os.environ):
        if key.upper().startswith("HOOKBOT_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def webhook_env(monkeypatch):
    """Set the minimum environment for BotSettings."""
    monkeypatch.setenv("HOOKBOT_GITHUB_WEBHOOK_SECRET", "test-secret")
    monkeypatch.setenv("HOOKBOT_BOT_NAME", "reviewbot")
