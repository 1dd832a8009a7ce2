"""Shared fixtures for helperbot tests.

No test reaches the network, a real model, GitHub, Google or the desktop.
"""

from __future__ import annotations

import pytest

from fakes import RecordingNotifier, StubRates
from helperbot.events.store import EventStore
from helperbot.services.currency import Rate


@pytest.fixture(autouse=True)
def isolate_env(monkeypatch, tmp_path):
    """Keep sessions, events and global config inside tmp_path."""
    monkeypatch.setenv("HELPERBOT_HOME", str(tmp_path / "home"))
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.setenv("COLUMNS", "200")


@pytest.fixture
def rates():
    return StubRates(
        {
            "USD": Rate(name="US DOLLAR", buy=26000, transfer=26030, sell=26400),
            "EUR": Rate(name="EURO", buy=28000, transfer=28100, sell=29500),
        }
    )


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def events():
    return EventStore.open("test-session")
