"""Shared test fixtures and configuration for the DustAlert test suite."""

import pytest

from dustalert.config import settings_from_dict

_ENV_VARS = (
    "DEBUG",
    "LOG_LEVEL",
    "ALERT_WEBHOOK_URL",
    "POLL_INTERVAL_MINUTES",
    "DUSTALERT_CONFIG",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep developer .env / shell settings out of the tests."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def base_config():
    """A production-like config dict with three sensors."""
    return {
        "region_name": "Stuttgart",
        "language": "default",
        "thresholds": {"PM10": 50, "PM2.5": 25},
        "sensor_limit": 1,
        "poll_interval_minutes": 5,
        "notification_window_minutes": 10,
        "incident_window_minutes": 10,
        "sensors": [
            {"id": "A", "name": "Neckartor"},
            {"id": "B", "name": "Bad Cannstatt"},
            {"id": "C"},
        ],
    }


@pytest.fixture()
def settings(base_config):
    return settings_from_dict(base_config, env={})
