from datetime import timedelta

import pytest

from where_the_bus.config import Settings


def test_default_settings():
    s = Settings()
    assert s.poll_interval == 30
    assert s.history_window_minutes == 8
    assert s.history_window == timedelta(minutes=8)
    assert s.request_timeout == 10
    assert s.log_level == "INFO"
    assert s.map_center == (-122.2681, 37.8044)
    assert s.map_zoom == 10
    assert "bus_locations" in s.vehicles_url


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("POLL_INTERVAL", "5")
    monkeypatch.setenv("HISTORY_WINDOW_MINUTES", "15")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("VEHICLES_URL", "https://custom.example.com/buses")
    monkeypatch.setenv("MAP_CENTER", "-122.0, 37.5")
    s = Settings()
    assert s.poll_interval == 5
    assert s.history_window == timedelta(minutes=15)
    assert s.log_level == "DEBUG"
    assert s.vehicles_url == "https://custom.example.com/buses"
    assert s.map_center == (-122.0, 37.5)


def test_settings_reject_non_positive_interval(monkeypatch):
    monkeypatch.setenv("POLL_INTERVAL", "0")
    with pytest.raises(ValueError, match="POLL_INTERVAL"):
        Settings()


def test_settings_reject_bad_center(monkeypatch):
    monkeypatch.setenv("MAP_CENTER", "37.5")
    with pytest.raises(ValueError, match="MAP_CENTER"):
        Settings()
