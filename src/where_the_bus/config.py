import os
from datetime import timedelta

DEFAULT_VEHICLES_URL = "https://actransit.val.run/bus_locations"
DEFAULT_HISTORY_URL = "https://actransit.val.run/bus_history"
DEFAULT_PREDICTIONS_URL = "https://actransit.val.run/route_predictions"


def _parse_center(value: str) -> tuple[float, float]:
    """Parse a "lng,lat" pair."""
    parts = [p.strip() for p in value.split(",")]
    if len(parts) != 2:
        raise ValueError(f"MAP_CENTER must be 'lng,lat', got {value!r}")
    return float(parts[0]), float(parts[1])


def _positive(name: str, value: float) -> float:
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


class Settings:
    def __init__(self):
        self.vehicles_url: str = os.environ.get("VEHICLES_URL", DEFAULT_VEHICLES_URL)
        self.history_url: str = os.environ.get("HISTORY_URL", DEFAULT_HISTORY_URL)
        self.predictions_url: str = os.environ.get(
            "PREDICTIONS_URL", DEFAULT_PREDICTIONS_URL
        )
        self.poll_interval: float = _positive(
            "POLL_INTERVAL", float(os.environ.get("POLL_INTERVAL", "30"))
        )
        self.history_window_minutes: float = _positive(
            "HISTORY_WINDOW_MINUTES",
            float(os.environ.get("HISTORY_WINDOW_MINUTES", "8")),
        )
        self.request_timeout: float = _positive(
            "REQUEST_TIMEOUT", float(os.environ.get("REQUEST_TIMEOUT", "10"))
        )
        self.log_level: str = os.environ.get("LOG_LEVEL", "INFO")
        # Initial viewport handed to the map; Oakland, CA by default
        self.map_center: tuple[float, float] = _parse_center(
            os.environ.get("MAP_CENTER", "-122.2681,37.8044")
        )
        self.map_zoom: float = float(os.environ.get("MAP_ZOOM", "10"))

    @property
    def history_window(self) -> timedelta:
        return timedelta(minutes=self.history_window_minutes)


settings = Settings()
