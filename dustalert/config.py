"""
Runtime configuration for DustAlert.

Loads config/default.json (or the file named by DUSTALERT_CONFIG) and applies
environment overrides from the process environment and an optional .env file.
Settings are read once at startup and never mutated afterwards.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Dict, List, Optional, Tuple

from dotenv import load_dotenv

from dustalert.ingestion.readings import POLLUTANTS, SensorId, normalize_sensor_id

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.path.join(
    os.path.dirname(os.path.dirname(__file__)), "config", "default.json"
)

LANGUAGES = ("default", "de")

# Debug mode values (minutes) — mirrors a fast local test loop
DEBUG_POLL_INTERVAL = 0.05
DEBUG_WINDOW = 0.2
DEBUG_THRESHOLD = 1.0


class ConfigError(ValueError):
    """Raised when the configuration cannot be loaded or is invalid."""


@dataclass(frozen=True)
class SensorEntry:
    """A configured sensor with an optional display name."""
    id: SensorId
    name: Optional[str] = None


@dataclass(frozen=True)
class Area:
    """Circular discovery area for the sensor directory."""
    latitude: float
    longitude: float
    radius_km: float


@dataclass(frozen=True)
class Settings:
    thresholds: Dict[str, float]
    region_name: str
    sensor_limit: int = 1
    poll_interval: timedelta = timedelta(minutes=5)
    incident_window: timedelta = timedelta(minutes=60)
    notification_window: timedelta = timedelta(minutes=60)
    language: str = "default"
    sensors: Tuple[SensorEntry, ...] = field(default_factory=tuple)
    area: Optional[Area] = None
    request_timeout: float = 10.0
    max_workers: int = 8
    webhook_url: Optional[str] = None
    debug: bool = False
    log_level: str = "INFO"

    def sensor_ids(self) -> List[SensorId]:
        return [s.id for s in self.sensors]

    def sensor_name(self, sensor_id) -> Optional[str]:
        """Resolve a sensor's display name; None when unnamed or unknown."""
        key = normalize_sensor_id(sensor_id)
        for entry in self.sensors:
            if entry.id == key:
                return entry.name or None
        return None


def _read_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _minutes(raw: dict, key: str, default: float) -> float:
    value = raw.get(key, default)
    try:
        minutes = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{key} must be a number of minutes, got {value!r}")
    if minutes < 0:
        raise ConfigError(f"{key} must not be negative, got {minutes}")
    return minutes


def _positive_number(raw: dict, key: str, default: float, cast=float):
    value = raw.get(key, default)
    try:
        number = cast(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{key} must be a number, got {value!r}")
    if number <= 0:
        raise ConfigError(f"{key} must be positive, got {number}")
    return number


def _read_log_level(value: str) -> str:
    level = str(value).strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ConfigError(f"Unknown log level {value!r}")
    return level


def _parse_thresholds(raw: dict) -> Dict[str, float]:
    thresholds = raw.get("thresholds")
    if not isinstance(thresholds, dict):
        raise ConfigError("thresholds must be an object keyed by pollutant")
    parsed = {}
    for pollutant in POLLUTANTS:
        if pollutant not in thresholds:
            raise ConfigError(f"Missing threshold for pollutant {pollutant}")
        try:
            parsed[pollutant] = float(thresholds[pollutant])
        except (TypeError, ValueError):
            raise ConfigError(
                f"Threshold for {pollutant} must be numeric, got {thresholds[pollutant]!r}"
            )
    return parsed


def _parse_sensors(raw: dict) -> Tuple[SensorEntry, ...]:
    entries = []
    for item in raw.get("sensors", []):
        if isinstance(item, dict):
            if "id" not in item:
                raise ConfigError(f"Sensor entry without id: {item!r}")
            entries.append(SensorEntry(id=normalize_sensor_id(item["id"]), name=item.get("name")))
        else:
            entries.append(SensorEntry(id=normalize_sensor_id(item)))
    return tuple(entries)


def _parse_area(raw: dict) -> Optional[Area]:
    area = raw.get("area")
    if not area:
        return None
    try:
        return Area(
            latitude=float(area["latitude"]),
            longitude=float(area["longitude"]),
            radius_km=float(area["radius_km"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigError(f"Invalid area configuration: {e}")


def _read_config_file(path: str) -> dict:
    if not os.path.exists(path):
        raise ConfigError(f"Config file not found at {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config file {path} is not valid JSON: {e}")
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")
    return raw


def settings_from_dict(raw: dict, env: Optional[dict] = None) -> Settings:
    """
    Build Settings from a parsed config dict plus environment overrides.

    Args:
        raw: Parsed JSON config.
        env: Mapping of environment variables (defaults to os.environ).

    Raises:
        ConfigError: On any invalid or missing value.
    """
    env = os.environ if env is None else env

    thresholds = _parse_thresholds(raw)

    try:
        sensor_limit = int(raw.get("sensor_limit", 1))
    except (TypeError, ValueError):
        raise ConfigError(f"sensor_limit must be an integer, got {raw.get('sensor_limit')!r}")
    if sensor_limit < 1:
        raise ConfigError(f"sensor_limit must be >= 1, got {sensor_limit}")

    language = raw.get("language", "default")
    if language not in LANGUAGES:
        raise ConfigError(f"Unsupported language {language!r}, expected one of {LANGUAGES}")

    if env.get("POLL_INTERVAL_MINUTES"):
        raw = dict(raw, poll_interval_minutes=env["POLL_INTERVAL_MINUTES"])
    poll_minutes = _minutes(raw, "poll_interval_minutes", 5)
    notification_minutes = _minutes(raw, "notification_window_minutes", 60)
    incident_minutes = _minutes(raw, "incident_window_minutes", notification_minutes)

    debug = _read_bool(env.get("DEBUG", raw.get("debug", False)))
    log_level = _read_log_level(env.get("LOG_LEVEL") or raw.get("log_level") or "INFO")

    if debug:
        poll_minutes = DEBUG_POLL_INTERVAL
        notification_minutes = incident_minutes = DEBUG_WINDOW
        thresholds = {p: DEBUG_THRESHOLD for p in thresholds}
        log_level = "DEBUG"

    if poll_minutes <= 0:
        raise ConfigError("poll_interval_minutes must be positive")

    return Settings(
        thresholds=thresholds,
        region_name=str(raw.get("region_name", "")),
        sensor_limit=sensor_limit,
        poll_interval=timedelta(minutes=poll_minutes),
        incident_window=timedelta(minutes=incident_minutes),
        notification_window=timedelta(minutes=notification_minutes),
        language=language,
        sensors=_parse_sensors(raw),
        area=_parse_area(raw),
        request_timeout=_positive_number(raw, "request_timeout_seconds", 10),
        max_workers=_positive_number(raw, "max_workers", 8, cast=int),
        webhook_url=(env.get("ALERT_WEBHOOK_URL") or raw.get("webhook_url") or None),
        debug=debug,
        log_level=log_level,
    )


def load_settings(path: Optional[str] = None) -> Settings:
    """Load settings from .env, the environment and the JSON config file."""
    load_dotenv()
    path = path or os.environ.get("DUSTALERT_CONFIG") or DEFAULT_CONFIG_PATH
    settings = settings_from_dict(_read_config_file(path))
    logger.info(
        "Config loaded from %s: %d sensors, region=%s, debug=%s",
        path, len(settings.sensors), settings.region_name, settings.debug,
    )
    return settings
