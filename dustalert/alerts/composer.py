"""
Alert Composer — DustAlert

Renders the public alert text from Jinja2 templates, one per language.
The representative sensor for the displayed value and map link is the
least severe qualifying sensor (the tail of the ranked list).
"""

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from typing import Callable, Optional, Sequence

from jinja2 import Environment, FileSystemLoader, select_autoescape

from dustalert.ingestion.readings import SensorId, SensorReading

logger = logging.getLogger(__name__)

TEMPLATES_DIR = os.path.join(os.path.dirname(__file__), "templates")

MAP_URL = "http://deutschland.maps.luftdaten.info/#13/{latitude}/{longitude}"

TIMESTAMP_FORMATS = {
    "default": "%m/%d/%Y, %I:%M:%S %p",
    "de": "%d.%m.%Y, %H:%M:%S",
}

NameResolver = Callable[[SensorId], Optional[str]]


@dataclass(frozen=True)
class Alert:
    """A composed alert, ready to hand to a transport."""
    pollutant: str
    text: str
    link: Optional[str]
    representative: SensorReading


@lru_cache(maxsize=1)
def _jinja_env() -> Environment:
    """Create a Jinja2 environment pointing at the templates directory."""
    return Environment(
        loader=FileSystemLoader(TEMPLATES_DIR),
        autoescape=select_autoescape(["html"]),
    )


def sensor_link(reading: SensorReading) -> Optional[str]:
    """Map link for a sensor, or None when its position is unknown."""
    location = reading.location
    if location is None or location.longitude is None or location.latitude is None:
        return None
    return MAP_URL.format(latitude=location.latitude, longitude=location.longitude)


def format_timestamp(timestamp: datetime, language: str = "default") -> str:
    """Human-readable local time in the style of the given language."""
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    fmt = TIMESTAMP_FORMATS.get(language, TIMESTAMP_FORMATS["default"])
    return timestamp.astimezone().strftime(fmt)


def compose(
    ranked: Sequence[SensorReading],
    pollutant: str,
    region: str,
    language: str = "default",
    resolve_name: NameResolver = lambda sensor_id: None,
    now: Optional[datetime] = None,
) -> Alert:
    """
    Build the alert for a pollutant episode.

    Args:
        ranked: Qualifying readings, most severe first. Must not be empty.
        pollutant: e.g. "PM10"
        region: Region display name
        language: "default" or "de"
        resolve_name: Sensor id → display name (None when unnamed)
        now: Time shown in the alert (defaults to the current time)

    Returns:
        Alert with the rendered text and optional map link.
    """
    if not ranked:
        raise ValueError(f"Cannot compose a {pollutant} alert without qualifying sensors")

    # TODO: cap the joined sensor names so long lists fit a single post
    sensor_names = [n for n in (resolve_name(r.sensor_id) for r in ranked) if n]
    representative = ranked[-1]
    link = sensor_link(representative)
    timestamp = now or datetime.now(timezone.utc)

    template_name = "alert_de.txt.j2" if language == "de" else "alert_default.txt.j2"
    text = _jinja_env().get_template(template_name).render(
        region=region,
        sensor_names=sensor_names,
        pollutant=pollutant,
        expected=representative.expected.get(pollutant),
        timestamp=format_timestamp(timestamp, language),
        link=link,
    )

    logger.debug("Composed %s alert from %d sensors", pollutant, len(ranked))
    return Alert(pollutant=pollutant, text=text, link=link, representative=representative)
