"""
sensor.community (formerly luftdaten.info) API Connector.

Fetches the recent measurements of a single particulate sensor.
Handles API timeouts, malformed responses, and missing fields gracefully.
"""

import logging
import math
from typing import List, Optional

import httpx

from dustalert.ingestion.readings import Location, SensorId

logger = logging.getLogger(__name__)

SENSOR_API_URL = "https://data.sensor.community/static/v1/sensor"
REQUEST_TIMEOUT = 10  # seconds

# sensordatavalues value_type → pollutant
VALUE_TYPES = {
    "P1": "PM10",
    "P2": "PM2.5",
}


def _safe_float(val) -> Optional[float]:
    """Convert a value to a finite float, returning None on failure."""
    if val is None or val == "":
        return None
    try:
        result = float(val)
    except (TypeError, ValueError):
        return None
    return result if math.isfinite(result) else None


def parse_location(measurements: List[dict]) -> Optional[Location]:
    """
    Location of the most recent measurement.

    Raises:
        IndexError: If measurements is empty.
    """
    location = measurements[-1].get("location")
    if not location:
        return None
    longitude = _safe_float(location.get("longitude"))
    latitude = _safe_float(location.get("latitude"))
    if longitude is None or latitude is None:
        return None
    return Location(longitude=longitude, latitude=latitude)


def extract_samples(measurements: List[dict]) -> dict:
    """Collect P1/P2 samples per pollutant across all measurements."""
    samples = {pollutant: [] for pollutant in VALUE_TYPES.values()}
    for measurement in measurements:
        for entry in measurement.get("sensordatavalues") or []:
            pollutant = VALUE_TYPES.get(entry.get("value_type"))
            if pollutant is None:
                continue
            value = _safe_float(entry.get("value"))
            if value is not None:
                samples[pollutant].append(value)
    return samples


def fetch_measurements(
    sensor_id: SensorId,
    timeout: float = REQUEST_TIMEOUT,
) -> Optional[List[dict]]:
    """
    Fetch the recent measurements for the given sensor.

    Args:
        sensor_id: sensor.community sensor ID (e.g. 140)
        timeout: HTTP timeout in seconds

    Returns:
        List of measurement dicts (oldest first) or None on failure.
    """
    url = f"{SENSOR_API_URL}/{sensor_id}/"
    logger.debug("Fetching sensor data for %s from %s", sensor_id, url)

    try:
        resp = httpx.get(url, timeout=timeout)
        resp.raise_for_status()
    except httpx.TimeoutException:
        logger.warning("Sensor API request timed out for sensor %s", sensor_id)
        return None
    except httpx.HTTPStatusError as e:
        logger.warning("Sensor API HTTP error %s for sensor %s", e.response.status_code, sensor_id)
        return None
    except httpx.RequestError as e:
        logger.warning("Sensor API network error for sensor %s: %s", sensor_id, e)
        return None

    try:
        payload = resp.json()
    except ValueError:
        logger.warning("Sensor API returned malformed JSON for sensor %s", sensor_id)
        return None

    if not isinstance(payload, list) or not payload:
        logger.warning("Sensor API returned no measurements for sensor %s", sensor_id)
        return None

    logger.debug("Fetched %d measurements for sensor %s", len(payload), sensor_id)
    return payload
