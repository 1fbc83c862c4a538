"""
Sensor directory.

Lists the sensors to poll: the configured sensors plus, optionally, every
particulate sensor inside a configured discovery area.
"""

import logging
from typing import List

import httpx

from dustalert.ingestion.luftdaten_connector import REQUEST_TIMEOUT, VALUE_TYPES
from dustalert.ingestion.readings import SensorId, normalize_sensor_id

logger = logging.getLogger(__name__)

AREA_FILTER_URL = "https://data.sensor.community/airrohr/v1/filter/area={lat},{lon},{km}"


class SensorDirectoryError(Exception):
    """Raised when the list of sensors cannot be determined this cycle."""


def discover_area_sensors(latitude: float, longitude: float, radius_km: float,
                          timeout: float = REQUEST_TIMEOUT) -> List[SensorId]:
    """
    Return the ids of particulate sensors reporting inside the given area.

    Raises:
        SensorDirectoryError: On any network or payload error.
    """
    url = AREA_FILTER_URL.format(lat=latitude, lon=longitude, km=radius_km)
    try:
        resp = httpx.get(url, timeout=timeout)
        resp.raise_for_status()
        payload = resp.json()
    except httpx.HTTPError as e:
        raise SensorDirectoryError(f"Area discovery failed: {e}") from e
    except ValueError as e:
        raise SensorDirectoryError("Area discovery returned malformed JSON") from e

    if not isinstance(payload, list):
        raise SensorDirectoryError("Area discovery returned an unexpected payload")

    ids: List[SensorId] = []
    for measurement in payload:
        sensor = measurement.get("sensor") or {}
        if sensor.get("id") is None:
            continue
        sensor_id = normalize_sensor_id(sensor["id"])
        if sensor_id in ids:
            continue
        value_types = {v.get("value_type") for v in measurement.get("sensordatavalues") or []}
        if value_types & set(VALUE_TYPES):
            ids.append(sensor_id)

    logger.info("Discovered %d particulate sensors within %.1f km", len(ids), radius_km)
    return ids


def list_sensor_ids(settings) -> List[SensorId]:
    """Configured sensor ids first, then discovered ones, without duplicates."""
    ids = list(dict.fromkeys(settings.sensor_ids()))
    area = settings.area
    if area is not None:
        discovered = discover_area_sensors(
            area.latitude, area.longitude, area.radius_km,
            timeout=settings.request_timeout,
        )
        ids.extend(sid for sid in discovered if sid not in ids)
    return ids
