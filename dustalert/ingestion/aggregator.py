"""
Sensor Data Aggregator.

Fetches every sensor concurrently and folds each result into exactly one
SensorReading. One sensor failing never affects the others: any failure is
converted into a fully-null reading.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Sequence

from dustalert.ingestion.luftdaten_connector import REQUEST_TIMEOUT, fetch_measurements, parse_location
from dustalert.ingestion.predictor import predict
from dustalert.ingestion.readings import POLLUTANTS, SensorId, SensorReading, round_half_up

logger = logging.getLogger(__name__)

FetchOne = Callable[[SensorId], SensorReading]


def fetch_sensor_reading(sensor_id: SensorId, timeout: float = REQUEST_TIMEOUT) -> SensorReading:
    """Fetch raw measurements and predict levels for one sensor."""
    measurements = fetch_measurements(sensor_id, timeout=timeout)
    if measurements is None:
        return SensorReading.empty(sensor_id)

    location = parse_location(measurements)
    prediction = predict(sensor_id, measurements)
    if prediction is None:
        return SensorReading.empty(sensor_id)

    return SensorReading(
        sensor_id=sensor_id,
        location=location,
        values={p: round_half_up(prediction[p].lower) for p in POLLUTANTS},
        expected={p: round_half_up(prediction[p].expected) for p in POLLUTANTS},
    )


def _fold(fetch_one: FetchOne, sensor_id: SensorId) -> SensorReading:
    try:
        reading = fetch_one(sensor_id)
    except Exception as exc:
        logger.warning("Fetch failed for sensor %s: %s", sensor_id, exc)
        return SensorReading.empty(sensor_id)
    if reading is None:
        return SensorReading.empty(sensor_id)
    return reading


def fetch_all(
    sensor_ids: Sequence[SensorId],
    fetch_one: FetchOne = fetch_sensor_reading,
    max_workers: int = 8,
) -> List[SensorReading]:
    """
    Fetch all sensors concurrently.

    Args:
        sensor_ids: Sensors to fetch.
        fetch_one: Per-sensor fetch function.
        max_workers: Upper bound on concurrent fetches.

    Returns:
        One SensorReading per input id, in input order.
    """
    if not sensor_ids:
        return []

    logger.debug("Fetching sensor data for %s ...", list(sensor_ids))
    workers = max(1, min(max_workers, len(sensor_ids)))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="sensor-fetch") as pool:
        readings = list(pool.map(lambda sid: _fold(fetch_one, sid), sensor_ids))

    failed = sum(1 for r in readings if r.is_empty)
    if failed:
        logger.info("%d of %d sensors returned no data this cycle", failed, len(readings))
    return readings
