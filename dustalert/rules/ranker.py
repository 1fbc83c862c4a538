"""
Threshold Ranker.

Selects the sensors exceeding a pollutant threshold and orders them most
severe first. Stateless — no side effects.
"""

import logging
from typing import List, Sequence

from dustalert.ingestion.readings import SensorReading

logger = logging.getLogger(__name__)

DEFAULT_SENSOR_LIMIT = 1


def rank(readings: Sequence[SensorReading], pollutant: str, threshold: float) -> List[SensorReading]:
    """
    Readings whose value for `pollutant` is strictly above `threshold`.

    A missing value counts as 0. The result is sorted by value descending;
    equal values keep their input order (sorted() is stable).
    """
    qualifying = [r for r in readings if (r.value_for(pollutant) or 0) > threshold]
    return sorted(qualifying, key=lambda r: -(r.value_for(pollutant) or 0))


def is_episode(ranked: Sequence[SensorReading], sensor_limit: int = DEFAULT_SENSOR_LIMIT) -> bool:
    """True when enough sensors qualify to count as a pollution episode."""
    return len(ranked) >= (sensor_limit or DEFAULT_SENSOR_LIMIT)
