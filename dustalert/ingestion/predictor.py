"""
Short-horizon particulate predictor.

Turns the recent measurement window of one sensor into an expected level and
a conservative lower bound per pollutant. The lower bound is what the alert
thresholds are compared against, so a single noisy spike does not trigger an
alert on its own.
"""

import logging
import math
import statistics
from typing import Dict, List, Optional

from dustalert.ingestion.luftdaten_connector import extract_samples
from dustalert.ingestion.readings import POLLUTANTS, Estimate, SensorId

logger = logging.getLogger(__name__)

# One-sided 95% normal quantile
Z_LOWER = 1.645


def estimate(samples: List[float]) -> Estimate:
    """
    Mean and one-sided 95% lower confidence bound of the mean.

    Raises:
        ValueError: If samples is empty.
    """
    if not samples:
        raise ValueError("Cannot estimate from an empty sample")
    expected = statistics.fmean(samples)
    if len(samples) < 2:
        return Estimate(lower=expected, expected=expected)
    stderr = statistics.stdev(samples) / math.sqrt(len(samples))
    lower = max(0.0, expected - Z_LOWER * stderr)
    return Estimate(lower=lower, expected=expected)


def predict(sensor_id: SensorId, measurements: List[dict]) -> Optional[Dict[str, Estimate]]:
    """
    Predict PM10 and PM2.5 levels for a sensor.

    Returns:
        {pollutant: Estimate} for every pollutant, or None when any pollutant
        has no usable samples.
    """
    samples = extract_samples(measurements)
    result = {}
    for pollutant in POLLUTANTS:
        values = samples.get(pollutant) or []
        if not values:
            logger.warning("No %s samples for sensor %s — prediction failed", pollutant, sensor_id)
            return None
        result[pollutant] = estimate(values)
    logger.debug(
        "Prediction for sensor %s: %s",
        sensor_id,
        {p: (round(e.lower, 1), round(e.expected, 1)) for p, e in result.items()},
    )
    return result
