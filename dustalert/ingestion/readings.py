"""
Sensor reading data model.

One SensorReading is produced per sensor per poll cycle. Every pollutant in
POLLUTANTS always has an entry in `values` and `expected`; a failed fetch
produces a fully-null reading, never a missing key.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, Optional, Union

# Sensor ids are opaque; JSON config may carry them as strings, the API as ints
SensorId = str

PM10 = "PM10"
PM25 = "PM2.5"
POLLUTANTS = (PM10, PM25)


@dataclass(frozen=True)
class Location:
    """Sensor position in decimal degrees."""
    longitude: float
    latitude: float


@dataclass(frozen=True)
class Estimate:
    """Predicted level for one pollutant (μg/m³)."""
    lower: float
    expected: float


def _null_values() -> Dict[str, Optional[int]]:
    return {p: None for p in POLLUTANTS}


@dataclass
class SensorReading:
    """Lower-bound and expected estimates for a single sensor."""
    sensor_id: SensorId
    location: Optional[Location] = None
    values: Dict[str, Optional[int]] = field(default_factory=_null_values)
    expected: Dict[str, Optional[int]] = field(default_factory=_null_values)

    def __post_init__(self):
        for pollutant in POLLUTANTS:
            self.values.setdefault(pollutant, None)
            self.expected.setdefault(pollutant, None)

    @classmethod
    def empty(cls, sensor_id: SensorId) -> "SensorReading":
        """Reading for a sensor whose fetch or prediction failed."""
        return cls(sensor_id=sensor_id)

    @property
    def is_empty(self) -> bool:
        return all(v is None for v in self.values.values())

    def value_for(self, pollutant: str) -> Optional[int]:
        return self.values.get(pollutant)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves toward +infinity."""
    return int(math.floor(value + 0.5))


def normalize_sensor_id(value: Union[int, float, str]) -> SensorId:
    """Canonical string form of a sensor id, so "140" and 140 are one sensor."""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()
