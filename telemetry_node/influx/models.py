"""
Tracker record and point models for the telemetry store.
Each record becomes a speed point and a duration point sharing tags and timestamp.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

from influxdb_client_3 import Point, WritePrecision

logger = logging.getLogger(__name__)

SPEED_MEASUREMENT = "speed"
DURATION_MEASUREMENT = "duration"

# Speed above which a tick counts as moving
MOVING_SPEED_THRESHOLD = 2.0

DEFAULT_DATA_INTERVAL = 30


@dataclass(frozen=True)
class MeasurementSchema:
    """Field types and tag keys of one measurement."""

    measurement: str
    fields: Dict[str, type]
    tags: Tuple[str, ...]

    def coerce_fields(self, values: Mapping[str, Any]) -> Dict[str, Any]:
        """Cast field values to their declared types, ignoring undeclared fields."""
        coerced = {}
        for name, field_type in self.fields.items():
            if name in values and values[name] is not None:
                coerced[name] = field_type(values[name])
        return coerced


SCHEMA: Dict[str, MeasurementSchema] = {
    SPEED_MEASUREMENT: MeasurementSchema(
        measurement=SPEED_MEASUREMENT,
        fields={"value": float},
        tags=("unit", "lat", "long"),
    ),
    DURATION_MEASUREMENT: MeasurementSchema(
        measurement=DURATION_MEASUREMENT,
        fields={"value": int},
        tags=("unit", "lat", "long"),
    ),
}


def _as_text(value: Any) -> str:
    return "" if value is None else str(value)


@dataclass
class TrackerRecord:
    """
    One GPS report from a field tracker.

    Attributes:
        gs: Ground speed as sent by the device (numeric string expected)
        imei: Unit identifier
        lat, lat_loc: Latitude value and hemisphere prefix
        long, long_loc: Longitude value and hemisphere prefix
        utc: Time of fix as HHMMSS
        position_utc: Date of fix as DDMMYY
    """

    gs: Any = None
    imei: Optional[str] = None
    lat: Any = None
    lat_loc: Any = None
    long: Any = None
    long_loc: Any = None
    utc: Any = None
    position_utc: Any = None
    extra: Dict[str, Any] = field(default_factory=dict, repr=False)

    FIELDS = ("gs", "imei", "lat", "lat_loc", "long", "long_loc", "utc", "position_utc")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "TrackerRecord":
        """Build a record from a decoded device message; unknown keys land in extra."""
        known = {name: data.get(name) for name in cls.FIELDS}
        extra = {k: v for k, v in data.items() if k not in cls.FIELDS}
        if known["imei"] is not None:
            known["imei"] = str(known["imei"])
        return cls(**known, extra=extra)

    @property
    def speed(self) -> float:
        """Ground speed as float; only valid once gs passed is_numeric()."""
        return float(str(self.gs).strip()) if isinstance(self.gs, str) else float(self.gs)

    def tags(self) -> Dict[str, str]:
        """Tag set shared by the speed and duration points."""
        return {
            "unit": _as_text(self.imei),
            "lat": _as_text(self.lat_loc) + _as_text(self.lat),
            "long": _as_text(self.long_loc) + _as_text(self.long),
        }


def duration_credit(speed: float, data_interval: int) -> int:
    """Seconds of movement credited for one tick: the full interval when moving, else 0."""
    return int(data_interval) if speed > MOVING_SPEED_THRESHOLD else 0


def build_point_pair(record: TrackerRecord, timestamp: datetime,
                     data_interval: int = DEFAULT_DATA_INTERVAL) -> List[Dict[str, Any]]:
    """
    Derive the speed and duration points for a record.

    Returns:
        Two point dicts (measurement, tags, fields, time), speed first
    """
    speed = record.speed
    tags = record.tags()
    return [
        {
            "measurement": SPEED_MEASUREMENT,
            "tags": dict(tags),
            "fields": {"value": speed},
            "time": timestamp,
        },
        {
            "measurement": DURATION_MEASUREMENT,
            "tags": dict(tags),
            "fields": {"value": duration_credit(speed, data_interval)},
            "time": timestamp,
        },
    ]


def to_point(point_dict: Mapping[str, Any],
             schema: Optional[Mapping[str, MeasurementSchema]] = None) -> Point:
    """
    Convert a point dict to an InfluxDB Point, typing fields from the schema.

    Tags not declared for the measurement are skipped.
    """
    schema = SCHEMA if schema is None else schema
    measurement = point_dict["measurement"]
    measurement_schema = schema[measurement]

    point = Point(measurement)
    for tag_key, tag_value in point_dict.get("tags", {}).items():
        if tag_key in measurement_schema.tags and tag_value is not None:
            point = point.tag(tag_key, str(tag_value))

    for field_key, field_value in measurement_schema.coerce_fields(point_dict.get("fields", {})).items():
        point = point.field(field_key, field_value)

    timestamp = point_dict.get("time")
    if timestamp is not None:
        point = point.time(timestamp, WritePrecision.S)
    return point
