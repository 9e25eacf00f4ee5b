"""
Timestamp derivation for tracker records.
Trackers report the fix date (DDMMYY) and time (HHMMSS) as separate strings.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Union

from dateutil import parser

from telemetry_node import metrics
from telemetry_node.influx.models import TrackerRecord

logger = logging.getLogger(__name__)


def _field(record: Union[TrackerRecord, Mapping[str, Any]], name: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def _ensure_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def iso_from_fields(position_utc: str, utc: str) -> str:
    """
    Assemble an ISO-8601 UTC string from DDMMYY and HHMMSS.

    The year is taken as 20YY. Substrings are positional, no range checks.
    """
    year = '20' + position_utc[4:]
    month = position_utc[2:4]
    day = position_utc[0:2]
    hour = utc[0:2]
    minute = utc[2:4]
    second = utc[4:6]
    return f"{year}-{month}-{day}T{hour}:{minute}:{second}Z"


def derive_timestamp(record: Union[TrackerRecord, Mapping[str, Any]]) -> datetime:
    """
    Build the UTC instant of a tracker fix.

    Args:
        record: TrackerRecord or raw mapping with utc and position_utc

    Returns:
        Timezone-aware UTC datetime. Falls back to the current time when either
        field is missing, not a string, or does not form a valid date; never raises.
    """
    utc = _field(record, 'utc')
    position_utc = _field(record, 'position_utc')

    if not isinstance(utc, str) or not isinstance(position_utc, str):
        logger.debug(f"Missing utc/position_utc (utc={utc!r}, position_utc={position_utc!r}), using current time")
        metrics.record_timestamp_fallback('missing')
        return datetime.now(timezone.utc)

    iso_text = iso_from_fields(position_utc, utc)
    try:
        return _ensure_utc(parser.isoparse(iso_text))
    except (ValueError, OverflowError) as e:
        logger.debug(f"Could not parse fix time '{iso_text}', using current time: {e}")
        metrics.record_timestamp_fallback('invalid')
        return datetime.now(timezone.utc)
