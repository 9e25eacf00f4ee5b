"""
Aggregate read queries over the speed and duration measurements.
All user input is escaped before interpolation into InfluxQL.
"""
import asyncio
import logging
import time
from datetime import datetime
from typing import Any, Dict, List, Union

from telemetry_node import metrics
from telemetry_node.influx.connection import InfluxStore, get_store
from telemetry_node.influx.errors import StoreQueryError
from telemetry_node.influx.input_validator import (
    escape_regex_token,
    escape_string_literal,
    format_time_bound,
    validate_group_unit,
)
from telemetry_node.influx.models import DURATION_MEASUREMENT, SPEED_MEASUREMENT

logger = logging.getLogger(__name__)

TimeBound = Union[str, datetime]

UNITS_QUERY = f'SHOW TAG VALUES FROM "{SPEED_MEASUREMENT}" WITH KEY = "unit"'

SECONDS_PER_HOUR = 3600


def _rows(result: Any) -> List[Dict[str, Any]]:
    """Normalize a client result (pyarrow Table or row list) to a list of dicts."""
    if result is None:
        return []
    if hasattr(result, 'to_pylist'):
        return result.to_pylist()
    return list(result)


def _unit_filter(unit_id: Any, start_date: TimeBound, end_date: TimeBound) -> str:
    # Unit match is a contains/suffix regex, not exact: '42' also matches '1042'
    return (
        f"time > {format_time_bound(start_date)} and time < {format_time_bound(end_date)} "
        f"and unit =~ /.*{escape_regex_token(unit_id)}/"
    )


def build_events_query(unit_id: Any, group: str, timezone: str,
                       start_date: TimeBound, end_date: TimeBound) -> str:
    """InfluxQL for moving-duration sums per time bucket."""
    group_unit = validate_group_unit(group)
    return (
        f'select sum(value) from "{DURATION_MEASUREMENT}" '
        f"where {_unit_filter(unit_id, start_date, end_date)} "
        f"group by time(1{group_unit}) TZ({escape_string_literal(timezone)})"
    )


def build_distance_query(unit_id: Any, timezone: str,
                         start_date: TimeBound, end_date: TimeBound) -> str:
    """InfluxQL for the speed integral over the range, in speed-units x hours."""
    return (
        f'select integral(value) / {SECONDS_PER_HOUR} from "{SPEED_MEASUREMENT}" '
        f"where {_unit_filter(unit_id, start_date, end_date)} "
        f"TZ({escape_string_literal(timezone)})"
    )


class QueryService:
    """Read side of the telemetry store."""

    def __init__(self, store: InfluxStore):
        self.store = store

    async def _run(self, name: str, query: str) -> List[Dict[str, Any]]:
        client = self.store.client
        logger.debug(f"Running {name} query: {query}")
        started = time.perf_counter()
        try:
            result = await asyncio.to_thread(client.query, query=query, language="influxql", mode="all")
        except Exception as e:
            logger.error(f"{name} query failed: {e}")
            raise StoreQueryError(f"{name} query failed: {e}", query=query) from e
        finally:
            metrics.observe_query_time(name, time.perf_counter() - started)
        return _rows(result)

    async def list_units(self) -> List[Dict[str, str]]:
        """
        List unit identifiers that have reported speed.

        Returns:
            [{"id": unit}, ...] in store order
        """
        rows = await self._run('units', UNITS_QUERY)
        units = []
        for row in rows:
            value = row.get('value')
            if not value:
                continue
            unit = str(value)[str(value).find(':') + 1:]
            if unit != 'undefined' and row.get('key') == 'unit':
                units.append({'id': unit})
        return units

    async def events_by_group(self, unit_id: Any, group: str = "d", timezone: str = "UTC", *,
                              start_date: TimeBound, end_date: TimeBound) -> List[Dict[str, Any]]:
        """
        Sum moving duration per time bucket.

        Args:
            unit_id: Unit identifier, matched as a suffix/contains regex
            group: Bucket unit, one of ns u µ ms s m h d w (bucket size is 1<group>)
            timezone: IANA timezone for bucket boundaries
            start_date: Exclusive lower bound
            end_date: Exclusive upper bound

        Returns:
            Raw result rows (time, sum)

        Raises:
            ValueError: If group is not a duration unit
        """
        query = build_events_query(unit_id, group, timezone, start_date, end_date)
        return await self._run('events', query)

    async def total_distance(self, unit_id: Any, timezone: str = "UTC", *,
                             start_date: TimeBound, end_date: TimeBound) -> float:
        """Distance travelled in the range (integral of speed over hours); 0 when there is no data."""
        query = build_distance_query(unit_id, timezone, start_date, end_date)
        rows = await self._run('distance', query)
        if not rows:
            return 0
        distance = rows[0].get('integral') if isinstance(rows[0], dict) else None
        return distance if distance is not None else 0


async def list_units() -> List[Dict[str, str]]:
    """list_units() on the process-wide default store."""
    return await QueryService(get_store()).list_units()


async def events_by_group(unit_id: Any, group: str = "d", timezone: str = "UTC", *,
                          start_date: TimeBound, end_date: TimeBound) -> List[Dict[str, Any]]:
    """events_by_group() on the process-wide default store."""
    return await QueryService(get_store()).events_by_group(
        unit_id, group, timezone, start_date=start_date, end_date=end_date
    )


async def total_distance(unit_id: Any, timezone: str = "UTC", *,
                         start_date: TimeBound, end_date: TimeBound) -> float:
    """total_distance() on the process-wide default store."""
    return await QueryService(get_store()).total_distance(
        unit_id, timezone, start_date=start_date, end_date=end_date
    )
