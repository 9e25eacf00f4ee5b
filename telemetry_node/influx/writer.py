"""
Async writer for tracker records
Turns each record into a speed/duration point pair and writes all pairs concurrently
"""
import asyncio
import logging
from typing import Any, Iterable, List, Mapping, Optional, Union

from influxdb_client_3 import Point, WritePrecision

from telemetry_node import metrics
from telemetry_node.influx.connection import InfluxStore, get_store
from telemetry_node.influx.errors import StoreWriteError
from telemetry_node.influx.input_validator import is_numeric
from telemetry_node.influx.models import (
    DURATION_MEASUREMENT,
    SPEED_MEASUREMENT,
    TrackerRecord,
    build_point_pair,
    to_point,
)
from telemetry_node.influx.retry_handler import retry_with_backoff
from telemetry_node.influx.timestamps import derive_timestamp

RecordLike = Union[TrackerRecord, Mapping[str, Any]]


class WriteService:
    """
    Write side of the telemetry store.

    A batch either fully succeeds or raises StoreWriteError; pairs that already
    landed before a failure are not rolled back.
    """

    def __init__(
        self,
        store: InfluxStore,
        max_retries: int = 2,
        initial_delay: float = 0.5,
        max_delay: float = 5.0,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Args:
            store: Store holding the client handle
            max_retries: Extra attempts per point pair on transient errors (0 disables)
            initial_delay: First backoff delay in seconds
            max_delay: Backoff cap in seconds
            logger: Logger for write/drop events (module logger by default)
        """
        self.store = store
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def _as_record(record: RecordLike) -> TrackerRecord:
        if isinstance(record, TrackerRecord):
            return record
        return TrackerRecord.from_mapping(record)

    def build_points(self, record: TrackerRecord) -> List[Point]:
        """Speed and duration Points for one record, typed by the store schema."""
        timestamp = derive_timestamp(record)
        pair = build_point_pair(record, timestamp, self.store.data_interval)
        return [to_point(point, self.store.schema) for point in pair]

    async def _write_pair(self, client: Any, points: List[Point], imei: Optional[str]) -> None:
        async def _attempt():
            await asyncio.to_thread(client.write, record=points, write_precision=WritePrecision.S)

        try:
            await retry_with_backoff(
                _attempt,
                max_retries=self.max_retries,
                initial_delay=self.initial_delay,
                max_delay=self.max_delay,
                on_retry=lambda attempt, error: metrics.record_write_retry(),
            )
        except Exception as e:
            metrics.record_write_failure(SPEED_MEASUREMENT)
            metrics.record_write_failure(DURATION_MEASUREMENT)
            self.logger.debug(f"Point write failed: imei={imei}, error={e}")
            raise

    async def write_batch(self, records: Iterable[RecordLike]) -> int:
        """
        Write a batch of tracker records.

        Records whose gs is not numeric are dropped. Without a connection
        nothing is written and 0 is returned.

        Args:
            records: TrackerRecord instances or raw record mappings

        Returns:
            Number of records written

        Raises:
            StoreWriteError: If any point-pair write failed (chained to the first error)
        """
        if not self.store.is_connected:
            self.logger.warning("InfluxDB store not connected, skipping write")
            return 0

        batch = [self._as_record(record) for record in records]
        valid = [record for record in batch if is_numeric(record.gs)]
        dropped = len(batch) - len(valid)
        if dropped:
            self.logger.debug(f"Dropped {dropped} record(s) with non-numeric speed")
            metrics.record_dropped('non_numeric_speed', dropped)

        if not valid:
            return 0

        client = self.store.client
        tasks = [self._write_pair(client, self.build_points(record), record.imei) for record in valid]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        errors = [result for result in results if isinstance(result, BaseException)]
        if errors:
            first = errors[0]
            if not isinstance(first, Exception):
                raise first
            self.logger.error(
                f"Error while writing to InfluxDB: {len(errors)}/{len(valid)} record(s) failed: {first}",
                exc_info=first,
            )
            raise StoreWriteError(f"Failed to write batch to InfluxDB: {first}", records=len(valid)) from first

        self.logger.info(f"Wrote {len(valid)} record(s) to InfluxDB.")
        metrics.record_written(len(valid))
        return len(valid)

    async def write_one(self, record: RecordLike) -> int:
        """Write a single record; see write_batch."""
        return await self.write_batch([record])


async def write_batch(records: Iterable[RecordLike]) -> int:
    """Write a batch through the process-wide default store."""
    return await WriteService(get_store()).write_batch(records)


async def write_one(record: RecordLike) -> int:
    """Write one record through the process-wide default store."""
    return await WriteService(get_store()).write_one(record)
