"""
Telemetry Node Entry Point
Reads newline-delimited JSON tracker records and writes them to InfluxDB in batches

Usage:
    python -m telemetry_node.run [records.ndjson]   (stdin when no file is given)
"""
import asyncio
import concurrent.futures
import json
import logging
import os
import signal
import sys
import threading
from typing import Any, AsyncIterator, Dict, List, Optional, TextIO, Tuple

from telemetry_node.config import Config, ServerParams
from telemetry_node.influx.connection import InfluxStore
from telemetry_node.influx.errors import InfluxStoreError, StoreWriteError
from telemetry_node.influx.writer import WriteService
from telemetry_node.logging_config import setup_logging_from_config
from telemetry_node.metrics import start_metrics_server

logger = logging.getLogger(__name__)

# Lines buffered between the reader thread and the event loop
READ_AHEAD_LINES = 1000

_shutdown_event: Optional[asyncio.Event] = None


def parse_record_line(line: str, line_number: int) -> Optional[Dict[str, Any]]:
    """Decode one NDJSON line; None for blank, undecodable or non-object lines."""
    line = line.strip()
    if not line:
        return None
    try:
        record = json.loads(line)
    except json.JSONDecodeError as e:
        logger.warning(f"Skipping line {line_number}: invalid JSON ({e})")
        return None
    if not isinstance(record, dict):
        logger.warning(f"Skipping line {line_number}: expected a JSON object")
        return None
    return record


def _read_lines(stream: TextIO, loop: asyncio.AbstractEventLoop, queue: asyncio.Queue) -> None:
    """
    Reader thread body.
    Hands each line to the loop, then None at EOF or the read error.
    """
    def hand_off(item):
        asyncio.run_coroutine_threadsafe(queue.put(item), loop).result()

    try:
        try:
            for line in stream:
                hand_off(line)
            hand_off(None)
        except (OSError, ValueError) as e:
            hand_off(e)
    except (RuntimeError, concurrent.futures.CancelledError):
        logger.debug("Event loop gone, record reader exiting")


async def iter_records(stream: TextIO,
                       shutdown_event: Optional[asyncio.Event] = None) -> AsyncIterator[Dict[str, Any]]:
    """
    Yield one record per JSON object line; blank and undecodable lines are skipped.

    The stream is read on a daemon thread, so a stream with no pending input
    (an idle pipe or terminal) never blocks the event loop. Iteration ends at
    EOF or as soon as shutdown_event is set.

    Raises:
        OSError: If reading the stream fails
    """
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue(maxsize=READ_AHEAD_LINES)
    reader = threading.Thread(
        target=_read_lines, args=(stream, loop, queue), name="record-reader", daemon=True
    )
    reader.start()

    stop = asyncio.ensure_future((shutdown_event or asyncio.Event()).wait())
    line_number = 0
    try:
        while True:
            next_line = asyncio.ensure_future(queue.get())
            await asyncio.wait({next_line, stop}, return_when=asyncio.FIRST_COMPLETED)
            if not next_line.done():
                next_line.cancel()
                logger.info("Shutdown requested, stopping ingestion")
                return

            item = next_line.result()
            if item is None:
                return
            if isinstance(item, BaseException):
                raise item

            line_number += 1
            record = parse_record_line(item, line_number)
            if record is not None:
                yield record
    finally:
        stop.cancel()


async def ingest(stream: TextIO, writer: WriteService, batch_size: int = 200,
                 shutdown_event: Optional[asyncio.Event] = None) -> Tuple[int, int]:
    """
    Write all records from stream in batches.

    A failed batch is logged and counted; ingestion continues with the next one.
    Setting shutdown_event stops reading; records already read are still flushed.

    Returns:
        (records written, batches failed)
    """
    written = 0
    failed_batches = 0
    batch: List[Dict[str, Any]] = []

    async def _flush():
        nonlocal written, failed_batches
        try:
            written += await writer.write_batch(list(batch))
        except StoreWriteError as e:
            failed_batches += 1
            logger.warning(f"Batch of {len(batch)} record(s) failed: {e}")
        batch.clear()

    async for record in iter_records(stream, shutdown_event):
        batch.append(record)
        if len(batch) >= batch_size:
            await _flush()

    if batch:
        await _flush()
    return written, failed_batches


async def main(path: Optional[str] = None) -> int:
    """Main entry point for the ingest run"""
    global _shutdown_event
    _shutdown_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _shutdown_event.set)
        except NotImplementedError:
            pass

    store = InfluxStore()
    try:
        store.connect(Config.get_influxdb_config(), ServerParams.get_int('tachometer.data_interval', 30))
        writer = WriteService(
            store,
            max_retries=ServerParams.get_int('writer.max_retries', 2),
            initial_delay=ServerParams.get_float('writer.initial_delay', 0.5),
            max_delay=ServerParams.get_float('writer.max_delay', 5.0),
        )
        batch_size = max(1, ServerParams.get_int('writer.batch_size', 200))

        if path:
            with open(path, 'r', encoding='utf-8') as stream:
                written, failed = await ingest(stream, writer, batch_size, _shutdown_event)
        else:
            written, failed = await ingest(sys.stdin, writer, batch_size, _shutdown_event)

        logger.info(f"Ingestion finished: written={written}, failed_batches={failed}")
        return 1 if failed else 0
    except InfluxStoreError as e:
        logger.error(f"Store error: {e}", exc_info=True)
        return 2
    except OSError as e:
        logger.error(f"Cannot read records: {e}")
        return 2
    finally:
        store.disconnect()
        logger.info("Telemetry node shutdown complete")


def run(argv: Optional[List[str]] = None) -> int:
    """Console entry point"""
    argv = sys.argv[1:] if argv is None else argv
    setup_logging_from_config()
    start_metrics_server(int(os.environ.get("TELEMETRY_METRICS_PORT") or ServerParams.get_int('metrics.port', 9091)))
    try:
        return asyncio.run(main(argv[0] if argv else None))
    except KeyboardInterrupt:
        logger.info("Shutdown complete")
        return 130


if __name__ == "__main__":
    sys.exit(run())
