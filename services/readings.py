"""Recording and querying sensor readings against the bucket store."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from pydantic import ValidationError

from app.schemas import Reading, ReadingBatch, SensorDirectory, batch_adapter, dump_batch, reading_adapter
from datastore.bucket_store import BucketStore, StoreError
from datastore.schema import (
    DEFAULT_SENSOR_NAME,
    READINGS_BUCKET,
    SERIAL_NAMES_BUCKET,
    format_timestamp_key,
    unix_to_key,
)
from models.records import ReadingRange

logger = logging.getLogger(__name__)

_INT_PATTERN = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


class ReadingQueryError(Exception):
    """Raised when a range request fails parsing or validation."""

    def __init__(self, errors: List[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = list(errors)


def parse_int64(raw: str) -> int:
    """Parse a base-10 signed 64-bit integer, rejecting whitespace and underscores."""
    if not _INT_PATTERN.fullmatch(raw):
        raise ValueError(f'parsing "{raw}": invalid syntax')
    value = int(raw)
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise ValueError(f'parsing "{raw}": value out of range')
    return value


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ReadingsService:
    """Coordinates the directory, global log and per-sensor logs."""

    def __init__(
        self,
        store: BucketStore,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.store = store
        self.clock = clock

    def list_sensors(self) -> SensorDirectory:
        serial_names: SensorDirectory = {}
        with self.store.view() as tx:
            bucket = tx.bucket(SERIAL_NAMES_BUCKET)
            if bucket is None:
                return serial_names
            for serial, name in bucket.scan():
                serial_names[serial] = name.decode("utf-8")
        return serial_names

    def parse_range(
        self,
        start: str,
        end: str,
        sensors: Optional[str] = None,
        limit: Optional[str] = None,
    ) -> ReadingRange:
        """Turn raw request values into a ``ReadingRange``.

        Every problem found is collected before raising ``ReadingQueryError``,
        so the caller can report all of them at once.
        """
        errors: List[str] = []

        start_key = self._parse_timestamp("start", start, errors)
        end_key = self._parse_timestamp("end", end, errors)

        limit_value = 0
        try:
            limit_value = parse_int64(limit if limit is not None else "0")
        except ValueError as exc:
            errors.append(f"ERROR limit value: {exc}")

        serials: List[str] = []
        if sensors:
            serials = sensors.split(",")
            try:
                errors.extend(self._missing_sensors(serials))
            except StoreError as exc:
                errors.append(str(exc))

        if errors:
            raise ReadingQueryError(errors)

        return ReadingRange(
            start_key=start_key,
            end_key=end_key,
            limit=limit_value,
            sensors=serials,
        )

    def query_readings(
        self,
        start: str,
        end: str,
        sensors: Optional[str] = None,
        limit: Optional[str] = None,
    ) -> Dict[str, ReadingBatch]:
        """Return every stored batch whose timestamp falls in ``[start, end]``.

        ``limit`` and ``sensors`` are validated only: the result is neither
        capped nor filtered by them.
        """
        reading_range = self.parse_range(start, end, sensors=sensors, limit=limit)
        logger.info(
            "Scanning readings",
            extra={"start_key": reading_range.start_key, "end_key": reading_range.end_key},
        )

        readings: Dict[str, ReadingBatch] = {}
        with self.store.view() as tx:
            bucket = tx.bucket(READINGS_BUCKET)
            if bucket is None:
                return readings
            for key, value in bucket.scan(reading_range.start_key):
                if reading_range.is_past_end(key):
                    break
                try:
                    readings[key] = batch_adapter.validate_json(value)
                except ValidationError as exc:
                    logger.warning(
                        "Skipping undecodable batch",
                        extra={"timestamp_key": key, "reason": _first_error(exc)},
                    )
        return readings

    def sensor_history(self, serial: str, start: str, end: str) -> Dict[str, Reading]:
        """Return one sensor's readings whose timestamp falls in ``[start, end]``."""
        reading_range = self.parse_range(start, end)

        history: Dict[str, Reading] = {}
        with self.store.view() as tx:
            bucket = tx.bucket(serial) if serial else None
            if bucket is None:
                raise ReadingQueryError([f"ERROR missing sensor: {serial}"])
            for key, value in bucket.scan(reading_range.start_key):
                if reading_range.is_past_end(key):
                    break
                try:
                    history[key] = reading_adapter.validate_json(value)
                except ValidationError as exc:
                    logger.warning(
                        "Skipping undecodable reading",
                        extra={"bucket": serial, "timestamp_key": key, "reason": _first_error(exc)},
                    )
        return history

    def ingest(self, readings: ReadingBatch) -> str:
        """Store a batch under one timestamp key and return that key.

        Each serial is (re)registered in the directory as ``Unknown``, which
        replaces any name given to it earlier. A second batch stored within
        the same second replaces the first.
        """
        now = format_timestamp_key(self.clock())
        with self.store.update() as tx:
            serial_names = tx.bucket(SERIAL_NAMES_BUCKET)
            for reading in readings:
                logger.info(
                    "Storing reading",
                    extra={
                        "serial": reading.serial,
                        "temperature": f"{reading.temperature:0.2f}",
                        "timestamp_key": now,
                    },
                )
                serial_names.put(reading.serial, DEFAULT_SENSOR_NAME.encode("utf-8"))

                sensor_log = tx.create_bucket_if_not_exists(reading.serial)
                sensor_log.put(now, reading.to_json())

            tx.bucket(READINGS_BUCKET).put(now, dump_batch(readings))

        logger.info(
            "Stored reading batch",
            extra={"timestamp_key": now, "reading_count": len(readings)},
        )
        return now

    def _parse_timestamp(self, field: str, raw: str, errors: List[str]) -> str:
        try:
            return unix_to_key(parse_int64(raw))
        except ValueError as exc:
            errors.append(f"ERROR {field} timestamp: {exc}")
            return ""

    def _missing_sensors(self, serials: List[str]) -> List[str]:
        missing: List[str] = []
        with self.store.view() as tx:
            bucket = tx.bucket(SERIAL_NAMES_BUCKET)
            for serial in serials:
                if bucket is None or bucket.get(serial) is None:
                    missing.append(f"ERROR missing sensor: {serial}")
        return missing


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    return str(errors[0].get("msg", exc))
