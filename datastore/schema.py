"""Bucket layout and key encoding for stored sensor readings.

Three families of buckets are kept in the store:

* ``serialNames`` maps a sensor serial number to a human readable name.
* ``readings`` maps a timestamp key to the JSON array of every reading
  received in one batch.
* one bucket per serial number maps a timestamp key to that sensor's single
  reading JSON.

Timestamp keys are RFC3339 strings rendered in UTC with a ``Z`` suffix and
zero padded fields, so comparing keys as bytes orders them chronologically.
Range queries rely on that: a different encoding must keep lexical order
equal to chronological order.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Union

from datastore.bucket_store import BucketStore

logger = logging.getLogger(__name__)

SERIAL_NAMES_BUCKET = "serialNames"
READINGS_BUCKET = "readings"
DEFAULT_SENSOR_NAME = "Unknown"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def format_timestamp_key(moment: datetime) -> str:
    """Render ``moment`` as a second-resolution RFC3339 key in UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    utc = moment.astimezone(timezone.utc)
    return (
        f"{utc.year:04d}-{utc.month:02d}-{utc.day:02d}"
        f"T{utc.hour:02d}:{utc.minute:02d}:{utc.second:02d}Z"
    )


MIN_TIMESTAMP_KEY = format_timestamp_key(datetime.min)
MAX_TIMESTAMP_KEY = format_timestamp_key(datetime.max)


def unix_to_key(seconds: int) -> str:
    """Render a Unix timestamp as a key, pinning instants outside years 1-9999 to the edge keys."""
    try:
        moment = _EPOCH + timedelta(seconds=seconds)
    except OverflowError:
        return MIN_TIMESTAMP_KEY if seconds < 0 else MAX_TIMESTAMP_KEY
    return format_timestamp_key(moment)


def open_readings_store(path: Union[str, Path]) -> BucketStore:
    """Open (or create) the store file and make sure the top-level buckets exist.

    Raises ``StoreError`` when the file cannot be opened or initialized.
    """
    store = BucketStore.open(path)
    with store.update() as tx:
        tx.create_bucket_if_not_exists(SERIAL_NAMES_BUCKET)
        tx.create_bucket_if_not_exists(READINGS_BUCKET)
    logger.info("Opened readings store at %s", store.path)
    return store
