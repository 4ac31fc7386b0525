"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List


@dataclass(slots=True)
class ReadingRange:
    """A parsed, validated range request over timestamp keys."""

    start_key: str
    end_key: str
    # Validated request options that never narrow the scan.
    limit: int = 0
    sensors: List[str] = field(default_factory=list)

    def is_past_end(self, key: str) -> bool:
        return key > self.end_key
