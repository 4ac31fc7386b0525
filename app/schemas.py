"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class SensorType(str, Enum):
    """Kind of measurement a reading carries."""

    temperature = "T"
    humidity = "H"
    counter = "C"


class Reading(BaseModel):
    """One sensor reading as submitted by a sensor and stored verbatim."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    serial: str = Field(..., alias="Serial", description="Sensor serial number.")
    type: SensorType = Field(..., alias="Type")
    temperature: float = Field(..., alias="Temperature")
    humidity: Optional[int] = Field(default=None, alias="humidity")
    count: Optional[int] = Field(default=None, alias="count")

    def to_json(self) -> bytes:
        return self.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")


ReadingBatch = List[Reading]

reading_adapter = TypeAdapter(Reading)
batch_adapter = TypeAdapter(ReadingBatch)


def dump_batch(readings: ReadingBatch) -> bytes:
    return batch_adapter.dump_json(readings, by_alias=True, exclude_none=True)


class ErrorResponse(BaseModel):
    """Single error message returned with a 400 response."""

    error: str


class ErrorListResponse(BaseModel):
    """Itemized request errors returned with a 400 response."""

    errors: List[str] = Field(default_factory=list)


SensorDirectory = Dict[str, str]
