"""Typed models for the raw provider payloads."""
from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

Scalar = Optional[Union[float, int, str]]


def safe_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


class MetricReading(BaseModel):
    """A single ``{"value": ..., "unit": ...}`` leaf of the telemetry payload."""

    model_config = ConfigDict(extra="ignore")

    value: Scalar = None
    unit: Optional[str] = None
    time: Scalar = None

    @property
    def number(self) -> Optional[float]:
        return safe_float(self.value)


class HistoryMetric(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    unit: Optional[str] = None
    samples: Dict[str, Scalar] = Field(default_factory=dict, alias="list")


class EcowittEnvelope(BaseModel):
    model_config = ConfigDict(extra="ignore")

    code: int
    msg: str = ""
    time: Scalar = None
    data: Union[Dict[str, Any], List[Any], None] = None

    @property
    def sections(self) -> Dict[str, Any]:
        # The API sends ``[]`` instead of ``{}`` when a device has no data.
        return self.data if isinstance(self.data, dict) else {}


class TidePoint(BaseModel):
    model_config = ConfigDict(extra="ignore")

    time: datetime
    type: Literal["high", "low"]
    height: float

    @field_validator("time")
    @classmethod
    def ensure_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class TideResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    # Items are parsed with TidePoint after the errors mapping is checked.
    data: Optional[List[Any]] = None
    errors: Optional[Dict[str, Union[List[str], str]]] = None

    def error_message(self) -> str:
        parts: List[str] = []
        for field_name, messages in (self.errors or {}).items():
            if isinstance(messages, str):
                messages = [messages]
            text = ", ".join(str(message) for message in messages if message)
            parts.append(f"{field_name}: {text}" if text else field_name)
        return "; ".join(parts) or "Unknown error"


__all__ = [
    "MetricReading",
    "HistoryMetric",
    "EcowittEnvelope",
    "TidePoint",
    "TideResponse",
    "safe_float",
]
