"""Explicit configuration for the dashboard pipeline."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import FrozenSet, List, Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import ConfigMissing

DEFAULT_TIMEZONE = "Europe/London"
DEFAULT_TIMEOUT_SECONDS = 15.0
TIDE_TYPES = frozenset({"high", "low"})


def env(name: str, default: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """Fetch an environment variable, treating blank values as unset."""

    source = os.environ if environ is None else environ
    value = source.get(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _optional_float(name: str, value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {value!r}") from exc


def parse_tide_types(value: Optional[str]) -> FrozenSet[str]:
    if value is None:
        return TIDE_TYPES
    types = frozenset(part.strip().lower() for part in value.split(",") if part.strip())
    unknown = types - TIDE_TYPES
    if not types or unknown:
        raise ValueError(f"tide types must be a subset of high,low, got {value!r}")
    return types


@dataclass(frozen=True)
class DashboardConfig:
    app_key: Optional[str] = None
    api_key: Optional[str] = None
    device_id: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    tide_api_key: Optional[str] = None
    timezone_name: str = DEFAULT_TIMEZONE
    tide_types: FrozenSet[str] = field(default_factory=lambda: TIDE_TYPES)
    timeout: float = DEFAULT_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        try:
            ZoneInfo(self.timezone_name)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {self.timezone_name}") from exc
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")

    @property
    def timezone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone_name)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "DashboardConfig":
        def read(name: str, default: Optional[str] = None) -> Optional[str]:
            return env(name, default, environ)

        timeout = _optional_float("DASHBOARD_HTTP_TIMEOUT", read("DASHBOARD_HTTP_TIMEOUT"))
        return cls(
            app_key=read("ECOWITT_APP_KEY"),
            api_key=read("ECOWITT_API_KEY"),
            device_id=read("ECOWITT_MAC"),
            latitude=_optional_float("DASHBOARD_LAT", read("DASHBOARD_LAT")),
            longitude=_optional_float("DASHBOARD_LON", read("DASHBOARD_LON")),
            tide_api_key=read("STORMGLASS_API_KEY"),
            timezone_name=read("DASHBOARD_TIMEZONE", DEFAULT_TIMEZONE),
            tide_types=parse_tide_types(read("DASHBOARD_TIDE_TYPES")),
            timeout=timeout if timeout is not None else DEFAULT_TIMEOUT_SECONDS,
        )

    def require_weather(self) -> None:
        missing: List[str] = []
        if not self.app_key:
            missing.append("application key")
        if not self.api_key:
            missing.append("API key")
        if not self.device_id:
            missing.append("device MAC address")
        if missing:
            raise ConfigMissing("weather station " + ", ".join(missing))

    def require_tide(self) -> None:
        missing: List[str] = []
        if not self.tide_api_key:
            missing.append("tide API key")
        if self.latitude is None:
            missing.append("latitude")
        if self.longitude is None:
            missing.append("longitude")
        if missing:
            raise ConfigMissing(", ".join(missing))


__all__ = ["DashboardConfig", "env", "parse_tide_types", "DEFAULT_TIMEZONE", "TIDE_TYPES"]
