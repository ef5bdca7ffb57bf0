from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple

from .errors import Notice, ProviderError


def _frozen_mapping(values: Optional[Mapping[Any, Any]] = None) -> Mapping[Any, Any]:
    return MappingProxyType(dict(values or {}))


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: Any
    expires_at: float


# Raw telemetry ------------------------------------------------------------
@dataclass(frozen=True)
class OutdoorReadings:
    temperature: Optional[float] = None
    feels_like: Optional[float] = None
    humidity: Optional[float] = None
    dew_point: Optional[float] = None


@dataclass(frozen=True)
class WindReadings:
    """Wind speed and gust are reported in km/h."""

    speed: Optional[float] = None
    gust: Optional[float] = None
    direction_deg: Optional[float] = None


@dataclass(frozen=True)
class RainfallReadings:
    rate: Optional[float] = None
    daily_total: Optional[float] = None


@dataclass(frozen=True)
class PressureReadings:
    absolute: Optional[float] = None
    trend_raw: Optional[float] = None


@dataclass(frozen=True)
class SolarReadings:
    radiation: Optional[float] = None
    uv_index: Optional[float] = None


@dataclass(frozen=True)
class LightningReadings:
    count: Optional[float] = None
    distance_km: Optional[float] = None


@dataclass(frozen=True)
class SoilReadings:
    moisture_pct_by_channel: Mapping[int, float] = field(default_factory=_frozen_mapping)

    def __post_init__(self) -> None:
        object.__setattr__(self, "moisture_pct_by_channel", _frozen_mapping(self.moisture_pct_by_channel))


@dataclass(frozen=True)
class WeatherSnapshot:
    """Parsed realtime telemetry.

    A section is ``None`` when the station did not report it at all; inside
    a section every reading is optional as well.
    """

    captured_at: Optional[datetime] = None
    outdoor: Optional[OutdoorReadings] = None
    wind: Optional[WindReadings] = None
    rainfall: Optional[RainfallReadings] = None
    pressure: Optional[PressureReadings] = None
    solar: Optional[SolarReadings] = None
    lightning: Optional[LightningReadings] = None
    soil: Optional[SoilReadings] = None


Sample = Tuple[datetime, float]


@dataclass(frozen=True)
class HistoricalSeries:
    per_metric: Mapping[str, Tuple[Sample, ...]] = field(default_factory=_frozen_mapping)
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    cycle: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "per_metric", _frozen_mapping(self.per_metric))

    @property
    def is_empty(self) -> bool:
        return not any(self.per_metric.values())


@dataclass(frozen=True)
class TideExtreme:
    timestamp: datetime
    type: str
    height_m: float


@dataclass(frozen=True)
class TideWindow:
    extremes: Tuple[TideExtreme, ...]
    window_start: datetime
    window_end: datetime

    @property
    def is_empty(self) -> bool:
        return not self.extremes


# View models ----------------------------------------------------------------
class ViewMode(str, Enum):
    REALTIME = "realtime"
    HISTORICAL = "historical"


@dataclass(frozen=True)
class WeatherView:
    captured_at: Optional[datetime]
    temperature: Optional[float]
    feels_like: Optional[float]
    humidity: Optional[float]
    dew_point: Optional[float]
    wind_speed_ms: str
    wind_gust_ms: str
    wind_direction_deg: Optional[float]
    wind_direction: Optional[str]
    wind_rose: Optional[Tuple[int, ...]]
    rain_rate: Optional[float]
    rain_daily: Optional[float]
    pressure: Optional[float]
    pressure_trend: str
    solar_radiation: Optional[float]
    uv_index: Optional[float]
    lightning_count: Optional[float]
    lightning_distance_km: Optional[float]
    lightning_summary: str
    soil_moisture: Optional[Mapping[int, float]] = None

    def __post_init__(self) -> None:
        if self.soil_moisture is not None:
            object.__setattr__(self, "soil_moisture", _frozen_mapping(self.soil_moisture))


@dataclass(frozen=True)
class ChartSeries:
    key: str
    title: str
    axis_title: str
    value_suffix: str
    times: Tuple[datetime, ...]
    values: Tuple[Optional[float], ...]


@dataclass(frozen=True)
class HistoricalView:
    series: Tuple[ChartSeries, ...]
    start: Optional[datetime]
    end: Optional[datetime]

    @property
    def is_empty(self) -> bool:
        return not any(chart.values for chart in self.series)


@dataclass(frozen=True)
class TideRow:
    local_time: datetime
    display_time: str
    type: str
    type_label: str
    height_m: float
    height_display: str


@dataclass(frozen=True)
class TideView:
    rows: Tuple[TideRow, ...]
    window_start: datetime
    window_end: datetime
    empty_message: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.rows


@dataclass(frozen=True)
class SectionResult:
    """Either a rendered view or the error that replaced it."""

    view: Any = None
    error: Optional[ProviderError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def notice(self) -> Optional[Notice]:
        if self.error is None:
            return None
        return self.error.notice()


@dataclass(frozen=True)
class DashboardView:
    mode: ViewMode
    weather: Optional[SectionResult] = None
    tide: Optional[SectionResult] = None


__all__ = [
    "CacheEntry",
    "OutdoorReadings",
    "WindReadings",
    "RainfallReadings",
    "PressureReadings",
    "SolarReadings",
    "LightningReadings",
    "SoilReadings",
    "WeatherSnapshot",
    "HistoricalSeries",
    "Sample",
    "TideExtreme",
    "TideWindow",
    "ViewMode",
    "WeatherView",
    "ChartSeries",
    "HistoricalView",
    "TideRow",
    "TideView",
    "SectionResult",
    "DashboardView",
]
