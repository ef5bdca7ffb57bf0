"""Pure transformations from parsed provider payloads to view models."""
from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, Callable, Iterable, NamedTuple, Optional, Tuple

from .entities import (
    ChartSeries,
    HistoricalSeries,
    HistoricalView,
    TideExtreme,
    TideRow,
    TideView,
    TideWindow,
    WeatherSnapshot,
    WeatherView,
)
from .providers.payloads import safe_float

COMPASS_LABELS = (
    "N", "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE",
    "S", "SSW", "SW", "WSW", "W", "WNW", "NW", "NNW",
)
ROSE_SECTORS = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")

TIDE_HORIZON = timedelta(hours=48)
TENTH = Decimal("0.1")
NO_TIDES_MESSAGE = "No tide predictions available for the next 48 hours."


def _tenths(kmh: float) -> Decimal:
    """Convert km/h to m/s rounded half up to one decimal place."""
    # Trim float noise first so 0.18 km/h (0.04999...) still rounds up to 0.1.
    return Decimal(f"{kmh / 3.6:.9f}").quantize(TENTH, rounding=ROUND_HALF_UP)


def kmh_to_ms(value: Any) -> Optional[float]:
    number = safe_float(value)
    if number is None:
        return None
    return float(_tenths(number))


def convert_kmh_to_ms(value: Any) -> str:
    """Format a km/h reading as m/s text; unusable input reads ``"0.0"``."""
    number = safe_float(value)
    if number is None:
        return "0.0"
    return str(_tenths(number))


def _bucket(degrees: float, sectors: int) -> int:
    width = 360.0 / sectors
    return math.floor((degrees % 360.0) / width + 0.5) % sectors


def compass_bucket(degrees: Any) -> str:
    number = safe_float(degrees)
    return COMPASS_LABELS[_bucket(number if number is not None else 0.0, 16)]


def wind_rose(degrees: Any) -> Optional[Tuple[int, ...]]:
    """One-hot vector over the eight rose sectors, N first."""
    number = safe_float(degrees)
    if number is None:
        return None
    index = _bucket(number, len(ROSE_SECTORS))
    return tuple(1 if position == index else 0 for position in range(len(ROSE_SECTORS)))


def pressure_trend(value: Any) -> str:
    number = safe_float(value)
    if number is None:
        return ""
    if number < -60:
        return "falling rapidly"
    if number < -20:
        return "falling"
    if number < 20:
        return "steady"
    return "rising"


def describe_lightning(distance_km: Any) -> str:
    distance = safe_float(distance_km)
    if not distance:
        return "No recent strikes"
    return f"Last at {distance:g} km"


# Weather -------------------------------------------------------------------
def build_weather_view(snapshot: WeatherSnapshot) -> WeatherView:
    outdoor = snapshot.outdoor
    wind = snapshot.wind
    rainfall = snapshot.rainfall
    pressure = snapshot.pressure
    solar = snapshot.solar
    lightning = snapshot.lightning

    direction = wind.direction_deg if wind else None
    return WeatherView(
        captured_at=snapshot.captured_at,
        temperature=outdoor.temperature if outdoor else None,
        feels_like=outdoor.feels_like if outdoor else None,
        humidity=outdoor.humidity if outdoor else None,
        dew_point=outdoor.dew_point if outdoor else None,
        wind_speed_ms=convert_kmh_to_ms(wind.speed if wind else None),
        wind_gust_ms=convert_kmh_to_ms(wind.gust if wind else None),
        wind_direction_deg=direction,
        wind_direction=compass_bucket(direction) if direction is not None else None,
        wind_rose=wind_rose(direction),
        rain_rate=rainfall.rate if rainfall else None,
        rain_daily=rainfall.daily_total if rainfall else None,
        pressure=pressure.absolute if pressure else None,
        pressure_trend=pressure_trend(pressure.trend_raw if pressure else None),
        solar_radiation=solar.radiation if solar else None,
        uv_index=solar.uv_index if solar else None,
        lightning_count=lightning.count if lightning else None,
        lightning_distance_km=lightning.distance_km if lightning else None,
        lightning_summary=describe_lightning(lightning.distance_km if lightning else None),
        soil_moisture=snapshot.soil.moisture_pct_by_channel if snapshot.soil else None,
    )


# History -------------------------------------------------------------------
class ChartSpec(NamedTuple):
    key: str
    title: str
    axis_title: str
    value_suffix: str
    convert: Optional[Callable[[float], Optional[float]]] = None


CHART_SPECS = (
    ChartSpec("outdoor.temperature", "Outdoor Temperature", "Temperature (°C)", " °C"),
    ChartSpec("outdoor.humidity", "Outdoor Humidity", "Humidity (%)", " %"),
    ChartSpec("rainfall.rain_rate", "Rain Rate", "Rain Rate (mm/h)", " mm/h"),
    ChartSpec("wind.wind_speed", "Wind Speed", "Wind Speed (m/s)", " m/s", kmh_to_ms),
    ChartSpec("solar_and_uvi.solar", "Solar Radiation", "Solar (W/m²)", " W/m²"),
    ChartSpec("solar_and_uvi.uvi", "UV Index", "UVI", ""),
    ChartSpec("pressure.absolute", "Absolute Pressure", "Pressure (hPa)", " hPa"),
)


def build_historical_view(series: HistoricalSeries, tz: tzinfo) -> HistoricalView:
    charts = []
    for chart_spec in CHART_SPECS:
        samples = series.per_metric.get(chart_spec.key)
        if not samples:
            continue
        convert = chart_spec.convert or (lambda value: value)
        charts.append(
            ChartSeries(
                key=chart_spec.key,
                title=chart_spec.title,
                axis_title=chart_spec.axis_title,
                value_suffix=chart_spec.value_suffix,
                times=tuple(stamp.astimezone(tz) for stamp, _ in samples),
                values=tuple(convert(value) for _, value in samples),
            )
        )
    return HistoricalView(
        series=tuple(charts),
        start=series.start.astimezone(tz) if series.start else None,
        end=series.end.astimezone(tz) if series.end else None,
    )


# Tides ---------------------------------------------------------------------
def filter_tide_window(
    extremes: Iterable[TideExtreme],
    now: datetime,
    tz: tzinfo,
    types: Iterable[str] = ("high",),
    horizon: timedelta = TIDE_HORIZON,
) -> TideWindow:
    """Keep extremes of ``types`` inside ``[now, now + horizon]``, in ``tz``, sorted by time."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=tz)
    # Same-zone local datetimes compare by wall clock, so bounds and order use UTC.
    start = now.astimezone(timezone.utc)
    end = start + horizon
    wanted = frozenset(types)

    kept = sorted(
        (
            extreme
            for extreme in extremes
            if extreme.type in wanted and start <= extreme.timestamp.astimezone(timezone.utc) <= end
        ),
        key=lambda extreme: extreme.timestamp.astimezone(timezone.utc),
    )
    return TideWindow(
        extremes=tuple(
            TideExtreme(timestamp=extreme.timestamp.astimezone(tz), type=extreme.type, height_m=extreme.height_m)
            for extreme in kept
        ),
        window_start=start.astimezone(tz),
        window_end=end.astimezone(tz),
    )


def format_tide_time(value: datetime) -> str:
    return f"{value:%a, %b} {value.day} {value:%H:%M}"


def build_tide_view(window: TideWindow) -> TideView:
    rows = tuple(
        TideRow(
            local_time=extreme.timestamp,
            display_time=format_tide_time(extreme.timestamp),
            type=extreme.type,
            type_label=extreme.type.capitalize(),
            height_m=extreme.height_m,
            height_display=f"{extreme.height_m:.2f}",
        )
        for extreme in window.extremes
    )
    return TideView(
        rows=rows,
        window_start=window.window_start,
        window_end=window.window_end,
        empty_message=None if rows else NO_TIDES_MESSAGE,
    )


__all__ = [
    "COMPASS_LABELS",
    "ROSE_SECTORS",
    "kmh_to_ms",
    "convert_kmh_to_ms",
    "compass_bucket",
    "wind_rose",
    "pressure_trend",
    "describe_lightning",
    "build_weather_view",
    "build_historical_view",
    "filter_tide_window",
    "format_tide_time",
    "build_tide_view",
]
