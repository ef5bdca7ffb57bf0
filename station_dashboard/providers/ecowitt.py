from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from pydantic import ValidationError

from ..entities import (
    HistoricalSeries,
    LightningReadings,
    OutdoorReadings,
    PressureReadings,
    RainfallReadings,
    Sample,
    SoilReadings,
    SolarReadings,
    WeatherSnapshot,
    WindReadings,
)
from ..errors import ConfigMissing, DecodeError, UpstreamRejected
from .base import HttpProvider
from .payloads import EcowittEnvelope, HistoryMetric, MetricReading, safe_float


_NON_HEX = re.compile(r"[^0-9A-F]")
_SOIL_SECTION = re.compile(r"^soil_ch(\d+)$")

# Unit selectors: Celsius, hPa, km/h, mm, W/m2.
UNIT_PARAMS = {
    "temp_unitid": 1,
    "pressure_unitid": 3,
    "wind_speed_unitid": 7,
    "rainfall_unitid": 12,
    "solar_irradiance_unitid": 16,
}

HISTORY_SECTIONS = ("outdoor", "wind", "rainfall", "solar_and_uvi", "pressure")
HISTORY_CYCLE = "30min"
HISTORY_LOOKBACK_DAYS = 7


def normalize_device_id(value: Optional[str]) -> str:
    """Return the compact 12-hex-character form of a device MAC address."""
    compact = _NON_HEX.sub("", (value or "").upper())
    if len(compact) != 12:
        raise ConfigMissing(
            "MAC address must be 12 hexadecimal characters "
            f"(e.g. A0B1C2D3E4F5 or A0:B1:C2:D3:E4:F5), got {value!r}"
        )
    return compact


def format_device_id(compact: str) -> str:
    """Render a compact device id the way the API expects it on the wire."""
    return ":".join(compact[index:index + 2] for index in range(0, len(compact), 2))


class EcowittClient(HttpProvider):
    name = "ecowitt"
    base_url = "https://api.ecowitt.net/api/v3"

    def __init__(
        self,
        base_url: Optional[str] = None,
        clock: Optional[Callable[[], datetime]] = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.base_url = (base_url or self.base_url).rstrip("/")
        self._clock = clock or (lambda: datetime.now(tz=timezone.utc))

    # Public API ---------------------------------------------------------
    def fetch_realtime(self, app_key: str, api_key: str, device_id: str) -> WeatherSnapshot:
        params = self._credentials(app_key, api_key, device_id)
        params.update(UNIT_PARAMS)
        params["call_back"] = "all"
        envelope = self._fetch("/device/real_time", params)
        if envelope.data is None:
            raise DecodeError("ecowitt response did not include data")
        return self._build_snapshot(envelope)

    def fetch_historical(
        self,
        app_key: str,
        api_key: str,
        device_id: str,
        lookback_days: int = HISTORY_LOOKBACK_DAYS,
        tz: Optional[tzinfo] = None,
    ) -> HistoricalSeries:
        params = self._credentials(app_key, api_key, device_id)
        end = self._clock().astimezone(tz or timezone.utc)
        start = end - timedelta(days=lookback_days)
        params.update(UNIT_PARAMS)
        params.update(
            {
                "start_date": start.strftime("%Y-%m-%d %H:%M:%S"),
                "end_date": end.strftime("%Y-%m-%d %H:%M:%S"),
                "cycle_type": HISTORY_CYCLE,
                "call_back": ",".join(HISTORY_SECTIONS),
            }
        )
        envelope = self._fetch("/device/history", params)
        return HistoricalSeries(
            per_metric=self._parse_history(envelope.sections),
            start=start,
            end=end,
            cycle=HISTORY_CYCLE,
        )

    # Helpers ------------------------------------------------------------
    def _credentials(self, app_key: str, api_key: str, device_id: str) -> Dict[str, Any]:
        if not app_key or not api_key:
            raise ConfigMissing("ecowitt application key and API key are required")
        compact = normalize_device_id(device_id)
        return {
            "application_key": app_key,
            "api_key": api_key,
            "mac": format_device_id(compact),
        }

    def _fetch(self, path: str, params: Dict[str, Any]) -> EcowittEnvelope:
        self._log.info("Ecowitt request %s for device %s", path, params["mac"])
        response = self._request("GET", f"{self.base_url}{path}", params=params)
        payload = self._json(response)
        try:
            envelope = EcowittEnvelope.model_validate(payload)
        except ValidationError as exc:
            if response.status_code >= 400:
                raise self._http_error(response) from exc
            self._log.error("Unexpected ecowitt envelope: %s", exc)
            raise DecodeError("ecowitt response did not match the expected envelope") from exc
        if envelope.code != 0:
            self._log.error("Ecowitt rejected request: code=%s msg=%s", envelope.code, envelope.msg)
            raise UpstreamRejected(envelope.msg or f"error code {envelope.code}")
        if response.status_code >= 400:
            raise self._http_error(response)
        return envelope

    def _build_snapshot(self, envelope: EcowittEnvelope) -> WeatherSnapshot:
        sections = envelope.sections
        readings: Dict[str, Dict[str, Optional[float]]] = {}
        for section_name in ("outdoor", "wind", "rainfall", "pressure", "solar_and_uvi", "lightning"):
            section = sections.get(section_name)
            if section is not None:
                readings[section_name] = self._parse_section(section_name, section)

        def build(name: str, factory, **fields: str):
            values = readings.get(name)
            if values is None:
                return None
            return factory(**{attr: values.get(metric) for attr, metric in fields.items()})

        return WeatherSnapshot(
            captured_at=self._captured_at(envelope, readings),
            outdoor=build(
                "outdoor",
                OutdoorReadings,
                temperature="temperature",
                feels_like="feels_like",
                humidity="humidity",
                dew_point="dew_point",
            ),
            wind=build("wind", WindReadings, speed="wind_speed", gust="wind_gust", direction_deg="wind_direction"),
            rainfall=build("rainfall", RainfallReadings, rate="rain_rate", daily_total="daily"),
            pressure=build("pressure", PressureReadings, absolute="absolute", trend_raw="trend"),
            solar=build("solar_and_uvi", SolarReadings, radiation="solar", uv_index="uvi"),
            lightning=build("lightning", LightningReadings, count="count", distance_km="distance"),
            soil=self._parse_soil(sections),
        )

    def _parse_section(self, name: str, section: Any) -> Dict[str, Optional[float]]:
        if not isinstance(section, Mapping):
            raise DecodeError(f"ecowitt section {name!r} is not an object")
        values: Dict[str, Optional[float]] = {}
        times: List[float] = []
        for metric, raw in section.items():
            try:
                reading = MetricReading.model_validate(raw)
            except ValidationError as exc:
                raise DecodeError(f"ecowitt metric {name}.{metric} is malformed") from exc
            values[metric] = reading.number
            timestamp = safe_float(reading.time)
            if timestamp is not None:
                times.append(timestamp)
        if times:
            values["__time__"] = max(times)
        return values

    def _parse_soil(self, sections: Mapping[str, Any]) -> Optional[SoilReadings]:
        channels: Dict[int, float] = {}
        for name, section in sections.items():
            match = _SOIL_SECTION.match(name)
            if not match:
                continue
            moisture = self._parse_section(name, section).get("soilmoisture")
            if moisture is not None:
                channels[int(match.group(1))] = moisture
        if not channels:
            return None
        return SoilReadings(moisture_pct_by_channel=dict(sorted(channels.items())))

    def _captured_at(
        self, envelope: EcowittEnvelope, readings: Mapping[str, Mapping[str, Optional[float]]]
    ) -> Optional[datetime]:
        stamp = safe_float(envelope.time)
        if stamp is None:
            stamps = [values["__time__"] for values in readings.values() if values.get("__time__") is not None]
            stamp = max(stamps) if stamps else None
        if stamp is None:
            return None
        return datetime.fromtimestamp(int(stamp), tz=timezone.utc)

    def _parse_history(self, sections: Mapping[str, Any]) -> Dict[str, Tuple[Sample, ...]]:
        per_metric: Dict[str, Tuple[Sample, ...]] = {}
        for section_name, section in sections.items():
            if not isinstance(section, Mapping):
                self._log.warning("Skipping malformed history section %s", section_name)
                continue
            for metric, raw in section.items():
                try:
                    history = HistoryMetric.model_validate(raw)
                except ValidationError:
                    self._log.warning("Skipping malformed history metric %s.%s", section_name, metric)
                    continue
                samples = _history_samples(history)
                if samples:
                    per_metric[f"{section_name}.{metric}"] = samples
        return per_metric


def _history_samples(history: HistoryMetric) -> Tuple[Sample, ...]:
    samples: List[Sample] = []
    for raw_stamp, raw_value in history.samples.items():
        stamp = safe_float(raw_stamp)
        value = safe_float(raw_value)
        if stamp is None or value is None:
            continue
        samples.append((datetime.fromtimestamp(int(stamp), tz=timezone.utc), value))
    samples.sort(key=lambda sample: sample[0])
    return tuple(samples)


__all__ = ["EcowittClient", "normalize_device_id", "format_device_id", "HISTORY_LOOKBACK_DAYS"]
