"""Fetch → cache → normalize pipeline behind the dashboard sections."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional, Union

from .. import normalize
from ..cache import TTLCache, make_cache_key
from ..config import DashboardConfig
from ..entities import (
    DashboardView,
    HistoricalView,
    SectionResult,
    TideView,
    ViewMode,
    WeatherView,
)
from ..errors import ConfigMissing, ProviderError
from ..health import HealthRegistry
from ..providers.base import RequestConfig
from ..providers.ecowitt import HISTORY_LOOKBACK_DAYS, EcowittClient, normalize_device_id
from ..providers.stormglass import StormglassClient


class DashboardPipeline:
    REALTIME_TTL = 10 * 60
    HISTORICAL_TTL = 6 * 60 * 60
    TIDE_TTL = 24 * 60 * 60

    def __init__(
        self,
        config: DashboardConfig,
        *,
        cache: Optional[TTLCache] = None,
        weather_client: Optional[EcowittClient] = None,
        tide_client: Optional[StormglassClient] = None,
        clock: Optional[Callable[[], datetime]] = None,
        health: Optional[HealthRegistry] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config
        self.cache = cache or TTLCache()
        request_config = RequestConfig(timeout=config.timeout)
        self._clock = clock or (lambda: datetime.now(tz=timezone.utc))
        self.weather_client = weather_client or EcowittClient(request_config=request_config, clock=self._clock)
        self.tide_client = tide_client or StormglassClient(request_config=request_config)
        self.health = health
        self._log = logger or logging.getLogger(self.__class__.__name__)

    # Public API ---------------------------------------------------------
    def weather(self, mode: Union[ViewMode, str] = ViewMode.REALTIME) -> Union[WeatherView, HistoricalView]:
        mode = ViewMode(mode)
        self.config.require_weather()
        config = self.config
        device_id = normalize_device_id(config.device_id)

        if mode is ViewMode.HISTORICAL:
            key = make_cache_key("historical", device_id, HISTORY_LOOKBACK_DAYS)
            series = self._cached(
                self.weather_client.name,
                key,
                self.HISTORICAL_TTL,
                lambda: self.weather_client.fetch_historical(
                    config.app_key, config.api_key, device_id, HISTORY_LOOKBACK_DAYS, tz=config.timezone
                ),
            )
            return normalize.build_historical_view(series, config.timezone)

        key = make_cache_key("weather", device_id)
        snapshot = self._cached(
            self.weather_client.name,
            key,
            self.REALTIME_TTL,
            lambda: self.weather_client.fetch_realtime(config.app_key, config.api_key, device_id),
        )
        return normalize.build_weather_view(snapshot)

    def tides(self, now: Optional[datetime] = None) -> TideView:
        self.config.require_tide()
        config = self.config
        key = make_cache_key("tide", float(config.latitude), float(config.longitude))
        extremes = self._cached(
            self.tide_client.name,
            key,
            self.TIDE_TTL,
            lambda: self.tide_client.fetch_extremes(config.latitude, config.longitude, config.tide_api_key),
        )
        window = normalize.filter_tide_window(
            extremes,
            now or self._clock(),
            config.timezone,
            types=config.tide_types,
        )
        return normalize.build_tide_view(window)

    def build(
        self,
        mode: Union[ViewMode, str] = ViewMode.REALTIME,
        now: Optional[datetime] = None,
        *,
        sections: Iterable[str] = ("weather", "tide"),
    ) -> DashboardView:
        """Render the requested sections; a failing section never affects another."""
        mode = ViewMode(mode)
        wanted = frozenset(sections)
        return DashboardView(
            mode=mode,
            weather=self._section("weather", lambda: self.weather(mode)) if "weather" in wanted else None,
            tide=self._section("tide", lambda: self.tides(now)) if "tide" in wanted else None,
        )

    # Helpers ------------------------------------------------------------
    def _cached(self, provider: str, key: str, ttl: int, fetch: Callable[[], Any]) -> Any:
        try:
            return self.cache.get_or_compute(key, ttl, fetch)
        except ProviderError as exc:
            if self.health is not None:
                self.health.record_provider_error(provider, exc.kind)
            raise
        finally:
            if self.health is not None:
                self.health.set_cache_stats(self.cache.stats())

    def _section(self, name: str, render: Callable[[], Any]) -> SectionResult:
        try:
            return SectionResult(view=render())
        except ConfigMissing as exc:
            self._log.warning("%s section not configured: %s", name, exc.message)
            return SectionResult(error=exc)
        except ProviderError as exc:
            self._log.error("%s section failed (%s): %s", name, exc.kind.value, exc.message)
            return SectionResult(error=exc)


__all__ = ["DashboardPipeline"]
