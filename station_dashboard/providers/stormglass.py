from __future__ import annotations

from typing import Optional, Tuple

from pydantic import ValidationError

from ..entities import TideExtreme
from ..errors import ConfigMissing, DecodeError, UpstreamRejected
from .base import HttpProvider
from .payloads import TidePoint, TideResponse


class StormglassClient(HttpProvider):
    name = "stormglass"
    base_url = "https://api.stormglass.io/v2"

    def __init__(self, base_url: Optional[str] = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.base_url = (base_url or self.base_url).rstrip("/")

    def fetch_extremes(self, lat: float, lon: float, api_key: str) -> Tuple[TideExtreme, ...]:
        """Return the tide extremes for a point, in the order the API sent them."""
        if not api_key:
            raise ConfigMissing("stormglass API key is required")
        response = self._request(
            "GET",
            f"{self.base_url}/tide/extremes/point",
            params={"lat": lat, "lng": lon},
            headers={"Authorization": api_key},
        )
        payload = self._json(response)
        try:
            parsed = TideResponse.model_validate(payload)
        except ValidationError as exc:
            if response.status_code >= 400:
                raise self._http_error(response) from exc
            self._log.error("Unexpected stormglass payload: %s", exc)
            raise DecodeError("stormglass response did not match the expected structure") from exc

        if parsed.errors:
            message = parsed.error_message()
            self._log.error("Stormglass returned errors: %s", message)
            raise UpstreamRejected(message)
        if response.status_code >= 400:
            raise self._http_error(response)
        if parsed.data is None:
            self._log.error("Stormglass response does not contain a data key")
            raise DecodeError("stormglass response did not include data")

        try:
            points = [TidePoint.model_validate(item) for item in parsed.data]
        except ValidationError as exc:
            self._log.error("Unexpected stormglass tide point: %s", exc)
            raise DecodeError("stormglass response contained a malformed tide point") from exc
        return tuple(
            TideExtreme(timestamp=point.time, type=point.type, height_m=point.height)
            for point in points
        )


__all__ = ["StormglassClient"]
