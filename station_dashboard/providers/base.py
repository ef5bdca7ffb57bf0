from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import requests
from requests import Response

from ..errors import DecodeError, NetworkError, UpstreamRejected


logger = logging.getLogger(__name__)


@dataclass
class RequestConfig:
    timeout: float = 15.0
    user_agent: str = "station-dashboard/1.0"


class HttpProvider:
    """Base class for HTTP providers: shared session, timeout and error mapping.

    Requests are never retried: a failed request surfaces at once and the
    next cache miss tries again.
    """

    name = "http"

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        request_config: Optional[RequestConfig] = None,
    ) -> None:
        self.request_config = request_config or RequestConfig()
        self.session = session or requests.Session()
        self._log = logging.getLogger(self.__class__.__name__)

    def _request(self, method: str, url: str, **kwargs) -> Response:
        headers = dict(kwargs.pop("headers", None) or {})
        headers.setdefault("User-Agent", self.request_config.user_agent)
        try:
            return self.session.request(
                method,
                url,
                headers=headers,
                timeout=self.request_config.timeout,
                **kwargs,
            )
        except requests.Timeout as exc:
            self._log.error("Request to %s timed out (%s)", self.name, exc.__class__.__name__)
            raise NetworkError(f"{self.name} request timed out") from exc
        except requests.RequestException as exc:
            self._log.error("Request to %s failed (%s)", self.name, exc.__class__.__name__)
            raise NetworkError(f"{self.name} connection error: {exc.__class__.__name__}") from exc

    def _json(self, response: Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            if response.status_code >= 400:
                raise self._http_error(response) from exc
            self._log.error("Failed to decode JSON from %s: %s", self.name, exc)
            raise DecodeError(f"{self.name} returned invalid JSON") from exc

    def _http_error(self, response: Response) -> UpstreamRejected:
        if response.status_code == 429:
            self._log.warning("Quota exceeded at %s: %s", self.name, response.text[:200])
            return UpstreamRejected("quota exceeded")
        self._log.error("%s returned HTTP %s: %s", self.name, response.status_code, response.text[:200])
        return UpstreamRejected(f"HTTP {response.status_code}")


__all__ = ["HttpProvider", "RequestConfig"]
