"""HTTP fetch capability backed by `requests`."""

from __future__ import annotations

import logging

import requests

from durable_weather_site.capabilities import HttpResponse
from durable_weather_site.errors import TransientExternalError

logger = logging.getLogger(__name__)


class RequestsHttpFetch:
    def __init__(self, *, session: requests.Session | None = None, timeout: float = 30) -> None:
        self._session = session or requests.Session()
        self._session.headers.update(
            {"Accept": "application/json", "User-Agent": "durable-weather-site"}
        )
        self._timeout = timeout

    def get(self, url: str) -> HttpResponse:
        try:
            resp = self._session.get(url, timeout=self._timeout)
        except requests.RequestException as e:
            # The URL carries the API key as a query parameter; keep it out of the message.
            raise TransientExternalError(f"HTTP request failed: {type(e).__name__}") from None

        body: object = None
        if resp.content:
            try:
                body = resp.json()
            except ValueError:
                logger.debug("Response body is not JSON", extra={"status": resp.status_code})
        return HttpResponse(status=resp.status_code, json_body=body)

    def close(self) -> None:
        self._session.close()
