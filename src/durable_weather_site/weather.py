"""OpenWeather One Call lookups and condition classification."""

from __future__ import annotations

from typing import Any
from urllib.parse import urlencode

from durable_weather_site.capabilities import HttpFetch
from durable_weather_site.errors import TransientExternalError, WeatherApiError

DEFAULT_API_BASE_URL = "https://api.openweathermap.org/data/3.0/onecall"


def build_weather_url(
    *, lat: str, lon: str, api_key: str, base_url: str = DEFAULT_API_BASE_URL
) -> str:
    query = urlencode(
        {
            "units": "imperial",
            "exclude": "minutely,hourly,daily,alerts",
            "lat": lat,
            "lon": lon,
            "appid": api_key,
        },
        safe=",",
    )
    return f"{base_url.rstrip('/')}?{query}"


def extract_condition(body: Any) -> str:
    """Return ``current.weather[0].main`` lower-cased."""

    try:
        main = body["current"]["weather"][0]["main"]
    except (KeyError, IndexError, TypeError) as e:
        raise TransientExternalError("Weather API response is missing current.weather") from e
    if not isinstance(main, str):
        raise TransientExternalError("Weather API response has a non-string condition")
    return main.lower()


def classify(condition: str, weather_type: str) -> str:
    """Map a condition to ``weather_type`` or ``"no <weather_type>"``."""

    target = weather_type.lower()
    return target if target in condition.lower() else f"no {target}"


def observe(
    http: HttpFetch,
    *,
    lat: str,
    lon: str,
    api_key: str,
    weather_type: str,
    base_url: str = DEFAULT_API_BASE_URL,
) -> str:
    """Fetch current conditions once and classify them against `weather_type`."""

    url = build_weather_url(lat=lat, lon=lon, api_key=api_key, base_url=base_url)
    response = http.get(url)
    if not response.ok:
        raise WeatherApiError(response.status)
    return classify(extract_condition(response.json_body), weather_type)
