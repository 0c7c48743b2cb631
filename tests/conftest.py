"""Test configuration and fixtures."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest
from fakes import (
    FakeBlobStore,
    FakeCacheInvalidator,
    FakeHttpFetch,
    FakeKeyValueStore,
    FakeSecretStore,
)

from durable_weather_site.capabilities import WorkflowDependencies
from durable_weather_site.config import WeatherSiteSettings
from durable_weather_site.engine import DurableExecutor, StepLog


@pytest.fixture
def settings(tmp_path: Path) -> WeatherSiteSettings:
    """Provide test site settings isolated from any local `.env`."""
    return WeatherSiteSettings(
        _env_file=None,
        LOCATION_NAME="Hillsboro, Oregon",
        OPEN_WEATHER_URL="https://openweathermap.org/city/5731371",
        WEATHER_TYPE="snow",
        WEATHER_LOCATION_LAT="45.5229",
        WEATHER_LOCATION_LON="-122.9898",
        SSM_PARAM_NAME="test-status-param",
        API_KEY_SECRET_ID="weather-site-api-key",
        WEATHER_SITE_STATE_PATH=str(tmp_path / "state"),
    )


@pytest.fixture
def step_log(tmp_path: Path) -> StepLog:
    return StepLog(tmp_path / "state" / "steps.json")


@pytest.fixture
def sleeps() -> list[float]:
    """Delays requested by the engine, recorded instead of slept."""
    return []


@pytest.fixture
def executor(step_log: StepLog, sleeps: list[float]) -> DurableExecutor:
    return DurableExecutor(step_log, sleep=sleeps.append)


@pytest.fixture
def kv_store() -> FakeKeyValueStore:
    return FakeKeyValueStore({"test-status-param": "no snow"})


@pytest.fixture
def secrets() -> FakeSecretStore:
    return FakeSecretStore({"weather-site-api-key": "test-api-key"})


@pytest.fixture
def blobs() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture
def cache() -> FakeCacheInvalidator:
    return FakeCacheInvalidator()


@pytest.fixture
def make_deps(
    kv_store: FakeKeyValueStore,
    secrets: FakeSecretStore,
    blobs: FakeBlobStore,
    cache: FakeCacheInvalidator,
) -> Callable[[FakeHttpFetch], WorkflowDependencies]:
    """Build dependencies around the shared fakes with a per-test HTTP fake."""

    def _make(http: FakeHttpFetch) -> WorkflowDependencies:
        return WorkflowDependencies(
            kv_store=kv_store, secrets=secrets, http=http, blobs=blobs, cache=cache
        )

    return _make
