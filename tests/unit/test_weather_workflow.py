"""Unit tests for the weather site workflow (fake capabilities)."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime

import pytest

from durable_weather_site.capabilities import HttpResponse
from durable_weather_site.config import WeatherSiteSettings
from durable_weather_site.engine import DurableExecutor, StepLog
from durable_weather_site.errors import (
    ParallelExecutionError,
    StepFailedError,
    WeatherApiError,
)
from durable_weather_site.workflow import WorkflowResult, run_weather_site
from fakes import (
    FakeBlobStore,
    FakeCacheInvalidator,
    FakeHttpFetch,
    FakeKeyValueStore,
    FakeSecretStore,
    weather_response,
)


def test_returns_early_when_weather_matches_site_status(
    executor: DurableExecutor,
    settings: WeatherSiteSettings,
    make_deps,
    kv_store: FakeKeyValueStore,
    blobs: FakeBlobStore,
    cache: FakeCacheInvalidator,
) -> None:
    kv_store.values["test-status-param"] = "snow"
    http = FakeHttpFetch(weather_response("Snow"))

    result = run_weather_site(executor, "exec-1", make_deps(http), settings)

    assert result == WorkflowResult(status="snow", updated=False)
    assert blobs.puts == []
    assert kv_store.puts == []
    assert cache.calls == []


def test_publishes_yes_and_red_when_weather_starts(
    executor: DurableExecutor,
    settings: WeatherSiteSettings,
    make_deps,
    kv_store: FakeKeyValueStore,
    blobs: FakeBlobStore,
    cache: FakeCacheInvalidator,
) -> None:
    http = FakeHttpFetch(weather_response("Snow"))

    result = run_weather_site(executor, "exec-1", make_deps(http), settings)

    assert result == WorkflowResult(status="snow", updated=True)
    assert len(blobs.puts) == 1
    key, _, content_type = blobs.puts[0]
    assert key == "index.html"
    assert content_type == "text/html"

    html = blobs.uploaded_html()
    assert "YES!!!" in html
    assert "background-color: red" in html
    assert "<title>Is it snowing in Hillsboro, Oregon?</title>" in html

    assert kv_store.puts == [("test-status-param", "snow")]
    assert len(cache.calls) == 1
    paths, token = cache.calls[0]
    assert paths == ["/index.html"]
    datetime.fromisoformat(token)


def test_publishes_no_and_green_when_weather_stops(
    executor: DurableExecutor,
    settings: WeatherSiteSettings,
    make_deps,
    kv_store: FakeKeyValueStore,
    blobs: FakeBlobStore,
) -> None:
    kv_store.values["test-status-param"] = "snow"
    http = FakeHttpFetch(weather_response("Clear"))

    result = run_weather_site(executor, "exec-1", make_deps(http), settings)

    assert result == WorkflowResult(status="no snow", updated=True)
    html = blobs.uploaded_html()
    assert "NO." in html
    assert "background-color: green" in html
    assert kv_store.puts == [("test-status-param", "no snow")]


@pytest.mark.parametrize(
    ("weather_type", "main", "title"),
    [
        ("haze", "Haze", "<title>Is it hazing in Hillsboro, Oregon?</title>"),
        ("clouds", "Clouds", "<title>Is it clouding in Hillsboro, Oregon?</title>"),
    ],
)
def test_title_uses_ing_suffix_rule(
    executor: DurableExecutor,
    settings: WeatherSiteSettings,
    make_deps,
    kv_store: FakeKeyValueStore,
    blobs: FakeBlobStore,
    weather_type: str,
    main: str,
    title: str,
) -> None:
    settings = settings.model_copy(update={"weather_type": weather_type})
    kv_store.values["test-status-param"] = f"no {weather_type}"

    run_weather_site(executor, "exec-1", make_deps(FakeHttpFetch(weather_response(main))), settings)

    assert title in blobs.uploaded_html()


def test_weather_fetch_retries_with_backoff(
    executor: DurableExecutor,
    settings: WeatherSiteSettings,
    make_deps,
    sleeps: list[float],
) -> None:
    http = FakeHttpFetch(
        HttpResponse(status=500),
        HttpResponse(status=503),
        weather_response("Snow"),
    )

    result = run_weather_site(executor, "exec-1", make_deps(http), settings)

    assert result.status == "snow"
    assert len(http.urls) == 3
    assert sleeps == [2, 4]


def test_weather_fetch_gives_up_after_three_attempts_without_writes(
    executor: DurableExecutor,
    settings: WeatherSiteSettings,
    make_deps,
    kv_store: FakeKeyValueStore,
    blobs: FakeBlobStore,
    cache: FakeCacheInvalidator,
    sleeps: list[float],
) -> None:
    http = FakeHttpFetch(HttpResponse(status=500))

    with pytest.raises(StepFailedError) as excinfo:
        run_weather_site(executor, "exec-1", make_deps(http), settings)

    assert excinfo.value.step == "get-weather"
    assert excinfo.value.attempts == 3
    assert isinstance(excinfo.value.__cause__, WeatherApiError)
    assert len(http.urls) == 3
    assert sleeps == [2, 4]
    assert blobs.puts == []
    assert kv_store.puts == []
    assert cache.calls == []
    assert executor.step_log.get_execution("exec-1").status == "failed"


def test_fetch_url_carries_location_and_api_key(
    executor: DurableExecutor, settings: WeatherSiteSettings, make_deps
) -> None:
    http = FakeHttpFetch(weather_response("Snow"))

    run_weather_site(executor, "exec-1", make_deps(http), settings)

    assert http.urls == [
        "https://api.openweathermap.org/data/3.0/onecall?units=imperial"
        "&exclude=minutely,hourly,daily,alerts&lat=45.5229&lon=-122.9898&appid=test-api-key"
    ]


def test_api_key_is_not_persisted_in_step_log(
    executor: DurableExecutor,
    settings: WeatherSiteSettings,
    make_deps,
    step_log: StepLog,
) -> None:
    run_weather_site(executor, "exec-1", make_deps(FakeHttpFetch(weather_response("Snow"))), settings)

    assert "test-api-key" not in step_log.path.read_text(encoding="utf-8")
    steps = {s.step for s in step_log.list_steps("exec-1")}
    assert steps == {
        "get-site-status",
        "get-weather",
        "update-site",
        "finish-update",
        "finish-update/0/update-ssm",
        "finish-update/1/invalidate-cf",
    }


def test_failed_finish_branch_resumes_without_repeating_completed_steps(
    settings: WeatherSiteSettings,
    step_log: StepLog,
    sleeps: list[float],
    make_deps,
    kv_store: FakeKeyValueStore,
    secrets: FakeSecretStore,
    blobs: FakeBlobStore,
    cache: FakeCacheInvalidator,
) -> None:
    executor = DurableExecutor(step_log, sleep=sleeps.append)
    http = FakeHttpFetch(weather_response("Snow"))
    cache.error = RuntimeError("distribution busy")

    with pytest.raises(ParallelExecutionError):
        run_weather_site(executor, "exec-1", make_deps(http), settings)

    # The status write branch took effect; the invalidation did not.
    assert kv_store.puts == [("test-status-param", "snow")]
    assert len(blobs.puts) == 1

    cache.error = None
    result = run_weather_site(executor, "exec-1", make_deps(http), settings)

    assert result == WorkflowResult(status="snow", updated=True)
    assert kv_store.gets == ["test-status-param"]
    assert len(http.urls) == 1
    assert len(blobs.puts) == 1
    assert kv_store.puts == [("test-status-param", "snow")]
    assert len(cache.calls) == 2
    # The API key is re-read on resume because it is never recorded.
    assert secrets.calls == ["weather-site-api-key", "weather-site-api-key"]


def test_succeeded_execution_replays_result_without_any_calls(
    executor: DurableExecutor,
    settings: WeatherSiteSettings,
    make_deps,
    kv_store: FakeKeyValueStore,
    secrets: FakeSecretStore,
) -> None:
    http = FakeHttpFetch(weather_response("Snow"))
    first = run_weather_site(executor, "exec-1", make_deps(http), settings)

    second = run_weather_site(executor, "exec-1", make_deps(http), settings)

    assert second == first
    assert len(kv_store.gets) == 1
    assert len(secrets.calls) == 1
    assert len(http.urls) == 1


class ThrottledKeyValueStore(FakeKeyValueStore):
    def put(self, key: str, value: str) -> None:
        raise RuntimeError("write throttled")


def test_next_run_after_partial_failure_updates_again(
    executor: DurableExecutor,
    settings: WeatherSiteSettings,
    make_deps,
    blobs: FakeBlobStore,
) -> None:
    deps = replace(
        make_deps(FakeHttpFetch(weather_response("Snow"))),
        kv_store=ThrottledKeyValueStore({"test-status-param": "no snow"}),
    )

    with pytest.raises(ParallelExecutionError):
        run_weather_site(executor, "exec-1", deps, settings)

    # A fresh execution still sees the old status and publishes again.
    result = run_weather_site(
        executor, "exec-2", make_deps(FakeHttpFetch(weather_response("Snow"))), settings
    )
    assert result == WorkflowResult(status="snow", updated=True)
    assert len(blobs.puts) == 2
