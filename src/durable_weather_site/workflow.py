"""The weather site workflow.

Reads the last published status, observes the current weather, and only when
the two differ publishes a new page, then records the new status and
invalidates the cached page in parallel.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from pydantic import BaseModel

from durable_weather_site.capabilities import WorkflowDependencies
from durable_weather_site.config import WeatherSiteSettings
from durable_weather_site.engine import (
    DurableContext,
    DurableExecutor,
    RetryPolicy,
    exponential_backoff,
)
from durable_weather_site.render import CONTENT_TYPE, SITE_KEY, SITE_PATH, render_site
from durable_weather_site.weather import observe

logger = logging.getLogger(__name__)

WEATHER_RETRY_POLICY: RetryPolicy = exponential_backoff(
    max_attempts=3, initial_delay_seconds=2, max_delay_seconds=30
)


class WorkflowResult(BaseModel):
    status: str
    updated: bool


def _caller_reference() -> str:
    return datetime.now(tz=UTC).isoformat()


def weather_site_workflow(
    ctx: DurableContext,
    deps: WorkflowDependencies,
    settings: WeatherSiteSettings,
) -> WorkflowResult:
    site_status: str = ctx.step(
        "get-site-status",
        lambda: deps.kv_store.get(settings.status_param_name),
    )

    # Never recorded: the API key must not land in the step log.
    api_key: str = ctx.step(
        "get-api-key",
        lambda: deps.secrets.get_secret(settings.api_key_secret_id),
        ephemeral=True,
    )

    current_weather: str = ctx.step(
        "get-weather",
        lambda: observe(
            deps.http,
            lat=settings.weather_location_lat,
            lon=settings.weather_location_lon,
            api_key=api_key,
            weather_type=settings.weather_type,
            base_url=settings.weather_api_base_url,
        ),
        retry_policy=WEATHER_RETRY_POLICY,
    )

    if current_weather == site_status:
        logger.info(
            "Weather unchanged; nothing to publish",
            extra={"execution_id": ctx.execution_id, "status": current_weather},
        )
        return WorkflowResult(status=current_weather, updated=False)

    logger.info(
        "Weather changed; publishing",
        extra={
            "execution_id": ctx.execution_id,
            "previous": site_status,
            "status": current_weather,
        },
    )

    def update_site() -> None:
        html = render_site(
            status=current_weather,
            weather_type=settings.weather_type,
            location_name=settings.location_name,
            reference_url=settings.open_weather_url,
        )
        deps.blobs.put(SITE_KEY, html.encode("utf-8"), CONTENT_TYPE)

    ctx.step("update-site", update_site)

    ctx.parallel(
        "finish-update",
        [
            lambda branch: branch.step(
                "update-ssm",
                lambda: deps.kv_store.put(settings.status_param_name, current_weather),
            ),
            lambda branch: branch.step(
                "invalidate-cf",
                lambda: deps.cache.invalidate([SITE_PATH], _caller_reference()),
            ),
        ],
    )

    return WorkflowResult(status=current_weather, updated=True)


def run_weather_site(
    executor: DurableExecutor,
    execution_id: str,
    deps: WorkflowDependencies,
    settings: WeatherSiteSettings,
) -> WorkflowResult:
    """Run or resume one execution and return its result."""

    raw = executor.run(
        execution_id,
        lambda ctx: weather_site_workflow(ctx, deps, settings).model_dump(mode="json"),
    )
    return WorkflowResult.model_validate(raw)
