"""CLI entrypoint hosting the weather site workflow.

Each `run` is one invocation: a scheduler calls it, and calling it again with
the same execution id resumes rather than repeats.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import UTC, datetime, timedelta

from pydantic import ValidationError

from durable_weather_site import __version__
from durable_weather_site.adapters import (
    FileBlobStore,
    FileSecretStore,
    InvalidationLog,
    JsonKeyValueStore,
    RequestsHttpFetch,
)
from durable_weather_site.capabilities import WorkflowDependencies
from durable_weather_site.config import WeatherSiteSettings
from durable_weather_site.engine import DurableExecutor, StepLog
from durable_weather_site.errors import WeatherSiteError
from durable_weather_site.logging import configure_logging
from durable_weather_site.render import render_site
from durable_weather_site.workflow import run_weather_site

logger = logging.getLogger(__name__)


def default_execution_id(now: datetime | None = None) -> str:
    """One execution id per UTC minute, so a retried trigger resumes the same run."""

    now = now or datetime.now(tz=UTC)
    return "run-" + now.astimezone(UTC).strftime("%Y%m%dT%H%M")


def build_dependencies(settings: WeatherSiteSettings) -> WorkflowDependencies:
    return WorkflowDependencies(
        kv_store=JsonKeyValueStore(settings.parameters_file),
        secrets=FileSecretStore(settings.secrets_dir),
        http=RequestsHttpFetch(timeout=settings.http_timeout_seconds),
        blobs=FileBlobStore(settings.bucket_dir),
        cache=InvalidationLog(settings.invalidation_log_file),
    )


def build_executor(settings: WeatherSiteSettings) -> DurableExecutor:
    return DurableExecutor(
        StepLog(settings.step_log_file),
        execution_timeout_seconds=settings.execution_timeout_seconds,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="weather-site",
        description="Publish an 'Is it <weather>ing?' page when the weather changes",
    )
    parser.add_argument(
        "--version", action="version", version=f"durable-weather-site {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Run (or resume) the workflow once")
    run.add_argument(
        "--execution-id",
        default=None,
        help="Execution to run or resume (defaults to one id per UTC minute)",
    )

    init = subparsers.add_parser("init", help="Seed the recorded site status")
    init.add_argument(
        "--force",
        action="store_true",
        help="Overwrite the recorded status if it already exists",
    )

    render = subparsers.add_parser("render", help="Print the page for a status without publishing")
    render.add_argument("--status", required=True, help="e.g. 'snow' or 'no snow'")

    subparsers.add_parser("executions", help="List recorded executions")

    prune = subparsers.add_parser("prune", help="Drop old executions from the step log")
    prune.add_argument(
        "--days",
        type=int,
        default=None,
        help="Retention in days (defaults to STEP_LOG_RETENTION_DAYS)",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = WeatherSiteSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(settings.log_level)

    try:
        if args.command == "run":
            execution_id = args.execution_id or default_execution_id()
            deps = build_dependencies(settings)
            try:
                result = run_weather_site(build_executor(settings), execution_id, deps, settings)
            finally:
                if isinstance(deps.http, RequestsHttpFetch):
                    deps.http.close()
            print(json.dumps(result.model_dump(mode="json")))
            return 0

        if args.command == "init":
            store = JsonKeyValueStore(settings.parameters_file)
            if store.exists(settings.status_param_name) and not args.force:
                print(f"Status {settings.status_param_name!r} already set; use --force to reset")
                return 0
            store.put(settings.status_param_name, settings.initial_status)
            print(f"Seeded {settings.status_param_name!r} with {settings.initial_status!r}")
            return 0

        if args.command == "render":
            print(
                render_site(
                    status=args.status,
                    weather_type=settings.weather_type,
                    location_name=settings.location_name,
                    reference_url=settings.open_weather_url,
                )
            )
            return 0

        if args.command == "executions":
            executions = StepLog(settings.step_log_file).list_executions()
            print(json.dumps([e.model_dump(mode="json") for e in executions], indent=2))
            return 0

        if args.command == "prune":
            days = args.days if args.days is not None else settings.step_log_retention_days
            cutoff = datetime.now(tz=UTC) - timedelta(days=days)
            removed = StepLog(settings.step_log_file).prune(older_than=cutoff)
            print(f"Removed {removed} execution(s)")
            return 0

        logger.error("Unknown command", extra={"command": args.command})
        return 2

    except WeatherSiteError as e:
        logger.error(str(e), extra={"error_type": type(e).__name__})
        print(f"Workflow failed: {e}", file=sys.stderr)
        return 1

    except Exception:
        logger.exception("Command failed")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
