#!/usr/bin/env python3
"""Programmatic workflow run example.

This demonstrates using the components directly:

* load settings from `.env`
* build the local-first capabilities
* run (or resume) one durable execution and print its result

The execution id is passed as an argument, so running the script twice with
the same id shows replay: the second run performs no calls at all.
"""

from __future__ import annotations

import argparse
from typing import Sequence

from durable_weather_site.config import WeatherSiteSettings
from durable_weather_site.logging import configure_logging
from durable_weather_site.main import build_dependencies, build_executor
from durable_weather_site.workflow import run_weather_site


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the weather site workflow once.")
    parser.add_argument("--execution-id", required=True, help="Execution to run or resume")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = WeatherSiteSettings()
    configure_logging(settings.log_level)

    result = run_weather_site(
        build_executor(settings), args.execution_id, build_dependencies(settings), settings
    )
    if result.updated:
        print(f"Published new status: {result.status}")
    else:
        print(f"Status unchanged: {result.status}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
