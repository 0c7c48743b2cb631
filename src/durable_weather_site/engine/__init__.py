"""Durable step execution.

Provides named, replayable steps with retry policies, a fork-join parallel
block, and an executor that persists step results so a re-run of the same
execution resumes instead of repeating side effects.
"""

from durable_weather_site.engine.context import DurableContext
from durable_weather_site.engine.executor import DurableExecutor
from durable_weather_site.engine.retry import (
    RetryDecision,
    RetryPolicy,
    exponential_backoff,
    no_retry,
)
from durable_weather_site.engine.step_log import ExecutionRecord, StepLog, StepRecord

__all__ = [
    "DurableContext",
    "DurableExecutor",
    "ExecutionRecord",
    "RetryDecision",
    "RetryPolicy",
    "StepLog",
    "StepRecord",
    "exponential_backoff",
    "no_retry",
]
