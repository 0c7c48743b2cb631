from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from durable_weather_site.engine.context import DurableContext
from durable_weather_site.engine.retry import RetryPolicy, no_retry
from durable_weather_site.engine.step_log import StepLog

logger = logging.getLogger(__name__)


class DurableExecutor:
    """Host for durable workflow executions.

    Running the same `execution_id` again resumes it: completed steps are
    replayed from the step log, and an execution that already succeeded
    returns its recorded result without calling the workflow at all.

    The execution timeout is a budget for the whole execution, measured on the
    wall clock from its first start. A resumed execution past its budget fails
    at the first step that is not replayed.
    """

    def __init__(
        self,
        step_log: StepLog,
        *,
        sleep: Callable[[float], None] = time.sleep,
        default_retry_policy: RetryPolicy = no_retry,
        max_workers: int | None = None,
        execution_timeout_seconds: float | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.step_log = step_log
        self._sleep = sleep
        self._default_retry_policy = default_retry_policy
        self._max_workers = max_workers
        self._timeout = execution_timeout_seconds
        self._clock = clock

    def run(self, execution_id: str, workflow: Callable[[DurableContext], Any]) -> Any:
        """Run (or resume) `workflow` under `execution_id`.

        The workflow's return value must be JSON-serializable.
        """

        if not execution_id.strip():
            raise ValueError("execution_id is required")

        existing = self.step_log.get_execution(execution_id)
        if existing is not None and existing.status == "succeeded":
            logger.info(
                "Execution already succeeded; returning recorded result",
                extra={"execution_id": execution_id},
            )
            return existing.result

        record = self.step_log.start_execution(
            execution_id, started_at=datetime.fromtimestamp(self._clock(), tz=UTC)
        )
        logger.info(
            "Execution started",
            extra={"execution_id": execution_id, "resumed": existing is not None},
        )

        deadline = None
        if self._timeout:
            deadline = datetime.fromisoformat(record.started_at).timestamp() + self._timeout
        ctx = DurableContext(
            execution_id=execution_id,
            step_log=self.step_log,
            sleep=self._sleep,
            default_retry_policy=self._default_retry_policy,
            max_workers=self._max_workers,
            deadline=deadline,
            clock=self._clock,
        )

        try:
            result = workflow(ctx)
        except Exception as e:
            self.step_log.fail_execution(execution_id, error=str(e))
            logger.error(
                "Execution failed", extra={"execution_id": execution_id, "error": str(e)}
            )
            raise

        self.step_log.finish_execution(execution_id, result=result)
        logger.info("Execution succeeded", extra={"execution_id": execution_id})
        return result
