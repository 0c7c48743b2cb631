from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, TypeVar

from durable_weather_site.engine.retry import RetryPolicy, no_retry
from durable_weather_site.engine.step_log import StepLog
from durable_weather_site.errors import (
    DuplicateStepError,
    ExecutionTimeoutError,
    ParallelExecutionError,
    StepFailedError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DurableContext:
    """Execution context handed to a workflow body.

    Every side effect goes through `step` (or `parallel`), which consults the
    step log before running anything. A context is bound to one execution and
    one scope; `parallel` creates child contexts scoped under the block name.
    """

    def __init__(
        self,
        *,
        execution_id: str,
        step_log: StepLog,
        sleep: Callable[[float], None] = time.sleep,
        default_retry_policy: RetryPolicy = no_retry,
        max_workers: int | None = None,
        deadline: float | None = None,
        clock: Callable[[], float] = time.monotonic,
        scope: tuple[str, ...] = (),
    ) -> None:
        self.execution_id = execution_id
        self._log = step_log
        self._sleep = sleep
        self._default_retry_policy = default_retry_policy
        self._max_workers = max_workers
        self._deadline = deadline
        self._clock = clock
        self._scope = scope
        self._claimed: set[str] = set()
        self._claim_lock = threading.Lock()

    @property
    def scope(self) -> str:
        return "/".join(self._scope)

    def _claim(self, name: str) -> str:
        if not name or "/" in name:
            raise ValueError(f"Invalid step name: {name!r}")
        with self._claim_lock:
            if name in self._claimed:
                raise DuplicateStepError(f"Step {name!r} already used in scope {self.scope!r}")
            self._claimed.add(name)
        return "/".join((*self._scope, name))

    def _check_deadline(self, step: str) -> None:
        if self._deadline is not None and self._clock() >= self._deadline:
            raise ExecutionTimeoutError(
                f"Execution {self.execution_id!r} timed out before step {step!r}"
            )

    def _child(self, name: str, index: int) -> DurableContext:
        return DurableContext(
            execution_id=self.execution_id,
            step_log=self._log,
            sleep=self._sleep,
            default_retry_policy=self._default_retry_policy,
            max_workers=self._max_workers,
            deadline=self._deadline,
            clock=self._clock,
            scope=(*self._scope, name, str(index)),
        )

    def step(
        self,
        name: str,
        operation: Callable[[], T],
        retry_policy: RetryPolicy | None = None,
        *,
        ephemeral: bool = False,
    ) -> T:
        """Run `operation` at most once (effectively) for this execution.

        A step already recorded as completed returns its recorded result
        without calling `operation`. Ephemeral steps are never recorded and
        run again on replay; their result must be safe to recompute.
        """

        step = self._claim(name)
        extra = {"execution_id": self.execution_id, "step": step}

        if not ephemeral:
            recorded = self._log.get_step(self.execution_id, step)
            if recorded is not None:
                logger.debug("Step already completed; replaying recorded result", extra=extra)
                return recorded.result  # type: ignore[no-any-return]

        policy = retry_policy or self._default_retry_policy
        attempt = 0
        while True:
            self._check_deadline(step)
            attempt += 1
            try:
                result = operation()
                break
            except Exception as e:
                decision = policy(e, attempt)
                if not decision.should_retry:
                    logger.warning(
                        "Step failed",
                        extra={**extra, "attempt": attempt, "error": str(e)},
                    )
                    raise StepFailedError(step, attempt) from e

                logger.info(
                    "Step attempt failed; retrying",
                    extra={
                        **extra,
                        "attempt": attempt,
                        "delay_seconds": decision.delay_seconds,
                        "error": str(e),
                    },
                )
                if decision.delay_seconds > 0:
                    self._sleep(decision.delay_seconds)

        if not ephemeral:
            self._log.record_step(self.execution_id, step, result=result, attempts=attempt)
        logger.info("Step completed", extra={**extra, "attempts": attempt})
        return result

    def parallel(
        self,
        name: str,
        branches: Sequence[Callable[[DurableContext], Any]],
    ) -> list[Any]:
        """Run every branch concurrently and wait for all of them.

        Each branch gets a child context scoped under ``<name>/<index>``.
        Results are returned in branch order. If any branch fails, every
        failure is collected into one `ParallelExecutionError`.
        """

        block = self._claim(name)
        extra = {"execution_id": self.execution_id, "step": block}

        recorded = self._log.get_step(self.execution_id, block)
        if recorded is not None:
            logger.debug("Parallel block already completed; replaying", extra=extra)
            return recorded.result  # type: ignore[no-any-return]

        self._check_deadline(block)

        results: list[Any] = [None] * len(branches)
        errors: list[tuple[int, BaseException]] = []
        workers = self._max_workers or max(len(branches), 1)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=block) as pool:
            futures = {
                pool.submit(branch, self._child(name, idx)): idx
                for idx, branch in enumerate(branches)
            }
            for future in as_completed(futures):
                idx = futures[future]
                try:
                    results[idx] = future.result()
                except Exception as e:
                    errors.append((idx, e))

        if errors:
            errors.sort(key=lambda item: item[0])
            logger.warning(
                "Parallel block failed",
                extra={**extra, "failed_branches": [idx for idx, _ in errors]},
            )
            raise ParallelExecutionError(block, errors) from errors[0][1]

        self._log.record_step(self.execution_id, block, result=results)
        logger.info("Parallel block completed", extra={**extra, "branches": len(branches)})
        return results
