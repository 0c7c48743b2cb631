"""Persisted log of completed steps, keyed by (execution_id, step).

The log is what makes replay safe: a step is consulted here before its
operation runs and recorded here after the operation succeeds. Everything is
kept in one JSON file, guarded by a lock so parallel branches can record
concurrently.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


class StepRecord(BaseModel):
    execution_id: str
    step: str
    status: str = Field(default="succeeded")
    result: Any = None
    attempts: int = Field(default=1, ge=1)
    completed_at: str


class ExecutionRecord(BaseModel):
    execution_id: str
    status: str = Field(description="One of: running | succeeded | failed")
    started_at: str
    updated_at: str

    result: Any = None
    error: str | None = None


class _LogFile(BaseModel):
    executions: list[ExecutionRecord] = Field(default_factory=list)
    steps: list[StepRecord] = Field(default_factory=list)


def _utc_iso_now() -> str:
    return datetime.now(tz=UTC).isoformat()


@dataclass
class StepLog:
    path: Path

    def __post_init__(self) -> None:
        self._lock = threading.Lock()

    def _load_unlocked(self) -> _LogFile:
        if not self.path.exists():
            return _LogFile()
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning(
                "Step log is not valid JSON; treating as empty", extra={"path": str(self.path)}
            )
            return _LogFile()
        if isinstance(raw, dict):
            try:
                return _LogFile.model_validate(raw)
            except ValidationError:
                pass
        logger.warning(
            "Step log has unexpected shape; treating as empty", extra={"path": str(self.path)}
        )
        return _LogFile()

    def _save_unlocked(self, data: _LogFile) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(
            json.dumps(data.model_dump(mode="json"), indent=2, ensure_ascii=False) + "\n",
            encoding="utf-8",
        )
        tmp.replace(self.path)

    def get_step(self, execution_id: str, step: str) -> StepRecord | None:
        with self._lock:
            for record in self._load_unlocked().steps:
                if record.execution_id == execution_id and record.step == step:
                    return record
            return None

    def record_step(
        self, execution_id: str, step: str, *, result: Any, attempts: int = 1
    ) -> StepRecord:
        record = StepRecord(
            execution_id=execution_id,
            step=step,
            result=result,
            attempts=attempts,
            completed_at=_utc_iso_now(),
        )
        with self._lock:
            data = self._load_unlocked()
            data.steps = [
                s for s in data.steps if not (s.execution_id == execution_id and s.step == step)
            ]
            data.steps.append(record)
            self._save_unlocked(data)
        return record

    def list_steps(self, execution_id: str) -> list[StepRecord]:
        with self._lock:
            return [s for s in self._load_unlocked().steps if s.execution_id == execution_id]

    def get_execution(self, execution_id: str) -> ExecutionRecord | None:
        with self._lock:
            for record in self._load_unlocked().executions:
                if record.execution_id == execution_id:
                    return record
            return None

    def list_executions(self) -> list[ExecutionRecord]:
        with self._lock:
            return self._load_unlocked().executions

    def start_execution(
        self, execution_id: str, *, started_at: datetime | None = None
    ) -> ExecutionRecord:
        """Mark an execution as running, creating it if needed.

        `started_at` is only used when the execution is created; a previously
        failed execution keeps its original `started_at`.
        """

        with self._lock:
            data = self._load_unlocked()
            now = _utc_iso_now()
            for idx, record in enumerate(data.executions):
                if record.execution_id != execution_id:
                    continue
                merged = record.model_copy(
                    update={"status": "running", "updated_at": now, "error": None}
                )
                data.executions[idx] = merged
                self._save_unlocked(data)
                return merged

            created = ExecutionRecord(
                execution_id=execution_id,
                status="running",
                started_at=started_at.isoformat() if started_at else now,
                updated_at=now,
            )
            data.executions.append(created)
            self._save_unlocked(data)
            return created

    def finish_execution(self, execution_id: str, *, result: Any) -> ExecutionRecord:
        return self._update_execution(execution_id, status="succeeded", result=result)

    def fail_execution(self, execution_id: str, *, error: str) -> ExecutionRecord:
        return self._update_execution(execution_id, status="failed", error=error)

    def _update_execution(self, execution_id: str, **updates: object) -> ExecutionRecord:
        with self._lock:
            data = self._load_unlocked()
            for idx, record in enumerate(data.executions):
                if record.execution_id != execution_id:
                    continue
                merged = record.model_copy(update={"updated_at": _utc_iso_now(), **updates})
                data.executions[idx] = merged
                self._save_unlocked(data)
                return merged
            raise KeyError(execution_id)

    def prune(self, *, older_than: datetime) -> int:
        """Drop executions (and their steps) last updated before `older_than`.

        Returns the number of executions removed.
        """

        with self._lock:
            data = self._load_unlocked()
            stale = {
                e.execution_id
                for e in data.executions
                if datetime.fromisoformat(e.updated_at) < older_than
            }
            if not stale:
                return 0
            data.executions = [e for e in data.executions if e.execution_id not in stale]
            data.steps = [s for s in data.steps if s.execution_id not in stale]
            self._save_unlocked(data)

        logger.info("Pruned step log", extra={"executions_removed": len(stale)})
        return len(stale)
