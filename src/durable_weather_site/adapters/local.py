"""Filesystem-backed implementations of the workflow capabilities.

These keep everything under one local state directory, so the workflow can be
run and inspected without any cloud account.
"""

from __future__ import annotations

import json
import logging
import os
import re
import threading
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from durable_weather_site.errors import ParameterNotFoundError, SecretNotFoundError

logger = logging.getLogger(__name__)

SECRET_ENV_PREFIX = "WEATHER_SITE_SECRET_"


def _write_atomic(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_bytes(data)
    tmp.replace(path)


def _dump_json(obj: object) -> bytes:
    return (json.dumps(obj, indent=2, ensure_ascii=False) + "\n").encode("utf-8")


@dataclass
class JsonKeyValueStore:
    """String parameters persisted as one JSON object."""

    path: Path

    def __post_init__(self) -> None:
        self._lock = threading.Lock()

    def _load_unlocked(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning(
                "Parameter file is not valid JSON; treating as empty",
                extra={"path": str(self.path)},
            )
            return {}
        if not isinstance(raw, dict):
            logger.warning(
                "Parameter file has unexpected shape; treating as empty",
                extra={"path": str(self.path)},
            )
            return {}
        return {str(k): str(v) for k, v in raw.items()}

    def get(self, key: str) -> str:
        with self._lock:
            params = self._load_unlocked()
        if key not in params:
            raise ParameterNotFoundError(key)
        return params[key]

    def put(self, key: str, value: str) -> None:
        with self._lock:
            params = self._load_unlocked()
            params[key] = value
            _write_atomic(self.path, _dump_json(params))
        logger.debug("Parameter written", extra={"key": key})

    def exists(self, key: str) -> bool:
        with self._lock:
            return key in self._load_unlocked()


@dataclass
class FileSecretStore:
    """Secrets read from the environment or from one file per secret id.

    The environment variable ``WEATHER_SITE_SECRET_<ID>`` wins over the file,
    where ``<ID>`` is the secret id upper-cased with non-alphanumerics
    replaced by ``_``.
    """

    directory: Path

    @staticmethod
    def env_var_for(secret_id: str) -> str:
        return SECRET_ENV_PREFIX + re.sub(r"[^A-Za-z0-9]", "_", secret_id).upper()

    def get_secret(self, secret_id: str) -> str:
        from_env = os.environ.get(self.env_var_for(secret_id))
        if from_env:
            return from_env

        path = self.directory / secret_id
        if not path.is_file():
            raise SecretNotFoundError(secret_id)
        value = path.read_text(encoding="utf-8").strip()
        if not value:
            raise SecretNotFoundError(secret_id)
        return value


@dataclass
class FileBlobStore:
    """Objects written under a root directory, with a content-type sidecar."""

    root: Path

    def _object_path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if not path.is_relative_to(self.root.resolve()):
            raise ValueError(f"Blob key escapes the store root: {key!r}")
        return path

    def put(self, key: str, body: bytes, content_type: str) -> None:
        path = self._object_path(key)
        _write_atomic(path, body)
        _write_atomic(
            path.with_name(path.name + ".meta.json"),
            _dump_json({"content_type": content_type, "size": len(body)}),
        )
        logger.info("Object written", extra={"key": key, "content_type": content_type})

    def read(self, key: str) -> bytes:
        return self._object_path(key).read_bytes()

    def content_type(self, key: str) -> str | None:
        meta = self._object_path(key)
        meta = meta.with_name(meta.name + ".meta.json")
        if not meta.exists():
            return None
        value = json.loads(meta.read_text(encoding="utf-8")).get("content_type")
        return value if isinstance(value, str) else None


class InvalidationRecord(BaseModel):
    paths: list[str] = Field(default_factory=list)
    dedupe_token: str
    created_at: str


@dataclass
class InvalidationLog:
    """Cache invalidations appended to a JSON list.

    A dedupe token that was already seen is ignored, mirroring how a CDN
    treats a repeated caller reference.
    """

    path: Path

    def __post_init__(self) -> None:
        self._lock = threading.Lock()

    def _load_unlocked(self) -> list[InvalidationRecord]:
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning(
                "Invalidation log is not valid JSON; treating as empty",
                extra={"path": str(self.path)},
            )
            return []
        if isinstance(raw, list):
            try:
                return [InvalidationRecord.model_validate(item) for item in raw]
            except ValidationError:
                pass
        logger.warning(
            "Invalidation log has unexpected shape; treating as empty",
            extra={"path": str(self.path)},
        )
        return []

    def list(self) -> list[InvalidationRecord]:
        with self._lock:
            return self._load_unlocked()

    def invalidate(self, paths: list[str], dedupe_token: str) -> None:
        with self._lock:
            records = self._load_unlocked()
            if any(r.dedupe_token == dedupe_token for r in records):
                logger.info(
                    "Duplicate invalidation ignored", extra={"dedupe_token": dedupe_token}
                )
                return
            records.append(
                InvalidationRecord(
                    paths=list(paths),
                    dedupe_token=dedupe_token,
                    created_at=datetime.now(tz=UTC).isoformat(),
                )
            )
            _write_atomic(self.path, _dump_json([r.model_dump(mode="json") for r in records]))
        logger.info("Invalidation created", extra={"paths": list(paths)})
