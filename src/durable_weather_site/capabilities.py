"""Capabilities the workflow consumes from the outside world.

The workflow never builds its own clients; the hosting process constructs
implementations of these protocols and passes them in through
`WorkflowDependencies`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol


@dataclass(frozen=True, slots=True)
class HttpResponse:
    status: int
    json_body: Any = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class KeyValueStore(Protocol):
    def get(self, key: str) -> str: ...

    def put(self, key: str, value: str) -> None: ...


class SecretStore(Protocol):
    def get_secret(self, secret_id: str) -> str: ...


class HttpFetch(Protocol):
    def get(self, url: str) -> HttpResponse: ...


class BlobStore(Protocol):
    def put(self, key: str, body: bytes, content_type: str) -> None: ...


class CacheInvalidator(Protocol):
    def invalidate(self, paths: list[str], dedupe_token: str) -> None: ...


@dataclass(frozen=True, slots=True)
class WorkflowDependencies:
    """Explicitly constructed collaborators for one workflow host."""

    kv_store: KeyValueStore
    secrets: SecretStore
    http: HttpFetch
    blobs: BlobStore
    cache: CacheInvalidator
