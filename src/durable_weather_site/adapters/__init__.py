"""Concrete capability implementations."""

from durable_weather_site.adapters.http import RequestsHttpFetch
from durable_weather_site.adapters.local import (
    FileBlobStore,
    FileSecretStore,
    InvalidationLog,
    JsonKeyValueStore,
)

__all__ = [
    "FileBlobStore",
    "FileSecretStore",
    "InvalidationLog",
    "JsonKeyValueStore",
    "RequestsHttpFetch",
]
