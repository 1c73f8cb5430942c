from __future__ import annotations

import threading

from app.integrations.storage.base import DEFAULT_DOWNLOAD_HOST, ObjectNotFoundError, ObjectStore


class MemoryObjectStore(ObjectStore):
    """Process-local bucket for dev runs and tests."""

    name = "memory"

    def __init__(self, bucket: str = "local-bucket", *, download_host: str = DEFAULT_DOWNLOAD_HOST):
        super().__init__(bucket, download_host=download_host)
        self._objects: dict[str, dict] = {}
        self._lock = threading.Lock()

    def put(self, object_name: str, data: bytes = b"", metadata: dict | None = None) -> None:
        with self._lock:
            self._objects[object_name] = {"data": bytes(data), "metadata": dict(metadata or {})}

    def read(self, object_name: str) -> bytes:
        with self._lock:
            entry = self._objects.get(object_name)
            if entry is None:
                raise ObjectNotFoundError(object_name)
            return entry["data"]

    def object_names(self) -> list[str]:
        with self._lock:
            return sorted(self._objects)

    def get_metadata(self, object_name: str, *, timeout: float | None = None) -> dict:
        with self._lock:
            entry = self._objects.get(object_name)
            if entry is None:
                raise ObjectNotFoundError(object_name)
            return dict(entry["metadata"])

    def copy(self, source_name: str, destination_name: str, *, timeout: float | None = None) -> None:
        with self._lock:
            entry = self._objects.get(source_name)
            if entry is None:
                raise ObjectNotFoundError(source_name)
            self._objects[destination_name] = {"data": entry["data"], "metadata": dict(entry["metadata"])}

    def update_metadata(self, object_name: str, metadata: dict, *, timeout: float | None = None) -> None:
        with self._lock:
            entry = self._objects.get(object_name)
            if entry is None:
                raise ObjectNotFoundError(object_name)
            entry["metadata"].update(metadata or {})

    def delete(self, object_name: str, *, timeout: float | None = None) -> None:
        with self._lock:
            if self._objects.pop(object_name, None) is None:
                raise ObjectNotFoundError(object_name)
