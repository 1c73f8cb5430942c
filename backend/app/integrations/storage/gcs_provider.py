from __future__ import annotations

import requests
from google.api_core import exceptions as google_exceptions
from google.cloud import storage

from app.integrations.storage.base import (
    DEFAULT_DOWNLOAD_HOST,
    ObjectNotFoundError,
    ObjectStore,
    StorageError,
)


_TRANSPORT_ERRORS = (
    google_exceptions.GoogleAPICallError,
    google_exceptions.RetryError,
    requests.exceptions.RequestException,
)


class GCSObjectStore(ObjectStore):
    name = "gcs"

    def __init__(
        self,
        bucket: str,
        *,
        client=None,
        download_host: str = DEFAULT_DOWNLOAD_HOST,
        default_timeout: float = 30.0,
    ):
        super().__init__(bucket, download_host=download_host)
        self.client = client or storage.Client()
        self.default_timeout = default_timeout
        self._bucket = self.client.bucket(bucket)

    def _timeout(self, timeout: float | None) -> float:
        return self.default_timeout if timeout is None else max(float(timeout), 0.001)

    def get_metadata(self, object_name: str, *, timeout: float | None = None) -> dict:
        try:
            blob = self._bucket.get_blob(object_name, timeout=self._timeout(timeout))
        except google_exceptions.NotFound as e:
            raise ObjectNotFoundError(object_name) from e
        except _TRANSPORT_ERRORS as e:
            raise StorageError(f"STORAGE_READ_FAILED:{object_name}:{e}") from e
        if blob is None:
            raise ObjectNotFoundError(object_name)
        return dict(blob.metadata or {})

    def copy(self, source_name: str, destination_name: str, *, timeout: float | None = None) -> None:
        try:
            self._bucket.copy_blob(
                self._bucket.blob(source_name),
                self._bucket,
                new_name=destination_name,
                timeout=self._timeout(timeout),
            )
        except google_exceptions.NotFound as e:
            raise ObjectNotFoundError(source_name) from e
        except _TRANSPORT_ERRORS as e:
            raise StorageError(f"STORAGE_COPY_FAILED:{source_name}->{destination_name}:{e}") from e

    def update_metadata(self, object_name: str, metadata: dict, *, timeout: float | None = None) -> None:
        blob = self._bucket.blob(object_name)
        blob.metadata = dict(metadata or {})
        try:
            blob.patch(timeout=self._timeout(timeout))
        except google_exceptions.NotFound as e:
            raise ObjectNotFoundError(object_name) from e
        except _TRANSPORT_ERRORS as e:
            raise StorageError(f"STORAGE_METADATA_FAILED:{object_name}:{e}") from e

    def delete(self, object_name: str, *, timeout: float | None = None) -> None:
        try:
            self._bucket.delete_blob(object_name, timeout=self._timeout(timeout))
        except google_exceptions.NotFound as e:
            raise ObjectNotFoundError(object_name) from e
        except _TRANSPORT_ERRORS as e:
            raise StorageError(f"STORAGE_DELETE_FAILED:{object_name}:{e}") from e
