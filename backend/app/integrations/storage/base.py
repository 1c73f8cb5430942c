from __future__ import annotations

from urllib.parse import quote


DEFAULT_DOWNLOAD_HOST = "firebasestorage.googleapis.com"


class StorageError(RuntimeError):
    pass


class ObjectNotFoundError(StorageError):
    def __init__(self, object_name: str):
        super().__init__(f"OBJECT_NOT_FOUND:{object_name}")
        self.object_name = object_name


class ObjectStore:
    """Bucket-scoped object storage used by moderation.

    Providers raise ``ObjectNotFoundError`` for a missing object and
    ``StorageError`` for every other failure.
    """

    name = "unknown"

    def __init__(self, bucket: str, *, download_host: str = DEFAULT_DOWNLOAD_HOST):
        self.bucket = bucket
        self.download_host = (download_host or DEFAULT_DOWNLOAD_HOST).strip().rstrip("/")

    def get_metadata(self, object_name: str, *, timeout: float | None = None) -> dict:
        raise NotImplementedError

    def copy(self, source_name: str, destination_name: str, *, timeout: float | None = None) -> None:
        raise NotImplementedError

    def update_metadata(self, object_name: str, metadata: dict, *, timeout: float | None = None) -> None:
        raise NotImplementedError

    def delete(self, object_name: str, *, timeout: float | None = None) -> None:
        raise NotImplementedError

    def exists(self, object_name: str, *, timeout: float | None = None) -> bool:
        try:
            self.get_metadata(object_name, timeout=timeout)
        except ObjectNotFoundError:
            return False
        return True

    def gs_uri(self, object_name: str) -> str:
        return f"gs://{self.bucket}/{object_name}"

    def download_url(self, object_name: str, token: str) -> str:
        return (
            f"https://{self.download_host}/v0/b/{self.bucket}/o/{quote(object_name, safe='')}"
            f"?alt=media&token={quote(token, safe='')}"
        )
