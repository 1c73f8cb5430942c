from __future__ import annotations

from app.integrations.common import IntegrationMisconfiguredError, settings_str, settings_value
from app.integrations.storage.base import DEFAULT_DOWNLOAD_HOST, ObjectStore
from app.integrations.storage.gcs_provider import GCSObjectStore
from app.integrations.storage.memory_provider import MemoryObjectStore


def build_object_store(settings) -> ObjectStore:
    provider = settings_str(settings, "STORAGE_PROVIDER", "memory").lower()
    bucket = settings_str(settings, "STORAGE_BUCKET")
    host = settings_str(settings, "STORAGE_DOWNLOAD_HOST", DEFAULT_DOWNLOAD_HOST)

    if provider == "memory":
        if settings_str(settings, "RUMMAGE_ENV", "dev").lower() in ("prod", "production"):
            raise IntegrationMisconfiguredError("INTEGRATION_MISCONFIGURED:storage_provider=memory in production")
        return MemoryObjectStore(bucket or "local-bucket", download_host=host)

    if provider != "gcs":
        raise IntegrationMisconfiguredError(f"INTEGRATION_MISCONFIGURED:storage_provider={provider}")

    if not bucket:
        raise IntegrationMisconfiguredError("INTEGRATION_MISCONFIGURED:missing FIREBASE_BUCKET")

    timeout = float(settings_value(settings, "MODERATION_TIMEOUT_SECONDS", 30) or 30)
    return GCSObjectStore(bucket, download_host=host, default_timeout=timeout)


def storage_health(settings) -> dict:
    provider = settings_str(settings, "STORAGE_PROVIDER", "memory").lower()
    bucket = settings_str(settings, "STORAGE_BUCKET")
    missing = []
    if provider == "gcs" and not bucket:
        missing.append("FIREBASE_BUCKET")
    if provider not in ("gcs", "memory") or missing:
        status = "misconfigured"
    elif provider == "memory":
        status = "memory"
    else:
        status = "configured"
    return {
        "status": status,
        "provider": provider,
        "bucket": bucket,
        "missing": missing,
    }
