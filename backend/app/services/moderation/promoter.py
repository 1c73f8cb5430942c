from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from app.integrations.storage.base import ObjectNotFoundError, ObjectStore, StorageError
from app.services.moderation.backoff import BackoffPolicy
from app.services.moderation.deadline import Deadline
from app.services.moderation.errors import (
    ModerationDeadlineExceeded,
    PendingImageMissingError,
    TransientModerationError,
)
from app.services.moderation.locators import public_name_for


logger = logging.getLogger(__name__)

MODERATION_METADATA_KEY = "moderation"
MODERATION_APPROVED = "approved"
DOWNLOAD_TOKEN_KEY = "firebaseStorageDownloadTokens"


@dataclass(frozen=True)
class ApprovedImage:
    object_name: str
    token: str
    url: str
    source_name: str = ""
    source_leaked: bool = False


def new_download_token() -> str:
    return str(uuid.uuid4())


class RetryingObjectPromoter:
    """Moves a pending object to its public name.

    Order is fixed: read metadata (retrying only on not-found), copy,
    stamp approval metadata with a fresh token, delete the source. The
    pending object is untouched unless every earlier step succeeded.
    """

    def __init__(self, store: ObjectStore, *, backoff: BackoffPolicy | None = None, token_factory=new_download_token):
        self.store = store
        self.backoff = backoff or BackoffPolicy()
        self.token_factory = token_factory

    def _read_metadata(self, name: str, deadline: Deadline) -> dict:
        attempts = int(self.backoff.max_attempts)
        for attempt in range(1, attempts + 1):
            deadline.check("metadata read")
            try:
                return self.store.get_metadata(name, timeout=deadline.timeout_for())
            except ObjectNotFoundError:
                if attempt >= attempts:
                    logger.warning("promote_metadata_missing name=%s attempts=%s", name, attempts)
                    raise PendingImageMissingError(f"pending object not found after {attempts} attempts: {name}")
                wait = self.backoff.delay_for(attempt)
                logger.info("promote_metadata_retry name=%s attempt=%s wait=%.3f", name, attempt, wait)
                deadline.sleep(wait, sleeper=self.backoff.sleep)
            except StorageError as e:
                raise TransientModerationError(f"metadata read failed for {name}: {e}") from e
        raise PendingImageMissingError(name)

    def _discard_copy(self, name: str) -> None:
        try:
            self.store.delete(name)
        except StorageError:
            logger.exception("promote_discard_copy_failed name=%s", name)

    def promote(self, pending_name: str, *, deadline: Deadline | None = None) -> ApprovedImage:
        deadline = deadline or Deadline.none()
        dest = public_name_for(pending_name)

        self._read_metadata(pending_name, deadline)

        deadline.check("copy")
        try:
            self.store.copy(pending_name, dest, timeout=deadline.timeout_for())
        except ObjectNotFoundError as e:
            raise PendingImageMissingError(f"pending object vanished before copy: {pending_name}") from e
        except StorageError as e:
            raise TransientModerationError(f"copy failed {pending_name} -> {dest}: {e}") from e

        token = self.token_factory()
        try:
            deadline.check("metadata update")
            self.store.update_metadata(
                dest,
                {MODERATION_METADATA_KEY: MODERATION_APPROVED, DOWNLOAD_TOKEN_KEY: token},
                timeout=deadline.timeout_for(),
            )
        except ModerationDeadlineExceeded:
            self._discard_copy(dest)
            raise
        except StorageError as e:
            self._discard_copy(dest)
            raise TransientModerationError(f"metadata update failed for {dest}: {e}") from e

        leaked = False
        try:
            self.store.delete(pending_name, timeout=deadline.timeout_for())
        except StorageError:
            # Approved copy is authoritative; the pending object is left behind.
            leaked = True
            logger.exception("promote_source_leaked pending=%s dest=%s", pending_name, dest)

        url = self.store.download_url(dest, token)
        logger.info("promote_ok pending=%s dest=%s", pending_name, dest)
        return ApprovedImage(object_name=dest, token=token, url=url, source_name=pending_name, source_leaked=leaked)
