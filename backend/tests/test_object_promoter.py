from __future__ import annotations

import threading
import unittest

from app.integrations.storage.base import ObjectNotFoundError, StorageError
from app.integrations.storage.memory_provider import MemoryObjectStore
from app.services.moderation import (
    BackoffPolicy,
    Deadline,
    ModerationDeadlineExceeded,
    PendingImageMissingError,
    RetryingObjectPromoter,
    TransientModerationError,
    linear_delay,
)


class FlakyStore(MemoryObjectStore):
    """Memory store that can hide objects for the first N reads or fail steps."""

    def __init__(self, *, hidden_reads: int = 0):
        super().__init__("test-bucket")
        self.hidden_reads = hidden_reads
        self.metadata_reads = 0
        self.fail_read: Exception | None = None
        self.fail_copy: Exception | None = None
        self.fail_update: Exception | None = None
        self.fail_delete_of: str | None = None

    def get_metadata(self, object_name, *, timeout=None):
        self.metadata_reads += 1
        if self.fail_read is not None:
            raise self.fail_read
        if self.metadata_reads <= self.hidden_reads:
            raise ObjectNotFoundError(object_name)
        return super().get_metadata(object_name, timeout=timeout)

    def copy(self, source_name, destination_name, *, timeout=None):
        if self.fail_copy is not None:
            raise self.fail_copy
        return super().copy(source_name, destination_name, timeout=timeout)

    def update_metadata(self, object_name, metadata, *, timeout=None):
        if self.fail_update is not None:
            raise self.fail_update
        return super().update_metadata(object_name, metadata, timeout=timeout)

    def delete(self, object_name, *, timeout=None):
        if self.fail_delete_of == object_name:
            raise StorageError("delete refused")
        return super().delete(object_name, timeout=timeout)


class RecordingPolicy:
    def __init__(self):
        self.sleeps = []

    def build(self, attempts: int = 3) -> BackoffPolicy:
        return BackoffPolicy(max_attempts=attempts, delay=linear_delay(0.5), sleep=self.sleeps.append)


class RetryingObjectPromoterTestCase(unittest.TestCase):
    def _promoter(self, store, attempts: int = 3):
        self.policy = RecordingPolicy()
        return RetryingObjectPromoter(store, backoff=self.policy.build(attempts), token_factory=lambda: "tok-123")

    def test_promotes_to_stripped_name_with_approval_metadata(self):
        store = FlakyStore()
        store.put("pending/u1/cover.jpg", b"jpeg", {"contentType": "image/jpeg"})
        approved = self._promoter(store).promote("pending/u1/cover.jpg")

        self.assertEqual(approved.object_name, "u1/cover.jpg")
        self.assertEqual(approved.token, "tok-123")
        self.assertFalse(approved.source_leaked)
        self.assertEqual(store.object_names(), ["u1/cover.jpg"])
        meta = store.get_metadata("u1/cover.jpg")
        self.assertEqual(meta["moderation"], "approved")
        self.assertEqual(meta["firebaseStorageDownloadTokens"], "tok-123")
        self.assertEqual(meta["contentType"], "image/jpeg")
        self.assertEqual(store.read("u1/cover.jpg"), b"jpeg")
        self.assertEqual(
            approved.url,
            "https://firebasestorage.googleapis.com/v0/b/test-bucket/o/u1%2Fcover.jpg?alt=media&token=tok-123",
        )

    def test_strips_prefix_exactly_once(self):
        store = FlakyStore()
        store.put("pending/pending/x.jpg")
        approved = self._promoter(store).promote("pending/pending/x.jpg")
        self.assertEqual(approved.object_name, "pending/x.jpg")

    def test_succeeds_when_object_appears_on_final_attempt(self):
        store = FlakyStore(hidden_reads=2)
        store.put("pending/a.jpg")
        approved = self._promoter(store).promote("pending/a.jpg")

        self.assertEqual(store.metadata_reads, 3)
        self.assertEqual(self.policy.sleeps, [0.5, 1.0])
        self.assertEqual(approved.object_name, "a.jpg")
        self.assertFalse(store.exists("pending/a.jpg"))

    def test_exhausted_retries_leave_pending_untouched(self):
        store = FlakyStore(hidden_reads=3)
        store.put("pending/a.jpg")
        with self.assertRaises(PendingImageMissingError):
            self._promoter(store).promote("pending/a.jpg")

        self.assertEqual(store.metadata_reads, 3)
        self.assertEqual(store.object_names(), ["pending/a.jpg"])

    def test_other_read_errors_fail_without_retry(self):
        store = FlakyStore()
        store.put("pending/a.jpg")
        store.fail_read = StorageError("permission denied")
        with self.assertRaises(TransientModerationError):
            self._promoter(store).promote("pending/a.jpg")

        self.assertEqual(store.metadata_reads, 1)
        self.assertEqual(self.policy.sleeps, [])
        self.assertEqual(store.object_names(), ["pending/a.jpg"])

    def test_copy_failure_leaves_pending_untouched(self):
        store = FlakyStore()
        store.put("pending/a.jpg")
        store.fail_copy = StorageError("quota")
        with self.assertRaises(TransientModerationError):
            self._promoter(store).promote("pending/a.jpg")
        self.assertEqual(store.object_names(), ["pending/a.jpg"])

    def test_metadata_failure_discards_copy_and_keeps_pending(self):
        store = FlakyStore()
        store.put("pending/a.jpg")
        store.fail_update = StorageError("patch failed")
        with self.assertRaises(TransientModerationError):
            self._promoter(store).promote("pending/a.jpg")
        self.assertEqual(store.object_names(), ["pending/a.jpg"])

    def test_failed_source_delete_still_reports_success(self):
        store = FlakyStore()
        store.put("pending/a.jpg")
        store.fail_delete_of = "pending/a.jpg"
        with self.assertLogs("app.services.moderation.promoter", level="ERROR") as logs:
            approved = self._promoter(store).promote("pending/a.jpg")

        self.assertTrue(approved.source_leaked)
        self.assertEqual(store.object_names(), ["a.jpg", "pending/a.jpg"])
        self.assertTrue(any("promote_source_leaked" in line for line in logs.output))

    def test_cancelled_deadline_aborts_before_any_mutation(self):
        store = FlakyStore()
        store.put("pending/a.jpg")
        cancel = threading.Event()
        cancel.set()
        with self.assertRaises(ModerationDeadlineExceeded):
            self._promoter(store).promote("pending/a.jpg", deadline=Deadline(cancel_event=cancel))
        self.assertEqual(store.metadata_reads, 0)
        self.assertEqual(store.object_names(), ["pending/a.jpg"])

    def test_backoff_that_overruns_deadline_aborts(self):
        store = FlakyStore(hidden_reads=5)
        store.put("pending/a.jpg")
        now = [100.0]
        deadline = Deadline(0.75, clock=lambda: now[0])
        with self.assertRaises(ModerationDeadlineExceeded):
            self._promoter(store).promote("pending/a.jpg", deadline=deadline)
        self.assertEqual(store.object_names(), ["pending/a.jpg"])


if __name__ == "__main__":
    unittest.main()
