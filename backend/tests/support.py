from __future__ import annotations

import os
import shutil
import tempfile
import unittest

from app import create_app
from app.extensions import db
from app.integrations.safesearch.mock_provider import MockSafeSearchProvider
from app.integrations.storage.memory_provider import MemoryObjectStore
from app.services.moderation import BackoffPolicy
from app.utils.jwt_utils import create_access_token


TEST_BUCKET = "test-bucket"


def build_test_app(db_path: str, *, store=None, classifier=None, backoff=None, **config):
    overrides = {
        "TESTING": True,
        "SECRET_KEY": "test-secret-key-0123456789",
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
        "STORAGE_PROVIDER": "memory",
        "STORAGE_BUCKET": TEST_BUCKET,
        "SAFESEARCH_PROVIDER": "mock",
    }
    overrides.update(config)
    return create_app(
        overrides,
        moderation_store=store if store is not None else MemoryObjectStore(TEST_BUCKET),
        moderation_classifier=classifier if classifier is not None else MockSafeSearchProvider(),
        moderation_backoff=backoff if backoff is not None else BackoffPolicy.immediate(),
    )


class AppTestCase(unittest.TestCase):
    """Fresh app on a temp-file SQLite database per test."""

    def setUp(self):
        self._prev_env = os.getenv("RUMMAGE_ENV")
        os.environ["RUMMAGE_ENV"] = "test"
        self.tmpdir = tempfile.mkdtemp(prefix="rummage-test-")
        self.db_path = os.path.join(self.tmpdir, "test.db")
        self.store = MemoryObjectStore(TEST_BUCKET)
        self.classifier = MockSafeSearchProvider()
        self.app = build_test_app(self.db_path, store=self.store, classifier=self.classifier)
        self.client = self.app.test_client()
        self.ctx = self.app.app_context()
        self.ctx.push()

    def tearDown(self):
        db.session.remove()
        db.engine.dispose()
        self.ctx.pop()
        shutil.rmtree(self.tmpdir, ignore_errors=True)
        if self._prev_env is None:
            os.environ.pop("RUMMAGE_ENV", None)
        else:
            os.environ["RUMMAGE_ENV"] = self._prev_env

    @property
    def coordinator(self):
        return self.app.extensions["moderation"]

    def auth_headers(self, user_id: str, role: str = "user") -> dict:
        token = create_access_token(user_id, role=role, email=f"{user_id}@example.com")
        return {"Authorization": f"Bearer {token}"}

    def upload_pending(self, name: str, data: bytes = b"img") -> str:
        locator = f"pending/{name}"
        self.store.put(locator, data, {"contentType": "image/jpeg"})
        return locator
