from __future__ import annotations

import unittest
from types import SimpleNamespace
from unittest import mock

from google.api_core import exceptions as google_exceptions

from app.integrations.safesearch.base import Likelihood, SafeSearchUnavailableError
from app.integrations.safesearch.vision_provider import VisionSafeSearchProvider


def _response(*, adult=1, violence=1, racy=1, spoof=1, medical=1, error_message=""):
    return SimpleNamespace(
        error=SimpleNamespace(message=error_message),
        safe_search_annotation=SimpleNamespace(
            adult=adult, violence=violence, racy=racy, spoof=spoof, medical=medical
        ),
    )


class VisionSafeSearchProviderTestCase(unittest.TestCase):
    def setUp(self):
        self.client = mock.Mock()
        self.provider = VisionSafeSearchProvider(client=self.client, default_timeout=12.0)

    def test_maps_annotation_to_ratings(self):
        self.client.safe_search_detection.return_value = _response(adult=4, racy=3)
        ratings = self.provider.classify("gs://bucket/pending/a.jpg")
        self.assertEqual(ratings.adult, Likelihood.LIKELY)
        self.assertEqual(ratings.racy, Likelihood.POSSIBLE)
        self.assertTrue(ratings.is_unsafe())

        kwargs = self.client.safe_search_detection.call_args.kwargs
        self.assertEqual(kwargs["timeout"], 12.0)
        self.assertEqual(kwargs["image"].source.gcs_image_uri, "gs://bucket/pending/a.jpg")

    def test_explicit_timeout_is_forwarded(self):
        self.client.safe_search_detection.return_value = _response()
        self.provider.classify("gs://bucket/pending/a.jpg", timeout=2.5)
        self.assertEqual(self.client.safe_search_detection.call_args.kwargs["timeout"], 2.5)

    def test_api_failure_is_unavailable_not_safe(self):
        self.client.safe_search_detection.side_effect = google_exceptions.ServiceUnavailable("down")
        with self.assertRaises(SafeSearchUnavailableError):
            self.provider.classify("gs://bucket/pending/a.jpg")

    def test_per_image_error_is_unavailable(self):
        self.client.safe_search_detection.return_value = _response(error_message="image too large")
        with self.assertRaises(SafeSearchUnavailableError) as ctx:
            self.provider.classify("gs://bucket/pending/a.jpg")
        self.assertIn("image too large", str(ctx.exception))

    def test_blank_uri_rejected(self):
        with self.assertRaises(ValueError):
            self.provider.classify("  ")
        self.client.safe_search_detection.assert_not_called()


if __name__ == "__main__":
    unittest.main()
