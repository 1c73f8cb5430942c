from __future__ import annotations

import uuid

from app.utils.observability import _before_send_scrub

from support import AppTestCase


class RequestObservabilityTestCase(AppTestCase):
    def test_generates_request_id_when_missing(self):
        res = self.client.get("/api/health")
        self.assertEqual(res.status_code, 200)
        rid = (res.headers.get("X-Request-ID") or "").strip()
        self.assertTrue(rid)
        uuid.UUID(rid)

    def test_echoes_request_id_when_provided(self):
        res = self.client.get("/api/health", headers={"X-Request-ID": "rid-test-123"})
        self.assertEqual(res.headers.get("X-Request-ID"), "rid-test-123")

    def test_health_reports_integrations(self):
        body = self.client.get("/api/health").get_json()
        self.assertEqual(body["db"], "ok")
        self.assertEqual(body["moderation"], "ready")
        self.assertEqual(body["storage"]["provider"], "memory")
        self.assertEqual(body["safesearch"]["provider"], "mock")

    def test_unknown_api_route_is_json(self):
        res = self.client.get("/api/nope")
        self.assertEqual(res.status_code, 404)
        self.assertFalse(res.get_json()["ok"])

    def test_sentry_scrub_redacts_auth_and_tokens(self):
        event = {
            "request": {
                "headers": {"Authorization": "Bearer x", "Accept": "*/*"},
                "query_string": "alt=media&token=secret",
            }
        }
        scrubbed = _before_send_scrub(event, None)
        self.assertEqual(scrubbed["request"]["headers"]["Authorization"], "[REDACTED]")
        self.assertEqual(scrubbed["request"]["headers"]["Accept"], "*/*")
        self.assertEqual(scrubbed["request"]["query_string"], "[REDACTED]")
