import base64
import json
import os
import tempfile

from django.test import Client, SimpleTestCase, TestCase, override_settings

from offers.services.tracker import (
    LinkTracker,
    TrackLogWriter,
    anonymized_user_hash,
    decode_b64,
    safe_destination,
    sign_value,
)
from offers.tests import reset_state


class DestinationTests(SimpleTestCase):
    def test_safe_destination(self):
        self.assertIsNone(safe_destination("javascript:alert(1)"))
        self.assertIsNone(safe_destination(" DATA:text/html;base64,xx"))
        self.assertIsNone(safe_destination("vbscript:msgbox"))
        self.assertEqual(safe_destination("/offers/roma"), "/offers/roma")
        self.assertEqual(safe_destination("booking.com/hotel"), "https://booking.com/hotel")
        self.assertEqual(safe_destination("http://a.test/x"), "http://a.test/x")
        self.assertEqual(safe_destination("//evil.test/x"), "https://evil.test/x")

    def test_decode_b64(self):
        encoded = base64.urlsafe_b64encode(b"https://www.booking.com/?a=1&b=2").decode().rstrip("=")
        self.assertEqual(decode_b64(encoded), "https://www.booking.com/?a=1&b=2")
        self.assertEqual(decode_b64("%%%not-base64"), "")
        self.assertEqual(decode_b64(""), "")

    def test_user_hash_is_truncated_sha256(self):
        digest = anonymized_user_hash("1.2.3.4", "Mozilla")
        self.assertEqual(len(digest), 16)
        self.assertNotIn("1.2.3.4", digest)
        self.assertEqual(digest, anonymized_user_hash("1.2.3.4", "Mozilla"))

    def test_record_writes_structured_entry(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "track.log")
            tracker = LinkTracker(writer=TrackLogWriter(path))

            with self.assertLogs("offers.track", level="INFO") as logs:
                tracker.record(
                    ip="1.2.3.4",
                    user_agent="Mozilla",
                    referer="https://vrabo.test/",
                    target="https://www.booking.com/x",
                    params={"tab": "bnb", "title": "Hotel Sole", "lang": "it"},
                ).result(timeout=5)

            entry = json.loads(logs.records[0].getMessage())
            self.assertEqual(entry["target"], "https://www.booking.com/x")
            self.assertEqual(entry["anonymizedUserHash"], anonymized_user_hash("1.2.3.4", "Mozilla"))
            self.assertEqual(
                set(entry),
                {"time", "ip", "userAgent", "anonymizedUserHash", "referer", "target", "tab", "title", "lang"},
            )
            with open(path, encoding="utf-8") as fh:
                self.assertEqual(json.loads(fh.readline()), entry)


@override_settings(TRACK_ALLOW_LIST=[], TRACK_DENY_LIST=[], TRACK_HMAC_SECRET="", TRACK_REQUIRE_SIGNATURE=False)
class TrackViewTests(TestCase):
    def setUp(self):
        reset_state()
        self.client = Client()

    def track(self, **params):
        return self.client.get("/api/track", params)

    def assertRedirectsTo(self, response, location):
        self.assertEqual(response.status_code, 302)
        self.assertEqual(response["Location"], location)

    def test_script_schemes_go_home(self):
        self.assertRedirectsTo(self.track(url="javascript:alert(1)"), "/")

    def test_missing_destination_goes_home(self):
        self.assertRedirectsTo(self.track(), "/")
        self.assertRedirectsTo(self.track(b64="!!!!"), "/")

    def test_redirect_loop_is_rejected(self):
        response = self.client.get("/api/track?url=/api/track?url=x")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Loop detected"})

    def test_relative_and_bare_destinations(self):
        self.assertRedirectsTo(self.track(url="/bnb/roma"), "/bnb/roma")
        self.assertRedirectsTo(self.track(url="www.kiwi.com/en"), "https://www.kiwi.com/en")

    def test_b64_destination(self):
        encoded = base64.b64encode(b"https://www.airalo.com/").decode()
        self.assertRedirectsTo(self.track(b64=encoded), "https://www.airalo.com/")

    @override_settings(TRACK_ALLOW_LIST=["booking.com"])
    def test_allow_list(self):
        self.assertRedirectsTo(self.track(url="https://evil.com"), "/")
        self.assertRedirectsTo(self.track(url="https://www.booking.com/x"), "https://www.booking.com/x")
        self.assertRedirectsTo(self.track(url="https://booking.com.evil.com/"), "/")
        self.assertRedirectsTo(self.track(url="//evil.com/"), "/")

    @override_settings(TRACK_DENY_LIST=["evil.com"])
    def test_deny_list(self):
        self.assertRedirectsTo(self.track(url="https://cdn.evil.com/x"), "/")
        self.assertRedirectsTo(self.track(url="https://good.com/x"), "https://good.com/x")

    @override_settings(TRACK_HMAC_SECRET="s3cret")
    def test_signature_is_verified(self):
        target = "https://www.booking.com/x"

        bad = self.track(url=target, sig="deadbeef")
        self.assertEqual(bad.status_code, 400)
        self.assertEqual(bad.json(), {"error": "Invalid signature"})

        self.assertRedirectsTo(self.track(url=target, sig=sign_value(target, "s3cret")), target)

    @override_settings(TRACK_REQUIRE_SIGNATURE=True)
    def test_required_signature_without_secret_fails_closed(self):
        self.assertEqual(self.track(url="https://www.booking.com/x").status_code, 400)

    @override_settings(TRACK_RATE_LIMIT=(2, 10))
    def test_rate_limit(self):
        statuses = [self.track(url="https://good.com").status_code for _ in range(3)]
        self.assertEqual(statuses, [302, 302, 429])

    def test_preflight_and_headers(self):
        preflight = self.client.options("/api/track")
        self.assertEqual(preflight.status_code, 204)

        for response in (preflight, self.track(url="https://good.com")):
            self.assertIn("no-store", response["Cache-Control"])
            self.assertEqual(response["X-Content-Type-Options"], "nosniff")
            self.assertEqual(response["X-Frame-Options"], "DENY")
            self.assertEqual(response["Referrer-Policy"], "strict-origin-when-cross-origin")
