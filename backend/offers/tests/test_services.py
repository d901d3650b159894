from unittest.mock import Mock

import requests
from django.conf import settings
from django.test import SimpleTestCase

from offers.providers.base import ProviderError
from offers.providers.synthetic import SyntheticProvider
from offers.services.affiliates import AffiliateDirectory
from offers.services.aggregator import SearchAggregator, clamp_limit
from offers.services.cache import TTLCache
from offers.services.container import build_services, set_services
from offers.services.fx import FxConverter
from offers.services.http import HttpFetcher
from offers.services.normalize import OfferNormalizer, dedupe_offers, normalize_offer, parse_price
from offers.services.ratelimit import FixedWindowRateLimiter
from offers.services.scoring import score_offer
from offers.tests import json_response, reset_state

FALLBACK_IMAGE = "https://img.test/fallback.jpg"


class NormalizeTests(SimpleTestCase):
    def test_defaults_for_missing_fields(self):
        offer = normalize_offer({}, commission_rate=0.1, image_fallback=FALLBACK_IMAGE)

        self.assertEqual(offer["title"], "Offerta")
        self.assertEqual(offer["price"], "—")
        self.assertEqual(offer["image"], FALLBACK_IMAGE)
        self.assertEqual(offer["url"], "#")
        self.assertEqual(offer["popularity"], 0.6)
        self.assertEqual(offer["tags"], [])
        self.assertIsNone(offer["priceValue"])
        self.assertIsNone(offer["commissionEstimate"])

    def test_rejects_non_http_links(self):
        offer = normalize_offer(
            {"image": "/n26.png", "url": "javascript:alert(1)", "title": "  ", "rating": "5"},
            commission_rate=0.1,
            image_fallback=FALLBACK_IMAGE,
        )
        self.assertEqual(offer["image"], FALLBACK_IMAGE)
        self.assertEqual(offer["url"], "#")
        self.assertEqual(offer["title"], "Offerta")
        self.assertIsNone(offer["rating"])

    def test_commission_estimate(self):
        offer = normalize_offer({"priceValue": 200}, commission_rate=0.07, image_fallback=FALLBACK_IMAGE)
        self.assertAlmostEqual(offer["commissionEstimate"], 14.0)

    def test_parse_price(self):
        self.assertEqual(parse_price(129), 129)
        self.assertEqual(parse_price("7,99 €/month"), 7.99)
        self.assertEqual(parse_price("from 15€"), 15)
        self.assertIsNone(parse_price("Low crypto fees"))
        self.assertIsNone(parse_price(None))

    def test_dedupe_keeps_first(self):
        offers = [
            {"title": "A", "url": "#", "n": 1},
            {"title": "A", "url": "https://x.test", "n": 2},
            {"title": "A", "url": "#", "n": 3},
        ]
        self.assertEqual([o["n"] for o in dedupe_offers(offers)], [1, 2])


class ScoringTests(SimpleTestCase):
    def offer(self, **kwargs):
        base = {"tags": [], "priceValue": None, "rating": None, "popularity": 0.6}
        base.update(kwargs)
        return base

    def test_formula(self):
        offer = self.offer(tags=["smart"])
        # 0.4 * 100 * 1.25 * (0.6 * 0.15 + 0.925)
        self.assertAlmostEqual(score_offer(offer, "finance"), 50.75)

    def test_dates_and_rating(self):
        plain = score_offer(self.offer(), "bnb")
        with_dates = score_offer(self.offer(), "bnb", context={"hasDates": True})
        rated = score_offer(self.offer(rating=5), "bnb")

        self.assertAlmostEqual(with_dates / plain, 1.05)
        self.assertAlmostEqual(rated / plain, 1.2)

    def test_budget_fit_is_monotonic(self):
        profile = {"budget": 150}
        prices = [400, 300, 200, 150, 120, 100, 50]
        scores = [score_offer(self.offer(priceValue=p), "bnb", profile) for p in prices]

        self.assertEqual(scores, sorted(scores))
        self.assertEqual(scores[0], scores[1])  # both clamped at 0.5
        self.assertEqual(scores[-1], scores[-2])  # both clamped at 1.5

    def test_unknown_category_uses_fallback_rate(self):
        offer = self.offer(popularity=None)
        self.assertAlmostEqual(score_offer(offer, "cruise"), 5 * (0.15 + 0.925))

    def test_constants_are_configurable(self):
        scoring = dict(settings.SCORING, commission={"bnb": 1.0})
        self.assertAlmostEqual(score_offer(self.offer(popularity=1), "bnb", scoring=scoring), 100 * 1.075)


class AggregatorTests(SimpleTestCase):
    def setUp(self):
        normalizer = OfferNormalizer({"finance": 0.4}, 0.05, FALLBACK_IMAGE)
        self.affiliates = AffiliateDirectory({})
        self.fallback = SyntheticProvider(self.affiliates, normalizer)
        self.normalizer = normalizer

    def test_duplicates_collapse_and_results_are_sorted(self):
        provider = Mock()
        provider.search.return_value = [
            self.normalizer("finance", {"title": "Same", "tags": ["smart"]}),
            self.normalizer("finance", {"title": "Same", "tags": []}),
            self.normalizer("finance", {"title": "Other", "tags": []}),
        ]
        aggregator = SearchAggregator({"finance": provider}, self.fallback, settings.SCORING)

        results = aggregator.search({"type": "finance", "limit": 10})

        self.assertEqual([o["title"] for o in results], ["Same", "Other"])
        self.assertGreater(results[0]["score"], results[1]["score"])

    def test_unknown_category_is_synthesized(self):
        aggregator = SearchAggregator({}, self.fallback, settings.SCORING)

        results = aggregator.search({"type": "cruise", "query": "Bari", "limit": 50})

        self.assertEqual(len(results), 8)
        self.assertTrue(all(o["source"] == "synthetic" for o in results))
        self.assertTrue(all(40 <= o["priceValue"] <= 240 for o in results))

    def test_clamp_limit(self):
        self.assertEqual(clamp_limit(999), 50)
        self.assertEqual(clamp_limit(0), 1)
        self.assertEqual(clamp_limit(None), 12)
        self.assertEqual(clamp_limit("7"), 7)


class AffiliateDirectoryTests(SimpleTestCase):
    def test_numbered_variants(self):
        directory = AffiliateDirectory(
            {"CAR": "PLACEHOLDER_CAR", "CAR2": "not-a-url", "CAR3": "https://qeeq.test", "CAR4": "https://get.test"}
        )
        self.assertEqual(directory.resolve("car"), "https://qeeq.test")
        self.assertEqual(directory.resolve("ENERGY"), "#")
        self.assertEqual(directory.missing(["CAR", "ENERGY"]), ["ENERGY"])

    def test_warn_missing_logs(self):
        with self.assertLogs("offers.services.affiliates", level="WARNING") as logs:
            AffiliateDirectory({}).warn_missing(["HOTEL"])
        self.assertIn("HOTEL", logs.output[0])


class RateLimiterTests(SimpleTestCase):
    def test_fixed_window(self):
        now = [0.0]
        limiter = FixedWindowRateLimiter(2, 5, clock=lambda: now[0])

        self.assertEqual([limiter.hit("a") for _ in range(3)], [False, False, True])
        self.assertFalse(limiter.hit("b"))

        now[0] = 5.5
        self.assertFalse(limiter.hit("a"))

    def test_disabled(self):
        limiter = FixedWindowRateLimiter(0, 5)
        self.assertFalse(any(limiter.hit("a") for _ in range(100)))


class HttpFetcherTests(SimpleTestCase):
    def fetcher(self, session, attempts=3):
        self.delays = []
        return HttpFetcher(attempts=attempts, backoff=0.4, sleep=self.delays.append, session=session)

    def test_retries_with_growing_backoff(self):
        session = Mock()
        session.get.side_effect = [
            requests.ConnectionError("down"),
            json_response({}, status_code=500),
            json_response({"ok": True}),
        ]

        self.assertEqual(self.fetcher(session).get_json("http://up.test"), {"ok": True})
        self.assertEqual(session.get.call_count, 3)
        self.assertEqual(len(self.delays), 2)
        self.assertTrue(0.4 <= self.delays[0] <= 0.5)
        self.assertTrue(0.8 <= self.delays[1] <= 0.9)

    def test_gives_up_after_last_attempt(self):
        session = Mock()
        session.get.return_value = json_response({}, status_code=404)

        with self.assertRaises(ProviderError) as ctx:
            self.fetcher(session).get_json("http://up.test")

        self.assertEqual(ctx.exception.status_code, 404)
        self.assertEqual(session.get.call_count, 3)
        self.assertEqual(len(self.delays), 2)

    def test_invalid_json_is_a_provider_error(self):
        response = Mock(status_code=200)
        response.json.side_effect = ValueError("no json")
        session = Mock()
        session.get.return_value = response

        with self.assertRaises(ProviderError):
            self.fetcher(session, attempts=1).get_json("http://up.test")

    def test_timeout_is_passed(self):
        session = Mock()
        session.get.return_value = json_response([])
        HttpFetcher(timeout=3.5, session=session).get_json("http://up.test", params={"q": "x"})
        self.assertEqual(session.get.call_args.kwargs["timeout"], 3.5)


class FxConverterTests(SimpleTestCase):
    def setUp(self):
        reset_state()
        self.fetcher = Mock()
        self.fx = FxConverter(self.fetcher, TTLCache("fx", 3600), api_url="http://fx.test")

    def test_converts_with_rate(self):
        self.fetcher.get_json.return_value = {"rates": {"USD": 2.0}}

        self.assertEqual(self.fx.convert(10, "EUR", "USD"), (20, "USD"))
        self.assertEqual(self.fx.convert(3.333, "EUR", "USD"), (6.67, "USD"))
        self.fetcher.get_json.assert_called_once()

    def test_failure_means_identity_rate(self):
        self.fetcher.get_json.side_effect = ProviderError("down")

        self.assertEqual(self.fx.convert(10, "EUR", "USD"), (10, "USD"))

    def test_failure_is_remembered_per_pair(self):
        self.fetcher.get_json.side_effect = ProviderError("down")

        for amount in (10, 20, 30):
            self.fx.convert(amount, "EUR", "USD")
        self.assertEqual(self.fetcher.get_json.call_count, 1)

        self.fx.convert(10, "EUR", "GBP")
        self.assertEqual(self.fetcher.get_json.call_count, 2)

    def test_same_currency_skips_lookup(self):
        self.assertEqual(self.fx.convert(10, "EUR", "eur"), (10, "EUR"))
        self.fetcher.get_json.assert_not_called()


class ServicesContainerTests(SimpleTestCase):
    def tearDown(self):
        set_services(None)

    def test_replacing_the_graph_stops_the_old_click_writer(self):
        first = build_services()
        set_services(first)
        set_services(build_services())

        with self.assertRaises(RuntimeError):
            first.tracker.writer.emit({"target": "https://example.com"})
