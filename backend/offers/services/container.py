import random
import threading
from dataclasses import dataclass
from typing import Optional

from django.conf import settings

from offers.providers import SyntheticProvider, build_offer_providers
from offers.services.affiliates import AffiliateDirectory
from offers.services.aggregator import SearchAggregator
from offers.services.cache import TTLCache
from offers.services.fx import FxConverter
from offers.services.http import HttpFetcher
from offers.services.normalize import OfferNormalizer
from offers.services.ratelimit import FixedWindowRateLimiter
from offers.services.suggest import SuggestService
from offers.services.tracker import LinkTracker, TrackLogWriter


@dataclass
class Services:
    affiliates: AffiliateDirectory
    aggregator: SearchAggregator
    suggest: SuggestService
    tracker: LinkTracker
    search_limiter: FixedWindowRateLimiter
    suggest_limiter: FixedWindowRateLimiter
    track_limiter: FixedWindowRateLimiter

    def close(self):
        self.tracker.writer.close()


_services: Optional[Services] = None
_lock = threading.Lock()


def build_services(config=None, *, sleep=None, rng=None) -> Services:
    """Construct the process-wide service graph from Django settings."""
    config = config or settings

    fetcher_kwargs = {
        "timeout": config.UPSTREAM_TIMEOUT,
        "attempts": config.UPSTREAM_RETRIES,
        "backoff": config.UPSTREAM_BACKOFF,
    }
    if sleep is not None:
        fetcher_kwargs["sleep"] = sleep
    fetcher = HttpFetcher(**fetcher_kwargs)

    scoring = config.SCORING
    affiliates = AffiliateDirectory(config.AFFILIATE_ENV, config.AFFILIATE_PARTNERS)
    normalizer = OfferNormalizer(scoring["commission"], scoring["fallback_commission"], config.OFFER_IMAGE_FALLBACK)
    fallback = SyntheticProvider(affiliates, normalizer, rng or random.Random())
    fx = FxConverter(
        fetcher,
        TTLCache("fx", config.FX_CACHE_TTL),
        api_url=config.FX_API_URL,
        ttl=config.FX_CACHE_TTL,
        failure_ttl=config.FX_FAILURE_TTL,
    )

    providers = build_offer_providers(
        config,
        fetcher=fetcher,
        fx=fx,
        affiliates=affiliates,
        normalizer=normalizer,
        fallback=fallback,
        cache=TTLCache("default", config.SEARCH_CACHE_TTL),
    )

    return Services(
        affiliates=affiliates,
        aggregator=SearchAggregator(providers, fallback, scoring),
        suggest=SuggestService(
            fetcher,
            TTLCache("suggest", config.SUGGEST_CACHE_TTL),
            api_url=config.PLACES_AUTOCOMPLETE_URL,
        ),
        tracker=LinkTracker(
            allow_list=config.TRACK_ALLOW_LIST,
            deny_list=config.TRACK_DENY_LIST,
            secret=config.TRACK_HMAC_SECRET,
            require_signature=config.TRACK_REQUIRE_SIGNATURE,
            writer=TrackLogWriter(config.TRACK_LOG_FILE),
        ),
        search_limiter=FixedWindowRateLimiter(*config.SEARCH_RATE_LIMIT),
        suggest_limiter=FixedWindowRateLimiter(*config.SUGGEST_RATE_LIMIT),
        track_limiter=FixedWindowRateLimiter(*config.TRACK_RATE_LIMIT),
    )


def get_services() -> Services:
    global _services
    if _services is None:
        with _lock:
            if _services is None:
                _services = build_services()
    return _services


def set_services(services: Optional[Services]):
    global _services
    with _lock:
        previous, _services = _services, services
    if previous is not None and previous is not services:
        previous.close()


def reset_services(**kwargs):
    """Drop the current graph; the next get_services() rebuilds it from settings."""
    set_services(None)
