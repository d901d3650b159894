from unittest.mock import Mock

from django.conf import settings
from django.core.cache import caches

from offers.services.container import reset_services

FX_URL = "http://fx.test/latest"
HOTELS_URL = "http://hotels.test/cache.json"
FLIGHTS_URL = "http://flights.test/prices/cheap"
PLACES_URL = "http://places.test/places2"

# Upstreams pointed at fake hosts, no backoff between retries.
TEST_UPSTREAMS = {
    "FX_API_URL": FX_URL,
    "HOTELLOOK_API_URL": HOTELS_URL,
    "FLIGHTS_CHEAP_API_URL": FLIGHTS_URL,
    "PLACES_AUTOCOMPLETE_URL": PLACES_URL,
    "UPSTREAM_BACKOFF": 0,
    "UPSTREAM_RETRIES": 3,
    "AFFILIATE_ENV": {},
}


def reset_state():
    """Empty every cache and drop the service graph (rate-limit buckets included)."""
    reset_services()
    for alias in settings.CACHES:
        caches[alias].clear()


def json_response(payload, status_code=200):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload
    return response


def route_upstreams(routes):
    """side_effect for requests.get dispatching on the requested URL."""

    def _get(url, params=None, headers=None, timeout=None):
        handler = routes.get(url)
        if handler is None:
            raise AssertionError(f"unexpected upstream call to {url}")
        if isinstance(handler, Exception):
            raise handler
        if isinstance(handler, Mock) or not callable(handler):
            return handler
        return handler(params)

    return _get
