import logging

from offers.services.cache import cache_key

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    def __init__(self, message, status_code=502, details=None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details or {}


class OfferProvider:
    """Base class for the per-category offer handlers."""

    category = None

    def search(self, params):
        """
        Returns a list of normalized offers for ``params``.

        Implementations never raise for upstream problems; they fall back to
        catalog or synthetic offers instead.
        """
        raise NotImplementedError


class LiveOfferProvider(OfferProvider):
    """
    Offers fetched from an upstream API. Any ProviderError, or an empty
    upstream answer, is replaced by ``fallback_count`` synthetic offers.
    Successful answers are cached per query.
    """

    fallback_count = 6

    def __init__(self, *, fetcher, fx, affiliates, normalizer, fallback, cache=None, cache_ttl=None):
        self.fetcher = fetcher
        self.fx = fx
        self.affiliates = affiliates
        self.normalizer = normalizer
        self.fallback = fallback
        self.rng = fallback.rng
        self.cache = cache
        self.cache_ttl = cache_ttl

    def fetch_offers(self, params):
        raise NotImplementedError

    def _cache_key(self, params):
        return cache_key(
            f"search:{self.category}",
            {
                "query": params.get("query") or "",
                "startDate": params.get("startDate") or "",
                "endDate": params.get("endDate") or "",
                "currency": params.get("currency") or "",
            },
        )

    def search(self, params):
        key = self._cache_key(params) if self.cache is not None else None
        if key:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        try:
            offers = self.fetch_offers(params)
        except ProviderError as exc:
            logger.warning(
                "%s search failed, serving synthetic offers: %s",
                self.category,
                exc,
                extra={"status_code": exc.status_code},
            )
            offers = []

        if not offers:
            return self.fallback.generate(self.category, params.get("query"), self.fallback_count)

        if key:
            self.cache.set(key, offers, self.cache_ttl)
        return offers
