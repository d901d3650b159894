import logging

from offers.providers.base import ProviderError

logger = logging.getLogger(__name__)


class FxConverter:
    """Converts amounts between currencies; an unavailable rate means no conversion."""

    def __init__(self, fetcher, cache, *, api_url, ttl=3600, failure_ttl=60):
        self.fetcher = fetcher
        self.cache = cache
        self.api_url = api_url
        self.ttl = ttl
        self.failure_ttl = failure_ttl

    def rate(self, source: str, target: str) -> float:
        source = (source or "").upper()
        target = (target or "").upper()
        if not source or not target or source == target:
            return 1.0

        key = f"fx:{source}->{target}"
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        try:
            payload = self.fetcher.get_json(self.api_url, params={"base": source, "symbols": target})
        except ProviderError:
            logger.warning("FX lookup failed, using identity rate", extra={"pair": key})
            # Held briefly so one search does not retry the lookup per offer.
            self.cache.set(key, 1.0, self.failure_ttl)
            return 1.0

        rates = payload.get("rates") if isinstance(payload, dict) else None
        value = rates.get(target) if isinstance(rates, dict) else None
        rate = float(value) if isinstance(value, (int, float)) and value > 0 else 1.0

        self.cache.set(key, rate, self.ttl)
        return rate

    def convert(self, amount, source="EUR", target="EUR"):
        """Returns ``(amount, currency)`` with the amount rounded to cents."""
        target = (target or source or "").upper()
        if not amount or (source or "").upper() == target:
            return amount, target
        return round(amount * self.rate(source, target), 2), target
