import hashlib
import json

from django.core.cache import caches


def cache_key(prefix: str, payload: dict) -> str:
    """Stable cache key for request payloads."""
    try:
        raw = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    except TypeError:
        raw = str(payload)
    digest = hashlib.sha1(raw.encode("utf-8")).hexdigest()
    return f"{prefix}:{digest}"


class TTLCache:
    """A Django cache alias with a default time-to-live for its entries."""

    def __init__(self, alias="default", ttl=300):
        self.alias = alias
        self.ttl = ttl

    @property
    def backend(self):
        return caches[self.alias]

    def get(self, key):
        return self.backend.get(key)

    def set(self, key, value, ttl=None):
        self.backend.set(key, value, timeout=self.ttl if ttl is None else ttl)

    def clear(self):
        self.backend.clear()
