import threading
import time


def client_ip(request) -> str:
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR") or ""
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR") or ""


class FixedWindowRateLimiter:
    """
    Counts requests per client inside a fixed window that starts with the
    client's first request and resets once ``window`` seconds have elapsed.

    State is per process; replicas do not share buckets.
    """

    def __init__(self, limit: int, window: float, clock=time.monotonic):
        self.limit = int(limit)
        self.window = float(window)
        self.clock = clock
        self._buckets = {}
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.limit > 0

    def hit(self, client: str) -> bool:
        """Record a request; returns True when the client is over the limit."""
        if not self.enabled:
            return False

        now = self.clock()
        with self._lock:
            bucket = self._buckets.get(client)
            if bucket is None or now - bucket["windowStart"] > self.window:
                self._buckets[client] = {"count": 1, "windowStart": now}
                self._prune(now)
                return False
            bucket["count"] += 1
            return bucket["count"] > self.limit

    def _prune(self, now):
        if len(self._buckets) < 10_000:
            return
        stale = [k for k, b in self._buckets.items() if now - b["windowStart"] > self.window]
        for key in stale:
            del self._buckets[key]
