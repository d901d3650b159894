import logging
import random
import time

import requests

from offers.providers.base import ProviderError

logger = logging.getLogger(__name__)


class HttpFetcher:
    """GET JSON from an upstream with bounded retries and exponential backoff."""

    def __init__(self, *, timeout=3.5, attempts=3, backoff=0.4, sleep=time.sleep, session=None):
        self.timeout = timeout
        self.attempts = max(1, int(attempts))
        self.backoff = max(0.0, float(backoff))
        self.sleep = sleep
        self.session = session

    def _delay(self, attempt: int) -> float:
        base = self.backoff * (2 ** attempt)
        return base + random.uniform(0, self.backoff / 4) if base else 0.0

    def _get(self, url, params, headers):
        getter = self.session.get if self.session is not None else requests.get
        return getter(url, params=params, headers=headers, timeout=self.timeout)

    def get_json(self, url: str, *, params=None, headers=None):
        last_error = None

        for attempt in range(self.attempts):
            try:
                response = self._get(url, params, headers)
                if response.status_code >= 400:
                    raise ProviderError(
                        f"Upstream returned HTTP {response.status_code}.",
                        status_code=response.status_code,
                        details={"url": url},
                    )
                try:
                    return response.json()
                except ValueError:
                    raise ProviderError("Upstream response was not valid JSON.", details={"url": url})
            except requests.RequestException as exc:
                last_error = ProviderError("Upstream request failed.", details={"url": url, "error": str(exc)})
            except ProviderError as exc:
                last_error = exc

            logger.warning(
                "Upstream attempt failed",
                extra={"url": url, "attempt": attempt + 1, "status_code": last_error.status_code},
            )
            if attempt + 1 < self.attempts:
                self.sleep(self._delay(attempt))

        raise last_error
