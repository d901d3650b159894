import logging

from offers.services.normalize import dedupe_offers
from offers.services.scoring import score_offer

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 12
MAX_LIMIT = 50
UNKNOWN_CATEGORY_COUNT = 8


def clamp_limit(value, default=DEFAULT_LIMIT) -> int:
    try:
        limit = int(value) if value is not None else default
    except (TypeError, ValueError):
        limit = default
    return max(1, min(limit, MAX_LIMIT))


class SearchAggregator:
    """Dispatches a search to its category provider, then dedupes, scores and ranks."""

    def __init__(self, providers: dict, fallback, scoring: dict):
        self.providers = providers
        self.fallback = fallback
        self.scoring = scoring

    def collect(self, params) -> list[dict]:
        category = params["type"]
        provider = self.providers.get(category)
        if provider is None:
            logger.info("Unknown search type %r, serving synthetic offers", category)
            return self.fallback.generate(category, params.get("query"), UNKNOWN_CATEGORY_COUNT)
        return provider.search(params)

    def _score_all(self, offers, params):
        category = params["type"]
        profile = params.get("profile") or {}
        context = {"hasDates": bool(params.get("startDate") and params.get("endDate"))}

        scored = []
        for offer in offers:
            try:
                score = score_offer(offer, category, profile, context, self.scoring)
            except (TypeError, ValueError, ZeroDivisionError):
                logger.warning("Skipping offer that could not be scored: %r", offer.get("title"))
                continue
            scored.append({**offer, "score": score})
        return scored

    def search(self, params) -> list[dict]:
        offers = dedupe_offers(self.collect(params))
        ranked = sorted(self._score_all(offers, params), key=lambda o: o["score"], reverse=True)
        return ranked[: clamp_limit(params.get("limit"))]
