import logging

from offers.providers.base import LiveOfferProvider
from offers.services.normalize import parse_price

logger = logging.getLogger(__name__)

UPSTREAM_CURRENCY = "EUR"


class CheapFlightsProvider(LiveOfferProvider):
    """Travelpayouts cheapest fares from an origin, one offer per destination and fare class."""

    category = "flight"
    fallback_count = 6

    def __init__(self, *, api_url, token="", **kwargs):
        super().__init__(**kwargs)
        self.api_url = api_url
        self.token = token

    def _iter_fares(self, data):
        for destination, fares in data.items():
            if not isinstance(fares, dict):
                continue
            for fare_class, fare in fares.items():
                if isinstance(fare, dict):
                    yield destination, fare_class, fare

    def fetch_offers(self, params):
        query = (params.get("query") or "").strip()
        origin = query[:3].upper()
        payload = self.fetcher.get_json(
            self.api_url,
            params={"origin": origin, "token": self.token, "currency": UPSTREAM_CURRENCY},
        )
        data = payload.get("data") if isinstance(payload, dict) else None
        data = data if isinstance(data, dict) else {}
        url = self.affiliates.resolve("FLIGHT")

        offers = []
        for destination, fare_class, fare in self._iter_fares(data):
            try:
                amount = parse_price(fare.get("price"))
                amount, currency = self.fx.convert(amount, UPSTREAM_CURRENCY, params.get("currency"))
                offers.append(
                    self.normalizer(
                        self.category,
                        {
                            "title": f"{origin} → {destination} ({fare_class})",
                            "price": f"{amount} {currency}" if amount is not None else None,
                            "priceValue": amount,
                            "location": f"{origin} → {destination}",
                            "image": f"https://picsum.photos/seed/flight{destination}/600/360",
                            "popularity": 0.7 + self.rng.random() * 0.3,
                            "tags": ["smart"],
                            "provider": "Travelpayouts",
                            "url": url,
                        },
                    )
                )
            except (TypeError, ValueError, AttributeError):
                logger.warning("Skipping malformed fare", extra={"destination": destination})

        if not offers:
            return []

        # Open-ended search on the secondary flight partner.
        offers.append(
            self.normalizer(
                self.category,
                {
                    "title": f"{origin} → ANY (via Kiwi)",
                    "location": query,
                    "image": "https://picsum.photos/seed/kiwi/600/360",
                    "popularity": 0.7,
                    "provider": "Kiwi",
                    "url": self.affiliates.resolve("FLIGHT2"),
                },
            )
        )
        return offers
