import logging

from offers.providers.base import LiveOfferProvider
from offers.services.normalize import parse_price

logger = logging.getLogger(__name__)

DEFAULT_LOCATION = "Rome"
UPSTREAM_CURRENCY = "EUR"


def _iso_date(value) -> str:
    if not value:
        return ""
    if hasattr(value, "isoformat"):
        return value.isoformat()[:10]
    return str(value)[:10]


class HotellookProvider(LiveOfferProvider):
    category = "bnb"
    fallback_count = 8

    def __init__(self, *, api_url, token="", **kwargs):
        super().__init__(**kwargs)
        self.api_url = api_url
        self.token = token

    def _query(self, params):
        query = {
            "location": (params.get("query") or "").strip() or DEFAULT_LOCATION,
            "currency": UPSTREAM_CURRENCY,
            "limit": "30",
        }
        if params.get("startDate"):
            query["checkIn"] = _iso_date(params["startDate"])
        if params.get("endDate"):
            query["checkOut"] = _iso_date(params["endDate"])
        if self.token:
            query["token"] = self.token
        return query

    def _to_offer(self, index, hotel, params, url):
        query = params.get("query") or DEFAULT_LOCATION
        amount = parse_price(hotel.get("priceFrom") or hotel.get("price"))
        amount, currency = self.fx.convert(amount, UPSTREAM_CURRENCY, params.get("currency"))
        location = hotel.get("location") if isinstance(hotel.get("location"), dict) else {}
        stars = hotel.get("stars")

        return self.normalizer(
            self.category,
            {
                "title": hotel.get("name") or hotel.get("hotelName") or f"Stay in {query}",
                "price": f"{amount} {currency}" if isinstance(amount, (int, float)) else None,
                "priceValue": amount,
                "location": location.get("name") or query,
                "image": hotel.get("photo") or f"https://picsum.photos/seed/hotel{index}/600/360",
                "popularity": 0.65 + self.rng.random() * 0.35,
                "tags": ["smart"],
                "rating": stars if isinstance(stars, (int, float)) and stars else None,
                "description": hotel.get("address") or "",
                "provider": "Hotellook",
                "url": url,
            },
        )

    def fetch_offers(self, params):
        payload = self.fetcher.get_json(self.api_url, params=self._query(params))
        hotels = payload if isinstance(payload, list) else []
        url = self.affiliates.resolve("HOTEL")

        offers = []
        for index, hotel in enumerate(hotels):
            if not isinstance(hotel, dict):
                continue
            try:
                offers.append(self._to_offer(index, hotel, params, url))
            except (TypeError, ValueError, AttributeError):
                logger.warning("Skipping malformed hotel record", extra={"index": index})
        return offers
