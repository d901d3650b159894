import random

from offers.providers.base import OfferProvider
from offers.services.normalize import SOURCE_SYNTHETIC

DEFAULT_QUERY = "Rome"


class SyntheticProvider(OfferProvider):
    """
    Generates plausible placeholder offers. Used for unknown categories and
    whenever a live upstream fails, so a search never comes back empty.
    """

    def __init__(self, affiliates, normalizer, rng=None):
        self.affiliates = affiliates
        self.normalizer = normalizer
        self.rng = rng or random.Random()

    def generate(self, category: str, query: str = "", count: int = 6) -> list[dict]:
        query = (query or "").strip() or DEFAULT_QUERY
        url = self.affiliates.resolve(category)
        offers = []
        for index in range(count):
            price = round(40 + self.rng.random() * 200)
            offers.append(
                self.normalizer(
                    category,
                    {
                        "title": f"{category.upper()} special {query} #{index + 1}",
                        "price": f"{price} EUR",
                        "priceValue": price,
                        "location": query,
                        "image": f"https://picsum.photos/seed/{category}{index}/600/360",
                        "popularity": 0.5 + self.rng.random() * 0.5,
                        "tags": ["smart"],
                        "provider": "MockVRABO",
                        "url": url,
                    },
                    source=SOURCE_SYNTHETIC,
                )
            )
        return offers

    def search(self, params):
        return self.generate(params["type"], params.get("query"), 8)
