from offers.providers.base import OfferProvider
from offers.services.normalize import SOURCE_CATALOG, parse_price

CATALOG = {
    "finance": [
        {
            "title": "N26 Standard",
            "price": "0 €/month",
            "priceValue": 0,
            "location": "Online account",
            "image": "/n26.png",
            "popularity": 0.85,
            "tags": ["basic", "smart"],
            "provider": "N26",
            "affiliate": "FINANCE",
        },
        {
            "title": "Revolut Premium",
            "price": "7.99 €/month",
            "priceValue": 7.99,
            "location": "Global",
            "image": "/revolut.png",
            "popularity": 0.9,
            "tags": ["smart", "luxury"],
            "provider": "Revolut",
            "affiliate": "FINANCE",
        },
    ],
    "trading": [
        {
            "title": "eToro",
            "price": "0% on stocks",
            "priceValue": 0,
            "location": "Multi-asset",
            "image": "/etoro.png",
            "popularity": 0.9,
            "tags": ["low", "medium"],
            "provider": "eToro",
            "affiliate": "TRADING",
        },
        {
            "title": "Binance",
            "price": "Low crypto fees",
            "priceValue": 0.1,
            "location": "Exchange",
            "image": "/binance.png",
            "popularity": 0.95,
            "tags": ["medium", "high"],
            "provider": "Binance",
            "affiliate": "TRADING",
        },
    ],
    "tickets": [
        {
            "title": "Events & Museums",
            "price": "from 5€",
            "priceValue": 5,
            "location": "{query|Rome}",
            "image": "/tickets.png",
            "popularity": 0.8,
            "tags": ["culture", "smart"],
            "provider": "Tiqets",
            "affiliate": "TICKETS",
        },
        {
            "title": "Concerts & Shows",
            "price": "from 20€",
            "priceValue": 20,
            "location": "{query|Milan}",
            "image": "/tickets2.png",
            "popularity": 0.85,
            "tags": ["music", "live"],
            "provider": "TicketNetwork",
            "affiliate": "TICKETS2",
        },
    ],
    "connectivity": [
        {
            "title": "Yesim eSIM",
            "location": "Global",
            "image": "/esim.png",
            "popularity": 0.8,
            "tags": ["mobile"],
            "provider": "Yesim",
            "affiliate": "CONNECTIVITY1",
        },
        {
            "title": "Airalo eSIM",
            "location": "Global",
            "image": "/airalo.png",
            "popularity": 0.85,
            "tags": ["mobile"],
            "provider": "Airalo",
            "affiliate": "CONNECTIVITY2",
        },
    ],
    "insurance": [
        {
            "title": "EKTA Travel Insurance",
            "price": "from 20€",
            "priceValue": 20,
            "location": "Global",
            "image": "/insurance.png",
            "popularity": 0.8,
            "tags": ["safety"],
            "provider": "EKTA",
            "affiliate": "INSURANCE",
        },
    ],
    "software": [
        {
            "title": "NordVPN",
            "price": "from 3€/month",
            "priceValue": 3,
            "location": "Global",
            "image": "/vpn.png",
            "popularity": 0.9,
            "tags": ["security"],
            "provider": "NordVPN",
            "affiliate": "SOFTWARE",
        },
    ],
    "energy": [
        {
            "title": "Green Energy Offer",
            "price": "from 30€/month",
            "priceValue": 30,
            "location": "Italy",
            "image": "/energy.png",
            "popularity": 0.7,
            "tags": ["green"],
            "provider": "EnergyCo",
            "affiliate": "ENERGY",
        },
    ],
}


def _location(template: str, query: str) -> str:
    # "{query|Default}" -> the search query, or Default when empty
    if template.startswith("{query|") and template.endswith("}"):
        return query or template[len("{query|"):-1]
    return template


class CatalogProvider(OfferProvider):
    """Fixed partner entries for categories without a live upstream."""

    def __init__(self, category, entries, *, affiliates, normalizer):
        self.category = category
        self.entries = entries
        self.affiliates = affiliates
        self.normalizer = normalizer

    def search(self, params):
        query = (params.get("query") or "").strip()
        offers = []
        for entry in self.entries:
            raw = {k: v for k, v in entry.items() if k != "affiliate"}
            raw["location"] = _location(raw.get("location", ""), query)
            raw["url"] = self.affiliates.resolve(entry["affiliate"])
            offers.append(self.normalizer(self.category, raw, source=SOURCE_CATALOG))
        return offers


class CarRentalProvider(OfferProvider):
    """Daily rates at three pick-up points derived from the profile budget."""

    category = "car"
    pickup_points = ("Airport", "City centre", "Station")
    default_base = 25

    def __init__(self, *, affiliates, normalizer, rng):
        self.affiliates = affiliates
        self.normalizer = normalizer
        self.rng = rng

    def search(self, params):
        profile = params.get("profile") or {}
        currency = params.get("currency") or "EUR"
        base = parse_price(profile.get("budget")) or self.default_base
        url = self.affiliates.resolve("CAR")

        offers = []
        for index, place in enumerate(self.pickup_points):
            price = max(12, round(base * (0.85 + index * 0.22)))
            offers.append(
                self.normalizer(
                    self.category,
                    {
                        "title": f"Car at {place}",
                        "price": f"{price} {currency}/day",
                        "priceValue": price,
                        "location": place,
                        "image": f"https://picsum.photos/seed/car{index}/600/360",
                        "popularity": 0.6 + self.rng.random() * 0.4,
                        "tags": ["basic", "smart"],
                        "provider": "RentalCars",
                        "url": url,
                    },
                    source=SOURCE_CATALOG,
                )
            )
        return offers


class TransferProvider(OfferProvider):
    category = "transfer"

    def __init__(self, *, affiliates, normalizer):
        self.affiliates = affiliates
        self.normalizer = normalizer

    def search(self, params):
        return [
            self.normalizer(
                self.category,
                {
                    "title": "Airport Transfer",
                    "price": "from 15€",
                    "priceValue": 15,
                    "location": (params.get("query") or "").strip() or "Airport",
                    "image": "/transfer.png",
                    "popularity": 0.7,
                    "tags": ["basic", "smart"],
                    "provider": "Transfers",
                    "url": self.affiliates.resolve("TRANSFER"),
                },
                source=SOURCE_CATALOG,
            )
        ]
