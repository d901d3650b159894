import math
import re

DEFAULT_TITLE = "Offerta"
UNKNOWN_PRICE = "—"
UNKNOWN_LOCATION = "—"
DEFAULT_POPULARITY = 0.6

HTTP_URL_RE = re.compile(r"^https?://", re.IGNORECASE)
PRICE_RE = re.compile(r"[^\d.,-]")

SOURCE_LIVE = "live"
SOURCE_CATALOG = "catalog"
SOURCE_SYNTHETIC = "synthetic"


def _text(value, default=""):
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _number(value):
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)) and math.isfinite(value):
        return value
    return None


def parse_price(value):
    """Numeric price from ``129``, ``"129,50 EUR"`` or ``"da 15€"``; None when unparsable."""
    number = _number(value)
    if number is not None:
        return number
    if value is None or isinstance(value, bool):
        return None
    cleaned = PRICE_RE.sub("", str(value)).replace(",", ".", 1)
    try:
        number = float(cleaned)
    except ValueError:
        return None
    return number if math.isfinite(number) and number else None


def normalize_offer(raw: dict, *, commission_rate: float, image_fallback: str, source=SOURCE_LIVE) -> dict:
    image = _text(raw.get("image"), image_fallback)
    if not HTTP_URL_RE.match(image):
        image = image_fallback

    url = _text(raw.get("url"), "#")
    if url != "#" and not HTTP_URL_RE.match(url):
        url = "#"

    price_value = _number(raw.get("priceValue"))
    tags = raw.get("tags")
    popularity = _number(raw.get("popularity"))

    return {
        "title": _text(raw.get("title"), DEFAULT_TITLE),
        "description": _text(raw.get("description")),
        "rating": _number(raw.get("rating")),
        "price": _text(raw.get("price"), UNKNOWN_PRICE),
        "priceValue": price_value,
        "location": _text(raw.get("location"), UNKNOWN_LOCATION),
        "image": image,
        "url": url,
        "provider": _text(raw.get("provider"), "generic"),
        "tags": [str(t) for t in tags] if isinstance(tags, (list, tuple)) else [],
        "popularity": DEFAULT_POPULARITY if popularity is None else popularity,
        "commissionEstimate": price_value * commission_rate if price_value is not None else None,
        "source": source,
    }


def dedupe_offers(offers):
    """Drop repeated ``(title, url)`` pairs keeping the first occurrence."""
    seen = set()
    deduped = []
    for offer in offers:
        key = (offer.get("title"), offer.get("url"))
        if key in seen:
            continue
        seen.add(key)
        deduped.append(offer)
    return deduped


class OfferNormalizer:
    """Binds the commission table and image fallback used by every provider."""

    def __init__(self, commission: dict, fallback_commission: float, image_fallback: str):
        self.commission = commission
        self.fallback_commission = fallback_commission
        self.image_fallback = image_fallback

    def __call__(self, category: str, raw: dict, source=SOURCE_LIVE) -> dict:
        rate = self.commission.get(category, self.fallback_commission)
        return normalize_offer(raw, commission_rate=rate, image_fallback=self.image_fallback, source=source)
