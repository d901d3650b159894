import logging

from offers.providers.base import ProviderError
from offers.services.cache import cache_key

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 12
MAX_LIMIT = 50
PLACE_TYPES = ("city", "airport", "region", "country", "station")

FALLBACK_SUGGESTIONS = (
    {"name": "Roma", "code": "ROM", "type": "city", "country": "Italia"},
    {"name": "Milano", "code": "MIL", "type": "city", "country": "Italia"},
    {"name": "Parigi", "code": "PAR", "type": "city", "country": "Francia"},
    {"name": "Londra", "code": "LON", "type": "city", "country": "UK"},
    {"name": "New York", "code": "NYC", "type": "city", "country": "USA"},
    {"name": "Tokyo", "code": "TYO", "type": "city", "country": "Giappone"},
    {"name": "Dubai", "code": "DXB", "type": "city", "country": "UAE"},
    {"name": "Bangkok", "code": "BKK", "type": "city", "country": "Thailandia"},
)

# Cities promoted for Italian-speaking users.
LOCALE_BOOSTS = {"it": ("roma", "milano", "venezia")}

WEIGHTS = {
    "name_prefix": 120,
    "name_contains": 60,
    "code_prefix": 150,
    "airport_in_flight_mode": 70,
    "hotel_in_hotel_mode": 50,
    "home_country": 30,
    "capital": 40,
    "fuzzy_ceiling": 30,
    "locale": 25,
    "popularity_cap": 50,
    "popularity_divisor": 500,
}


def levenshtein(a: str, b: str) -> int:
    """Edit distance; 99 when either side is empty."""
    if not a or not b:
        return 99
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def _number(value):
    if isinstance(value, bool):
        return 0
    return value if isinstance(value, (int, float)) else 0


def normalize_place(item: dict) -> dict:
    importance = _number(item.get("importance"))
    return {
        "name": str(item.get("name") or item.get("city_name") or ""),
        "code": str(item.get("code") or item.get("iata_code") or ""),
        "type": str(item.get("type") or item.get("kind") or "city"),
        "country": str(item.get("country_name") or item.get("country") or ""),
        "weight": _number(item.get("weight") or item.get("rate")),
        "isCapital": bool(item.get("is_city")) and importance > 1000,
    }


def dedupe_places(places):
    seen = set()
    out = []
    for place in places:
        key = (place["name"].lower(), place["country"].lower())
        if key in seen:
            continue
        seen.add(key)
        out.append(place)
    return out


def score_place(place: dict, query: str, *, home="", mode="general", lng="it") -> float:
    query = (query or "").lower()
    home = (home or "").lower()
    name = place["name"].lower()
    score = 0.0

    if name.startswith(query):
        score += WEIGHTS["name_prefix"]
    elif query in name:
        score += WEIGHTS["name_contains"]

    if place["code"].lower().startswith(query):
        score += WEIGHTS["code_prefix"]

    if place["type"] == "airport" and mode == "flight":
        score += WEIGHTS["airport_in_flight_mode"]
    if place["type"] == "hotel" and mode in ("hotel", "bnb"):
        score += WEIGHTS["hotel_in_hotel_mode"]
    if home and home in place["country"].lower():
        score += WEIGHTS["home_country"]
    if place.get("isCapital"):
        score += WEIGHTS["capital"]

    score += max(0, WEIGHTS["fuzzy_ceiling"] - levenshtein(name, query))

    if name in LOCALE_BOOSTS.get(lng, ()):
        score += WEIGHTS["locale"]

    score += min(WEIGHTS["popularity_cap"], place["weight"] / WEIGHTS["popularity_divisor"])
    return score


def rank_places(places, query, *, home="", mode="general", lng="it") -> list[dict]:
    """Highest score first; equal scores keep their upstream order."""
    ranked = []
    for place in places:
        suggestion = {k: v for k, v in place.items() if k != "isCapital"}
        suggestion["score"] = score_place(place, query, home=home, mode=mode, lng=lng)
        ranked.append(suggestion)
    ranked.sort(key=lambda s: s["score"], reverse=True)
    return ranked


def clamp_limit(value) -> int:
    try:
        limit = int(value) if value not in (None, "") else DEFAULT_LIMIT
    except (TypeError, ValueError):
        limit = DEFAULT_LIMIT
    return max(1, min(limit, MAX_LIMIT))


def fallback_suggestions(limit=DEFAULT_LIMIT) -> list[dict]:
    return [dict(s) for s in FALLBACK_SUGGESTIONS[:limit]]


class SuggestService:
    def __init__(self, fetcher, cache, *, api_url):
        self.fetcher = fetcher
        self.cache = cache
        self.api_url = api_url

    def _fetch_places(self, query, lng):
        payload = self.fetcher.get_json(
            self.api_url,
            params={"term": query, "locale": lng, "types[]": list(PLACE_TYPES)},
        )
        if not isinstance(payload, list):
            raise ProviderError("Autocomplete response was not a list.")
        places = []
        for item in payload:
            if isinstance(item, dict):
                places.append(normalize_place(item))
        return places

    def suggest(self, query: str, *, lng="it", home="", mode="general", limit=DEFAULT_LIMIT) -> dict:
        query = (query or "").strip()
        limit = clamp_limit(limit)
        if not query:
            return {"suggestions": fallback_suggestions(limit)}

        key = cache_key("suggest", {"lng": lng, "mode": mode, "q": query})
        cached = self.cache.get(key)
        if cached is not None:
            return {"suggestions": cached[:limit], "cached": True}

        try:
            places = self._fetch_places(query, lng)
        except ProviderError as exc:
            logger.warning("Suggest upstream failed, serving fallback list: %s", exc)
            return {"suggestions": fallback_suggestions(limit), "fallback": True}

        ranked = rank_places(dedupe_places(places), query, home=home, mode=mode, lng=lng)
        self.cache.set(key, ranked)
        return {"suggestions": ranked[:limit], "cached": False}
