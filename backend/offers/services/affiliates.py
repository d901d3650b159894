import logging

logger = logging.getLogger(__name__)

MAX_NUMBERED_VARIANTS = 6

# Front-end category -> partner group.
PARTNER_GROUPS = {
    "bnb": "hotels",
    "flight": "flights",
    "car": "cars",
    "transfer": "transfers",
    "tickets": "tickets",
    "connectivity": "connectivity",
    "finance": "extra",
    "trading": "extra",
}


def _usable(url) -> bool:
    if not isinstance(url, str) or not url.strip():
        return False
    if "PLACEHOLDER" in url.upper():
        return False
    return url.strip().lower().startswith(("http://", "https://"))


class AffiliateDirectory:
    """
    Affiliate deep links keyed by upper-case id (``HOTEL``, ``FLIGHT2``...).

    ``links`` is the AFF_ID_* table loaded once from the environment.
    """

    def __init__(self, links, partners=None):
        self.links = {str(k).upper(): v for k, v in (links or {}).items() if _usable(v)}
        self.partners = partners or {}

    def resolve(self, key: str) -> str:
        """First configured link among KEY, KEY2 ... KEY6, otherwise ``"#"``."""
        base = (key or "").upper()
        for index in range(1, MAX_NUMBERED_VARIANTS + 1):
            candidate = base if index == 1 else f"{base}{index}"
            url = self.links.get(candidate)
            if url:
                return url
        return "#"

    def partners_for(self, category: str) -> list[dict]:
        group = PARTNER_GROUPS.get((category or "").lower(), (category or "").lower())
        out = []
        for name, key in self.partners.get(group, []):
            url = self.links.get(key.upper())
            if url:
                out.append({"name": name, "url": url, "valid": True})
        return out

    def missing(self, keys) -> list[str]:
        return [key for key in keys if self.resolve(key) == "#"]

    def warn_missing(self, keys):
        missing = self.missing(keys)
        for key in missing:
            logger.warning("Affiliate link missing for %s; offers will link to '#'.", key)
        return missing
