from django.conf import settings


def _clamp(value, low, high):
    return min(high, max(low, value))


def commission_rate(category, scoring=None) -> float:
    scoring = scoring or settings.SCORING
    return scoring["commission"].get(category, scoring["fallback_commission"])


def score_offer(offer: dict, category: str, profile=None, context=None, scoring=None) -> float:
    """
    Relevance score: the category commission rate weighted by profile fit,
    supplied travel dates, rating and popularity.
    """
    scoring = scoring or settings.SCORING
    profile = profile or {}
    context = context or {}

    style = profile.get("style") or scoring["default_style"]
    risk = profile.get("risk") or scoring["default_risk"]
    try:
        budget = float(profile.get("budget") or scoring["default_budget"])
    except (TypeError, ValueError):
        budget = float(scoring["default_budget"])

    tags = offer.get("tags") or []
    adjustment = 1.0
    if style in tags:
        adjustment += scoring["style_bonus"]
    if category == "trading" and risk in tags:
        adjustment += scoring["risk_bonus"]

    price_value = offer.get("priceValue")
    if isinstance(price_value, (int, float)) and price_value > 0:
        low, high = scoring["budget_clamp"]
        adjustment *= _clamp(budget / price_value, low, high)

    if context.get("hasDates"):
        adjustment *= scoring["dates_bonus"]

    rating = offer.get("rating")
    if rating:
        adjustment *= scoring["rating_base"] + (rating / 5) * scoring["rating_span"]

    popularity = (offer.get("popularity") or 1) * scoring["popularity_slope"] + scoring["popularity_intercept"]
    return commission_rate(category, scoring) * 100 * adjustment * popularity
