import re
from datetime import date

from django.conf import settings
from rest_framework import serializers

MAX_TYPE_LENGTH = 32
MAX_QUERY_LENGTH = 200
CURRENCY_RE = re.compile(r"^[A-Z]{3}$")
SCALAR_TYPES = (str, int, float)


def _scalar(value):
    if isinstance(value, bool) or not isinstance(value, SCALAR_TYPES):
        return None
    if isinstance(value, str):
        return value.replace("\x00", "")
    return value


def _iso_date(value):
    """``YYYY-MM-DD`` from any ISO date or datetime string; None when unparsable."""
    if not value:
        return None
    try:
        return date.fromisoformat(str(value).strip()[:10]).isoformat()
    except ValueError:
        return None


class ProfileSerializer(serializers.Serializer):
    budget = serializers.FloatField(required=False, allow_null=True)
    style = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    risk = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def to_internal_value(self, data):
        if not isinstance(data, dict):
            return {}
        cleaned = {}
        for key in ("style", "risk"):
            value = _scalar(data.get(key))
            if value not in (None, ""):
                cleaned[key] = value
        try:
            budget = float(_scalar(data.get("budget")))
        except (TypeError, ValueError):
            budget = None
        if budget is not None and budget == budget and budget >= 0:
            cleaned["budget"] = budget
        return super().to_internal_value(cleaned)


class SearchSerializer(serializers.Serializer):
    """
    Search body. Nothing here is rejected: unusable values are dropped,
    truncated or replaced by their defaults so a search always answers.
    """

    type = serializers.CharField(required=False, allow_blank=True, default="bnb")
    query = serializers.CharField(required=False, allow_blank=True, default="", trim_whitespace=False)
    startDate = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)
    endDate = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)
    profile = ProfileSerializer(required=False, default=dict)
    limit = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)
    currency = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)

    def to_internal_value(self, data):
        if not isinstance(data, dict):
            data = {}
        cleaned = {}
        for key, value in data.items():
            if key == "profile":
                cleaned[key] = value if isinstance(value, dict) else {}
                continue
            value = _scalar(value)
            if value is not None:
                cleaned[key] = value
        return super().to_internal_value(cleaned)

    def validate(self, attrs):
        attrs["type"] = (attrs.get("type") or "").strip().lower()[:MAX_TYPE_LENGTH] or "bnb"
        attrs["query"] = (attrs.get("query") or "").strip()[:MAX_QUERY_LENGTH]

        currency = (attrs.get("currency") or "").strip().upper()
        attrs["currency"] = currency if CURRENCY_RE.match(currency) else settings.DEFAULT_CURRENCY

        attrs["profile"] = dict(attrs.get("profile") or {})

        for field in ("startDate", "endDate"):
            attrs[field] = _iso_date(attrs.get(field))
        return attrs
