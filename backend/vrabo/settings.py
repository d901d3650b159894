import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / ".env")


def _env_bool(name, default=False):
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "y", "on")


def _env_int(name, default):
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _env_float(name, default):
    try:
        return float(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _env_list(name):
    raw = os.getenv(name) or ""
    return [part.strip().lower() for part in raw.split(",") if part.strip()]


def _load_affiliate_env():
    """Collect every AFF_ID_* variable (NEXT_PUBLIC_ prefix accepted) once."""
    links = {}
    for prefix in ("NEXT_PUBLIC_AFF_ID_", "AFF_ID_"):
        for key, value in os.environ.items():
            if key.startswith(prefix) and value.strip():
                links[key[len(prefix):].upper()] = value.strip()
    return links


SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "vrabo-dev-insecure-key")
DEBUG = _env_bool("DJANGO_DEBUG", False)
ALLOWED_HOSTS = os.getenv("DJANGO_ALLOWED_HOSTS", "*").split(",")

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "rest_framework",
    "offers",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "vrabo.urls"
WSGI_APPLICATION = "vrabo.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "db.sqlite3",
    }
}

USE_TZ = True
TIME_ZONE = "UTC"
APPEND_SLASH = False

REST_FRAMEWORK = {
    "DEFAULT_RENDERER_CLASSES": ["rest_framework.renderers.JSONRenderer"],
    "DEFAULT_PARSER_CLASSES": ["rest_framework.parsers.JSONParser"],
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": ["rest_framework.permissions.AllowAny"],
    "UNAUTHENTICATED_USER": None,
}

# ============================================================
# CACHES
# ============================================================
CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "vrabo-search",
        "TIMEOUT": 300,
    },
    "fx": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "vrabo-fx",
        "TIMEOUT": 3600,
    },
    # Evict a single least-recently-used entry once 500 are stored.
    "suggest": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "vrabo-suggest",
        "TIMEOUT": 300,
        "OPTIONS": {"MAX_ENTRIES": 500, "CULL_FREQUENCY": 500},
    },
}

SEARCH_CACHE_TTL = _env_int("SEARCH_CACHE_TTL", 300)
FX_CACHE_TTL = _env_int("FX_CACHE_TTL", 3600)
FX_FAILURE_TTL = _env_int("FX_FAILURE_TTL", 60)
SUGGEST_CACHE_TTL = _env_int("SUGGEST_CACHE_TTL", 300)

# ============================================================
# UPSTREAM APIS
# ============================================================
DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "EUR").upper()
TRAVELPAYOUTS_TOKEN = os.getenv("TRAVELPAYOUTS_TOKEN") or os.getenv("TRAVELPAYOUTS_KEY", "")

HOTELLOOK_API_URL = os.getenv("HOTELLOOK_API_URL", "https://engine.hotellook.com/api/v2/cache.json")
FLIGHTS_CHEAP_API_URL = os.getenv("FLIGHTS_CHEAP_API_URL", "https://api.travelpayouts.com/v1/prices/cheap")
FX_API_URL = os.getenv("FX_API_URL", "https://api.exchangerate.host/latest")
PLACES_AUTOCOMPLETE_URL = os.getenv("PLACES_AUTOCOMPLETE_URL", "https://autocomplete.travelpayouts.com/places2")

UPSTREAM_TIMEOUT = _env_float("UPSTREAM_TIMEOUT", 3.5)
UPSTREAM_RETRIES = _env_int("UPSTREAM_RETRIES", 3)
UPSTREAM_BACKOFF = _env_float("UPSTREAM_BACKOFF", 0.4)

OFFER_IMAGE_FALLBACK = "https://picsum.photos/seed/vrabo/600/360"

# ============================================================
# AFFILIATES
# ============================================================
AFFILIATE_ENV = _load_affiliate_env()

# Keys the search handlers link to; missing ones are reported at startup.
AFFILIATE_SEARCH_KEYS = [
    "HOTEL",
    "FLIGHT",
    "FLIGHT2",
    "CAR",
    "TRANSFER",
    "FINANCE",
    "TRADING",
    "TICKETS",
    "TICKETS2",
    "CONNECTIVITY1",
    "CONNECTIVITY2",
    "INSURANCE",
    "SOFTWARE",
    "ENERGY",
]

AFFILIATE_PARTNERS = {
    "flights": [("Aviasales", "FLIGHT"), ("Kiwi", "FLIGHT2")],
    "hotels": [("Booking", "HOTEL")],
    "cars": [
        ("Localrent", "CAR"),
        ("Economybookings", "CAR2"),
        ("QEEQ", "CAR3"),
        ("GetRentacar", "CAR4"),
    ],
    "transfers": [
        ("Kiwitaxi", "TRANSFER1"),
        ("GetTransfer", "TRANSFER2"),
        ("Intui", "TRANSFER3"),
    ],
    "bus": [("TPK Bus", "BUS")],
    "tickets": [("Tiqets", "TICKETS1"), ("TicketNetwork", "TICKETS2")],
    "connectivity": [
        ("Yesim", "CONNECTIVITY1"),
        ("Airalo", "CONNECTIVITY2"),
        ("DrimSim", "CONNECTIVITY3"),
    ],
    "extra": [("Amazon", "AMAZON"), ("NordVPN", "SOFTWARE")],
}

# ============================================================
# SCORING
# ============================================================
SCORING = {
    "commission": {
        "bnb": 0.07,
        "flight": 0.09,
        "car": 0.07,
        "transfer": 0.08,
        "finance": 0.4,
        "trading": 0.3,
        "tickets": 0.15,
        "connectivity": 0.2,
        "insurance": 0.25,
        "software": 0.35,
        "energy": 0.2,
    },
    "fallback_commission": 0.05,
    "default_budget": 150,
    "default_style": "smart",
    "default_risk": "medium",
    "style_bonus": 0.25,
    "risk_bonus": 0.25,
    "budget_clamp": (0.5, 1.5),
    "dates_bonus": 1.05,
    "rating_base": 0.8,
    "rating_span": 0.4,
    "popularity_slope": 0.15,
    "popularity_intercept": 0.925,
}

# ============================================================
# RATE LIMITS (requests, window seconds)
# ============================================================
SUGGEST_RATE_LIMIT = (_env_int("SUGGEST_RATE_LIMIT", 30), _env_float("SUGGEST_RATE_WINDOW", 5))
TRACK_RATE_LIMIT = (_env_int("TRACK_RATE_LIMIT", 50), _env_float("TRACK_RATE_WINDOW", 10))
# 0 disables admission control on search.
SEARCH_RATE_LIMIT = (_env_int("SEARCH_RATE_LIMIT", 0), _env_float("SEARCH_RATE_WINDOW", 10))

# ============================================================
# LINK TRACKER
# ============================================================
TRACK_ALLOW_LIST = _env_list("TRACK_ALLOW_LIST")
TRACK_DENY_LIST = _env_list("TRACK_DENY_LIST")
TRACK_HMAC_SECRET = os.getenv("TRACK_HMAC_SECRET", "")
TRACK_REQUIRE_SIGNATURE = _env_bool("TRACK_REQUIRE_SIGNATURE", False)
TRACK_LOG_FILE = os.getenv("TRACK_LOG_FILE", "")

# ============================================================
# LOGGING
# ============================================================
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {"format": "%(asctime)s %(levelname)s [%(name)s] %(message)s"},
        "bare": {"format": "%(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "standard"},
        "track": {"class": "logging.StreamHandler", "formatter": "bare"},
    },
    "loggers": {
        "offers": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "offers.track": {"handlers": ["track"], "level": "INFO", "propagate": False},
    },
    "root": {"handlers": ["console"], "level": "WARNING"},
}
