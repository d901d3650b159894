from offers.providers.base import OfferProvider, ProviderError
from offers.providers.catalog import CATALOG, CarRentalProvider, CatalogProvider, TransferProvider
from offers.providers.hotellook import HotellookProvider
from offers.providers.synthetic import SyntheticProvider
from offers.providers.travelpayouts import CheapFlightsProvider

__all__ = ["OfferProvider", "ProviderError", "SyntheticProvider", "build_offer_providers"]


def build_offer_providers(config, *, fetcher, fx, affiliates, normalizer, fallback, cache):
    """Return the category -> provider table used by the search aggregator."""

    live = {
        "fetcher": fetcher,
        "fx": fx,
        "affiliates": affiliates,
        "normalizer": normalizer,
        "fallback": fallback,
        "cache": cache,
        "cache_ttl": config.SEARCH_CACHE_TTL,
    }

    providers = {
        "bnb": HotellookProvider(api_url=config.HOTELLOOK_API_URL, token=config.TRAVELPAYOUTS_TOKEN, **live),
        "flight": CheapFlightsProvider(
            api_url=config.FLIGHTS_CHEAP_API_URL, token=config.TRAVELPAYOUTS_TOKEN, **live
        ),
        "car": CarRentalProvider(affiliates=affiliates, normalizer=normalizer, rng=fallback.rng),
        "transfer": TransferProvider(affiliates=affiliates, normalizer=normalizer),
    }
    for category, entries in CATALOG.items():
        providers[category] = CatalogProvider(category, entries, affiliates=affiliates, normalizer=normalizer)
    return providers
