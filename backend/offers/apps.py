import logging

from django.apps import AppConfig

logger = logging.getLogger(__name__)


class OffersConfig(AppConfig):
    name = "offers"
    default_auto_field = "django.db.models.AutoField"

    def ready(self):
        from django.conf import settings
        from django.test.signals import setting_changed

        from offers.services.container import get_services, reset_services

        setting_changed.connect(reset_services, dispatch_uid="offers.reset_services")
        get_services().affiliates.warn_missing(settings.AFFILIATE_SEARCH_KEYS)
