from django.apps import AppConfig


class ShipmentsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "domains.shipments"
    label = "shipments"  # makemigrations shipments
    verbose_name = "Shipments"
