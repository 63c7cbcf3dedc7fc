"""
Marketplace App Configuration
Listings, orders and the buyer/seller returns and refunds workflow.
"""
from django.apps import AppConfig


class MarketplaceConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'marketplace'
    verbose_name = 'Marketplace'
