"""
Partner Module - Black Box Interface

Purpose: OAuth-based order/catalog partner integration
Interface: IntegrationManager (connect, handle_callback, get_status, disconnect,
           sync_menu, update_order_status, list_orders, handle_webhook)
Hidden: Partner endpoints, token refresh, catalog/order schemas
"""

from .client import PartnerClient
from .lifecycle import IntegrationManager
from .transform import build_order_record, menu_to_catalog, order_to_internal

__all__ = [
    "IntegrationManager",
    "PartnerClient",
    "build_order_record",
    "menu_to_catalog",
    "order_to_internal",
]
