"""
Adapters layer - External integrations (storefront REST API, local files, clock).
"""

from .clock import Clock, FixedClock, SystemClock
from .local_store import SessionStore, ViewedNotificationStore
from .mock_client import MockStorefrontClient
from .storefront_client import StorefrontClient

__all__ = [
    "Clock",
    "FixedClock",
    "MockStorefrontClient",
    "SessionStore",
    "StorefrontClient",
    "SystemClock",
    "ViewedNotificationStore",
]
