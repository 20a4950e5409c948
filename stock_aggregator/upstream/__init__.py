# Stock Aggregator Upstream
# Authenticated access to the price-history provider
"""
Upstream access for price history.

Components:
- TokenManager: Exchanges credentials for a bearer token and caches it
- UpstreamClient: Fetches ticker lists and price history with that token
"""

from .auth import TokenManager
from .client import UpstreamClient

__all__ = [
    "TokenManager",
    "UpstreamClient",
]
