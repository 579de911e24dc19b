"""
Token pricing for the DeFi gateway
Current, batch and historical USD prices with an in-memory TTL cache
"""

from .oracle import PriceOracle, HistoricalPrice
from .tokens import TokenRegistry
from .cache import PriceCache, PriceRecord

__all__ = [
    "PriceOracle",
    "HistoricalPrice",
    "TokenRegistry",
    "PriceCache",
    "PriceRecord"
]
