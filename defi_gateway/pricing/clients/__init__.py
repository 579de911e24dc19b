"""
API clients for pricing data
"""

from .coingecko_client import CoinGeckoClient

__all__ = [
    "CoinGeckoClient"
]
