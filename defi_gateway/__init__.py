"""
DeFi Gateway - price, pool and portfolio data for DeFi protocols

Aggregates off-chain token prices (CoinGecko) and on-chain Uniswap V3
pool state behind plain async Python calls.
"""

__version__ = "0.1.0"

from .config import Config
from .exceptions import GatewayError

__all__ = [
    "Config",
    "GatewayError",
]
