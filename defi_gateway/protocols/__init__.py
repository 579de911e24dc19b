"""
Protocol integrations
"""

from .uniswap_v3 import (
    LiquidityApyEstimate,
    PoolIdentity,
    PoolState,
    UniswapV3Client,
    compute_pool_address,
    estimate_liquidity_apy,
    price_from_sqrt_price_x96,
)

__all__ = [
    "LiquidityApyEstimate",
    "PoolIdentity",
    "PoolState",
    "UniswapV3Client",
    "compute_pool_address",
    "estimate_liquidity_apy",
    "price_from_sqrt_price_x96",
]
