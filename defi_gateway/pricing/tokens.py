"""
Centralized token registry with consistent addresses and metadata
Maps user-facing symbols to CoinGecko identifiers
"""

from typing import Dict, Optional, List
from dataclasses import dataclass


@dataclass
class RegistryToken:
    """Token metadata and configuration"""
    symbol: str
    coingecko_id: str
    name: str
    address: Optional[str] = None  # Ethereum mainnet, None for native or non-EVM assets
    decimals: int = 18


class TokenRegistry:
    """
    Registry for symbol -> CoinGecko id resolution and mainnet token metadata
    """

    TOKENS: Dict[str, RegistryToken] = {
        "ETH": RegistryToken(symbol="ETH", coingecko_id="ethereum", name="Ethereum"),
        "BTC": RegistryToken(symbol="BTC", coingecko_id="bitcoin", name="Bitcoin", decimals=8),
        "USDC": RegistryToken(
            symbol="USDC",
            coingecko_id="usd-coin",
            name="USD Coin",
            address="0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
            decimals=6
        ),
        "USDT": RegistryToken(
            symbol="USDT",
            coingecko_id="tether",
            name="Tether USD",
            address="0xdAC17F958D2ee523a2206206994597C13D831ec7",
            decimals=6
        ),
        "DAI": RegistryToken(
            symbol="DAI",
            coingecko_id="dai",
            name="Dai Stablecoin",
            address="0x6B175474E89094C44Da98b954EedeAC495271d0F"
        ),
        "WETH": RegistryToken(
            symbol="WETH",
            coingecko_id="weth",
            name="Wrapped Ether",
            address="0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"
        ),
        "WBTC": RegistryToken(
            symbol="WBTC",
            coingecko_id="wrapped-bitcoin",
            name="Wrapped BTC",
            address="0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599",
            decimals=8
        ),
        "UNI": RegistryToken(
            symbol="UNI",
            coingecko_id="uniswap",
            name="Uniswap",
            address="0x1f9840a85d5aF5bf1D1762F925BDADdC4201F984"
        ),
        "AAVE": RegistryToken(
            symbol="AAVE",
            coingecko_id="aave",
            name="Aave",
            address="0x7Fc66500c84A76Ad7e9c93437bFc5Ac33E2DDaE9"
        ),
        "LINK": RegistryToken(
            symbol="LINK",
            coingecko_id="chainlink",
            name="Chainlink",
            address="0x514910771AF9Ca656af840dff83E8264EcF986CA"
        ),
        "MATIC": RegistryToken(
            symbol="MATIC",
            coingecko_id="matic-network",
            name="Polygon",
            address="0x7D1AfA7B718fb893dB30A3aBc0Cfc608AaCfeBB0"
        ),
        "ARB": RegistryToken(symbol="ARB", coingecko_id="arbitrum", name="Arbitrum"),
    }

    @staticmethod
    def normalize_symbol(symbol: str) -> str:
        return symbol.strip().upper()

    @classmethod
    def get_token(cls, symbol: str) -> Optional[RegistryToken]:
        """Get registry entry by symbol (case-insensitive)"""
        return cls.TOKENS.get(cls.normalize_symbol(symbol))

    @classmethod
    def is_known(cls, symbol: str) -> bool:
        return cls.get_token(symbol) is not None

    @classmethod
    def get_coingecko_id(cls, symbol: str) -> str:
        """
        Map a symbol to its CoinGecko id

        Unmapped symbols pass through lowercased as a fallback identifier.
        """
        token = cls.get_token(symbol)
        if token:
            return token.coingecko_id
        return symbol.strip().lower()

    @classmethod
    def get_erc20_tokens(cls) -> List[RegistryToken]:
        """Registry tokens with a mainnet contract address"""
        return [token for token in cls.TOKENS.values() if token.address]
