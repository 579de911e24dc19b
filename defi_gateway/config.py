"""
Configuration management for the DeFi gateway
"""

import os
from dataclasses import dataclass
from typing import Optional, Dict, Any
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

UNISWAP_V3_FACTORY = "0x1F98431c8aD98523631AE4a59f267346ea31F984"
UNISWAP_V3_POOL_INIT_CODE_HASH = "0xe34f199b19b2b4f47f68442619d555527d244f78a3297ea89325f843f87b8b54"


def _get_env_int(name: str, default: int) -> int:
    """Read an integer env var, falling back to default when unset"""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default

    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid integer value for env var {name}: {raw!r}") from exc


@dataclass
class Config:
    """Configuration for the DeFi gateway"""

    # Blockchain Configuration
    ethereum_rpc_url: str = "https://ethereum-rpc.publicnode.com"
    arbitrum_rpc_url: str = "https://arb1.arbitrum.io/rpc"
    optimism_rpc_url: str = "https://mainnet.optimism.io"
    polygon_rpc_url: str = "https://polygon-rpc.com"
    default_chain_id: int = 1

    # Price API Configuration
    coingecko_api_key: Optional[str] = None
    coingecko_base_url: str = "https://api.coingecko.com/api/v3"
    price_cache_ttl_ms: int = 60000  # 1 minute
    http_timeout_seconds: int = 30

    # Uniswap V3 deployment (same factory on Ethereum, Arbitrum, Optimism, Polygon)
    uniswap_v3_factory: str = UNISWAP_V3_FACTORY
    pool_init_code_hash: str = UNISWAP_V3_POOL_INIT_CODE_HASH

    # Logging
    log_level: str = "INFO"
    log_file: str = "defi_gateway.log"

    def validate(self) -> bool:
        """Validate configuration"""
        if not self.ethereum_rpc_url:
            raise ValueError("Missing required configuration field: ethereum_rpc_url")

        if self.price_cache_ttl_ms <= 0:
            raise ValueError("price_cache_ttl_ms must be positive")

        if self.http_timeout_seconds <= 0:
            raise ValueError("http_timeout_seconds must be positive")

        if not self.get_chain_config(self.default_chain_id):
            raise ValueError(f"Unsupported default chain id: {self.default_chain_id}")

        return True

    def get_chain_config(self, chain_id: int) -> Dict[str, Any]:
        """Get chain-specific configuration"""
        chain_configs = {
            1: {  # Ethereum
                "name": "Ethereum",
                "rpc_url": self.ethereum_rpc_url,
                "native_symbol": "ETH",
            },
            10: {  # Optimism
                "name": "Optimism",
                "rpc_url": self.optimism_rpc_url,
                "native_symbol": "ETH",
            },
            137: {  # Polygon
                "name": "Polygon",
                "rpc_url": self.polygon_rpc_url,
                "native_symbol": "MATIC",
            },
            42161: {  # Arbitrum One
                "name": "Arbitrum One",
                "rpc_url": self.arbitrum_rpc_url,
                "native_symbol": "ETH",
            },
        }

        return chain_configs.get(chain_id, {})

    @classmethod
    def from_env(cls) -> 'Config':
        """Create config from environment variables"""
        defaults = cls()
        return cls(
            ethereum_rpc_url=os.getenv("ETHEREUM_RPC_URL", defaults.ethereum_rpc_url),
            arbitrum_rpc_url=os.getenv("ARBITRUM_RPC_URL", defaults.arbitrum_rpc_url),
            optimism_rpc_url=os.getenv("OPTIMISM_RPC_URL", defaults.optimism_rpc_url),
            polygon_rpc_url=os.getenv("POLYGON_RPC_URL", defaults.polygon_rpc_url),
            default_chain_id=_get_env_int("DEFAULT_CHAIN_ID", defaults.default_chain_id),
            coingecko_api_key=os.getenv("COINGECKO_API_KEY") or None,
            coingecko_base_url=os.getenv("COINGECKO_BASE_URL", defaults.coingecko_base_url),
            price_cache_ttl_ms=_get_env_int("PRICE_CACHE_TTL_MS", defaults.price_cache_ttl_ms),
            http_timeout_seconds=_get_env_int("HTTP_TIMEOUT_SECONDS", defaults.http_timeout_seconds),
            uniswap_v3_factory=os.getenv("UNISWAP_V3_FACTORY", defaults.uniswap_v3_factory),
            pool_init_code_hash=os.getenv("UNISWAP_V3_POOL_INIT_CODE_HASH", defaults.pool_init_code_hash),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level),
            log_file=os.getenv("LOG_FILE", defaults.log_file),
        )
