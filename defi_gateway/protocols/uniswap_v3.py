"""
Uniswap V3 pool queries and pricing helpers
Handles pool address derivation, pool state reads and price/APY math
"""

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Tuple

from eth_abi import encode
from eth_utils import keccak, to_canonical_address, to_checksum_address

from ..config import UNISWAP_V3_FACTORY, UNISWAP_V3_POOL_INIT_CODE_HASH
from ..exceptions import ContractCallReverted, InvalidArgument, PoolNotFound
from ..web3_client import Web3Client, checksum_address

Q192 = 2 ** 192
MAX_UINT24 = 2 ** 24 - 1
MAX_UINT160 = 2 ** 160 - 1
FEE_DENOMINATOR = 1_000_000

# Minimal Pool ABI for state reads
POOL_FUNCTIONS = {
    "slot0": {
        "name": "slot0",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [
            {"internalType": "uint160", "name": "sqrtPriceX96", "type": "uint160"},
            {"internalType": "int24", "name": "tick", "type": "int24"},
            {"internalType": "uint16", "name": "observationIndex", "type": "uint16"},
            {"internalType": "uint16", "name": "observationCardinality", "type": "uint16"},
            {"internalType": "uint16", "name": "observationCardinalityNext", "type": "uint16"},
            {"internalType": "uint8", "name": "feeProtocol", "type": "uint8"},
            {"internalType": "bool", "name": "unlocked", "type": "bool"}
        ]
    },
    "liquidity": {
        "name": "liquidity",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"internalType": "uint128", "name": "", "type": "uint128"}]
    },
    "token0": {
        "name": "token0",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"internalType": "address", "name": "", "type": "address"}]
    },
    "token1": {
        "name": "token1",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"internalType": "address", "name": "", "type": "address"}]
    },
}


@dataclass(frozen=True)
class PoolIdentity:
    """Token pair and fee tier identifying a pool"""
    token_a: str
    token_b: str
    fee_tier: int

    def sorted_tokens(self) -> Tuple[str, str]:
        return sort_tokens(self.token_a, self.token_b)


@dataclass(frozen=True)
class PoolState:
    """Pool state snapshot as of the RPC call"""
    address: str
    token0: str
    token1: str
    fee_tier: int
    sqrt_price_x96: int
    tick: int
    liquidity: int
    observation_index: int
    observation_cardinality: int


@dataclass(frozen=True)
class LiquidityApyEstimate:
    """Simplified fee APY for a liquidity range"""
    apy: Decimal
    in_range: bool
    volume_24h_usd: Optional[Decimal] = None
    fees_24h_usd: Optional[Decimal] = None


def sort_tokens(token_a: str, token_b: str) -> Tuple[str, str]:
    """
    Order two token addresses the way the factory does (ascending, case-insensitive)

    Returns:
        (token0, token1) in checksum form
    """
    token_a = checksum_address(token_a)
    token_b = checksum_address(token_b)

    if token_a.lower() == token_b.lower():
        raise InvalidArgument(f"Pool tokens must differ, got {token_a} twice")

    if token_a.lower() < token_b.lower():
        return token_a, token_b
    return token_b, token_a


def compute_pool_address(
    token_a: str,
    token_b: str,
    fee_tier: int,
    factory: str = UNISWAP_V3_FACTORY,
    init_code_hash: str = UNISWAP_V3_POOL_INIT_CODE_HASH
) -> str:
    """
    Compute pool address from token addresses and fee

    salt = keccak256(abi.encode(token0, token1, fee))
    address = keccak256(0xff ++ factory ++ salt ++ init_code_hash)[12:]
    """
    if isinstance(fee_tier, bool) or not isinstance(fee_tier, int) or not 0 <= fee_tier <= MAX_UINT24:
        raise InvalidArgument(f"fee_tier must be a uint24, got {fee_tier!r}")

    token0, token1 = sort_tokens(token_a, token_b)

    salt = keccak(encode(
        ["address", "address", "uint24"],
        [to_canonical_address(token0), to_canonical_address(token1), fee_tier]
    ))

    code_hash = bytes.fromhex(init_code_hash[2:] if init_code_hash.startswith("0x") else init_code_hash)
    digest = keccak(b"\xff" + to_canonical_address(checksum_address(factory)) + salt + code_hash)

    return to_checksum_address(digest[12:])


def price_from_sqrt_price_x96(sqrt_price_x96: int, token0_decimals: int, token1_decimals: int) -> Decimal:
    """
    Convert sqrtPriceX96 to a token1-per-token0 decimal price

    price = sqrtPriceX96^2 / 2^192 * 10^(token0_decimals - token1_decimals),
    truncated to token1_decimals places. All intermediates are Python ints.
    """
    if isinstance(sqrt_price_x96, bool) or not isinstance(sqrt_price_x96, int):
        raise InvalidArgument(f"sqrt_price_x96 must be an integer, got {sqrt_price_x96!r}")
    if not 0 <= sqrt_price_x96 <= MAX_UINT160:
        raise InvalidArgument("sqrt_price_x96 must fit in uint160")
    if token0_decimals < 0 or token1_decimals < 0:
        raise InvalidArgument("token decimals must be non-negative")

    # price * 10^token1_decimals == sqrtPriceX96^2 * 10^token0_decimals / 2^192
    scaled_price = sqrt_price_x96 * sqrt_price_x96 * 10 ** token0_decimals // Q192

    return Decimal(f"{scaled_price}e-{token1_decimals}")


def estimate_liquidity_apy(
    pool_state: PoolState,
    tick_lower: int,
    tick_upper: int,
    volume_24h_usd: Decimal,
    fee_tier_ppm: int
) -> LiquidityApyEstimate:
    """
    Estimate fee APY for a position between tick_lower and tick_upper

    Simplified: divides annualised USD fees by raw on-chain liquidity units.
    """
    in_range = tick_lower <= pool_state.tick <= tick_upper
    if not in_range:
        return LiquidityApyEstimate(apy=Decimal(0), in_range=False)

    volume_24h_usd = Decimal(str(volume_24h_usd))
    fee_rate = Decimal(fee_tier_ppm) / FEE_DENOMINATOR
    fees_24h = volume_24h_usd * fee_rate

    if pool_state.liquidity == 0:
        apy = Decimal("Infinity") if fees_24h > 0 else Decimal(0)
    else:
        apy = fees_24h * 365 / Decimal(pool_state.liquidity) * 100

    return LiquidityApyEstimate(
        apy=apy,
        in_range=True,
        volume_24h_usd=volume_24h_usd,
        fees_24h_usd=fees_24h
    )


class UniswapV3Client:
    """
    Uniswap V3 pool reader

    Features:
    - Deterministic pool address derivation (no factory call)
    - Concurrent slot0/liquidity/token0/token1 reads
    - Decimal pool price using on-chain token decimals
    """

    def __init__(
        self,
        web3_client: Web3Client,
        factory: str = UNISWAP_V3_FACTORY,
        init_code_hash: str = UNISWAP_V3_POOL_INIT_CODE_HASH,
        chain_id: Optional[int] = None
    ):
        self.web3_client = web3_client
        self.factory = factory
        self.init_code_hash = init_code_hash
        self.chain_id = chain_id
        self.logger = logging.getLogger(__name__)

    def compute_pool_address(self, identity: PoolIdentity) -> str:
        return compute_pool_address(
            identity.token_a,
            identity.token_b,
            identity.fee_tier,
            factory=self.factory,
            init_code_hash=self.init_code_hash
        )

    async def _call_pool(self, pool_address: str, function_name: str, block_number: Optional[int]):
        return await self.web3_client.call_contract_function(
            pool_address,
            POOL_FUNCTIONS[function_name],
            chain_id=self.chain_id,
            block_number=block_number
        )

    async def get_pool_state(self, identity: PoolIdentity, block_number: Optional[int] = None) -> PoolState:
        """
        Get pool state for a token pair and fee tier

        Raises:
            PoolNotFound: no code at the derived address, or a pool call reverted
            RpcUnavailable: transport-level failure
        """
        pool_address = self.compute_pool_address(identity)

        has_code = await self.web3_client.is_contract(pool_address, self.chain_id, block_number)
        if not has_code:
            self.logger.warning(f"No pool deployed at {pool_address} (fee {identity.fee_tier})")
            raise PoolNotFound(pool_address, "no contract code")

        try:
            slot0, liquidity, token0, token1 = await asyncio.gather(
                self._call_pool(pool_address, "slot0", block_number),
                self._call_pool(pool_address, "liquidity", block_number),
                self._call_pool(pool_address, "token0", block_number),
                self._call_pool(pool_address, "token1", block_number),
            )
        except ContractCallReverted as e:
            raise PoolNotFound(pool_address, str(e)) from e

        return PoolState(
            address=pool_address,
            token0=to_checksum_address(token0),
            token1=to_checksum_address(token1),
            fee_tier=identity.fee_tier,
            sqrt_price_x96=int(slot0[0]),
            tick=int(slot0[1]),
            liquidity=int(liquidity),
            observation_index=int(slot0[2]),
            observation_cardinality=int(slot0[3])
        )

    async def get_pool_price(self, identity: PoolIdentity, block_number: Optional[int] = None) -> Decimal:
        """Get current token1-per-token0 price of a pool"""
        pool_state = await self.get_pool_state(identity, block_number)

        token0_decimals, token1_decimals = await asyncio.gather(
            self.web3_client.get_token_decimals(pool_state.token0, self.chain_id),
            self.web3_client.get_token_decimals(pool_state.token1, self.chain_id),
        )

        return price_from_sqrt_price_x96(pool_state.sqrt_price_x96, token0_decimals, token1_decimals)
