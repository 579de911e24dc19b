"""
Position providers - one per protocol or asset source
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from ..exceptions import InvalidArgument
from ..pricing.oracle import PriceOracle
from ..pricing.tokens import RegistryToken, TokenRegistry
from ..web3_client import Web3Client, format_units

POSITION_KINDS = ("wallet", "liquidity", "supply", "collateral", "debt")


@dataclass(frozen=True)
class Position:
    """A single valued holding or obligation of an address"""
    protocol: str
    kind: str  # one of POSITION_KINDS
    symbol: str
    amount: Decimal
    value_usd: Decimal
    apy: Optional[Decimal] = None
    daily_yield_usd: Optional[Decimal] = None
    liquidation_threshold: Optional[Decimal] = None  # collateral only, e.g. 0.825

    def __post_init__(self):
        if self.kind not in POSITION_KINDS:
            raise ValueError(f"Unknown position kind: {self.kind!r}")


class PositionProvider(ABC):
    """Base class for anything that can list the positions of an address"""

    def __init__(self):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    @abstractmethod
    def name(self) -> str:
        """Protocol or source name"""
        pass

    @abstractmethod
    async def get_positions(self, address: str) -> List[Position]:
        """
        List positions held by address

        Args:
            address: Checksummed wallet address

        Returns:
            Positions valued in USD
        """
        pass


class WalletBalanceProvider(PositionProvider):
    """
    Native coin and ERC20 balances valued with the price oracle

    The native symbol comes from the chain config (ETH, MATIC, ...). Registry
    tokens carry mainnet addresses, so they are only read by default on
    chain 1. Balance reads and price lookups run concurrently; zero balances
    are skipped.
    """

    def __init__(
        self,
        web3_client: Web3Client,
        price_oracle: PriceOracle,
        tokens: Optional[List[RegistryToken]] = None,
        chain_id: Optional[int] = None
    ):
        super().__init__()
        self.web3_client = web3_client
        self.price_oracle = price_oracle
        self.chain_id = chain_id or web3_client.config.default_chain_id

        chain_config = web3_client.config.get_chain_config(self.chain_id)
        if not chain_config:
            raise InvalidArgument(f"Unsupported chain id: {self.chain_id}")
        self.native_symbol = chain_config["native_symbol"]

        if tokens is None:
            tokens = TokenRegistry.get_erc20_tokens() if self.chain_id == 1 else []
        self.tokens = tokens

    @property
    def name(self) -> str:
        return "wallet"

    async def _native_position(self, address: str) -> Optional[Position]:
        balance_wei = await self.web3_client.get_balance(address, self.chain_id)
        if balance_wei == 0:
            return None

        amount = format_units(balance_wei, 18)
        price = await self.price_oracle.get_price(self.native_symbol)
        return Position(
            protocol=self.name,
            kind="wallet",
            symbol=self.native_symbol,
            amount=amount,
            value_usd=amount * price.usd_price
        )

    async def _token_position(self, address: str, token: RegistryToken) -> Optional[Position]:
        amount = await self.web3_client.get_erc20_balance(
            address, token.address, token.decimals, self.chain_id
        )
        if amount == 0:
            return None

        price = await self.price_oracle.get_price(token.symbol)
        return Position(
            protocol=self.name,
            kind="wallet",
            symbol=token.symbol,
            amount=amount,
            value_usd=amount * price.usd_price
        )

    async def get_positions(self, address: str) -> List[Position]:
        results = await asyncio.gather(
            self._native_position(address),
            *(self._token_position(address, token) for token in self.tokens)
        )

        positions = [position for position in results if position is not None]
        self.logger.debug(f"Found {len(positions)} wallet balances for {address}")
        return positions
