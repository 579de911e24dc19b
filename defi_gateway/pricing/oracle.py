"""
Price oracle combining the CoinGecko client with the in-memory price cache
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from ..config import Config
from ..exceptions import InvalidArgument, UnknownSymbol, UpstreamUnavailable
from .cache import PriceCache, PriceRecord
from .clients.coingecko_client import CoinGeckoClient
from .tokens import TokenRegistry


@dataclass(frozen=True)
class HistoricalPrice:
    """Single point of a price history"""
    timestamp_ms: int
    usd_price: Decimal


def to_decimal(value: Any) -> Optional[Decimal]:
    """Convert a JSON number to Decimal via its string form"""
    if value is None:
        return None
    return Decimal(str(value))


class PriceOracle:
    """
    Token price lookups backed by CoinGecko

    - get_price: cached, one upstream call on miss or expiry
    - get_batch_prices: one upstream call for all distinct ids, never cached
    - get_historical_prices: one upstream call per invocation
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        coingecko_client: Optional[CoinGeckoClient] = None,
        cache: Optional[PriceCache] = None
    ):
        self.config = config or Config()
        self.logger = logging.getLogger(__name__)

        self.cache = cache or PriceCache(ttl_ms=self.config.price_cache_ttl_ms)
        self.coingecko_client = coingecko_client or CoinGeckoClient(
            api_key=self.config.coingecko_api_key,
            base_url=self.config.coingecko_base_url,
            timeout_seconds=self.config.http_timeout_seconds
        )

    @staticmethod
    def _require_symbol(symbol: Any) -> str:
        if not isinstance(symbol, str) or not symbol.strip():
            raise InvalidArgument(f"Token symbol must be a non-empty string, got {symbol!r}")
        return symbol

    def _build_record(self, symbol: str, data: Dict[str, Any]) -> PriceRecord:
        return PriceRecord(
            symbol=TokenRegistry.normalize_symbol(symbol),
            usd_price=to_decimal(data["usd"]),
            change_24h=to_decimal(data.get("usd_24h_change")),
            market_cap_usd=to_decimal(data.get("usd_market_cap")),
            volume_24h_usd=to_decimal(data.get("usd_24h_vol")),
            fetched_at_ms=self.cache.now_ms()
        )

    async def get_price(self, symbol: str) -> PriceRecord:
        """
        Get the current USD price for a token symbol

        Args:
            symbol: Token symbol, any case (e.g. "ETH", "usdc")

        Returns:
            PriceRecord, served from cache while it is live

        Raises:
            UnknownSymbol: unmapped symbol not known upstream either
            UpstreamUnavailable: price source errored or returned no data
        """
        self._require_symbol(symbol)

        cached = self.cache.get(symbol)
        if cached:
            self.logger.debug(f"Price cache hit for {symbol}")
            return cached

        coin_id = TokenRegistry.get_coingecko_id(symbol)
        data = await self.coingecko_client.get_simple_prices([coin_id])

        entry = data.get(coin_id)
        if not entry or entry.get("usd") is None:
            if not TokenRegistry.is_known(symbol):
                self.logger.warning(f"No CoinGecko entry for unmapped symbol {symbol} ({coin_id})")
                raise UnknownSymbol(symbol, coin_id)
            self.logger.error(f"CoinGecko returned no price data for {coin_id}")
            raise UpstreamUnavailable(f"No price data returned for {coin_id}")

        record = self._build_record(symbol, entry)
        self.cache.set(symbol, record)
        self.logger.debug(f"Fetched {symbol} price from CoinGecko: ${record.usd_price}")
        return record

    async def get_batch_prices(self, symbols: Sequence[str]) -> Dict[str, Optional[PriceRecord]]:
        """
        Get prices for multiple symbols in a single upstream request

        Duplicate or differently-cased symbols share one upstream id. Symbols
        without an upstream entry map to None instead of failing the batch.
        The single-entry cache is neither read nor written.
        """
        for symbol in symbols:
            self._require_symbol(symbol)

        if not symbols:
            return {}

        coin_ids = {symbol: TokenRegistry.get_coingecko_id(symbol) for symbol in symbols}
        distinct_ids = list(dict.fromkeys(coin_ids.values()))

        data = await self.coingecko_client.get_simple_prices(distinct_ids)

        prices: Dict[str, Optional[PriceRecord]] = {}
        for symbol, coin_id in coin_ids.items():
            entry = data.get(coin_id)
            if entry and entry.get("usd") is not None:
                prices[symbol] = self._build_record(symbol, entry)
            else:
                self.logger.debug(f"No batch price for {symbol} ({coin_id})")
                prices[symbol] = None

        return prices

    async def get_historical_prices(self, symbol: str, days: int = 7) -> List[HistoricalPrice]:
        """
        Get USD price history for the last N days

        Args:
            symbol: Token symbol
            days: Positive number of days

        Returns:
            HistoricalPrice items ordered as returned by upstream
        """
        self._require_symbol(symbol)
        if isinstance(days, bool) or not isinstance(days, int) or days <= 0:
            raise InvalidArgument(f"days must be a positive integer, got {days!r}")

        coin_id = TokenRegistry.get_coingecko_id(symbol)
        points = await self.coingecko_client.get_market_chart(coin_id, days)

        return [
            HistoricalPrice(timestamp_ms=timestamp_ms, usd_price=to_decimal(price))
            for timestamp_ms, price in points
        ]

    @staticmethod
    def calculate_price_impact(
        input_amount: Decimal,
        output_amount: Decimal,
        input_price: Decimal,
        output_price: Decimal
    ) -> Decimal:
        """
        Calculate price impact (percent) of a swap against reference prices
        """
        input_amount, output_amount = Decimal(input_amount), Decimal(output_amount)
        input_price, output_price = Decimal(input_price), Decimal(output_price)

        if output_price == 0:
            raise InvalidArgument("output_price must be non-zero")

        expected_output = input_amount * input_price / output_price
        if expected_output == 0:
            raise InvalidArgument("expected output is zero; price impact is undefined")

        return (expected_output - output_amount) / expected_output * 100

    def clear_cache(self):
        """Clear cache"""
        self.cache.clear()

    def get_cache_stats(self) -> Dict[str, Any]:
        """Get cache statistics"""
        return self.cache.get_stats()

    async def close(self):
        await self.coingecko_client.close()
