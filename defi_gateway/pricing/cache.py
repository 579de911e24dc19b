"""
Price caching system to avoid redundant API calls
Holds one time-bounded record per symbol in process memory
"""

import time
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Union


@dataclass(frozen=True)
class PriceRecord:
    """Token price snapshot with market metadata"""
    symbol: str
    usd_price: Decimal
    change_24h: Optional[Decimal]
    market_cap_usd: Optional[Decimal]
    volume_24h_usd: Optional[Decimal]
    fetched_at_ms: int  # Epoch millis when fetched from upstream


def epoch_millis() -> int:
    return int(time.time() * 1000)


class PriceCache:
    """
    In-memory TTL cache for price records

    Expiry is checked lazily on read; expired entries stay in memory until
    they are overwritten or the cache is cleared.
    """

    DEFAULT_TTL_MS = 60000

    def __init__(self, ttl_ms: int = DEFAULT_TTL_MS, clock: Optional[Callable[[], int]] = None):
        if ttl_ms <= 0:
            raise ValueError("ttl_ms must be positive")

        self.ttl_ms = ttl_ms
        self.clock = clock or epoch_millis
        self.logger = logging.getLogger(__name__)

        self.entries: Dict[str, PriceRecord] = {}

    @staticmethod
    def make_key(symbol: str) -> str:
        """Cache key for a requested symbol"""
        return symbol.strip().lower()

    def now_ms(self) -> int:
        return self.clock()

    def is_live(self, record: PriceRecord) -> bool:
        return self.now_ms() < record.fetched_at_ms + self.ttl_ms

    def get(self, symbol: str) -> Optional[PriceRecord]:
        """
        Get cached record for symbol

        Returns:
            The record if present and not expired, None otherwise
        """
        key = self.make_key(symbol)
        record = self.entries.get(key)
        if record is None:
            return None

        if not self.is_live(record):
            self.logger.debug(f"Price cache entry for {key} expired")
            return None

        return record

    def set(self, symbol: str, record: PriceRecord) -> PriceRecord:
        """Store record under symbol, replacing any previous entry"""
        self.entries[self.make_key(symbol)] = record
        return record

    def clear(self):
        """Drop all cached entries"""
        self.entries.clear()

    def get_stats(self) -> Dict[str, Union[int, List[str]]]:
        """Get cache statistics"""
        return {
            "size": len(self.entries),
            "keys": list(self.entries.keys())
        }
