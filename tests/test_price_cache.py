from decimal import Decimal

import pytest

from defi_gateway.pricing.cache import PriceCache, PriceRecord


class FakeClock:
    """Epoch-millis clock that only moves when told to."""

    def __init__(self, now_ms: int = 1_700_000_000_000) -> None:
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


def _record(symbol: str, fetched_at_ms: int, usd: str = "2000") -> PriceRecord:
    return PriceRecord(
        symbol=symbol,
        usd_price=Decimal(usd),
        change_24h=None,
        market_cap_usd=None,
        volume_24h_usd=None,
        fetched_at_ms=fetched_at_ms,
    )


def test_entry_is_live_until_ttl_elapses() -> None:
    clock = FakeClock()
    cache = PriceCache(ttl_ms=60_000, clock=clock)
    record = cache.set("ETH", _record("ETH", clock()))

    clock.advance(59_999)
    assert cache.get("ETH") is record

    clock.advance(1)
    assert cache.get("ETH") is None


def test_keys_are_case_insensitive_and_trimmed() -> None:
    clock = FakeClock()
    cache = PriceCache(clock=clock)
    record = cache.set(" Eth ", _record("ETH", clock()))

    assert cache.get("eth") is record
    assert cache.get("ETH") is record
    assert cache.get_stats() == {"size": 1, "keys": ["eth"]}


def test_expired_entries_stay_until_overwritten() -> None:
    clock = FakeClock()
    cache = PriceCache(ttl_ms=1_000, clock=clock)
    cache.set("eth", _record("ETH", clock()))

    clock.advance(5_000)
    assert cache.get("eth") is None
    assert cache.get_stats()["size"] == 1

    fresh = cache.set("eth", _record("ETH", clock(), usd="2100"))
    assert cache.get("eth") is fresh


def test_last_write_wins_per_key() -> None:
    clock = FakeClock()
    cache = PriceCache(clock=clock)
    cache.set("usdc", _record("USDC", clock(), usd="1"))
    second = cache.set("USDC", _record("USDC", clock(), usd="0.999"))

    assert cache.get("usdc") is second
    assert cache.get_stats()["size"] == 1


def test_clear_drops_everything() -> None:
    clock = FakeClock()
    cache = PriceCache(clock=clock)
    cache.set("eth", _record("ETH", clock()))
    cache.set("btc", _record("BTC", clock()))

    assert cache.get_stats() == {"size": 2, "keys": ["eth", "btc"]}

    cache.clear()

    assert cache.get("eth") is None
    assert cache.get_stats() == {"size": 0, "keys": []}


def test_non_positive_ttl_is_rejected() -> None:
    with pytest.raises(ValueError):
        PriceCache(ttl_ms=0)
