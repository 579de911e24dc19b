import asyncio
from decimal import Decimal

import pytest

from defi_gateway.exceptions import InvalidArgument, UnknownSymbol, UpstreamUnavailable
from defi_gateway.pricing.cache import PriceCache
from defi_gateway.pricing.oracle import HistoricalPrice, PriceOracle


class FakeClock:
    def __init__(self, now_ms: int = 1_700_000_000_000) -> None:
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms


class FakeCoinGeckoClient:
    """
    Fake CoinGecko client for PriceOracle unit tests.

    - records get_simple_prices / get_market_chart calls
    - raises `error` from every call when it is set
    """

    def __init__(self, prices=None, history=None, error: Exception = None) -> None:
        self.prices = prices or {}
        self.history = history or []
        self.error = error
        self.simple_price_calls: list[list[str]] = []
        self.market_chart_calls: list[tuple[str, int]] = []

    async def get_simple_prices(self, coingecko_ids):
        self.simple_price_calls.append(list(coingecko_ids))
        if self.error:
            raise self.error
        return {coin_id: self.prices[coin_id] for coin_id in coingecko_ids if coin_id in self.prices}

    async def get_market_chart(self, coingecko_id, days):
        self.market_chart_calls.append((coingecko_id, days))
        if self.error:
            raise self.error
        return list(self.history)

    async def close(self):
        pass


ETH_ENTRY = {
    "usd": 2000,
    "usd_24h_change": -1.25,
    "usd_market_cap": 240000000000,
    "usd_24h_vol": 15000000000.5,
}


def _make_oracle(client: FakeCoinGeckoClient, clock: FakeClock = None) -> PriceOracle:
    cache = PriceCache(ttl_ms=60_000, clock=clock or FakeClock())
    return PriceOracle(coingecko_client=client, cache=cache)


def test_get_price_builds_record_from_upstream() -> None:
    clock = FakeClock()
    client = FakeCoinGeckoClient(prices={"ethereum": ETH_ENTRY})
    oracle = _make_oracle(client, clock)

    record = asyncio.run(oracle.get_price("eth"))

    assert client.simple_price_calls == [["ethereum"]]
    assert record.symbol == "ETH"
    assert record.usd_price == Decimal("2000")
    assert record.change_24h == Decimal("-1.25")
    assert record.market_cap_usd == Decimal("240000000000")
    assert record.volume_24h_usd == Decimal("15000000000.5")
    assert record.fetched_at_ms == clock.now_ms


def test_second_get_price_within_ttl_uses_cache() -> None:
    client = FakeCoinGeckoClient(prices={"ethereum": ETH_ENTRY})
    oracle = _make_oracle(client)

    async def scenario():
        first = await oracle.get_price("ETH")
        second = await oracle.get_price("eth")
        return first, second

    first, second = asyncio.run(scenario())

    assert len(client.simple_price_calls) == 1
    assert first is second


def test_expired_entry_triggers_refetch() -> None:
    clock = FakeClock()
    client = FakeCoinGeckoClient(prices={"ethereum": ETH_ENTRY})
    oracle = _make_oracle(client, clock)

    asyncio.run(oracle.get_price("ETH"))
    clock.now_ms += 60_000
    asyncio.run(oracle.get_price("ETH"))

    assert len(client.simple_price_calls) == 2


def test_clear_cache_forces_live_fetch() -> None:
    client = FakeCoinGeckoClient(prices={"ethereum": ETH_ENTRY})
    oracle = _make_oracle(client)

    asyncio.run(oracle.get_price("ETH"))
    oracle.clear_cache()
    asyncio.run(oracle.get_price("ETH"))

    assert len(client.simple_price_calls) == 2


def test_cache_is_keyed_by_lowercased_symbol() -> None:
    client = FakeCoinGeckoClient(prices={"ethereum": ETH_ENTRY, "usd-coin": {"usd": 1}})
    oracle = _make_oracle(client)

    asyncio.run(oracle.get_price("ETH"))
    asyncio.run(oracle.get_price("Usdc"))

    assert oracle.get_cache_stats() == {"size": 2, "keys": ["eth", "usdc"]}


def test_unmapped_symbol_falls_back_to_lowercased_id() -> None:
    client = FakeCoinGeckoClient(prices={"pepe": {"usd": 0.0000012}})
    oracle = _make_oracle(client)

    record = asyncio.run(oracle.get_price("PEPE"))

    assert client.simple_price_calls == [["pepe"]]
    assert record.usd_price == Decimal("0.0000012")
    assert record.change_24h is None


def test_unknown_unmapped_symbol_raises_unknown_symbol() -> None:
    oracle = _make_oracle(FakeCoinGeckoClient(prices={}))

    with pytest.raises(UnknownSymbol) as exc_info:
        asyncio.run(oracle.get_price("NOTACOIN"))

    assert isinstance(exc_info.value, UpstreamUnavailable)
    assert exc_info.value.coin_id == "notacoin"


def test_missing_data_for_mapped_symbol_raises_upstream_unavailable() -> None:
    oracle = _make_oracle(FakeCoinGeckoClient(prices={}))

    with pytest.raises(UpstreamUnavailable) as exc_info:
        asyncio.run(oracle.get_price("ETH"))

    assert not isinstance(exc_info.value, UnknownSymbol)
    assert oracle.get_cache_stats()["size"] == 0


def test_upstream_error_propagates() -> None:
    client = FakeCoinGeckoClient(error=UpstreamUnavailable("CoinGecko returned HTTP 500"))
    oracle = _make_oracle(client)

    with pytest.raises(UpstreamUnavailable):
        asyncio.run(oracle.get_price("ETH"))


def test_blank_symbol_is_invalid() -> None:
    client = FakeCoinGeckoClient()
    oracle = _make_oracle(client)

    with pytest.raises(InvalidArgument):
        asyncio.run(oracle.get_price("   "))

    assert client.simple_price_calls == []


def test_batch_prices_resolve_duplicates_and_case() -> None:
    client = FakeCoinGeckoClient(prices={"ethereum": {"usd": 2000}, "usd-coin": {"usd": 1}})
    oracle = _make_oracle(client)

    prices = asyncio.run(oracle.get_batch_prices(["ETH", "eth", "USDC"]))

    assert client.simple_price_calls == [["ethereum", "usd-coin"]]
    assert set(prices) == {"ETH", "eth", "USDC"}
    assert prices["ETH"].usd_price == Decimal("2000")
    assert prices["eth"].usd_price == Decimal("2000")
    assert prices["USDC"].usd_price == Decimal("1")


def test_batch_prices_map_missing_ids_to_none() -> None:
    client = FakeCoinGeckoClient(prices={"ethereum": {"usd": 2000}})
    oracle = _make_oracle(client)

    prices = asyncio.run(oracle.get_batch_prices(["ETH", "NOTACOIN"]))

    assert prices["ETH"].usd_price == Decimal("2000")
    assert prices["NOTACOIN"] is None


def test_batch_prices_bypass_single_entry_cache() -> None:
    client = FakeCoinGeckoClient(prices={"ethereum": {"usd": 2000}})
    oracle = _make_oracle(client)

    asyncio.run(oracle.get_batch_prices(["ETH"]))
    asyncio.run(oracle.get_batch_prices(["ETH"]))

    assert len(client.simple_price_calls) == 2
    assert oracle.get_cache_stats() == {"size": 0, "keys": []}


def test_empty_batch_makes_no_request() -> None:
    client = FakeCoinGeckoClient()
    oracle = _make_oracle(client)

    assert asyncio.run(oracle.get_batch_prices([])) == {}
    assert client.simple_price_calls == []


def test_historical_prices_keep_upstream_order() -> None:
    client = FakeCoinGeckoClient(history=[(1_700_000_000_000, 2000.5), (1_700_003_600_000, 2010.25)])
    oracle = _make_oracle(client)

    history = asyncio.run(oracle.get_historical_prices("ETH", days=1))

    assert client.market_chart_calls == [("ethereum", 1)]
    assert history == [
        HistoricalPrice(timestamp_ms=1_700_000_000_000, usd_price=Decimal("2000.5")),
        HistoricalPrice(timestamp_ms=1_700_003_600_000, usd_price=Decimal("2010.25")),
    ]


@pytest.mark.parametrize("days", [0, -3, 1.5])
def test_historical_prices_reject_non_positive_days(days) -> None:
    client = FakeCoinGeckoClient()
    oracle = _make_oracle(client)

    with pytest.raises(InvalidArgument):
        asyncio.run(oracle.get_historical_prices("ETH", days=days))

    assert client.market_chart_calls == []


def test_price_impact() -> None:
    impact = PriceOracle.calculate_price_impact(
        Decimal("1"), Decimal("1990"), Decimal("2000"), Decimal("1")
    )

    assert impact == Decimal("0.5")


def test_price_impact_with_zero_output_price_is_invalid() -> None:
    with pytest.raises(InvalidArgument):
        PriceOracle.calculate_price_impact(Decimal("1"), Decimal("1"), Decimal("1"), Decimal("0"))
