"""
CoinGecko API client for current and historical pricing data
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import aiohttp

from ...exceptions import UpstreamUnavailable


class CoinGeckoClient:
    """
    CoinGecko API client for cryptocurrency pricing

    Features:
    - Batch current prices with 24h change, market cap and volume
    - Market chart history by day count
    - Shared aiohttp session for connection pooling
    """

    BASE_URL = "https://api.coingecko.com/api/v3"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_seconds: int = 30
    ):
        self.api_key = api_key
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.logger = logging.getLogger(__name__)

        # Session for connection pooling
        self.session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session"""
        if self.session is None or self.session.closed:
            headers = {}
            if self.api_key:
                headers["x-cg-pro-api-key"] = self.api_key

            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
                headers=headers
            )
        return self.session

    async def close(self):
        """Close the HTTP session"""
        if self.session and not self.session.closed:
            await self.session.close()

    async def _make_request(self, endpoint: str, params: Dict[str, Any]) -> Any:
        """
        Make an API request and return the decoded JSON body

        Raises:
            UpstreamUnavailable: transport error, non-200 response or undecodable body
        """
        session = await self._get_session()
        url = f"{self.base_url}/{endpoint}"

        try:
            async with session.get(url, params=params) as response:
                if response.status != 200:
                    body = await response.text()
                    self.logger.error(f"CoinGecko API error {response.status}: {body}")
                    raise UpstreamUnavailable(f"CoinGecko returned HTTP {response.status} for {endpoint}")
                try:
                    return await response.json()
                except ValueError as e:
                    self.logger.error(f"CoinGecko returned invalid JSON for {endpoint}: {e}")
                    raise UpstreamUnavailable(f"CoinGecko returned invalid JSON for {endpoint}") from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.error(f"CoinGecko request failed: {e}")
            raise UpstreamUnavailable(f"CoinGecko request to {endpoint} failed: {e}") from e

    async def get_simple_prices(self, coingecko_ids: Sequence[str]) -> Dict[str, Dict[str, Any]]:
        """
        Get current USD prices for one or more tokens in a single request

        Args:
            coingecko_ids: CoinGecko token IDs

        Returns:
            Mapping of id -> {usd, usd_24h_change, usd_market_cap, usd_24h_vol};
            ids unknown to CoinGecko are absent
        """
        params = {
            "ids": ",".join(coingecko_ids),
            "vs_currencies": "usd",
            "include_24hr_change": "true",
            "include_market_cap": "true",
            "include_24hr_vol": "true",
            "precision": "full"
        }

        data = await self._make_request("simple/price", params)
        if not isinstance(data, dict):
            raise UpstreamUnavailable("CoinGecko simple/price returned an unexpected payload")
        return data

    async def get_market_chart(self, coingecko_id: str, days: int) -> List[Tuple[int, Any]]:
        """
        Get USD price history for the last N days

        Returns:
            List of (timestamp_ms, price_usd) pairs in upstream order
        """
        params = {
            "vs_currency": "usd",
            "days": days
        }

        data = await self._make_request(f"coins/{coingecko_id}/market_chart", params)

        if not isinstance(data, dict) or "prices" not in data:
            raise UpstreamUnavailable(f"CoinGecko returned no price history for {coingecko_id}")

        # CoinGecko returns [[timestamp_ms, price], ...]
        prices = data["prices"]
        if not isinstance(prices, list) or not all(
            isinstance(point, list) and len(point) == 2 for point in prices
        ):
            raise UpstreamUnavailable(f"CoinGecko returned malformed price history for {coingecko_id}")

        return [(int(ts), price) for ts, price in prices]
