"""
Portfolio analytics engine
Aggregates positions from providers into value, risk and yield summaries
"""

import asyncio
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Sequence

from ..exceptions import InvalidArgument
from ..web3_client import checksum_address
from .providers import Position, PositionProvider

INFINITY = Decimal("Infinity")
HIGH_RISK_HEALTH_FACTOR = Decimal("1.5")
MEDIUM_RISK_HEALTH_FACTOR = Decimal("2")


@dataclass(frozen=True)
class RiskMetrics:
    health_factor: Decimal
    collateralization_ratio: Decimal
    liquidation_risk: str  # "High", "Medium" or "Low"
    total_collateral_usd: Decimal
    total_debt_usd: Decimal


@dataclass(frozen=True)
class YieldSummary:
    total_daily_yield_usd: Decimal
    average_apy: Decimal
    total_value_earning_usd: Decimal
    projected_monthly_yield_usd: Decimal
    projected_yearly_yield_usd: Decimal


@dataclass
class PortfolioOverview:
    address: str
    total_value_usd: Decimal
    positions: List[Position] = field(default_factory=list)
    risk_metrics: Optional[RiskMetrics] = None
    yield_summary: Optional[YieldSummary] = None


def calculate_total_value(positions: Sequence[Position]) -> Decimal:
    """Wallet, liquidity and supply value minus debt; collateral is not added"""
    total = Decimal(0)
    for position in positions:
        if position.kind in ("wallet", "liquidity", "supply"):
            total += position.value_usd
        elif position.kind == "debt":
            total -= position.value_usd
    return total


def classify_liquidation_risk(health_factor: Decimal) -> str:
    if health_factor < HIGH_RISK_HEALTH_FACTOR:
        return "High"
    if health_factor < MEDIUM_RISK_HEALTH_FACTOR:
        return "Medium"
    return "Low"


def calculate_risk_metrics(positions: Sequence[Position]) -> RiskMetrics:
    """
    Health factor and collateralization ratio over collateral and debt positions

    Zero debt (or zero collateral) gives an infinite health factor; zero debt
    gives an infinite collateralization ratio.
    """
    total_collateral = Decimal(0)
    total_debt = Decimal(0)
    weighted_threshold = Decimal(0)

    for position in positions:
        if position.kind == "collateral":
            total_collateral += position.value_usd
            weighted_threshold += position.value_usd * (position.liquidation_threshold or Decimal(0))
        elif position.kind == "debt":
            total_debt += position.value_usd

    if total_collateral > 0 and total_debt > 0:
        health_factor = (weighted_threshold / total_collateral) / (total_debt / total_collateral)
    else:
        health_factor = INFINITY

    collateralization_ratio = total_collateral / total_debt if total_debt > 0 else INFINITY

    return RiskMetrics(
        health_factor=health_factor,
        collateralization_ratio=collateralization_ratio,
        liquidation_risk=classify_liquidation_risk(health_factor),
        total_collateral_usd=total_collateral,
        total_debt_usd=total_debt
    )


def calculate_yield_summary(positions: Sequence[Position]) -> YieldSummary:
    """Value-weighted APY and projected yield over liquidity and supply positions"""
    total_yield = Decimal(0)
    weighted_apy = Decimal(0)
    total_value = Decimal(0)

    for position in positions:
        if position.kind not in ("liquidity", "supply"):
            continue
        total_yield += position.daily_yield_usd or Decimal(0)
        weighted_apy += position.value_usd * (position.apy or Decimal(0))
        total_value += position.value_usd

    return YieldSummary(
        total_daily_yield_usd=total_yield,
        average_apy=weighted_apy / total_value if total_value > 0 else Decimal(0),
        total_value_earning_usd=total_value,
        projected_monthly_yield_usd=total_yield * 30,
        projected_yearly_yield_usd=total_yield * 365
    )


class PortfolioAnalytics:
    """
    Portfolio overview across position providers

    Providers are queried concurrently; the first provider failure propagates.
    """

    def __init__(self, providers: Sequence[PositionProvider]):
        if not providers:
            raise InvalidArgument("At least one position provider is required")
        self.providers = list(providers)
        self.logger = logging.getLogger(__name__)

    async def get_positions(self, address: str) -> List[Position]:
        address = checksum_address(address)
        results = await asyncio.gather(
            *(provider.get_positions(address) for provider in self.providers)
        )
        return [position for provider_positions in results for position in provider_positions]

    async def get_portfolio_overview(self, address: str) -> PortfolioOverview:
        """Get complete portfolio overview for an address"""
        address = checksum_address(address)
        self.logger.info(f"Building portfolio overview for {address} from {len(self.providers)} providers")

        positions = await self.get_positions(address)

        return PortfolioOverview(
            address=address,
            total_value_usd=calculate_total_value(positions),
            positions=positions,
            risk_metrics=calculate_risk_metrics(positions),
            yield_summary=calculate_yield_summary(positions)
        )
