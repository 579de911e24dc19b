"""
Portfolio aggregation over pluggable position providers
"""

from .providers import Position, PositionProvider, WalletBalanceProvider
from .analytics import (
    PortfolioAnalytics,
    PortfolioOverview,
    RiskMetrics,
    YieldSummary,
    calculate_risk_metrics,
    calculate_total_value,
    calculate_yield_summary,
)

__all__ = [
    "Position",
    "PositionProvider",
    "WalletBalanceProvider",
    "PortfolioAnalytics",
    "PortfolioOverview",
    "RiskMetrics",
    "YieldSummary",
    "calculate_risk_metrics",
    "calculate_total_value",
    "calculate_yield_summary",
]
