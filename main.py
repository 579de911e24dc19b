#!/usr/bin/env python3
"""
DeFi Gateway command line
Queries token prices, Uniswap V3 pools and wallet portfolios and prints JSON

Usage:
    python main.py price ETH
    python main.py batch ETH eth USDC
    python main.py history ETH --days 7
    python main.py pool 0xA0b8...eB48 0xC02a...6Cc2 3000
    python main.py apy 0xA0b8...eB48 0xC02a...6Cc2 3000 --tick-lower -887220 --tick-upper 887220 --volume 1000000
    python main.py portfolio 0xd8dA...6045
"""

import asyncio
import argparse
import dataclasses
import logging
import json
import sys
from decimal import Decimal
from typing import Any

from defi_gateway import Config, GatewayError
from defi_gateway.portfolio import PortfolioAnalytics, WalletBalanceProvider
from defi_gateway.pricing import PriceOracle
from defi_gateway.protocols import (
    PoolIdentity,
    UniswapV3Client,
    compute_pool_address,
    estimate_liquidity_apy,
)
from defi_gateway.web3_client import Web3Client


def setup_logging(level: str = "INFO", log_file: str = "defi_gateway.log"):
    """Configure logging for the application"""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stderr),
            logging.FileHandler(log_file)
        ]
    )


def to_jsonable(value: Any) -> Any:
    """Convert dataclasses and Decimals into JSON-compatible values"""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {key: to_jsonable(item) for key, item in dataclasses.asdict(value).items()}
    if isinstance(value, dict):
        return {key: to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    if isinstance(value, Decimal):
        return str(value)
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="DeFi Gateway - prices, pools and portfolios")

    parser.add_argument("--chain", type=int, default=None, help="Chain ID (default from config)")
    parser.add_argument("--log-level", type=str, default=None,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Log level (default from config)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    price = subparsers.add_parser("price", help="Current USD price of a token")
    price.add_argument("symbol")

    batch = subparsers.add_parser("batch", help="Current USD prices of several tokens")
    batch.add_argument("symbols", nargs="+")

    history = subparsers.add_parser("history", help="USD price history")
    history.add_argument("symbol")
    history.add_argument("--days", type=int, default=7)

    for name, help_text in (
        ("pool-address", "Derive a Uniswap V3 pool address"),
        ("pool", "Read Uniswap V3 pool state"),
        ("pool-price", "Current token1-per-token0 pool price"),
        ("apy", "Simplified liquidity APY for a tick range"),
    ):
        pool_parser = subparsers.add_parser(name, help=help_text)
        pool_parser.add_argument("token_a")
        pool_parser.add_argument("token_b")
        pool_parser.add_argument("fee", type=int, help="Fee tier in ppm (500, 3000, 10000)")
        if name == "apy":
            pool_parser.add_argument("--tick-lower", type=int, required=True)
            pool_parser.add_argument("--tick-upper", type=int, required=True)
            pool_parser.add_argument("--volume", type=Decimal, required=True, help="24h volume in USD")

    token = subparsers.add_parser("token", help="ERC20 token metadata")
    token.add_argument("address")

    subparsers.add_parser("gas", help="Current gas price")

    portfolio = subparsers.add_parser("portfolio", help="Wallet portfolio overview")
    portfolio.add_argument("address")

    return parser


async def run_command(args: argparse.Namespace, config: Config) -> Any:
    """Dispatch a parsed command and return its result"""

    if args.command == "pool-address":
        return {"address": compute_pool_address(
            args.token_a, args.token_b, args.fee,
            factory=config.uniswap_v3_factory,
            init_code_hash=config.pool_init_code_hash
        )}

    oracle = PriceOracle(config)
    web3_client = Web3Client(config)
    uniswap = UniswapV3Client(
        web3_client,
        factory=config.uniswap_v3_factory,
        init_code_hash=config.pool_init_code_hash,
        chain_id=args.chain
    )

    try:
        if args.command == "price":
            return await oracle.get_price(args.symbol)

        if args.command == "batch":
            return await oracle.get_batch_prices(args.symbols)

        if args.command == "history":
            return await oracle.get_historical_prices(args.symbol, args.days)

        if args.command in ("pool", "pool-price", "apy"):
            identity = PoolIdentity(args.token_a, args.token_b, args.fee)

            if args.command == "pool-price":
                return {"price": await uniswap.get_pool_price(identity)}

            pool_state = await uniswap.get_pool_state(identity)
            if args.command == "pool":
                return pool_state

            return estimate_liquidity_apy(
                pool_state, args.tick_lower, args.tick_upper, args.volume, args.fee
            )

        if args.command == "token":
            return await web3_client.get_token_info(args.address, args.chain)

        if args.command == "gas":
            return await web3_client.get_gas_price(args.chain)

        if args.command == "portfolio":
            analytics = PortfolioAnalytics([
                WalletBalanceProvider(web3_client, oracle, chain_id=args.chain)
            ])
            return await analytics.get_portfolio_overview(args.address)

        raise ValueError(f"Unknown command: {args.command}")

    finally:
        await oracle.close()
        web3_client.close_connections()


async def main():
    """Main entry point"""

    parser = build_parser()
    args = parser.parse_args()

    try:
        config = Config.from_env()
        config.validate()
    except ValueError as e:
        setup_logging("ERROR")
        logging.getLogger(__name__).error(f"Configuration error: {str(e)}")
        sys.exit(1)

    log_level = args.log_level if args.log_level is not None else config.log_level
    setup_logging(log_level, config.log_file)
    logger = logging.getLogger(__name__)

    try:
        result = await run_command(args, config)
    except GatewayError as e:
        logger.error(f"{args.command} failed: {e.__class__.__name__}: {e}")
        print(json.dumps({"error": e.__class__.__name__, "message": str(e)}, indent=2))
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(1)

    print(json.dumps(to_jsonable(result), indent=2))


if __name__ == "__main__":
    asyncio.run(main())
