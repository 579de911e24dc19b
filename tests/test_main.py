import asyncio
from decimal import Decimal

from defi_gateway.config import Config
from defi_gateway.protocols.uniswap_v3 import LiquidityApyEstimate

import main

USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
WETH = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"


def test_to_jsonable_converts_dataclasses_and_decimals() -> None:
    estimate = LiquidityApyEstimate(apy=Decimal("109.5"), in_range=True)

    assert main.to_jsonable({"result": [estimate]}) == {
        "result": [{"apy": "109.5", "in_range": True, "volume_24h_usd": None, "fees_24h_usd": None}]
    }


def test_pool_address_command_needs_no_network() -> None:
    args = main.build_parser().parse_args(["pool-address", WETH, USDC, "3000"])

    result = asyncio.run(main.run_command(args, Config()))

    assert result == {"address": "0x8ad599c3A0ff1De082011EFDDc58f1908eb6e6D8"}


def test_parser_reads_apy_arguments() -> None:
    args = main.build_parser().parse_args([
        "apy", USDC, WETH, "500",
        "--tick-lower", "-100", "--tick-upper", "100", "--volume", "2500000",
    ])

    assert args.command == "apy"
    assert args.tick_lower == -100
    assert args.tick_upper == 100
    assert args.volume == Decimal("2500000")
