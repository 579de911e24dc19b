"""
Error kinds raised by the gateway core
"""


class GatewayError(Exception):
    """Base class for all gateway errors"""


class InvalidAddress(GatewayError):
    """Input is not a well-formed 20-byte hex address"""

    def __init__(self, address):
        super().__init__(f"Invalid address: {address!r}")
        self.address = address


class InvalidArgument(GatewayError):
    """Input value is outside its allowed domain"""


class UpstreamUnavailable(GatewayError):
    """Price source unreachable, errored or returned no data"""


class UnknownSymbol(UpstreamUnavailable):
    """Fallback identifier for an unmapped symbol has no upstream entry"""

    def __init__(self, symbol: str, coin_id: str):
        super().__init__(f"Unknown symbol {symbol!r} (looked up as {coin_id!r})")
        self.symbol = symbol
        self.coin_id = coin_id


class RpcUnavailable(GatewayError):
    """Chain RPC unreachable or errored"""


class ContractCallReverted(GatewayError):
    """A read-only contract call reverted or returned undecodable output"""


class PoolNotFound(GatewayError):
    """Derived pool address has no deployed pool"""

    def __init__(self, address: str, reason: str = ""):
        message = f"No Uniswap V3 pool deployed at {address}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.address = address
