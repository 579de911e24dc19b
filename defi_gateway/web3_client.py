"""
Web3 Client for the DeFi gateway - read-only blockchain interaction wrapper
"""

import asyncio
import logging
from decimal import Decimal
from typing import Dict, Any, Optional, List, Sequence, Tuple, Union
from dataclasses import dataclass

from requests.exceptions import RequestException
from web3 import Web3
from web3.exceptions import BadFunctionCallOutput, ContractLogicError, Web3Exception
from eth_utils import is_hex_address, to_checksum_address

from .config import Config
from .exceptions import ContractCallReverted, InvalidAddress, InvalidArgument, RpcUnavailable


ERC20_FUNCTIONS = {
    "name": {
        "name": "name",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "string"}]
    },
    "symbol": {
        "name": "symbol",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "string"}]
    },
    "decimals": {
        "name": "decimals",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint8"}]
    },
    "totalSupply": {
        "name": "totalSupply",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}]
    },
    "balanceOf": {
        "name": "balanceOf",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "account", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}]
    },
}

# Transport and node-side failures; reverts are matched before these
RPC_ERRORS = (RequestException, Web3Exception, ValueError, OSError)


@dataclass
class TokenInfo:
    """ERC20 token metadata read from chain"""
    address: str
    name: str
    symbol: str
    decimals: int
    total_supply: int


def checksum_address(address: Any) -> str:
    """Validate a 20-byte hex address and return its checksum form"""
    if not isinstance(address, str) or not is_hex_address(address):
        raise InvalidAddress(address)
    return to_checksum_address(address)


def format_units(amount: int, decimals: int) -> Decimal:
    """Scale a raw integer token amount down by 10^decimals without rounding"""
    return Decimal(f"{int(amount)}e-{int(decimals)}")


def parse_units(amount: Union[str, int, Decimal], decimals: int) -> int:
    """Scale a human-readable token amount up to its raw integer form"""
    try:
        value = Decimal(str(amount))
    except ArithmeticError as e:
        raise InvalidArgument(f"Invalid token amount: {amount!r}") from e

    if not value.is_finite():
        raise InvalidArgument(f"Invalid token amount: {amount!r}")

    raw = value.scaleb(int(decimals))
    if raw != raw.to_integral_value():
        raise InvalidArgument(f"{amount} has more than {decimals} decimal places")
    return int(raw)


def calculate_transaction_cost(gas_used: int, gas_price_wei: int) -> Dict[str, Union[int, Decimal]]:
    """Cost of gas_used at gas_price_wei in wei, gwei and eth"""
    cost = int(gas_used) * int(gas_price_wei)
    return {
        "wei": cost,
        "gwei": format_units(cost, 9),
        "eth": format_units(cost, 18)
    }


class Web3Client:
    """
    Web3 wrapper for read-only blockchain interactions

    Features:
    - Multi-chain support (Ethereum, Arbitrum, Optimism, Polygon)
    - View calls with optional historical block number
    - Code existence checks, balances, gas price
    - ERC20 metadata reads

    Blocking web3.py calls run on worker threads so independent reads
    awaited together with asyncio.gather overlap.
    """

    def __init__(self, config: Config):
        self.config = config
        self.logger = logging.getLogger(__name__)

        # Web3 connections for different chains
        self.connections: Dict[int, Web3] = {}

    def get_web3(self, chain_id: Optional[int] = None) -> Web3:
        """Get Web3 connection for chain"""
        chain_id = chain_id or self.config.default_chain_id

        if chain_id in self.connections:
            return self.connections[chain_id]

        chain_config = self.config.get_chain_config(chain_id)
        if not chain_config or not chain_config.get("rpc_url"):
            self.logger.error(f"No RPC URL configured for chain {chain_id}")
            raise RpcUnavailable(f"No RPC URL configured for chain {chain_id}")

        rpc_url = chain_config["rpc_url"]
        w3 = Web3(Web3.HTTPProvider(
            rpc_url,
            request_kwargs={"timeout": self.config.http_timeout_seconds}
        ))

        # Cache connection
        self.connections[chain_id] = w3
        self.logger.info(f"Created Web3 connection for chain {chain_id} ({chain_config['name']})")
        return w3

    async def _run(self, description: str, fn, *args, **kwargs):
        """Run a blocking web3 call on a worker thread and map its failures"""
        try:
            return await asyncio.to_thread(fn, *args, **kwargs)
        except (ContractLogicError, BadFunctionCallOutput) as e:
            self.logger.warning(f"{description} reverted: {e}")
            raise ContractCallReverted(f"{description} reverted: {e}") from e
        except RPC_ERRORS as e:
            self.logger.error(f"RPC error during {description}: {e}")
            raise RpcUnavailable(f"RPC error during {description}: {e}") from e

    async def get_latest_block(self, chain_id: Optional[int] = None) -> int:
        """Get latest block number for chain"""
        w3 = self.get_web3(chain_id)
        return await self._run("eth_blockNumber", lambda: w3.eth.block_number)

    async def get_code(
        self,
        address: str,
        chain_id: Optional[int] = None,
        block_number: Optional[int] = None
    ) -> bytes:
        """Get deployed bytecode at address"""
        address = checksum_address(address)
        w3 = self.get_web3(chain_id)
        block_id = block_number if block_number is not None else "latest"

        code = await self._run(f"eth_getCode({address})", w3.eth.get_code, address, block_id)
        return bytes(code)

    async def is_contract(
        self,
        address: str,
        chain_id: Optional[int] = None,
        block_number: Optional[int] = None
    ) -> bool:
        """Check whether address has deployed code"""
        code = await self.get_code(address, chain_id, block_number)
        return len(code) > 0

    async def call_contract_function(
        self,
        contract_address: str,
        function_abi: Dict[str, Any],
        inputs: Optional[List[Any]] = None,
        chain_id: Optional[int] = None,
        block_number: Optional[int] = None
    ) -> Any:
        """
        Call a contract view function

        Args:
            contract_address: Contract to call
            function_abi: Single-function ABI entry
            inputs: Positional function arguments
            chain_id: Chain ID (defaults to config.default_chain_id)
            block_number: Historical block number (None for latest)

        Returns:
            Decoded function output

        Raises:
            ContractCallReverted: call reverted or output could not be decoded
            RpcUnavailable: transport or node error
        """
        contract_address = checksum_address(contract_address)
        w3 = self.get_web3(chain_id)
        inputs = inputs or []
        block_id = block_number if block_number is not None else "latest"

        # Create contract instance with minimal ABI
        contract = w3.eth.contract(address=contract_address, abi=[function_abi])
        function = contract.get_function_by_name(function_abi["name"])

        return await self._run(
            f"{function_abi['name']}() on {contract_address}",
            lambda: function(*inputs).call(block_identifier=block_id)
        )

    async def get_balance(
        self,
        address: str,
        chain_id: Optional[int] = None,
        block_number: Optional[int] = None
    ) -> int:
        """Get native balance in wei"""
        address = checksum_address(address)
        w3 = self.get_web3(chain_id)
        block_id = block_number if block_number is not None else "latest"

        return await self._run(f"eth_getBalance({address})", w3.eth.get_balance, address, block_id)

    async def get_erc20_balance(
        self,
        holder: str,
        token_address: str,
        decimals: int,
        chain_id: Optional[int] = None
    ) -> Decimal:
        """Get ERC20 balance scaled by token decimals"""
        raw_balance = await self.call_contract_function(
            token_address,
            ERC20_FUNCTIONS["balanceOf"],
            [checksum_address(holder)],
            chain_id
        )
        return format_units(raw_balance, decimals)

    async def get_token_info(self, token_address: str, chain_id: Optional[int] = None) -> TokenInfo:
        """Get ERC20 token info"""
        token_address = checksum_address(token_address)

        name, symbol, decimals, total_supply = await asyncio.gather(
            self.call_contract_function(token_address, ERC20_FUNCTIONS["name"], chain_id=chain_id),
            self.call_contract_function(token_address, ERC20_FUNCTIONS["symbol"], chain_id=chain_id),
            self.call_contract_function(token_address, ERC20_FUNCTIONS["decimals"], chain_id=chain_id),
            self.call_contract_function(token_address, ERC20_FUNCTIONS["totalSupply"], chain_id=chain_id),
        )

        return TokenInfo(
            address=token_address,
            name=name,
            symbol=symbol,
            decimals=int(decimals),
            total_supply=int(total_supply)
        )

    async def get_token_decimals(self, token_address: str, chain_id: Optional[int] = None) -> int:
        """Get ERC20 decimals"""
        decimals = await self.call_contract_function(
            token_address, ERC20_FUNCTIONS["decimals"], chain_id=chain_id
        )
        return int(decimals)

    async def get_gas_price(self, chain_id: Optional[int] = None) -> Dict[str, Union[int, Decimal]]:
        """Get current gas price in wei, gwei and eth"""
        w3 = self.get_web3(chain_id)
        gas_price = await self._run("eth_gasPrice", lambda: w3.eth.gas_price)

        return calculate_transaction_cost(1, gas_price)

    async def estimate_transaction_cost(
        self,
        gas_used: int,
        chain_id: Optional[int] = None
    ) -> Dict[str, Union[int, Decimal]]:
        """Cost of gas_used at the current gas price"""
        gas = await self.get_gas_price(chain_id)
        return calculate_transaction_cost(gas_used, gas["wei"])

    async def batch_call(
        self,
        calls: Sequence[Tuple[str, Dict[str, Any], Optional[List[Any]]]],
        chain_id: Optional[int] = None,
        block_number: Optional[int] = None
    ) -> List[Any]:
        """
        Run several view calls concurrently

        Args:
            calls: (contract_address, function_abi, inputs) triples

        Returns:
            Decoded outputs in call order; the first failure is raised
        """
        return list(await asyncio.gather(*(
            self.call_contract_function(address, function_abi, inputs, chain_id, block_number)
            for address, function_abi, inputs in calls
        )))

    def close_connections(self):
        """Close all Web3 connections"""
        self.connections.clear()
        self.logger.info("Closed all Web3 connections")
