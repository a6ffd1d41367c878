"""
EVM Chain Configuration Management

Provides the ERC-6492 wire constants, the built-in chain table (including
which chains carry a deployed universal signature validator), environment
driven configuration and the creation code of the off-chain universal
validator used when a chain has no deployed one.
"""

import os
import re
from typing import Dict, Optional, Any, Union
from pydantic import BaseModel, Field

import dotenv

from .bytecode import assemble_universal_validator
from .schemas import KnownValidator, UnknownValidator, ValidatorTarget
from ...engine.exceptions import ConfigurationError

dotenv.load_dotenv()

# ---------------------------------------------------------------------------
# ERC-6492 constants
# ---------------------------------------------------------------------------

#: Trailing 32 bytes that mark a signature as ERC-6492 wrapped.
ERC6492_MAGIC_BYTES: bytes = bytes.fromhex("6492" * 16)

#: Factory placeholder reported for signatures that are not wrapped.
ZERO_ADDRESS: str = "0x0000000000000000000000000000000000000000"

#: Default RPC request timeout (seconds).
DEFAULT_REQUEST_TIMEOUT: int = 60

#: Creation code of the off-chain universal validator. The deploy-and-call
#: path appends the ABI-encoded constructor arguments to it.
UNIVERSAL_SIGNATURE_VALIDATOR_BYTECODE: str = "0x" + assemble_universal_validator(ERC6492_MAGIC_BYTES).hex()

_CAIP2_EIP155 = re.compile(r"^eip155[:-]([0-9]+)$")


class EvmContractConfig(BaseModel):
    """A well-known contract deployment on a chain."""
    address: str = Field(..., description="Contract address")
    block_created: Optional[int] = Field(None, ge=0, description="Block the contract was deployed in")


class EvmChainConfig(BaseModel):
    """EVM network configuration used by the verifier."""
    caip2: str
    chain_id: int
    name: str
    type: str = Field(default="evm", description="Blockchain type")
    rpc_url: Optional[str] = Field(None, description="Public JSON-RPC endpoint")
    explorer_url: Optional[str] = Field(None, description="Block explorer URL")
    universal_signature_verifier: Optional[EvmContractConfig] = Field(
        None, description="Deployed universal signature validator, if any"
    )

    def validator_target(self) -> ValidatorTarget:
        """
        Return the validator target for this chain.

        Returns:
            ``KnownValidator`` when the chain names a deployed universal
            signature validator, ``UnknownValidator`` otherwise.
        """
        verifier = self.universal_signature_verifier
        if verifier is None:
            return UnknownValidator()
        return KnownValidator(address=verifier.address, block_created=verifier.block_created)


# Raw chain configuration data.
# Only chains that ship a universal signature validator list one; all other
# chains verify through the deploy-and-call path.
_EVM_CHAINS_DATA: Dict[str, Dict[str, Any]] = {
    "eip155:1": {
        "name": "Ethereum Mainnet",
        "rpc_url": "https://api.mycryptoapi.com/eth",
        "explorer_url": "https://etherscan.io",
    },
    "eip155:8453": {
        "name": "Base Mainnet",
        "rpc_url": "https://base.gateway.tenderly.co",
        "explorer_url": "https://basescan.org",
    },
    "eip155:137": {
        "name": "Polygon Mainnet",
        "rpc_url": "https://rpc-mainnet.matic.network",
        "explorer_url": "https://polygonscan.com",
    },
    "eip155:11155111": {
        "name": "Sepolia Testnet",
        "rpc_url": "https://rpc.sepolia.org",
        "explorer_url": "https://sepolia.etherscan.io",
    },
    "eip155:324": {
        "name": "ZKsync Era",
        "rpc_url": "https://mainnet.era.zksync.io",
        "explorer_url": "https://explorer.zksync.io",
        "universal_signature_verifier": {
            "address": "0x872146211f996755C8729042093ffb8660F8b129",
            "block_created": 45659388,
        },
    },
}


def _chain_id_from(chain: Union[int, str]) -> int:
    """Turn a numeric chain id or an ``eip155:<id>`` / ``eip155-<id>`` string into an int."""
    if isinstance(chain, int):
        chain_id = chain
    else:
        match = _CAIP2_EIP155.match(chain.strip()) if isinstance(chain, str) else None
        if match is None:
            raise ValueError(f"Invalid CAIP-2 chain identifier {chain!r}, expected 'eip155:<chain_id>'")
        chain_id = int(match.group(1))
    if chain_id <= 0:
        raise ValueError(f"Chain id must be positive, got {chain_id}")
    return chain_id


def get_chain_config(chain: Union[int, str]) -> Optional[EvmChainConfig]:
    """
    Look up a built-in chain configuration.

    Args:
        chain: Numeric chain id (``324``) or CAIP-2 identifier (``"eip155:324"``).

    Returns:
        ``EvmChainConfig`` for the chain, or ``None`` if it is not in the table.

    Raises:
        ValueError: If ``chain`` is a malformed CAIP-2 string.
    """
    chain_id = _chain_id_from(chain)
    caip2 = f"eip155:{chain_id}"
    data = _EVM_CHAINS_DATA.get(caip2)
    if data is None:
        return None
    return EvmChainConfig(caip2=caip2, chain_id=chain_id, **data)


def resolve_chain_config(chain: Union[int, str], rpc_url: Optional[str] = None) -> EvmChainConfig:
    """
    Resolve a chain configuration from the built-in table.

    A chain missing from the table is accepted only when ``rpc_url`` is
    given; it gets a bare configuration with no deployed universal validator.

    Raises:
        ConfigurationError: If ``chain`` is malformed, or unknown and no
            ``rpc_url`` is given.
    """
    try:
        chain_id = _chain_id_from(chain)
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc

    config = get_chain_config(chain_id)
    if config is not None:
        return config
    if not rpc_url:
        raise ConfigurationError(
            f"Chain {chain!r} is not built in. Pass 'rpc_url' or 'chain_config' for it."
        )
    caip2 = f"eip155:{chain_id}"
    return EvmChainConfig(caip2=caip2, chain_id=chain_id, name=caip2, rpc_url=rpc_url)


def get_rpc_url_from_env() -> Optional[str]:
    """
    Load the JSON-RPC endpoint override from the environment.

    Environment Variable:
        - HASHVERIFY_RPC_URL: RPC endpoint used instead of the chain table entry

    Returns:
        str: RPC URL from environment, or None if not configured
    """
    return os.getenv("HASHVERIFY_RPC_URL") or None


def get_validator_bytecode_from_env() -> Optional[str]:
    """
    Load the universal validator creation code from the environment.

    Overrides ``UNIVERSAL_SIGNATURE_VALIDATOR_BYTECODE``, for example with the
    compiled ERC-6492 ``ValidateSigOffchain`` contract.  Whatever is used, its
    constructor must run the check and return the answer.

    Environment Variable:
        - HASHVERIFY_VALIDATOR_BYTECODE: 0x-prefixed creation code

    Returns:
        str: Creation code hex, or None if not configured
    """
    return os.getenv("HASHVERIFY_VALIDATOR_BYTECODE") or None


def get_request_timeout_from_env() -> int:
    """
    Load the RPC request timeout (seconds) from the environment.

    Environment Variable:
        - HASHVERIFY_REQUEST_TIMEOUT: positive integer, defaults to 60

    Raises:
        ConfigurationError: If the variable is set but not a positive integer.
    """
    raw = os.getenv("HASHVERIFY_REQUEST_TIMEOUT")
    if not raw:
        return DEFAULT_REQUEST_TIMEOUT
    try:
        timeout = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"HASHVERIFY_REQUEST_TIMEOUT must be an integer, got {raw!r}") from exc
    if timeout <= 0:
        raise ConfigurationError(f"HASHVERIFY_REQUEST_TIMEOUT must be positive, got {timeout}")
    return timeout
