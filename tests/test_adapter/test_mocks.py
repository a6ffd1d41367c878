"""
Hash Verification Test Mocks Module

Provides mock data and utilities for testing hash verification without
blockchain connectivity.

Key Components:
    - Throwaway signer keys and addresses, validator addresses and bytecode
    - Real secp256k1 signatures over test hashes (deterministic, RFC 6979)
    - MockCallExecutor: scripted call executor recording every call
    - Helper functions for encoded boolean results and compact signatures

Usage:
    from test_mocks import (
        MOCK_SIGNER_ADDRESS,
        sign_hash,
        MockCallExecutor,
    )

    executor = MockCallExecutor(result=TRUE_WORD)
    ok = await verify_hash(executor, MOCK_SIGNER_ADDRESS, MOCK_HASH, sign_hash(MOCK_HASH))
"""

from typing import Any, Dict, List, Optional, Tuple

from eth_keys import keys
from eth_utils import keccak

# Import from the main codebase
import sys
from pathlib import Path
src_path = Path(__file__).parent.parent.parent / "src"
sys.path.insert(0, str(src_path))

from hashverify.adapters.evm.schemas import (
    CallPayload,
    ExplicitDeployment,
    KnownValidator,
    UnknownValidator,
)
from hashverify.engine.executors import CallExecutor


# ========================================================================
# Mock Keys and Addresses
# ========================================================================

# Test private keys (do not use in production!)
MOCK_SIGNER_PRIVATE_KEY = "0x1234567890123456789012345678901234567890123456789012345678901234"
MOCK_OTHER_PRIVATE_KEY = "0xabcdefabcdefabcdefabcdefabcdefabcdefabcdefabcdefabcdefabcdefabcd"

_signer_key = keys.PrivateKey(bytes.fromhex(MOCK_SIGNER_PRIVATE_KEY[2:]))
_other_key = keys.PrivateKey(bytes.fromhex(MOCK_OTHER_PRIVATE_KEY[2:]))

MOCK_SIGNER_ADDRESS = _signer_key.public_key.to_checksum_address()
MOCK_OTHER_ADDRESS = _other_key.public_key.to_checksum_address()

# Smart account that has not been deployed yet, and its factory
MOCK_SMART_ACCOUNT = "0x00000000000000000000000000000000deadbeef"
MOCK_FACTORY_ADDRESS = "0x1111111111111111111111111111111111111111"
MOCK_FACTORY_DATA = "0xdeadbeef00000000000000000000000000000000000000000000000000000001"

# zkSync Era universal validator
MOCK_VALIDATOR_ADDRESS = "0x872146211f996755C8729042093ffb8660F8b129"
MOCK_VALIDATOR_BLOCK = 45659388

# Stand-in creation code; only its position in the payload matters here
MOCK_VALIDATOR_BYTECODE = "0x60806040deadc0de"

MOCK_CHAIN_ID_ZKSYNC = 324
MOCK_CHAIN_ID_MAINNET = 1

MOCK_HASH = keccak(text="hashverify test message")
MOCK_HASH_HEX = "0x" + MOCK_HASH.hex()

# ========================================================================
# Encoded Return Data
# ========================================================================

TRUE_WORD = (1).to_bytes(32, "big")
FALSE_WORD = bytes(32)
TRUE_BYTE = b"\x01"
FALSE_BYTE = b"\x00"

# ========================================================================
# EIP-712 Typed Data
# ========================================================================

MOCK_TYPED_DATA: Dict[str, Any] = {
    "types": {
        "EIP712Domain": [
            {"name": "name", "type": "string"},
            {"name": "version", "type": "string"},
            {"name": "chainId", "type": "uint256"},
            {"name": "verifyingContract", "type": "address"},
        ],
        "Mail": [
            {"name": "contents", "type": "string"},
        ],
    },
    "primaryType": "Mail",
    "domain": {
        "name": "Ether Mail",
        "version": "1",
        "chainId": 1,
        "verifyingContract": "0xCcCCccccCCCCcCCCCCCcCcCccCcCCCcCcccccccC",
    },
    "message": {
        "contents": "Hello, Bob!",
    },
}


# ========================================================================
# Factory Functions
# ========================================================================

def sign_hash(msg_hash: bytes = MOCK_HASH, private_key: str = MOCK_SIGNER_PRIVATE_KEY) -> str:
    """
    Sign a raw 32-byte hash and return the 65-byte ``r || s || v`` hex (v 27/28).
    """
    key = keys.PrivateKey(bytes.fromhex(private_key[2:]))
    sig = key.sign_msg_hash(msg_hash)
    return "0x" + format(sig.r, "064x") + format(sig.s, "064x") + format(sig.v + 27, "02x")


def to_compact_signature(signature: str) -> str:
    """Convert a 65-byte signature to its 64-byte ERC-2098 compact form."""
    raw = bytes.fromhex(signature[2:])
    v = raw[64]
    y_parity = v - 27 if v >= 27 else v
    y_parity_and_s = int.from_bytes(raw[32:64], "big") | (y_parity << 255)
    return "0x" + (raw[:32] + y_parity_and_s.to_bytes(32, "big")).hex()


def create_mock_deployment(
    factory: str = MOCK_FACTORY_ADDRESS,
    factory_data: str = MOCK_FACTORY_DATA,
) -> ExplicitDeployment:
    """Create a deployment recipe for the mock smart account."""
    return ExplicitDeployment(factory=factory, factory_data=factory_data)


def create_known_validator() -> KnownValidator:
    """Create the zkSync Era validator target."""
    return KnownValidator(address=MOCK_VALIDATOR_ADDRESS, block_created=MOCK_VALIDATOR_BLOCK)


def create_unknown_validator() -> UnknownValidator:
    return UnknownValidator()


# ========================================================================
# Mock Classes
# ========================================================================

class MockCallExecutor(CallExecutor):
    """
    Scripted call executor.

    Returns ``result`` or raises ``error`` on every call, and records each
    ``(payload, block_identifier)`` pair in ``calls``.
    """

    def __init__(self, result: Optional[bytes] = TRUE_WORD, error: Optional[Exception] = None):
        self.result = result
        self.error = error
        self.calls: List[Tuple[CallPayload, Any]] = []

    async def call(self, payload, block_identifier=None):
        self.calls.append((payload, block_identifier))
        if self.error is not None:
            raise self.error
        return self.result

    @property
    def last_payload(self) -> CallPayload:
        return self.calls[-1][0]

    @property
    def last_block(self) -> Any:
        return self.calls[-1][1]
