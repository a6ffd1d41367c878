from .adapter import EVMHashVerifier
from .schemas import (
    StructuredSignature,
    ExplicitDeployment,
    KnownValidator,
    UnknownValidator,
    CallPayload,
    HashVerificationResult,
)
from .constants import (
    ERC6492_MAGIC_BYTES,
    UNIVERSAL_SIGNATURE_VALIDATOR_BYTECODE,
    EvmChainConfig,
    get_chain_config,
    resolve_chain_config,
)
from .signatures import (
    normalize_signature,
    is_erc6492_signature,
    serialize_erc6492_signature,
    parse_erc6492_signature,
    parse_signature,
)
from .calls import build_validation_call
from .verifies import (
    decode_bool_result,
    recover_hash_address,
    verify_hash,
    verify_hash_detailed,
    verify_message,
    verify_typed_data,
)

__all__ = [
    "EVMHashVerifier",
    "StructuredSignature",
    "ExplicitDeployment",
    "KnownValidator",
    "UnknownValidator",
    "CallPayload",
    "HashVerificationResult",
    "ERC6492_MAGIC_BYTES",
    "UNIVERSAL_SIGNATURE_VALIDATOR_BYTECODE",
    "EvmChainConfig",
    "get_chain_config",
    "resolve_chain_config",
    "normalize_signature",
    "is_erc6492_signature",
    "serialize_erc6492_signature",
    "parse_erc6492_signature",
    "parse_signature",
    "build_validation_call",
    "decode_bool_result",
    "recover_hash_address",
    "verify_hash",
    "verify_hash_detailed",
    "verify_message",
    "verify_typed_data",
]
