from .bases import HashVerifierFactory
from .evm import (
    EVMHashVerifier,
    StructuredSignature,
    ExplicitDeployment,
    HashVerificationResult,
    verify_hash,
)

__all__ = [
    "HashVerifierFactory",
    "EVMHashVerifier",
    "StructuredSignature",
    "ExplicitDeployment",
    "HashVerificationResult",
    "verify_hash",
]
