"""
Abstract Base Classes for Hash Verifiers

Defines the interface every chain-specific verifier implements.  The
read-only call seam it relies on (``CallExecutor``) lives in
``engine.executors``.

Core Classes:
    - HashVerifierFactory: chain-specific verifier exposing the public
      verification operations.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from .evm.schemas import (
        BlockSelector,
        DeploymentParams,
        HashVerificationResult,
        SignatureInput,
    )


class HashVerifierFactory(ABC):
    """
    Abstract Base Class for chain-specific hash verifiers.

    Key Responsibilities:
    1. verify_hash: answer whether a signature is valid for a hash and signer
    2. verify_signature: same answer wrapped in a result model
    """

    @abstractmethod
    async def verify_hash(
        self,
        address: str,
        hash: Union[str, bytes],
        signature: "SignatureInput",
        deployment: "DeploymentParams" = None,
        block_identifier: "BlockSelector" = None,
    ) -> bool:
        """
        Verify that ``signature`` over ``hash`` was produced by ``address``.

        Returns:
            bool: True when valid, False when the validator rejected it and
            local recovery did not confirm the signer.

        Raises:
            EncodingError: Malformed inputs or return data.
            TransportError: The chain could not be queried.
        """
        pass

    @abstractmethod
    async def verify_signature(
        self,
        address: str,
        hash: Union[str, bytes],
        signature: "SignatureInput",
        deployment: "DeploymentParams" = None,
        block_identifier: "BlockSelector" = None,
    ) -> "HashVerificationResult":
        """
        Verify like ``verify_hash`` and report how the answer was reached.

        Returns:
            HashVerificationResult: status, resolution path and strategy.
        """
        pass
