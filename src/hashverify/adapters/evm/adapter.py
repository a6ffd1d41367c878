"""
EVM Hash Verifier

Binds the verification flow in ``verifies`` to one EVM chain: resolves the
chain configuration, the RPC endpoint, the validator target and the
validator creation code, and owns the call executor.

Key Features:
    - Hash, personal message and EIP-712 typed data verification
    - Deployed, undeployed (ERC-6492) and plain key-holding signers
    - Environment-aware configuration (RPC override, validator bytecode, timeout)

Dependencies:
    - web3.py: For blockchain RPC interaction
    - eth_account: For EIP-191 / EIP-712 message hashing
"""

import logging
from typing import Any, Dict, Optional, Union

from web3 import AsyncWeb3

from .constants import (
    UNIVERSAL_SIGNATURE_VALIDATOR_BYTECODE,
    EvmChainConfig,
    get_request_timeout_from_env,
    get_rpc_url_from_env,
    get_validator_bytecode_from_env,
    resolve_chain_config,
)
from .schemas import (
    BlockSelector,
    DeploymentParams,
    HashVerificationResult,
    SignatureInput,
    ValidatorTarget,
)
from .verifies import (
    hash_message,
    hash_typed_data,
    verify_hash_detailed,
)
from ..bases import HashVerifierFactory
from ...engine.exceptions import ConfigurationError
from ...engine.executors import CallExecutor, Web3CallExecutor

logger = logging.getLogger(__name__)


class EVMHashVerifier(HashVerifierFactory):
    """
    Universal hash signature verifier for one EVM chain.

    Answers "did ``address`` sign ``hash``?" for externally owned accounts,
    deployed smart-contract accounts (ERC-1271) and counterfactual accounts
    (ERC-6492).  Chains that list a deployed universal validator are queried
    with a plain call; all others run the validator as a simulated
    deployment of the built-in validator creation code.

    Attributes:
        chain_config: Resolved chain configuration.
        executor: Call executor every verification goes through.
        validator_bytecode: Creation code for the deploy-and-call path.

    Environment Variables:
        - HASHVERIFY_RPC_URL: RPC endpoint override
        - HASHVERIFY_VALIDATOR_BYTECODE: validator creation code override
        - HASHVERIFY_REQUEST_TIMEOUT: RPC request timeout in seconds (default 60)

    Example:
        verifier = EVMHashVerifier(chain_id=324)
        ok = await verifier.verify_hash(signer, "0x" + "11" * 32, signature)

        # Counterfactual account, pinned block
        ok = await verifier.verify_hash(
            signer, hash, signature,
            deployment=ExplicitDeployment(factory=factory, factory_data=data),
            block_identifier=45700000,
        )
    """

    def __init__(
        self,
        chain_id: Optional[Union[int, str]] = None,
        rpc_url: Optional[str] = None,
        *,
        chain_config: Optional[EvmChainConfig] = None,
        executor: Optional[CallExecutor] = None,
        validator_bytecode: Optional[Union[str, bytes]] = None,
        request_timeout: Optional[int] = None,
    ):
        """
        Initialize the verifier.

        Resolution order, first match wins:

        - chain configuration: ``chain_config``, then ``chain_id`` (built-in
          table, or a bare configuration when an RPC URL is known)
        - executor: ``executor``, then a ``Web3CallExecutor`` on ``rpc_url``,
          ``HASHVERIFY_RPC_URL`` or the chain's public RPC
        - validator bytecode: ``validator_bytecode``, then
          ``HASHVERIFY_VALIDATOR_BYTECODE``, then
          ``UNIVERSAL_SIGNATURE_VALIDATOR_BYTECODE``

        Args:
            chain_id: Numeric chain id or CAIP-2 identifier.
            rpc_url: JSON-RPC endpoint override.
            chain_config: Pre-built chain configuration.
            executor: Custom call executor (e.g. for tests or batching).
            validator_bytecode: Universal validator creation code override.
            request_timeout: RPC request timeout in seconds.

        Raises:
            ConfigurationError: No chain given, an unknown chain without an
                                RPC URL, or no RPC endpoint at all.
        """
        if chain_config is None:
            if chain_id is None:
                raise ConfigurationError("Either 'chain_id' or 'chain_config' must be provided.")
            chain_config = resolve_chain_config(chain_id, rpc_url or get_rpc_url_from_env())
        self.chain_config = chain_config

        if validator_bytecode is None:
            validator_bytecode = get_validator_bytecode_from_env() or UNIVERSAL_SIGNATURE_VALIDATOR_BYTECODE
        self.validator_bytecode = validator_bytecode
        self._request_timeout = request_timeout if request_timeout is not None else get_request_timeout_from_env()

        if executor is None:
            executor = Web3CallExecutor(self._get_web3_instance(rpc_url))
        self.executor = executor

        logger.debug(
            "EVMHashVerifier ready chain=%s strategy_target=%s",
            self.chain_config.caip2, self.validator_target().kind,
        )

    def _get_web3_instance(self, rpc_url: Optional[str]) -> AsyncWeb3:
        """
        Create an ``AsyncWeb3`` instance for the configured chain.

        Raises:
            ConfigurationError: If no RPC URL can be determined.
        """
        resolved = rpc_url or get_rpc_url_from_env() or self.chain_config.rpc_url
        if not resolved:
            raise ConfigurationError(
                f"No RPC URL for {self.chain_config.caip2}. "
                "Pass 'rpc_url' or set 'HASHVERIFY_RPC_URL'."
            )

        return AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(
            resolved,
            request_kwargs={"timeout": self._request_timeout},
        ))

    @property
    def chain_id(self) -> int:
        return self.chain_config.chain_id

    def validator_target(self) -> ValidatorTarget:
        """Validator target of the configured chain."""
        return self.chain_config.validator_target()

    async def verify_signature(
        self,
        address: str,
        hash: Union[str, bytes],
        signature: SignatureInput,
        deployment: DeploymentParams = None,
        block_identifier: BlockSelector = None,
    ) -> HashVerificationResult:
        """
        Verify a signature over ``hash`` and report how the answer was reached.

        Args:
            address: Claimed signer.
            hash: 32-byte hash (bytes or 0x hex).
            signature: Hex, bytes or ``StructuredSignature``; may already be
                       ERC-6492 wrapped.
            deployment: ``ExplicitDeployment`` for an undeployed account.
            block_identifier: Block number, tag or hash to evaluate at.

        Returns:
            HashVerificationResult

        Raises:
            EncodingError: Malformed inputs or non-boolean return data.
            TransportError: The chain could not be queried.
        """
        return await verify_hash_detailed(
            self.executor,
            address,
            hash,
            signature,
            deployment=deployment,
            target=self.validator_target(),
            bytecode=self.validator_bytecode,
            block_identifier=block_identifier,
        )

    async def verify_hash(
        self,
        address: str,
        hash: Union[str, bytes],
        signature: SignatureInput,
        deployment: DeploymentParams = None,
        block_identifier: BlockSelector = None,
    ) -> bool:
        """Verify a signature over ``hash``; see ``verify_signature``."""
        result = await self.verify_signature(address, hash, signature, deployment, block_identifier)
        return result.is_valid

    async def verify_message(
        self,
        address: str,
        message: Union[str, bytes],
        signature: SignatureInput,
        deployment: DeploymentParams = None,
        block_identifier: BlockSelector = None,
    ) -> bool:
        """Verify a ``personal_sign`` signature; ``str`` messages are UTF-8 text."""
        return await self.verify_hash(address, hash_message(message), signature, deployment, block_identifier)

    async def verify_typed_data(
        self,
        address: str,
        typed_data: Dict[str, Any],
        signature: SignatureInput,
        deployment: DeploymentParams = None,
        block_identifier: BlockSelector = None,
    ) -> bool:
        """Verify an EIP-712 signature over ``{types, primaryType, domain, message}``."""
        return await self.verify_hash(address, hash_typed_data(typed_data), signature, deployment, block_identifier)
