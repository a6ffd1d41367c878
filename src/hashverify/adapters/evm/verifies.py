"""
EVM Hash Verification

Decides whether a signature over a 32-byte hash was produced by a given
address, for plain key-holding accounts and for smart-contract accounts,
deployed or counterfactual (ERC-6492).

The on-chain universal validator is authoritative and is always asked
first.  Only when it reverts does local secp256k1 recovery get a say: a
plain account whose recovered address matches is still accepted, anything
else reads as "invalid".  Transport and encoding failures are never turned
into ``False``.

Current coverage
----------------
decode_bool_result
    Read the validator's raw return data as a boolean.
recover_hash_address
    secp256k1 public-key recovery from a hash and a plain signature.
verify_hash / verify_hash_detailed
    The end-to-end decision procedure.
verify_message / verify_typed_data
    EIP-191 and EIP-712 front-ends that hash and delegate to ``verify_hash``.
"""

import logging
from enum import Enum
from typing import Any, Dict, Optional, Union

from eth_account.messages import SignableMessage, encode_defunct, encode_typed_data
from eth_keys import keys
from eth_keys.exceptions import BadSignature, ValidationError as KeyValidationError
from eth_utils import keccak

from .calls import build_validation_call, strategy_for
from .schemas import (
    BlockSelector,
    DeploymentParams,
    HashVerificationResult,
    SignatureInput,
    UnknownValidator,
    ValidatorTarget,
)
from .signatures import (
    is_erc6492_signature,
    normalize_address,
    normalize_hash,
    normalize_signature,
    parse_signature,
    serialize_erc6492_signature,
)
from ...engine.executors import CallExecutor
from ...engine.exceptions import (
    CallError,
    EncodingError,
    ExecutionRevertError,
    RecoveryError,
)
from ...schemas.bases import VerificationStatus

logger = logging.getLogger(__name__)


class VerificationStep(str, Enum):
    """Steps of the hash verification flow, in order."""
    NORMALIZE = "normalize"
    MAYBE_WRAP = "maybe_wrap"
    REMOTE_CALL = "remote_call"
    DECODE = "decode"
    LOCAL_FALLBACK = "local_fallback"
    DONE = "done"


class CallFailure(str, Enum):
    """
    How a failed remote call is handled.

    Attributes:
        REVERT: The validator ran and rejected; try local recovery, then ``False``.
        FATAL: The chain could not give an answer; propagate.
    """
    REVERT = "revert"
    FATAL = "fatal"


# ---------------------------------------------------------------------------
# Result decoding
# ---------------------------------------------------------------------------


def decode_bool_result(data: Optional[Union[bytes, str]]) -> bool:
    """
    Interpret raw return data as a boolean.

    ``None`` and empty data are ``False``.  Otherwise the data must be at
    most one 32-byte word, zero except for the last byte, and the last byte
    must be 0 or 1.  This accepts both an ABI-encoded ``bool`` and the
    single byte returned by the off-chain validator's constructor.

    Raises:
        EncodingError: If the data is not boolean-shaped.
    """
    if data is None:
        return False

    if isinstance(data, str):
        hex_str = data[2:] if data[:2].lower() == "0x" else data
        if len(hex_str) % 2:
            raise EncodingError(f"Return data has an odd number of hex digits: {data!r}")
        try:
            raw = bytes.fromhex(hex_str)
        except ValueError as exc:
            raise EncodingError(f"Return data is not valid hex: {data!r}") from exc
    else:
        raw = bytes(data)

    if not raw:
        return False

    if len(raw) > 32:
        raise EncodingError(f"Return data is not a boolean: {len(raw)} bytes")
    if any(raw[:-1]) or raw[-1] > 1:
        raise EncodingError(f"Return data is not a boolean: 0x{raw.hex()}")

    return raw[-1] == 1


# ---------------------------------------------------------------------------
# Local recovery
# ---------------------------------------------------------------------------


def recover_hash_address(hash: Union[str, bytes], signature: SignatureInput) -> str:
    """
    Recover the signer address from a hash and a plain signature.

    Args:
        hash:      32-byte hash the signature was made over.
        signature: 65-byte ``r || s || v`` or 64-byte compact signature, in
                   any accepted shape.  ERC-6492 wrapped signatures are not
                   recoverable.

    Returns:
        Checksum address of the recovered signer.

    Raises:
        RecoveryError: Malformed signature, out-of-range components, or no
                       public key satisfies the signature.
    """
    try:
        msg_hash = normalize_hash(hash)
        parsed = parse_signature(signature)
        parsed.validate_format()
    except (EncodingError, ValueError) as exc:
        raise RecoveryError(f"Cannot recover from signature: {exc}") from exc

    try:
        sig = keys.Signature(vrs=(parsed.y_parity, parsed.r, parsed.s))
        public_key = sig.recover_public_key_from_msg_hash(msg_hash)
    except (BadSignature, KeyValidationError, ValueError) as exc:
        raise RecoveryError(f"Signature recovery failed: {exc}") from exc

    return public_key.to_checksum_address()


def _recovers_to(address: str, hash: bytes, signature: str) -> bool:
    """Attempt recovery and compare; recovery failures count as no match."""
    try:
        recovered = recover_hash_address(hash, signature)
    except RecoveryError as exc:
        logger.debug("local recovery discarded: %s", exc)
        return False
    return normalize_address(recovered) == normalize_address(address)


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------


def classify_call_error(exc: CallError) -> CallFailure:
    """
    Classify a failed remote call.

    Every revert counts, whatever its reason or data: the validator call
    is the only code executed, so any revert is the validator's answer.
    """
    if isinstance(exc, ExecutionRevertError):
        return CallFailure.REVERT
    return CallFailure.FATAL


def _maybe_wrap(signature: str, deployment: DeploymentParams) -> str:
    if deployment is None:
        return signature
    if is_erc6492_signature(signature):
        return signature
    return serialize_erc6492_signature(deployment.factory, deployment.factory_data, signature)


async def verify_hash_detailed(
    executor: CallExecutor,
    address: str,
    hash: Union[str, bytes],
    signature: SignatureInput,
    *,
    deployment: DeploymentParams = None,
    target: Optional[ValidatorTarget] = None,
    bytecode: Optional[Union[str, bytes]] = None,
    block_identifier: BlockSelector = None,
) -> HashVerificationResult:
    """
    Verify a signature over ``hash`` for ``address`` and report the path taken.

    Flow:

    1. **Normalize** address, hash and signature.  Failures raise
       ``EncodingError``.
    2. **MaybeWrap** -- with ``deployment`` given and the signature not
       already ERC-6492 wrapped, wrap it with the deployment recipe.
    3. **RemoteCall** -- build the payload for ``target`` and run it on
       ``executor`` at ``block_identifier``.  A revert moves on to step 5;
       any other failure propagates.
    4. **Decode** the return data; that boolean is the answer.
    5. **LocalFallback** -- recover from the plain signature; a match with
       ``address`` is ``True``, anything else (mismatch or recovery
       failure) is ``False``.

    Args:
        executor:         Call executor for the target chain.
        address:          Claimed signer.
        hash:             32-byte hash (bytes or 0x hex).
        signature:        Hex, bytes or ``StructuredSignature``.
        deployment:       ``ExplicitDeployment`` for counterfactual accounts.
        target:           Validator target; ``UnknownValidator`` when omitted.
        bytecode:         Validator creation code override for the deploy-and-call path.
        block_identifier: Block to evaluate at, passed through untouched.

    Returns:
        ``HashVerificationResult``.

    Raises:
        EncodingError: Malformed inputs or non-boolean return data.
        ConfigurationError: Unsupported target or unusable bytecode.
        TransportError: The chain could not be reached.
        CallError: Any other non-revert executor failure.
    """
    target = target if target is not None else UnknownValidator()

    # ------------------------------------------------------------------
    # 1. Normalize
    # ------------------------------------------------------------------
    logger.debug("hash verification step=%s", VerificationStep.NORMALIZE.value)
    claimed = normalize_address(address)
    msg_hash = normalize_hash(hash)
    signature_hex = normalize_signature(signature)

    # ------------------------------------------------------------------
    # 2. Maybe wrap
    # ------------------------------------------------------------------
    logger.debug("hash verification step=%s", VerificationStep.MAYBE_WRAP.value)
    validator_signature = _maybe_wrap(signature_hex, deployment)
    wrapped = is_erc6492_signature(validator_signature)

    def _result(is_valid: bool, resolution: str, message: str,
                error_details: Optional[Dict[str, Any]] = None) -> HashVerificationResult:
        logger.debug(
            "hash verification step=%s valid=%s resolution=%s",
            VerificationStep.DONE.value, is_valid, resolution,
        )
        return HashVerificationResult(
            status=VerificationStatus.SUCCESS if is_valid else VerificationStatus.INVALID_SIGNATURE,
            is_valid=is_valid,
            message=message,
            error_details=error_details,
            address=claimed,
            hash="0x" + msg_hash.hex(),
            strategy=strategy,
            resolution=resolution,
            wrapped=wrapped,
        )

    # ------------------------------------------------------------------
    # 3. Remote call
    # ------------------------------------------------------------------
    strategy = strategy_for(target)
    logger.debug("hash verification step=%s strategy=%s", VerificationStep.REMOTE_CALL.value, strategy)
    payload = build_validation_call(claimed, msg_hash, validator_signature, target, bytecode)

    try:
        data = await executor.call(payload, block_identifier)
    except CallError as exc:
        if classify_call_error(exc) is CallFailure.FATAL:
            raise
        revert = exc
    else:
        # --------------------------------------------------------------
        # 4. Decode
        # --------------------------------------------------------------
        logger.debug("hash verification step=%s", VerificationStep.DECODE.value)
        is_valid = decode_bool_result(data)
        return _result(
            is_valid,
            "remote_call",
            "Signature valid: confirmed by universal validator."
            if is_valid else "Signature invalid: rejected by universal validator.",
        )

    # ------------------------------------------------------------------
    # 5. Local fallback
    # ------------------------------------------------------------------
    logger.info("validator call reverted for %s, trying local recovery: %s", claimed, revert)
    if _recovers_to(claimed, msg_hash, signature_hex):
        return _result(True, "local_recovery", "Signature valid: recovered signer matches address.")

    # ------------------------------------------------------------------
    # 6. Revert stands
    # ------------------------------------------------------------------
    return _result(
        False,
        "validator_revert",
        "Signature invalid: validator reverted and recovery did not match.",
        {"revert": str(revert)},
    )


async def verify_hash(
    executor: CallExecutor,
    address: str,
    hash: Union[str, bytes],
    signature: SignatureInput,
    *,
    deployment: DeploymentParams = None,
    target: Optional[ValidatorTarget] = None,
    bytecode: Optional[Union[str, bytes]] = None,
    block_identifier: BlockSelector = None,
) -> bool:
    """
    Verify a signature over ``hash`` for ``address``.

    Same arguments and errors as ``verify_hash_detailed``; returns only the
    verdict.

    Example::

        executor = Web3CallExecutor(w3)
        ok = await verify_hash(
            executor,
            "0xAbCd...1234",
            "0x" + "11" * 32,
            signature,
            target=KnownValidator(address="0x872146211f996755C8729042093ffb8660F8b129"),
        )
    """
    result = await verify_hash_detailed(
        executor, address, hash, signature,
        deployment=deployment, target=target, bytecode=bytecode,
        block_identifier=block_identifier,
    )
    return result.is_valid


# ---------------------------------------------------------------------------
# Message front-ends
# ---------------------------------------------------------------------------


def hash_signable(signable: SignableMessage) -> bytes:
    """Return the 32-byte digest an EIP-191 ``SignableMessage`` is signed over."""
    return keccak(b"\x19" + signable.version + signable.header + signable.body)


def hash_message(message: Union[str, bytes]) -> bytes:
    """
    Hash a personal message (EIP-191 version ``E``).

    ``str`` is signed as UTF-8 text, ``bytes`` as-is.
    """
    if isinstance(message, str):
        return hash_signable(encode_defunct(text=message))
    return hash_signable(encode_defunct(primitive=bytes(message)))


def hash_typed_data(typed_data: Dict[str, Any]) -> bytes:
    """Hash EIP-712 typed data given as ``{types, primaryType, domain, message}``."""
    try:
        return hash_signable(encode_typed_data(full_message=typed_data))
    except (KeyError, TypeError, ValueError) as exc:
        raise EncodingError(f"Failed to encode EIP-712 typed data: {exc}") from exc


async def verify_message(
    executor: CallExecutor,
    address: str,
    message: Union[str, bytes],
    signature: SignatureInput,
    *,
    deployment: DeploymentParams = None,
    target: Optional[ValidatorTarget] = None,
    bytecode: Optional[Union[str, bytes]] = None,
    block_identifier: BlockSelector = None,
) -> bool:
    """Verify a ``personal_sign`` signature over ``message``; see ``verify_hash``."""
    return await verify_hash(
        executor, address, hash_message(message), signature,
        deployment=deployment, target=target, bytecode=bytecode,
        block_identifier=block_identifier,
    )


async def verify_typed_data(
    executor: CallExecutor,
    address: str,
    typed_data: Dict[str, Any],
    signature: SignatureInput,
    *,
    deployment: DeploymentParams = None,
    target: Optional[ValidatorTarget] = None,
    bytecode: Optional[Union[str, bytes]] = None,
    block_identifier: BlockSelector = None,
) -> bool:
    """Verify an ``eth_signTypedData_v4`` signature; see ``verify_hash``."""
    return await verify_hash(
        executor, address, hash_typed_data(typed_data), signature,
        deployment=deployment, target=target, bytecode=bytecode,
        block_identifier=block_identifier,
    )
