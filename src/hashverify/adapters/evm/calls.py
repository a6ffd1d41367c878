"""
Universal Validator Call Builder

Builds the payload that asks the chain whether a signature is valid.  Two
mutually exclusive shapes exist, chosen by the chain's validator target:

* ``KnownValidator`` -- a plain call to the deployed validator's
  ``isValidUniversalSig(address,bytes32,bytes)``.
* ``UnknownValidator`` -- a creation-style call (no ``to``) whose data is
  the validator creation code followed by the ABI-encoded constructor
  arguments.  The constructor runs the check and returns the answer, so
  nothing has to be deployed on the chain beforehand.

Block selection is not part of the payload; it is handed to the executor
alongside it.
"""

from typing import Literal, Optional, Union

from eth_abi import encode
from eth_abi.exceptions import EncodingError as ABIEncodingError
from eth_utils import function_abi_to_4byte_selector

from .constants import UNIVERSAL_SIGNATURE_VALIDATOR_BYTECODE
from .schemas import CallPayload, KnownValidator, UnknownValidator, ValidatorTarget
from .signatures import normalize_address, normalize_hash, signature_to_bytes
from .standards import UniversalSignatureValidatorABI
from ...engine.exceptions import ConfigurationError, EncodingError

Strategy = Literal["universal_validator", "deploy_and_call"]

_VALIDATOR_ABI = UniversalSignatureValidatorABI()


def strategy_for(target: ValidatorTarget) -> Strategy:
    """Name the call strategy used for ``target``."""
    if isinstance(target, KnownValidator):
        return "universal_validator"
    return "deploy_and_call"


def _encode_validator_args(address: str, hash: Union[str, bytes], signature: Union[str, bytes]) -> bytes:
    args = [normalize_address(address), normalize_hash(hash), signature_to_bytes(signature)]
    try:
        return encode(_VALIDATOR_ABI.argument_types(), args)
    except ABIEncodingError as exc:
        raise EncodingError(f"Failed to encode validator arguments: {exc}") from exc


def encode_validator_call(address: str, hash: Union[str, bytes], signature: Union[str, bytes]) -> bytes:
    """
    Encode an ``isValidUniversalSig(address, bytes32, bytes)`` call.

    Returns:
        4-byte selector followed by the ABI-encoded arguments.
    """
    selector = function_abi_to_4byte_selector(_VALIDATOR_ABI.function_entry())
    return selector + _encode_validator_args(address, hash, signature)


def encode_validator_deploy(
    bytecode: Union[str, bytes],
    address: str,
    hash: Union[str, bytes],
    signature: Union[str, bytes],
) -> bytes:
    """
    Encode a simulated deployment of the validator.

    Returns:
        Creation code followed by the ABI-encoded constructor arguments.

    Raises:
        ConfigurationError: If ``bytecode`` is empty or not hex.
    """
    if isinstance(bytecode, str):
        hex_str = bytecode[2:] if bytecode[:2].lower() == "0x" else bytecode
        try:
            code = bytes.fromhex(hex_str)
        except ValueError as exc:
            raise ConfigurationError(f"Validator bytecode is not valid hex: {exc}") from exc
    else:
        code = bytes(bytecode)

    if not code:
        raise ConfigurationError("Validator bytecode is empty")

    return code + _encode_validator_args(address, hash, signature)


def build_validation_call(
    address: str,
    hash: Union[str, bytes],
    signature: Union[str, bytes],
    target: ValidatorTarget,
    bytecode: Optional[Union[str, bytes]] = None,
) -> CallPayload:
    """
    Build the remote validation payload for ``target``.

    Args:
        address:   Claimed signer address.
        hash:      32-byte hash (bytes or 0x hex).
        signature: Plain or ERC-6492 wrapped signature (hex or bytes).
        target:    ``KnownValidator`` or ``UnknownValidator``.
        bytecode:  Validator creation code for ``UnknownValidator``; defaults
                   to ``UNIVERSAL_SIGNATURE_VALIDATOR_BYTECODE``.

    Returns:
        ``CallPayload`` addressed to the validator, or without ``to`` for
        the deploy-and-call path.

    Raises:
        ConfigurationError: Unsupported target, or empty or non-hex bytecode.
        EncodingError: Malformed address, hash or signature.

    Example::

        payload = build_validation_call(
            signer, hash, signature,
            KnownValidator(address="0x872146211f996755C8729042093ffb8660F8b129"),
        )
        result = await executor.call(payload, "latest")
    """
    if isinstance(target, KnownValidator):
        return CallPayload(
            to=normalize_address(target.address),
            data=encode_validator_call(address, hash, signature),
        )

    if not isinstance(target, UnknownValidator):
        raise ConfigurationError(f"Unsupported validator target: {type(target).__name__}")

    if bytecode is None:
        bytecode = UNIVERSAL_SIGNATURE_VALIDATOR_BYTECODE

    return CallPayload(
        to=None,
        data=encode_validator_deploy(bytecode, address, hash, signature),
    )
