"""
EVM Signature Codec

Turns the accepted signature shapes into one canonical encoding and
handles the ERC-6492 wrapper that carries a counterfactual deployment
recipe alongside a signature.  Everything here is pure byte manipulation;
no RPC calls are made.

Exported helpers
----------------
normalize_signature
    Hex string, raw bytes or ``StructuredSignature`` -> lowercase 0x hex.

is_erc6492_signature / serialize_erc6492_signature / parse_erc6492_signature
    Detect, build and take apart ERC-6492 wrapped signatures.

parse_signature
    Split a 65-byte or 64-byte (ERC-2098 compact) signature into a
    ``StructuredSignature``.

normalize_address / normalize_hash
    Canonical checksum address and 32-byte hash.
"""

import re
from typing import Union

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError, EncodingError as ABIEncodingError
from eth_utils import (
    is_address,
    is_checksum_address,
    is_checksum_formatted_address,
    to_checksum_address,
)

from .constants import ERC6492_MAGIC_BYTES, ZERO_ADDRESS
from .schemas import SignatureInput, StructuredSignature
from .standards import ERC6492SignatureData
from ...engine.exceptions import EncodingError

_HEX_DIGITS = re.compile(r"^[0-9a-fA-F]*$")

_ERC6492_WRAPPER_TYPES = ["address", "bytes", "bytes"]

# ---------------------------------------------------------------------------
# Per-variant normalizers
# ---------------------------------------------------------------------------


def _strip_hex(value: str, what: str) -> str:
    """Drop an optional 0x prefix and check the rest is even-length hex."""
    hex_str = value[2:] if value[:2].lower() == "0x" else value
    if not _HEX_DIGITS.match(hex_str):
        raise EncodingError(f"Invalid {what}: not valid hexadecimal")
    if len(hex_str) % 2:
        raise EncodingError(f"Invalid {what}: odd number of hex digits ({len(hex_str)})")
    return hex_str.lower()


def _hex_to_signature_hex(signature: str) -> str:
    return "0x" + _strip_hex(signature, "signature")


def _bytes_to_signature_hex(signature: bytes) -> str:
    return "0x" + bytes(signature).hex()


def _structured_to_signature_hex(signature: StructuredSignature) -> str:
    try:
        return signature.to_packed_hex()
    except ValueError as exc:
        raise EncodingError(f"Invalid structured signature: {exc}") from exc


def normalize_signature(signature: SignatureInput) -> str:
    """
    Convert any accepted signature shape to canonical hex.

    Args:
        signature: Hex string (0x prefix optional), raw ``bytes``, or a
                   ``StructuredSignature`` (r, s, v).

    Returns:
        Lowercase 0x-prefixed hex string.  A structured signature becomes
        ``r(32) || s(32) || v(1)`` with ``v`` in 27/28.

    Raises:
        EncodingError: Malformed or odd-length hex, out-of-range structured
                       components, or an unsupported input type.
    """
    if isinstance(signature, StructuredSignature):
        return _structured_to_signature_hex(signature)
    if isinstance(signature, (bytes, bytearray, memoryview)):
        return _bytes_to_signature_hex(bytes(signature))
    if isinstance(signature, str):
        return _hex_to_signature_hex(signature)
    raise EncodingError(f"Unsupported signature type: {type(signature).__name__}")


def signature_to_bytes(signature: SignatureInput) -> bytes:
    """Normalize ``signature`` and return its raw bytes."""
    return bytes.fromhex(normalize_signature(signature)[2:])


# ---------------------------------------------------------------------------
# Address and hash
# ---------------------------------------------------------------------------


def normalize_address(address: str) -> str:
    """
    Return the EIP-55 checksum form of ``address``.

    Mixed-case input must already carry a valid checksum; all-lower and
    all-upper input is accepted as-is.

    Raises:
        EncodingError: If ``address`` is not a 20-byte hex address, or is
            mixed-case with a wrong checksum.
    """
    if not isinstance(address, str) or not is_address(address):
        raise EncodingError(f"Invalid address: {address!r}")
    if is_checksum_formatted_address(address) and not is_checksum_address(address):
        raise EncodingError(f"Address has an invalid EIP-55 checksum: {address!r}")
    return to_checksum_address(address)


def normalize_hash(hash: Union[str, bytes]) -> bytes:
    """
    Return ``hash`` as 32 raw bytes.

    Raises:
        EncodingError: If the value is not 32 bytes (or 64 hex digits).
    """
    if isinstance(hash, str):
        raw = bytes.fromhex(_strip_hex(hash, "hash"))
    elif isinstance(hash, (bytes, bytearray, memoryview)):
        raw = bytes(hash)
    else:
        raise EncodingError(f"Unsupported hash type: {type(hash).__name__}")

    if len(raw) != 32:
        raise EncodingError(f"Invalid hash: expected 32 bytes, got {len(raw)}")
    return raw


# ---------------------------------------------------------------------------
# ERC-6492 wrapper
# ---------------------------------------------------------------------------


def is_erc6492_signature(signature: SignatureInput) -> bool:
    """
    Check whether ``signature`` ends with the ERC-6492 magic suffix.

    Raises:
        EncodingError: If ``signature`` cannot be normalized.
    """
    return signature_to_bytes(signature).endswith(ERC6492_MAGIC_BYTES)


def serialize_erc6492_signature(
    factory: str,
    factory_data: Union[str, bytes],
    signature: SignatureInput,
) -> str:
    """
    Wrap ``signature`` with a counterfactual deployment recipe.

    Encodes ``abi.encode(address, bytes, bytes)(factory, factory_data,
    signature)`` and appends the 32-byte magic suffix.  Callers must not
    pass a signature that is already wrapped; use ``is_erc6492_signature``
    first.

    Args:
        factory:      Factory contract address.
        factory_data: Call data for the factory (0x hex or bytes).
        signature:    Inner signature in any accepted shape.

    Returns:
        0x-prefixed hex of the wrapped signature.

    Raises:
        EncodingError: If any component is malformed.

    Example::

        wrapped = serialize_erc6492_signature(
            "0x1111111111111111111111111111111111111111",
            "0xdeadbeef",
            "0x" + "aa" * 65,
        )
        assert is_erc6492_signature(wrapped)
    """
    factory_address = normalize_address(factory)
    if isinstance(factory_data, str):
        data = bytes.fromhex(_strip_hex(factory_data, "factory data"))
    else:
        data = bytes(factory_data)
    inner = signature_to_bytes(signature)

    try:
        encoded = encode(_ERC6492_WRAPPER_TYPES, [factory_address, data, inner])
    except ABIEncodingError as exc:
        raise EncodingError(f"Failed to encode ERC-6492 wrapper: {exc}") from exc

    return "0x" + (encoded + ERC6492_MAGIC_BYTES).hex()


def parse_erc6492_signature(signature: SignatureInput) -> ERC6492SignatureData:
    """
    Split an ERC-6492 wrapped signature into its components.

    A signature without the magic suffix is returned as-is with the zero
    factory address and empty factory data.

    Raises:
        EncodingError: If the wrapped body is not a valid ABI encoding.
    """
    raw = signature_to_bytes(signature)
    if not raw.endswith(ERC6492_MAGIC_BYTES):
        return ERC6492SignatureData(
            factory=ZERO_ADDRESS,
            factory_data="0x",
            inner_signature="0x" + raw.hex(),
        )

    body = raw[: -len(ERC6492_MAGIC_BYTES)]
    try:
        factory, factory_data, inner = decode(_ERC6492_WRAPPER_TYPES, body)
    except (DecodingError, ValueError) as exc:
        raise EncodingError(f"Malformed ERC-6492 signature: {exc}") from exc

    return ERC6492SignatureData(
        factory=to_checksum_address(factory),
        factory_data="0x" + factory_data.hex(),
        inner_signature="0x" + inner.hex(),
    )


# ---------------------------------------------------------------------------
# Structured form
# ---------------------------------------------------------------------------


def parse_signature(signature: SignatureInput) -> StructuredSignature:
    """
    Split a plain signature into (r, s, v).

    Accepts the 65-byte ``r || s || v`` encoding (``v`` in 0/1/27/28) and
    the 64-byte ERC-2098 compact encoding, where the top bit of the second
    word carries the y-parity.

    Raises:
        EncodingError: Any other length or recovery id.
    """
    if isinstance(signature, StructuredSignature):
        return signature

    raw = signature_to_bytes(signature)
    r = int.from_bytes(raw[:32], "big")

    if len(raw) == 65:
        s = int.from_bytes(raw[32:64], "big")
        v = raw[64]
        if v not in (0, 1, 27, 28):
            raise EncodingError(f"Invalid recovery ID: {v}")
    elif len(raw) == 64:
        y_parity_and_s = int.from_bytes(raw[32:], "big")
        v = 27 + (y_parity_and_s >> 255)
        s = y_parity_and_s & ((1 << 255) - 1)
    else:
        raise EncodingError(f"Invalid signature length: expected 64 or 65 bytes, got {len(raw)}")

    return StructuredSignature(r=r, s=s, v=v)
