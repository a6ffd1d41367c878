"""
Signature Codec Test Suite

Tests for signature normalization, the ERC-6492 wrapper and the
address / hash helpers.

Usage:
    pytest tests/test_adapter/test_signatures.py -v
"""

import pytest
from eth_abi import decode

from test_mocks import (
    MOCK_SIGNER_ADDRESS,
    MOCK_FACTORY_ADDRESS,
    MOCK_FACTORY_DATA,
    MOCK_HASH,
    sign_hash,
    to_compact_signature,
)

from hashverify.adapters.evm.constants import ERC6492_MAGIC_BYTES, ZERO_ADDRESS
from hashverify.adapters.evm.schemas import StructuredSignature
from hashverify.adapters.evm.signatures import (
    is_erc6492_signature,
    normalize_address,
    normalize_hash,
    normalize_signature,
    parse_erc6492_signature,
    parse_signature,
    serialize_erc6492_signature,
    signature_to_bytes,
)
from hashverify.engine.exceptions import EncodingError


# ========================================================================
# normalize_signature
# ========================================================================

class TestNormalizeSignature:
    """Test the three accepted signature shapes."""

    def test_hex_without_prefix_is_prefixed_and_lowercased(self):
        assert normalize_signature("ABCDEF") == "0xabcdef"

    def test_hex_with_prefix(self):
        sig = sign_hash()
        assert normalize_signature(sig) == sig

    def test_bytes(self):
        assert normalize_signature(b"\x01\x02\xff") == "0x0102ff"

    def test_structured_offsets_recovery_id(self):
        sig = StructuredSignature(r=1, s=2, v=0)
        normalized = normalize_signature(sig)

        assert len(normalized) == 132
        assert normalized.endswith("1b")
        assert normalized[2:66] == format(1, "064x")
        assert normalized[66:130] == format(2, "064x")

    def test_structured_keeps_ethereum_recovery_id(self):
        sig = StructuredSignature(r=1, s=2, v=28)
        assert normalize_signature(sig).endswith("1c")

    def test_structured_accepts_hex_components(self):
        sig = StructuredSignature(r="0x" + "aa" * 32, s="bb" * 32, v=1)
        assert normalize_signature(sig) == "0x" + "aa" * 32 + "bb" * 32 + "1c"

    def test_structured_matches_packed_hex(self):
        packed = sign_hash()
        parsed = parse_signature(packed)
        assert normalize_signature(parsed) == packed

    def test_odd_length_hex_rejected(self):
        with pytest.raises(EncodingError, match="odd"):
            normalize_signature("0xabc")

    def test_non_hex_rejected(self):
        with pytest.raises(EncodingError):
            normalize_signature("0xzz")

    def test_structured_bad_recovery_id_rejected(self):
        with pytest.raises(EncodingError):
            normalize_signature(StructuredSignature(r=1, s=2, v=5))

    def test_unsupported_type_rejected(self):
        with pytest.raises(EncodingError, match="Unsupported"):
            normalize_signature(12345)

    def test_signature_to_bytes(self):
        assert signature_to_bytes("0x0102") == b"\x01\x02"


# ========================================================================
# ERC-6492 wrapper
# ========================================================================

class TestERC6492:
    """Test detection, serialization and parsing of wrapped signatures."""

    def test_magic_suffix_value(self):
        assert ERC6492_MAGIC_BYTES.hex() == "6492" * 16
        assert len(ERC6492_MAGIC_BYTES) == 32

    def test_plain_signature_is_not_wrapped(self):
        assert is_erc6492_signature(sign_hash()) is False

    def test_serialized_signature_is_wrapped(self):
        wrapped = serialize_erc6492_signature(MOCK_FACTORY_ADDRESS, MOCK_FACTORY_DATA, sign_hash())
        assert is_erc6492_signature(wrapped) is True

    def test_serialized_layout(self):
        inner = sign_hash()
        wrapped = bytes.fromhex(
            serialize_erc6492_signature(MOCK_FACTORY_ADDRESS, MOCK_FACTORY_DATA, inner)[2:]
        )

        assert wrapped.endswith(ERC6492_MAGIC_BYTES)
        factory, factory_data, signature = decode(["address", "bytes", "bytes"], wrapped[:-32])
        assert factory.lower() == MOCK_FACTORY_ADDRESS.lower()
        assert factory_data == bytes.fromhex(MOCK_FACTORY_DATA[2:])
        assert signature == bytes.fromhex(inner[2:])

    def test_factory_data_as_bytes(self):
        data = bytes.fromhex(MOCK_FACTORY_DATA[2:])
        assert serialize_erc6492_signature(MOCK_FACTORY_ADDRESS, data, sign_hash()) == \
            serialize_erc6492_signature(MOCK_FACTORY_ADDRESS, MOCK_FACTORY_DATA, sign_hash())

    def test_parse_wrapped(self):
        inner = sign_hash()
        wrapped = serialize_erc6492_signature(MOCK_FACTORY_ADDRESS, MOCK_FACTORY_DATA, inner)

        parsed = parse_erc6492_signature(wrapped)

        assert parsed.factory == normalize_address(MOCK_FACTORY_ADDRESS)
        assert parsed.factory_data == MOCK_FACTORY_DATA
        assert parsed.inner_signature == inner
        assert parsed.has_deployment_info() is True

        assert parsed.to_dict() == {
            "factory": normalize_address(MOCK_FACTORY_ADDRESS),
            "factory_data": MOCK_FACTORY_DATA,
            "inner_signature": inner,
        }

    def test_parse_unwrapped(self):
        inner = sign_hash()
        parsed = parse_erc6492_signature(inner)

        assert parsed.factory == ZERO_ADDRESS
        assert parsed.factory_data == "0x"
        assert parsed.inner_signature == inner
        assert parsed.has_deployment_info() is False

    def test_parse_malformed_body(self):
        with pytest.raises(EncodingError, match="Malformed"):
            parse_erc6492_signature(b"\x00" * 5 + ERC6492_MAGIC_BYTES)

    def test_invalid_factory_rejected(self):
        with pytest.raises(EncodingError):
            serialize_erc6492_signature("0x1234", MOCK_FACTORY_DATA, sign_hash())


# ========================================================================
# parse_signature
# ========================================================================

class TestParseSignature:
    """Test splitting plain signatures into (r, s, v)."""

    def test_full_length(self):
        sig = sign_hash()
        raw = bytes.fromhex(sig[2:])
        parsed = parse_signature(sig)

        assert parsed.r == int.from_bytes(raw[:32], "big")
        assert parsed.s == int.from_bytes(raw[32:64], "big")
        assert parsed.v == raw[64]

    def test_compact_matches_full_length(self):
        sig = sign_hash()
        full = parse_signature(sig)
        compact = parse_signature(to_compact_signature(sig))

        assert (compact.r, compact.s, compact.y_parity) == (full.r, full.s, full.y_parity)

    def test_invalid_recovery_id(self):
        with pytest.raises(EncodingError, match="recovery ID"):
            parse_signature("0x" + "11" * 64 + "05")

    def test_invalid_length(self):
        with pytest.raises(EncodingError, match="length"):
            parse_signature("0x" + "11" * 10)


# ========================================================================
# Address and hash
# ========================================================================

class TestAddressAndHash:

    def test_lowercase_address_checksummed(self):
        assert normalize_address(MOCK_SIGNER_ADDRESS.lower()) == MOCK_SIGNER_ADDRESS

    def test_bad_checksum_rejected(self):
        bad = MOCK_SIGNER_ADDRESS[:2] + MOCK_SIGNER_ADDRESS[2:].swapcase()
        if bad.lower() == bad or bad.upper()[2:] == bad[2:]:
            pytest.skip("address has no letters to swap")
        with pytest.raises(EncodingError):
            normalize_address(bad)

    def test_known_bad_checksum_rejected(self):
        # Mixed case and a well-formed address, but the checksum is wrong
        with pytest.raises(EncodingError, match="checksum"):
            normalize_address("0x2E988a386A799f506693793C6a5af6b54DFaAbFb")

    def test_uppercase_address_accepted(self):
        upper = "0x" + MOCK_SIGNER_ADDRESS[2:].upper()
        assert normalize_address(upper) == MOCK_SIGNER_ADDRESS

    def test_short_address_rejected(self):
        with pytest.raises(EncodingError):
            normalize_address("0x1234")

    def test_hash_hex_and_bytes(self):
        assert normalize_hash(MOCK_HASH) == MOCK_HASH
        assert normalize_hash("0x" + MOCK_HASH.hex()) == MOCK_HASH

    def test_hash_wrong_length(self):
        with pytest.raises(EncodingError, match="32 bytes"):
            normalize_hash(b"\x00" * 31)
