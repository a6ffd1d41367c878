"""
EVM Schema Models

Pydantic models for hash verification on EVM chains.

Signature classes:
    - StructuredSignature: (r, s, v) triple, one of the three accepted
      signature shapes (hex string and raw bytes being the other two).

Deployment and routing:
    - ExplicitDeployment: factory address + factory call data for a
      counterfactual account.  ``DeploymentParams`` is ``Optional`` of it, so
      one field without the other cannot be expressed.
    - KnownValidator / UnknownValidator: whether the chain has a deployed
      universal signature validator (``ValidatorTarget``).
    - CallPayload: the bytes handed to the call executor.

Result classes:
    - HashVerificationResult: verification outcome with the path that
      produced it.
"""

from typing import Optional, Literal, Union

from pydantic import Field, field_validator

from ...schemas.bases import (
    BaseSignature,
    BaseVerificationResult,
    CanonicalModel,
)

_UINT256_BOUND = 2 ** 256

#: Block number, tag (``"latest"``, ``"pending"`` ...) or block hash, passed
#: to ``eth_call`` untouched.
BlockSelector = Optional[Union[int, str, bytes]]


class StructuredSignature(BaseSignature):
    """
    Structured secp256k1 signature (r, s, v).

    ``r`` and ``s`` accept ints or hex strings (0x prefix optional).  ``v``
    accepts the raw recovery id (0 or 1) or the Ethereum form (27 or 28);
    serialization always emits 27/28.

    Attributes:
        signature_type: Always ``"ECDSA"``.
        r: r component as an integer in ``[0, 2**256)``.
        s: s component as an integer in ``[0, 2**256)``.
        v: Recovery id, one of 0, 1, 27, 28.

    Example::

        sig = StructuredSignature(r="0x" + "a" * 64, s="0x" + "b" * 64, v=1)
        sig.to_packed_hex()   # "0xaaaa...bbbb1c"
    """

    signature_type: Literal["ECDSA"] = Field(default="ECDSA", description="Signature scheme identifier")
    r: int = Field(..., description="Signature r component")
    s: int = Field(..., description="Signature s component")
    v: int = Field(..., description="Recovery id (0, 1, 27 or 28)")

    @field_validator("r", "s", mode="before")
    @classmethod
    def _coerce_component(cls, value):
        if isinstance(value, str):
            hex_str = value[2:] if value[:2].lower() == "0x" else value
            try:
                return int(hex_str, 16)
            except ValueError:
                raise ValueError(f"not valid hexadecimal: {value!r}")
        return value

    def validate_format(self) -> bool:
        """
        Validate r/s/v ranges.

        Returns:
            True when all components pass.

        Raises:
            ValueError: Descriptive message on the first failed check.
        """
        if self.v not in (0, 1, 27, 28):
            raise ValueError(f"Invalid recovery ID: {self.v}. Must be 0, 1, 27 or 28")

        for name, val in [("r", self.r), ("s", self.s)]:
            if not 0 <= val < _UINT256_BOUND:
                raise ValueError(f"Invalid {name}: out of uint256 range")

        return True

    @property
    def y_parity(self) -> int:
        """Recovery id in its raw 0/1 form."""
        return self.v - 27 if self.v >= 27 else self.v

    def to_packed_hex(self) -> str:
        """
        Encode into a packed 65-byte hex string (``r || s || v``).

        Returns:
            0x-prefixed 132-character lowercase hex string.

        Raises:
            ValueError: If components do not pass ``validate_format()``.
        """
        self.validate_format()
        return (
            "0x"
            + format(self.r, "064x")
            + format(self.s, "064x")
            + format(self.y_parity + 27, "02x")
        )


#: Signature shapes accepted by the codec.
SignatureInput = Union[str, bytes, StructuredSignature]


class ExplicitDeployment(CanonicalModel):
    """
    Deployment recipe of a counterfactual smart account.

    Both fields are required; "no deployment" is expressed by passing
    ``None`` where ``DeploymentParams`` is expected.

    Attributes:
        factory: Factory contract address that deploys the account.
        factory_data: Call data sent to the factory (0x hex).
    """

    factory: str = Field(..., description="Factory contract address (0x-prefixed, 42 chars)")
    factory_data: str = Field(..., description="Factory call data (0x-prefixed hex)")


#: Either no deployment recipe or a complete one.
DeploymentParams = Optional[ExplicitDeployment]


class KnownValidator(CanonicalModel):
    """
    A universal signature validator already deployed on the target chain.

    Attributes:
        kind: Always ``"known"``.
        address: Validator contract address.
        block_created: Deployment block; informational only.
    """

    kind: Literal["known"] = Field(default="known", description="Validator target discriminator")
    address: str = Field(..., description="Deployed validator contract address")
    block_created: Optional[int] = Field(None, ge=0, description="Block the validator was deployed in")


class UnknownValidator(CanonicalModel):
    """No universal signature validator is known to exist on the target chain."""

    kind: Literal["unknown"] = Field(default="unknown", description="Validator target discriminator")


ValidatorTarget = Union[KnownValidator, UnknownValidator]


class CallPayload(CanonicalModel):
    """
    Payload for the call executor.

    Attributes:
        to: Destination contract, or ``None`` for a creation-style call.
        data: Call data, or creation code followed by constructor arguments.
    """

    to: Optional[str] = Field(None, description="Destination address; None for creation-style calls")
    data: bytes = Field(..., description="Call data or creation code")

    @property
    def data_hex(self) -> str:
        """``data`` as a 0x-prefixed hex string."""
        return "0x" + self.data.hex()


class HashVerificationResult(BaseVerificationResult):
    """
    Outcome of a hash verification with the path that produced it.

    Attributes:
        verification_type: Always ``"evm"``.
        address:    Claimed signer (checksum form).
        hash:       Verified hash (0x hex).
        strategy:   ``"universal_validator"`` when a deployed validator was
                    called, ``"deploy_and_call"`` otherwise.
        resolution: ``"remote_call"`` when the validator answered,
                    ``"local_recovery"`` when recovery confirmed the signer
                    after a revert, ``"validator_revert"`` when the revert
                    stood as the answer.
        wrapped:    Whether an ERC-6492 wrapper was sent to the validator.
    """

    verification_type: Literal["evm"] = Field(default="evm", description="Verification type identifier")
    address: str = Field(..., description="Claimed signer address (checksum)")
    hash: str = Field(..., description="Verified hash (0x hex)")
    strategy: Literal["universal_validator", "deploy_and_call"] = Field(
        ..., description="Remote call strategy used"
    )
    resolution: Literal["remote_call", "local_recovery", "validator_revert"] = Field(
        ..., description="Step that produced the answer"
    )
    wrapped: bool = Field(default=False, description="Whether an ERC-6492 wrapper was sent")
