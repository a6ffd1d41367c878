"""
Base Schema Models for hashverify

This module defines the base classes that the EVM schema models inherit
from.  It provides canonical serialization and a common shape for
verification results.

Core Classes:
    - CanonicalModel: RFC8785-style Pydantic base model with deterministic JSON
    - BaseSignature: Abstract signature component model
    - BaseVerificationResult: Abstract verification result model

Dependencies:
    - pydantic: For data validation and serialization
"""

import json
from typing import Optional, Dict, Any
from abc import ABC
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class CanonicalModel(BaseModel):
    """
    RFC8785-style Pydantic base model with canonical JSON serialization.

    Keys are sorted and whitespace is stripped so two equal models always
    serialize to the same string.

    Example:
        class MyModel(CanonicalModel):
            name: str
            value: int

        model = MyModel(name="test", value=123)
        model.to_canonical_json()  # '{"name":"test","value":123}'
    """

    model_config = ConfigDict(populate_by_name=True)

    def to_canonical_json(self) -> str:
        """
        Convert model to a canonical JSON string.

        ``model_dump(mode="json")`` turns nested models, enums and bytes into
        plain JSON types; ``json.dumps`` then sorts keys and drops whitespace.

        Returns:
            str: JSON string with sorted keys and no extra whitespace.
        """
        data = self.model_dump(mode="json")
        return json.dumps(
            data,
            separators=(",", ":"),
            sort_keys=True,
            ensure_ascii=False
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert model to dictionary representation.

        Returns:
            Dict[str, Any]: Dictionary with all model fields.
        """
        return self.model_dump()


class BaseSignature(CanonicalModel, ABC):
    """
    Abstract base class for signature components.

    Attributes:
        signature_type: The type of signature (e.g., "ECDSA")

    Methods:
        validate_format: Check if signature components are well-formed
    """

    signature_type: str = Field(..., description="Type of signature (e.g., ECDSA)")

    def validate_format(self) -> bool:
        """
        Validate the signature components.

        Returns:
            bool: True if signature format is valid.

        Raises:
            ValueError: If signature format is invalid with descriptive message.
        """
        pass


class VerificationStatus(str, Enum):
    """
    Enumeration of possible verification result statuses.

    Attributes:
        SUCCESS: The signature is valid for the claimed signer
        INVALID_SIGNATURE: The signature is not valid for the claimed signer
    """
    SUCCESS = "success"
    INVALID_SIGNATURE = "invalid_signature"


class BaseVerificationResult(CanonicalModel, ABC):
    """
    Abstract base class for signature verification results.

    Attributes:
        verification_type: Type of verification (e.g., "evm")
        status: Verification result status (VerificationStatus enum)
        is_valid: Boolean indicating if verification was successful
        message: Human-readable status message
        error_details: Detailed error information if verification failed
        verified_at: Timestamp when verification was performed

    Methods:
        is_success: Check if verification was successful
        get_error_message: Get formatted error message
    """

    verification_type: str = Field(..., description="Type of verification (e.g., evm)")
    status: VerificationStatus = Field(..., description="Verification result status")
    is_valid: bool = Field(..., description="Whether the signature was verified")
    message: str = Field(..., description="Human-readable status message")
    error_details: Optional[Dict[str, Any]] = Field(None, description="Detailed error information")
    verified_at: datetime = Field(default_factory=datetime.now, description="Verification timestamp")

    def is_success(self) -> bool:
        """
        Check if verification was successful.

        Returns:
            bool: True if verification was successful, False otherwise.

        Example:
            result = await verifier.verify_signature(address, hash, signature)
            if result.is_success():
                ...
        """
        return self.is_valid and self.status == VerificationStatus.SUCCESS

    def get_error_message(self) -> Optional[str]:
        """
        Get formatted error message from verification result.

        Returns:
            Optional[str]: Error message if verification failed, None if successful.
        """
        if self.is_success():
            return None

        error_msg = f"Verification failed: {self.message}"
        if self.error_details:
            details_str = json.dumps(self.error_details, indent=2)
            error_msg += f"\nDetails: {details_str}"
        return error_msg
