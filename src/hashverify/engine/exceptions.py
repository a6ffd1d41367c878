"""
Exception and Error Definitions Module

Defines the exception hierarchy for hash verification.  The split between
"the signature is invalid" and "the system could not finish verifying" is
carried by the types below: only ``ExecutionRevertError`` is ever turned into
a ``False`` result, every other failure reaches the caller.

Exception Hierarchy:
    HashVerifyError (root)
    ├── EncodingError
    ├── RecoveryError
    ├── ConfigurationError
    └── CallError
        ├── ExecutionRevertError
        └── TransportError
"""

from typing import Any, Optional


class HashVerifyError(Exception):
    """
    Root exception class for all project-specific exceptions.

    All custom exceptions inherit from this class so callers can catch
    everything raised by the package in one clause.
    """
    pass


class EncodingError(HashVerifyError):
    """
    Raised when input or returned data cannot be decoded.

    This includes scenarios such as:
    - Malformed or odd-length signature hex
    - A hash that is not exactly 32 bytes
    - An address that is not 20 bytes of hex
    - Remote return data that is not a boolean
    """
    pass


class RecoveryError(HashVerifyError):
    """
    Raised when a signer address cannot be recovered from a signature.

    This includes scenarios such as:
    - Signature of the wrong length
    - Recovery id outside 0/1/27/28
    - ``r`` or ``s`` out of the curve range
    - No public key satisfies the signature

    Only ever raised by the local recovery helpers; the verification flow
    discards it.
    """
    pass


class ConfigurationError(HashVerifyError):
    """
    Raised when configuration is missing or invalid.

    This includes scenarios such as:
    - No validator creation code for the deploy-and-call path
    - No RPC URL for the requested chain
    - Unsupported chain identifier
    """
    pass


class CallError(HashVerifyError):
    """
    Base exception for failures of the remote ``eth_call``.

    Raised as-is for executor failures that are neither a revert nor a
    transport fault (e.g. an unexpected library error).  Always fatal.

    Attributes:
        payload: The ``CallPayload`` that was being executed, when known.
    """

    def __init__(self, message: str, payload: Optional[Any] = None):
        self.payload = payload
        super().__init__(message)


class ExecutionRevertError(CallError):
    """
    Raised when the validator logic itself rejected the call.

    The node executed the call and it reverted, either as a contract logic
    error or as a JSON-RPC error with code 3.  The verification flow reads this as "signature invalid"
    once local recovery has also failed to confirm the signer.

    Attributes:
        data: Revert data returned by the node, if any.
    """

    def __init__(self, message: str, data: Optional[Any] = None, payload: Optional[Any] = None):
        self.data = data
        super().__init__(message, payload=payload)


class TransportError(CallError):
    """
    Raised when the call could not reach or hear back from the node.

    This includes scenarios such as:
    - Connection refused or reset
    - Request timeout
    - Provider disconnected
    - Provider rate limiting (JSON-RPC -32005)

    Never converted into a ``False`` verification result.
    """
    pass
