from .bases import CanonicalModel, BaseSignature, VerificationStatus, BaseVerificationResult

__all__ = [
    "CanonicalModel",
    "BaseSignature",
    "VerificationStatus",
    "BaseVerificationResult",
]
