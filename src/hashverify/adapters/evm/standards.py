from dataclasses import dataclass
from typing import Dict, Any, List


# -----------------------------
# Universal signature validator ABI
# -----------------------------

_VALIDATOR_INPUTS: List[Dict[str, str]] = [
    {"name": "_signer", "type": "address"},
    {"name": "_hash", "type": "bytes32"},
    {"name": "_signature", "type": "bytes"},
]


@dataclass
class UniversalSignatureValidatorABI:
    """
    ABI of the ERC-6492 universal signature validator.

    The same ``(address _signer, bytes32 _hash, bytes _signature)`` argument
    list is used twice: by the ``isValidUniversalSig`` entry point of a
    deployed validator, and by the constructor of the off-chain variant
    whose creation code is executed in a simulated deployment.
    """

    function_name: str = "isValidUniversalSig"

    def argument_types(self) -> List[str]:
        """Return the ABI types of the validator arguments, in order."""
        return [item["type"] for item in _VALIDATOR_INPUTS]

    def function_entry(self) -> Dict[str, Any]:
        """Return the ``isValidUniversalSig`` ABI entry as a dict."""
        return {
            "inputs": list(_VALIDATOR_INPUTS),
            "name": self.function_name,
            "outputs": [{"name": "", "type": "bool"}],
            "stateMutability": "nonpayable",
            "type": "function",
        }

    def constructor_entry(self) -> Dict[str, Any]:
        """Return the constructor ABI entry as a dict."""
        return {
            "inputs": list(_VALIDATOR_INPUTS),
            "stateMutability": "nonpayable",
            "type": "constructor",
        }

    def to_list(self) -> List[Dict[str, Any]]:
        """Return the full ABI as a list compatible with ``web3.eth.contract``."""
        return [self.constructor_entry(), self.function_entry()]


# -----------------------------
# ERC-6492: counterfactual signature wrapper
# -----------------------------

@dataclass
class ERC6492SignatureData:
    """
    Parsed ERC-6492 signature components.

    A signature that is not wrapped parses to the zero factory address and
    empty factory data, with the input as ``inner_signature``.

    Attributes:
        factory: Factory address (checksum form).
        factory_data: Factory call data (0x hex).
        inner_signature: The signature the account itself validates (0x hex).
    """

    factory: str
    factory_data: str
    inner_signature: str

    def has_deployment_info(self) -> bool:
        """Return True when the wrapper carries a deployment recipe."""
        return int(self.factory, 16) != 0 and self.factory_data not in ("", "0x")

    def to_dict(self) -> Dict[str, Any]:
        """Return a plain dict suitable for serialization or logging."""
        return {
            "factory": self.factory,
            "factory_data": self.factory_data,
            "inner_signature": self.inner_signature,
        }
