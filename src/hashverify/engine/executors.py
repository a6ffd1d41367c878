"""
Call execution engine.

Runs validation payloads as read-only calls and reports failures through
the ``CallError`` hierarchy, which is what the verification flow branches
on.

Core Classes:
    - CallExecutor: abstract read-only call executor.
    - Web3CallExecutor: ``eth_call`` on an ``AsyncWeb3`` instance.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

import aiohttp
from web3 import AsyncWeb3
from web3.exceptions import (
    ContractLogicError,
    ProviderConnectionError,
    TimeExhausted,
    Web3Exception,
    Web3RPCError,
)

from .exceptions import CallError, ExecutionRevertError, TransportError

if TYPE_CHECKING:
    from ..adapters.evm.schemas import BlockSelector, CallPayload

logger = logging.getLogger(__name__)


# JSON-RPC error codes (EIP-1474): 3 is an execution revert, -32005 a
# provider limit (rate limiting, quota).
RPC_EXECUTION_REVERTED = 3
RPC_LIMIT_EXCEEDED = -32005


def _rpc_error(exc: Web3RPCError) -> Tuple[Optional[int], str]:
    """Return the JSON-RPC error ``(code, message)`` carried by ``exc``."""
    response = getattr(exc, "rpc_response", None)
    error = response.get("error") if isinstance(response, dict) else None
    if isinstance(error, dict):
        return error.get("code"), str(error.get("message", ""))
    return None, str(exc)


class CallExecutor(ABC):
    """
    Abstract read-only call executor.

    Implementations execute the payload without sending a transaction and
    must classify failures:

    - ``ExecutionRevertError``: the node ran the code and it reverted.
    - ``TransportError``: the node could not be reached or timed out.
    - ``CallError``: anything else.

    Retries, if any, belong to the implementation; the verifier never
    retries.

    Example Implementation:
        class StaticExecutor(CallExecutor):
            async def call(self, payload, block_identifier=None):
                return b"\\x01"
    """

    @abstractmethod
    async def call(
        self,
        payload: "CallPayload",
        block_identifier: "BlockSelector" = None,
    ) -> Optional[bytes]:
        """
        Execute ``payload`` and return the raw result bytes.

        Args:
            payload: Destination (or none, for creation-style calls) and data.
            block_identifier: Block number, tag or hash, passed through as-is.

        Returns:
            Raw return data; ``None`` or ``b""`` when the call returned nothing.

        Raises:
            ExecutionRevertError: The executed code reverted.
            TransportError: Network failure or timeout.
            CallError: Any other executor failure.
        """
        pass


class Web3CallExecutor(CallExecutor):
    """Executes validation payloads with ``eth_call`` on an ``AsyncWeb3`` instance.

    Failure classification:

    * ``ContractLogicError`` (revert, custom error) and any error the node
      reports while executing (``Web3RPCError``) -> ``ExecutionRevertError``.
    * Connection failures and timeouts -> ``TransportError``.
    * Any other ``Web3Exception`` -> ``CallError``.
    """

    def __init__(self, w3: AsyncWeb3) -> None:
        """
        Initialize the executor.

        Args:
            w3: Connected ``AsyncWeb3`` instance for the target chain.
        """
        self.w3 = w3

    @staticmethod
    def _to_transaction(payload: "CallPayload") -> Dict[str, Any]:
        transaction: Dict[str, Any] = {"data": payload.data_hex}
        if payload.to is not None:
            transaction["to"] = AsyncWeb3.to_checksum_address(payload.to)
        return transaction

    async def call(
        self,
        payload: "CallPayload",
        block_identifier: "BlockSelector" = None,
    ) -> Optional[bytes]:
        """
        Execute ``payload`` via ``eth_call``.

        Args:
            payload: Validation payload; no ``to`` means a creation-style call.
            block_identifier: Passed to ``eth.call`` unchanged; the provider
                default block is used when ``None``.

        Returns:
            Raw return data.

        Raises:
            ExecutionRevertError: The call reverted (JSON-RPC code 3 included).
            TransportError: The node could not be reached, timed out or
                rate limited the call.
            CallError: Any other web3 failure.
        """
        transaction = self._to_transaction(payload)
        logger.debug(
            "eth_call to=%s data_len=%d block=%r",
            transaction.get("to"), len(payload.data), block_identifier,
        )

        try:
            if block_identifier is None:
                result = await self.w3.eth.call(transaction)
            else:
                result = await self.w3.eth.call(transaction, block_identifier)
        except ContractLogicError as exc:
            raise ExecutionRevertError(
                f"Validator call reverted: {exc}",
                data=getattr(exc, "data", None),
                payload=payload,
            ) from exc
        except (ProviderConnectionError, TimeExhausted, aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
            raise TransportError(f"Validator call could not reach the node: {exc}", payload=payload) from exc
        except Web3RPCError as exc:
            code, message = _rpc_error(exc)
            if code == RPC_EXECUTION_REVERTED or "execution reverted" in message.lower():
                raise ExecutionRevertError(
                    f"Validator call reverted: {message}",
                    data=getattr(exc, "rpc_response", None),
                    payload=payload,
                ) from exc
            if code == RPC_LIMIT_EXCEEDED:
                raise TransportError(f"Node refused the validator call: {message}", payload=payload) from exc
            raise CallError(f"Validator call failed: {message}", payload=payload) from exc
        except Web3Exception as exc:
            raise CallError(f"Validator call failed: {exc}", payload=payload) from exc

        return bytes(result) if result is not None else None
