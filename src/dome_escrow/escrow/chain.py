"""Chain-read capability used by the verifiers and the escrow state reader.

The escrow code only depends on the ``ChainReader`` protocol; callers can
plug in any implementation. ``JsonRpcChainReader`` is a minimal async
JSON-RPC client over httpx.

No retries happen here: callers own their timeout and retry policy.
"""

import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Protocol

import httpx
from eth_utils import to_bytes, to_checksum_address

from .errors import ChainReadError, ContractCallReverted

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LogEntry:
    """An event log emitted by a transaction."""

    address: str
    topics: List[str]
    data: bytes


@dataclass(frozen=True)
class TransactionReceipt:
    """Settlement receipt of a mined transaction."""

    transaction_hash: str
    block_number: int
    status: int
    logs: List[LogEntry] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status == 1


@dataclass(frozen=True)
class Block:
    number: int
    timestamp: int


class ChainReader(Protocol):
    """Read-only access to chain state."""

    async def get_transaction_receipt(
        self, tx_hash: str
    ) -> Optional[TransactionReceipt]:
        """Receipt for a transaction, or None if unknown or not yet mined."""
        ...

    async def get_block(self, block_number: int) -> Block:
        ...

    async def call(self, to: str, data: bytes) -> bytes:
        """Execute a read-only contract call against the latest block.

        Raises:
            ContractCallReverted: If the call reverted
            ChainReadError: If the call could not be made
        """
        ...

    async def get_code(self, address: str) -> bytes:
        """Deployed bytecode at an address (empty for EOAs and undeployed accounts)."""
        ...


def _is_revert(error: Any) -> bool:
    if not isinstance(error, dict):
        return False
    message = str(error.get("message", "")).lower()
    return error.get("code") == 3 or "revert" in message


def _hex_to_int(value: Any, label: str) -> int:
    try:
        return int(value, 16)
    except (TypeError, ValueError):
        raise ChainReadError(f"Malformed {label} in RPC response: {value!r}") from None


class JsonRpcChainReader:
    """ChainReader over HTTP JSON-RPC.

    Example:
        ```python
        async with JsonRpcChainReader("https://polygon-rpc.com") as chain:
            receipt = await chain.get_transaction_receipt(tx_hash)
        ```
    """

    def __init__(
        self,
        rpc_url: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self.rpc_url = rpc_url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._ids = itertools.count(1)

    async def __aenter__(self) -> "JsonRpcChainReader":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _rpc(self, method: str, params: list) -> Any:
        """Send a JSON-RPC request and return its result."""
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        logger.debug("RPC %s %s", method, self.rpc_url)

        try:
            response = await self._client.post(self.rpc_url, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            raise ChainReadError(f"RPC {method} failed: {e}") from e
        except ValueError as e:
            raise ChainReadError(f"RPC {method} returned invalid JSON") from e

        if not isinstance(data, dict):
            raise ChainReadError(f"RPC {method} returned unexpected payload: {data!r}")

        if "error" in data:
            error = data["error"]
            if method == "eth_call" and _is_revert(error):
                raise ContractCallReverted(f"eth_call reverted: {error.get('message')}")
            raise ChainReadError(f"RPC {method} error: {error}")

        if "result" not in data:
            raise ChainReadError(f"RPC {method} response has no result")
        return data["result"]

    async def get_transaction_receipt(
        self, tx_hash: str
    ) -> Optional[TransactionReceipt]:
        raw = await self._rpc("eth_getTransactionReceipt", [tx_hash])
        if raw is None:
            return None

        try:
            logs = [
                LogEntry(
                    address=to_checksum_address(log["address"]),
                    topics=[topic.lower() for topic in log.get("topics", [])],
                    data=to_bytes(hexstr=log.get("data") or "0x"),
                )
                for log in raw.get("logs", [])
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise ChainReadError(f"Malformed logs in receipt for {tx_hash}") from e

        return TransactionReceipt(
            transaction_hash=raw.get("transactionHash", tx_hash),
            block_number=_hex_to_int(raw.get("blockNumber"), "blockNumber"),
            status=_hex_to_int(raw.get("status"), "status"),
            logs=logs,
        )

    async def get_block(self, block_number: int) -> Block:
        raw = await self._rpc("eth_getBlockByNumber", [hex(block_number), False])
        if raw is None:
            raise ChainReadError(f"Block {block_number} not found")
        return Block(
            number=_hex_to_int(raw.get("number"), "number"),
            timestamp=_hex_to_int(raw.get("timestamp"), "timestamp"),
        )

    async def call(self, to: str, data: bytes) -> bytes:
        result = await self._rpc(
            "eth_call", [{"to": to, "data": "0x" + data.hex()}, "latest"]
        )
        try:
            return to_bytes(hexstr=result)
        except (TypeError, ValueError) as e:
            raise ChainReadError(f"Malformed eth_call result: {result!r}") from e

    async def get_code(self, address: str) -> bytes:
        result = await self._rpc("eth_getCode", [address, "latest"])
        try:
            return to_bytes(hexstr=result)
        except (TypeError, ValueError) as e:
            raise ChainReadError(f"Malformed eth_getCode result: {result!r}") from e
