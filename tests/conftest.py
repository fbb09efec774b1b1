"""Shared fixtures for the escrow tests."""

from typing import Callable, Dict, Optional, Tuple, Union

import pytest
from eth_account import Account

from dome_escrow.escrow.chain import Block, TransactionReceipt
from dome_escrow.escrow.signing import LocalAccountSigner

# Test wallets (DO NOT use in production)
TEST_PRIVATE_KEY = "0x" + "ab" * 32
TEST_ADDRESS = Account.from_key(TEST_PRIVATE_KEY).address

OTHER_PRIVATE_KEY = "0x" + "cd" * 32
OTHER_ADDRESS = Account.from_key(OTHER_PRIVATE_KEY).address

ORDER_ID = "0x" + "ab" * 32

CallResult = Union[bytes, Exception, Callable[[bytes], bytes]]


class FakeChainReader:
    """In-memory ChainReader.

    Contract calls are answered by (address, selector); a registered
    exception is raised instead of returned.
    """

    def __init__(self):
        self.receipts: Dict[str, TransactionReceipt] = {}
        self.blocks: Dict[int, Block] = {}
        self.code: Dict[str, bytes] = {}
        self.responses: Dict[Tuple[str, bytes], CallResult] = {}
        self.calls = []

    def add_receipt(
        self, receipt: TransactionReceipt, timestamp: int = 1700000000
    ) -> None:
        self.receipts[receipt.transaction_hash.lower()] = receipt
        self.blocks[receipt.block_number] = Block(
            number=receipt.block_number, timestamp=timestamp
        )

    def on_call(self, to: str, selector: bytes, result: CallResult) -> None:
        self.responses[(to.lower(), selector)] = result

    def set_code(self, address: str, code: bytes) -> None:
        self.code[address.lower()] = code

    async def get_transaction_receipt(
        self, tx_hash: str
    ) -> Optional[TransactionReceipt]:
        return self.receipts.get(tx_hash.lower())

    async def get_block(self, block_number: int) -> Block:
        return self.blocks[block_number]

    async def call(self, to: str, data: bytes) -> bytes:
        self.calls.append((to, data))
        result = self.responses.get((to.lower(), data[:4]))
        if result is None:
            raise AssertionError(
                f"Unexpected call to {to} with selector 0x{data[:4].hex()}"
            )
        if isinstance(result, Exception):
            raise result
        if callable(result):
            return result(data)
        return result

    async def get_code(self, address: str) -> bytes:
        return self.code.get(address.lower(), b"")


@pytest.fixture
def chain():
    return FakeChainReader()


@pytest.fixture
def signer():
    return LocalAccountSigner(TEST_PRIVATE_KEY)
