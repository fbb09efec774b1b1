"""Performance fee payment tools for Dome Fee Escrow.

Supports the "wins-only" fee model where users pay fees only when claiming
winning positions:

1. User calculates fee based on winnings (``calculate_performance_fee``)
2. User sends USDC payments to DOME + affiliate addresses
   (``build_performance_fee_transactions``)
3. User submits the transaction hash as payment proof
4. DOME verifies the payments (``verify_payment``) and claims the position
   on the user's behalf
"""

import logging
from typing import List, Optional, Sequence, TypedDict

from eth_abi import encode
from eth_utils import keccak, to_checksum_address

from .chain import ChainReader, LogEntry
from .constants import USDC_POLYGON
from .fees import PerformanceFeeSplit
from .types import PaymentVerification, Transfer
from .utils import format_usdc, normalize_address, require_uint

logger = logging.getLogger(__name__)

# keccak256("Transfer(address,address,uint256)")
TRANSFER_EVENT_SIGNATURE = (
    "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"
)

TRANSFER_SELECTOR = keccak(b"transfer(address,uint256)")[:4]


class ExpectedPayment(TypedDict):
    to: str
    amount: int


class TransactionRequest(TypedDict):
    to: str
    data: str


def decode_transfer(log: LogEntry, token_address: str) -> Optional[Transfer]:
    """Decode an ERC-20 Transfer log emitted by token_address, else None."""
    if log.address.lower() != token_address.lower():
        return None
    if len(log.topics) < 3 or log.topics[0].lower() != TRANSFER_EVENT_SIGNATURE:
        return None

    to = to_checksum_address("0x" + log.topics[2][-40:])
    amount = int.from_bytes(log.data[:32], "big") if log.data else 0
    return Transfer(to=to, amount=amount)


async def verify_payment(
    chain: ChainReader,
    tx_hash: str,
    expected_payments: Sequence[ExpectedPayment],
    usdc_address: str = USDC_POLYGON,
) -> PaymentVerification:
    """Verify that a transaction contains the expected USDC payments.

    This is a reconciliation: each expected payment needs one transfer to the
    same address of at least the expected amount. Surplus and unrelated
    transfers are ignored.

    Args:
        chain: Chain reader
        tx_hash: Transaction hash to verify
        expected_payments: Expected payments ({"to", "amount"})
        usdc_address: USDC contract address (defaults to Polygon USDC)

    Returns:
        Verification result with details and one error per missing payment

    Raises:
        ChainReadError: If the receipt or block could not be fetched
        InvalidAddress: If an expected payment address is invalid

    Example:
        ```python
        result = await verify_payment(chain, "0x...", [
            {"to": dome_address, "amount": parse_usdc(4)},
            {"to": affiliate_address, "amount": parse_usdc(1)},
        ])
        if result.verified:
            print("Payment verified!")
        ```
    """
    expected = [
        (
            normalize_address(payment["to"], "payment address"),
            require_uint(payment["amount"], "amount"),
        )
        for payment in expected_payments
    ]

    receipt = await chain.get_transaction_receipt(tx_hash)

    if receipt is None:
        return PaymentVerification(
            verified=False,
            tx_hash=tx_hash,
            block_number=0,
            timestamp=0,
            transfers=[],
            errors=["Transaction not found or not yet confirmed"],
        )

    if not receipt.succeeded:
        return PaymentVerification(
            verified=False,
            tx_hash=tx_hash,
            block_number=receipt.block_number,
            timestamp=0,
            transfers=[],
            errors=["Transaction failed"],
        )

    block = await chain.get_block(receipt.block_number)

    transfers: List[Transfer] = []
    for log in receipt.logs:
        transfer = decode_transfer(log, usdc_address)
        if transfer is not None:
            transfers.append(transfer)

    errors = []
    for to, amount in expected:
        found = any(
            t.to.lower() == to.lower() and t.amount >= amount for t in transfers
        )
        if not found:
            errors.append(
                f"Missing payment: expected {format_usdc(amount)} USDC to {to}"
            )

    if errors:
        logger.warning("Payment %s not verified: %s", tx_hash, "; ".join(errors))

    return PaymentVerification(
        verified=not errors,
        tx_hash=tx_hash,
        block_number=receipt.block_number,
        timestamp=block.timestamp,
        transfers=transfers,
        errors=errors or None,
    )


def build_usdc_transfer(
    to: str, amount: int, usdc_address: str = USDC_POLYGON
) -> TransactionRequest:
    """Build USDC transfer transaction data.

    Args:
        to: Recipient address
        amount: Amount in USDC (6 decimals)

    Returns:
        Transaction request ({"to", "data"})
    """
    to = normalize_address(to, "recipient address")
    calldata = TRANSFER_SELECTOR + encode(
        ["address", "uint256"], [to, require_uint(amount, "amount")]
    )
    return {
        "to": normalize_address(usdc_address, "USDC address"),
        "data": "0x" + calldata.hex(),
    }


def build_performance_fee_transactions(
    fee_split: PerformanceFeeSplit,
    usdc_address: str = USDC_POLYGON,
) -> List[TransactionRequest]:
    """Build the USDC transfers paying a performance fee split.

    Zero amounts are skipped.

    Returns:
        Transaction requests [dome_tx, affiliate_tx]
    """
    txs = []
    if fee_split.dome_amount > 0:
        txs.append(
            build_usdc_transfer(
                fee_split.dome_address, fee_split.dome_amount, usdc_address
            )
        )
    if fee_split.affiliate_amount > 0:
        txs.append(
            build_usdc_transfer(
                fee_split.affiliate_address, fee_split.affiliate_amount, usdc_address
            )
        )
    return txs


def expected_payments_for(fee_split: PerformanceFeeSplit) -> List[ExpectedPayment]:
    """Expected payments to check a performance fee transaction against."""
    payments: List[ExpectedPayment] = []
    if fee_split.dome_amount > 0:
        payments.append({"to": fee_split.dome_address, "amount": fee_split.dome_amount})
    if fee_split.affiliate_amount > 0:
        payments.append(
            {"to": fee_split.affiliate_address, "amount": fee_split.affiliate_amount}
        )
    return payments
