"""Escrow Types for Dome Fee Escrow.

Value objects for order ids, fee authorizations (order and performance
kinds), signer accounts and the read-only projections of on-chain state.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum, IntEnum
from typing import Any, ClassVar, Dict, List, Literal, Optional, Tuple, Union

from .errors import PaymentMismatch


# EIP-712 domain type definition
EIP712_DOMAIN_TYPE = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]

# EIP-712 types for the single-amount fee authorization
FEE_AUTHORIZATION_TYPES = {
    "FeeAuthorization": [
        {"name": "orderId", "type": "bytes32"},
        {"name": "payer", "type": "address"},
        {"name": "feeAmount", "type": "uint256"},
        {"name": "deadline", "type": "uint256"},
    ],
}

# EIP-712 types for the order fee authorization (independent dome/affiliate amounts)
ORDER_FEE_TYPES = {
    "OrderFeeAuthorization": [
        {"name": "orderId", "type": "bytes32"},
        {"name": "payer", "type": "address"},
        {"name": "domeAmount", "type": "uint256"},
        {"name": "affiliateAmount", "type": "uint256"},
        {"name": "chainId", "type": "uint256"},
        {"name": "deadline", "type": "uint256"},
    ],
}

# EIP-712 types for the performance (winnings) fee authorization
PERFORMANCE_FEE_TYPES = {
    "PerformanceFeeAuthorization": [
        {"name": "positionId", "type": "bytes32"},
        {"name": "payer", "type": "address"},
        {"name": "expectedWinnings", "type": "uint256"},
        {"name": "domeAmount", "type": "uint256"},
        {"name": "affiliateAmount", "type": "uint256"},
        {"name": "chainId", "type": "uint256"},
        {"name": "deadline", "type": "uint256"},
    ],
}


class FeeType(IntEnum):
    """Fee type enum matching the contract."""

    ORDER = 0
    PERFORMANCE = 1


@dataclass(frozen=True)
class OrderParams:
    """Parameters used to generate a unique order ID."""

    user_address: str
    """Wallet address of the user (EOA or SAFE)."""

    market_id: str
    """Polymarket token ID."""

    side: Literal["buy", "sell"]
    """Order side."""

    size: int
    """USDC amount in 6 decimals (e.g., 1000000 = $1)."""

    price: Union[float, Decimal]
    """Price from 0.00 to 1.00."""

    timestamp: int
    """Unix timestamp in milliseconds (e.g., int(time.time() * 1000))."""

    chain_id: int
    """Chain ID for cross-chain replay protection (137 for Polygon)."""


@dataclass(frozen=True)
class FeeAuthorization:
    """Single-amount fee authorization to be signed by the user."""

    fee_type: ClassVar[FeeType] = FeeType.ORDER
    primary_type: ClassVar[str] = "FeeAuthorization"
    eip712_types: ClassVar[Dict[str, List[Dict[str, str]]]] = FEE_AUTHORIZATION_TYPES

    order_id: str
    """Unique order ID (bytes32 hex string)."""

    payer: str
    """Address that will pay the fee (EOA or SAFE)."""

    fee_amount: int
    """Fee amount in USDC (6 decimals)."""

    deadline: int
    """Unix timestamp deadline for the authorization."""

    def to_message(self) -> Dict[str, Any]:
        return {
            "orderId": self.order_id,
            "payer": self.payer,
            "feeAmount": self.fee_amount,
            "deadline": self.deadline,
        }


@dataclass(frozen=True)
class SignedFeeAuthorization(FeeAuthorization):
    """Fee authorization with signature."""

    signature: str
    """EIP-712 signature (65 bytes packed hex string)."""

    def unsigned(self) -> FeeAuthorization:
        return FeeAuthorization(
            order_id=self.order_id,
            payer=self.payer,
            fee_amount=self.fee_amount,
            deadline=self.deadline,
        )


@dataclass(frozen=True)
class OrderFeeAuthorization:
    """Order fee authorization with independent Dome and affiliate amounts."""

    fee_type: ClassVar[FeeType] = FeeType.ORDER
    primary_type: ClassVar[str] = "OrderFeeAuthorization"
    eip712_types: ClassVar[Dict[str, List[Dict[str, str]]]] = ORDER_FEE_TYPES

    order_id: str
    payer: str
    dome_amount: int
    affiliate_amount: int
    chain_id: int
    deadline: int

    @property
    def total_amount(self) -> int:
        return self.dome_amount + self.affiliate_amount

    def to_message(self) -> Dict[str, Any]:
        return {
            "orderId": self.order_id,
            "payer": self.payer,
            "domeAmount": self.dome_amount,
            "affiliateAmount": self.affiliate_amount,
            "chainId": self.chain_id,
            "deadline": self.deadline,
        }


@dataclass(frozen=True)
class PerformanceFeeAuthorization:
    """Performance fee authorization, charged on winnings of a position."""

    fee_type: ClassVar[FeeType] = FeeType.PERFORMANCE
    primary_type: ClassVar[str] = "PerformanceFeeAuthorization"
    eip712_types: ClassVar[Dict[str, List[Dict[str, str]]]] = PERFORMANCE_FEE_TYPES

    position_id: str
    payer: str
    expected_winnings: int
    dome_amount: int
    affiliate_amount: int
    chain_id: int
    deadline: int

    @property
    def total_amount(self) -> int:
        return self.dome_amount + self.affiliate_amount

    def to_message(self) -> Dict[str, Any]:
        return {
            "positionId": self.position_id,
            "payer": self.payer,
            "expectedWinnings": self.expected_winnings,
            "domeAmount": self.dome_amount,
            "affiliateAmount": self.affiliate_amount,
            "chainId": self.chain_id,
            "deadline": self.deadline,
        }


AnyFeeAuthorization = Union[
    FeeAuthorization, OrderFeeAuthorization, PerformanceFeeAuthorization
]


@dataclass(frozen=True)
class SignedAuthorization:
    """Any fee authorization together with its signature."""

    auth: AnyFeeAuthorization
    signature: str


def split_signed(
    signed: Union[SignedAuthorization, SignedFeeAuthorization],
) -> Tuple[AnyFeeAuthorization, str]:
    """Return the (authorization, signature) pair of a signed object."""
    if isinstance(signed, SignedAuthorization):
        return signed.auth, signed.signature
    return signed.unsigned(), signed.signature


class AccountKind(str, Enum):
    """How an account produces signatures."""

    DIRECT_KEY = "direct_key"
    SMART_CONTRACT = "smart_contract"


@dataclass(frozen=True)
class DirectKeyAccount:
    """Externally owned account; signatures are recovered with ECDSA."""

    address: str
    kind: ClassVar[AccountKind] = AccountKind.DIRECT_KEY


@dataclass(frozen=True)
class SmartContractAccount:
    """Contract account (e.g. SAFE); signatures are checked via EIP-1271."""

    address: str
    kind: ClassVar[AccountKind] = AccountKind.SMART_CONTRACT


SignerAccount = Union[DirectKeyAccount, SmartContractAccount]


@dataclass(frozen=True)
class EscrowStatus:
    """Full escrow record for an order or position."""

    payer: str
    affiliate: str
    order_fee_dome_amount: int
    order_fee_affiliate_amount: int
    perf_fee_dome_amount: int
    perf_fee_affiliate_amount: int
    is_complete: bool
    time_until_withdraw: int


@dataclass(frozen=True)
class RemainingEscrow:
    """Amounts still held in escrow."""

    order_fee_dome_remaining: int
    order_fee_affiliate_remaining: int
    perf_fee_dome_remaining: int
    perf_fee_affiliate_remaining: int
    total_remaining: int


@dataclass(frozen=True)
class EscrowExistence:
    """Whether an authorization for an order id has already been used."""

    has_any_escrow: bool
    has_order_fee: bool
    has_performance_fee: bool
    payer: str
    affiliate: str


@dataclass(frozen=True)
class AllowanceStatus:
    """USDC allowance granted to a spender."""

    has_allowance: bool
    allowance: int


@dataclass(frozen=True)
class Transfer:
    """A token transfer decoded from a Transfer event log."""

    to: str
    amount: int


@dataclass(frozen=True)
class PaymentVerification:
    """Result of reconciling expected payments against a transaction."""

    verified: bool
    tx_hash: str
    block_number: int
    timestamp: int
    transfers: List[Transfer] = field(default_factory=list)
    errors: Optional[List[str]] = None

    def raise_for_mismatch(self) -> None:
        """Raise PaymentMismatch if the payment was not verified."""
        if not self.verified:
            raise PaymentMismatch(self.tx_hash, self.errors or ["Payment not verified"])
