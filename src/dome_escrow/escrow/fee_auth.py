"""Order and performance fee authorizations.

Both kinds carry independent Dome and affiliate amounts (not a split of a
single fee) and the chain id, so a signature is bound to one chain both
through the EIP-712 domain and through the signed struct.
"""

from .constants import (
    DEFAULT_DEADLINE_SECONDS,
    MAX_FEE_ABSOLUTE,
    MIN_ORDER_FEE,
    MIN_PERFORMANCE_FEE,
)
from .errors import InvalidInput
from .signing import deadline_from_now
from .types import OrderFeeAuthorization, PerformanceFeeAuthorization
from .utils import normalize_address, require_bytes32, require_uint


def validate_fee_amounts(dome_amount: int, affiliate_amount: int, min_fee: int) -> int:
    """Check a Dome/affiliate pair against the contract limits.

    Returns:
        The total fee

    Raises:
        InvalidInput: If the total is zero, below min_fee or above MAX_FEE_ABSOLUTE
    """
    require_uint(dome_amount, "dome_amount")
    require_uint(affiliate_amount, "affiliate_amount")
    total_fee = dome_amount + affiliate_amount

    if total_fee == 0:
        raise InvalidInput("Total fee cannot be zero")
    if total_fee < min_fee:
        raise InvalidInput(f"Total fee too low: {total_fee}. Minimum: {min_fee}")
    if total_fee > MAX_FEE_ABSOLUTE:
        raise InvalidInput(
            f"Total fee too high: {total_fee}. Maximum: {MAX_FEE_ABSOLUTE}"
        )
    return total_fee


def create_order_fee_authorization(
    order_id: str,
    payer: str,
    dome_amount: int,
    affiliate_amount: int,
    chain_id: int,
    deadline_seconds: int = DEFAULT_DEADLINE_SECONDS,
    min_fee: int = MIN_ORDER_FEE,
) -> OrderFeeAuthorization:
    """Create an order fee authorization.

    Args:
        order_id: Order ID from generate_order_id (bytes32 hex string)
        payer: Address that will pay the fee (EOA or SAFE)
        dome_amount: Dome's fee in USDC (6 decimals)
        affiliate_amount: Affiliate's fee in USDC (6 decimals)
        chain_id: Chain ID the authorization is valid on
        deadline_seconds: Seconds from now until expiry (default: 1 hour)
        min_fee: Minimum total fee (default: MIN_ORDER_FEE)

    Raises:
        InvalidAddress: If payer is invalid
        ExpiredDeadline: If deadline_seconds is not positive
        InvalidInput: If the id, amounts or deadline bounds are invalid
    """
    require_bytes32(order_id, "order_id")
    validate_fee_amounts(dome_amount, affiliate_amount, min_fee)

    return OrderFeeAuthorization(
        order_id=order_id,
        payer=normalize_address(payer, "payer address"),
        dome_amount=dome_amount,
        affiliate_amount=affiliate_amount,
        chain_id=require_uint(chain_id, "chain_id"),
        deadline=deadline_from_now(deadline_seconds),
    )


def create_performance_fee_authorization(
    position_id: str,
    payer: str,
    expected_winnings: int,
    dome_amount: int,
    affiliate_amount: int,
    chain_id: int,
    deadline_seconds: int = DEFAULT_DEADLINE_SECONDS,
    min_fee: int = MIN_PERFORMANCE_FEE,
) -> PerformanceFeeAuthorization:
    """Create a performance fee authorization.

    The fee can never exceed the winnings it is charged on.

    Raises:
        InvalidAddress: If payer is invalid
        ExpiredDeadline: If deadline_seconds is not positive
        InvalidInput: If the id, amounts or deadline bounds are invalid
    """
    require_bytes32(position_id, "position_id")
    require_uint(expected_winnings, "expected_winnings")
    total_fee = validate_fee_amounts(dome_amount, affiliate_amount, min_fee)

    if total_fee > expected_winnings:
        raise InvalidInput(
            f"Total fee {total_fee} exceeds expected winnings {expected_winnings}"
        )

    return PerformanceFeeAuthorization(
        position_id=position_id,
        payer=normalize_address(payer, "payer address"),
        expected_winnings=expected_winnings,
        dome_amount=dome_amount,
        affiliate_amount=affiliate_amount,
        chain_id=require_uint(chain_id, "chain_id"),
        deadline=deadline_from_now(deadline_seconds),
    )
