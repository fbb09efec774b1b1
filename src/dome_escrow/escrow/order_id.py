"""Order ID Generation for Dome Fee Escrow.

Generates unique, deterministic order IDs that provide:
- Cross-chain replay protection (via chain_id)
- Cross-user collision prevention (via user_address)
- Same-user collision prevention (via millisecond timestamp)
"""

from decimal import ROUND_HALF_EVEN, Decimal
from numbers import Real

from eth_abi import encode
from eth_utils import keccak

from .errors import InvalidInput, InvalidPrice
from .types import OrderParams
from .utils import normalize_address, require_uint

# Types: uint256, address, string, string, uint256, uint256, uint256
ORDER_ID_ENCODING = [
    "uint256",
    "address",
    "string",
    "string",
    "uint256",
    "uint256",
    "uint256",
]

VALID_SIDES = ("buy", "sell")


def _validate(params: OrderParams) -> None:
    price = params.price
    if isinstance(price, bool) or not isinstance(price, (Real, Decimal)):
        raise InvalidPrice(f"Invalid price: {price!r}. Must be a number")
    if isinstance(price, Decimal) and price.is_nan():
        raise InvalidPrice(f"Invalid price: {price}. Must be between 0 and 1")

    # Binary markets only; also rejects NaN
    if not 0 <= price <= 1:
        raise InvalidPrice(f"Invalid price: {price}. Must be between 0 and 1")

    require_uint(params.chain_id, "chain_id")
    require_uint(params.size, "size")
    require_uint(params.timestamp, "timestamp")

    if params.side not in VALID_SIDES:
        raise InvalidInput(f"Invalid side: {params.side!r}. Must be 'buy' or 'sell'")
    if not isinstance(params.market_id, str):
        raise InvalidInput(f"Invalid market_id: {params.market_id!r}. Must be a string")


def _price_bps(price) -> int:
    if isinstance(price, Decimal):
        return int((price * 10000).to_integral_value(ROUND_HALF_EVEN))
    return round(price * 10000)


def generate_order_id(params: OrderParams) -> str:
    """Generate a unique orderId using deterministic hash.

    Args:
        params: Order parameters (timestamp should be in milliseconds)

    Returns:
        bytes32 hex string order ID

    Raises:
        InvalidPrice: If price is outside valid range [0, 1]
        InvalidAddress: If user_address is invalid
        InvalidInput: If a numeric field or the side has the wrong type
    """
    _validate(params)
    checksum_address = normalize_address(params.user_address, "user_address")

    encoded = encode(
        ORDER_ID_ENCODING,
        [
            params.chain_id,  # Chain ID first for cross-chain replay protection
            checksum_address,
            params.market_id,
            params.side,
            params.size,  # Already in USDC decimals
            _price_bps(params.price),  # Price as basis points
            params.timestamp,  # Milliseconds
        ],
    )

    return "0x" + keccak(encoded).hex()


def verify_order_id(order_id: str, params: OrderParams) -> bool:
    """Verify an orderId matches the given parameters.

    Detects tampering or mismatch; it does not authenticate anyone.

    Args:
        order_id: The order ID to verify
        params: Order parameters to check against

    Returns:
        True if the order ID matches, False otherwise
    """
    try:
        reconstructed = generate_order_id(params)
    except InvalidInput:
        return False
    return isinstance(order_id, str) and reconstructed.lower() == order_id.lower()
