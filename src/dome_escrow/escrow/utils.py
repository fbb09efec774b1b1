"""Utility functions for Dome Fee Escrow."""

import re
from decimal import ROUND_DOWN, Decimal
from typing import Union

from eth_utils import is_address, to_checksum_address

from .constants import USDC_DECIMALS
from .errors import InvalidAddress, InvalidInput

_USDC_UNIT = Decimal(10) ** USDC_DECIMALS

_BYTES32_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")


def format_usdc(amount: int) -> str:
    """Format USDC amount (6 decimals) to human readable string.

    Args:
        amount: USDC amount in 6 decimals (e.g., 1000000 = $1)

    Returns:
        Human readable string (e.g., "1")
    """
    return f"{Decimal(amount) / _USDC_UNIT:.6f}".rstrip("0").rstrip(".")


def parse_usdc(amount: Union[int, float, str, Decimal]) -> int:
    """Parse human readable amount to USDC (6 decimals).

    Args:
        amount: Human readable amount (e.g., 1.50 or "1.50")

    Returns:
        USDC amount in 6 decimals (e.g., 1500000)
    """
    value = Decimal(str(amount)) * _USDC_UNIT
    return int(value.quantize(Decimal(1), rounding=ROUND_DOWN))


def format_bps(bps: int) -> str:
    """Format basis points to percentage string.

    Args:
        bps: Basis points (e.g., 25 = 0.25%)

    Returns:
        Percentage string (e.g., "0.25%")
    """
    return f"{bps / 100}%"


def calculate_order_size_usdc(size: float, price: float) -> int:
    """Calculate order size in USDC from shares and price.

    For a BUY order: you pay (size * price) USDC to receive (size) shares
    For a SELL order: you sell (size) shares to receive (size * price) USDC

    Args:
        size: Number of shares
        price: Price per share (0.00 to 1.00)

    Returns:
        USDC cost/proceeds in 6 decimals
    """
    return parse_usdc(Decimal(str(size)) * Decimal(str(price)))


def is_valid_address(address: str) -> bool:
    """Check if a value is a valid 20-byte hex address."""
    return isinstance(address, str) and is_address(address)


def normalize_address(address: str, label: str = "address") -> str:
    """Return the EIP-55 checksum form of an address.

    Raises:
        InvalidAddress: If the address is not valid
    """
    if not is_valid_address(address):
        raise InvalidAddress(f"Invalid {label}: {address}")
    return to_checksum_address(address)


def is_valid_order_id(order_id: str) -> bool:
    """Check if a string is a bytes32 hex value (0x + 64 hex chars)."""
    return isinstance(order_id, str) and bool(_BYTES32_RE.match(order_id))


def require_bytes32(value: str, label: str = "order_id") -> str:
    if not is_valid_order_id(value):
        raise InvalidInput(
            f"Invalid {label}: {value}. Must be a 0x-prefixed bytes32 hex string"
        )
    return value


def require_uint(value: int, label: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidInput(
            f"Invalid {label}: {value!r}. Must be a non-negative integer"
        )
    return value
