"""Fee calculation for Dome Fee Escrow.

All arithmetic is integer arithmetic on USDC base units (6 decimals) and
basis points, floored the same way the escrow contract floors.

Two models are supported:
- Order fees: charged upfront on every order, with independent Dome and
  affiliate rates and a minimum total fee.
- Performance fees: charged only on winnings when a position is claimed.
"""

from dataclasses import dataclass

from .constants import (
    BPS_DENOMINATOR,
    MAX_ORDER_FEE_BPS,
    MAX_PERFORMANCE_FEE_BPS,
    MIN_ORDER_FEE,
    MIN_PERFORMANCE_FEE,
    ZERO_ADDRESS,
)
from .errors import InvalidInput
from .utils import normalize_address, require_uint


@dataclass(frozen=True)
class FeeCalculation:
    """Fee breakdown between Dome and the affiliate."""

    dome_fee: int
    affiliate_fee: int
    total_fee: int


@dataclass(frozen=True)
class FeeSettings:
    """Settings for one fee model."""

    enabled: bool
    fee_bps: int
    min_fee_usdc: int


@dataclass(frozen=True)
class AffiliateSettings:
    address: str = ZERO_ADDRESS
    split_bps: int = 0
    """Share of the fee paid to the affiliate (e.g., 2000 = 20%)."""


@dataclass(frozen=True)
class FeeConfig:
    """Fee configuration for a user/affiliate."""

    order_fee: FeeSettings
    performance_fee: FeeSettings
    affiliate: AffiliateSettings
    dome_address: str


@dataclass(frozen=True)
class PerformanceFeeSplit:
    """Calculated performance fee breakdown."""

    total_fee: int
    dome_amount: int
    affiliate_amount: int
    dome_address: str
    affiliate_address: str


def calculate_fee(order_size: int, fee_bps: int) -> int:
    """Calculate fee amount from order size and basis points.

    Args:
        order_size: Order size in USDC (6 decimals)
        fee_bps: Fee in basis points (e.g., 25 = 0.25%)

    Returns:
        Fee amount in USDC (6 decimals), floored
    """
    require_uint(order_size, "order_size")
    require_uint(fee_bps, "fee_bps")
    return (order_size * fee_bps) // BPS_DENOMINATOR


def _check_bps(dome_fee_bps: int, affiliate_fee_bps: int, max_bps: int) -> None:
    if dome_fee_bps > max_bps:
        raise InvalidInput(f"Dome fee BPS too high: {dome_fee_bps}. Maximum: {max_bps}")
    if affiliate_fee_bps > max_bps:
        raise InvalidInput(
            f"Affiliate fee BPS too high: {affiliate_fee_bps}. Maximum: {max_bps}"
        )


def apply_min_fee(dome_fee: int, affiliate_fee: int, min_fee: int) -> FeeCalculation:
    """Raise a Dome/affiliate split to a minimum total, keeping its proportions.

    The parts always sum exactly to ``min_fee`` when the floor applies: the
    Dome share is scaled and floored, the affiliate takes the remainder. A
    zero fee assigns the whole floor to Dome.
    """
    total = dome_fee + affiliate_fee

    if total == 0:
        return FeeCalculation(dome_fee=min_fee, affiliate_fee=0, total_fee=min_fee)

    if total < min_fee:
        scale = (min_fee * BPS_DENOMINATOR) // total
        dome_fee = (dome_fee * scale) // BPS_DENOMINATOR
        return FeeCalculation(
            dome_fee=dome_fee,
            affiliate_fee=min_fee - dome_fee,
            total_fee=min_fee,
        )

    return FeeCalculation(
        dome_fee=dome_fee, affiliate_fee=affiliate_fee, total_fee=total
    )


def calculate_order_fees(
    order_size: int,
    dome_fee_bps: int,
    affiliate_fee_bps: int = 0,
    min_fee: int = MIN_ORDER_FEE,
) -> FeeCalculation:
    """Calculate order fees locally, mirroring the contract.

    Example:
        $100 order, 20 bps Dome, 5 bps affiliate -> $0.20 + $0.05.
        $1 order with the same rates -> $0.0025 total, raised to the $0.01
        floor and split $0.008 / $0.002.

    Raises:
        InvalidInput: If a rate exceeds MAX_ORDER_FEE_BPS
    """
    require_uint(order_size, "order_size")
    _check_bps(dome_fee_bps, affiliate_fee_bps, MAX_ORDER_FEE_BPS)

    return apply_min_fee(
        calculate_fee(order_size, dome_fee_bps),
        calculate_fee(order_size, affiliate_fee_bps),
        min_fee,
    )


def calculate_performance_fees(
    winnings: int,
    dome_fee_bps: int,
    affiliate_fee_bps: int = 0,
    min_fee: int = MIN_PERFORMANCE_FEE,
) -> FeeCalculation:
    """Calculate performance fees locally, mirroring the contract.

    Raises:
        InvalidInput: If a rate exceeds MAX_PERFORMANCE_FEE_BPS
    """
    require_uint(winnings, "winnings")
    _check_bps(dome_fee_bps, affiliate_fee_bps, MAX_PERFORMANCE_FEE_BPS)

    return apply_min_fee(
        calculate_fee(winnings, dome_fee_bps),
        calculate_fee(winnings, affiliate_fee_bps),
        min_fee,
    )


def calculate_performance_fee(
    winnings: int, fee_config: FeeConfig
) -> PerformanceFeeSplit:
    """Calculate performance fee split between DOME and affiliate.

    The total fee is a share of winnings, clamped up to the configured
    minimum, and then split: the affiliate gets ``split_bps`` of it and Dome
    gets the remainder.

    Args:
        winnings: Total winnings amount in USDC (6 decimals)
        fee_config: Fee configuration for this user

    Returns:
        Fee amounts for DOME and affiliate
    """
    require_uint(winnings, "winnings")
    performance_fee = fee_config.performance_fee
    affiliate = fee_config.affiliate

    if not performance_fee.enabled:
        return PerformanceFeeSplit(
            total_fee=0,
            dome_amount=0,
            affiliate_amount=0,
            dome_address=fee_config.dome_address,
            affiliate_address=affiliate.address,
        )

    if affiliate.split_bps > BPS_DENOMINATOR:
        raise InvalidInput(
            f"Affiliate split too high: {affiliate.split_bps}. "
            f"Maximum: {BPS_DENOMINATOR}"
        )

    total_fee = calculate_fee(winnings, performance_fee.fee_bps)
    if total_fee < performance_fee.min_fee_usdc:
        total_fee = performance_fee.min_fee_usdc

    affiliate_amount = (total_fee * affiliate.split_bps) // BPS_DENOMINATOR

    return PerformanceFeeSplit(
        total_fee=total_fee,
        dome_amount=total_fee - affiliate_amount,
        affiliate_amount=affiliate_amount,
        dome_address=normalize_address(fee_config.dome_address, "dome_address"),
        affiliate_address=affiliate.address,
    )
