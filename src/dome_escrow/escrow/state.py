"""Read-only views of the DomeFeeEscrow contract.

Every call goes to the chain; nothing is cached because escrow state can
change between two calls. Any failure to determine the state raises
ChainReadError so that "no escrow" is never confused with "could not tell".
"""

import logging
from typing import Any, List, Sequence, Tuple

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import keccak, to_checksum_address

from .chain import ChainReader
from .constants import MAX_ORDER_FEE_BPS, MAX_PERFORMANCE_FEE_BPS, ZERO_ADDRESS
from .errors import ChainReadError, ContractCallReverted, InvalidInput
from .fees import FeeCalculation
from .types import EscrowExistence, EscrowStatus, RemainingEscrow
from .utils import normalize_address, require_bytes32

logger = logging.getLogger(__name__)


def _selector(signature: str) -> bytes:
    return keccak(text=signature)[:4]


GET_ESCROW_STATUS_SELECTOR = _selector("getEscrowStatus(bytes32)")
GET_REMAINING_ESCROW_SELECTOR = _selector("getRemainingEscrow(bytes32)")
CALCULATE_ORDER_FEES_SELECTOR = _selector("calculateOrderFees(uint256,uint256,uint256)")
CALCULATE_PERFORMANCE_FEES_SELECTOR = _selector(
    "calculatePerformanceFees(uint256,uint256,uint256)"
)
DOMAIN_SEPARATOR_SELECTOR = _selector("DOMAIN_SEPARATOR()")
DOME_WALLET_SELECTOR = _selector("domeWallet()")

ESCROW_STATUS_OUTPUT = [
    "address",
    "address",
    "uint256",
    "uint256",
    "uint256",
    "uint256",
    "bool",
    "uint256",
]
REMAINING_ESCROW_OUTPUT = ["uint256", "uint256", "uint256", "uint256", "uint256"]
FEE_CALCULATION_OUTPUT = ["uint256", "uint256", "uint256"]


class EscrowStateReader:
    """Query escrow state for order and position ids.

    Example:
        ```python
        reader = EscrowStateReader(chain, ESCROW_CONTRACT_POLYGON)
        exists = await reader.has_escrow(order_id)
        if exists.has_order_fee:
            print("Order fee already escrowed")
        ```
    """

    def __init__(self, chain: ChainReader, escrow_address: str):
        self.chain = chain
        self.escrow_address = normalize_address(escrow_address, "escrow address")

    async def _call(
        self,
        selector: bytes,
        arg_types: List[str],
        args: Sequence[Any],
        output: List[str],
    ) -> Tuple:
        data = selector + (encode(arg_types, list(args)) if arg_types else b"")
        try:
            raw = await self.chain.call(self.escrow_address, data)
        except ContractCallReverted as e:
            raise ChainReadError(f"Escrow view call reverted: {e}") from e

        try:
            return decode(output, raw)
        except (DecodingError, ValueError) as e:
            raise ChainReadError(
                f"Could not decode escrow response ({len(raw)} bytes)"
            ) from e

    async def get_escrow_status(self, order_id: str) -> EscrowStatus:
        """Full escrow record for an order/position id."""
        require_bytes32(order_id, "order_id")
        (
            payer,
            affiliate,
            order_fee_dome,
            order_fee_affiliate,
            perf_fee_dome,
            perf_fee_affiliate,
            is_complete,
            time_until_withdraw,
        ) = await self._call(
            GET_ESCROW_STATUS_SELECTOR,
            ["bytes32"],
            [bytes.fromhex(order_id[2:])],
            ESCROW_STATUS_OUTPUT,
        )

        return EscrowStatus(
            payer=to_checksum_address(payer),
            affiliate=to_checksum_address(affiliate),
            order_fee_dome_amount=order_fee_dome,
            order_fee_affiliate_amount=order_fee_affiliate,
            perf_fee_dome_amount=perf_fee_dome,
            perf_fee_affiliate_amount=perf_fee_affiliate,
            is_complete=is_complete,
            time_until_withdraw=time_until_withdraw,
        )

    async def get_remaining_escrow(self, order_id: str) -> RemainingEscrow:
        """Amounts still held in escrow for an order/position id."""
        require_bytes32(order_id, "order_id")
        values = await self._call(
            GET_REMAINING_ESCROW_SELECTOR,
            ["bytes32"],
            [bytes.fromhex(order_id[2:])],
            REMAINING_ESCROW_OUTPUT,
        )
        return RemainingEscrow(*values)

    async def has_escrow(self, order_id: str) -> EscrowExistence:
        """Check whether an authorization for this id was already redeemed.

        An escrow exists once it has been funded (payer is not the zero
        address). Use this before signing a new authorization for the same id.

        Raises:
            ChainReadError: If the state could not be determined
        """
        status = await self.get_escrow_status(order_id)

        existence = EscrowExistence(
            has_any_escrow=status.payer != ZERO_ADDRESS,
            has_order_fee=(
                status.order_fee_dome_amount > 0
                or status.order_fee_affiliate_amount > 0
            ),
            has_performance_fee=(
                status.perf_fee_dome_amount > 0
                or status.perf_fee_affiliate_amount > 0
            ),
            payer=status.payer,
            affiliate=status.affiliate,
        )
        logger.debug("Escrow for %s: %s", order_id, existence)
        return existence

    async def get_domain_separator(self) -> str:
        (separator,) = await self._call(DOMAIN_SEPARATOR_SELECTOR, [], [], ["bytes32"])
        return "0x" + separator.hex()

    async def get_dome_wallet(self) -> str:
        (wallet,) = await self._call(DOME_WALLET_SELECTOR, [], [], ["address"])
        return to_checksum_address(wallet)

    async def calculate_order_fees(
        self, order_size: int, dome_fee_bps: int, affiliate_fee_bps: int
    ) -> FeeCalculation:
        """Order fees as computed by the contract itself."""
        if dome_fee_bps > MAX_ORDER_FEE_BPS or affiliate_fee_bps > MAX_ORDER_FEE_BPS:
            raise InvalidInput(f"Order fee BPS too high. Maximum: {MAX_ORDER_FEE_BPS}")
        values = await self._call(
            CALCULATE_ORDER_FEES_SELECTOR,
            ["uint256", "uint256", "uint256"],
            [order_size, dome_fee_bps, affiliate_fee_bps],
            FEE_CALCULATION_OUTPUT,
        )
        return FeeCalculation(*values)

    async def calculate_performance_fees(
        self, winnings: int, dome_fee_bps: int, affiliate_fee_bps: int
    ) -> FeeCalculation:
        """Performance fees as computed by the contract itself."""
        if max(dome_fee_bps, affiliate_fee_bps) > MAX_PERFORMANCE_FEE_BPS:
            raise InvalidInput(
                f"Performance fee BPS too high. Maximum: {MAX_PERFORMANCE_FEE_BPS}"
            )
        values = await self._call(
            CALCULATE_PERFORMANCE_FEES_SELECTOR,
            ["uint256", "uint256", "uint256"],
            [winnings, dome_fee_bps, affiliate_fee_bps],
            FEE_CALCULATION_OUTPUT,
        )
        return FeeCalculation(*values)
