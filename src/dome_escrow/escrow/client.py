"""High-level client for one DomeFeeEscrow deployment."""

import logging
from typing import Optional, Union

from .chain import ChainReader
from .constants import CHAIN_ID_POLYGON, DEFAULT_DEADLINE_SECONDS
from .errors import InvalidInput
from .fee_auth import (
    create_order_fee_authorization,
    create_performance_fee_authorization,
)
from .fees import FeeCalculation, calculate_order_fees, calculate_performance_fees
from .signing import TypedDataSigner, sign_authorization_with_signer
from .state import EscrowStateReader
from .types import (
    EscrowExistence,
    EscrowStatus,
    RemainingEscrow,
    SignedAuthorization,
    SignerAccount,
)
from .utils import normalize_address
from .verification import verify_fee_auth_signature

logger = logging.getLogger(__name__)


class DomeFeeEscrowClient:
    """Sign, verify and inspect fee authorizations for one escrow contract.

    Example:
        ```python
        signer = LocalAccountSigner(private_key)
        async with JsonRpcChainReader(rpc_url) as chain:
            client = DomeFeeEscrowClient(chain, ESCROW_CONTRACT_POLYGON, signer=signer)
            fees = client.calculate_order_fees_local(parse_usdc(100), 10)
            signed = await client.sign_order_fee_auth(
                order_id, fees.dome_fee, fees.affiliate_fee
            )
        ```
    """

    def __init__(
        self,
        chain: ChainReader,
        contract_address: str,
        chain_id: int = CHAIN_ID_POLYGON,
        signer: Optional[TypedDataSigner] = None,
    ):
        self.chain = chain
        self.contract_address = normalize_address(contract_address, "escrow address")
        self.chain_id = chain_id
        self.signer = signer
        self.state = EscrowStateReader(chain, self.contract_address)

    def _require_signer(self) -> TypedDataSigner:
        if self.signer is None:
            raise InvalidInput("A signer is required to sign fee authorizations")
        return self.signer

    # ============ Signing ============

    async def sign_order_fee_auth(
        self,
        order_id: str,
        dome_amount: int,
        affiliate_amount: int = 0,
        deadline_seconds: int = DEFAULT_DEADLINE_SECONDS,
    ) -> SignedAuthorization:
        """Create and sign an order fee authorization paid by the signer."""
        signer = self._require_signer()
        payer = await signer.get_address()
        auth = create_order_fee_authorization(
            order_id=order_id,
            payer=payer,
            dome_amount=dome_amount,
            affiliate_amount=affiliate_amount,
            chain_id=self.chain_id,
            deadline_seconds=deadline_seconds,
        )
        return await sign_authorization_with_signer(signer, self.contract_address, auth)

    async def sign_performance_fee_auth(
        self,
        position_id: str,
        expected_winnings: int,
        dome_amount: int,
        affiliate_amount: int = 0,
        deadline_seconds: int = DEFAULT_DEADLINE_SECONDS,
    ) -> SignedAuthorization:
        """Create and sign a performance fee authorization paid by the signer."""
        signer = self._require_signer()
        payer = await signer.get_address()
        auth = create_performance_fee_authorization(
            position_id=position_id,
            payer=payer,
            expected_winnings=expected_winnings,
            dome_amount=dome_amount,
            affiliate_amount=affiliate_amount,
            chain_id=self.chain_id,
            deadline_seconds=deadline_seconds,
        )
        return await sign_authorization_with_signer(signer, self.contract_address, auth)

    # ============ Fee calculation ============

    def calculate_order_fees_local(
        self, order_size: int, dome_fee_bps: int, affiliate_fee_bps: int = 0
    ) -> FeeCalculation:
        return calculate_order_fees(order_size, dome_fee_bps, affiliate_fee_bps)

    def calculate_performance_fees_local(
        self, winnings: int, dome_fee_bps: int, affiliate_fee_bps: int = 0
    ) -> FeeCalculation:
        return calculate_performance_fees(winnings, dome_fee_bps, affiliate_fee_bps)

    async def calculate_order_fees(
        self, order_size: int, dome_fee_bps: int, affiliate_fee_bps: int = 0
    ) -> FeeCalculation:
        """Order fees as computed by the contract."""
        return await self.state.calculate_order_fees(
            order_size, dome_fee_bps, affiliate_fee_bps
        )

    async def calculate_performance_fees(
        self, winnings: int, dome_fee_bps: int, affiliate_fee_bps: int = 0
    ) -> FeeCalculation:
        """Performance fees as computed by the contract."""
        return await self.state.calculate_performance_fees(
            winnings, dome_fee_bps, affiliate_fee_bps
        )

    # ============ Views ============

    async def get_escrow_status(self, order_id: str) -> EscrowStatus:
        return await self.state.get_escrow_status(order_id)

    async def get_remaining_escrow(self, order_id: str) -> RemainingEscrow:
        return await self.state.get_remaining_escrow(order_id)

    async def has_escrow(self, order_id: str) -> EscrowExistence:
        return await self.state.has_escrow(order_id)

    async def get_domain_separator(self) -> str:
        return await self.state.get_domain_separator()

    async def get_dome_wallet(self) -> str:
        return await self.state.get_dome_wallet()

    # ============ Verification ============

    async def _verify(
        self, signed: SignedAuthorization, signer: Union[str, SignerAccount]
    ) -> bool:
        valid = await verify_fee_auth_signature(
            signed, signer, self.contract_address, self.chain_id, self.chain
        )
        logger.debug(
            "%s signature for %s valid=%s",
            signed.auth.primary_type,
            signed.auth.payer,
            valid,
        )
        return valid

    async def verify_order_fee_auth_signature(
        self,
        signed: SignedAuthorization,
        signer: Union[str, SignerAccount],
    ) -> bool:
        """Verify an order fee authorization for an address or account.

        A bare address is treated as a direct-key account; pass a
        SmartContractAccount for SAFE wallets.
        """
        if signed.auth.primary_type != "OrderFeeAuthorization":
            raise InvalidInput(
                f"Expected an OrderFeeAuthorization, got {signed.auth.primary_type}"
            )
        return await self._verify(signed, signer)

    async def verify_performance_fee_auth_signature(
        self,
        signed: SignedAuthorization,
        signer: Union[str, SignerAccount],
    ) -> bool:
        if signed.auth.primary_type != "PerformanceFeeAuthorization":
            raise InvalidInput(
                "Expected a PerformanceFeeAuthorization, "
                f"got {signed.auth.primary_type}"
            )
        return await self._verify(signed, signer)
