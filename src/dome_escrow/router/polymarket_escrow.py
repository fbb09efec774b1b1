"""Polymarket Router with Fee Escrow.

Submits Polymarket orders through the Dome order-placement service with a
signed fee authorization attached to every order:

    router = PolymarketRouterWithEscrow({"api_key": ..., "escrow": {...}})

The router will:
1. Generate a unique orderId for each order
2. Create and sign a fee authorization (EIP-712)
3. Include the signed fee auth in the order request
4. The Dome server then pulls the fee to escrow before placing the order

Building and signing the CLOB order itself stays with the caller; the
signed order payload is passed through unchanged.
"""

import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Literal, Optional, TypedDict

import httpx

from ..escrow.config import EscrowConfig, ResolvedEscrowConfig, resolve_escrow_config
from ..escrow.constants import CHAIN_ID_POLYGON, ZERO_ADDRESS
from ..escrow.errors import InvalidInput, OrderPlacementError
from ..escrow.fees import calculate_order_fees
from ..escrow.order_id import generate_order_id
from ..escrow.signing import (
    TypedDataSigner,
    create_fee_authorization,
    sign_fee_authorization_with_signer,
)
from ..escrow.types import OrderParams
from ..escrow.utils import calculate_order_size_usdc, normalize_address

logger = logging.getLogger(__name__)

DOME_API_ENDPOINT = "https://api.domeapi.io/v1"


@dataclass(frozen=True)
class PolymarketCredentials:
    """Polymarket CLOB API credentials for one user."""

    api_key: str
    api_secret: str
    api_passphrase: str

    def to_payload(self) -> Dict[str, str]:
        return {
            "apiKey": self.api_key,
            "apiSecret": self.api_secret,
            "apiPassphrase": self.api_passphrase,
        }

    def __repr__(self) -> str:
        return (
            f"PolymarketCredentials(api_key={self.api_key!r}, "
            "api_secret=***, api_passphrase=***)"
        )


class PolymarketRouterWithEscrowConfig(TypedDict, total=False):
    """Router config with escrow settings."""

    api_key: str
    """Dome API key"""

    api_endpoint: str
    """Dome API base URL. Default: DOME_API_ENDPOINT"""

    chain_id: int
    """Chain ID. Default: 137 (Polygon)"""

    escrow: EscrowConfig


class PlaceOrderWithEscrowParams(TypedDict, total=False):
    """Place order params with escrow options."""

    user_id: str
    market_id: str
    side: Literal["buy", "sell"]
    size: float
    """Order size in shares"""

    price: float
    """Price per share (0.00 to 1.00)"""

    signer: TypedDataSigner
    signed_order: Dict[str, Any]
    """Signed CLOB order payload, forwarded as-is"""

    wallet_type: Literal["eoa", "safe"]
    funder_address: str
    """SAFE address paying for the order (required for Safe wallets)"""

    order_type: str
    """GTC, GTD, FOK or FAK. Default: GTC"""

    fee_bps: int
    """Override Dome fee basis points for this order"""

    affiliate: str
    """Override affiliate for this order"""

    skip_escrow: bool
    """Skip fee escrow for this order"""


class PolymarketRouterWithEscrow:
    """Polymarket Router with automatic fee escrow.

    Example:
        ```python
        async with PolymarketRouterWithEscrow({
            "api_key": "your-dome-api-key",
            "escrow": {
                "dome_fee_bps": 25,  # 0.25%
                "affiliate_address": "0x...",  # optional
                "affiliate_fee_bps": 5,
            },
        }) as router:
            router.set_user_credentials("user-123", credentials)

            result = await router.place_order({
                "user_id": "user-123",
                "market_id": "token-id",
                "side": "buy",
                "size": 10,
                "price": 0.65,
                "signer": signer,
                "signed_order": signed_order,
            })
        ```
    """

    def __init__(
        self,
        config: Optional[PolymarketRouterWithEscrowConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the Polymarket Router with Escrow.

        Args:
            config: Optional configuration for the router
            http_client: Optional HTTP client (closed by the caller)
        """
        config = config or {}
        self.api_key = config.get("api_key")
        self.api_endpoint = config.get("api_endpoint", DOME_API_ENDPOINT).rstrip("/")

        self._escrow_config = resolve_escrow_config(
            config.get("escrow"),
            chain_id=config.get("chain_id", CHAIN_ID_POLYGON),
        )
        self._user_credentials: Dict[str, PolymarketCredentials] = {}
        self._user_safe_addresses: Dict[str, str] = {}

        self._owns_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(timeout=30.0)

    async def __aenter__(self) -> "PolymarketRouterWithEscrow":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self._http_client.aclose()

    def set_user_credentials(
        self, user_id: str, credentials: PolymarketCredentials
    ) -> None:
        """Store Polymarket API credentials for a user."""
        self._user_credentials[user_id] = credentials

    def set_user_safe_address(self, user_id: str, safe_address: str) -> None:
        """Store the SAFE (funder) address for a user."""
        self._user_safe_addresses[user_id] = normalize_address(
            safe_address, "safe address"
        )

    def _resolve_payer(
        self, params: PlaceOrderWithEscrowParams, signer_address: str
    ) -> str:
        if params.get("wallet_type", "eoa") != "safe":
            return signer_address

        funder_address = params.get("funder_address") or self._user_safe_addresses.get(
            params["user_id"]
        )
        if not funder_address:
            raise InvalidInput("funder_address is required for Safe wallet orders.")
        return normalize_address(funder_address, "funder address")

    def _order_fee(
        self, order_size_usdc: int, fee_bps: Optional[int], affiliate: str
    ) -> int:
        config = self._escrow_config
        dome_fee_bps = config.dome_fee_bps if fee_bps is None else fee_bps
        affiliate_fee_bps = config.affiliate_fee_bps if affiliate != ZERO_ADDRESS else 0
        fees = calculate_order_fees(
            order_size_usdc,
            dome_fee_bps,
            affiliate_fee_bps,
            min_fee=config.min_dome_fee,
        )
        return fees.total_fee

    async def place_order(
        self,
        params: PlaceOrderWithEscrowParams,
        credentials: Optional[PolymarketCredentials] = None,
    ) -> Any:
        """Places an order on Polymarket with automatic fee escrow.

        This method:
        1. Generates a unique orderId from order parameters
        2. Creates and signs a fee authorization (EIP-712)
        3. Submits the order with fee auth to Dome server
        4. Server pulls fee to escrow, then places the order

        On fill: Server distributes fee to Dome + affiliate
        On cancel: Server refunds remaining fee to user

        Args:
            params: Order parameters
            credentials: Optional credentials (uses stored credentials if not provided)

        Returns:
            Order result from the server

        Raises:
            InvalidInput: If required parameters or credentials are missing, or
                the affiliate address is malformed
            SigningFailed: If the signer could not sign the fee authorization
            OrderPlacementError: If the server rejected the order
        """
        if not self.api_key:
            raise InvalidInput(
                "Dome API key not set. "
                "Pass api_key to router constructor to use place_order."
            )

        user_id = params["user_id"]
        signer = params.get("signer")
        if signer is None:
            raise InvalidInput("A signer is required to place an order")

        signed_order = params.get("signed_order")
        if not signed_order:
            raise InvalidInput("signed_order is required")

        creds = credentials or self._user_credentials.get(user_id)
        if not creds:
            raise InvalidInput(
                f"No credentials found for user {user_id}. "
                "Call set_user_credentials() first."
            )

        affiliate = params.get("affiliate")
        if affiliate:
            affiliate = normalize_address(affiliate, "affiliate address")
        else:
            affiliate = self._escrow_config.affiliate_address

        signer_address = await signer.get_address()
        payer_address = self._resolve_payer(params, signer_address)

        client_order_id = str(uuid.uuid4())
        request_params: Dict[str, Any] = {
            # Required for escrow: identify payer and signer
            "payerAddress": payer_address,
            "signerAddress": signer_address,
            "signedOrder": signed_order,
            "orderType": params.get("order_type", "GTC"),
            "credentials": creds.to_payload(),
            "clientOrderId": client_order_id,
        }

        if params.get("skip_escrow"):
            logger.info("Placing order %s without fee escrow", client_order_id)
        else:
            request_params["feeAuth"] = await self._sign_fee_auth(
                params, payer_address, affiliate
            )

        if affiliate != ZERO_ADDRESS:
            request_params["affiliate"] = affiliate

        request = {
            "jsonrpc": "2.0",
            "method": "placeOrder",
            "id": client_order_id,
            "params": request_params,
        }
        return await self._submit(request)

    async def _sign_fee_auth(
        self,
        params: PlaceOrderWithEscrowParams,
        payer_address: str,
        affiliate: str,
    ) -> Dict[str, Any]:
        config = self._escrow_config
        price = params["price"]

        order_size_usdc = calculate_order_size_usdc(params["size"], price)
        fee_amount = self._order_fee(order_size_usdc, params.get("fee_bps"), affiliate)

        order_id = generate_order_id(
            OrderParams(
                chain_id=config.chain_id,
                user_address=payer_address,
                market_id=params["market_id"],
                side=params["side"],
                size=order_size_usdc,
                price=price,
                timestamp=int(time.time() * 1000),
            )
        )

        fee_auth = create_fee_authorization(
            order_id=order_id,
            payer=payer_address,
            fee_amount=fee_amount,
            deadline_seconds=config.deadline_seconds,
        )

        signed_fee_auth = await sign_fee_authorization_with_signer(
            signer=params["signer"],
            escrow_address=config.escrow_address,
            fee_auth=fee_auth,
            chain_id=config.chain_id,
        )

        return {
            "orderId": signed_fee_auth.order_id,
            "payer": signed_fee_auth.payer,
            "feeAmount": str(signed_fee_auth.fee_amount),
            "deadline": signed_fee_auth.deadline,  # Must be number
            "signature": signed_fee_auth.signature,
        }

    async def _submit(self, request: Dict[str, Any]) -> Any:
        logger.debug("Submitting order %s", request["id"])
        try:
            response = await self._http_client.post(
                f"{self.api_endpoint}/polymarket/placeOrder",
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self.api_key}",
                },
                json=request,
            )
        except httpx.HTTPError as e:
            raise OrderPlacementError(f"Server request failed: {e}") from e

        try:
            server_response = response.json()
        except ValueError:
            raise OrderPlacementError(
                f"Server request failed: {response.status_code} {response.text}"
            ) from None

        if not isinstance(server_response, dict):
            raise OrderPlacementError(
                f"Unexpected server response: {server_response!r}"
            )

        if "error" in server_response:
            error = server_response["error"]
            if isinstance(error, str):
                raise OrderPlacementError(
                    f"Server error: {server_response.get('message', error)}"
                )
            reason = (error.get("data") or {}).get("reason", error.get("message"))
            raise OrderPlacementError(
                f"Order placement failed: {reason} (code: {error.get('code')})",
                code=error.get("code"),
                reason=reason,
            )

        if not response.is_success:
            raise OrderPlacementError(
                f"Server request failed: {response.status_code} {response.text}",
                code=response.status_code,
            )

        result = server_response.get("result")
        if not result:
            raise OrderPlacementError("Server returned empty result")

        # Check for HTTP error status from Polymarket
        if (
            isinstance(result, dict)
            and isinstance(result.get("status"), int)
            and result["status"] >= 400
        ):
            error_message = (
                result.get("errorMessage")
                or result.get("error")
                or f"Polymarket returned HTTP {result['status']}"
            )
            raise OrderPlacementError(
                f"Order rejected by Polymarket: {error_message}",
                code=result["status"],
                reason=error_message,
            )

        logger.info("Order %s accepted", request["id"])
        return result

    def get_escrow_config(self) -> ResolvedEscrowConfig:
        """Get the escrow configuration."""
        return self._escrow_config

    def calculate_order_fee(
        self, size: float, price: float, fee_bps: Optional[int] = None
    ) -> int:
        """Calculate the total fee for an order, minimum fee included.

        Args:
            size: Order size in shares
            price: Price per share (0.00 to 1.00)
            fee_bps: Optional override for Dome fee basis points

        Returns:
            Fee amount in USDC (6 decimals)
        """
        order_size_usdc = calculate_order_size_usdc(size, price)
        return self._order_fee(
            order_size_usdc, fee_bps, self._escrow_config.affiliate_address
        )


__all__ = [
    "DOME_API_ENDPOINT",
    "PolymarketCredentials",
    "PolymarketRouterWithEscrow",
    "PolymarketRouterWithEscrowConfig",
    "PlaceOrderWithEscrowParams",
]
