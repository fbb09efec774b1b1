"""Fee Authorization Signing for Dome Fee Escrow.

Provides EIP-712 signing functions that work with various wallet types:
- a raw private key (direct signing with eth_account)
- any TypedDataSigner (Privy, MetaMask, custodial relays, SAFE owners, ...)

The same typed-data structure is produced for every authorization kind
(``FeeAuthorization``, ``OrderFeeAuthorization``,
``PerformanceFeeAuthorization``), so signing and verification stay
symmetric.
"""

import logging
import time
from typing import Any, Dict, List, Optional, Protocol, TypedDict, Union

from eth_account import Account
from eth_account.messages import SignableMessage, encode_defunct, encode_typed_data
from eth_utils import to_bytes, to_hex

from .constants import (
    DEFAULT_DEADLINE_SECONDS,
    DOMAIN_NAME,
    DOMAIN_VERSION,
    MAX_DEADLINE_SECONDS,
    MIN_DEADLINE_SECONDS,
)
from .errors import ExpiredDeadline, InvalidInput, SigningFailed
from .types import (
    EIP712_DOMAIN_TYPE,
    AnyFeeAuthorization,
    FeeAuthorization,
    SignedAuthorization,
    SignedFeeAuthorization,
)
from .utils import normalize_address, require_bytes32, require_uint

logger = logging.getLogger(__name__)


class EIP712Domain(TypedDict):
    """EIP-712 domain separator."""

    name: str
    version: str
    chainId: int
    verifyingContract: str


def create_eip712_domain(escrow_address: str, chain_id: int) -> EIP712Domain:
    """Create EIP-712 domain for the escrow contract.

    Args:
        escrow_address: Address of the escrow contract
        chain_id: Chain ID (137 for Polygon)

    Returns:
        EIP-712 domain dictionary

    Raises:
        InvalidAddress: If escrow address is invalid
    """
    return {
        "name": DOMAIN_NAME,
        "version": DOMAIN_VERSION,
        "chainId": require_uint(chain_id, "chain_id"),
        "verifyingContract": normalize_address(escrow_address, "escrow address"),
    }


def validate_deadline_seconds(deadline_seconds: int) -> None:
    """Check a relative deadline against the contract bounds.

    Raises:
        ExpiredDeadline: If deadline_seconds is not positive
        InvalidInput: If it is outside [MIN_DEADLINE_SECONDS, MAX_DEADLINE_SECONDS]
    """
    if isinstance(deadline_seconds, bool) or not isinstance(deadline_seconds, int):
        raise InvalidInput(f"Invalid deadline_seconds: {deadline_seconds!r}")
    if deadline_seconds <= 0:
        raise ExpiredDeadline(
            f"Deadline must be in the future, got {deadline_seconds}s"
        )
    if deadline_seconds < MIN_DEADLINE_SECONDS:
        raise InvalidInput(
            f"Deadline too short: {deadline_seconds}s. Minimum: {MIN_DEADLINE_SECONDS}s"
        )
    if deadline_seconds > MAX_DEADLINE_SECONDS:
        raise InvalidInput(
            f"Deadline too long: {deadline_seconds}s. Maximum: {MAX_DEADLINE_SECONDS}s"
        )


def deadline_from_now(deadline_seconds: int) -> int:
    """Absolute unix deadline for a validated relative deadline."""
    validate_deadline_seconds(deadline_seconds)
    return int(time.time()) + deadline_seconds


def create_fee_authorization(
    order_id: str,
    payer: str,
    fee_amount: int,
    deadline_seconds: int = DEFAULT_DEADLINE_SECONDS,
) -> FeeAuthorization:
    """Create a fee authorization object.

    Args:
        order_id: Unique order ID (bytes32 hex string)
        payer: Address that will pay the fee
        fee_amount: Fee amount in USDC (6 decimals)
        deadline_seconds: Seconds from now until authorization expires (default: 1 hour)

    Returns:
        FeeAuthorization object

    Raises:
        InvalidAddress: If payer address is invalid
        ExpiredDeadline: If deadline_seconds is not positive
        InvalidInput: If the deadline is out of bounds or the order id is malformed
    """
    payer = normalize_address(payer, "payer address")
    require_bytes32(order_id, "order_id")
    require_uint(fee_amount, "fee_amount")

    return FeeAuthorization(
        order_id=order_id,
        payer=payer,
        fee_amount=fee_amount,
        deadline=deadline_from_now(deadline_seconds),
    )


def domain_chain_id(auth: AnyFeeAuthorization, chain_id: Optional[int]) -> int:
    """Chain id for the EIP-712 domain: the explicit one, else auth.chain_id."""
    auth_chain_id = getattr(auth, "chain_id", None)
    if chain_id is not None:
        if auth_chain_id is not None and auth_chain_id != chain_id:
            raise InvalidInput(
                f"chain_id {chain_id} does not match "
                f"{auth.primary_type} chain_id {auth_chain_id}"
            )
        return chain_id
    if auth_chain_id is None:
        raise InvalidInput(
            f"chain_id is required to sign or verify a {auth.primary_type}"
        )
    return auth_chain_id


def build_typed_data(
    auth: AnyFeeAuthorization,
    escrow_address: str,
    chain_id: Optional[int] = None,
) -> Dict[str, Any]:
    """Build the full EIP-712 structure for an authorization.

    The domain chain id defaults to the chain id carried by the authorization;
    ``FeeAuthorization`` has none, so it must be passed explicitly.
    """
    domain = create_eip712_domain(escrow_address, domain_chain_id(auth, chain_id))
    return {
        "types": {"EIP712Domain": EIP712_DOMAIN_TYPE, **auth.eip712_types},
        "primaryType": auth.primary_type,
        "domain": domain,
        "message": auth.to_message(),
    }


def strip_domain_type(
    types: Dict[str, List[Dict[str, str]]],
) -> Dict[str, List[Dict[str, str]]]:
    """Drop the EIP712Domain entry; some signing backends inject their own."""
    return {name: fields for name, fields in types.items() if name != "EIP712Domain"}


def _coerce_value(type_: str, value: Any) -> Any:
    if isinstance(value, str) and (type_.startswith("uint") or type_.startswith("int")):
        return int(value, 0)
    if isinstance(value, str) and type_.startswith("bytes") and type_ != "bytes":
        return to_bytes(hexstr=value)
    return value


def coerce_typed_data(typed_data: Dict[str, Any]) -> Dict[str, Any]:
    """Normalize a typed-data payload for eth_account.

    Accepts the wire form sent to remote signers (integers as decimal
    strings, bytes32 as hex, no EIP712Domain type) and returns the full form.
    """
    types = strip_domain_type(typed_data["types"])
    primary_type = typed_data["primaryType"]
    fields = {f["name"]: f["type"] for f in types[primary_type]}
    message = {
        name: _coerce_value(fields.get(name, ""), value)
        for name, value in typed_data["message"].items()
    }
    domain = dict(typed_data["domain"])
    domain["chainId"] = _coerce_value("uint256", domain["chainId"])

    return {
        "types": {"EIP712Domain": EIP712_DOMAIN_TYPE, **types},
        "primaryType": primary_type,
        "domain": domain,
        "message": message,
    }


def encode_authorization(
    auth: AnyFeeAuthorization,
    escrow_address: str,
    chain_id: Optional[int] = None,
) -> SignableMessage:
    """EIP-712 signable message for an authorization."""
    typed_data = coerce_typed_data(build_typed_data(auth, escrow_address, chain_id))
    return encode_typed_data(full_message=typed_data)


def _check_not_expired(auth: AnyFeeAuthorization) -> None:
    now = int(time.time())
    if auth.deadline <= now:
        raise ExpiredDeadline(
            f"Refusing to sign expired {auth.primary_type}: "
            f"deadline {auth.deadline} <= now {now}"
        )


def sign_authorization(
    private_key: str,
    escrow_address: str,
    auth: AnyFeeAuthorization,
    chain_id: Optional[int] = None,
) -> SignedAuthorization:
    """Sign any fee authorization with a private key.

    Args:
        private_key: Private key (hex string with or without 0x prefix)
        escrow_address: Address of the escrow contract
        auth: Authorization to sign
        chain_id: Domain chain ID (defaults to auth.chain_id)

    Returns:
        SignedAuthorization with signature

    Raises:
        InvalidInput: If chain_id disagrees with auth.chain_id
    """
    _check_not_expired(auth)
    signable = encode_authorization(auth, escrow_address, chain_id)
    signed_message = Account.sign_message(signable, private_key=private_key)
    return SignedAuthorization(auth=auth, signature=to_hex(signed_message.signature))


def sign_fee_authorization(
    private_key: str,
    escrow_address: str,
    fee_auth: FeeAuthorization,
    chain_id: int = 137,
) -> SignedFeeAuthorization:
    """Sign a fee authorization with EIP-712 using a private key.

    Use this when you have direct access to a private key.

    Args:
        private_key: Private key (hex string with or without 0x prefix)
        escrow_address: Address of the escrow contract
        fee_auth: Fee authorization to sign
        chain_id: Chain ID (default: 137 for Polygon)

    Returns:
        SignedFeeAuthorization with signature
    """
    signed = sign_authorization(private_key, escrow_address, fee_auth, chain_id)
    return SignedFeeAuthorization(
        order_id=fee_auth.order_id,
        payer=fee_auth.payer,
        fee_amount=fee_auth.fee_amount,
        deadline=fee_auth.deadline,
        signature=signed.signature,
    )


class TypedDataSigner(Protocol):
    """Protocol for signers that can sign EIP-712 typed data."""

    async def get_address(self) -> str:
        """Get the signer's address."""
        ...

    async def sign_typed_data(self, params: Dict[str, Any]) -> str:
        """Sign EIP-712 typed data.

        Args:
            params: Dict with domain, types, primaryType, and message

        Returns:
            Signature as hex string
        """
        ...


class LocalAccountSigner:
    """TypedDataSigner backed by a private key held in memory."""

    def __init__(self, private_key: str):
        self._account = Account.from_key(private_key)

    @property
    def address(self) -> str:
        return self._account.address

    async def get_address(self) -> str:
        return self._account.address

    async def sign_typed_data(self, params: Dict[str, Any]) -> str:
        signable = encode_typed_data(full_message=coerce_typed_data(params))
        return to_hex(self._account.sign_message(signable).signature)

    async def sign_message(self, message: Union[str, bytes]) -> str:
        """Sign an EIP-191 personal message."""
        if isinstance(message, str):
            signable = encode_defunct(text=message)
        else:
            signable = encode_defunct(primitive=message)
        return to_hex(self._account.sign_message(signable).signature)


def _wire_message(auth: AnyFeeAuthorization) -> Dict[str, Any]:
    # Integers as decimal strings; JSON signers lose precision on uint256
    return {
        name: str(value) if isinstance(value, int) else value
        for name, value in auth.to_message().items()
    }


async def sign_authorization_with_signer(
    signer: TypedDataSigner,
    escrow_address: str,
    auth: AnyFeeAuthorization,
    chain_id: Optional[int] = None,
) -> SignedAuthorization:
    """Sign any fee authorization with a TypedDataSigner.

    The signer may be local or remote; no timeout or retry is applied here.
    A retry must re-create the authorization with a fresh deadline.

    Raises:
        ExpiredDeadline: If the authorization deadline has already passed
        InvalidInput: If chain_id disagrees with auth.chain_id
        SigningFailed: If the signer raises, times out or returns no signature
    """
    _check_not_expired(auth)
    typed_data = build_typed_data(auth, escrow_address, chain_id)

    params = {
        "domain": typed_data["domain"],
        "types": strip_domain_type(typed_data["types"]),
        "primaryType": typed_data["primaryType"],
        "message": _wire_message(auth),
    }

    logger.debug("Requesting %s signature for payer %s", auth.primary_type, auth.payer)
    try:
        signature = await signer.sign_typed_data(params)
    except Exception as e:
        raise SigningFailed(f"Signer failed to sign {auth.primary_type}: {e}") from e

    if not signature or not isinstance(signature, str):
        raise SigningFailed(
            f"Signer returned an empty signature for {auth.primary_type}"
        )

    if not signature.startswith("0x"):
        signature = "0x" + signature

    logger.info(
        "Signed %s for payer %s (deadline %s)",
        auth.primary_type,
        auth.payer,
        auth.deadline,
    )
    return SignedAuthorization(auth=auth, signature=signature)


async def sign_fee_authorization_with_signer(
    signer: TypedDataSigner,
    escrow_address: str,
    fee_auth: FeeAuthorization,
    chain_id: int = 137,
) -> SignedFeeAuthorization:
    """Sign a fee authorization with EIP-712 using any compatible signer.

    Use this when working with RouterSigner (Privy, MetaMask, etc.)
    or any wallet that implements the TypedDataSigner protocol.

    Args:
        signer: Signer that implements TypedDataSigner protocol
        escrow_address: Address of the escrow contract
        fee_auth: Fee authorization to sign
        chain_id: Chain ID (default: 137 for Polygon)

    Returns:
        SignedFeeAuthorization with signature
    """
    signed = await sign_authorization_with_signer(
        signer, escrow_address, fee_auth, chain_id
    )
    return SignedFeeAuthorization(
        order_id=fee_auth.order_id,
        payer=fee_auth.payer,
        fee_amount=fee_auth.fee_amount,
        deadline=fee_auth.deadline,
        signature=signed.signature,
    )
