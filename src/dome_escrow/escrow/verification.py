"""Fee authorization signature verification.

Two schemes, selected by the signer account's kind:
- DirectKeyAccount: recover the ECDSA signer from the EIP-712 digest.
- SmartContractAccount: ask the account contract through EIP-1271
  ``isValidSignature(bytes32,bytes)``. An undeployed account or a reverted
  call is a negative answer, not an error.

Verification never mutates state and is safe to run concurrently.
"""

import logging
from typing import Optional, Union

from eth_abi import encode
from eth_abi.exceptions import EncodingError
from eth_account import Account
from eth_account.messages import SignableMessage
from eth_utils import keccak, to_bytes

from .chain import ChainReader
from .errors import ContractCallReverted, InvalidInput, VerificationFailed
from .signing import domain_chain_id, encode_authorization
from .types import (
    AccountKind,
    AnyFeeAuthorization,
    DirectKeyAccount,
    SignedAuthorization,
    SignedFeeAuthorization,
    SignerAccount,
    split_signed,
)
from .utils import normalize_address, require_uint

logger = logging.getLogger(__name__)

# bytes4(keccak256("isValidSignature(bytes32,bytes)"))
EIP1271_MAGIC_VALUE = bytes.fromhex("1626ba7e")
IS_VALID_SIGNATURE_SELECTOR = keccak(b"isValidSignature(bytes32,bytes)")[:4]

AnySignedAuthorization = Union[SignedAuthorization, SignedFeeAuthorization]


def fee_auth_digest(
    auth: AnyFeeAuthorization,
    escrow_address: str,
    chain_id: Optional[int] = None,
) -> bytes:
    """EIP-712 digest (keccak256 of 0x1901 || domainSeparator || structHash)."""
    signable = encode_authorization(auth, escrow_address, chain_id)
    return _digest(signable)


def _digest(signable: SignableMessage) -> bytes:
    return keccak(b"\x19" + signable.version + signable.header + signable.body)


def _encode_signed_fields(
    auth: AnyFeeAuthorization,
    escrow_address: str,
    chain_id: Optional[int],
) -> SignableMessage:
    # Escrow address and chain id come from the verifier; the rest may be tampered
    normalize_address(escrow_address, "escrow address")
    if chain_id is not None:
        require_uint(chain_id, "chain_id")
        auth_chain_id = getattr(auth, "chain_id", None)
        if auth_chain_id is not None and auth_chain_id != chain_id:
            raise VerificationFailed(
                f"{auth.primary_type} is bound to chain {auth_chain_id!r}, "
                f"not {chain_id}"
            )
    domain_chain_id(auth, chain_id)
    try:
        return encode_authorization(auth, escrow_address, chain_id)
    except (EncodingError, ValueError, TypeError) as e:
        raise VerificationFailed(f"Malformed {auth.primary_type}: {e}") from e


def _signature_bytes(signature: str) -> Optional[bytes]:
    try:
        return to_bytes(hexstr=signature)
    except (TypeError, ValueError):
        return None


def recover_fee_auth_signer(
    signed_auth: AnySignedAuthorization,
    escrow_address: str,
    chain_id: Optional[int] = None,
) -> str:
    """Recover the address that produced a direct-key signature.

    Raises:
        VerificationFailed: If the authorization or signature is malformed,
            or the signer is unrecoverable
        InvalidInput: If escrow_address or chain_id is invalid
    """
    auth, signature = split_signed(signed_auth)
    signable = _encode_signed_fields(auth, escrow_address, chain_id)
    sig_bytes = _signature_bytes(signature)
    if sig_bytes is None:
        raise VerificationFailed(f"Malformed signature: {signature!r}")

    try:
        return Account.recover_message(signable, signature=sig_bytes)
    except Exception as e:
        # eth_keys raises its own ValidationError/BadSignature types
        raise VerificationFailed(f"Could not recover signer: {e}") from e


def verify_direct_signature(
    signed_auth: AnySignedAuthorization,
    expected_signer: str,
    escrow_address: str,
    chain_id: Optional[int] = None,
) -> bool:
    """Verify a direct-key (EOA) signature locally.

    Returns:
        True if the recovered signer matches expected_signer (case-insensitive)
    """
    try:
        recovered = recover_fee_auth_signer(signed_auth, escrow_address, chain_id)
    except VerificationFailed as e:
        logger.warning("Rejected signature: %s", e)
        return False
    return recovered.lower() == expected_signer.lower()


def verify_fee_authorization_signature(
    signed_auth: SignedFeeAuthorization,
    escrow_address: str,
    chain_id: int,
    expected_signer: str,
) -> bool:
    """Verify a fee authorization signature locally (for EOA signatures).

    Note: This only works for EOA signatures. For SAFE signatures, use
    verify_fee_auth_signature with a SmartContractAccount.

    Args:
        signed_auth: Signed fee authorization
        escrow_address: Address of the escrow contract
        chain_id: Chain ID
        expected_signer: Expected signer address

    Returns:
        True if signature is valid and from expected signer
    """
    return verify_direct_signature(
        signed_auth, expected_signer, escrow_address, chain_id
    )


async def verify_smart_account_signature(
    chain: ChainReader,
    signed_auth: AnySignedAuthorization,
    account_address: str,
    escrow_address: str,
    chain_id: Optional[int] = None,
) -> bool:
    """Validate a signature through the account's EIP-1271 entry point.

    Returns:
        False if the account is not deployed, the call reverts, or the
        account does not return the magic value

    Raises:
        ChainReadError: If the chain could not be queried
    """
    account_address = normalize_address(account_address, "account address")
    auth, signature = split_signed(signed_auth)
    sig_bytes = _signature_bytes(signature)
    if sig_bytes is None:
        logger.warning("Rejected malformed signature for %s", account_address)
        return False

    code = await chain.get_code(account_address)
    if not code:
        logger.warning("Smart account %s is not deployed", account_address)
        return False

    try:
        digest = _digest(_encode_signed_fields(auth, escrow_address, chain_id))
    except VerificationFailed as e:
        logger.warning("Rejected signature for %s: %s", account_address, e)
        return False
    calldata = IS_VALID_SIGNATURE_SELECTOR + encode(
        ["bytes32", "bytes"], [digest, sig_bytes]
    )

    try:
        result = await chain.call(account_address, calldata)
    except ContractCallReverted:
        logger.warning("isValidSignature reverted for %s", account_address)
        return False

    return result[:4] == EIP1271_MAGIC_VALUE


def as_signer_account(signer: Union[str, SignerAccount]) -> SignerAccount:
    """Treat a bare address as a direct-key account."""
    if isinstance(signer, str):
        return DirectKeyAccount(address=signer)
    return signer


async def verify_fee_auth_signature(
    signed_auth: AnySignedAuthorization,
    expected_signer: Union[str, SignerAccount],
    escrow_address: str,
    chain_id: Optional[int] = None,
    chain: Optional[ChainReader] = None,
) -> bool:
    """Verify a signed authorization for the expected signer.

    Args:
        signed_auth: SignedAuthorization or SignedFeeAuthorization
        expected_signer: Address (direct key) or a DirectKeyAccount /
            SmartContractAccount
        escrow_address: Escrow contract the signature is bound to
        chain_id: Domain chain ID (defaults to the authorization's chain id)
        chain: Chain reader, required for smart-contract accounts

    Raises:
        InvalidInput: If a smart-contract account is given without a chain reader
        ChainReadError: If the smart-account check could not reach the chain
    """
    account = as_signer_account(expected_signer)

    if account.kind is AccountKind.DIRECT_KEY:
        return verify_direct_signature(
            signed_auth, account.address, escrow_address, chain_id
        )

    if account.kind is AccountKind.SMART_CONTRACT:
        if chain is None:
            raise InvalidInput(
                "A chain reader is required to verify smart-contract account signatures"
            )
        return await verify_smart_account_signature(
            chain, signed_auth, account.address, escrow_address, chain_id
        )

    raise InvalidInput(f"Unknown account kind: {account.kind!r}")


async def require_valid_fee_auth(
    signed_auth: AnySignedAuthorization,
    expected_signer: Union[str, SignerAccount],
    escrow_address: str,
    chain_id: Optional[int] = None,
    chain: Optional[ChainReader] = None,
) -> None:
    """Like verify_fee_auth_signature, but raise on a negative answer.

    Raises:
        VerificationFailed: If the signature is not valid for the signer
    """
    valid = await verify_fee_auth_signature(
        signed_auth, expected_signer, escrow_address, chain_id, chain
    )
    if not valid:
        account = as_signer_account(expected_signer)
        raise VerificationFailed(
            f"Signature is not valid for {account.kind.value} account {account.address}"
        )
