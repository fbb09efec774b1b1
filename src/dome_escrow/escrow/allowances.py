"""USDC allowance checks for the escrow and Polymarket contracts.

Only reads and unsigned transaction requests live here; sending the
approvals is left to the caller's wallet.
"""

from typing import Dict, List, Mapping, Optional

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import keccak

from .chain import ChainReader
from .constants import ESCROW_CONTRACT_POLYGON, MAX_UINT256, USDC_POLYGON
from .errors import ChainReadError, ContractCallReverted
from .payments import TransactionRequest
from .types import AllowanceStatus
from .utils import normalize_address, require_uint

APPROVE_SELECTOR = keccak(b"approve(address,uint256)")[:4]
ALLOWANCE_SELECTOR = keccak(b"allowance(address,address)")[:4]

CTF_EXCHANGE = "0x4bFb41d5B3570DeFd03C39a9A4D8dE6Bd8B8982E"
NEG_RISK_CTF_EXCHANGE = "0xC5d563A36AE78145C45a50134d48A1215220f80a"
NEG_RISK_ADAPTER = "0xd91E80cF2E7be2e162c6513ceD06f1dD0dA35296"

# All contracts that need USDC approval for escrowed trading
CONTRACTS_TO_APPROVE = {
    "Fee Escrow": ESCROW_CONTRACT_POLYGON,
    "CTF Exchange": CTF_EXCHANGE,
    "Neg Risk CTF Exchange": NEG_RISK_CTF_EXCHANGE,
    "Neg Risk Adapter": NEG_RISK_ADAPTER,
}

# Allowances above this count as effectively unlimited ($1M)
UNLIMITED_ALLOWANCE_THRESHOLD = 10**12


def contracts_to_approve(
    escrow_address: str = ESCROW_CONTRACT_POLYGON,
) -> Dict[str, str]:
    """CONTRACTS_TO_APPROVE with the fee escrow replaced by escrow_address."""
    escrow_address = normalize_address(escrow_address, "escrow address")
    return {**CONTRACTS_TO_APPROVE, "Fee Escrow": escrow_address}


async def get_usdc_allowance(
    chain: ChainReader,
    owner: str,
    spender: str,
    usdc_address: str = USDC_POLYGON,
) -> int:
    """Current USDC allowance of owner for spender.

    Raises:
        ChainReadError: If the allowance could not be read
    """
    calldata = ALLOWANCE_SELECTOR + encode(
        ["address", "address"],
        [normalize_address(owner, "owner"), normalize_address(spender, "spender")],
    )
    try:
        raw = await chain.call(
            normalize_address(usdc_address, "USDC address"), calldata
        )
        (allowance,) = decode(["uint256"], raw)
    except ContractCallReverted as e:
        raise ChainReadError(f"allowance() reverted: {e}") from e
    except DecodingError as e:
        raise ChainReadError("Could not decode allowance() response") from e
    return allowance


async def check_allowances(
    chain: ChainReader,
    wallet_address: str,
    contracts: Optional[Mapping[str, str]] = None,
    usdc_address: str = USDC_POLYGON,
) -> Dict[str, AllowanceStatus]:
    """Check current USDC allowances for contracts.

    Args:
        chain: Chain reader
        wallet_address: Owner of the USDC
        contracts: Contract name -> spender address (default: CONTRACTS_TO_APPROVE)
        usdc_address: USDC contract address

    Returns:
        Contract name -> AllowanceStatus
    """
    contracts = CONTRACTS_TO_APPROVE if contracts is None else contracts
    results = {}
    for name, spender in contracts.items():
        allowance = await get_usdc_allowance(
            chain, wallet_address, spender, usdc_address
        )
        results[name] = AllowanceStatus(
            has_allowance=allowance > UNLIMITED_ALLOWANCE_THRESHOLD,
            allowance=allowance,
        )
    return results


async def has_all_approvals(
    chain: ChainReader,
    wallet_address: str,
    contracts: Optional[Mapping[str, str]] = None,
    usdc_address: str = USDC_POLYGON,
) -> bool:
    """True if every contract has an effectively unlimited allowance."""
    statuses = await check_allowances(chain, wallet_address, contracts, usdc_address)
    return all(status.has_allowance for status in statuses.values())


def build_approval_tx(
    spender: str,
    amount: int = MAX_UINT256,
    usdc_address: str = USDC_POLYGON,
) -> TransactionRequest:
    """Build an unsigned USDC approve() transaction."""
    calldata = APPROVE_SELECTOR + encode(
        ["address", "uint256"],
        [normalize_address(spender, "spender"), require_uint(amount, "amount")],
    )
    return {
        "to": normalize_address(usdc_address, "USDC address"),
        "data": "0x" + calldata.hex(),
    }


def build_all_approval_txs(
    contracts: Optional[Mapping[str, str]] = None,
    usdc_address: str = USDC_POLYGON,
) -> List[TransactionRequest]:
    contracts = CONTRACTS_TO_APPROVE if contracts is None else contracts
    return [
        build_approval_tx(spender, usdc_address=usdc_address)
        for spender in contracts.values()
    ]
