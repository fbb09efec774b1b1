"""Escrow configuration.

Defaults are resolved once per chain id into an immutable
``ResolvedEscrowConfig``; nothing here is module-level mutable state.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional, TypedDict

from .constants import (
    CHAIN_ID_AMOY,
    CHAIN_ID_POLYGON,
    DEFAULT_AFFILIATE_FEE_BPS,
    DEFAULT_DEADLINE_SECONDS,
    DEFAULT_DOME_FEE_BPS,
    DEFAULT_RPC_URL_AMOY,
    DEFAULT_RPC_URL_POLYGON,
    ESCROW_CONTRACT_POLYGON,
    MIN_ORDER_FEE,
    USDC_AMOY,
    USDC_POLYGON,
    ZERO_ADDRESS,
)
from .errors import InvalidInput
from .utils import normalize_address

_ESCROW_CONTRACTS = {
    CHAIN_ID_POLYGON: ESCROW_CONTRACT_POLYGON,
}

_USDC_ADDRESSES = {
    CHAIN_ID_POLYGON: USDC_POLYGON,
    CHAIN_ID_AMOY: USDC_AMOY,
}

_RPC_URLS = {
    CHAIN_ID_POLYGON: DEFAULT_RPC_URL_POLYGON,
    CHAIN_ID_AMOY: DEFAULT_RPC_URL_AMOY,
}


class EscrowConfig(TypedDict, total=False):
    """Escrow configuration overrides."""

    escrow_address: str
    """Escrow contract address. Default: deployment for the chain"""

    dome_fee_bps: int
    """Dome fee in basis points. Default: 10 (0.10%)"""

    min_dome_fee: int
    """Minimum total order fee in USDC (6 decimals). Default: 10000 ($0.01)"""

    affiliate_fee_bps: int
    """Affiliate fee in basis points. Default: 0"""

    affiliate_address: str
    """Affiliate address for fee sharing. Default: zero address (no affiliate)"""

    deadline_seconds: int
    """Deadline for fee authorizations in seconds. Default: 3600"""

    rpc_url: str
    """JSON-RPC endpoint used for chain reads."""


@dataclass(frozen=True)
class ResolvedEscrowConfig:
    """Escrow configuration with all defaults applied for one chain."""

    chain_id: int
    escrow_address: str
    usdc_address: str
    dome_fee_bps: int
    min_dome_fee: int
    affiliate_fee_bps: int
    affiliate_address: str
    deadline_seconds: int
    rpc_url: str

    @property
    def has_affiliate(self) -> bool:
        return self.affiliate_address != ZERO_ADDRESS


def get_escrow_address(chain_id: int) -> str:
    address = _ESCROW_CONTRACTS.get(chain_id)
    if not address:
        raise InvalidInput(f"Unsupported chain ID for escrow: {chain_id}")
    return address


def get_usdc_address(chain_id: int) -> str:
    address = _USDC_ADDRESSES.get(chain_id)
    if not address:
        raise InvalidInput(f"Unsupported chain ID for USDC: {chain_id}")
    return address


def get_default_rpc_url(chain_id: int) -> str:
    return _RPC_URLS.get(chain_id, DEFAULT_RPC_URL_POLYGON)


def resolve_escrow_config(
    config: Optional[EscrowConfig] = None,
    chain_id: int = CHAIN_ID_POLYGON,
) -> ResolvedEscrowConfig:
    """Apply per-chain defaults to user overrides.

    Raises:
        InvalidInput: If the chain has no deployment and no override was given
        InvalidAddress: If an address override is invalid
    """
    config = config or {}

    escrow_address = config.get("escrow_address") or get_escrow_address(chain_id)
    affiliate_address = config.get("affiliate_address") or ZERO_ADDRESS

    return ResolvedEscrowConfig(
        chain_id=chain_id,
        escrow_address=normalize_address(escrow_address, "escrow address"),
        usdc_address=get_usdc_address(chain_id),
        dome_fee_bps=config.get("dome_fee_bps", DEFAULT_DOME_FEE_BPS),
        min_dome_fee=config.get("min_dome_fee", MIN_ORDER_FEE),
        affiliate_fee_bps=config.get("affiliate_fee_bps", DEFAULT_AFFILIATE_FEE_BPS),
        affiliate_address=normalize_address(affiliate_address, "affiliate address"),
        deadline_seconds=config.get("deadline_seconds", DEFAULT_DEADLINE_SECONDS),
        rpc_url=config.get("rpc_url") or get_default_rpc_url(chain_id),
    )


def _env_int(environ: Mapping[str, str], name: str) -> Optional[int]:
    raw = environ.get(name)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        raise InvalidInput(f"{name} must be an integer, got {raw!r}") from None


def load_escrow_config_from_env(
    environ: Optional[Mapping[str, str]] = None,
) -> EscrowConfig:
    """Read escrow overrides from DOME_* environment variables.

    Unset variables are left out so that chain defaults still apply.
    """
    environ = os.environ if environ is None else environ
    config: EscrowConfig = {}

    for key, name in (
        ("escrow_address", "DOME_ESCROW_ADDRESS"),
        ("affiliate_address", "DOME_AFFILIATE_ADDRESS"),
        ("rpc_url", "DOME_RPC_URL"),
    ):
        if environ.get(name):
            config[key] = environ[name]  # type: ignore[literal-required]

    for key, name in (
        ("dome_fee_bps", "DOME_FEE_BPS"),
        ("affiliate_fee_bps", "DOME_AFFILIATE_FEE_BPS"),
        ("deadline_seconds", "DOME_DEADLINE_SECONDS"),
    ):
        value = _env_int(environ, name)
        if value is not None:
            config[key] = value  # type: ignore[literal-required]

    return config
