"""Dome fee escrow SDK."""

from .escrow import (
    DomeFeeEscrowClient,
    EscrowError,
    JsonRpcChainReader,
    LocalAccountSigner,
    OrderParams,
    calculate_order_fees,
    calculate_performance_fees,
    generate_order_id,
    verify_fee_auth_signature,
    verify_payment,
)
from .router import PolymarketCredentials, PolymarketRouterWithEscrow

__version__ = "0.1.0"

__all__ = [
    "DomeFeeEscrowClient",
    "EscrowError",
    "JsonRpcChainReader",
    "LocalAccountSigner",
    "OrderParams",
    "PolymarketCredentials",
    "PolymarketRouterWithEscrow",
    "calculate_order_fees",
    "calculate_performance_fees",
    "generate_order_id",
    "verify_fee_auth_signature",
    "verify_payment",
    "__version__",
]
