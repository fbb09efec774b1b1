"""Router modules for the Dome fee escrow."""

from .polymarket_escrow import (
    DOME_API_ENDPOINT,
    PlaceOrderWithEscrowParams,
    PolymarketCredentials,
    PolymarketRouterWithEscrow,
    PolymarketRouterWithEscrowConfig,
)

__all__ = [
    "DOME_API_ENDPOINT",
    "PolymarketCredentials",
    "PolymarketRouterWithEscrow",
    "PolymarketRouterWithEscrowConfig",
    "PlaceOrderWithEscrowParams",
]
