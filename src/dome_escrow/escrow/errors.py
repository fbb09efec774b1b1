"""Exceptions raised by the Dome Fee Escrow module."""

from typing import List, Optional


class EscrowError(Exception):
    """Base class for all escrow errors."""


class InvalidInput(EscrowError, ValueError):
    """Input is malformed or out of range. Fix the input, do not retry."""


class InvalidAddress(InvalidInput):
    """Value is not a valid 20-byte hex address."""


class InvalidPrice(InvalidInput):
    """Price is outside the [0, 1] range of a binary market."""


class ExpiredDeadline(InvalidInput):
    """Deadline is not in the future."""


class SigningFailed(EscrowError):
    """The signing capability rejected, errored or timed out.

    Retry only with a freshly created authorization (new deadline).
    """


class ChainReadError(EscrowError):
    """Chain state could not be determined (RPC or decoding failure).

    This is never a "not found" answer. Callers may retry with backoff.
    """


class ContractCallReverted(EscrowError):
    """A read-only contract call reverted."""


class VerificationFailed(EscrowError):
    """Signature does not belong to the expected signer."""


class PaymentMismatch(EscrowError):
    """Expected transfers are missing from a transaction."""

    def __init__(self, tx_hash: str, errors: List[str]):
        self.tx_hash = tx_hash
        self.errors = list(errors)
        super().__init__(
            f"Payment verification failed for {tx_hash}: {'; '.join(errors)}"
        )


class OrderPlacementError(EscrowError):
    """Remote order endpoint refused the order."""

    def __init__(
        self,
        message: str,
        code: Optional[int] = None,
        reason: Optional[str] = None,
    ):
        self.code = code
        self.reason = reason
        super().__init__(message)
