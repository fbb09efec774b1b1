"""Dome Fee Escrow Module.

This module provides fee authorization for the Dome Fee Escrow contract.

Key components:
- Order ID generation (deterministic, collision-resistant)
- Fee calculation with minimum-fee floors and affiliate splits
- Fee authorization creation and signing (EIP-712)
- Signature verification for EOAs and smart accounts (EIP-1271)
- Escrow state reads and performance fee payment verification

Example usage:
    ```python
    from dome_escrow.escrow import (
        generate_order_id,
        calculate_order_fees,
        create_order_fee_authorization,
        sign_authorization,
        OrderParams,
        ESCROW_CONTRACT_POLYGON,
    )
    import time

    # Generate order ID
    order_id = generate_order_id(OrderParams(
        user_address="0x...",
        market_id="12345",
        side="buy",
        size=100_000_000,  # $100 USDC
        price=0.65,
        timestamp=int(time.time() * 1000),
        chain_id=137,
    ))

    # Calculate fees: 20 bps Dome, 5 bps affiliate
    fees = calculate_order_fees(100_000_000, dome_fee_bps=20, affiliate_fee_bps=5)

    # Create fee authorization
    auth = create_order_fee_authorization(
        order_id=order_id,
        payer="0x...",
        dome_amount=fees.dome_fee,
        affiliate_amount=fees.affiliate_fee,
        chain_id=137,
        deadline_seconds=3600,
    )

    # Sign with private key
    signed = sign_authorization(
        private_key="0x...",
        escrow_address=ESCROW_CONTRACT_POLYGON,
        auth=auth,
    )
    ```
"""

from .allowances import (
    CONTRACTS_TO_APPROVE,
    build_all_approval_txs,
    build_approval_tx,
    check_allowances,
    contracts_to_approve,
    get_usdc_allowance,
    has_all_approvals,
)
from .chain import Block, ChainReader, JsonRpcChainReader, LogEntry, TransactionReceipt
from .client import DomeFeeEscrowClient
from .config import (
    EscrowConfig,
    ResolvedEscrowConfig,
    get_default_rpc_url,
    get_escrow_address,
    get_usdc_address,
    load_escrow_config_from_env,
    resolve_escrow_config,
)
from .constants import (
    CHAIN_ID_AMOY,
    CHAIN_ID_POLYGON,
    ESCROW_CONTRACT_POLYGON,
    ESCROW_TIMEOUT_SECONDS,
    MAX_FEE_ABSOLUTE,
    MIN_ORDER_FEE,
    MIN_PERFORMANCE_FEE,
    USDC_AMOY,
    USDC_POLYGON,
    ZERO_ADDRESS,
)
from .errors import (
    ChainReadError,
    ContractCallReverted,
    EscrowError,
    ExpiredDeadline,
    InvalidAddress,
    InvalidInput,
    InvalidPrice,
    OrderPlacementError,
    PaymentMismatch,
    SigningFailed,
    VerificationFailed,
)
from .fee_auth import (
    create_order_fee_authorization,
    create_performance_fee_authorization,
    validate_fee_amounts,
)
from .fees import (
    AffiliateSettings,
    FeeCalculation,
    FeeConfig,
    FeeSettings,
    PerformanceFeeSplit,
    apply_min_fee,
    calculate_fee,
    calculate_order_fees,
    calculate_performance_fee,
    calculate_performance_fees,
)
from .order_id import generate_order_id, verify_order_id
from .payments import (
    build_performance_fee_transactions,
    build_usdc_transfer,
    expected_payments_for,
    verify_payment,
)
from .signing import (
    LocalAccountSigner,
    TypedDataSigner,
    build_typed_data,
    create_eip712_domain,
    create_fee_authorization,
    sign_authorization,
    sign_authorization_with_signer,
    sign_fee_authorization,
    sign_fee_authorization_with_signer,
)
from .state import EscrowStateReader
from .types import (
    FEE_AUTHORIZATION_TYPES,
    ORDER_FEE_TYPES,
    PERFORMANCE_FEE_TYPES,
    AccountKind,
    AllowanceStatus,
    DirectKeyAccount,
    EscrowExistence,
    EscrowStatus,
    FeeAuthorization,
    FeeType,
    OrderFeeAuthorization,
    OrderParams,
    PaymentVerification,
    PerformanceFeeAuthorization,
    RemainingEscrow,
    SignedAuthorization,
    SignedFeeAuthorization,
    SmartContractAccount,
    Transfer,
)
from .utils import (
    calculate_order_size_usdc,
    format_bps,
    format_usdc,
    is_valid_address,
    is_valid_order_id,
    parse_usdc,
)
from .verification import (
    recover_fee_auth_signer,
    require_valid_fee_auth,
    verify_fee_auth_signature,
    verify_fee_authorization_signature,
    verify_smart_account_signature,
)

__all__ = [
    # Types
    "OrderParams",
    "FeeType",
    "FeeAuthorization",
    "SignedFeeAuthorization",
    "OrderFeeAuthorization",
    "PerformanceFeeAuthorization",
    "SignedAuthorization",
    "FEE_AUTHORIZATION_TYPES",
    "ORDER_FEE_TYPES",
    "PERFORMANCE_FEE_TYPES",
    "AccountKind",
    "DirectKeyAccount",
    "SmartContractAccount",
    "EscrowStatus",
    "RemainingEscrow",
    "EscrowExistence",
    "AllowanceStatus",
    "Transfer",
    "PaymentVerification",
    # Errors
    "EscrowError",
    "InvalidInput",
    "InvalidAddress",
    "InvalidPrice",
    "ExpiredDeadline",
    "SigningFailed",
    "ChainReadError",
    "ContractCallReverted",
    "VerificationFailed",
    "PaymentMismatch",
    "OrderPlacementError",
    # Config
    "EscrowConfig",
    "ResolvedEscrowConfig",
    "resolve_escrow_config",
    "load_escrow_config_from_env",
    "get_escrow_address",
    "get_usdc_address",
    "get_default_rpc_url",
    "CHAIN_ID_POLYGON",
    "CHAIN_ID_AMOY",
    "ESCROW_CONTRACT_POLYGON",
    "ESCROW_TIMEOUT_SECONDS",
    "USDC_POLYGON",
    "USDC_AMOY",
    "ZERO_ADDRESS",
    "MIN_ORDER_FEE",
    "MIN_PERFORMANCE_FEE",
    "MAX_FEE_ABSOLUTE",
    # Order ID
    "generate_order_id",
    "verify_order_id",
    # Fees
    "FeeCalculation",
    "FeeSettings",
    "AffiliateSettings",
    "FeeConfig",
    "PerformanceFeeSplit",
    "calculate_fee",
    "apply_min_fee",
    "calculate_order_fees",
    "calculate_performance_fees",
    "calculate_performance_fee",
    # Signing
    "TypedDataSigner",
    "LocalAccountSigner",
    "create_eip712_domain",
    "build_typed_data",
    "create_fee_authorization",
    "create_order_fee_authorization",
    "create_performance_fee_authorization",
    "validate_fee_amounts",
    "sign_authorization",
    "sign_authorization_with_signer",
    "sign_fee_authorization",
    "sign_fee_authorization_with_signer",
    # Verification
    "recover_fee_auth_signer",
    "verify_fee_authorization_signature",
    "verify_smart_account_signature",
    "verify_fee_auth_signature",
    "require_valid_fee_auth",
    # Chain
    "ChainReader",
    "JsonRpcChainReader",
    "LogEntry",
    "TransactionReceipt",
    "Block",
    "EscrowStateReader",
    "DomeFeeEscrowClient",
    # Payments
    "verify_payment",
    "build_usdc_transfer",
    "build_performance_fee_transactions",
    "expected_payments_for",
    # Allowances
    "CONTRACTS_TO_APPROVE",
    "get_usdc_allowance",
    "check_allowances",
    "has_all_approvals",
    "build_approval_tx",
    "build_all_approval_txs",
    "contracts_to_approve",
    # Utils
    "format_usdc",
    "parse_usdc",
    "format_bps",
    "calculate_order_size_usdc",
    "is_valid_address",
    "is_valid_order_id",
]
