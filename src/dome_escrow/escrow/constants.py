"""Constants matching the DomeFeeEscrow contract."""

# Chains
CHAIN_ID_POLYGON = 137
CHAIN_ID_AMOY = 80002

# Contracts
ESCROW_CONTRACT_POLYGON = "0x989876083eD929BE583b8138e40D469ea3E53a37"

# USDC.e (PoS bridged)
USDC_POLYGON = "0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174"
USDC_AMOY = "0x41E94Eb019C0762f9Bfcf9Fb1E58725BfB0e7582"

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

MAX_UINT256 = 2**256 - 1

# EIP-712 domain
DOMAIN_NAME = "DomeFeeEscrow"
DOMAIN_VERSION = "1"

USDC_DECIMALS = 6

BPS_DENOMINATOR = 10000

# Fee floors and caps (USDC, 6 decimals)
MIN_ORDER_FEE = 10_000  # $0.01
MIN_PERFORMANCE_FEE = 100_000  # $0.10
MAX_FEE_ABSOLUTE = 10_000_000_000  # $10,000

MAX_ORDER_FEE_BPS = 100  # 1%
MAX_PERFORMANCE_FEE_BPS = 1000  # 10%

DEFAULT_DOME_FEE_BPS = 10
DEFAULT_AFFILIATE_FEE_BPS = 0

# Deadline bounds
MIN_DEADLINE_SECONDS = 60  # 1 minute
MAX_DEADLINE_SECONDS = 86400  # 24 hours
DEFAULT_DEADLINE_SECONDS = 3600  # 1 hour

# User may withdraw an unsettled escrow after this
ESCROW_TIMEOUT_SECONDS = 7 * 24 * 60 * 60

# RPC
DEFAULT_RPC_URL_POLYGON = "https://polygon-rpc.com"
DEFAULT_RPC_URL_AMOY = "https://rpc-amoy.polygon.technology"
