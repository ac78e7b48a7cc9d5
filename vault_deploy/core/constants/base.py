GAS_BUFFER_MULTIPLIER = 1.1
SUGGESTED_PRIORITY_FEE_MULTIPLIER = 1.5
SUGGESTED_GAS_PRICE_MULTIPLIER = 1.5
MAX_BASE_FEE_GROWTH_MULTIPLIER = 2

# Seconds to wait for a receipt before giving up on a submitted write.
DEFAULT_TRANSACTION_TIMEOUT = 180

MAX_UINT256 = 2**256 - 1

# Fees are expressed in units of 1e-9 (so 2 * 10**9 is 2%).
DEFAULT_MANAGEMENT_FEE = 2 * 10**9
DEFAULT_PERFORMANCE_FEE = 20 * 10**9

VAULT_REGISTRY = "VaultRegistry"
PROTOCOL_GOVERNANCE = "ProtocolGovernance"
AGGREGATION_VAULT_GOVERNANCE = "GatewayVaultGovernance"
ISSUANCE_VAULT_GOVERNANCE = "LpIssuerGovernance"

LP_TOKEN_NAME = "MStrategy LP Token"
LP_TOKEN_SYMBOL = "MSLP"

DEPLOYER = "deployer"
ADMIN = "admin"
UNISWAP_V3_FACTORY = "uniswapV3Factory"
