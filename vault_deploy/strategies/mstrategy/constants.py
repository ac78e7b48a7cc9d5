from fractions import Fraction

MSTRATEGY = "MStrategy"
MSTRATEGY_PROXY_ADMIN = "MStrategyProxyAdmin"
PROXY_ADMIN_ARTIFACT = "DefaultProxyAdmin"
PROXY_ARTIFACT = "DefaultProxy"

MSTRATEGY_ADMIN = "mStrategyAdmin"
UNISWAP_V3_ROUTER = "uniswapV3Router"

UNISWAP_V3_FEES = (500, 3000, 10000)

ORACLE_PRICE_TIMESPAN = 1800
ORACLE_LIQUIDITY_TIMESPAN = 1800
LIQUID_TO_FIXED_RATIO = Fraction(1, 4)
SQRT_P_MIN_RATIO = Fraction(1, 3000)
SQRT_P_MAX_RATIO = Fraction(1, 5000)
TOKEN_REBALANCE_THRESHOLD = Fraction(11, 10)
POOL_REBALANCE_THRESHOLD = Fraction(11, 10)
