from __future__ import annotations

from fractions import Fraction

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from vault_deploy.core.constants import ZERO_ADDRESS
from vault_deploy.core.constants.base import DEPLOYER, UNISWAP_V3_FACTORY
from vault_deploy.core.deployments import Deployment
from vault_deploy.core.environment import ChainEnvironment, ProxyOptions
from vault_deploy.core.errors import InputError
from vault_deploy.provisioning.fixed_point import (
    encode_sqrt_bound,
    encode_threshold,
    encode_x96,
)
from vault_deploy.strategies.mstrategy.constants import (
    LIQUID_TO_FIXED_RATIO,
    MSTRATEGY,
    MSTRATEGY_ADMIN,
    MSTRATEGY_PROXY_ADMIN,
    ORACLE_LIQUIDITY_TIMESPAN,
    ORACLE_PRICE_TIMESPAN,
    POOL_REBALANCE_THRESHOLD,
    PROXY_ADMIN_ARTIFACT,
    PROXY_ARTIFACT,
    SQRT_P_MAX_RATIO,
    SQRT_P_MIN_RATIO,
    TOKEN_REBALANCE_THRESHOLD,
    UNISWAP_V3_FEES,
    UNISWAP_V3_ROUTER,
)


class MStrategyImmutableParams(BaseModel):
    token0: str
    token1: str
    uni_v3_pool: str = Field(alias="uniV3Pool")
    uni_v3_router: str = Field(alias="uniV3Router")
    erc20_vault: str = Field(alias="erc20Vault")
    money_vault: str = Field(alias="moneyVault")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class MStrategyParams(BaseModel):
    oracle_price_timespan: int = Field(alias="oraclePriceTimespan")
    oracle_liquidity_timespan: int = Field(alias="oracleLiquidityTimespan")
    liquid_to_fixed_ratio_x96: int = Field(alias="liquidToFixedRatioX96")
    sqrt_p_min_x96: int = Field(alias="sqrtPMinX96")
    sqrt_p_max_x96: int = Field(alias="sqrtPMaxX96")
    token_rebalance_threshold_x96: int = Field(alias="tokenRebalanceThresholdX96")
    pool_rebalance_threshold_x96: int = Field(alias="poolRebalanceThresholdX96")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @classmethod
    def from_ratios(
        cls,
        *,
        oracle_price_timespan: int = ORACLE_PRICE_TIMESPAN,
        oracle_liquidity_timespan: int = ORACLE_LIQUIDITY_TIMESPAN,
        liquid_to_fixed_ratio: Fraction = LIQUID_TO_FIXED_RATIO,
        sqrt_p_min_ratio: Fraction = SQRT_P_MIN_RATIO,
        sqrt_p_max_ratio: Fraction = SQRT_P_MAX_RATIO,
        token_rebalance_threshold: Fraction = TOKEN_REBALANCE_THRESHOLD,
        pool_rebalance_threshold: Fraction = POOL_REBALANCE_THRESHOLD,
    ) -> MStrategyParams:
        return cls(
            oracle_price_timespan=oracle_price_timespan,
            oracle_liquidity_timespan=oracle_liquidity_timespan,
            liquid_to_fixed_ratio_x96=encode_x96(liquid_to_fixed_ratio),
            sqrt_p_min_x96=encode_sqrt_bound(sqrt_p_min_ratio),
            sqrt_p_max_x96=encode_sqrt_bound(sqrt_p_max_ratio),
            token_rebalance_threshold_x96=encode_threshold(token_rebalance_threshold),
            pool_rebalance_threshold_x96=encode_threshold(pool_rebalance_threshold),
        )


async def deploy_mstrategy(env: ChainEnvironment) -> Deployment:
    """Deploy the proxied MStrategy and hand its proxy admin to mStrategyAdmin."""
    deployer = env.named_address(DEPLOYER)
    admin = env.named_address(MSTRATEGY_ADMIN)

    await env.deploy(MSTRATEGY_PROXY_ADMIN, contract=PROXY_ADMIN_ARTIFACT)
    deployment = await env.deploy(
        MSTRATEGY,
        proxy=ProxyOptions(
            proxy_contract=PROXY_ARTIFACT,
            admin_contract=MSTRATEGY_PROXY_ADMIN,
            init_method="init",
            init_args=(deployer,),
        ),
    )

    owner = await env.read(MSTRATEGY_PROXY_ADMIN, "owner")
    if owner.lower() == deployer.lower():
        logger.info(f"Transferring {MSTRATEGY_PROXY_ADMIN} ownership to {admin}")
        await env.execute(MSTRATEGY_PROXY_ADMIN, "transferOwnership", admin)
    return deployment


async def init_mstrategy(
    env: ChainEnvironment,
    tokens: list[str],
    erc20_vault: str,
    money_vault: str,
    fee: int,
    params: MStrategyParams | None = None,
) -> bool:
    """Register the vault pair on MStrategy once and hand over the admin role.

    Returns True when ``addVault`` was sent.
    """
    if fee not in UNISWAP_V3_FEES:
        raise InputError(f"Unsupported Uniswap V3 fee tier {fee}")
    if len(tokens) != 2:
        raise InputError(f"MStrategy needs exactly 2 tokens, got {len(tokens)}")

    deployer = env.named_address(DEPLOYER)
    added = False
    vault_count = int(await env.read(MSTRATEGY, "vaultCount"))
    if vault_count == 0:
        logger.info("Setting Strategy params")
        pool = await env.read_at(
            "IUniswapV3Factory",
            env.named_address(UNISWAP_V3_FACTORY),
            "getPool",
            tokens[0],
            tokens[1],
            fee,
        )
        if pool.lower() == ZERO_ADDRESS:
            raise InputError(f"No Uniswap V3 pool for {tokens} at fee {fee}")
        immutable_params = MStrategyImmutableParams(
            token0=tokens[0],
            token1=tokens[1],
            uni_v3_pool=pool,
            uni_v3_router=env.named_address(UNISWAP_V3_ROUTER),
            erc20_vault=erc20_vault,
            money_vault=money_vault,
        ).model_dump(by_alias=True)
        strategy_params = (params or MStrategyParams.from_ratios()).model_dump(
            by_alias=True
        )
        logger.info(f"Immutable Params: {immutable_params}")
        logger.info(f"Params: {strategy_params}")
        await env.execute(MSTRATEGY, "addVault", immutable_params, strategy_params)
        added = True

    admin_role = await env.read(MSTRATEGY, "ADMIN_ROLE")
    if await env.read(MSTRATEGY, "isAdmin", deployer):
        mstrategy_admin = env.named_address(MSTRATEGY_ADMIN)
        logger.info(f"Handing MStrategy admin role to {mstrategy_admin}")
        await env.execute(MSTRATEGY, "grantRole", admin_role, mstrategy_admin)
        await env.execute(MSTRATEGY, "renounceRole", admin_role, deployer)
    return added
