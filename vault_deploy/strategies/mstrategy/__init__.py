from vault_deploy.strategies.mstrategy.deploy import (
    MStrategyImmutableParams,
    MStrategyParams,
    deploy_mstrategy,
    init_mstrategy,
)

__all__ = [
    "MStrategyImmutableParams",
    "MStrategyParams",
    "deploy_mstrategy",
    "init_mstrategy",
]
