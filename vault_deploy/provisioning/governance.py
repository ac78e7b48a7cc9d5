from __future__ import annotations

from typing import Any

from loguru import logger

from vault_deploy.core.constants.base import (
    ADMIN,
    DEPLOYER,
    PROTOCOL_GOVERNANCE,
    UNISWAP_V3_FACTORY,
    VAULT_REGISTRY,
)
from vault_deploy.core.deployments import Deployment
from vault_deploy.core.environment import ChainEnvironment


async def deploy_vault_governance(
    env: ChainEnvironment,
    governance_name: str,
    factory_name: str,
    delayed_protocol_params: dict[str, Any],
) -> Deployment:
    """Deploy a vault governance and its factory, then wire them up.

    Initialization and the registry approval are only sent when the chain
    shows they are still missing.
    """
    log = logger.bind(contract=governance_name)
    protocol_governance = env.get(PROTOCOL_GOVERNANCE)
    vault_registry = env.get(VAULT_REGISTRY)
    deployer = env.named_address(DEPLOYER)

    governance = await env.deploy(
        governance_name,
        args=[
            {
                "protocolGovernance": protocol_governance.address,
                "registry": vault_registry.address,
            },
            delayed_protocol_params,
        ],
    )
    factory = await env.deploy(factory_name, args=[governance.address])

    if not await env.read(governance_name, "initialized"):
        log.info("Initializing factory...")
        await env.execute(governance_name, "initialize", factory.address)

    approved = await env.read(
        VAULT_REGISTRY, "isApprovedForAll", deployer, governance.address
    )
    if not approved:
        log.info(f"Approving {governance_name} on the vault registry")
        await env.execute(
            VAULT_REGISTRY, "setApprovalForAll", governance.address, True
        )
    return governance


async def deploy_oracle(
    env: ChainEnvironment, name: str = "UniV3Oracle", observations: int = 10
) -> Deployment:
    return await env.deploy(
        name,
        args=[
            env.named_address(UNISWAP_V3_FACTORY),
            observations,
            env.named_address(ADMIN),
        ],
    )
