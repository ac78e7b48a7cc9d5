from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from eth_abi import encode as abi_encode
from loguru import logger

from vault_deploy.core.constants.base import (
    AGGREGATION_VAULT_GOVERNANCE,
    DEPLOYER,
    ISSUANCE_VAULT_GOVERNANCE,
    VAULT_REGISTRY,
)
from vault_deploy.core.environment import ChainEnvironment
from vault_deploy.core.errors import InputError
from vault_deploy.provisioning.models import (
    CombineOptions,
    DesiredVaultSpec,
    GatewayDelayedStrategyParams,
    GatewayStrategyParams,
    LpIssuerDelayedStrategyParams,
    LpIssuerStrategyParams,
    ResolvedCombineOptions,
)
from vault_deploy.provisioning.vault import setup_vault


@dataclass(frozen=True)
class CompositeVaultPair:
    aggregation_nft: int
    issuance_nft: int
    tokens: tuple[str, ...]
    strategy_address: str
    strategy_treasury_address: str


def aggregation_vault_spec(
    expected_nft: int,
    nfts: Sequence[int],
    tokens: list[str],
    strategy_address: str,
    strategy_treasury_address: str,
    options: ResolvedCombineOptions,
) -> DesiredVaultSpec:
    redirects = [int(n) for n in nfts]
    return DesiredVaultSpec.build(
        expected_nft=expected_nft,
        contract_name=AGGREGATION_VAULT_GOVERNANCE,
        deploy_options=[
            tokens,
            abi_encode(["uint256[]"], [redirects]),
            strategy_address,
        ],
        delayed_strategy_params=GatewayDelayedStrategyParams(
            strategy_treasury=strategy_treasury_address, redirects=redirects
        ).payload(),
        strategy_params=GatewayStrategyParams(limits=options.limits).payload(),
    )


def issuance_vault_spec(
    expected_nft: int,
    tokens: list[str],
    deployer: str,
    strategy_treasury_address: str,
    options: ResolvedCombineOptions,
) -> DesiredVaultSpec:
    """Target for the LP issuer at ``expected_nft``, fed by the gateway at ``expected_nft - 1``."""
    return DesiredVaultSpec.build(
        expected_nft=expected_nft,
        contract_name=ISSUANCE_VAULT_GOVERNANCE,
        deploy_options=[
            tokens,
            abi_encode(
                ["uint256", "string", "string"],
                [expected_nft - 1, options.lp_token_name, options.lp_token_symbol],
            ),
            deployer,
        ],
        delayed_strategy_params=LpIssuerDelayedStrategyParams(
            strategy_treasury=strategy_treasury_address,
            strategy_performance_treasury=options.strategy_performance_treasury_address,
            management_fee=options.management_fee,
            performance_fee=options.performance_fee,
        ).payload(),
        strategy_params=LpIssuerStrategyParams(
            token_limit_per_address=options.token_limit_per_address
        ).payload(),
    )


async def combine_vaults(
    env: ChainEnvironment,
    expected_nft: int,
    nfts: Sequence[int],
    strategy_address: str,
    strategy_treasury_address: str,
    options: CombineOptions | None = None,
) -> CompositeVaultPair:
    """Provision a gateway vault over ``nfts`` plus its LP issuer vault.

    The gateway lands at ``expected_nft`` and the issuer at
    ``expected_nft + 1``.  The issuer's registry entry is then transferred
    from the deployer to the issuer vault itself.  That last transfer is
    not idempotent: once it succeeded, calling this again fails because the
    deployer no longer owns the entry.
    """
    if len(nfts) == 0:
        raise InputError("Trying to combine 0 vaults")
    if expected_nft < 0:
        raise InputError(f"Invalid vault identifier {expected_nft}")

    log = logger.bind(contract=AGGREGATION_VAULT_GOVERNANCE, nft=expected_nft)
    deployer = env.named_address(DEPLOYER)
    first_address = await env.read(VAULT_REGISTRY, "vaultForNft", nfts[0])
    tokens = list(await env.read_at("IVault", first_address, "vaultTokens"))
    resolved = (options or CombineOptions()).resolve(tokens, strategy_treasury_address)

    log.info(f"Combining vaults {list(nfts)} over tokens {tokens}")
    await setup_vault(
        env,
        aggregation_vault_spec(
            expected_nft,
            nfts,
            tokens,
            strategy_address,
            strategy_treasury_address,
            resolved,
        ),
    )
    issuance_nft = expected_nft + 1
    await setup_vault(
        env,
        issuance_vault_spec(
            issuance_nft, tokens, deployer, strategy_treasury_address, resolved
        ),
    )

    lp_issuer = await env.read(VAULT_REGISTRY, "vaultForNft", issuance_nft)
    log.info(f"Transferring registry entry {issuance_nft} to LP issuer {lp_issuer}")
    await env.execute(
        VAULT_REGISTRY,
        "safeTransferFrom(address,address,uint256)",
        deployer,
        lp_issuer,
        issuance_nft,
    )
    return CompositeVaultPair(
        aggregation_nft=expected_nft,
        issuance_nft=issuance_nft,
        tokens=tuple(tokens),
        strategy_address=strategy_address,
        strategy_treasury_address=strategy_treasury_address,
    )
