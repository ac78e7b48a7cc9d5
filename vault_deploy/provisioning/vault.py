from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

from loguru import logger

from vault_deploy.core.constants.base import VAULT_REGISTRY
from vault_deploy.core.environment import ChainEnvironment, Unsupported
from vault_deploy.core.errors import InputError
from vault_deploy.provisioning.models import DesiredVaultSpec
from vault_deploy.provisioning.normalize import normalize
from vault_deploy.provisioning.reconcile import needs_update
from vault_deploy.provisioning.staged import ParameterClass, stage_and_commit

# Field of the delayed strategy params whose drift triggers a stage/commit.
DRIFT_SENTINEL = "strategyTreasury"


class VaultState(Enum):
    UNREGISTERED = "unregistered"
    DEPLOYED = "deployed"
    STRATEGY_PARAMS_APPLIED = "strategy_params_applied"
    DELAYED_PARAMS_STAGED = "delayed_params_staged"
    DELAYED_PARAMS_COMMITTED = "delayed_params_committed"
    PER_VAULT_PARAMS_STAGED = "per_vault_params_staged"
    PER_VAULT_PARAMS_COMMITTED = "per_vault_params_committed"


@dataclass
class VaultSetupResult:
    nft: int
    contract_name: str
    state: VaultState = VaultState.UNREGISTERED
    deployed: bool = False
    delayed_params_supported: bool = True
    writes: list[str] = field(default_factory=list)


async def setup_vault(env: ChainEnvironment, spec: DesiredVaultSpec) -> VaultSetupResult:
    """Converge one vault to ``spec``.

    Every step re-reads the chain before deciding, so a second run with no
    external change in between sends no transactions.  Any failed read or
    write propagates; the one tolerated condition is a governance that has
    no delayed strategy params, which ends provisioning for this vault.
    """
    nft = spec.expected_nft
    name = spec.contract_name
    label = name.replace("Governance", "")
    log = logger.bind(contract=name, nft=nft)
    result = VaultSetupResult(nft=nft, contract_name=name)

    current_nft = int(await env.read(VAULT_REGISTRY, "vaultsCount"))
    if current_nft <= nft:
        log.info(f"Deploying {label}...")
        await env.execute(name, "deployVault", *spec.deploy_options)
        result.deployed = True
        result.writes.append("deployVault")
        log.info(f"Done, nft = {nft}")
    else:
        log.info(f"{label} with nft = {nft} already deployed")
    result.state = VaultState.DEPLOYED

    if spec.strategy_params is not None:
        current = await env.read(name, "strategyParams", nft)
        if needs_update(spec.strategy_params, current):
            log.info(f"Setting Strategy params for {name}")
            await env.execute(name, "setStrategyParams", nft, spec.strategy_params)
            result.writes.append("setStrategyParams")
        else:
            log.debug(f"Strategy params for {name} are up to date")
    result.state = VaultState.STRATEGY_PARAMS_APPLIED

    if spec.delayed_strategy_params is not None:
        delayed = ParameterClass.DELAYED_STRATEGY
        observed = await env.try_read(name, delayed.read_method, nft)
        if isinstance(observed, Unsupported):
            log.warning(f"{name} has no delayed strategy params ({observed.reason})")
            result.delayed_params_supported = False
            return result

        desired = spec.delayed_strategy_params
        if DRIFT_SENTINEL not in desired:
            log.debug(f"No {DRIFT_SENTINEL} declared for {name}, nothing to stage")
        elif needs_update(
            {DRIFT_SENTINEL: desired[DRIFT_SENTINEL]}, observed.value
        ):
            log.info(f"Setting delayed strategy params for {name}")
            result.state = VaultState.DELAYED_PARAMS_STAGED
            result.writes += await stage_and_commit(env, name, delayed, nft, desired)
        result.state = VaultState.DELAYED_PARAMS_COMMITTED

    if spec.delayed_protocol_per_vault_params is not None:
        per_vault = ParameterClass.DELAYED_PROTOCOL_PER_VAULT
        current = normalize(await env.read(name, per_vault.read_method, nft))
        if needs_update(spec.delayed_protocol_per_vault_params, current):
            result.state = VaultState.PER_VAULT_PARAMS_STAGED
            result.writes += await stage_and_commit(
                env, name, per_vault, nft, spec.delayed_protocol_per_vault_params
            )
        result.state = VaultState.PER_VAULT_PARAMS_COMMITTED

    return result


async def setup_vaults(
    env: ChainEnvironment, specs: Iterable[DesiredVaultSpec]
) -> list[VaultSetupResult]:
    """Apply several specs in increasing nft order; the first failure halts."""
    ordered = sorted(specs, key=lambda s: s.expected_nft)
    nfts = [s.expected_nft for s in ordered]
    if len(set(nfts)) != len(nfts):
        raise InputError(f"Duplicate vault identifiers in {nfts}")
    return [await setup_vault(env, spec) for spec in ordered]
