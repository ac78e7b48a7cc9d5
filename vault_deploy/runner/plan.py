"""Provisioning plans: an ordered list of steps read from a JSON file.

Steps run one after another in file order.  The first failing step stops
the run and its error propagates to the caller.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Any, Literal

from eth_utils import is_hex_address
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from vault_deploy.core.constants.base import VAULT_REGISTRY
from vault_deploy.core.environment import ChainEnvironment
from vault_deploy.core.errors import ConfigError, InputError
from vault_deploy.provisioning.composite import combine_vaults
from vault_deploy.provisioning.governance import deploy_oracle, deploy_vault_governance
from vault_deploy.provisioning.models import CombineOptions, DesiredVaultSpec
from vault_deploy.provisioning.vault import setup_vault
from vault_deploy.strategies.mstrategy import (
    MStrategyParams,
    deploy_mstrategy,
    init_mstrategy,
)


class _Step(BaseModel):
    model_config = ConfigDict(extra="forbid")


class GovernanceStep(_Step):
    type: Literal["governance"]
    governance: str
    factory: str
    delayed_protocol_params: dict[str, Any]


class OracleStep(_Step):
    type: Literal["oracle"]
    name: str = "UniV3Oracle"
    observations: int = Field(default=10, gt=0)


class VaultStep(_Step):
    type: Literal["vault"]
    expected_nft: int
    contract_name: str
    deploy_options: list[Any] = []
    strategy_params: dict[str, Any] | None = None
    delayed_strategy_params: dict[str, Any] | None = None
    delayed_protocol_per_vault_params: dict[str, Any] | None = None

    def to_spec(self) -> DesiredVaultSpec:
        return DesiredVaultSpec.build(**self.model_dump(exclude={"type"}))


class CombineStep(_Step):
    type: Literal["combine"]
    expected_nft: int
    nfts: list[int]
    # Address, named account or deployment name.
    strategy: str
    strategy_treasury: str
    options: CombineOptions | None = None


class MStrategyStep(_Step):
    type: Literal["mstrategy"]


class MStrategyInitStep(_Step):
    type: Literal["mstrategy_init"]
    erc20_vault_nft: int
    money_vault_nft: int
    fee: int = 3000
    tokens: list[str] | None = None
    params: MStrategyParams | None = None


Step = Annotated[
    GovernanceStep
    | OracleStep
    | VaultStep
    | CombineStep
    | MStrategyStep
    | MStrategyInitStep,
    Field(discriminator="type"),
]


class Plan(BaseModel):
    steps: list[Step]


def load_plan(path: str | Path) -> Plan:
    """Read a plan file holding either a list of steps or ``{"steps": [...]}``."""
    plan_path = Path(path)
    try:
        data = json.loads(plan_path.read_text())
    except OSError as exc:
        raise InputError(f"Cannot read plan {plan_path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise InputError(f"Plan {plan_path} is not valid JSON: {exc}") from exc

    if isinstance(data, list):
        data = {"steps": data}
    try:
        return Plan.model_validate(data)
    except ValidationError as exc:
        raise InputError(f"Invalid plan {plan_path}: {exc}") from exc


def resolve_address(env: ChainEnvironment, ref: str) -> str:
    if is_hex_address(ref):
        return ref
    try:
        return env.named_address(ref)
    except ConfigError:
        return env.get(ref).address


async def _run_step(env: ChainEnvironment, step: Any) -> dict[str, Any]:
    if isinstance(step, GovernanceStep):
        deployment = await deploy_vault_governance(
            env, step.governance, step.factory, step.delayed_protocol_params
        )
        return {"address": deployment.address}

    if isinstance(step, OracleStep):
        deployment = await deploy_oracle(env, step.name, step.observations)
        return {"address": deployment.address}

    if isinstance(step, VaultStep):
        result = await setup_vault(env, step.to_spec())
        return {
            "nft": result.nft,
            "state": result.state.value,
            "deployed": result.deployed,
            "delayed_params_supported": result.delayed_params_supported,
            "writes": result.writes,
        }

    if isinstance(step, CombineStep):
        pair = await combine_vaults(
            env,
            step.expected_nft,
            step.nfts,
            resolve_address(env, step.strategy),
            resolve_address(env, step.strategy_treasury),
            step.options,
        )
        return {
            "aggregation_nft": pair.aggregation_nft,
            "issuance_nft": pair.issuance_nft,
            "tokens": list(pair.tokens),
        }

    if isinstance(step, MStrategyStep):
        deployment = await deploy_mstrategy(env)
        return {"address": deployment.address}

    if isinstance(step, MStrategyInitStep):
        erc20_vault = await env.read(VAULT_REGISTRY, "vaultForNft", step.erc20_vault_nft)
        money_vault = await env.read(VAULT_REGISTRY, "vaultForNft", step.money_vault_nft)
        tokens = step.tokens
        if tokens is None:
            tokens = list(await env.read_at("IVault", erc20_vault, "vaultTokens"))
        added = await init_mstrategy(
            env, tokens, erc20_vault, money_vault, step.fee, step.params
        )
        return {"added_vault": added}

    raise InputError(f"Unknown plan step {step!r}")


async def run_plan(env: ChainEnvironment, plan: Plan) -> list[dict[str, Any]]:
    summaries: list[dict[str, Any]] = []
    for index, step in enumerate(plan.steps):
        logger.info(f"Step {index + 1}/{len(plan.steps)}: {step.type}")
        summary = await _run_step(env, step)
        summaries.append({"step": index, "type": step.type, **summary})
    return summaries
