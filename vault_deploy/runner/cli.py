from __future__ import annotations

import asyncio
import json
import sys
from fractions import Fraction
from typing import Any

import click
from loguru import logger

from vault_deploy.core.config import load_config
from vault_deploy.core.constants.base import VAULT_REGISTRY
from vault_deploy.core.environment import Supported, open_environment
from vault_deploy.core.errors import VaultDeployError
from vault_deploy.provisioning.fixed_point import encode_sqrt_bound, encode_threshold
from vault_deploy.provisioning.normalize import normalize
from vault_deploy.provisioning.staged import ParameterClass
from vault_deploy.runner.plan import load_plan, run_plan

_LOG_LEVELS = click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False)


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


def _configure_logging(log_level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=str(log_level).upper())


def _parse_ratio(raw: str) -> Fraction:
    try:
        return Fraction(raw.strip())
    except (ValueError, ZeroDivisionError) as exc:
        raise click.BadParameter(f"{raw!r} is not a ratio") from exc


@click.group(name="vault-deploy", help="Idempotent vault provisioning.")
def main() -> None:
    pass


@main.command(name="provision", help="Run a provisioning plan against a network.")
@click.argument("plan_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--network", required=True, help="Network name from the config.")
@click.option("--config", "config_path", default=None, help="Config JSON path.")
@click.option("--log-level", type=_LOG_LEVELS, default="INFO", show_default=True)
def provision(
    plan_path: str, network: str, config_path: str | None, log_level: str
) -> None:
    _configure_logging(log_level)

    async def _run() -> list[dict[str, Any]]:
        async with open_environment(network) as env:
            return await run_plan(env, plan)

    try:
        if config_path:
            load_config(config_path, require_exists=True)
        plan = load_plan(plan_path)
        summaries = asyncio.run(_run())
    except VaultDeployError as exc:
        logger.error(f"Provisioning failed: {exc}")
        sys.exit(1)
    _echo_json({"ok": True, "network": network, "steps": summaries})


@main.command(name="inspect", help="Show the registry entry and params for an nft.")
@click.argument("nft", type=int)
@click.option("--network", required=True)
@click.option(
    "--governance",
    default=None,
    help="Governance deployment to read params from (e.g. LpIssuerGovernance).",
)
@click.option("--config", "config_path", default=None)
def inspect_nft(
    nft: int, network: str, governance: str | None, config_path: str | None
) -> None:
    async def _inspect() -> dict[str, Any]:
        async with open_environment(network) as env:
            count = int(await env.read(VAULT_REGISTRY, "vaultsCount"))
            out: dict[str, Any] = {"nft": nft, "vaults_count": count}
            if nft >= count:
                out["address"] = None
                return out
            out["address"] = await env.read(VAULT_REGISTRY, "vaultForNft", nft)
            if governance:
                out["strategy_params"] = normalize(
                    await env.read(governance, "strategyParams", nft)
                )
                for parameter_class in ParameterClass:
                    observed = await env.try_read(
                        governance, parameter_class.read_method, nft
                    )
                    out[parameter_class.read_method] = (
                        normalize(observed.value)
                        if isinstance(observed, Supported)
                        else None
                    )
            return out

    try:
        if config_path:
            load_config(config_path, require_exists=True)
        _echo_json(asyncio.run(_inspect()))
    except VaultDeployError as exc:
        logger.error(f"Inspect failed: {exc}")
        sys.exit(1)


@main.command(name="encode-bound", help="X96 encoding of sqrt(price ratio).")
@click.argument("ratio")
@click.option("--sqrt-scale", type=int, default=10**6, show_default=True)
def encode_bound(ratio: str, sqrt_scale: int) -> None:
    try:
        click.echo(str(encode_sqrt_bound(_parse_ratio(ratio), sqrt_scale=sqrt_scale)))
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc


@main.command(name="encode-threshold", help="X96 encoding of a rebalance threshold.")
@click.argument("ratio")
def encode_threshold_cmd(ratio: str) -> None:
    try:
        click.echo(str(encode_threshold(_parse_ratio(ratio))))
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc


if __name__ == "__main__":
    main()
