from __future__ import annotations

from enum import Enum
from typing import Any

from loguru import logger

from vault_deploy.core.environment import ChainEnvironment


class ParameterClass(Enum):
    """Delayed parameter classes and the governance methods that manage them."""

    DELAYED_STRATEGY = "DelayedStrategyParams"
    DELAYED_PROTOCOL_PER_VAULT = "DelayedProtocolPerVaultParams"

    @property
    def read_method(self) -> str:
        return self.value[0].lower() + self.value[1:]

    @property
    def stage_method(self) -> str:
        return f"stage{self.value}"

    @property
    def commit_method(self) -> str:
        return f"commit{self.value}"


async def stage_and_commit(
    env: ChainEnvironment,
    contract_name: str,
    parameter_class: ParameterClass,
    nft: int,
    value: dict[str, Any],
) -> list[str]:
    """Stage ``value`` for ``nft`` and commit it straight away.

    The two writes go out back to back; nothing else may be sent to the
    governance in between, since commit applies whatever was staged last.
    """
    log = logger.bind(contract=contract_name, nft=nft)
    log.info(f"Staging {parameter_class.read_method} for {contract_name}")
    await env.execute(contract_name, parameter_class.stage_method, nft, value)
    await env.execute(contract_name, parameter_class.commit_method, nft)
    log.info(f"Committed {parameter_class.read_method} for {contract_name}")
    return [parameter_class.stage_method, parameter_class.commit_method]
