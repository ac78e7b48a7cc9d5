"""Chain-facing collaborator used by every provisioning routine.

``DeployEnvironment`` resolves named deployments and named accounts, issues
read-only calls, submits signed writes and performs idempotent named
deployments.  Provisioning code depends only on the ``ChainEnvironment``
protocol so it can run against an in-memory ledger in tests.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, Protocol

from eth_abi.exceptions import DecodingError
from hexbytes import HexBytes
from loguru import logger
from web3 import AsyncWeb3
from web3.exceptions import ContractLogicError

from vault_deploy.core.accounts import NamedAccounts
from vault_deploy.core.config import (
    get_artifacts_dir,
    get_deployments_dir,
    get_network_config,
)
from vault_deploy.core.constants.base import DEPLOYER
from vault_deploy.core.deployments import (
    Artifact,
    ArtifactStore,
    Deployment,
    DeploymentStore,
)
from vault_deploy.core.errors import (
    ConfigError,
    DriftReadError,
    VaultDeployError,
    WriteError,
)
from vault_deploy.core.utils.abi_caster import (
    decode_function_result,
    encode_constructor_args,
    encode_function_call,
    find_function_abi,
)
from vault_deploy.core.utils.transaction import local_sign_callback, send_transaction
from vault_deploy.core.utils.web3 import web3_from_network


@dataclass(frozen=True)
class Supported:
    value: Any


@dataclass(frozen=True)
class Unsupported:
    reason: str


ReadResult = Supported | Unsupported


@dataclass(frozen=True)
class ProxyOptions:
    proxy_contract: str = "DefaultProxy"
    admin_contract: str | None = None
    init_method: str | None = None
    init_args: tuple[Any, ...] = field(default_factory=tuple)


class ChainEnvironment(Protocol):
    def named_address(self, name: str) -> str: ...

    def get(self, name: str) -> Deployment: ...

    async def read(self, name: str, method: str, *args: Any) -> Any: ...

    async def read_at(
        self, artifact_name: str, address: str, method: str, *args: Any
    ) -> Any: ...

    async def try_read(self, name: str, method: str, *args: Any) -> ReadResult: ...

    async def execute(
        self, name: str, method: str, *args: Any, sender: str = DEPLOYER
    ) -> dict[str, Any]: ...

    async def deploy(
        self,
        name: str,
        *,
        args: Sequence[Any] = (),
        contract: str | None = None,
        sender: str = DEPLOYER,
        proxy: ProxyOptions | None = None,
    ) -> Deployment: ...


class _MethodMissing(Exception):
    pass


def _jsonable(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return HexBytes(value).to_0x_hex()
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    return value


class DeployEnvironment:
    def __init__(
        self,
        web3: AsyncWeb3,
        *,
        network: str,
        chain_id: int,
        accounts: NamedAccounts,
        deployments: DeploymentStore,
        artifacts: ArtifactStore,
        confirmations: int = 1,
    ):
        self.web3 = web3
        self.network = network
        self.chain_id = int(chain_id)
        self.accounts = accounts
        self.deployments = deployments
        self.artifacts = artifacts
        self.confirmations = confirmations
        self.logger = logger.bind(network=network)

    def named_address(self, name: str) -> str:
        return self.accounts.address(name)

    def get(self, name: str) -> Deployment:
        deployment = self.deployments.get(name)
        if deployment is None:
            raise ConfigError(f"No deployment named {name!r} on {self.network}")
        return deployment

    # -- reads ---------------------------------------------------------------

    async def _call(
        self, abi: list[dict[str, Any]], address: str, method: str, args: tuple
    ) -> Any:
        entry = find_function_abi(abi, method, arity=len(args))
        if entry is None:
            raise _MethodMissing(f"{method} is not in the contract ABI")
        data = encode_function_call(entry, list(args))
        try:
            raw = await self.web3.eth.call(
                {"to": AsyncWeb3.to_checksum_address(address), "data": data},
                "latest",
            )
        except ContractLogicError as exc:
            # No selector match reverts without reason data.
            if exc.data in (None, "", "0x"):
                raise _MethodMissing(f"{method} reverted without data") from exc
            raise
        if entry.get("outputs") and not raw:
            raise _MethodMissing(f"{method} returned no data")
        try:
            return decode_function_result(entry, raw)
        except DecodingError as exc:
            raise _MethodMissing(f"{method} output does not decode: {exc}") from exc

    async def read(self, name: str, method: str, *args: Any) -> Any:
        deployment = self.get(name)
        try:
            return await self._call(deployment.abi, deployment.address, method, args)
        except Exception as exc:
            raise DriftReadError(name, method, f"{name}.{method} failed: {exc}") from exc

    async def read_at(
        self, artifact_name: str, address: str, method: str, *args: Any
    ) -> Any:
        abi = self.artifacts.load_abi(artifact_name)
        try:
            return await self._call(abi, address, method, args)
        except Exception as exc:
            raise DriftReadError(
                artifact_name, method, f"{artifact_name}.{method} failed: {exc}"
            ) from exc

    async def try_read(self, name: str, method: str, *args: Any) -> ReadResult:
        deployment = self.get(name)
        try:
            value = await self._call(deployment.abi, deployment.address, method, args)
        except _MethodMissing as exc:
            return Unsupported(str(exc))
        except Exception as exc:
            raise DriftReadError(name, method, f"{name}.{method} failed: {exc}") from exc
        return Supported(value)

    # -- writes --------------------------------------------------------------

    async def _send(self, tx: dict[str, Any], sender: str) -> dict[str, Any]:
        signer = self.accounts.signer(sender)
        tx = {
            "chainId": self.chain_id,
            "from": signer.address,
            "value": 0,
            **tx,
        }
        return await send_transaction(
            self.web3,
            tx,
            local_sign_callback(signer.key),
            confirmations=self.confirmations,
        )

    async def execute(
        self, name: str, method: str, *args: Any, sender: str = DEPLOYER
    ) -> dict[str, Any]:
        deployment = self.get(name)
        entry = find_function_abi(deployment.abi, method, arity=len(args))
        if entry is None:
            raise WriteError(name, method, f"{method} is not in the {name} ABI")
        try:
            data = encode_function_call(entry, list(args))
            receipt = await self._send({"to": deployment.address, "data": data}, sender)
        except VaultDeployError:
            raise
        except Exception as exc:
            raise WriteError(name, method, f"{name}.{method} failed: {exc}") from exc
        self.logger.info(
            f"{name}.{method} executed in {receipt.get('transactionHash')}"
        )
        return receipt

    # -- deployments ---------------------------------------------------------

    async def _has_code(self, address: str) -> bool:
        code = await self.web3.eth.get_code(AsyncWeb3.to_checksum_address(address))
        return len(code) > 0

    async def _deploy_artifact(
        self, name: str, artifact: Artifact, args: list[Any], sender: str
    ) -> Deployment:
        stored_args = _jsonable(args)
        existing = self.deployments.get(name)
        if (
            existing is not None
            and existing.bytecode == artifact.bytecode
            and existing.args == stored_args
            and await self._has_code(existing.address)
        ):
            self.logger.debug(f"Reusing {name} at {existing.address}")
            return existing

        try:
            data = HexBytes(artifact.bytecode) + encode_constructor_args(
                artifact.abi, args
            )
            receipt = await self._send({"data": HexBytes(data).to_0x_hex()}, sender)
        except VaultDeployError:
            raise
        except Exception as exc:
            raise WriteError(name, "constructor", f"Deploying {name} failed: {exc}") from exc

        address = receipt.get("contractAddress")
        if not address:
            raise WriteError(
                name, "constructor", f"Deploy of {name} returned no contractAddress"
            )
        deployment = Deployment(
            address=AsyncWeb3.to_checksum_address(address),
            abi=artifact.abi,
            args=stored_args,
            bytecode=artifact.bytecode,
            transaction_hash=receipt.get("transactionHash"),
        )
        self.deployments.save(name, deployment)
        self.logger.info(f"Deployed {name} at {deployment.address}")
        return deployment

    async def _deploy_proxied(
        self,
        name: str,
        artifact: Artifact,
        args: list[Any],
        sender: str,
        proxy: ProxyOptions,
    ) -> Deployment:
        implementation = await self._deploy_artifact(
            f"{name}_Implementation", artifact, args, sender
        )
        existing = self.deployments.get(name)
        if existing is not None and await self._has_code(existing.address):
            if existing.implementation != implementation.address:
                if proxy.admin_contract is None:
                    raise WriteError(
                        name, "upgrade", f"{name} needs an admin contract to upgrade"
                    )
                await self.execute(
                    proxy.admin_contract,
                    "upgrade",
                    existing.address,
                    implementation.address,
                    sender=sender,
                )
            updated = existing.model_copy(
                update={"abi": artifact.abi, "implementation": implementation.address}
            )
            self.deployments.save(name, updated)
            return updated

        init_data = b""
        if proxy.init_method:
            entry = find_function_abi(
                artifact.abi, proxy.init_method, arity=len(proxy.init_args)
            )
            if entry is None:
                raise WriteError(name, proxy.init_method, "init method not in ABI")
            init_data = HexBytes(encode_function_call(entry, list(proxy.init_args)))

        admin = (
            self.get(proxy.admin_contract).address
            if proxy.admin_contract
            else self.named_address(sender)
        )
        proxy_deployment = await self._deploy_artifact(
            f"{name}_Proxy",
            self.artifacts.load(proxy.proxy_contract),
            [implementation.address, admin, bytes(init_data)],
            sender,
        )
        deployment = Deployment(
            address=proxy_deployment.address,
            abi=artifact.abi,
            args=_jsonable(args),
            transaction_hash=proxy_deployment.transaction_hash,
            implementation=implementation.address,
        )
        self.deployments.save(name, deployment)
        return deployment

    async def deploy(
        self,
        name: str,
        *,
        args: Sequence[Any] = (),
        contract: str | None = None,
        sender: str = DEPLOYER,
        proxy: ProxyOptions | None = None,
    ) -> Deployment:
        """Deploy ``contract`` (default: ``name``) as the named deployment.

        Unchanged bytecode and args with live code at the stored address
        return the stored deployment without sending anything.
        """
        artifact = self.artifacts.load(contract or name)
        if proxy is not None:
            return await self._deploy_proxied(name, artifact, list(args), sender, proxy)
        return await self._deploy_artifact(name, artifact, list(args), sender)


@asynccontextmanager
async def open_environment(network: str) -> AsyncIterator[DeployEnvironment]:
    cfg = get_network_config(network)
    async with web3_from_network(network) as web3:
        yield DeployEnvironment(
            web3,
            network=network,
            chain_id=cfg["chain_id"],
            accounts=NamedAccounts.from_config(),
            deployments=DeploymentStore(get_deployments_dir(), network),
            artifacts=ArtifactStore(get_artifacts_dir()),
            confirmations=cfg["confirmations"],
        )
