import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from eth_abi import encode as abi_encode
from eth_account import Account
from hexbytes import HexBytes
from web3.exceptions import ContractLogicError

from vault_deploy.core.accounts import NamedAccounts
from vault_deploy.core.deployments import ArtifactStore, Deployment, DeploymentStore
from vault_deploy.core.environment import (
    DeployEnvironment,
    ProxyOptions,
    Supported,
    Unsupported,
)
from vault_deploy.core.errors import ConfigError, DriftReadError, WriteError

PRIVATE_KEY = "0x" + "11" * 32
DEPLOYER = Account.from_key(PRIVATE_KEY).address
TREASURY = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"
GOVERNANCE_ADDRESS = "0x" + "9a" * 20
NEW_ADDRESS = "0x" + "c0" * 20

GOVERNANCE_ABI = [
    {
        "type": "constructor",
        "inputs": [{"name": "fee", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "strategyParams",
        "inputs": [{"name": "nft", "type": "uint256"}],
        "outputs": [
            {
                "name": "",
                "type": "tuple",
                "components": [
                    {"name": "strategyTreasury", "type": "address"},
                    {"name": "managementFee", "type": "uint256"},
                ],
            }
        ],
    },
    {
        "type": "function",
        "name": "setStrategyParams",
        "inputs": [
            {"name": "nft", "type": "uint256"},
            {
                "name": "params",
                "type": "tuple",
                "components": [
                    {"name": "strategyTreasury", "type": "address"},
                    {"name": "managementFee", "type": "uint256"},
                ],
            },
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "init",
        "inputs": [{"name": "admin", "type": "address"}],
        "outputs": [],
    },
]

PROXY_ABI = [
    {
        "type": "constructor",
        "inputs": [
            {"name": "implementation", "type": "address"},
            {"name": "admin", "type": "address"},
            {"name": "data", "type": "bytes"},
        ],
    }
]


def _write_artifact(root: Path, name: str, abi, bytecode: str = "0x6060") -> None:
    root.mkdir(parents=True, exist_ok=True)
    (root / f"{name}.json").write_text(
        json.dumps({"contractName": name, "abi": abi, "bytecode": bytecode})
    )


@pytest.fixture
def env(tmp_path: Path) -> DeployEnvironment:
    artifacts = tmp_path / "artifacts"
    _write_artifact(artifacts, "LpIssuerGovernance", GOVERNANCE_ABI)
    _write_artifact(artifacts, "DefaultProxy", PROXY_ABI)
    deployments = DeploymentStore(tmp_path / "deployments", "localhost")
    deployments.save(
        "LpIssuerGovernance",
        Deployment(address=GOVERNANCE_ADDRESS, abi=GOVERNANCE_ABI),
    )

    web3 = MagicMock()
    web3.eth = MagicMock()
    web3.eth.call = AsyncMock()
    web3.eth.get_code = AsyncMock(return_value=HexBytes("0x6060"))
    return DeployEnvironment(
        web3,
        network="localhost",
        chain_id=31337,
        accounts=NamedAccounts(
            {"deployer": 0}, private_keys={"deployer": PRIVATE_KEY}
        ),
        deployments=deployments,
        artifacts=ArtifactStore(artifacts),
    )


@pytest.mark.asyncio
class TestReads:
    async def test_struct_read_has_positional_and_named_keys(self, env):
        env.web3.eth.call.return_value = HexBytes(
            abi_encode(["(address,uint256)"], [(TREASURY, 5)])
        )

        result = await env.read("LpIssuerGovernance", "strategyParams", 1)

        assert result == {
            "0": TREASURY,
            "strategyTreasury": TREASURY,
            "1": 5,
            "managementFee": 5,
        }
        call = env.web3.eth.call.await_args.args[0]
        assert call["to"].lower() == GOVERNANCE_ADDRESS

    async def test_try_read_missing_method_is_unsupported(self, env):
        result = await env.try_read("LpIssuerGovernance", "delayedStrategyParams", 1)

        assert isinstance(result, Unsupported)
        env.web3.eth.call.assert_not_awaited()

    async def test_try_read_empty_return_is_unsupported(self, env):
        env.web3.eth.call.return_value = HexBytes(b"")

        result = await env.try_read("LpIssuerGovernance", "strategyParams", 1)

        assert isinstance(result, Unsupported)

    async def test_try_read_bare_revert_is_unsupported(self, env):
        env.web3.eth.call.side_effect = ContractLogicError("execution reverted")

        result = await env.try_read("LpIssuerGovernance", "strategyParams", 1)

        assert isinstance(result, Unsupported)

    async def test_try_read_revert_with_reason_raises(self, env):
        env.web3.eth.call.side_effect = ContractLogicError(
            "execution reverted: FORBIDDEN", data="0x08c379a0"
        )

        with pytest.raises(DriftReadError):
            await env.try_read("LpIssuerGovernance", "strategyParams", 1)

    async def test_try_read_success(self, env):
        env.web3.eth.call.return_value = HexBytes(
            abi_encode(["(address,uint256)"], [(TREASURY, 5)])
        )

        result = await env.try_read("LpIssuerGovernance", "strategyParams", 1)

        assert isinstance(result, Supported)
        assert result.value["managementFee"] == 5

    async def test_try_read_rpc_failure_raises(self, env):
        env.web3.eth.call.side_effect = RuntimeError("connection reset")

        with pytest.raises(DriftReadError) as excinfo:
            await env.try_read("LpIssuerGovernance", "strategyParams", 1)

        assert excinfo.value.contract == "LpIssuerGovernance"
        assert excinfo.value.method == "strategyParams"

    async def test_read_missing_method_raises(self, env):
        with pytest.raises(DriftReadError):
            await env.read("LpIssuerGovernance", "delayedStrategyParams", 1)

    async def test_unknown_deployment(self, env):
        with pytest.raises(ConfigError):
            await env.read("VaultRegistry", "vaultsCount")


@pytest.mark.asyncio
class TestExecute:
    @patch("vault_deploy.core.environment.send_transaction")
    async def test_encodes_and_signs(self, mock_send, env):
        mock_send.return_value = {"status": 1, "transactionHash": "0x" + "ab" * 32}

        receipt = await env.execute(
            "LpIssuerGovernance",
            "setStrategyParams",
            1,
            {"strategyTreasury": TREASURY, "managementFee": 5},
        )

        assert receipt["transactionHash"] == "0x" + "ab" * 32
        tx = mock_send.await_args.args[1]
        assert tx["from"] == DEPLOYER
        assert tx["chainId"] == 31337
        assert tx["to"] == GOVERNANCE_ADDRESS
        assert tx["data"].startswith("0x")

    @patch("vault_deploy.core.environment.send_transaction")
    async def test_failure_becomes_write_error(self, mock_send, env):
        mock_send.side_effect = RuntimeError("execution reverted")

        with pytest.raises(WriteError) as excinfo:
            await env.execute(
                "LpIssuerGovernance",
                "setStrategyParams",
                1,
                {"strategyTreasury": TREASURY, "managementFee": 5},
            )

        assert excinfo.value.method == "setStrategyParams"

    async def test_unknown_method(self, env):
        with pytest.raises(WriteError):
            await env.execute("LpIssuerGovernance", "commitDelayedStrategyParams", 1)


@pytest.mark.asyncio
class TestDeploy:
    @patch("vault_deploy.core.environment.send_transaction")
    async def test_deploys_and_persists(self, mock_send, env):
        mock_send.return_value = {
            "contractAddress": NEW_ADDRESS,
            "transactionHash": "0x" + "cd" * 32,
        }

        deployment = await env.deploy("Fresh", contract="LpIssuerGovernance", args=[7])

        assert deployment.address.lower() == NEW_ADDRESS
        assert env.deployments.get("Fresh") == deployment
        tx = mock_send.await_args.args[1]
        assert "to" not in tx
        assert tx["data"].startswith("0x6060")

    @patch("vault_deploy.core.environment.send_transaction")
    async def test_unchanged_deploy_is_reused(self, mock_send, env):
        mock_send.return_value = {"contractAddress": NEW_ADDRESS}
        first = await env.deploy("Fresh", contract="LpIssuerGovernance", args=[7])
        mock_send.reset_mock()

        again = await env.deploy("Fresh", contract="LpIssuerGovernance", args=[7])

        assert again.address == first.address
        mock_send.assert_not_awaited()

    @patch("vault_deploy.core.environment.send_transaction")
    async def test_changed_args_redeploy(self, mock_send, env):
        mock_send.return_value = {"contractAddress": NEW_ADDRESS}
        await env.deploy("Fresh", contract="LpIssuerGovernance", args=[7])
        mock_send.reset_mock()

        await env.deploy("Fresh", contract="LpIssuerGovernance", args=[8])

        mock_send.assert_awaited_once()

    @patch("vault_deploy.core.environment.send_transaction")
    async def test_missing_code_redeploys(self, mock_send, env):
        mock_send.return_value = {"contractAddress": NEW_ADDRESS}
        await env.deploy("Fresh", contract="LpIssuerGovernance", args=[7])
        mock_send.reset_mock()
        env.web3.eth.get_code.return_value = HexBytes(b"")

        await env.deploy("Fresh", contract="LpIssuerGovernance", args=[7])

        mock_send.assert_awaited_once()

    @patch("vault_deploy.core.environment.send_transaction")
    async def test_proxied_deploy(self, mock_send, env):
        mock_send.side_effect = [
            {"contractAddress": "0x" + "01" * 20},
            {"contractAddress": "0x" + "02" * 20},
        ]

        deployment = await env.deploy(
            "Strategy",
            contract="LpIssuerGovernance",
            args=[1],
            proxy=ProxyOptions(init_method="init", init_args=(DEPLOYER,)),
        )

        assert deployment.address.lower() == "0x" + "02" * 20
        assert deployment.implementation.lower() == "0x" + "01" * 20
        assert env.deployments.get("Strategy_Implementation") is not None
        assert env.deployments.get("Strategy_Proxy") is not None

    async def test_missing_artifact(self, env):
        with pytest.raises(ConfigError):
            await env.deploy("Nope")

    @patch("vault_deploy.core.environment.send_transaction")
    async def test_corrupt_deployment_record_is_not_redeployed(self, mock_send, env):
        record = env.deployments.network_dir / "LpIssuerGovernance.json"
        record.write_text("{not json")

        with pytest.raises(ConfigError):
            await env.deploy("LpIssuerGovernance", args=[7])

        mock_send.assert_not_awaited()
        assert record.read_text() == "{not json"
