import pytest

from vault_deploy.core.errors import WriteError
from vault_deploy.provisioning.staged import ParameterClass, stage_and_commit
from vault_deploy.testing.ledger import FakeLedger

GOVERNANCE = "LpIssuerGovernance"


@pytest.fixture
def governed_ledger(ledger: FakeLedger) -> FakeLedger:
    ledger.add_deployment(GOVERNANCE)
    ledger.add_vault(GOVERNANCE, ["0x" + "aa" * 20])
    return ledger


def test_method_names():
    delayed = ParameterClass.DELAYED_STRATEGY
    assert delayed.read_method == "delayedStrategyParams"
    assert delayed.stage_method == "stageDelayedStrategyParams"
    assert delayed.commit_method == "commitDelayedStrategyParams"

    per_vault = ParameterClass.DELAYED_PROTOCOL_PER_VAULT
    assert per_vault.read_method == "delayedProtocolPerVaultParams"
    assert per_vault.stage_method == "stageDelayedProtocolPerVaultParams"
    assert per_vault.commit_method == "commitDelayedProtocolPerVaultParams"


@pytest.mark.asyncio
async def test_stage_then_commit_back_to_back(governed_ledger: FakeLedger):
    writes = await stage_and_commit(
        governed_ledger,
        GOVERNANCE,
        ParameterClass.DELAYED_PROTOCOL_PER_VAULT,
        0,
        {"protocolFee": 10**7},
    )

    assert writes == [
        "stageDelayedProtocolPerVaultParams",
        "commitDelayedProtocolPerVaultParams",
    ]
    assert governed_ledger.writes == [
        (GOVERNANCE, "stageDelayedProtocolPerVaultParams", (0, {"protocolFee": 10**7})),
        (GOVERNANCE, "commitDelayedProtocolPerVaultParams", (0,)),
    ]
    assert governed_ledger.params["per_vault"][(GOVERNANCE, 0)] == {
        "protocolFee": 10**7
    }


@pytest.mark.asyncio
async def test_failed_stage_skips_commit(governed_ledger: FakeLedger):
    governed_ledger.fail_write(GOVERNANCE, "stageDelayedStrategyParams")

    with pytest.raises(WriteError) as excinfo:
        await stage_and_commit(
            governed_ledger,
            GOVERNANCE,
            ParameterClass.DELAYED_STRATEGY,
            0,
            {"strategyTreasury": "0x" + "11" * 20},
        )

    assert excinfo.value.method == "stageDelayedStrategyParams"
    assert governed_ledger.write_methods == ["stageDelayedStrategyParams"]


@pytest.mark.asyncio
async def test_failed_commit_propagates(governed_ledger: FakeLedger):
    governed_ledger.fail_write(GOVERNANCE, "commitDelayedStrategyParams")

    with pytest.raises(WriteError):
        await stage_and_commit(
            governed_ledger,
            GOVERNANCE,
            ParameterClass.DELAYED_STRATEGY,
            0,
            {"strategyTreasury": "0x" + "11" * 20},
        )

    assert (GOVERNANCE, 0) not in governed_ledger.params["delayed_strategy"]
