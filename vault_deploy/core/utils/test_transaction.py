from unittest.mock import AsyncMock, MagicMock

import pytest
from hexbytes import HexBytes
from web3 import AsyncWeb3

from vault_deploy.core.constants.base import (
    SUGGESTED_GAS_PRICE_MULTIPLIER,
    SUGGESTED_PRIORITY_FEE_MULTIPLIER,
)
from vault_deploy.core.constants.chains import (
    CHAIN_ID_BSC,
    CHAIN_ID_ETHEREUM,
    CHAIN_ID_HARDHAT,
)
from vault_deploy.core.utils.transaction import (
    TransactionRevertedError,
    _get_transaction_from_address,
    gas_limit_transaction,
    gas_price_transaction,
    nonce_transaction,
    send_transaction,
)
from vault_deploy.core.utils.web3 import get_transaction_chain_id

RANDOM_USER_0 = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"


def _mock_web3() -> MagicMock:
    web3 = MagicMock()
    web3.eth = MagicMock()
    web3.eth.get_transaction_count = AsyncMock(return_value=3)
    web3.eth.estimate_gas = AsyncMock(return_value=100_000)
    web3.eth.get_block = AsyncMock(return_value={"baseFeePerGas": 10_000_000_000})
    web3.eth.fee_history = AsyncMock(
        return_value={"reward": [[1_000_000_000] for _ in range(10)]}
    )
    web3.eth.send_raw_transaction = AsyncMock(return_value=HexBytes("0x" + "ab" * 32))
    web3.eth.wait_for_transaction_receipt = AsyncMock(
        return_value={"status": 1, "blockNumber": 10, "gasUsed": 50_000}
    )
    return web3


class TestGetChainId:
    def test_valid_chain_id(self):
        assert get_transaction_chain_id({"chainId": "1"}) == 1

    def test_empty_transaction(self):
        with pytest.raises(ValueError, match="Transaction does not contain chainId"):
            get_transaction_chain_id({})


class TestGetFromAddress:
    def test_lowercase_address_converted_to_checksum(self):
        result = _get_transaction_from_address({"from": RANDOM_USER_0.lower()})
        assert AsyncWeb3.is_checksum_address(result)
        assert result == RANDOM_USER_0

    def test_empty_transaction(self):
        with pytest.raises(
            ValueError, match="Transaction does not contain from address"
        ):
            _get_transaction_from_address({})


@pytest.mark.asyncio
class TestNonceTransaction:
    async def test_uses_pending_count(self):
        web3 = _mock_web3()
        transaction = {"from": RANDOM_USER_0, "chainId": 1, "data": "0xabcd"}

        result = await nonce_transaction(web3, transaction)

        assert result["nonce"] == 3
        assert result["data"] == "0xabcd"
        assert "nonce" not in transaction
        web3.eth.get_transaction_count.assert_awaited_once_with(
            RANDOM_USER_0, block_identifier="pending"
        )


@pytest.mark.asyncio
class TestGasPriceTransaction:
    async def test_eip1559_fees(self):
        web3 = _mock_web3()

        result = await gas_price_transaction(
            web3, {"chainId": CHAIN_ID_ETHEREUM, "gasPrice": 1}
        )

        priority = int(1_000_000_000 * SUGGESTED_PRIORITY_FEE_MULTIPLIER)
        assert "gasPrice" not in result
        assert result["maxPriorityFeePerGas"] == priority
        assert result["maxFeePerGas"] == 2 * 10_000_000_000 + priority

    async def test_legacy_chain_uses_gas_price(self):
        web3 = _mock_web3()
        web3.eth.gas_price = AsyncMock(return_value=5_000_000_000)()

        result = await gas_price_transaction(web3, {"chainId": CHAIN_ID_BSC})

        assert result["gasPrice"] == int(5_000_000_000 * SUGGESTED_GAS_PRICE_MULTIPLIER)
        assert "maxFeePerGas" not in result

    async def test_local_node_uses_max_priority_fee(self):
        web3 = _mock_web3()
        web3.eth.max_priority_fee = AsyncMock(return_value=2_000_000_000)()

        result = await gas_price_transaction(web3, {"chainId": CHAIN_ID_HARDHAT})

        web3.eth.fee_history.assert_not_awaited()
        assert result["maxPriorityFeePerGas"] == int(
            2_000_000_000 * SUGGESTED_PRIORITY_FEE_MULTIPLIER
        )


@pytest.mark.asyncio
class TestGasLimitTransaction:
    async def test_buffer_applied_and_stale_gas_dropped(self):
        web3 = _mock_web3()

        result = await gas_limit_transaction(web3, {"chainId": 1, "gas": 1})

        assert result["gas"] == 110_000
        sent = web3.eth.estimate_gas.await_args.args[0]
        assert "gas" not in sent


@pytest.mark.asyncio
class TestSendTransaction:
    async def test_returns_receipt_with_hash(self):
        web3 = _mock_web3()
        web3.eth.block_number = AsyncMock(return_value=10)()
        sign = AsyncMock(return_value=b"signed")

        receipt = await send_transaction(
            web3, {"from": RANDOM_USER_0, "chainId": 1}, sign
        )

        assert receipt["transactionHash"] == "0x" + "ab" * 32
        signed_tx = sign.await_args.args[0]
        assert signed_tx["nonce"] == 3
        assert signed_tx["gas"] == 110_000
        web3.eth.send_raw_transaction.assert_awaited_once_with(b"signed")

    async def test_reverted_receipt_raises(self):
        web3 = _mock_web3()
        web3.eth.wait_for_transaction_receipt = AsyncMock(
            return_value={"status": 0, "blockNumber": 10, "gasUsed": 110_000}
        )
        sign = AsyncMock(return_value=b"signed")

        with pytest.raises(TransactionRevertedError, match="likely out of gas"):
            await send_transaction(web3, {"from": RANDOM_USER_0, "chainId": 1}, sign)

    async def test_requires_sign_callback(self):
        with pytest.raises(ValueError, match="sign_callback"):
            await send_transaction(_mock_web3(), {"chainId": 1}, None)
