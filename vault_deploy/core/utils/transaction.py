import asyncio
import math
from collections.abc import Awaitable, Callable
from typing import Any

from eth_account import Account
from loguru import logger
from web3 import AsyncWeb3

from vault_deploy.core.constants.base import (
    DEFAULT_TRANSACTION_TIMEOUT,
    GAS_BUFFER_MULTIPLIER,
    MAX_BASE_FEE_GROWTH_MULTIPLIER,
    SUGGESTED_GAS_PRICE_MULTIPLIER,
    SUGGESTED_PRIORITY_FEE_MULTIPLIER,
)
from vault_deploy.core.constants.chains import (
    CHAIN_ID_HARDHAT,
    PRE_EIP_1559_CHAIN_IDS,
)
from vault_deploy.core.utils.web3 import get_transaction_chain_id

SignCallback = Callable[[dict[str, Any]], Awaitable[bytes]]


class TransactionRevertedError(RuntimeError):
    def __init__(
        self,
        txn_hash: str,
        receipt: dict[str, Any] | None = None,
        message: str | None = None,
    ):
        self.txn_hash = txn_hash
        self.receipt = receipt or {}
        super().__init__(message or f"Transaction reverted: {txn_hash}")


def _revert_error(
    txn_hash: str, receipt: dict[str, Any], transaction: dict[str, Any]
) -> TransactionRevertedError:
    gas_used = int(receipt.get("gasUsed") or 0)
    gas_limit = int(transaction.get("gas") or 0)
    suffix = ""
    if gas_used or gas_limit:
        suffix = f" gasUsed={gas_used} gasLimit={gas_limit}"
        if gas_used and gas_limit and gas_used >= gas_limit:
            suffix += " (likely out of gas)"
    return TransactionRevertedError(
        txn_hash,
        receipt,
        message=f"Transaction reverted (status=0): {txn_hash}{suffix}",
    )


def _get_transaction_from_address(transaction: dict) -> str:
    if "from" not in transaction:
        raise ValueError("Transaction does not contain from address")
    return AsyncWeb3.to_checksum_address(transaction["from"])


async def nonce_transaction(web3: AsyncWeb3, transaction: dict) -> dict:
    transaction = transaction.copy()
    from_address = _get_transaction_from_address(transaction)
    transaction["nonce"] = await web3.eth.get_transaction_count(
        from_address, block_identifier="pending"
    )
    return transaction


async def gas_price_transaction(web3: AsyncWeb3, transaction: dict) -> dict:
    transaction = transaction.copy()
    for key in ("gasPrice", "maxFeePerGas", "maxPriorityFeePerGas"):
        transaction.pop(key, None)

    chain_id = get_transaction_chain_id(transaction)
    if chain_id in PRE_EIP_1559_CHAIN_IDS:
        gas_price = await web3.eth.gas_price
        transaction["gasPrice"] = int(gas_price * SUGGESTED_GAS_PRICE_MULTIPLIER)
        return transaction

    latest_block = await web3.eth.get_block("latest")
    base_fee = int(latest_block["baseFeePerGas"])
    if chain_id == CHAIN_ID_HARDHAT:
        # local nodes return empty reward history
        priority_fee = await web3.eth.max_priority_fee
    else:
        fee_history = await web3.eth.fee_history(10, "latest", [80])
        rewards = [r[0] for r in fee_history["reward"]]
        priority_fee = sum(rewards) // len(rewards) if rewards else 0

    transaction["maxFeePerGas"] = int(
        base_fee * MAX_BASE_FEE_GROWTH_MULTIPLIER
        + priority_fee * SUGGESTED_PRIORITY_FEE_MULTIPLIER
    )
    transaction["maxPriorityFeePerGas"] = int(
        priority_fee * SUGGESTED_PRIORITY_FEE_MULTIPLIER
    )
    return transaction


async def gas_limit_transaction(web3: AsyncWeb3, transaction: dict) -> dict:
    transaction = transaction.copy()

    # prevents RPCs from taking this as a serious limit
    transaction.pop("gas", None)

    gas_limit = await web3.eth.estimate_gas(transaction, block_identifier="latest")
    transaction["gas"] = int(math.ceil(gas_limit * GAS_BUFFER_MULTIPLIER))
    return transaction


async def wait_for_transaction_receipt(
    web3: AsyncWeb3,
    txn_hash: str,
    poll_interval: float = 0.1,
    timeout: int = DEFAULT_TRANSACTION_TIMEOUT,
    confirmations: int = 1,
) -> dict:
    if isinstance(txn_hash, str) and not txn_hash.startswith("0x"):
        txn_hash = f"0x{txn_hash}"

    receipt = await web3.eth.wait_for_transaction_receipt(
        txn_hash, poll_latency=poll_interval, timeout=timeout
    )
    if receipt.get("status") == 0:
        raise TransactionRevertedError(txn_hash, dict(receipt))

    target_block = receipt["blockNumber"] + confirmations - 1
    while await web3.eth.block_number < target_block:
        await asyncio.sleep(poll_interval)
    return dict(receipt)


async def send_transaction(
    web3: AsyncWeb3,
    transaction: dict,
    sign_callback: SignCallback,
    *,
    confirmations: int = 1,
) -> dict:
    """Fill gas, nonce and fees, sign, broadcast and wait for the receipt.

    Raises ``TransactionRevertedError`` when the receipt reports status 0.
    """
    if sign_callback is None:
        raise ValueError("sign_callback must be provided to send transaction")

    transaction = await gas_limit_transaction(web3, transaction)
    transaction = await nonce_transaction(web3, transaction)
    transaction = await gas_price_transaction(web3, transaction)
    signed_transaction = await sign_callback(transaction)

    txn_hash = (await web3.eth.send_raw_transaction(signed_transaction)).hex()
    if not txn_hash.startswith("0x"):
        txn_hash = f"0x{txn_hash}"
    logger.info(f"Transaction broadcasted: {txn_hash}")

    try:
        receipt = await wait_for_transaction_receipt(
            web3, txn_hash, confirmations=confirmations
        )
    except TransactionRevertedError as exc:
        raise _revert_error(txn_hash, exc.receipt, transaction) from exc

    receipt["transactionHash"] = txn_hash
    return receipt


def local_sign_callback(private_key: str) -> SignCallback:
    account = Account.from_key(private_key)

    async def sign_callback(tx: dict) -> bytes:
        signed = account.sign_transaction(tx)
        return signed.raw_transaction

    return sign_callback
