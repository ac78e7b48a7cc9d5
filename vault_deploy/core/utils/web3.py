from contextlib import asynccontextmanager
from typing import Any

from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.middleware import ExtraDataToPOAMiddleware

from vault_deploy.core.config import get_network_config
from vault_deploy.core.constants.chains import POA_MIDDLEWARE_CHAIN_IDS
from vault_deploy.core.errors import ConfigError


def get_web3(rpc: str, chain_id: int) -> AsyncWeb3:
    provider = AsyncHTTPProvider(
        rpc, request_kwargs={"headers": AsyncHTTPProvider.get_request_headers()}
    )
    web3 = AsyncWeb3(provider)
    if chain_id in POA_MIDDLEWARE_CHAIN_IDS:
        web3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
    return web3


def get_transaction_chain_id(transaction: dict) -> int:
    if "chainId" not in transaction:
        raise ValueError("Transaction does not contain chainId")
    return int(transaction["chainId"])


@asynccontextmanager
async def web3_from_network(network: str):
    cfg: dict[str, Any] = get_network_config(network)
    web3 = get_web3(cfg["rpc_url"], cfg["chain_id"])
    try:
        connected_chain_id = await web3.eth.chain_id
        if int(connected_chain_id) != cfg["chain_id"]:
            raise ConfigError(
                f"RPC for {network} reports chain {connected_chain_id}, "
                f"config says {cfg['chain_id']}"
            )
        yield web3
    finally:
        await web3.provider.disconnect()
