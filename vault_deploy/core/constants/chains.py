CHAIN_ID_ETHEREUM = 1
CHAIN_ID_KOVAN = 42
CHAIN_ID_OPTIMISM = 10
CHAIN_ID_BSC = 56
CHAIN_ID_POLYGON = 137
CHAIN_ID_FANTOM = 250
CHAIN_ID_ARBITRUM = 42161
CHAIN_ID_AVALANCHE = 43114
CHAIN_ID_HARDHAT = 31337

ALL_NETWORKS = [
    "hardhat",
    "localhost",
    "mainnet",
    "kovan",
    "arbitrum",
    "optimism",
    "bsc",
    "avalanche",
    "polygon",
    "fantom",
]
MAIN_NETWORKS = ["hardhat", "localhost", "mainnet", "kovan"]

NETWORK_CHAIN_IDS: dict[str, int] = {
    "hardhat": CHAIN_ID_HARDHAT,
    "localhost": CHAIN_ID_HARDHAT,
    "mainnet": CHAIN_ID_ETHEREUM,
    "kovan": CHAIN_ID_KOVAN,
    "arbitrum": CHAIN_ID_ARBITRUM,
    "optimism": CHAIN_ID_OPTIMISM,
    "bsc": CHAIN_ID_BSC,
    "avalanche": CHAIN_ID_AVALANCHE,
    "polygon": CHAIN_ID_POLYGON,
    "fantom": CHAIN_ID_FANTOM,
}

PRE_EIP_1559_CHAIN_IDS = {CHAIN_ID_BSC, CHAIN_ID_FANTOM}
POA_MIDDLEWARE_CHAIN_IDS = {CHAIN_ID_BSC, CHAIN_ID_POLYGON, CHAIN_ID_KOVAN}
