from vault_deploy.core.constants.base import MAX_UINT256
from vault_deploy.core.constants.chains import ALL_NETWORKS, MAIN_NETWORKS

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

__all__ = ["ALL_NETWORKS", "MAIN_NETWORKS", "MAX_UINT256", "ZERO_ADDRESS"]
