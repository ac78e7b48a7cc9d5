__version__ = "0.1.0"

from vault_deploy.core import (
    ChainEnvironment,
    DeployEnvironment,
    Supported,
    Unsupported,
    VaultDeployError,
)
from vault_deploy.provisioning import (
    CombineOptions,
    DesiredVaultSpec,
    combine_vaults,
    setup_vault,
)

__all__ = [
    "__version__",
    "ChainEnvironment",
    "CombineOptions",
    "DeployEnvironment",
    "DesiredVaultSpec",
    "Supported",
    "Unsupported",
    "VaultDeployError",
    "combine_vaults",
    "setup_vault",
]
