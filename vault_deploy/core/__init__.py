from vault_deploy.core.environment import (
    ChainEnvironment,
    DeployEnvironment,
    ProxyOptions,
    Supported,
    Unsupported,
)
from vault_deploy.core.errors import (
    ConfigError,
    DriftReadError,
    InputError,
    VaultDeployError,
    WriteError,
)

__all__ = [
    "ChainEnvironment",
    "DeployEnvironment",
    "ProxyOptions",
    "Supported",
    "Unsupported",
    "ConfigError",
    "DriftReadError",
    "InputError",
    "VaultDeployError",
    "WriteError",
]
