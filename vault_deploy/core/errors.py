from __future__ import annotations


class VaultDeployError(Exception):
    """Base class for every error raised while provisioning vaults."""


class InputError(VaultDeployError, ValueError):
    """A desired-state descriptor is malformed; raised before any chain call."""


class ConfigError(VaultDeployError):
    pass


class DriftReadError(VaultDeployError):
    def __init__(self, contract: str, method: str, message: str | None = None):
        self.contract = contract
        self.method = method
        super().__init__(message or f"Failed to read {contract}.{method}")


class WriteError(VaultDeployError):
    def __init__(self, contract: str, method: str, message: str | None = None):
        self.contract = contract
        self.method = method
        super().__init__(message or f"Failed to execute {contract}.{method}")
