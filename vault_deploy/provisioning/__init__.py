from vault_deploy.provisioning.composite import CompositeVaultPair, combine_vaults
from vault_deploy.provisioning.fixed_point import (
    encode_sqrt_bound,
    encode_threshold,
    encode_x96,
)
from vault_deploy.provisioning.models import CombineOptions, DesiredVaultSpec
from vault_deploy.provisioning.normalize import normalize
from vault_deploy.provisioning.reconcile import needs_update
from vault_deploy.provisioning.staged import ParameterClass, stage_and_commit
from vault_deploy.provisioning.vault import (
    VaultSetupResult,
    VaultState,
    setup_vault,
    setup_vaults,
)

__all__ = [
    "CombineOptions",
    "CompositeVaultPair",
    "DesiredVaultSpec",
    "ParameterClass",
    "VaultSetupResult",
    "VaultState",
    "combine_vaults",
    "encode_sqrt_bound",
    "encode_threshold",
    "encode_x96",
    "needs_update",
    "normalize",
    "setup_vault",
    "setup_vaults",
    "stage_and_commit",
]
