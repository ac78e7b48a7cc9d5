from __future__ import annotations

from typing import Any

from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import is_address, to_checksum_address

from vault_deploy.core.config import (
    get_named_accounts_config,
    get_private_keys,
    load_wallet_mnemonic,
)
from vault_deploy.core.errors import ConfigError

_DEFAULT_EVM_ACCOUNT_PATH_TEMPLATE = "m/44'/60'/0'/0/{index}"

_HD_WALLET_ENABLED = False


def _enable_hd_wallet_features() -> None:
    global _HD_WALLET_ENABLED
    if _HD_WALLET_ENABLED:
        return
    Account.enable_unaudited_hdwallet_features()
    _HD_WALLET_ENABLED = True


def default_evm_account_path(index: int) -> str:
    idx = int(index)
    if idx < 0:
        raise ValueError("account index must be non-negative")
    return _DEFAULT_EVM_ACCOUNT_PATH_TEMPLATE.format(index=idx)


def account_from_mnemonic(mnemonic: str, index: int) -> LocalAccount:
    """Derive an account with MetaMask's path ``m/44'/60'/0'/0/{index}``."""
    _enable_hd_wallet_features()
    return Account.from_mnemonic(
        str(mnemonic).strip(), account_path=default_evm_account_path(index)
    )


class NamedAccounts:
    """Resolve hardhat-style named accounts.

    Each name in ``named_accounts`` maps to a mnemonic index or to a plain
    address.  A name listed under ``private_keys`` signs with that key.
    Address-only names (e.g. a Uniswap factory) can be read but not used as
    a transaction sender.
    """

    def __init__(
        self,
        named: dict[str, Any],
        *,
        mnemonic: str | None = None,
        private_keys: dict[str, str] | None = None,
    ):
        self._named = dict(named)
        self._mnemonic = mnemonic
        self._keys = dict(private_keys or {})
        self._signers: dict[str, LocalAccount] = {}

    @classmethod
    def from_config(cls) -> NamedAccounts:
        return cls(
            get_named_accounts_config(),
            mnemonic=load_wallet_mnemonic(),
            private_keys=get_private_keys(),
        )

    def names(self) -> list[str]:
        return sorted(set(self._named) | set(self._keys))

    def address(self, name: str) -> str:
        if name in self._keys:
            return self.signer(name).address
        value = self._named.get(name)
        if value is None:
            raise ConfigError(f"Unknown named account {name!r}")
        if isinstance(value, str) and is_address(value):
            return to_checksum_address(value)
        return self.signer(name).address

    def signer(self, name: str) -> LocalAccount:
        if name in self._signers:
            return self._signers[name]

        if name in self._keys:
            account = Account.from_key(self._keys[name])
        else:
            value = self._named.get(name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigError(f"Named account {name!r} cannot sign transactions")
            if not self._mnemonic:
                raise ConfigError(
                    f"Named account {name!r} needs wallet_mnemonic to be configured"
                )
            account = account_from_mnemonic(self._mnemonic, value)

        self._signers[name] = account
        return account

    def as_dict(self) -> dict[str, str]:
        return {name: self.address(name) for name in self.names()}
