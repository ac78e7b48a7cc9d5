import json
import os
from pathlib import Path
from typing import Any

from vault_deploy.core.constants.chains import NETWORK_CHAIN_IDS
from vault_deploy.core.errors import ConfigError

_CONFIG_ENV_KEYS = ("VAULT_DEPLOY_CONFIG_PATH", "VAULT_DEPLOY_CONFIG")
_DEFAULT_CONFIG_FILENAME = "config.json"
_WALLET_MNEMONIC_KEY = "wallet_mnemonic"
_DEFAULT_CONFIRMATIONS = 1


def _find_project_root(start: Path) -> Path | None:
    cur = start.resolve()
    for parent in [cur, *cur.parents]:
        if (parent / "pyproject.toml").exists():
            return parent
    return None


def project_root() -> Path | None:
    return _find_project_root(Path.cwd()) or _find_project_root(Path(__file__).parent)


def resolve_config_path(path: str | Path | None = None) -> Path:
    if path is not None:
        return Path(path).expanduser()

    env_path = next(
        (os.getenv(k, "").strip() for k in _CONFIG_ENV_KEYS if os.getenv(k)), ""
    )
    if env_path:
        p = Path(env_path).expanduser()
        if p.is_absolute():
            return p
        root = project_root()
        return (root / p) if root else p

    root = project_root()
    return (root / _DEFAULT_CONFIG_FILENAME) if root else Path(_DEFAULT_CONFIG_FILENAME)


def load_config_json(
    path: str | Path | None = None, *, require_exists: bool = False
) -> dict[str, Any]:
    cfg_path = resolve_config_path(path)
    if not cfg_path.exists():
        if require_exists:
            raise ConfigError(f"Config file not found: {cfg_path}")
        return {}
    try:
        return json.loads(cfg_path.read_text())
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Config file {cfg_path} is not valid JSON: {exc}") from exc


CONFIG: dict[str, Any] = load_config_json()


def set_config(config: dict[str, Any]) -> None:
    """Replace the global CONFIG dict in-place.

    Code that imported CONFIG at module import time sees the update.
    """
    CONFIG.clear()
    CONFIG.update(config)


def load_config(
    path: str | Path | None = None, *, require_exists: bool = False
) -> None:
    """Load config from disk into the global CONFIG dict."""
    set_config(load_config_json(path, require_exists=require_exists))


def get_network_config(network: str) -> dict[str, Any]:
    networks = CONFIG.get("networks", {})
    entry = networks.get(network)
    if not isinstance(entry, dict):
        raise ConfigError(f"No network named {network!r} in config")
    rpc_url = str(entry.get("rpc_url") or "").strip()
    if not rpc_url:
        raise ConfigError(f"Network {network!r} has no rpc_url")

    chain_id = entry.get("chain_id", NETWORK_CHAIN_IDS.get(network))
    if chain_id is None:
        raise ConfigError(f"Network {network!r} has no chain_id")

    return {
        "name": network,
        "rpc_url": rpc_url,
        "chain_id": int(chain_id),
        "confirmations": int(entry.get("confirmations", _DEFAULT_CONFIRMATIONS)),
    }


def get_named_accounts_config() -> dict[str, Any]:
    return dict(CONFIG.get("named_accounts", {}))


def get_private_keys() -> dict[str, str]:
    keys = CONFIG.get("private_keys", {})
    return {str(k): str(v).strip() for k, v in keys.items() if v}


def load_wallet_mnemonic() -> str | None:
    value = CONFIG.get(_WALLET_MNEMONIC_KEY) or os.environ.get(
        "VAULT_DEPLOY_MNEMONIC"
    )
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _resolve_dir(key: str, default: str) -> Path:
    raw = Path(str(CONFIG.get(key) or default)).expanduser()
    if raw.is_absolute():
        return raw
    root = project_root()
    return (root / raw) if root else raw


def get_deployments_dir() -> Path:
    return _resolve_dir("deployments_dir", "deployments")


def get_artifacts_dir() -> Path:
    return _resolve_dir("artifacts_dir", "artifacts")
