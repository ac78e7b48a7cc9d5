from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from vault_deploy.core.errors import ConfigError


class Artifact(BaseModel):
    contract_name: str = Field(alias="contractName")
    abi: list[dict[str, Any]]
    bytecode: str = ""

    model_config = ConfigDict(populate_by_name=True)


class Deployment(BaseModel):
    address: str
    abi: list[dict[str, Any]]
    args: list[Any] = []
    bytecode: str | None = None
    transaction_hash: str | None = Field(default=None, alias="transactionHash")
    implementation: str | None = None

    model_config = ConfigDict(populate_by_name=True)


class ArtifactStore:
    """Read compiled contract artifacts from ``artifacts/<Name>.json``."""

    def __init__(self, root: Path):
        self.root = root

    def _read(self, contract_name: str) -> Artifact:
        path = self.root / f"{contract_name}.json"
        if not path.exists():
            raise ConfigError(f"No artifact for {contract_name} at {path}")
        return Artifact.model_validate_json(path.read_text())

    def load_abi(self, contract_name: str) -> list[dict[str, Any]]:
        return self._read(contract_name).abi

    def load(self, contract_name: str) -> Artifact:
        artifact = self._read(contract_name)
        if not artifact.bytecode or artifact.bytecode == "0x":
            raise ConfigError(f"Artifact {contract_name} has no bytecode")
        return artifact


class DeploymentStore:
    """Persist named deployments under ``deployments/<network>/<Name>.json``."""

    def __init__(self, root: Path, network: str):
        self.root = root
        self.network = network

    @property
    def network_dir(self) -> Path:
        return self.root / self.network

    def _path(self, name: str) -> Path:
        return self.network_dir / f"{name}.json"

    def get(self, name: str) -> Deployment | None:
        path = self._path(name)
        if not path.exists():
            return None
        try:
            return Deployment.model_validate_json(path.read_text())
        except (OSError, ValueError) as exc:
            raise ConfigError(f"Unreadable deployment {path}: {exc}") from exc

    def save(self, name: str, deployment: Deployment) -> Path:
        path = self._path(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = deployment.model_dump(by_alias=True, exclude_none=True)
        path.write_text(json.dumps(payload, indent=2, default=str) + "\n")
        return path

    def names(self) -> list[str]:
        if not self.network_dir.exists():
            return []
        return sorted(p.stem for p in self.network_dir.glob("*.json"))
