from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from vault_deploy.core.constants.base import (
    DEFAULT_MANAGEMENT_FEE,
    DEFAULT_PERFORMANCE_FEE,
    LP_TOKEN_NAME,
    LP_TOKEN_SYMBOL,
    MAX_UINT256,
)
from vault_deploy.core.errors import InputError


class DesiredVaultSpec(BaseModel):
    """Declarative target for one vault at ``expected_nft``."""

    expected_nft: int = Field(ge=0)
    contract_name: str = Field(min_length=1)
    deploy_options: list[Any] = []
    strategy_params: dict[str, Any] | None = None
    delayed_strategy_params: dict[str, Any] | None = None
    delayed_protocol_per_vault_params: dict[str, Any] | None = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def build(cls, **kwargs: Any) -> DesiredVaultSpec:
        try:
            return cls(**kwargs)
        except ValidationError as exc:
            raise InputError(f"Invalid vault spec: {exc}") from exc


class _ParamsModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def payload(self) -> dict[str, Any]:
        """Field values keyed by their on-chain struct names."""
        return self.model_dump(by_alias=True)


# Aggregation (gateway) vault


class GatewayStrategyParams(_ParamsModel):
    limits: list[int]


class GatewayDelayedStrategyParams(_ParamsModel):
    strategy_treasury: str = Field(alias="strategyTreasury")
    redirects: list[int]


# Issuance (LP issuer) vault


class LpIssuerStrategyParams(_ParamsModel):
    token_limit_per_address: int = Field(alias="tokenLimitPerAddress")


class LpIssuerDelayedStrategyParams(_ParamsModel):
    strategy_treasury: str = Field(alias="strategyTreasury")
    strategy_performance_treasury: str = Field(alias="strategyPerformanceTreasury")
    management_fee: int = Field(alias="managementFee")
    performance_fee: int = Field(alias="performanceFee")


class DelayedProtocolPerVaultParams(_ParamsModel):
    protocol_fee: int = Field(alias="protocolFee")


class CombineOptions(BaseModel):
    """Optional overrides for ``combine_vaults``; unset fields get defaults."""

    limits: list[int] | None = None
    strategy_performance_treasury_address: str | None = None
    token_limit_per_address: int = MAX_UINT256
    management_fee: int = DEFAULT_MANAGEMENT_FEE
    performance_fee: int = DEFAULT_PERFORMANCE_FEE
    lp_token_name: str = LP_TOKEN_NAME
    lp_token_symbol: str = LP_TOKEN_SYMBOL

    model_config = ConfigDict(frozen=True)

    @field_validator("management_fee", "performance_fee", "token_limit_per_address")
    @classmethod
    def _non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be non-negative")
        return v

    def resolve(self, tokens: list[str], treasury: str) -> ResolvedCombineOptions:
        limits = self.limits if self.limits is not None else [MAX_UINT256] * len(tokens)
        if len(limits) != len(tokens):
            raise InputError(
                f"Got {len(limits)} limits for {len(tokens)} vault tokens"
            )
        return ResolvedCombineOptions(
            limits=list(limits),
            strategy_performance_treasury_address=(
                self.strategy_performance_treasury_address or treasury
            ),
            token_limit_per_address=self.token_limit_per_address,
            management_fee=self.management_fee,
            performance_fee=self.performance_fee,
            lp_token_name=self.lp_token_name,
            lp_token_symbol=self.lp_token_symbol,
        )


class ResolvedCombineOptions(BaseModel):
    limits: list[int]
    strategy_performance_treasury_address: str
    token_limit_per_address: int
    management_fee: int
    performance_fee: int
    lp_token_name: str
    lp_token_symbol: str

    model_config = ConfigDict(frozen=True)
