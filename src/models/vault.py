"""Vault and strategy snapshots as read from the Kong vault index."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _int_or_zero(value: Any) -> int:
    if value is None or value == "":
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        try:
            return int(float(value))
        except (TypeError, ValueError):
            return 0


class _KongModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)


class Asset(_KongModel):
    address: Optional[str] = None
    chain_id: Optional[int] = Field(None, alias="chainId")
    decimals: int = 18
    name: Optional[str] = None
    symbol: Optional[str] = None

    @field_validator("decimals", mode="before")
    @classmethod
    def _decimals(cls, value: Any) -> int:
        return _int_or_zero(value) if value is not None else 18


class DebtAllocation(_KongModel):
    strategy: Optional[str] = None
    debt_ratio: int = Field(0, alias="debtRatio")
    performance_fee: int = Field(0, alias="performanceFee")

    @field_validator("debt_ratio", "performance_fee", mode="before")
    @classmethod
    def _ints(cls, value: Any) -> int:
        return _int_or_zero(value)


class Vault(_KongModel):
    """Immutable vault snapshot. Fees are basis points."""

    chain_id: Optional[int] = Field(None, alias="chainId")
    address: str
    name: Optional[str] = None
    symbol: Optional[str] = None
    api_version: Optional[str] = Field(None, alias="apiVersion")
    asset: Optional[Asset] = None
    performance_fee: int = Field(0, alias="performanceFee")
    management_fee: int = Field(0, alias="managementFee")
    debts: list[DebtAllocation] = Field(default_factory=list)
    strategies: list[str] = Field(default_factory=list)

    @field_validator("performance_fee", "management_fee", mode="before")
    @classmethod
    def _fees(cls, value: Any) -> int:
        return _int_or_zero(value)

    @field_validator("debts", "strategies", mode="before")
    @classmethod
    def _lists(cls, value: Any) -> list:
        if not isinstance(value, list):
            return []
        return [v for v in value if v is not None]

    @property
    def asset_address(self) -> Optional[str]:
        return self.asset.address if self.asset else None

    def debt_ratio_for(self, strategy_address: str) -> int:
        target = (strategy_address or "").lower()
        for debt in self.debts:
            if (debt.strategy or "").lower() == target:
                return debt.debt_ratio
        return 0


class Strategy(_KongModel):
    """Strategy snapshot with its allocation inside one vault.

    `debt_ratio` is basis points (0-10000); `local_keep_crv` is the locally
    configured CRV keep ratio, also basis points. Velodrome keep ratios are
    read from the strategy contract.
    """

    chain_id: Optional[int] = Field(None, alias="chainId")
    address: str
    name: Optional[str] = None
    api_version: Optional[str] = Field(None, alias="apiVersion")
    debt_ratio: int = Field(0, alias="debtRatio")
    performance_fee: int = Field(0, alias="performanceFee")
    management_fee: int = Field(0, alias="managementFee")
    local_keep_crv: int = Field(0, alias="localKeepCRV")

    @field_validator(
        "debt_ratio", "performance_fee", "management_fee", "local_keep_crv",
        mode="before",
    )
    @classmethod
    def _ints(cls, value: Any) -> int:
        return _int_or_zero(value)

    @property
    def is_active(self) -> bool:
        return self.debt_ratio > 0


class VaultWithStrategies(_KongModel):
    vault: Vault
    strategies: list[Strategy] = Field(default_factory=list)
