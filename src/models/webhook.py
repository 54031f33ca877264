"""Batch webhook payload and time-series output records."""

from __future__ import annotations

import math
import re
from typing import Annotated, Any, Literal, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
    TypeAdapter,
    field_validator,
)

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_UINT64_MAX = 2**64 - 1


def _check_address(value: str) -> str:
    if not _ADDRESS_RE.match(value):
        raise ValueError("invalid evm address")
    return value


def _coerce_uint64(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("expected an unsigned integer")
    if isinstance(value, str):
        value = value.strip()
        if not value.isdigit():
            raise ValueError("expected a decimal string")
        value = int(value)
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError("expected an integer")
        value = int(value)
    if not isinstance(value, int) or value < 0 or value > _UINT64_MAX:
        raise ValueError("expected a uint64")
    return value


Address = Annotated[str, AfterValidator(_check_address)]

# Serialised as decimal strings since JSON numbers lose precision past 2**53.
Uint64 = Annotated[int, BeforeValidator(_coerce_uint64), PlainSerializer(str, return_type=str, when_used="json")]


class _Schema(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class WebhookSubscription(_Schema):
    id: str
    url: str
    abi_path: str = Field(alias="abiPath")
    type: Literal["timeseries"]
    labels: list[str] = Field(default_factory=list)


class VaultRef(_Schema):
    chain_id: int = Field(alias="chainId")
    address: Address


class BatchWebhook(_Schema):
    abi_path: str = Field(alias="abiPath")
    chain_id: Optional[int] = Field(None, alias="chainId")
    block_number: Uint64 = Field(alias="blockNumber")
    block_time: Uint64 = Field(alias="blockTime")
    subscription: WebhookSubscription
    vaults: list[VaultRef]


class OutputRecord(_Schema):
    chain_id: int = Field(alias="chainId")
    address: Address
    label: str
    component: Optional[str] = None
    value: Optional[float] = None
    block_number: Uint64 = Field(alias="blockNumber")
    block_time: Uint64 = Field(alias="blockTime")

    @field_validator("value", mode="before")
    @classmethod
    def _finite_or_none(cls, value: Any) -> Optional[float]:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        value = float(value)
        return value if math.isfinite(value) else None

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


OutputRecordList = TypeAdapter(list[OutputRecord])
