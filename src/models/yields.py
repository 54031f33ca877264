"""Calculator results.

A calculator returns one `ComputedYield` per strategy: the unweighted
components plus the strategy's debt ratio. The debt-ratio weighted view used
for vault roll-ups is derived with `ComputedYield.weighted()`.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Optional

from src.core.numeric import Dec, ZERO

# Output component name -> YieldComponents attribute.
COMPONENT_ATTRS: dict[str, str] = {
    "netAPR": "net_apr",
    "netAPY": "net_apy",
    "boost": "boost",
    "poolAPY": "pool_apy",
    "boostedAPR": "boosted_apr",
    "baseAPR": "base_apr",
    "rewardsAPR": "rewards_apr",
    "rewardsAPY": "rewards_apy",
    "cvxAPR": "cvx_apr",
    "keepCRV": "keep_crv",
    "keepVelo": "keep_velo",
}


@dataclass(frozen=True)
class YieldComponents:
    net_apr: Dec = ZERO
    net_apy: Dec = ZERO
    boost: Dec = ZERO
    pool_apy: Dec = ZERO
    boosted_apr: Dec = ZERO
    base_apr: Dec = ZERO
    rewards_apr: Dec = ZERO
    rewards_apy: Dec = ZERO
    cvx_apr: Dec = ZERO
    keep_crv: Dec = ZERO
    keep_velo: Dec = ZERO

    def scaled(self, factor: Dec) -> "YieldComponents":
        return YieldComponents(**{f.name: getattr(self, f.name) * factor for f in fields(self)})

    def __add__(self, other: "YieldComponents") -> "YieldComponents":
        return YieldComponents(
            **{f.name: getattr(self, f.name) + getattr(other, f.name) for f in fields(self)}
        )

    def component(self, name: str) -> Dec:
        return getattr(self, COMPONENT_ATTRS[name])

    def as_floats(self) -> dict[str, float]:
        return {name: getattr(self, attr).to_float() for name, attr in COMPONENT_ATTRS.items()}


@dataclass(frozen=True)
class ComputedYield:
    type: str
    address: str
    debt_ratio: Dec
    raw: YieldComponents

    def weighted(self) -> YieldComponents:
        return self.raw.scaled(self.debt_ratio)

    def with_extra(self, type_tag: str, **deltas: Dec) -> "ComputedYield":
        """Layer additional terms on top of the unweighted components."""
        updated = {name: getattr(self.raw, name) + delta for name, delta in deltas.items()}
        return replace(self, type=type_tag, raw=replace(self.raw, **updated))

    def component(self, name: str) -> Dec:
        if name == "debtRatio":
            return self.debt_ratio
        return self.raw.component(name)


@dataclass(frozen=True)
class VaultYield:
    """Debt-ratio weighted composite of a vault's active strategies."""

    type: str
    components: YieldComponents
    strategies: list[ComputedYield] = field(default_factory=list)
    gauge_address: Optional[str] = None
    velo_like: bool = False

    def component(self, name: str) -> Dec:
        return self.components.component(name)


def aggregate(
    results: list[ComputedYield],
    separator: str = "",
    gauge_address: Optional[str] = None,
    velo_like: bool = False,
) -> VaultYield:
    """Sum the debt-ratio weighted components and join the type tags."""
    total = YieldComponents()
    for result in results:
        total = total + result.weighted()
    type_tag = separator.join(r.type for r in results).strip()
    return VaultYield(
        type=type_tag,
        components=total,
        strategies=list(results),
        gauge_address=gauge_address,
        velo_like=velo_like,
    )
