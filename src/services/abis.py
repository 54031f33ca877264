"""Minimal ABI fragments for the view functions the yield calculators read."""

from __future__ import annotations

from typing import Any

ABI = list[dict[str, Any]]


def _view(name: str, inputs: list[str] | None = None, outputs: list[str] | None = None) -> dict[str, Any]:
    return {
        "name": name,
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": f"arg{i}", "type": t} for i, t in enumerate(inputs or [])],
        "outputs": [{"name": "", "type": t} for t in (outputs or ["uint256"])],
    }


ERC20_ABI: ABI = [
    _view("totalSupply"),
    _view("decimals", outputs=["uint8"]),
    _view("symbol", outputs=["string"]),
]

CURVE_GAUGE_ABI: ABI = [
    _view("working_balances", ["address"]),
    _view("balanceOf", ["address"]),
]

# Yearn Curve strategies (0.2.2 through 0.4.x share these selectors).
CURVE_STRATEGY_ABI: ABI = [
    _view("keepCRV"),
    _view("keepCRVPercentage"),
]

CONVEX_STRATEGY_ABI: ABI = [
    _view("uselLocalCRV", outputs=["bool"]),
    _view("keepCVX"),
    _view("localKeepCRV"),
    _view("curveGlobal", outputs=["address"]),
    _view("pid"),
    _view("id"),
    _view("fraxPid"),
]

STRATEGY_BASE_ABI: ABI = [
    _view("keepCRV"),
]

CVX_BOOSTER_ABI: ABI = [
    {
        "name": "poolInfo",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "", "type": "uint256"}],
        "outputs": [
            {"name": "lptoken", "type": "address"},
            {"name": "token", "type": "address"},
            {"name": "gauge", "type": "address"},
            {"name": "crvRewards", "type": "address"},
            {"name": "stash", "type": "address"},
            {"name": "shutdown", "type": "bool"},
        ],
    },
]

CRV_REWARDS_ABI: ABI = [
    _view("rewardRate"),
    _view("totalSupply"),
    _view("periodFinish"),
    _view("rewardToken", outputs=["address"]),
    _view("extraRewardsLength"),
    _view("extraRewards", ["uint256"], ["address"]),
]

YPRISMA_STRATEGY_ABI: ABI = [
    _view("prismaReceiver", outputs=["address"]),
]

PRISMA_RECEIVER_ABI: ABI = [
    _view("rewardRate", ["address", "uint256"]),
    _view("totalSupply"),
    _view("lpToken", outputs=["address"]),
]

VELO_VOTER_REGISTRY_ABI: ABI = [
    _view("gauges", ["address"], ["address"]),
]

VELO_GAUGE_ABI: ABI = [
    _view("periodFinish"),
    _view("rewardRate"),
    _view("totalSupply"),
    _view("rewardToken", outputs=["address"]),
]

VELO_STRATEGY_ABI: ABI = [
    _view("localKeepVELO"),
]
