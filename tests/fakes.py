"""In-memory stand-ins for the RPC reader, price oracle and Kong graph."""

from __future__ import annotations

from typing import Any, Optional

from src.core.numeric import ZERO, Dec
from src.models.vault import VaultWithStrategies
from src.yields.context import ChainContext

NOW = 1_700_000_000


def _key_arg(value: Any) -> Any:
    return value.lower() if isinstance(value, str) else value


class FakeReader:
    """Answers `eth_call`s from a table; unknown calls revert."""

    def __init__(self, chain_id: int = 1) -> None:
        self.chain_id = chain_id
        self.responses: dict[tuple, Any] = {}
        self.calls: list[tuple[str, str, tuple]] = []

    def set(self, address: str, function: str, value: Any, *args: Any) -> "FakeReader":
        key = (address.lower(), function, tuple(_key_arg(a) for a in args))
        self.responses[key] = value
        return self

    async def call(self, address: str, abi, function: str, *args: Any) -> Any:
        self.calls.append((address, function, args))
        key = (str(address).lower(), function, tuple(_key_arg(a) for a in args))
        if key not in self.responses:
            raise RuntimeError(f"execution reverted: {function}")
        value = self.responses[key]
        if isinstance(value, Exception):
            raise value
        return value

    async def try_call(self, address: str, abi, function: str, *args: Any) -> Any:
        try:
            return await self.call(address, abi, function, *args)
        except Exception:
            return None

    async def multicall(self, calls) -> list[Any]:
        return [await self.try_call(c.address, c.abi, c.function, *c.args) for c in calls]


class FakePrices:
    def __init__(self, prices: Optional[dict[str, Any]] = None) -> None:
        self.prices = {k.lower(): Dec(v) for k, v in (prices or {}).items()}
        self.requests: list[tuple[int, Optional[str]]] = []

    async def get_price_usd(self, chain_id: int, address: Optional[str]) -> Dec:
        self.requests.append((chain_id, address))
        return self.prices.get((address or "").lower(), ZERO)


class FakeReaders:
    def __init__(self, readers: dict[int, FakeReader]) -> None:
        self.readers = readers

    def for_chain(self, chain_id: int) -> FakeReader:
        return self.readers[chain_id]


class FakeVaultService:
    def __init__(self, graphs: dict[int, list[VaultWithStrategies]], failing_chains=()) -> None:
        self.graphs = graphs
        self.failing_chains = set(failing_chains)
        self.requests: list[tuple[int, list[str]]] = []

    async def get_vaults_with_strategies(self, chain_id: int, addresses: list[str]):
        self.requests.append((chain_id, addresses))
        if chain_id in self.failing_chains:
            raise RuntimeError("kong unreachable")
        return {g.vault.address.lower(): g for g in self.graphs.get(chain_id, [])}


def make_ctx(reader: FakeReader, prices: Optional[FakePrices] = None) -> ChainContext:
    return ChainContext(
        chain_id=reader.chain_id,
        reader=reader,  # type: ignore[arg-type]
        prices=prices or FakePrices(),  # type: ignore[arg-type]
        clock=lambda: NOW,
    )


def address(n: int) -> str:
    return "0x" + f"{n:040x}"
