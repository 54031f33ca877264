"""Contract read primitive shared by every yield calculator.

`ContractReader` wraps a synchronous web3.py client per chain and moves each
blocking `eth_call` to a worker thread, so calculators can fan out reads with
`asyncio.gather`. Nothing here retries: a failed read either raises (`call`)
or comes back as None (`try_call`, `multicall`).
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Sequence, TypeVar

from web3 import Web3

from src.core.config import settings
from src.core.errors import RpcNotConfiguredError
from src.core.prefect_secrets import load_rpc_urls_from_prefect

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ContractCall:
    address: str
    abi: list[dict[str, Any]]
    function: str
    args: tuple = ()


def _normalize_arg(value: Any) -> Any:
    if isinstance(value, str) and Web3.is_address(value):
        return Web3.to_checksum_address(value)
    return value


class ContractReader:
    def __init__(
        self,
        chain_id: int,
        rpc_url: str | None = None,
        request_timeout_seconds: int = 20,
        w3: Web3 | None = None,
    ) -> None:
        self.chain_id = chain_id
        if w3 is None:
            w3 = Web3(
                Web3.HTTPProvider(
                    rpc_url,
                    request_kwargs={"timeout": request_timeout_seconds},
                )
            )
        self._w3 = w3

    def _contract(self, address: str, abi: list[dict[str, Any]]):
        return self._w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    def call_sync(self, call: ContractCall) -> Any:
        contract = self._contract(call.address, call.abi)
        fn = getattr(contract.functions, call.function)
        return fn(*[_normalize_arg(a) for a in call.args]).call()

    async def call(self, address: str, abi: list[dict[str, Any]], function: str, *args: Any) -> Any:
        return await asyncio.to_thread(self.call_sync, ContractCall(address, abi, function, tuple(args)))

    async def try_call(self, address: str, abi: list[dict[str, Any]], function: str, *args: Any) -> Any:
        try:
            return await self.call(address, abi, function, *args)
        except Exception as exc:
            logger.debug(f"chain {self.chain_id}: {function}() on {address} failed: {exc}")
            return None

    async def multicall(self, calls: Sequence[ContractCall]) -> list[Any]:
        """Run independent reads concurrently; failed entries come back as None."""
        return list(
            await asyncio.gather(*[self.try_call(c.address, c.abi, c.function, *c.args) for c in calls])
        )


async def first_success(probes: Sequence[Callable[[], Awaitable[T]]], default: T) -> T:
    """Evaluate probes in order and return the first one that does not raise.

    Strategy versions expose different selectors for the same value, so callers
    list the alternatives in a fixed order and fall back to `default`.
    """
    for probe in probes:
        try:
            return await probe()
        except Exception as exc:
            logger.debug(f"probe {getattr(probe, '__name__', probe)!r} failed: {exc}")
    return default


class ChainReaders:
    """Builds one `ContractReader` per chain from an explicit endpoint map."""

    def __init__(
        self,
        rpc_urls: Mapping[int, str] | None = None,
        request_timeout_seconds: int | None = None,
    ) -> None:
        self._rpc_urls = dict(settings.RPC_CHAIN_URLS if rpc_urls is None else rpc_urls)
        self._timeout = request_timeout_seconds or settings.RPC_TIMEOUT_SECONDS
        self._readers: dict[int, ContractReader] = {}

    def rpc_url(self, chain_id: int) -> str:
        url = self._rpc_urls.get(chain_id)
        if not url:
            url = load_rpc_urls_from_prefect([chain_id]).get(chain_id)
            if url:
                self._rpc_urls[chain_id] = url
        if not url:
            raise RpcNotConfiguredError(chain_id)
        return url

    def for_chain(self, chain_id: int) -> ContractReader:
        reader = self._readers.get(chain_id)
        if reader is None:
            reader = ContractReader(chain_id, self.rpc_url(chain_id), self._timeout)
            self._readers[chain_id] = reader
        return reader
