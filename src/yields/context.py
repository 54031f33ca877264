"""Per-chain collaborators handed to every yield calculator."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable

from src.services.chain_reader import ContractReader
from src.services.price_client import PriceClient


def _unix_now() -> int:
    return int(time.time())


@dataclass(frozen=True)
class ChainContext:
    """Read primitive, price oracle and clock for one chain.

    Calculators never build clients themselves; the batch pipeline creates one
    context per chain group and shares it across that chain's vaults.
    """

    chain_id: int
    reader: ContractReader
    prices: PriceClient
    clock: Callable[[], int] = field(default=_unix_now)

    def now(self) -> int:
        return self.clock()
