"""Prefect flow: forward APY time-series for a Kong batch webhook.

This module implements:
- Group the webhook's vaults by chain
- Per chain, fetch the vault graph (Kong) and Curve market data once
- Compute every vault's forward yield concurrently, isolating failures
- Emit flat `OutputRecord`s (one per component) stamped with the batch block

The plain async functions (`compute_fapy`, `process_chain`,
`compute_vault_outputs`) carry the logic; the Prefect flow only validates the
payload, checks the signature and serialises the result.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Optional, Sequence

from prefect import flow, get_run_logger, task
from prefect.exceptions import MissingContextError

from src.core.config import settings
from src.core.constants import CHAIN_BASE, CHAIN_OPTIMISM
from src.core.errors import InvalidSignatureError
from src.core.signature import verify_webhook_signature
from src.models.chain_data import ChainMarketData
from src.models.vault import VaultWithStrategies
from src.models.webhook import BatchWebhook, OutputRecord, OutputRecordList
from src.models.yields import VaultYield
from src.services.chain_reader import ChainReaders
from src.services.curve_api_client import CurveApiClient
from src.services.price_client import PriceClient
from src.services.vault_service import VaultGraphService
from src.yields.context import ChainContext
from src.yields.vault import compute_vault_yield

CRV_LABEL = "crv-estimated-apr"
VELO_LABELS: dict[int, str] = {
    CHAIN_OPTIMISM: "velo-estimated-apr",
    CHAIN_BASE: "aero-estimated-apr",
}

CRV_COMPONENTS: tuple[str, ...] = (
    "netAPR",
    "netAPY",
    "boost",
    "poolAPY",
    "boostedAPR",
    "baseAPR",
    "rewardsAPR",
    "rewardsAPY",
    "cvxAPR",
    "keepCRV",
)
VELO_COMPONENTS: tuple[str, ...] = ("netAPR", "netAPY", "keepVelo")

MarketDataFetcher = Callable[[int], Awaitable[ChainMarketData]]


def _get_logger() -> logging.Logger:
    """Return a logger usable both inside and outside Prefect contexts."""
    try:
        return get_run_logger()  # type: ignore[return-value]
    except MissingContextError:
        return logging.getLogger(__name__)


def label_and_components(chain_id: int, fapy: VaultYield) -> tuple[str, tuple[str, ...]]:
    if fapy.velo_like:
        return VELO_LABELS.get(chain_id, VELO_LABELS[CHAIN_OPTIMISM]), VELO_COMPONENTS
    return CRV_LABEL, CRV_COMPONENTS


def build_output_records(
    chain_id: int,
    address: str,
    fapy: VaultYield,
    block_number: int,
    block_time: int,
) -> list[OutputRecord]:
    """Expand a vault composite into one record per component.

    The vault gets its family's component set; each strategy gets the same set
    plus `debtRatio`, keyed by the strategy address.
    """
    label, components = label_and_components(chain_id, fapy)

    def _record(target: str, component: str, value: float) -> OutputRecord:
        return OutputRecord(
            chainId=chain_id,
            address=target,
            label=label,
            component=component,
            value=value,
            blockNumber=block_number,
            blockTime=block_time,
        )

    records = [_record(address, c, fapy.component(c).to_float()) for c in components]
    for strategy in fapy.strategies:
        for component in (*components, "debtRatio"):
            records.append(_record(strategy.address, component, strategy.component(component).to_float()))
    return records


async def compute_vault_outputs(
    ctx: ChainContext,
    market: ChainMarketData,
    address: str,
    graph: VaultWithStrategies,
    block_number: int,
    block_time: int,
) -> list[OutputRecord]:
    fapy = await compute_vault_yield(ctx, market, graph.vault, graph.strategies)
    if fapy is None:
        return []
    return build_output_records(ctx.chain_id, address, fapy, block_number, block_time)


async def process_chain(
    chain_id: int,
    addresses: Sequence[str],
    *,
    block_number: int,
    block_time: int,
    vault_service: VaultGraphService,
    fetch_market_data: MarketDataFetcher,
    readers: ChainReaders,
    prices: PriceClient,
) -> list[OutputRecord]:
    """Compute every vault of one chain group.

    The vault graph and the market data are fetched once, concurrently. A vault
    missing from the graph, or failing mid-calculation, is logged and yields no
    records; its siblings are unaffected.
    """
    logger = _get_logger()

    vaults_map, market = await asyncio.gather(
        vault_service.get_vaults_with_strategies(chain_id, list(addresses)),
        fetch_market_data(chain_id),
    )
    # Endpoint resolution may block on a Prefect Secret lookup.
    reader = await asyncio.to_thread(readers.for_chain, chain_id)
    ctx = ChainContext(chain_id=chain_id, reader=reader, prices=prices)

    async def _one(address: str) -> list[OutputRecord]:
        graph = vaults_map.get(address.lower())
        if graph is None:
            logger.warning(f"chain {chain_id}: vault {address} not found in Kong; skipping")
            return []
        try:
            return await compute_vault_outputs(ctx, market, address, graph, block_number, block_time)
        except Exception as exc:
            logger.error(f"chain {chain_id}: failed to compute vault {address}: {exc}")
            return []

    results = await asyncio.gather(*[_one(a) for a in addresses])
    records = [r for rows in results for r in rows]
    logger.info(f"chain {chain_id}: {len(records)} records for {len(addresses)} vaults")
    return records


def group_by_chain(hook: BatchWebhook) -> dict[int, list[str]]:
    groups: dict[int, list[str]] = {}
    for ref in hook.vaults:
        groups.setdefault(ref.chain_id, []).append(ref.address)
    return groups


async def compute_fapy(
    hook: BatchWebhook,
    *,
    vault_service: Optional[VaultGraphService] = None,
    fetch_market_data: Optional[MarketDataFetcher] = None,
    readers: Optional[ChainReaders] = None,
    prices: Optional[PriceClient] = None,
) -> list[OutputRecord]:
    """Run a batch: one `process_chain` per distinct chain, then validate.

    A chain whose slice fails as a whole (e.g. Kong unreachable, no RPC
    endpoint) is logged and contributes nothing; other chains still complete.
    """
    logger = _get_logger()

    vault_service = vault_service or VaultGraphService()
    fetch_market_data = fetch_market_data or CurveApiClient().fetch_chain_data
    readers = readers or ChainReaders()
    prices = prices or PriceClient()

    groups = group_by_chain(hook)

    async def _chain(chain_id: int, addresses: list[str]) -> list[OutputRecord]:
        try:
            return await process_chain(
                chain_id,
                addresses,
                block_number=hook.block_number,
                block_time=hook.block_time,
                vault_service=vault_service,
                fetch_market_data=fetch_market_data,
                readers=readers,
                prices=prices,
            )
        except Exception as exc:
            logger.error(f"chain {chain_id}: batch slice failed: {exc}")
            return []

    results = await asyncio.gather(*[_chain(c, a) for c, a in groups.items()])
    return OutputRecordList.validate_python([r for rows in results for r in rows])


async def compute_vault_fapy(chain_id: int, address: str) -> Optional[dict[str, float]]:
    """Forward yield components of a single vault, or None if it has no model."""
    vault_service = VaultGraphService()
    graph = await vault_service.get_vault_with_strategies(chain_id, address)
    if graph is None:
        return None

    market = await CurveApiClient().fetch_chain_data(chain_id)
    ctx = ChainContext(
        chain_id=chain_id,
        reader=await asyncio.to_thread(ChainReaders().for_chain, chain_id),
        prices=PriceClient(),
    )
    fapy = await compute_vault_yield(ctx, market, graph.vault, graph.strategies)
    if fapy is None:
        return None
    return fapy.components.as_floats()


def _payload_text(payload: dict[str, Any] | str) -> str:
    return payload if isinstance(payload, str) else json.dumps(payload, separators=(",", ":"))


@task
async def compute_fapy_task(hook: BatchWebhook) -> list[OutputRecord]:
    """Prefect task wrapper for the batch pipeline (no retries)."""
    return await compute_fapy(hook)


@flow(name="fapy-batch", log_prints=True)
async def fapy_batch_flow(
    payload: dict[str, Any] | str,
    signature: str | None = None,
) -> list[dict[str, Any]]:
    """Compute forward APY records for a Kong batch webhook.

    Args:
        payload: The webhook body, raw JSON text or already decoded.
        signature: `kong-signature` header. Checked against `KONG_SECRET` when
            a secret is configured.

    Returns:
        JSON-ready output records (block fields as decimal strings).

    Raises:
        InvalidSignatureError: The header is missing, stale or does not match.
        pydantic.ValidationError: The payload does not match the batch schema.
    """
    logger = get_run_logger()

    body = _payload_text(payload)
    if settings.KONG_SECRET and not verify_webhook_signature(signature, settings.KONG_SECRET, body):
        raise InvalidSignatureError("invalid kong-signature header")

    hook = BatchWebhook.model_validate_json(body)
    logger.info(f"Batch for block {hook.block_number}: {len(hook.vaults)} vaults")

    records = await compute_fapy_task(hook)
    logger.info(f"Computed {len(records)} output records")
    return [r.to_json_dict() for r in records]
