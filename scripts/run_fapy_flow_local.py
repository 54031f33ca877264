import argparse
import asyncio
import json
import os
import sys
from pathlib import Path


def _parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Run the Prefect fapy-batch flow locally")
    p.add_argument("payload", help="Path to a Kong batch webhook JSON payload")
    p.add_argument(
        "--signature",
        default=None,
        help="Optional kong-signature header value (checked only when KONG_SECRET is set).",
    )
    p.add_argument(
        "--use-prefect-api",
        action="store_true",
        help="Use PREFECT_API_URL/PREFECT_API_KEY from the environment if set. Default is local/ephemeral execution.",
    )
    return p.parse_args()


def _maybe_set_ephemeral_prefect_env(use_prefect_api: bool) -> None:
    if use_prefect_api:
        return
    # Ensure local execution doesn't depend on Prefect server/cloud.
    os.environ.pop("PREFECT_API_URL", None)
    os.environ.pop("PREFECT_API_KEY", None)
    os.environ.setdefault("PREFECT_SERVER_ALLOW_EPHEMERAL_MODE", "true")


async def _run(body: str, signature: str | None) -> int:
    from src.pipelines.flows.forward_apy import fapy_batch_flow

    records = await fapy_batch_flow(body, signature=signature)
    print(json.dumps(records, indent=2))
    print(f"Done: {len(records)} records", file=sys.stderr)
    return 0


def main() -> int:
    args = _parse_args()

    # Ensure `import src...` works when running from the repo root.
    repo_root = Path(__file__).resolve().parents[1]
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))

    _maybe_set_ephemeral_prefect_env(args.use_prefect_api)

    body = Path(args.payload).read_text(encoding="utf-8")
    return asyncio.run(_run(body, args.signature))


if __name__ == "__main__":
    raise SystemExit(main())
