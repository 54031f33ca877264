#!/usr/bin/env python3
"""Register the forward APY webhook flow as a Prefect v3 deployment.

The deployment has no schedule. Kong's batch webhook is relayed to it as a
flow run carrying two parameters:

	payload    raw webhook body (JSON text, or the decoded object)
	signature  the `kong-signature` header, checked when KONG_SECRET is set

By default the flow is imported from local code, which suits workers whose
image is built from this repo. `--use-remote-source` pulls the code from
`--source` (or PREFECT_DEPLOY_SOURCE) instead.
"""

from __future__ import annotations

import argparse
import importlib
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any


DEFAULT_SOURCE = os.getenv("PREFECT_DEPLOY_SOURCE")


@dataclass(frozen=True)
class WebhookDeployment:
	name: str
	entrypoint: str
	description: str
	parameters: tuple[str, ...]
	tags: tuple[str, ...] = ()


FAPY_DEPLOYMENT = WebhookDeployment(
	name="fapy-batch-webhook",
	entrypoint="src/pipelines/flows/forward_apy.py:fapy_batch_flow",
	description=(
		"Forward APY records for a Kong batch webhook. "
		"Run with `payload` (webhook body) and `signature` (kong-signature header)."
	),
	parameters=("payload", "signature"),
	tags=("fapy", "webhook"),
)


def _import_flow_from_entrypoint(entrypoint: str):
	"""Import a flow from `path/to/module.py:attr` or `dotted.module:attr`."""
	module_part, flow_attr = entrypoint.split(":", 1)
	module_part = module_part.replace(".py", "").replace("/", ".")
	module = importlib.import_module(module_part)
	return getattr(module, flow_attr)


def _build_source(source: str, ref: str | None) -> Any:
	"""Return a `source` value compatible with `flow.from_source`."""
	if not ref:
		return source

	try:
		from prefect.runner.storage import GitRepository  # type: ignore

		return GitRepository(url=source, reference=ref)
	except ImportError:
		return source


def build_deploy_kwargs(
	deployment: WebhookDeployment,
	*,
	work_pool_name: str,
	work_queue_name: str | None = None,
	image: str | None = None,
	concurrency_limit: int | None = None,
) -> dict[str, Any]:
	"""Keyword arguments for `Flow.deploy`.

	Parameters are validated against the flow signature on every run, so a
	relayed webhook missing `payload` is rejected before a worker picks it up.
	"""
	kwargs: dict[str, Any] = {
		"name": deployment.name,
		"work_pool_name": work_pool_name,
		"description": deployment.description,
		"tags": list(deployment.tags),
		"enforce_parameter_schema": True,
	}
	if work_queue_name:
		kwargs["work_queue_name"] = work_queue_name
	if image:
		kwargs["job_variables"] = {"image": image}
	if concurrency_limit:
		kwargs["concurrency_limit"] = concurrency_limit
	return kwargs


def missing_flow_parameters(flow_obj: Any, deployment: WebhookDeployment) -> list[str]:
	"""Webhook parameters the flow does not accept."""
	accepted = set((flow_obj.parameters.properties or {}).keys())
	return [p for p in deployment.parameters if p not in accepted]


def deploy(
	*,
	use_remote_source: bool,
	source: str | None,
	ref: str | None,
	deploy_kwargs: dict[str, Any],
	deployment: WebhookDeployment = FAPY_DEPLOYMENT,
) -> None:
	from prefect import flow

	if use_remote_source:
		if not source:
			raise SystemExit("Missing code storage source. Set PREFECT_DEPLOY_SOURCE or pass --source.")
		deploy_flow = flow.from_source(source=_build_source(source, ref), entrypoint=deployment.entrypoint)
	else:
		deploy_flow = _import_flow_from_entrypoint(deployment.entrypoint)

	missing = missing_flow_parameters(deploy_flow, deployment)
	if missing:
		raise SystemExit(f"{deployment.entrypoint} does not accept webhook parameters: {', '.join(missing)}")

	deploy_flow.deploy(**deploy_kwargs)
	print(f"Deployed {deployment.name} (parameters: {', '.join(deployment.parameters)})")


def main() -> None:
	p = argparse.ArgumentParser(description="Register the fapy batch webhook deployment.")
	p.add_argument("--work-pool", required=True, help="Prefect work pool name (e.g. fapy)")
	p.add_argument(
		"--work-queue",
		default=None,
		help="Optional work queue name (for managed pools this is often 'default')",
	)
	p.add_argument(
		"--use-remote-source",
		action="store_true",
		help="Use remote code storage pull steps (git clone) instead of local code.",
	)
	p.add_argument(
		"--source",
		default=DEFAULT_SOURCE,
		help="Remote code storage source (git URL, s3://, gs://, az://). Required with --use-remote-source.",
	)
	p.add_argument("--ref", default=None, help="Optional git ref. Used only with --use-remote-source.")
	p.add_argument("--image", default=None, help="Optional image override via job variables.")
	p.add_argument(
		"--concurrency-limit",
		type=int,
		default=None,
		help="Optional cap on concurrent webhook runs.",
	)
	args = p.parse_args()

	# Ensure `import src...` works when running from the repo root.
	repo_root = Path(__file__).resolve().parents[1]
	if str(repo_root) not in sys.path:
		sys.path.insert(0, str(repo_root))

	deploy(
		use_remote_source=args.use_remote_source,
		source=args.source,
		ref=args.ref,
		deploy_kwargs=build_deploy_kwargs(
			FAPY_DEPLOYMENT,
			work_pool_name=args.work_pool,
			work_queue_name=args.work_queue,
			image=args.image,
			concurrency_limit=args.concurrency_limit,
		),
	)


if __name__ == "__main__":
	main()
