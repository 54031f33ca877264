"""Pytest configuration.

This project uses a `src/` package layout without an installed wheel.
For local test runs, we add the repository root to `sys.path` so imports like
`from src...` work under `pytest`.

`src.core.config` resolves `KONG_SECRET` at import time and falls back to a
Prefect Secret block when the env var is unset. Tests pin it to an empty value
so that importing the settings never reaches a Prefect API.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

os.environ.setdefault("KONG_SECRET", "")


@pytest.fixture(autouse=True)
def _no_prefect_rpc_secrets(monkeypatch):
    """Readers only see the endpoint maps the tests hand them."""
    import src.services.chain_reader as chain_reader

    monkeypatch.setattr(chain_reader, "load_rpc_urls_from_prefect", lambda chain_ids: {})
