"""Unit tests for the batch webhook schema, output records and signatures."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from src.core.signature import sign_payload, verify_webhook_signature
from src.models.webhook import BatchWebhook, OutputRecord
from tests.fakes import address

SECRET = "kong-shared-secret"


def _payload(**overrides) -> dict:
    payload = {
        "abiPath": "yearn/2/vault",
        "chainId": 1,
        "blockNumber": "19000000",
        "blockTime": 1700000000,
        "subscription": {
            "id": "fapy",
            "url": "http://localhost:8000/fapy",
            "abiPath": "yearn/2/vault",
            "type": "timeseries",
            "labels": ["crv-estimated-apr"],
        },
        "vaults": [{"chainId": 1, "address": address(1)}],
    }
    payload.update(overrides)
    return payload


def test_block_fields_accept_decimal_strings() -> None:
    hook = BatchWebhook.model_validate(_payload())
    assert hook.block_number == 19_000_000
    assert hook.block_time == 1_700_000_000
    assert hook.vaults[0].chain_id == 1


@pytest.mark.parametrize("block_number", ["-1", "12abc", 2**64, True])
def test_block_number_must_be_uint64(block_number) -> None:
    with pytest.raises(ValidationError):
        BatchWebhook.model_validate(_payload(blockNumber=block_number))


def test_vault_address_must_be_evm_address() -> None:
    with pytest.raises(ValidationError):
        BatchWebhook.model_validate(_payload(vaults=[{"chainId": 1, "address": "0x1234"}]))


def test_subscription_type_is_timeseries() -> None:
    payload = _payload()
    payload["subscription"]["type"] = "event"
    with pytest.raises(ValidationError):
        BatchWebhook.model_validate(payload)


def _record(value) -> OutputRecord:
    return OutputRecord(
        chainId=1,
        address=address(1),
        label="crv-estimated-apr",
        component="netAPY",
        value=value,
        blockNumber=2**60,
        blockTime=1_700_000_000,
    )


def test_output_record_serialises_block_fields_as_strings() -> None:
    row = _record(0.05).to_json_dict()
    assert row == {
        "chainId": 1,
        "address": address(1),
        "label": "crv-estimated-apr",
        "component": "netAPY",
        "value": 0.05,
        "blockNumber": str(2**60),
        "blockTime": "1700000000",
    }


@pytest.mark.parametrize("value", [float("nan"), float("inf"), None])
def test_non_finite_values_are_omitted(value) -> None:
    assert "value" not in _record(value).to_json_dict()


def test_signature_round_trip() -> None:
    body = '{"hello":"world"}'
    header = sign_payload(body, SECRET, timestamp=1_700_000_000)
    assert verify_webhook_signature(header, SECRET, body, now=1_700_000_100)


@pytest.mark.parametrize(
    "header,now",
    [
        (None, 1_700_000_000),
        ("v1=abc", 1_700_000_000),
        ("t=notanint,v1=abc", 1_700_000_000),
        (sign_payload("{}", SECRET, timestamp=1_700_000_000), 1_700_000_301),
        (sign_payload("{}", "other-secret", timestamp=1_700_000_000), 1_700_000_000),
        (sign_payload('{"tampered":1}', SECRET, timestamp=1_700_000_000), 1_700_000_000),
    ],
)
def test_signature_rejections(header, now) -> None:
    assert not verify_webhook_signature(header, SECRET, "{}", now=now)
