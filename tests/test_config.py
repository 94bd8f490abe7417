"""Settings, program id overrides and keypair loading."""

from __future__ import annotations

import dataclasses
import json

import pytest

from cashlink.client import CashLinkClient
from cashlink.config import ProgramIds, Settings, load_keypair, to_pubkey
from cashlink.constants import CASH_PROGRAM_ID, COMPUTE_BUDGET_PROGRAM_ID, LEGACY_CASH_PROGRAM_ID
from cashlink.protocol import ProtocolVersion, get_protocol

from tests.factories import FEE_WALLET, make_keypair
from tests.mocks import FakeConnection


def _write_keypair(path, keypair, wrapped=False):
    secret = list(bytes(keypair))
    path.write_text(json.dumps({"secretKey": secret} if wrapped else secret))
    return str(path)


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("CASHLINK_PROTOCOL_VERSION", "pass_key")
    monkeypatch.setenv("CASHLINK_COMPUTE_UNIT_PRICE", "1500")
    settings = Settings(_env_file=None)
    assert settings.protocol_version == "pass_key"
    assert settings.compute_unit_price == 1500


def test_settings_config_reads_prefixed_dotenv(tmp_path):
    assert Settings.model_config["env_prefix"] == "CASHLINK_"
    env_file = tmp_path / ".env"
    env_file.write_text("CASHLINK_COMMITMENT=finalized\n", encoding="utf-8")
    assert Settings(_env_file=str(env_file)).commitment == "finalized"


def test_program_id_overrides():
    settings = Settings(_env_file=None, cash_program_id=str(LEGACY_CASH_PROGRAM_ID))
    ids = ProgramIds.from_settings(settings)
    assert ids.cash == LEGACY_CASH_PROGRAM_ID
    assert ProgramIds().cash == CASH_PROGRAM_ID


def test_to_pubkey_rejects_garbage():
    with pytest.raises(RuntimeError):
        to_pubkey("not-a-key", "fee_wallet")


def test_load_keypair_formats(tmp_path):
    keypair = make_keypair(9)
    assert load_keypair(_write_keypair(tmp_path / "plain.json", keypair)).pubkey() == keypair.pubkey()
    assert load_keypair(_write_keypair(tmp_path / "wrapped.json", keypair, wrapped=True)).pubkey() == keypair.pubkey()


def test_load_keypair_errors(tmp_path):
    with pytest.raises(RuntimeError):
        load_keypair(None, "authority keypair")
    with pytest.raises(RuntimeError):
        load_keypair(str(tmp_path / "missing.json"))
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"nope": 1}))
    with pytest.raises(RuntimeError):
        load_keypair(str(bad))


def test_client_from_settings(tmp_path):
    settings = Settings(
        _env_file=None,
        protocol_version="pass_key",
        fee_wallet=str(FEE_WALLET),
        authority_keypair_path=_write_keypair(tmp_path / "authority.json", make_keypair(1)),
        fee_payer_keypair_path=_write_keypair(tmp_path / "payer.json", make_keypair(2)),
        compute_unit_limit=300_000,
    )
    client = CashLinkClient.from_settings(settings, connection=FakeConnection())
    assert client.protocol.version == ProtocolVersion.PASS_KEY
    assert client.authority == make_keypair(1).pubkey()
    assert client.fee_payer == make_keypair(2).pubkey()
    assert client.compute_unit_limit == 300_000
    assert len(client.lookup_table_addresses()) == 12
    assert COMPUTE_BUDGET_PROGRAM_ID in client.lookup_table_addresses()
    assert "compute_budget" not in {f.name for f in dataclasses.fields(ProgramIds)}


def test_client_from_settings_requires_fee_wallet():
    with pytest.raises(RuntimeError):
        CashLinkClient.from_settings(Settings(_env_file=None), connection=FakeConnection())


def test_unknown_protocol_version():
    with pytest.raises(ValueError):
        get_protocol("v9")
