"""Shared fixtures for cashlink tests."""

from __future__ import annotations

import pytest

from cashlink.client import CashLinkClient
from cashlink.config import ProgramIds
from cashlink.protocol import ProtocolVersion, get_protocol

from tests.factories import FEE_WALLET, make_keypair
from tests.mocks import FakeConnection


@pytest.fixture
def program_ids():
    return ProgramIds()


@pytest.fixture
def authority():
    return make_keypair(1)


@pytest.fixture
def fee_payer():
    return make_keypair(2)


@pytest.fixture
def connection():
    return FakeConnection()


@pytest.fixture
def protocol(program_ids):
    return get_protocol(ProtocolVersion.REFERENCE, program_ids)


@pytest.fixture
def pass_key_protocol(program_ids):
    return get_protocol(ProtocolVersion.PASS_KEY, program_ids)


@pytest.fixture
def client(connection, authority, fee_payer, protocol):
    return CashLinkClient(connection, authority, fee_payer, FEE_WALLET, protocol=protocol)


@pytest.fixture
def pass_key_client(connection, authority, fee_payer, pass_key_protocol):
    return CashLinkClient(connection, authority, fee_payer, FEE_WALLET, protocol=pass_key_protocol)
