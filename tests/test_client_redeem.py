"""Redeem validation order, account preparation and signing."""

from __future__ import annotations

import pytest

from cashlink.assembler import verify_transaction
from cashlink.constants import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    MEMO_PROGRAM_ID,
    NATIVE_MINT,
    SYS_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
)
from cashlink.errors import (
    AccountAlreadyCanceled,
    AccountAlreadySettled,
    AccountNotFound,
    FingerprintAlreadyUsed,
    FingerprintRequired,
    InvalidOwner,
    InvalidState,
    MaxRedemptionsReached,
    ReferrerRequired,
    WeightRequired,
)
from cashlink.layouts import RedeemCashArgsLayout
from cashlink.models import RedeemInput
from cashlink.pda import derive_ata
from cashlink.state import CashLinkState, DistributionType, Redemption

from tests.factories import (
    FEE_WALLET,
    FINGERPRINT,
    MINT,
    OWNER,
    PASS_KEY,
    REFERENCE,
    REFERRER,
    WALLET,
    install_atas,
    install_link,
    make_cash_link,
)


def _redeem(**overrides) -> RedeemInput:
    fields = dict(cash_reference=REFERENCE, wallet=str(WALLET))
    fields.update(overrides)
    return RedeemInput(**fields)


def _pass_key_redeem(**overrides) -> RedeemInput:
    fields = dict(pass_key=str(PASS_KEY.pubkey()), wallet=str(WALLET))
    fields.update(overrides)
    return RedeemInput(**fields)


def _ready(connection, protocol, fee_payer, mint=MINT, **overrides):
    link = make_cash_link(protocol, mint=mint, **overrides)
    install_link(connection, protocol, link)
    install_atas(connection, mint, OWNER, FEE_WALLET, fee_payer.pubkey())
    connection.reset_calls()
    return link


# ── Test 1: cheap checks run before any lookups ──


async def test_referrer_fee_without_referrer_makes_no_calls(client, connection, protocol, fee_payer):
    _ready(connection, protocol, fee_payer)
    with pytest.raises(ReferrerRequired):
        await client.redeem_instructions(_redeem(referrer_fee_bps=500))
    assert connection.account_info_calls == []


async def test_zero_referrer_fee_is_no_referral(client, connection, protocol, fee_payer):
    _ready(connection, protocol, fee_payer)
    built = await client.redeem_instructions(_redeem(referrer_fee_bps=0))
    redeem_ix = built.instructions[0]
    assert RedeemCashArgsLayout.parse(bytes(redeem_ix.data)[1:]).referrer_fee_bps is None
    assert derive_ata(REFERRER, MINT) not in [m.pubkey for m in redeem_ix.accounts]


async def test_fingerprint_required_after_single_lookup(client, connection, protocol, fee_payer):
    link = _ready(connection, protocol, fee_payer, fingerprint_enabled=True)
    with pytest.raises(FingerprintRequired):
        await client.redeem_instructions(_redeem())
    assert connection.account_info_calls == [link.address]


async def test_missing_link(client, connection):
    with pytest.raises(AccountNotFound):
        await client.redeem_instructions(_redeem())


async def test_link_owned_by_other_program(client, connection, protocol):
    link = make_cash_link(protocol)
    connection.set_account(link.address, SYS_PROGRAM_ID, protocol.encode_cash(link))
    with pytest.raises(InvalidOwner):
        await client.redeem_instructions(_redeem())


# ── Test 2: state checks ──


@pytest.mark.parametrize(
    "state,error",
    [
        (CashLinkState.CANCELED, AccountAlreadyCanceled),
        (CashLinkState.REDEEMED, AccountAlreadySettled),
    ],
)
async def test_terminal_states_rejected(client, connection, protocol, fee_payer, state, error):
    link = _ready(connection, protocol, fee_payer, state=state)
    with pytest.raises(error):
        await client.redeem_instructions(_redeem())
    assert connection.account_info_calls == [link.address]


async def test_redeem_until_exhausted(client, connection, protocol, fee_payer):
    link = _ready(connection, protocol, fee_payer, max_num_redemptions=2, amount=1000, remaining_amount=1000)
    first = await client.redeem_instructions(_redeem())
    assert len(first.instructions) == 1

    link.state = CashLinkState.REDEEMING
    link.total_redemptions = 1
    link.remaining_amount = 500
    install_link(connection, protocol, link)
    second = await client.redeem_instructions(_redeem())
    assert second.link.total_redemptions == 1

    link.total_redemptions = 2
    link.remaining_amount = 0
    install_link(connection, protocol, link)
    with pytest.raises(MaxRedemptionsReached):
        await client.redeem_instructions(_redeem())


async def test_fingerprint_already_used(client, connection, protocol, fee_payer):
    link = _ready(connection, protocol, fee_payer, fingerprint_enabled=True)
    fp_address, _ = protocol.find_fingerprint_address(link.address, FINGERPRINT)
    connection.set_account(fp_address, protocol.program_id, b"\x03")
    with pytest.raises(FingerprintAlreadyUsed):
        await client.redeem_instructions(_redeem(fingerprint=str(FINGERPRINT)))


async def test_weighted_link_needs_weight(client, connection, protocol, fee_payer):
    _ready(connection, protocol, fee_payer, distribution_type=DistributionType.WEIGHTED)
    with pytest.raises(WeightRequired):
        await client.redeem_instructions(_redeem())
    built = await client.redeem_instructions(_redeem(weight_ppm=250_000))
    assert len(built.instructions) == 1


# ── Test 3: account preparation ──


async def test_redeem_with_referrer_and_fingerprint(client, connection, protocol, fee_payer):
    link = _ready(connection, protocol, fee_payer, fingerprint_enabled=True)
    built = await client.redeem_instructions(
        _redeem(referrer=str(REFERRER), referrer_fee_bps=1000, fingerprint=str(FINGERPRINT), memo="thanks")
    )
    redeem_ix, memo_ix = built.instructions
    keys = [m.pubkey for m in redeem_ix.accounts]
    assert REFERRER in keys
    assert derive_ata(REFERRER, MINT) in keys
    assert FINGERPRINT in keys
    assert keys[-1] == ASSOCIATED_TOKEN_PROGRAM_ID
    assert keys[4] == derive_ata(link.owner, MINT)
    assert memo_ix.program_id == MEMO_PROGRAM_ID
    assert bytes(memo_ix.data) == b"thanks"
    assert connection.sent == []


async def test_missing_ata_created_inline(client, connection, protocol, fee_payer):
    link = make_cash_link(protocol)
    install_link(connection, protocol, link)
    install_atas(connection, MINT, FEE_WALLET, fee_payer.pubkey())
    await client.redeem_instructions(_redeem())
    assert len(connection.sent) == 1
    assert len(connection.confirmed) == 1


async def test_native_redeem_wraps_in_ephemeral_account(client, connection, protocol, fee_payer):
    link = _ready(connection, protocol, fee_payer, mint=NATIVE_MINT)
    built = await client.redeem_instructions(_redeem())
    assert len(built.instructions) == 5
    assert len(built.signers) == 1
    ephemeral = built.signers[0].pubkey()

    redeem_ix = built.instructions[2]
    assert redeem_ix.program_id == protocol.program_id
    keys = [m.pubkey for m in redeem_ix.accounts]
    assert keys[4] == link.owner
    assert ephemeral in keys
    # Only the fee wallet and fee payer token accounts are looked up.
    assert derive_ata(OWNER, NATIVE_MINT) not in connection.account_info_calls


async def test_redeem_payload_fully_signed(client, connection, protocol, fee_payer):
    _ready(connection, protocol, fee_payer)
    payload = await client.redeem(_redeem())
    assert payload.slot == connection.slot
    assert verify_transaction(payload.transaction)


# ── Test 4: pass-key build ──


async def test_pass_key_redeem_needs_pass_key_signature(pass_key_client, connection, pass_key_protocol, fee_payer):
    _ready(connection, pass_key_protocol, fee_payer)
    unsigned = await pass_key_client.redeem(_pass_key_redeem())
    assert not verify_transaction(unsigned.transaction)
    signed = await pass_key_client.redeem(_pass_key_redeem(), signers=[PASS_KEY])
    assert verify_transaction(signed.transaction)


async def test_pass_key_wallet_redeems_once(pass_key_client, connection, pass_key_protocol, fee_payer):
    link = _ready(connection, pass_key_protocol, fee_payer)
    address, _ = pass_key_protocol.find_redemption_address(link.address, WALLET)
    record = Redemption(address=address, redeemed_at=1, amount=250)
    connection.set_account(address, pass_key_protocol.program_id, pass_key_protocol.encode_redemption(record))
    with pytest.raises(InvalidState):
        await pass_key_client.redeem_instructions(_pass_key_redeem())


async def test_pass_key_redeem_leaves_redemption_record_to_program(
    pass_key_client, connection, pass_key_protocol, fee_payer
):
    link = _ready(connection, pass_key_protocol, fee_payer)
    built = await pass_key_client.redeem_instructions(_pass_key_redeem())
    keys = [m.pubkey for m in built.instructions[0].accounts]
    redemption, _ = pass_key_protocol.find_redemption_address(link.address, WALLET)
    assert keys[4] == PASS_KEY.pubkey()
    assert redemption not in keys
    assert keys[-2:] == [TOKEN_PROGRAM_ID, ASSOCIATED_TOKEN_PROGRAM_ID]
