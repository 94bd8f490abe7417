"""Synthetic keys and on-chain records for testing."""

from __future__ import annotations

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from cashlink.constants import NATIVE_MINT, TOKEN_PROGRAM_ID
from cashlink.pda import derive_ata
from cashlink.protocol import CashProtocol, ProtocolVersion
from cashlink.state import CashLink, CashLinkState, DistributionType


def make_keypair(seed: int) -> Keypair:
    return Keypair.from_seed(bytes([seed]) * 32)


MINT = Pubkey.from_string("EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v")
OWNER = make_keypair(11).pubkey()
WALLET = make_keypair(12).pubkey()
REFERRER = make_keypair(13).pubkey()
FINGERPRINT = make_keypair(14).pubkey()
FEE_WALLET = make_keypair(15).pubkey()
PASS_KEY = make_keypair(7)

REFERENCE = "order-1001"


def make_cash_link(protocol: CashProtocol, **overrides) -> CashLink:
    """Initialized, unredeemed link with 1000 units split four ways."""
    if protocol.version == ProtocolVersion.PASS_KEY:
        address, _ = protocol.find_cash_address(pass_key=PASS_KEY.pubkey())
        pass_key = PASS_KEY.pubkey()
        expires_at = 1_900_000_000
    else:
        address, _ = protocol.find_cash_address(REFERENCE)
        pass_key = None
        expires_at = None
    fields = dict(
        address=address,
        state=CashLinkState.INITIALIZED,
        authority=make_keypair(1).pubkey(),
        owner=OWNER,
        mint=MINT,
        amount=1000,
        fee_bps=250,
        network_fee=5000,
        base_fee_to_redeem=100,
        rent_fee_to_redeem=200,
        remaining_amount=1000,
        distribution_type=DistributionType.EQUAL,
        total_redemptions=0,
        max_num_redemptions=4,
        min_amount=1,
        fingerprint_enabled=False,
        pass_key=pass_key,
        expires_at=expires_at,
    )
    fields.update(overrides)
    return CashLink(**fields)


def install_link(connection, protocol: CashProtocol, link: CashLink) -> None:
    connection.set_account(link.address, protocol.program_id, protocol.encode_cash(link))


def install_atas(connection, mint: Pubkey, *owners: Pubkey, token_program: Pubkey = TOKEN_PROGRAM_ID) -> None:
    for owner in owners:
        connection.set_token_account(derive_ata(owner, mint, token_program), mint, owner, amount=0)


def native_link(protocol: CashProtocol, **overrides) -> CashLink:
    return make_cash_link(protocol, mint=NATIVE_MINT, **overrides)
