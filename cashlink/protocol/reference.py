"""Current program build: links are addressed by a reference string."""

from __future__ import annotations

from typing import Optional

from solders.instruction import AccountMeta
from solders.pubkey import Pubkey

from ..constants import SYSVAR_RENT_PUBKEY
from ..errors import InvalidInput
from ..layouts import (
    CANCEL_TAG,
    CASH_ACCOUNT_LEN,
    INIT_TAG,
    REDEEM_TAG,
    CancelCashArgsLayout,
    CashLayout,
    InitCashArgsLayout,
    RedeemCashArgsLayout,
    build_padded,
    encode_instruction,
    parse_record,
)
from ..state import AccountType, CashLink, CashLinkState, DistributionType
from .base import (
    CancelCashParams,
    CashProtocol,
    InitCashParams,
    NamedAccounts,
    ProtocolVersion,
    RedeemCashParams,
    from_bytes32,
    to_bytes32,
)


def _require_reference(cash_reference: Optional[str]) -> str:
    if not cash_reference:
        raise InvalidInput("cash_reference is required")
    return cash_reference


class ReferenceProtocol(CashProtocol):
    version = ProtocolVersion.REFERENCE
    account_len = CASH_ACCOUNT_LEN
    state_codes = {
        0: CashLinkState.INITIALIZED,
        1: CashLinkState.REDEEMED,
        2: CashLinkState.REDEEMING,
        3: CashLinkState.CANCELED,
    }
    closable_states = frozenset({CashLinkState.CANCELED})

    def link_seed(self, cash_reference: Optional[str] = None, pass_key: Optional[Pubkey] = None):
        return _require_reference(cash_reference)

    def decode_cash(self, address: Pubkey, data: bytes) -> CashLink:
        parsed = parse_record(CashLayout, data, CASH_ACCOUNT_LEN)
        if parsed.account_type != AccountType.CASH:
            raise ValueError(f"Not a cash account: type {parsed.account_type}")
        return CashLink(
            address=address,
            state=self.decode_state(parsed.state),
            authority=from_bytes32(parsed.authority),
            owner=from_bytes32(parsed.owner),
            mint=from_bytes32(parsed.mint),
            amount=parsed.amount,
            fee_bps=parsed.fee_bps,
            network_fee=parsed.network_fee,
            base_fee_to_redeem=parsed.base_fee_to_redeem,
            rent_fee_to_redeem=parsed.rent_fee_to_redeem,
            remaining_amount=parsed.remaining_amount,
            distribution_type=DistributionType(parsed.distribution_type),
            total_redemptions=parsed.total_redemptions,
            max_num_redemptions=parsed.max_num_redemptions,
            min_amount=parsed.min_amount,
            fingerprint_enabled=parsed.fingerprint_enabled,
            pass_key=None if parsed.pass_key is None else from_bytes32(parsed.pass_key),
            total_weight_ppm=parsed.total_weight_ppm,
        )

    def encode_cash(self, link: CashLink) -> bytes:
        return build_padded(
            CashLayout,
            {
                "account_type": int(link.account_type),
                "authority": to_bytes32(link.authority),
                "state": self.encode_state(link.state),
                "amount": link.amount,
                "fee_bps": link.fee_bps,
                "network_fee": link.network_fee,
                "base_fee_to_redeem": link.base_fee_to_redeem,
                "rent_fee_to_redeem": link.rent_fee_to_redeem,
                "remaining_amount": link.remaining_amount,
                "distribution_type": int(link.distribution_type),
                "owner": to_bytes32(link.owner),
                "mint": to_bytes32(link.mint),
                "total_redemptions": link.total_redemptions,
                "max_num_redemptions": link.max_num_redemptions,
                "min_amount": link.min_amount,
                "fingerprint_enabled": link.fingerprint_enabled,
                "pass_key": None if link.pass_key is None else to_bytes32(link.pass_key),
                "total_weight_ppm": link.total_weight_ppm,
            },
            CASH_ACCOUNT_LEN,
        )

    def encode_init_args(self, params: InitCashParams) -> bytes:
        return encode_instruction(
            INIT_TAG,
            InitCashArgsLayout,
            {
                "amount": params.amount,
                "fee_bps": params.fee_bps,
                "network_fee": params.network_fee,
                "base_fee_to_redeem": params.base_fee_to_redeem,
                "rent_fee_to_redeem": params.rent_fee_to_redeem,
                "cash_bump": params.cash_bump,
                "distribution_type": int(params.distribution_type),
                "max_num_redemptions": params.max_num_redemptions,
                "min_amount": params.min_amount,
                "fingerprint_enabled": params.fingerprint_enabled,
                "cash_reference": _require_reference(params.cash_reference),
                "is_locked": params.pass_key is not None,
            },
        )

    def encode_redeem_args(self, params: RedeemCashParams) -> bytes:
        return encode_instruction(
            REDEEM_TAG,
            RedeemCashArgsLayout,
            {
                "cash_bump": params.cash_bump,
                "cash_reference": _require_reference(params.cash_reference),
                "referrer_fee_bps": params.referrer_fee_bps,
                "referee_fee_bps": params.referee_fee_bps,
                "weight_ppm": params.weight_ppm,
                "rate_usd": params.rate_usd,
                "fingerprint_bump": params.fingerprint_bump,
            },
        )

    def encode_cancel_args(self, params: CancelCashParams) -> bytes:
        return encode_instruction(
            CANCEL_TAG,
            CancelCashArgsLayout,
            {"cash_bump": params.cash_bump, "cash_reference": _require_reference(params.cash_reference)},
        )

    def init_accounts(self, params: InitCashParams) -> NamedAccounts:
        ids = self.program_ids
        named_accounts: NamedAccounts = [
            ("authority", AccountMeta(pubkey=params.authority, is_signer=True, is_writable=False)),
            ("owner", AccountMeta(pubkey=params.owner, is_signer=True, is_writable=False)),
            ("fee_payer", AccountMeta(pubkey=params.fee_payer, is_signer=True, is_writable=True)),
            ("cash", AccountMeta(pubkey=params.cash, is_signer=False, is_writable=True)),
        ]
        if params.pass_key is not None:
            named_accounts.append(("pass_key", AccountMeta(pubkey=params.pass_key, is_signer=False, is_writable=False)))
        named_accounts.extend(
            [
                ("mint", AccountMeta(pubkey=params.mint, is_signer=False, is_writable=False)),
                ("vault_token", AccountMeta(pubkey=params.vault_token, is_signer=False, is_writable=True)),
                ("owner_token", AccountMeta(pubkey=params.owner_token, is_signer=False, is_writable=True)),
                ("rent", AccountMeta(pubkey=SYSVAR_RENT_PUBKEY, is_signer=False, is_writable=False)),
                ("system_program", AccountMeta(pubkey=ids.system, is_signer=False, is_writable=False)),
                ("token_program", AccountMeta(pubkey=params.token_program, is_signer=False, is_writable=False)),
                ("associated_token_program", AccountMeta(pubkey=ids.associated_token, is_signer=False, is_writable=False)),
            ]
        )
        return named_accounts

    def cancel_accounts(self, params: CancelCashParams) -> NamedAccounts:
        return [
            ("authority", AccountMeta(pubkey=params.authority, is_signer=True, is_writable=False)),
            ("cash", AccountMeta(pubkey=params.cash, is_signer=False, is_writable=True)),
            ("owner_token", AccountMeta(pubkey=params.owner_token, is_signer=False, is_writable=True)),
            ("fee_payer", AccountMeta(pubkey=params.fee_payer, is_signer=False, is_writable=True)),
            ("vault_token", AccountMeta(pubkey=params.vault_token, is_signer=False, is_writable=True)),
            ("mint", AccountMeta(pubkey=params.mint, is_signer=False, is_writable=False)),
            ("token_program", AccountMeta(pubkey=params.token_program, is_signer=False, is_writable=False)),
            ("system_program", AccountMeta(pubkey=self.program_ids.system, is_signer=False, is_writable=False)),
        ]
