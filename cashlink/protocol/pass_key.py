"""Earlier program build: links are addressed by a raw pass-key and expire.

A wallet's claim leaves a redemption record seeded by (link, wallet). The
program derives that record itself, so it never appears in the redeem keys.
"""

from __future__ import annotations

from typing import Optional

from solders.instruction import AccountMeta
from solders.pubkey import Pubkey

from ..constants import SYSVAR_CLOCK_PUBKEY, SYSVAR_RENT_PUBKEY
from ..errors import InvalidInput
from ..layouts import (
    CANCEL_TAG,
    INIT_TAG,
    PASS_KEY_CASH_ACCOUNT_LEN,
    REDEEM_TAG,
    CancelPassKeyArgsLayout,
    InitPassKeyArgsLayout,
    PassKeyCashLayout,
    RedeemPassKeyArgsLayout,
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


def _require_pass_key(pass_key: Optional[Pubkey]) -> Pubkey:
    if pass_key is None:
        raise InvalidInput("pass_key is required")
    return pass_key


class PassKeyProtocol(CashProtocol):
    version = ProtocolVersion.PASS_KEY
    account_len = PASS_KEY_CASH_ACCOUNT_LEN
    state_codes = {
        0: CashLinkState.UNINITIALIZED,
        1: CashLinkState.INITIALIZED,
        2: CashLinkState.REDEEMED,
        3: CashLinkState.REDEEMING,
        4: CashLinkState.EXPIRED,
    }
    closable_states = frozenset({CashLinkState.EXPIRED, CashLinkState.REDEEMED})
    uses_redemption_record = True

    def link_seed(self, cash_reference: Optional[str] = None, pass_key: Optional[Pubkey] = None):
        return _require_pass_key(pass_key)

    def decode_cash(self, address: Pubkey, data: bytes) -> CashLink:
        parsed = parse_record(PassKeyCashLayout, data, PASS_KEY_CASH_ACCOUNT_LEN)
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
            pass_key=from_bytes32(parsed.pass_key),
            expires_at=parsed.expires_at,
            last_redeemed_at=parsed.last_redeemed_at,
            canceled_at=parsed.canceled_at,
        )

    def encode_cash(self, link: CashLink) -> bytes:
        return build_padded(
            PassKeyCashLayout,
            {
                "account_type": int(link.account_type),
                "state": self.encode_state(link.state),
                "amount": link.amount,
                "fee_bps": link.fee_bps,
                "network_fee": link.network_fee,
                "base_fee_to_redeem": link.base_fee_to_redeem,
                "rent_fee_to_redeem": link.rent_fee_to_redeem,
                "remaining_amount": link.remaining_amount,
                "distribution_type": int(link.distribution_type),
                "owner": to_bytes32(link.owner),
                "authority": to_bytes32(link.authority),
                "mint": to_bytes32(link.mint),
                "pass_key": to_bytes32(_require_pass_key(link.pass_key)),
                "total_redemptions": link.total_redemptions,
                "max_num_redemptions": link.max_num_redemptions,
                "min_amount": link.min_amount,
                "fingerprint_enabled": link.fingerprint_enabled,
                "expires_at": link.expires_at or 0,
                "last_redeemed_at": link.last_redeemed_at,
                "canceled_at": link.canceled_at,
            },
            PASS_KEY_CASH_ACCOUNT_LEN,
        )

    def encode_init_args(self, params: InitCashParams) -> bytes:
        return encode_instruction(
            INIT_TAG,
            InitPassKeyArgsLayout,
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
                "num_days_to_expire": params.num_days_to_expire,
            },
        )

    def encode_redeem_args(self, params: RedeemCashParams) -> bytes:
        return encode_instruction(
            REDEEM_TAG,
            RedeemPassKeyArgsLayout,
            {
                "cash_bump": params.cash_bump,
                "fingerprint_bump": params.fingerprint_bump,
                "referrer_fee_bps": params.referrer_fee_bps,
                "referee_fee_bps": params.referee_fee_bps,
            },
        )

    def encode_cancel_args(self, params: CancelCashParams) -> bytes:
        return encode_instruction(CANCEL_TAG, CancelPassKeyArgsLayout, {"cash_bump": params.cash_bump})

    def init_accounts(self, params: InitCashParams) -> NamedAccounts:
        ids = self.program_ids
        return [
            ("authority", AccountMeta(pubkey=params.authority, is_signer=True, is_writable=False)),
            ("owner", AccountMeta(pubkey=params.owner, is_signer=True, is_writable=False)),
            ("fee_payer", AccountMeta(pubkey=params.fee_payer, is_signer=True, is_writable=True)),
            ("cash", AccountMeta(pubkey=params.cash, is_signer=False, is_writable=True)),
            ("pass_key", AccountMeta(pubkey=_require_pass_key(params.pass_key), is_signer=False, is_writable=False)),
            ("mint", AccountMeta(pubkey=params.mint, is_signer=False, is_writable=False)),
            ("vault_token", AccountMeta(pubkey=params.vault_token, is_signer=False, is_writable=True)),
            ("owner_token", AccountMeta(pubkey=params.owner_token, is_signer=False, is_writable=True)),
            ("rent", AccountMeta(pubkey=SYSVAR_RENT_PUBKEY, is_signer=False, is_writable=False)),
            ("system_program", AccountMeta(pubkey=ids.system, is_signer=False, is_writable=False)),
            ("clock", AccountMeta(pubkey=SYSVAR_CLOCK_PUBKEY, is_signer=False, is_writable=False)),
            ("token_program", AccountMeta(pubkey=params.token_program, is_signer=False, is_writable=False)),
            ("associated_token_program", AccountMeta(pubkey=ids.associated_token, is_signer=False, is_writable=False)),
        ]

    def cancel_accounts(self, params: CancelCashParams) -> NamedAccounts:
        return [
            ("authority", AccountMeta(pubkey=params.authority, is_signer=True, is_writable=False)),
            ("cash", AccountMeta(pubkey=params.cash, is_signer=False, is_writable=True)),
            ("pass_key", AccountMeta(pubkey=_require_pass_key(params.pass_key), is_signer=False, is_writable=False)),
            ("owner_token", AccountMeta(pubkey=params.owner_token, is_signer=False, is_writable=True)),
            ("fee_payer", AccountMeta(pubkey=params.fee_payer, is_signer=False, is_writable=True)),
            ("vault_token", AccountMeta(pubkey=params.vault_token, is_signer=False, is_writable=True)),
            ("mint", AccountMeta(pubkey=params.mint, is_signer=False, is_writable=False)),
            ("clock", AccountMeta(pubkey=SYSVAR_CLOCK_PUBKEY, is_signer=False, is_writable=False)),
            ("token_program", AccountMeta(pubkey=params.token_program, is_signer=False, is_writable=False)),
            ("system_program", AccountMeta(pubkey=self.program_ids.system, is_signer=False, is_writable=False)),
        ]

    def redeem_accounts(self, params: RedeemCashParams) -> NamedAccounts:
        ids = self.program_ids
        token_program = AccountMeta(pubkey=params.token_program, is_signer=False, is_writable=False)
        named_accounts: NamedAccounts = [
            ("authority", AccountMeta(pubkey=params.authority, is_signer=True, is_writable=False)),
            ("wallet", AccountMeta(pubkey=params.wallet, is_signer=False, is_writable=True)),
            ("platform_fee_token", AccountMeta(pubkey=params.platform_fee_token, is_signer=False, is_writable=True)),
            ("cash", AccountMeta(pubkey=params.cash, is_signer=False, is_writable=True)),
            ("pass_key", AccountMeta(pubkey=_require_pass_key(params.pass_key), is_signer=True, is_writable=False)),
        ]
        named_accounts.extend(self._redeem_token_accounts(params))
        named_accounts.append(("system_program", AccountMeta(pubkey=ids.system, is_signer=False, is_writable=False)))
        named_accounts.append(("token_program", token_program))
        named_accounts.extend(self._redeem_optional_accounts(params))
        # The program reads the token program a second time, right before the ATA program.
        named_accounts.append(("token_program", token_program))
        named_accounts.append(
            ("associated_token_program", AccountMeta(pubkey=ids.associated_token, is_signer=False, is_writable=False))
        )
        return named_accounts
