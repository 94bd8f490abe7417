from __future__ import annotations

import abc
import logging
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Dict, FrozenSet, List, Optional, Tuple

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey

from ..config import ProgramIds
from ..constants import SYSVAR_CLOCK_PUBKEY, SYSVAR_RENT_PUBKEY, SYSVAR_SLOT_HASHES_PUBKEY
from ..errors import (
    AccountAlreadyCanceled,
    AccountAlreadySettled,
    AccountHasRedemptions,
    AccountNotCanceled,
    InvalidInput,
    InvalidState,
    MaxRedemptionsReached,
)
from ..layouts import (
    CLOSE_TAG,
    FINGERPRINT_ACCOUNT_LEN,
    REDEMPTION_ACCOUNT_LEN,
    FingerprintLayout,
    RedemptionLayout,
    build_padded,
    encode_instruction,
    parse_record,
)
from ..pda import Seed, cash_address, fingerprint_address, redemption_address
from ..state import AccountType, CashLink, CashLinkState, DistributionType, Fingerprint, Redemption

logger = logging.getLogger("cashlink.protocol")

NamedAccounts = List[Tuple[str, AccountMeta]]


class ProtocolVersion(str, Enum):
    REFERENCE = "reference"
    PASS_KEY = "pass_key"


@dataclass
class InitCashParams:
    authority: Pubkey
    owner: Pubkey
    fee_payer: Pubkey
    cash: Pubkey
    cash_bump: int
    mint: Pubkey
    vault_token: Pubkey
    owner_token: Pubkey
    token_program: Pubkey
    amount: int
    fee_bps: int
    max_num_redemptions: int
    distribution_type: DistributionType = DistributionType.FIXED
    network_fee: int = 0
    base_fee_to_redeem: int = 0
    rent_fee_to_redeem: int = 0
    min_amount: Optional[int] = None
    fingerprint_enabled: Optional[bool] = None
    cash_reference: Optional[str] = None
    pass_key: Optional[Pubkey] = None
    num_days_to_expire: int = 0


@dataclass
class RedeemCashParams:
    authority: Pubkey
    wallet: Pubkey
    fee_payer: Pubkey
    cash: Pubkey
    cash_bump: int
    mint: Pubkey
    token_program: Pubkey
    wallet_token: Pubkey
    owner_token: Pubkey
    platform_fee_token: Pubkey
    fee_payer_token: Pubkey
    vault_token: Pubkey
    cash_reference: Optional[str] = None
    pass_key: Optional[Pubkey] = None
    referrer: Optional[Pubkey] = None
    referrer_token: Optional[Pubkey] = None
    referrer_fee_bps: Optional[int] = None
    referee_fee_bps: Optional[int] = None
    fingerprint: Optional[Pubkey] = None
    fingerprint_pda: Optional[Pubkey] = None
    fingerprint_bump: Optional[int] = None
    weight_ppm: Optional[int] = None
    rate_usd: Optional[str] = None


@dataclass
class CancelCashParams:
    authority: Pubkey
    fee_payer: Pubkey
    cash: Pubkey
    cash_bump: int
    mint: Pubkey
    owner_token: Pubkey
    vault_token: Pubkey
    token_program: Pubkey
    cash_reference: Optional[str] = None
    pass_key: Optional[Pubkey] = None


@dataclass
class CloseCashParams:
    authority: Pubkey
    cash: Pubkey
    destination: Pubkey


def to_bytes32(key: Pubkey) -> List[int]:
    return list(bytes(key))


def from_bytes32(raw) -> Pubkey:
    return Pubkey.from_bytes(bytes(raw))


class CashProtocol(abc.ABC):
    """One program build: its seeds, account layout, instruction encoding and key lists."""

    version: ClassVar[ProtocolVersion]
    account_len: ClassVar[int]
    state_codes: ClassVar[Dict[int, CashLinkState]]
    closable_states: ClassVar[FrozenSet[CashLinkState]]
    uses_redemption_record: ClassVar[bool] = False

    def __init__(self, program_ids: Optional[ProgramIds] = None):
        self.program_ids = program_ids or ProgramIds()

    @property
    def program_id(self) -> Pubkey:
        return self.program_ids.cash

    # ── addresses ──

    @abc.abstractmethod
    def link_seed(self, cash_reference: Optional[str] = None, pass_key: Optional[Pubkey] = None) -> Seed:
        ...

    def find_cash_address(
        self, cash_reference: Optional[str] = None, pass_key: Optional[Pubkey] = None
    ) -> Tuple[Pubkey, int]:
        return cash_address(self.program_id, self.link_seed(cash_reference, pass_key))

    def find_redemption_address(self, cash: Pubkey, wallet: Pubkey) -> Tuple[Pubkey, int]:
        return redemption_address(self.program_id, cash, wallet)

    def find_fingerprint_address(self, cash: Pubkey, fingerprint: Pubkey) -> Tuple[Pubkey, int]:
        return fingerprint_address(self.program_id, cash, fingerprint)

    # ── records ──

    def decode_state(self, raw: int) -> CashLinkState:
        try:
            return self.state_codes[raw]
        except KeyError:
            raise ValueError(f"Unknown {self.version.value} state {raw}") from None

    def encode_state(self, state: CashLinkState) -> int:
        for raw, value in self.state_codes.items():
            if value == state:
                return raw
        raise InvalidInput(f"State {state.value} does not exist in the {self.version.value} program")

    @abc.abstractmethod
    def decode_cash(self, address: Pubkey, data: bytes) -> CashLink:
        ...

    @abc.abstractmethod
    def encode_cash(self, link: CashLink) -> bytes:
        ...

    def decode_redemption(
        self, address: Pubkey, data: bytes, cash_link: Optional[Pubkey] = None, wallet: Optional[Pubkey] = None
    ) -> Redemption:
        parsed = parse_record(RedemptionLayout, data, REDEMPTION_ACCOUNT_LEN)
        if parsed.account_type != AccountType.REDEMPTION:
            raise ValueError(f"Not a redemption account: type {parsed.account_type}")
        return Redemption(
            address=address,
            redeemed_at=parsed.redeemed_at,
            amount=parsed.amount,
            cash_link=cash_link,
            wallet=wallet,
        )

    def encode_redemption(self, redemption: Redemption) -> bytes:
        return build_padded(
            RedemptionLayout,
            {
                "account_type": int(redemption.account_type),
                "redeemed_at": redemption.redeemed_at,
                "amount": redemption.amount,
            },
            REDEMPTION_ACCOUNT_LEN,
        )

    def decode_fingerprint(self, address: Pubkey, data: bytes) -> Fingerprint:
        parsed = parse_record(FingerprintLayout, data, FINGERPRINT_ACCOUNT_LEN)
        if parsed.account_type != AccountType.FINGERPRINT:
            raise ValueError(f"Not a fingerprint account: type {parsed.account_type}")
        return Fingerprint(address=address)

    def encode_fingerprint(self, fingerprint: Fingerprint) -> bytes:
        return build_padded(
            FingerprintLayout, {"account_type": int(fingerprint.account_type)}, FINGERPRINT_ACCOUNT_LEN
        )

    # ── state rules ──

    def check_redeemable(self, link: CashLink) -> None:
        if link.state in (CashLinkState.CANCELED, CashLinkState.EXPIRED):
            raise AccountAlreadyCanceled()
        if link.state == CashLinkState.REDEEMED:
            raise AccountAlreadySettled()
        if link.state not in (CashLinkState.INITIALIZED, CashLinkState.REDEEMING):
            raise InvalidState(f"Cannot redeem a link in state {link.state.value}")
        if link.total_redemptions == link.max_num_redemptions:
            raise MaxRedemptionsReached()

    def check_cancelable(self, link: CashLink) -> None:
        if link.state in (CashLinkState.CANCELED, CashLinkState.EXPIRED):
            raise AccountAlreadyCanceled()
        if link.state == CashLinkState.REDEEMED:
            raise AccountAlreadySettled()

    def check_closable(self, link: CashLink) -> None:
        if link.state not in self.closable_states:
            raise AccountNotCanceled()
        if link.total_redemptions != 0:
            raise AccountHasRedemptions()

    # ── instructions ──

    @abc.abstractmethod
    def encode_init_args(self, params: InitCashParams) -> bytes:
        ...

    @abc.abstractmethod
    def encode_redeem_args(self, params: RedeemCashParams) -> bytes:
        ...

    @abc.abstractmethod
    def encode_cancel_args(self, params: CancelCashParams) -> bytes:
        ...

    def encode_close_args(self, params: CloseCashParams) -> bytes:
        return encode_instruction(CLOSE_TAG)

    @abc.abstractmethod
    def init_accounts(self, params: InitCashParams) -> NamedAccounts:
        ...

    @abc.abstractmethod
    def cancel_accounts(self, params: CancelCashParams) -> NamedAccounts:
        ...

    def redeem_accounts(self, params: RedeemCashParams) -> NamedAccounts:
        named_accounts: NamedAccounts = [
            ("authority", AccountMeta(pubkey=params.authority, is_signer=True, is_writable=False)),
            ("wallet", AccountMeta(pubkey=params.wallet, is_signer=False, is_writable=True)),
            ("platform_fee_token", AccountMeta(pubkey=params.platform_fee_token, is_signer=False, is_writable=True)),
            ("cash", AccountMeta(pubkey=params.cash, is_signer=False, is_writable=True)),
        ]
        if params.pass_key is not None:
            named_accounts.append(("pass_key", AccountMeta(pubkey=params.pass_key, is_signer=True, is_writable=False)))
        named_accounts.extend(self._redeem_token_accounts(params))
        named_accounts.append(
            ("token_program", AccountMeta(pubkey=params.token_program, is_signer=False, is_writable=False))
        )
        named_accounts.extend(self._redeem_optional_accounts(params))
        named_accounts.append(
            (
                "associated_token_program",
                AccountMeta(pubkey=self.program_ids.associated_token, is_signer=False, is_writable=False),
            )
        )
        return named_accounts

    def _redeem_token_accounts(self, params: RedeemCashParams) -> NamedAccounts:
        return [
            ("owner_token", AccountMeta(pubkey=params.owner_token, is_signer=False, is_writable=True)),
            ("fee_payer", AccountMeta(pubkey=params.fee_payer, is_signer=True, is_writable=True)),
            ("fee_payer_token", AccountMeta(pubkey=params.fee_payer_token, is_signer=False, is_writable=True)),
            ("vault_token", AccountMeta(pubkey=params.vault_token, is_signer=False, is_writable=True)),
            ("wallet_token", AccountMeta(pubkey=params.wallet_token, is_signer=False, is_writable=True)),
            ("mint", AccountMeta(pubkey=params.mint, is_signer=False, is_writable=False)),
            ("clock", AccountMeta(pubkey=SYSVAR_CLOCK_PUBKEY, is_signer=False, is_writable=False)),
            ("rent", AccountMeta(pubkey=SYSVAR_RENT_PUBKEY, is_signer=False, is_writable=False)),
            ("slot_hashes", AccountMeta(pubkey=SYSVAR_SLOT_HASHES_PUBKEY, is_signer=False, is_writable=False)),
        ]

    def _redeem_optional_accounts(self, params: RedeemCashParams) -> NamedAccounts:
        """Referrer and fingerprint accounts, present only when those features are in use."""
        named_accounts: NamedAccounts = []
        # Must match the encoded option: Some(fee), zero included, carries the referrer.
        if params.referrer_fee_bps is not None:
            if params.referrer is None or params.referrer_token is None:
                raise InvalidInput("Referrer accounts required with a referrer fee")
            named_accounts.append(("referrer", AccountMeta(pubkey=params.referrer, is_signer=False, is_writable=True)))
            named_accounts.append(
                ("referrer_token", AccountMeta(pubkey=params.referrer_token, is_signer=False, is_writable=True))
            )
        if params.fingerprint is not None:
            if params.fingerprint_pda is None:
                raise InvalidInput("Fingerprint address required with a fingerprint")
            named_accounts.append(
                ("fingerprint_pda", AccountMeta(pubkey=params.fingerprint_pda, is_signer=False, is_writable=True))
            )
            named_accounts.append(
                ("fingerprint", AccountMeta(pubkey=params.fingerprint, is_signer=False, is_writable=False))
            )
        return named_accounts

    def close_accounts(self, params: CloseCashParams) -> NamedAccounts:
        return [
            ("authority", AccountMeta(pubkey=params.authority, is_signer=True, is_writable=False)),
            ("cash", AccountMeta(pubkey=params.cash, is_signer=False, is_writable=True)),
            ("destination", AccountMeta(pubkey=params.destination, is_signer=False, is_writable=True)),
            ("system_program", AccountMeta(pubkey=self.program_ids.system, is_signer=False, is_writable=False)),
        ]

    def _instruction(self, name: str, named_accounts: NamedAccounts, data: bytes) -> Instruction:
        # Positional list only; the program indexes accounts by position.
        accounts = [meta for _, meta in named_accounts]
        if logger.isEnabledFor(logging.DEBUG):
            for idx, (label, meta) in enumerate(named_accounts):
                logger.debug("%s account %s: %s = %s", name, idx, label, meta.pubkey)
        return Instruction(program_id=self.program_id, data=data, accounts=accounts)

    def build_init_ix(self, params: InitCashParams) -> Instruction:
        return self._instruction("init", self.init_accounts(params), self.encode_init_args(params))

    def build_redeem_ix(self, params: RedeemCashParams) -> Instruction:
        return self._instruction("redeem", self.redeem_accounts(params), self.encode_redeem_args(params))

    def build_cancel_ix(self, params: CancelCashParams) -> Instruction:
        return self._instruction("cancel", self.cancel_accounts(params), self.encode_cancel_args(params))

    def build_close_ix(self, params: CloseCashParams) -> Instruction:
        return self._instruction("close", self.close_accounts(params), self.encode_close_args(params))
