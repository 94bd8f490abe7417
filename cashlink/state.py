from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional

from solders.pubkey import Pubkey


class AccountType(IntEnum):
    UNINITIALIZED = 0
    CASH = 1
    REDEMPTION = 2
    FINGERPRINT = 3


class DistributionType(IntEnum):
    FIXED = 0
    RANDOM = 1
    WEIGHTED = 2
    EQUAL = 3


class CashLinkState(str, Enum):
    """Link lifecycle, shared by every program revision."""

    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    REDEEMING = "redeeming"
    REDEEMED = "redeemed"
    CANCELED = "canceled"
    EXPIRED = "expired"


TERMINAL_STATES = frozenset({CashLinkState.REDEEMED, CashLinkState.CANCELED, CashLinkState.EXPIRED})
REDEEMABLE_STATES = frozenset({CashLinkState.INITIALIZED, CashLinkState.REDEEMING})


@dataclass
class CashLink:
    address: Pubkey
    state: CashLinkState
    authority: Pubkey
    owner: Pubkey
    mint: Pubkey
    amount: int
    fee_bps: int
    network_fee: int
    base_fee_to_redeem: int
    rent_fee_to_redeem: int
    remaining_amount: int
    distribution_type: DistributionType
    total_redemptions: int
    max_num_redemptions: int
    min_amount: int
    fingerprint_enabled: bool
    pass_key: Optional[Pubkey] = None
    total_weight_ppm: int = 0
    expires_at: Optional[int] = None
    last_redeemed_at: Optional[int] = None
    canceled_at: Optional[int] = None
    account_type: AccountType = AccountType.CASH

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def is_locked(self) -> bool:
        return self.pass_key is not None

    @property
    def redemptions_remaining(self) -> int:
        return self.max_num_redemptions - self.total_redemptions

    @property
    def is_fully_redeemed(self) -> bool:
        return (
            self.total_redemptions == self.max_num_redemptions
            or self.remaining_amount == 0
            or self.remaining_amount < self.min_amount * self.redemptions_remaining
        )


@dataclass
class Redemption:
    address: Pubkey
    redeemed_at: int
    amount: int
    cash_link: Optional[Pubkey] = None
    wallet: Optional[Pubkey] = None
    account_type: AccountType = AccountType.REDEMPTION


@dataclass
class Fingerprint:
    """Presence marker; existing on chain means the fingerprint already redeemed."""

    address: Pubkey
    account_type: AccountType = AccountType.FINGERPRINT


@dataclass
class TokenAccount:
    address: Pubkey
    mint: Pubkey
    owner: Pubkey
    amount: int
    program_id: Pubkey
    is_native: Optional[int] = None
    lamports: int = 0
