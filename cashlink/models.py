from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, field_validator
from solders.pubkey import Pubkey

from .state import CashLink, DistributionType


def _check_pubkey(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    try:
        Pubkey.from_string(value)
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"invalid pubkey {value!r}: {exc}") from exc
    return value


class TransactionPayload(BaseModel):
    transaction: str  # base64 wire transaction
    slot: int
    as_legacy_transaction: bool = False


class TransactionOptions(BaseModel):
    as_legacy_transaction: bool = False
    compute_unit_limit: Optional[int] = Field(default=None, gt=0)
    compute_unit_price: Optional[int] = Field(default=None, ge=0)  # micro-lamports
    address_lookup_table: Optional[str] = None
    commitment: Optional[str] = None
    token_program_id: Optional[str] = None

    @field_validator("address_lookup_table", "token_program_id")
    @classmethod
    def _pubkeys(cls, value):
        return _check_pubkey(value)


class InitializeInput(TransactionOptions):
    wallet: str
    mint: str
    amount: int = Field(gt=0)
    fee_bps: int = Field(default=0, ge=0, le=10_000)
    network_fee: int = Field(default=0, ge=0)
    base_fee_to_redeem: int = Field(default=0, ge=0)
    rent_fee_to_redeem: int = Field(default=0, ge=0)
    max_num_redemptions: int = Field(default=1, gt=0, le=65_535)
    distribution_type: DistributionType = DistributionType.FIXED
    min_amount: Optional[int] = Field(default=None, gt=0)
    fingerprint_enabled: Optional[bool] = None
    cash_reference: Optional[str] = None
    pass_key: Optional[str] = None
    num_days_to_expire: int = Field(default=0, ge=0, le=255)

    @field_validator("wallet", "mint", "pass_key")
    @classmethod
    def _keys(cls, value):
        return _check_pubkey(value)


class CashLinkInput(TransactionOptions):
    cash_reference: Optional[str] = None
    pass_key: Optional[str] = None

    @field_validator("pass_key")
    @classmethod
    def _keys(cls, value):
        return _check_pubkey(value)


class RedeemInput(CashLinkInput):
    wallet: str
    referrer: Optional[str] = None
    referrer_fee_bps: Optional[int] = Field(default=None, ge=0, le=10_000)
    referee_fee_bps: Optional[int] = Field(default=None, ge=0, le=10_000)
    fingerprint: Optional[str] = None
    weight_ppm: Optional[int] = Field(default=None, gt=0, le=1_000_000)
    rate_usd: Optional[str] = None
    memo: Optional[str] = None

    @field_validator("wallet", "referrer", "fingerprint")
    @classmethod
    def _redeem_keys(cls, value):
        return _check_pubkey(value)


class SendRequest(BaseModel):
    transaction: str


class SendResponse(BaseModel):
    signature: str


class CashLinkView(BaseModel):
    address: str
    state: str
    authority: str
    owner: str
    mint: str
    amount: int
    fee_bps: int
    network_fee: int
    base_fee_to_redeem: int
    rent_fee_to_redeem: int
    remaining_amount: int
    distribution_type: str
    total_redemptions: int
    max_num_redemptions: int
    min_amount: int
    fingerprint_enabled: bool
    pass_key: Optional[str] = None
    expires_at: Optional[int] = None
    vault_balance: Optional[int] = None
    is_funded: Optional[bool] = None

    @classmethod
    def from_link(
        cls, link: CashLink, vault_balance: Optional[int] = None, is_funded: Optional[bool] = None
    ) -> "CashLinkView":
        return cls(
            address=str(link.address),
            state=link.state.value,
            authority=str(link.authority),
            owner=str(link.owner),
            mint=str(link.mint),
            amount=link.amount,
            fee_bps=link.fee_bps,
            network_fee=link.network_fee,
            base_fee_to_redeem=link.base_fee_to_redeem,
            rent_fee_to_redeem=link.rent_fee_to_redeem,
            remaining_amount=link.remaining_amount,
            distribution_type=link.distribution_type.name.lower(),
            total_redemptions=link.total_redemptions,
            max_num_redemptions=link.max_num_redemptions,
            min_amount=link.min_amount,
            fingerprint_enabled=link.fingerprint_enabled,
            pass_key=None if link.pass_key is None else str(link.pass_key),
            expires_at=link.expires_at,
            vault_balance=vault_balance,
            is_funded=is_funded,
        )
