"""Fee and claim amount arithmetic.

Everything here works on Python ints and checks the u64 range explicitly, the
same bounds the program enforces with checked arithmetic.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .constants import BPS_DENOMINATOR, PPM_DENOMINATOR, U16_MAX, U64_MAX
from .errors import AmountOverflow, InvalidAmount, InvalidInput, WeightRequired
from .state import CashLink, DistributionType


@dataclass(frozen=True)
class ClaimRange:
    low: int
    high: int

    @property
    def exact(self) -> Optional[int]:
        return self.low if self.low == self.high else None


@dataclass(frozen=True)
class ReferralSplit:
    platform: int
    referrer: int
    referee: int


def check_u64(value: int, name: str = "amount") -> int:
    if value < 0 or value > U64_MAX:
        raise AmountOverflow(f"{name} out of u64 range: {value}")
    return value


def calculate_fee(amount: int, bps: int) -> int:
    check_u64(amount)
    if bps < 0 or bps > U16_MAX:
        raise InvalidInput(f"fee bps out of range: {bps}")
    return check_u64(amount * bps // BPS_DENOMINATOR, "fee")


def platform_fee(amount: int, fee_bps: int) -> int:
    return calculate_fee(amount, fee_bps)


def platform_fee_per_redemption(amount: int, fee_bps: int, max_num_redemptions: int) -> int:
    if max_num_redemptions <= 0:
        raise InvalidAmount("max_num_redemptions must be positive")
    return platform_fee(amount, fee_bps) // max_num_redemptions


def max_fee_to_redeem(base_fee_to_redeem: int, rent_fee_to_redeem: int) -> int:
    return check_u64(check_u64(base_fee_to_redeem) + check_u64(rent_fee_to_redeem), "fee to redeem")


def total_required_funding(
    amount: int,
    fee_bps: int,
    max_num_redemptions: int,
    network_fee: int = 0,
    base_fee_to_redeem: int = 0,
    rent_fee_to_redeem: int = 0,
    distribution_type: DistributionType = DistributionType.FIXED,
    min_amount: Optional[int] = None,
) -> int:
    """Lamports or token units the owner must escrow when the link is created."""
    check_u64(amount)
    if amount == 0:
        raise InvalidAmount("amount must be positive")
    if max_num_redemptions <= 0 or max_num_redemptions > U16_MAX:
        raise InvalidAmount(f"max_num_redemptions out of range: {max_num_redemptions}")
    if distribution_type == DistributionType.FIXED and amount % max_num_redemptions != 0:
        raise InvalidAmount("Fixed distribution amount must divide evenly across redemptions")
    if distribution_type == DistributionType.RANDOM:
        if min_amount is None or min_amount <= 0 or min_amount > amount:
            raise InvalidAmount("Random distribution needs 0 < min_amount <= amount")
    per_redeem = max_fee_to_redeem(base_fee_to_redeem, rent_fee_to_redeem)
    total = amount + platform_fee(amount, fee_bps) + check_u64(network_fee, "network fee")
    total += per_redeem * max_num_redemptions
    return check_u64(total, "total")


def claim_bounds(link: CashLink, weight_ppm: Optional[int] = None) -> ClaimRange:
    """Range the next redemption of ``link`` can pay out.

    Fixed, equal and weighted claims are exact. Random claims are picked on
    chain between the minimum and twice the average of what is left, and the
    last redemption always takes the remainder.
    """
    remaining = link.remaining_amount
    if link.max_num_redemptions <= 0:
        raise InvalidAmount("max_num_redemptions must be positive")
    dist = link.distribution_type
    if dist in (DistributionType.FIXED, DistributionType.EQUAL):
        amount = link.amount // link.max_num_redemptions
        return ClaimRange(amount, amount)
    if dist == DistributionType.WEIGHTED:
        if weight_ppm is None:
            raise WeightRequired()
        if weight_ppm <= 0 or weight_ppm > PPM_DENOMINATOR:
            raise InvalidInput(f"weight_ppm out of range: {weight_ppm}")
        if link.total_weight_ppm + weight_ppm > PPM_DENOMINATOR:
            raise InvalidInput("Total weight would exceed 1,000,000 ppm")
        amount = min(check_u64(link.amount * weight_ppm) // PPM_DENOMINATOR, remaining)
        return ClaimRange(amount, amount)

    remaining_redemptions = link.redemptions_remaining
    if link.max_num_redemptions == 1 or remaining_redemptions == 1:
        return ClaimRange(remaining, remaining)
    if remaining_redemptions <= 0:
        return ClaimRange(0, 0)
    average = remaining // remaining_redemptions
    low = min(link.min_amount, remaining)
    high = min(average * 2, remaining)
    if high > low:
        return ClaimRange(low, high)
    return ClaimRange(low, low)


def claim_amount(link: CashLink, weight_ppm: Optional[int] = None) -> Optional[int]:
    """Exact payout of the next redemption, or None when it is random."""
    return claim_bounds(link, weight_ppm).exact


def redemption_fee(link: CashLink, recipient_exists: bool = False) -> int:
    """Fee the vault pays out alongside the next claim.

    The first redemption also carries the network fee, and the rent fee is
    waived when the claimant's token account already exists.
    """
    fee = platform_fee_per_redemption(link.amount, link.fee_bps, link.max_num_redemptions)
    fee += max_fee_to_redeem(link.base_fee_to_redeem, link.rent_fee_to_redeem)
    if link.total_redemptions == 0:
        fee += link.network_fee
    if recipient_exists:
        fee -= link.rent_fee_to_redeem
    return check_u64(fee, "redemption fee")


def referral_split(platform_fee_amount: int, referrer_fee_bps: int, referee_fee_bps: int = 0) -> ReferralSplit:
    if referrer_fee_bps + referee_fee_bps > BPS_DENOMINATOR:
        raise InvalidInput("Referral commission exceeds 10000 bps")
    referrer = calculate_fee(platform_fee_amount, referrer_fee_bps)
    referee = calculate_fee(platform_fee_amount, referee_fee_bps)
    return ReferralSplit(platform=platform_fee_amount - referrer - referee, referrer=referrer, referee=referee)


def required_vault_balance(link: CashLink) -> int:
    """Balance the vault must still hold to honour every outstanding claim."""
    outstanding = link.redemptions_remaining
    per_redeem = platform_fee_per_redemption(link.amount, link.fee_bps, link.max_num_redemptions)
    per_redeem += max_fee_to_redeem(link.base_fee_to_redeem, link.rent_fee_to_redeem)
    required = link.remaining_amount + per_redeem * outstanding
    if link.total_redemptions == 0:
        required += link.network_fee
    return check_u64(required, "required balance")


def is_funded(balance: int, required: int, native: bool = False, rent_exempt_minimum: int = 0) -> bool:
    available = balance - rent_exempt_minimum if native else balance
    return available >= required
