"""Fee and claim arithmetic."""

from __future__ import annotations

import pytest

from cashlink.constants import U64_MAX
from cashlink.errors import AmountOverflow, InvalidAmount, InvalidInput, WeightRequired
from cashlink.fees import (
    ClaimRange,
    calculate_fee,
    claim_amount,
    claim_bounds,
    is_funded,
    max_fee_to_redeem,
    platform_fee,
    platform_fee_per_redemption,
    redemption_fee,
    referral_split,
    required_vault_balance,
    total_required_funding,
)
from cashlink.state import DistributionType

from tests.factories import make_cash_link


# ── Test 1: basic fee math ──


def test_platform_fee_floors():
    assert calculate_fee(1000, 250) == 25
    assert calculate_fee(999, 1) == 0
    assert platform_fee(1000, 250) == 25
    assert platform_fee_per_redemption(1000, 250, 4) == 6


def test_fee_rejects_bad_input():
    with pytest.raises(InvalidInput):
        calculate_fee(1000, 70_000)
    with pytest.raises(AmountOverflow):
        calculate_fee(U64_MAX + 1, 1)
    with pytest.raises(InvalidAmount):
        platform_fee_per_redemption(1000, 250, 0)


def test_max_fee_to_redeem_overflow():
    assert max_fee_to_redeem(100, 200) == 300
    with pytest.raises(AmountOverflow):
        max_fee_to_redeem(U64_MAX, 1)


# ── Test 2: funding requirements ──


def test_total_required_funding():
    total = total_required_funding(
        1000,
        250,
        4,
        network_fee=5000,
        base_fee_to_redeem=100,
        rent_fee_to_redeem=200,
        distribution_type=DistributionType.EQUAL,
    )
    assert total == 1000 + 25 + 5000 + 4 * 300


def test_fixed_must_divide_evenly():
    assert total_required_funding(1000, 0, 4) == 1000
    with pytest.raises(InvalidAmount):
        total_required_funding(1000, 0, 3)


def test_random_min_amount_bounds():
    assert total_required_funding(1000, 0, 3, distribution_type=DistributionType.RANDOM, min_amount=10) == 1000
    with pytest.raises(InvalidAmount):
        total_required_funding(1000, 0, 3, distribution_type=DistributionType.RANDOM, min_amount=1001)
    with pytest.raises(InvalidAmount):
        total_required_funding(1000, 0, 3, distribution_type=DistributionType.RANDOM, min_amount=0)


def test_random_needs_min_amount():
    with pytest.raises(InvalidAmount):
        total_required_funding(1000, 0, 3, distribution_type=DistributionType.RANDOM)
    with pytest.raises(InvalidAmount):
        total_required_funding(1000, 0, 3, distribution_type=DistributionType.RANDOM, min_amount=None)


def test_funding_rejects_zero_and_overflow():
    with pytest.raises(InvalidAmount):
        total_required_funding(0, 0, 1)
    with pytest.raises(InvalidAmount):
        total_required_funding(10, 0, 0)
    with pytest.raises(AmountOverflow):
        total_required_funding(U64_MAX, 10_000, 1)


# ── Test 3: claim amounts per distribution ──


def test_equal_and_fixed_claims(protocol):
    link = make_cash_link(protocol)
    assert claim_bounds(link) == ClaimRange(250, 250)
    assert claim_amount(link) == 250
    fixed = make_cash_link(protocol, distribution_type=DistributionType.FIXED)
    assert claim_amount(fixed) == 250


def test_weighted_claims(protocol):
    link = make_cash_link(protocol, distribution_type=DistributionType.WEIGHTED, total_weight_ppm=500_000)
    assert claim_amount(link, 250_000) == 250
    with pytest.raises(WeightRequired):
        claim_bounds(link)
    with pytest.raises(InvalidInput):
        claim_bounds(link, 600_000)
    with pytest.raises(InvalidInput):
        claim_bounds(link, 0)


def test_weighted_claim_capped_by_remaining(protocol):
    link = make_cash_link(protocol, distribution_type=DistributionType.WEIGHTED, remaining_amount=100)
    assert claim_amount(link, 500_000) == 100


def test_random_claims(protocol):
    link = make_cash_link(protocol, distribution_type=DistributionType.RANDOM, min_amount=10)
    bounds = claim_bounds(link)
    assert bounds == ClaimRange(10, 500)
    assert bounds.exact is None
    assert claim_amount(link) is None


def test_random_last_claim_takes_remainder(protocol):
    link = make_cash_link(
        protocol, distribution_type=DistributionType.RANDOM, total_redemptions=3, remaining_amount=137
    )
    assert claim_amount(link) == 137
    single = make_cash_link(protocol, distribution_type=DistributionType.RANDOM, max_num_redemptions=1)
    assert claim_amount(single) == 1000


# ── Test 4: per-redemption fees and referral split ──


def test_redemption_fee(protocol):
    first = make_cash_link(protocol)
    assert redemption_fee(first) == 6 + 300 + 5000
    assert redemption_fee(first, recipient_exists=True) == 6 + 100 + 5000
    later = make_cash_link(protocol, total_redemptions=1)
    assert redemption_fee(later) == 306


def test_referral_split():
    split = referral_split(100, 2000, 500)
    assert (split.platform, split.referrer, split.referee) == (75, 20, 5)
    with pytest.raises(InvalidInput):
        referral_split(100, 9000, 2000)


# ── Test 5: vault funding checks ──


def test_required_vault_balance(protocol):
    link = make_cash_link(protocol)
    assert required_vault_balance(link) == 1000 + 4 * 306 + 5000
    half = make_cash_link(protocol, total_redemptions=2, remaining_amount=500)
    assert required_vault_balance(half) == 500 + 2 * 306


def test_is_funded_native_excludes_rent():
    assert is_funded(100, 100)
    assert not is_funded(99, 100)
    assert not is_funded(2_039_380, 200, native=True, rent_exempt_minimum=2_039_280)
    assert is_funded(2_039_480, 200, native=True, rent_exempt_minimum=2_039_280)
