"""Borsh layouts for cash link accounts and instruction arguments.

Account records are stored at a fixed size and zero padded past the last
encoded field. Public keys are stored as 32 raw bytes.
"""

from borsh_construct import Bool, CStruct, Option, String, U16, U32, U64, U8

from .errors import InvalidInput

CASH_ACCOUNT_LEN = 195
PASS_KEY_CASH_ACCOUNT_LEN = 212
REDEMPTION_ACCOUNT_LEN = 17
FINGERPRINT_ACCOUNT_LEN = 1

INIT_TAG = 0
REDEEM_TAG = 1
CANCEL_TAG = 2
CLOSE_TAG = 3

# Current program build: links are seeded by a reference string.
CashLayout = CStruct(
    "account_type" / U8,
    "authority" / U8[32],
    "state" / U8,
    "amount" / U64,
    "fee_bps" / U16,
    "network_fee" / U64,
    "base_fee_to_redeem" / U64,
    "rent_fee_to_redeem" / U64,
    "remaining_amount" / U64,
    "distribution_type" / U8,
    "owner" / U8[32],
    "mint" / U8[32],
    "total_redemptions" / U16,
    "max_num_redemptions" / U16,
    "min_amount" / U64,
    "fingerprint_enabled" / Bool,
    "pass_key" / Option(U8[32]),
    "total_weight_ppm" / U32,
)

# Earlier program build: links are seeded by the raw pass-key and expire.
PassKeyCashLayout = CStruct(
    "account_type" / U8,
    "state" / U8,
    "amount" / U64,
    "fee_bps" / U16,
    "network_fee" / U64,
    "base_fee_to_redeem" / U64,
    "rent_fee_to_redeem" / U64,
    "remaining_amount" / U64,
    "distribution_type" / U8,
    "owner" / U8[32],
    "authority" / U8[32],
    "mint" / U8[32],
    "pass_key" / U8[32],
    "total_redemptions" / U16,
    "max_num_redemptions" / U16,
    "min_amount" / U64,
    "fingerprint_enabled" / Bool,
    "expires_at" / U64,
    "last_redeemed_at" / Option(U64),
    "canceled_at" / Option(U64),
)

# Parent link and claiming wallet are the address seeds, not stored fields.
RedemptionLayout = CStruct(
    "account_type" / U8,
    "redeemed_at" / U64,
    "amount" / U64,
)

FingerprintLayout = CStruct("account_type" / U8)

InitCashArgsLayout = CStruct(
    "amount" / U64,
    "fee_bps" / U16,
    "network_fee" / U64,
    "base_fee_to_redeem" / U64,
    "rent_fee_to_redeem" / U64,
    "cash_bump" / U8,
    "distribution_type" / U8,
    "max_num_redemptions" / U16,
    "min_amount" / Option(U64),
    "fingerprint_enabled" / Option(Bool),
    "cash_reference" / String,
    "is_locked" / Bool,
)
RedeemCashArgsLayout = CStruct(
    "cash_bump" / U8,
    "cash_reference" / String,
    "referrer_fee_bps" / Option(U16),
    "referee_fee_bps" / Option(U16),
    "weight_ppm" / Option(U32),
    "rate_usd" / Option(String),
    "fingerprint_bump" / Option(U8),
)
CancelCashArgsLayout = CStruct(
    "cash_bump" / U8,
    "cash_reference" / String,
)

InitPassKeyArgsLayout = CStruct(
    "amount" / U64,
    "fee_bps" / U16,
    "network_fee" / U64,
    "base_fee_to_redeem" / U64,
    "rent_fee_to_redeem" / U64,
    "cash_bump" / U8,
    "distribution_type" / U8,
    "max_num_redemptions" / U16,
    "min_amount" / Option(U64),
    "fingerprint_enabled" / Option(Bool),
    "num_days_to_expire" / U8,
)
RedeemPassKeyArgsLayout = CStruct(
    "cash_bump" / U8,
    "fingerprint_bump" / Option(U8),
    "referrer_fee_bps" / Option(U16),
    "referee_fee_bps" / Option(U16),
)
CancelPassKeyArgsLayout = CStruct("cash_bump" / U8)


def encode_instruction(tag: int, layout=None, args=None) -> bytes:
    data = bytes([tag])
    if layout is not None:
        data += layout.build(args)
    return data


def build_padded(layout, values: dict, length: int) -> bytes:
    raw = layout.build(values)
    if len(raw) > length:
        raise InvalidInput(f"Encoded record is {len(raw)} bytes, expected at most {length}")
    return raw.ljust(length, b"\x00")


def parse_record(layout, data: bytes, length: int):
    """Parse a fixed-size record; raises ValueError on a size mismatch."""
    if len(data) != length:
        raise ValueError(f"Expected {length} bytes, got {len(data)}")
    return layout.parse(data)
