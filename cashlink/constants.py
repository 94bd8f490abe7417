from solders.pubkey import Pubkey
from spl.token.constants import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    TOKEN_2022_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    WRAPPED_SOL_MINT,
)

CASH_PROGRAM_ID = Pubkey.from_string("cashXAE5UP18RyU7ByFWfxu93kGg69KzoktacNQDukW")
LEGACY_CASH_PROGRAM_ID = Pubkey.from_string("cashQKx31fVsquVKXQ9prKqVtSYf8SqcYt9Jyvg966q")
SYS_PROGRAM_ID = Pubkey.from_string("11111111111111111111111111111111")
MEMO_PROGRAM_ID = Pubkey.from_string("MemoSq4gqABAXKb96qnH8TysNcWxMyWCqXgDLGmfcHr")
COMPUTE_BUDGET_PROGRAM_ID = Pubkey.from_string("ComputeBudget111111111111111111111111111111")

SYSVAR_RENT_PUBKEY = Pubkey.from_string("SysvarRent111111111111111111111111111111111")
SYSVAR_CLOCK_PUBKEY = Pubkey.from_string("SysvarC1ock11111111111111111111111111111111")
SYSVAR_SLOT_HASHES_PUBKEY = Pubkey.from_string("SysvarS1otHashes111111111111111111111111111")

NATIVE_MINT = WRAPPED_SOL_MINT
NATIVE_MINT_2022 = Pubkey.from_string("9pan9bMn5HatX4EJdBwg9VgCa7Uz5HL8N1m5D3NdXejP")

# SPL token account size and its rent-exempt minimum on mainnet
TOKEN_ACCOUNT_LEN = 165
TOKEN_ACCOUNT_RENT = 2_039_280

CASH_PREFIX = b"cash"
REDEMPTION_PREFIX = b"redemption"
FINGERPRINT_PREFIX = b"fingerprint"

BPS_DENOMINATOR = 10_000
PPM_DENOMINATOR = 1_000_000
U64_MAX = 2**64 - 1
U16_MAX = 2**16 - 1

__all__ = [
    "ASSOCIATED_TOKEN_PROGRAM_ID",
    "BPS_DENOMINATOR",
    "CASH_PREFIX",
    "CASH_PROGRAM_ID",
    "COMPUTE_BUDGET_PROGRAM_ID",
    "FINGERPRINT_PREFIX",
    "LEGACY_CASH_PROGRAM_ID",
    "MEMO_PROGRAM_ID",
    "NATIVE_MINT",
    "NATIVE_MINT_2022",
    "PPM_DENOMINATOR",
    "REDEMPTION_PREFIX",
    "SYSVAR_CLOCK_PUBKEY",
    "SYSVAR_RENT_PUBKEY",
    "SYSVAR_SLOT_HASHES_PUBKEY",
    "SYS_PROGRAM_ID",
    "TOKEN_2022_PROGRAM_ID",
    "TOKEN_ACCOUNT_LEN",
    "TOKEN_ACCOUNT_RENT",
    "TOKEN_PROGRAM_ID",
    "U16_MAX",
    "U64_MAX",
]
