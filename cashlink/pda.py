from enum import Enum
from typing import Tuple, Union

from solders.pubkey import Pubkey

from .constants import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    CASH_PREFIX,
    FINGERPRINT_PREFIX,
    REDEMPTION_PREFIX,
    TOKEN_PROGRAM_ID,
)
from .errors import InvalidInput

Seed = Union[Pubkey, str, bytes, int]

MAX_SEED_LEN = 32


class AddressKind(Enum):
    CASH = CASH_PREFIX
    REDEMPTION = REDEMPTION_PREFIX
    FINGERPRINT = FINGERPRINT_PREFIX


def encode_seed(seed: Seed) -> bytes:
    """Byte form of one seed: raw key bytes, UTF-8 text, or a single enum byte."""
    if isinstance(seed, Pubkey):
        return bytes(seed)
    if isinstance(seed, str):
        raw = seed.encode("utf-8")
    elif isinstance(seed, (bytes, bytearray)):
        raw = bytes(seed)
    elif isinstance(seed, int):
        if not 0 <= int(seed) <= 255:
            raise InvalidInput(f"Enum seed out of range: {seed}")
        return bytes([int(seed)])
    else:
        raise InvalidInput(f"Unsupported seed type: {type(seed).__name__}")
    if len(raw) > MAX_SEED_LEN:
        raise InvalidInput(f"Seed longer than {MAX_SEED_LEN} bytes")
    return raw


def derive(kind: AddressKind, program_id: Pubkey, *seeds: Seed) -> Tuple[Pubkey, int]:
    return Pubkey.find_program_address([kind.value, *(encode_seed(s) for s in seeds)], program_id)


def cash_address(program_id: Pubkey, reference_or_pass_key: Union[str, Pubkey]) -> Tuple[Pubkey, int]:
    return derive(AddressKind.CASH, program_id, reference_or_pass_key)


def redemption_address(program_id: Pubkey, cash: Pubkey, wallet: Pubkey) -> Tuple[Pubkey, int]:
    return derive(AddressKind.REDEMPTION, program_id, cash, wallet)


def fingerprint_address(program_id: Pubkey, cash: Pubkey, fingerprint: Pubkey) -> Tuple[Pubkey, int]:
    return derive(AddressKind.FINGERPRINT, program_id, cash, fingerprint)


def derive_ata(
    owner: Pubkey,
    mint: Pubkey,
    token_program: Pubkey = TOKEN_PROGRAM_ID,
    ata_program: Pubkey = ASSOCIATED_TOKEN_PROGRAM_ID,
) -> Pubkey:
    return Pubkey.find_program_address(
        [bytes(owner), bytes(token_program), bytes(mint)], ata_program
    )[0]
