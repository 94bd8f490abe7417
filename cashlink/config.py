from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from .constants import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    CASH_PROGRAM_ID,
    MEMO_PROGRAM_ID,
    SYS_PROGRAM_ID,
    TOKEN_2022_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
)


class Settings(BaseSettings):
    solana_rpc: str = "https://api.devnet.solana.com"
    commitment: str = "confirmed"
    protocol_version: str = "reference"
    cash_program_id: Optional[str] = None
    token_program_id: Optional[str] = None
    token_2022_program_id: Optional[str] = None
    associated_token_program_id: Optional[str] = None
    memo_program_id: Optional[str] = None
    fee_wallet: Optional[str] = None
    authority_keypair_path: Optional[str] = None
    fee_payer_keypair_path: Optional[str] = None
    compute_unit_limit: Optional[int] = None
    compute_unit_price: Optional[int] = None  # micro-lamports per compute unit
    address_lookup_table: Optional[str] = None

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", env_prefix="CASHLINK_")


@dataclass(frozen=True)
class ProgramIds:
    """Program addresses a client talks to; swap them for other deployments."""

    cash: Pubkey = CASH_PROGRAM_ID
    token: Pubkey = TOKEN_PROGRAM_ID
    token_2022: Pubkey = TOKEN_2022_PROGRAM_ID
    associated_token: Pubkey = ASSOCIATED_TOKEN_PROGRAM_ID
    system: Pubkey = SYS_PROGRAM_ID
    memo: Pubkey = MEMO_PROGRAM_ID

    @property
    def token_programs(self) -> tuple:
        return (self.token, self.token_2022)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ProgramIds":
        overrides = {}
        for field, value in (
            ("cash", settings.cash_program_id),
            ("token", settings.token_program_id),
            ("token_2022", settings.token_2022_program_id),
            ("associated_token", settings.associated_token_program_id),
            ("memo", settings.memo_program_id),
        ):
            if value:
                overrides[field] = to_pubkey(value, field)
        return cls(**overrides)


def to_pubkey(value: str, name: str = "pubkey") -> Pubkey:
    try:
        return Pubkey.from_string(value)
    except Exception as exc:  # noqa: BLE001
        raise RuntimeError(f"{name} is not a valid pubkey: {exc}") from exc


def load_keypair(path: Optional[str], name: str = "keypair") -> Keypair:
    """Read a JSON byte-array keypair file (the solana-keygen format)."""
    if not path:
        raise RuntimeError(f"{name} path not configured")
    if not os.path.exists(path):
        raise RuntimeError(f"{name} file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
    except Exception as exc:  # noqa: BLE001
        raise RuntimeError(f"Failed to read {name}: {exc}") from exc
    if isinstance(data, list):
        secret_bytes = bytes(data)
    elif isinstance(data, dict) and "secretKey" in data:
        secret_bytes = bytes(data["secretKey"])
    else:
        raise RuntimeError(f"Unsupported {name} format")
    try:
        return Keypair.from_bytes(secret_bytes)
    except Exception as exc:  # noqa: BLE001
        raise RuntimeError(f"Failed to parse {name}: {exc}") from exc
