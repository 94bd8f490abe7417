"""Ephemeral wrapped-SOL token accounts.

The program only moves SPL tokens, so native SOL goes through a throwaway
token account: create it, initialize it for the native mint, optionally fund
it, run the program instruction, then close it back to its owner and sweep
the account rent to the fee payer. The setup and teardown halves are built
together so neither can be emitted alone.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from .constants import TOKEN_ACCOUNT_LEN, TOKEN_ACCOUNT_RENT, TOKEN_PROGRAM_ID
from .token import (
    build_close_account_ix,
    build_create_account_ix,
    build_initialize_account_ix,
    build_sync_native_ix,
    build_system_transfer_ix,
)


@dataclass
class EphemeralTokenAccount:
    signer: Keypair
    owner: Pubkey
    setup: List[Instruction] = field(default_factory=list)
    teardown: List[Instruction] = field(default_factory=list)

    @property
    def address(self) -> Pubkey:
        return self.signer.pubkey()

    @classmethod
    def open(
        cls,
        fee_payer: Pubkey,
        owner: Pubkey,
        mint: Pubkey,
        token_program: Pubkey = TOKEN_PROGRAM_ID,
        fund_lamports: int = 0,
        rent_lamports: int = TOKEN_ACCOUNT_RENT,
        signer: Optional[Keypair] = None,
    ) -> "EphemeralTokenAccount":
        signer = signer or Keypair()
        account = signer.pubkey()
        setup = [
            build_create_account_ix(fee_payer, account, rent_lamports, TOKEN_ACCOUNT_LEN, token_program),
            build_initialize_account_ix(account, mint, owner, token_program),
        ]
        if fund_lamports > 0:
            setup.append(build_system_transfer_ix(owner, account, fund_lamports))
            setup.append(build_sync_native_ix(account, token_program))
        teardown = [
            build_close_account_ix(account, owner, owner, token_program),
            build_system_transfer_ix(owner, fee_payer, rent_lamports),
        ]
        return cls(signer=signer, owner=owner, setup=setup, teardown=teardown)

    def wrap(self, core: Sequence[Instruction]) -> List[Instruction]:
        return [*self.setup, *core, *self.teardown]
