"""SPL token, associated token, system and memo instructions.

Token and system instructions come from solana-py and solders. The
associated token create is encoded by hand so the token program, ATA program
and system program can all be pointed at the configured ids.
"""

from typing import Sequence

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from solders.system_program import CreateAccountParams, TransferParams, create_account, transfer
from spl.token.instructions import (
    CloseAccountParams,
    InitializeAccountParams,
    SyncNativeParams,
    close_account,
    initialize_account,
    sync_native,
)

from .constants import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    MEMO_PROGRAM_ID,
    NATIVE_MINT,
    NATIVE_MINT_2022,
    SYS_PROGRAM_ID,
    SYSVAR_RENT_PUBKEY,
    TOKEN_PROGRAM_ID,
)
from .pda import derive_ata


def is_native_mint(mint: Pubkey) -> bool:
    return mint == NATIVE_MINT or mint == NATIVE_MINT_2022


def build_create_ata_ix(
    payer: Pubkey,
    owner: Pubkey,
    mint: Pubkey,
    token_program: Pubkey = TOKEN_PROGRAM_ID,
    ata_program: Pubkey = ASSOCIATED_TOKEN_PROGRAM_ID,
    system_program: Pubkey = SYS_PROGRAM_ID,
) -> Instruction:
    ata = derive_ata(owner, mint, token_program, ata_program)
    # Associated token account creation ix (instruction 0)
    metas = [
        AccountMeta(pubkey=payer, is_signer=True, is_writable=True),
        AccountMeta(pubkey=ata, is_signer=False, is_writable=True),
        AccountMeta(pubkey=owner, is_signer=False, is_writable=False),
        AccountMeta(pubkey=mint, is_signer=False, is_writable=False),
        AccountMeta(pubkey=system_program, is_signer=False, is_writable=False),
        AccountMeta(pubkey=token_program, is_signer=False, is_writable=False),
        AccountMeta(pubkey=SYSVAR_RENT_PUBKEY, is_signer=False, is_writable=False),
    ]
    return Instruction(program_id=ata_program, data=bytes([0]), accounts=metas)


def build_close_account_ix(
    account: Pubkey, dest: Pubkey, owner: Pubkey, token_program: Pubkey = TOKEN_PROGRAM_ID
) -> Instruction:
    return close_account(CloseAccountParams(program_id=token_program, account=account, dest=dest, owner=owner))


def build_initialize_account_ix(
    account: Pubkey, mint: Pubkey, owner: Pubkey, token_program: Pubkey = TOKEN_PROGRAM_ID
) -> Instruction:
    return initialize_account(
        InitializeAccountParams(program_id=token_program, account=account, mint=mint, owner=owner)
    )


def build_sync_native_ix(account: Pubkey, token_program: Pubkey = TOKEN_PROGRAM_ID) -> Instruction:
    return sync_native(SyncNativeParams(program_id=token_program, account=account))


def build_system_transfer_ix(sender: Pubkey, recipient: Pubkey, lamports: int) -> Instruction:
    return transfer(TransferParams(from_pubkey=sender, to_pubkey=recipient, lamports=lamports))


def build_create_account_ix(
    payer: Pubkey, new_account: Pubkey, lamports: int, space: int, owner_program: Pubkey
) -> Instruction:
    return create_account(
        CreateAccountParams(
            from_pubkey=payer, to_pubkey=new_account, lamports=lamports, space=space, owner=owner_program
        )
    )


def build_memo_ix(memo: str, signers: Sequence[Pubkey] = (), memo_program: Pubkey = MEMO_PROGRAM_ID) -> Instruction:
    accounts = [AccountMeta(pubkey=s, is_signer=True, is_writable=False) for s in signers]
    return Instruction(program_id=memo_program, data=memo.encode("utf-8"), accounts=accounts)
