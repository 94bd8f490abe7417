"""In-memory stand-ins for the RPC connection."""

from __future__ import annotations

from solders.address_lookup_table_account import AddressLookupTableAccount
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.signature import Signature
from spl.token._layouts import ACCOUNT_LAYOUT

from cashlink.connection import AccountSnapshot, BlockhashContext
from cashlink.constants import TOKEN_ACCOUNT_RENT, TOKEN_PROGRAM_ID


class FakeConnection:
    """Implements the Connection protocol over a dict of accounts and records every call."""

    def __init__(self, slot: int = 4242) -> None:
        self.accounts: dict[Pubkey, AccountSnapshot] = {}
        self.lookup_tables: dict[Pubkey, AddressLookupTableAccount] = {}
        self.blockhash = Hash.new_unique()
        self.slot = slot
        self.rent_exempt_minimum = TOKEN_ACCOUNT_RENT
        self.send_error: Exception | None = None

        self.account_info_calls: list[Pubkey] = []
        self.blockhash_calls = 0
        self.lookup_table_calls: list[Pubkey] = []
        self.sent: list[bytes] = []
        self.confirmed: list[str] = []

    # ── Connection protocol ──

    async def get_account_info(self, address: Pubkey, commitment: str | None = None) -> AccountSnapshot | None:
        self.account_info_calls.append(address)
        return self.accounts.get(address)

    async def get_latest_blockhash(self, commitment: str | None = None) -> BlockhashContext:
        self.blockhash_calls += 1
        return BlockhashContext(blockhash=self.blockhash, last_valid_block_height=1000, slot=self.slot)

    async def get_address_lookup_table(self, address: Pubkey) -> AddressLookupTableAccount | None:
        self.lookup_table_calls.append(address)
        return self.lookup_tables.get(address)

    async def get_minimum_balance_for_rent_exemption(self, size: int, commitment: str | None = None) -> int:
        return self.rent_exempt_minimum

    async def send_raw_transaction(self, payload: bytes) -> str:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(payload)
        return str(Signature.new_unique())

    async def confirm_transaction(self, signature: str, commitment: str | None = None) -> bool:
        self.confirmed.append(signature)
        return True

    # ── test helpers ──

    def set_account(self, address: Pubkey, owner: Pubkey, data: bytes, lamports: int = 1_000_000) -> None:
        self.accounts[address] = AccountSnapshot(address=address, owner=owner, lamports=lamports, data=data)

    def remove_account(self, address: Pubkey) -> None:
        self.accounts.pop(address, None)

    def set_token_account(
        self,
        address: Pubkey,
        mint: Pubkey,
        owner: Pubkey,
        amount: int = 0,
        program_id: Pubkey = TOKEN_PROGRAM_ID,
        lamports: int = TOKEN_ACCOUNT_RENT,
        is_native: int | None = None,
    ) -> None:
        data = ACCOUNT_LAYOUT.build(
            {
                "mint": bytes(mint),
                "owner": bytes(owner),
                "amount": amount,
                "delegate_option": 0,
                "delegate": bytes(32),
                "state": 1,
                "is_native_option": 0 if is_native is None else 1,
                "is_native": is_native or 0,
                "delegated_amount": 0,
                "close_authority_option": 0,
                "close_authority": bytes(32),
            }
        )
        self.set_account(address, program_id, data, lamports)

    def reset_calls(self) -> None:
        self.account_info_calls.clear()
        self.blockhash_calls = 0
        self.lookup_table_calls.clear()
