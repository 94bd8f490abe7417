"""Thin adapter over the Solana RPC client.

Builders only need a handful of RPC calls; they talk to the ``Connection``
protocol so tests can swap in a fake.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment
from solana.rpc.types import TxOpts
from solders.address_lookup_table_account import AddressLookupTable, AddressLookupTableAccount
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.signature import Signature

logger = logging.getLogger("cashlink.connection")


@dataclass
class AccountSnapshot:
    address: Pubkey
    owner: Pubkey
    lamports: int
    data: bytes


@dataclass
class BlockhashContext:
    blockhash: Hash
    last_valid_block_height: int
    slot: int


class Connection(Protocol):
    async def get_account_info(self, address: Pubkey, commitment: Optional[str] = None) -> Optional[AccountSnapshot]:
        ...

    async def get_latest_blockhash(self, commitment: Optional[str] = None) -> BlockhashContext:
        ...

    async def get_address_lookup_table(self, address: Pubkey) -> Optional[AddressLookupTableAccount]:
        ...

    async def get_minimum_balance_for_rent_exemption(self, size: int, commitment: Optional[str] = None) -> int:
        ...

    async def send_raw_transaction(self, payload: bytes) -> str:
        ...

    async def confirm_transaction(self, signature: str, commitment: Optional[str] = None) -> Any:
        ...


class RpcConnection:
    """``Connection`` backed by solana-py's ``AsyncClient``."""

    def __init__(self, endpoint_or_client, commitment: str = "confirmed"):
        self.commitment = commitment
        if isinstance(endpoint_or_client, AsyncClient):
            self.client = endpoint_or_client
        else:
            self.client = AsyncClient(endpoint_or_client, commitment=Commitment(commitment))

    def _commitment(self, commitment: Optional[str]) -> Commitment:
        return Commitment(commitment or self.commitment)

    async def get_account_info(self, address: Pubkey, commitment: Optional[str] = None) -> Optional[AccountSnapshot]:
        resp = await self.client.get_account_info(address, commitment=self._commitment(commitment))
        info = resp.value
        if info is None:
            return None
        return AccountSnapshot(address=address, owner=info.owner, lamports=info.lamports, data=bytes(info.data))

    async def get_latest_blockhash(self, commitment: Optional[str] = None) -> BlockhashContext:
        resp = await self.client.get_latest_blockhash(self._commitment(commitment))
        return BlockhashContext(
            blockhash=resp.value.blockhash,
            last_valid_block_height=resp.value.last_valid_block_height,
            slot=resp.context.slot,
        )

    async def get_address_lookup_table(self, address: Pubkey) -> Optional[AddressLookupTableAccount]:
        info = await self.get_account_info(address)
        if info is None:
            logger.warning("lookup_table_missing address=%s", address)
            return None
        table = AddressLookupTable.deserialize(info.data)
        return AddressLookupTableAccount(key=address, addresses=list(table.addresses))

    async def get_minimum_balance_for_rent_exemption(self, size: int, commitment: Optional[str] = None) -> int:
        resp = await self.client.get_minimum_balance_for_rent_exemption(size, commitment=self._commitment(commitment))
        return resp.value

    async def send_raw_transaction(self, payload: bytes) -> str:
        resp = await self.client.send_raw_transaction(payload, opts=TxOpts(skip_preflight=False))
        return str(resp.value)

    async def confirm_transaction(self, signature: str, commitment: Optional[str] = None) -> Any:
        latest = await self.get_latest_blockhash(commitment)
        return await self.client.confirm_transaction(
            Signature.from_string(signature),
            self._commitment(commitment),
            last_valid_block_height=latest.last_valid_block_height,
        )

    async def close(self) -> None:
        await self.client.close()
