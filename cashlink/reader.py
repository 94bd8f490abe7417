from __future__ import annotations

import logging
from typing import Optional

from construct import ConstructError
from solders.pubkey import Pubkey
from spl.token._layouts import ACCOUNT_LAYOUT

from .config import ProgramIds
from .connection import AccountSnapshot, Connection
from .constants import TOKEN_ACCOUNT_LEN
from .errors import InvalidOwner
from .pda import derive_ata
from .protocol import CashProtocol
from .state import CashLink, Fingerprint, Redemption, TokenAccount

logger = logging.getLogger("cashlink.reader")


class AccountReader:
    """Loads program records and token accounts.

    A missing account and an undecodable one both come back as ``None``; an
    account owned by the wrong program raises ``InvalidOwner``. Transport
    errors from the connection propagate unchanged.
    """

    def __init__(self, connection: Connection, protocol: CashProtocol, commitment: Optional[str] = None):
        self.connection = connection
        self.protocol = protocol
        self.commitment = commitment

    @property
    def program_ids(self) -> ProgramIds:
        return self.protocol.program_ids

    async def _fetch_owned(self, address: Pubkey, commitment: Optional[str]) -> Optional[AccountSnapshot]:
        info = await self.connection.get_account_info(address, commitment or self.commitment)
        if info is None:
            return None
        if info.owner != self.protocol.program_id:
            logger.warning("invalid_owner address=%s owner=%s", address, info.owner)
            raise InvalidOwner()
        return info

    async def load_cash_link(self, address: Pubkey, commitment: Optional[str] = None) -> Optional[CashLink]:
        info = await self._fetch_owned(address, commitment)
        if info is None:
            return None
        try:
            return self.protocol.decode_cash(address, info.data)
        except (ValueError, ConstructError) as exc:
            logger.warning("cash_decode_failed address=%s err=%s", address, exc)
            return None

    async def load_redemption(self, address: Pubkey, commitment: Optional[str] = None) -> Optional[Redemption]:
        info = await self._fetch_owned(address, commitment)
        if info is None:
            return None
        try:
            return self.protocol.decode_redemption(address, info.data)
        except (ValueError, ConstructError) as exc:
            logger.warning("redemption_decode_failed address=%s err=%s", address, exc)
            return None

    async def load_fingerprint(self, address: Pubkey, commitment: Optional[str] = None) -> Optional[Fingerprint]:
        info = await self._fetch_owned(address, commitment)
        if info is None:
            return None
        try:
            return self.protocol.decode_fingerprint(address, info.data)
        except (ValueError, ConstructError) as exc:
            logger.warning("fingerprint_decode_failed address=%s err=%s", address, exc)
            return None

    async def fingerprint_used(self, cash: Pubkey, fingerprint: Pubkey, commitment: Optional[str] = None) -> bool:
        address, _ = self.protocol.find_fingerprint_address(cash, fingerprint)
        return await self._fetch_owned(address, commitment) is not None

    async def load_token_account(self, address: Pubkey, commitment: Optional[str] = None) -> Optional[TokenAccount]:
        info = await self.connection.get_account_info(address, commitment or self.commitment)
        if info is None or info.owner not in self.program_ids.token_programs:
            return None
        if len(info.data) < TOKEN_ACCOUNT_LEN:
            return None
        try:
            parsed = ACCOUNT_LAYOUT.parse(info.data[:TOKEN_ACCOUNT_LEN])
        except ConstructError as exc:
            logger.warning("token_decode_failed address=%s err=%s", address, exc)
            return None
        return TokenAccount(
            address=address,
            mint=Pubkey(parsed.mint),
            owner=Pubkey(parsed.owner),
            amount=parsed.amount,
            program_id=info.owner,
            is_native=parsed.is_native if parsed.is_native_option else None,
            lamports=info.lamports,
        )

    def vault_address(self, cash: Pubkey, mint: Pubkey, token_program: Optional[Pubkey] = None) -> Pubkey:
        return derive_ata(cash, mint, token_program or self.program_ids.token, self.program_ids.associated_token)

    async def get_vault(
        self, cash: Pubkey, mint: Pubkey, token_program: Optional[Pubkey] = None, commitment: Optional[str] = None
    ) -> Optional[TokenAccount]:
        return await self.load_token_account(self.vault_address(cash, mint, token_program), commitment)

    async def vault_balance(
        self, link: CashLink, token_program: Optional[Pubkey] = None, commitment: Optional[str] = None
    ) -> int:
        vault = await self.get_vault(link.address, link.mint, token_program, commitment)
        return 0 if vault is None else vault.amount
