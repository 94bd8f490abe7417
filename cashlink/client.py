"""High level cash link client.

Every operation comes in two forms: ``*_instructions`` validates the intent
against on-chain state and returns the ordered instructions plus any extra
signers, and the plain form assembles them into a transaction payload.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Union

from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from .assembler import TransactionAssembler
from .config import ProgramIds, Settings, load_keypair, to_pubkey
from .connection import Connection, RpcConnection
from .constants import (
    COMPUTE_BUDGET_PROGRAM_ID,
    SYSVAR_CLOCK_PUBKEY,
    SYSVAR_RENT_PUBKEY,
    SYSVAR_SLOT_HASHES_PUBKEY,
    TOKEN_ACCOUNT_LEN,
)
from .errors import (
    AccountAlreadyExists,
    AccountNotFound,
    FingerprintAlreadyUsed,
    FingerprintRequired,
    InvalidInput,
    InvalidState,
    ReferrerRequired,
    WeightRequired,
)
from .fees import claim_bounds, required_vault_balance, total_required_funding
from .fees import is_funded as vault_is_funded
from .models import CashLinkInput, InitializeInput, RedeemInput, TransactionOptions, TransactionPayload
from .native import EphemeralTokenAccount
from .pda import derive_ata
from .protocol import (
    CancelCashParams,
    CashProtocol,
    CloseCashParams,
    InitCashParams,
    ProtocolVersion,
    RedeemCashParams,
    get_protocol,
)
from .reader import AccountReader
from .state import CashLink, CashLinkState, DistributionType, TokenAccount
from .token import build_create_ata_ix, build_memo_ix, is_native_mint

logger = logging.getLogger("cashlink.client")


@dataclass
class BuiltInstructions:
    cash: Pubkey
    instructions: List[Instruction] = field(default_factory=list)
    signers: List[Keypair] = field(default_factory=list)
    link: Optional[CashLink] = None


def _pubkey(value: Optional[str], name: str) -> Optional[Pubkey]:
    if value is None:
        return None
    try:
        return Pubkey.from_string(value)
    except Exception as exc:  # noqa: BLE001
        raise InvalidInput(f"{name} is not a valid pubkey: {exc}") from exc


class CashLinkClient:
    def __init__(
        self,
        connection: Connection,
        authority: Keypair,
        fee_payer: Keypair,
        fee_wallet: Pubkey,
        protocol: Union[CashProtocol, ProtocolVersion, str] = ProtocolVersion.REFERENCE,
        program_ids: Optional[ProgramIds] = None,
        commitment: Optional[str] = None,
        compute_unit_limit: Optional[int] = None,
        compute_unit_price: Optional[int] = None,
        address_lookup_table: Optional[Pubkey] = None,
    ):
        if not isinstance(protocol, CashProtocol):
            protocol = get_protocol(protocol, program_ids)
        self.protocol = protocol
        self.program_ids = protocol.program_ids
        self.connection = connection
        self.commitment = commitment
        self._authority = authority
        self._fee_payer = fee_payer
        self.fee_wallet = fee_wallet
        self.compute_unit_limit = compute_unit_limit
        self.compute_unit_price = compute_unit_price
        self.address_lookup_table = address_lookup_table
        self.reader = AccountReader(connection, protocol, commitment)
        self.assembler = TransactionAssembler(connection, commitment)

    @classmethod
    def from_settings(cls, settings: Settings, connection: Optional[Connection] = None) -> "CashLinkClient":
        if not settings.fee_wallet:
            raise RuntimeError("CASHLINK_FEE_WALLET must be set")
        program_ids = ProgramIds.from_settings(settings)
        return cls(
            connection=connection or RpcConnection(settings.solana_rpc, settings.commitment),
            authority=load_keypair(settings.authority_keypair_path, "authority keypair"),
            fee_payer=load_keypair(settings.fee_payer_keypair_path, "fee payer keypair"),
            fee_wallet=to_pubkey(settings.fee_wallet, "fee_wallet"),
            protocol=settings.protocol_version,
            program_ids=program_ids,
            commitment=settings.commitment,
            compute_unit_limit=settings.compute_unit_limit,
            compute_unit_price=settings.compute_unit_price,
            address_lookup_table=(
                to_pubkey(settings.address_lookup_table, "address_lookup_table")
                if settings.address_lookup_table
                else None
            ),
        )

    @property
    def authority(self) -> Pubkey:
        return self._authority.pubkey()

    @property
    def fee_payer(self) -> Pubkey:
        return self._fee_payer.pubkey()

    # ── helpers ──

    def _token_program(self, options: TransactionOptions) -> Pubkey:
        return _pubkey(options.token_program_id, "token_program_id") or self.program_ids.token

    def _ata(self, owner: Pubkey, mint: Pubkey, token_program: Pubkey) -> Pubkey:
        return derive_ata(owner, mint, token_program, self.program_ids.associated_token)

    def find_cash_address(self, cash_reference: Optional[str] = None, pass_key: Optional[str] = None):
        return self.protocol.find_cash_address(cash_reference, _pubkey(pass_key, "pass_key"))

    async def _require_link(self, address: Pubkey, commitment: Optional[str]) -> CashLink:
        link = await self.reader.load_cash_link(address, commitment)
        if link is None:
            raise AccountNotFound()
        return link

    async def _assemble(
        self, built: BuiltInstructions, options: TransactionOptions, extra_signers: Sequence[Keypair] = ()
    ) -> TransactionPayload:
        signers = [*built.signers, *extra_signers, self._fee_payer, self._authority]
        return await self.assembler.assemble(
            built.instructions,
            self.fee_payer,
            signers,
            as_legacy_transaction=options.as_legacy_transaction,
            compute_unit_limit=options.compute_unit_limit or self.compute_unit_limit,
            compute_unit_price=options.compute_unit_price or self.compute_unit_price,
            address_lookup_table=_pubkey(options.address_lookup_table, "address_lookup_table")
            or self.address_lookup_table,
            commitment=options.commitment,
        )

    async def get_or_create_associated_account(
        self,
        mint: Pubkey,
        owner: Pubkey,
        token_program: Optional[Pubkey] = None,
        commitment: Optional[str] = None,
    ) -> Pubkey:
        """Associated token address of ``owner``, created and confirmed first when missing."""
        token_program = token_program or self.program_ids.token
        ata = self._ata(owner, mint, token_program)
        info = await self.connection.get_account_info(ata, commitment or self.commitment)
        if info is not None:
            return ata
        ix = build_create_ata_ix(
            self.fee_payer, owner, mint, token_program, self.program_ids.associated_token, self.program_ids.system
        )
        payload = await self.assembler.assemble(
            [ix],
            self.fee_payer,
            [self._fee_payer],
            compute_unit_limit=self.compute_unit_limit,
            compute_unit_price=self.compute_unit_price,
            commitment=commitment,
        )
        signature = await self.assembler.send(payload.transaction)
        await self.connection.confirm_transaction(signature, commitment or self.commitment)
        logger.info("ata_created owner=%s mint=%s ata=%s sig=%s", owner, mint, ata, signature)
        return ata

    # ── initialize ──

    async def initialize_instructions(self, input: InitializeInput) -> BuiltInstructions:
        owner = _pubkey(input.wallet, "wallet")
        mint = _pubkey(input.mint, "mint")
        pass_key = _pubkey(input.pass_key, "pass_key")
        token_program = self._token_program(input)
        cash, cash_bump = self.protocol.find_cash_address(input.cash_reference, pass_key)

        existing = await self.reader.load_cash_link(cash, input.commitment)
        if existing is not None and existing.state != CashLinkState.UNINITIALIZED:
            raise AccountAlreadyExists()

        total = total_required_funding(
            input.amount,
            input.fee_bps,
            input.max_num_redemptions,
            network_fee=input.network_fee,
            base_fee_to_redeem=input.base_fee_to_redeem,
            rent_fee_to_redeem=input.rent_fee_to_redeem,
            distribution_type=input.distribution_type,
            min_amount=input.min_amount,
        )
        wrapped = None
        if is_native_mint(mint):
            wrapped = EphemeralTokenAccount.open(self.fee_payer, owner, mint, token_program, fund_lamports=total)
            owner_token = wrapped.address
        else:
            owner_token = self._ata(owner, mint, token_program)

        ix = self.protocol.build_init_ix(
            InitCashParams(
                authority=self.authority,
                owner=owner,
                fee_payer=self.fee_payer,
                cash=cash,
                cash_bump=cash_bump,
                mint=mint,
                vault_token=self._ata(cash, mint, token_program),
                owner_token=owner_token,
                token_program=token_program,
                amount=input.amount,
                fee_bps=input.fee_bps,
                max_num_redemptions=input.max_num_redemptions,
                distribution_type=input.distribution_type,
                network_fee=input.network_fee,
                base_fee_to_redeem=input.base_fee_to_redeem,
                rent_fee_to_redeem=input.rent_fee_to_redeem,
                min_amount=input.min_amount,
                fingerprint_enabled=input.fingerprint_enabled,
                cash_reference=input.cash_reference,
                pass_key=pass_key,
                num_days_to_expire=input.num_days_to_expire,
            )
        )
        built = BuiltInstructions(cash=cash)
        if wrapped is not None:
            built.instructions = wrapped.wrap([ix])
            built.signers.append(wrapped.signer)
        else:
            built.instructions = [ix]
        logger.info(
            "cash_initialize_built cash=%s owner=%s total=%s native=%s", cash, owner, total, wrapped is not None
        )
        return built

    async def initialize(self, input: InitializeInput) -> TransactionPayload:
        built = await self.initialize_instructions(input)
        return await self._assemble(built, input)

    # ── redeem ──

    async def redeem_instructions(self, input: RedeemInput, signers: Sequence[Keypair] = ()) -> BuiltInstructions:
        # A zero referrer fee is no referral at all.
        referrer_fee_bps = input.referrer_fee_bps or None
        if referrer_fee_bps is not None and not input.referrer:
            raise ReferrerRequired()
        wallet = _pubkey(input.wallet, "wallet")
        cash, cash_bump = self.find_cash_address(input.cash_reference, input.pass_key)
        link = await self._require_link(cash, input.commitment)
        self.protocol.check_redeemable(link)
        if link.fingerprint_enabled and not input.fingerprint:
            raise FingerprintRequired()
        if link.distribution_type == DistributionType.WEIGHTED:
            if input.weight_ppm is None:
                raise WeightRequired()
            claim_bounds(link, input.weight_ppm)

        fingerprint = _pubkey(input.fingerprint, "fingerprint")
        fingerprint_pda = fingerprint_bump = None
        if fingerprint is not None:
            fingerprint_pda, fingerprint_bump = self.protocol.find_fingerprint_address(cash, fingerprint)
            if await self.reader.fingerprint_used(cash, fingerprint, input.commitment):
                raise FingerprintAlreadyUsed()

        if self.protocol.uses_redemption_record:
            redemption, _ = self.protocol.find_redemption_address(cash, wallet)
            if await self.reader.load_redemption(redemption, input.commitment) is not None:
                raise InvalidState("Wallet already redeemed this link")

        token_program = self._token_program(input)
        mint = link.mint
        wrapped = None
        if is_native_mint(mint):
            wrapped = EphemeralTokenAccount.open(self.fee_payer, wallet, mint, token_program)
            wallet_token = wrapped.address
            owner_token = link.owner
        else:
            wallet_token = self._ata(wallet, mint, token_program)
            owner_token = await self.get_or_create_associated_account(mint, link.owner, token_program, input.commitment)
        platform_fee_token = await self.get_or_create_associated_account(
            mint, self.fee_wallet, token_program, input.commitment
        )
        fee_payer_token = await self.get_or_create_associated_account(
            mint, self.fee_payer, token_program, input.commitment
        )

        referrer = referrer_token = None
        if referrer_fee_bps is not None:
            referrer = _pubkey(input.referrer, "referrer")
            referrer_token = self._ata(referrer, mint, token_program)

        ix = self.protocol.build_redeem_ix(
            RedeemCashParams(
                authority=self.authority,
                wallet=wallet,
                fee_payer=self.fee_payer,
                cash=cash,
                cash_bump=cash_bump,
                mint=mint,
                token_program=token_program,
                wallet_token=wallet_token,
                owner_token=owner_token,
                platform_fee_token=platform_fee_token,
                fee_payer_token=fee_payer_token,
                vault_token=self._ata(cash, mint, token_program),
                cash_reference=input.cash_reference,
                pass_key=link.pass_key,
                referrer=referrer,
                referrer_token=referrer_token,
                referrer_fee_bps=referrer_fee_bps,
                referee_fee_bps=input.referee_fee_bps,
                fingerprint=fingerprint,
                fingerprint_pda=fingerprint_pda,
                fingerprint_bump=fingerprint_bump,
                weight_ppm=input.weight_ppm,
                rate_usd=input.rate_usd,
            )
        )
        core = [ix]
        if input.memo:
            core.append(build_memo_ix(input.memo, memo_program=self.program_ids.memo))
        built = BuiltInstructions(cash=cash, link=link, signers=list(signers))
        if wrapped is not None:
            built.instructions = wrapped.wrap(core)
            built.signers.append(wrapped.signer)
        else:
            built.instructions = core
        logger.info(
            "cash_redeem_built cash=%s wallet=%s redemption=%s/%s referrer=%s fingerprint=%s",
            cash,
            wallet,
            link.total_redemptions + 1,
            link.max_num_redemptions,
            referrer,
            fingerprint,
        )
        return built

    async def redeem(self, input: RedeemInput, signers: Sequence[Keypair] = ()) -> TransactionPayload:
        built = await self.redeem_instructions(input, signers)
        return await self._assemble(built, input)

    # ── cancel / close ──

    async def cancel_instructions(self, input: CashLinkInput) -> BuiltInstructions:
        cash, cash_bump = self.find_cash_address(input.cash_reference, input.pass_key)
        link = await self._require_link(cash, input.commitment)
        self.protocol.check_cancelable(link)

        token_program = self._token_program(input)
        wrapped = None
        if is_native_mint(link.mint):
            wrapped = EphemeralTokenAccount.open(self.fee_payer, link.owner, link.mint, token_program)
            owner_token = wrapped.address
        else:
            owner_token = self._ata(link.owner, link.mint, token_program)

        ix = self.protocol.build_cancel_ix(
            CancelCashParams(
                authority=self.authority,
                fee_payer=self.fee_payer,
                cash=cash,
                cash_bump=cash_bump,
                mint=link.mint,
                owner_token=owner_token,
                vault_token=self._ata(cash, link.mint, token_program),
                token_program=token_program,
                cash_reference=input.cash_reference,
                pass_key=link.pass_key,
            )
        )
        built = BuiltInstructions(cash=cash, link=link)
        if wrapped is not None:
            built.instructions = wrapped.wrap([ix])
            built.signers.append(wrapped.signer)
        else:
            built.instructions = [ix]
        logger.info("cash_cancel_built cash=%s state=%s", cash, link.state.value)
        return built

    async def cancel(self, input: CashLinkInput) -> TransactionPayload:
        built = await self.cancel_instructions(input)
        return await self._assemble(built, input)

    def _close_ix(self, cash: Pubkey) -> Instruction:
        return self.protocol.build_close_ix(
            CloseCashParams(authority=self.authority, cash=cash, destination=self.fee_payer)
        )

    async def cancel_and_close_instructions(self, input: CashLinkInput) -> BuiltInstructions:
        built = await self.cancel_instructions(input)
        # Open redemption bookkeeping blocks the close.
        if built.link.total_redemptions == 0:
            built.instructions.append(self._close_ix(built.cash))
        return built

    async def cancel_and_close(self, input: CashLinkInput) -> TransactionPayload:
        built = await self.cancel_and_close_instructions(input)
        return await self._assemble(built, input)

    async def close_instructions(self, input: CashLinkInput) -> BuiltInstructions:
        cash, _ = self.find_cash_address(input.cash_reference, input.pass_key)
        link = await self._require_link(cash, input.commitment)
        self.protocol.check_closable(link)
        logger.info("cash_close_built cash=%s state=%s", cash, link.state.value)
        return BuiltInstructions(cash=cash, link=link, instructions=[self._close_ix(cash)])

    async def close(self, input: CashLinkInput) -> TransactionPayload:
        built = await self.close_instructions(input)
        return await self._assemble(built, input)

    # ── submission and lookups ──

    async def send(self, transaction: str) -> str:
        return await self.assembler.send(transaction)

    async def confirm_transaction(self, signature: str, commitment: str = "confirmed") -> Any:
        return await self.connection.confirm_transaction(signature, commitment)

    async def get_cash_link(self, address: Pubkey, commitment: Optional[str] = None) -> Optional[CashLink]:
        return await self.reader.load_cash_link(address, commitment)

    async def get_vault(
        self, cash: Pubkey, mint: Pubkey, token_program: Optional[Pubkey] = None, commitment: Optional[str] = None
    ) -> Optional[TokenAccount]:
        return await self.reader.get_vault(cash, mint, token_program, commitment)

    async def is_funded(self, link: CashLink, token_program: Optional[Pubkey] = None) -> bool:
        vault = await self.get_vault(link.address, link.mint, token_program)
        if vault is None:
            return False
        required = required_vault_balance(link)
        if is_native_mint(link.mint):
            rent = await self.connection.get_minimum_balance_for_rent_exemption(TOKEN_ACCOUNT_LEN)
            return vault_is_funded(vault.lamports, required, native=True, rent_exempt_minimum=rent)
        return vault_is_funded(vault.amount, required)

    def lookup_table_addresses(self) -> List[Pubkey]:
        """Static accounts worth publishing in an address lookup table."""
        ids = self.program_ids
        return [
            self.fee_payer,
            self.authority,
            self.fee_wallet,
            ids.system,
            ids.token,
            ids.token_2022,
            SYSVAR_CLOCK_PUBKEY,
            COMPUTE_BUDGET_PROGRAM_ID,
            ids.cash,
            SYSVAR_RENT_PUBKEY,
            ids.associated_token,
            SYSVAR_SLOT_HASHES_PUBKEY,
        ]
