"""Compile instruction lists into signed or partially signed transactions."""

from __future__ import annotations

import base64
import logging
from typing import Dict, List, Optional, Sequence

from solders.compute_budget import set_compute_unit_limit, set_compute_unit_price
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import Message, MessageV0, to_bytes_versioned
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction, VersionedTransaction

from .connection import Connection
from .errors import InvalidSignature, TransactionSendError
from .models import TransactionPayload

logger = logging.getLogger("cashlink.assembler")


def compute_budget_instructions(
    compute_unit_limit: Optional[int] = None, compute_unit_price: Optional[int] = None
) -> List[Instruction]:
    ixs: List[Instruction] = []
    if compute_unit_limit:
        ixs.append(set_compute_unit_limit(compute_unit_limit))
    if compute_unit_price:
        ixs.append(set_compute_unit_price(compute_unit_price))
    return ixs


def _signer_map(signers: Sequence[Keypair]) -> Dict[Pubkey, Keypair]:
    by_key: Dict[Pubkey, Keypair] = {}
    for kp in signers:
        by_key.setdefault(kp.pubkey(), kp)
    return by_key


def verify_transaction(transaction_b64: str) -> bool:
    """True when every required signature is present and valid."""
    try:
        raw = base64.b64decode(transaction_b64)
        tx = VersionedTransaction.from_bytes(raw)
    except Exception as exc:  # noqa: BLE001
        logger.warning("verify_parse_failed err=%s", exc)
        return False
    message = tx.message
    required = message.header.num_required_signatures
    if len(tx.signatures) != required:
        return False
    message_bytes = to_bytes_versioned(message)
    signer_keys = message.account_keys[:required]
    return all(sig.verify(key, message_bytes) for sig, key in zip(tx.signatures, signer_keys))


class TransactionAssembler:
    """Builds legacy or v0 transactions from builder output.

    Compute budget instructions go first; the builder's own order is kept as
    is because the program resolves accounts by position.
    """

    def __init__(self, connection: Connection, commitment: Optional[str] = None):
        self.connection = connection
        self.commitment = commitment

    async def assemble(
        self,
        instructions: Sequence[Instruction],
        fee_payer: Pubkey,
        signers: Sequence[Keypair] = (),
        as_legacy_transaction: bool = False,
        compute_unit_limit: Optional[int] = None,
        compute_unit_price: Optional[int] = None,
        address_lookup_table: Optional[Pubkey] = None,
        commitment: Optional[str] = None,
    ) -> TransactionPayload:
        ixs = compute_budget_instructions(compute_unit_limit, compute_unit_price) + list(instructions)
        latest = await self.connection.get_latest_blockhash(commitment or self.commitment)
        by_key = _signer_map(signers)

        if as_legacy_transaction:
            message = Message.new_with_blockhash(ixs, fee_payer, latest.blockhash)
            required = message.account_keys[: message.header.num_required_signatures]
            usable = [by_key[key] for key in required if key in by_key]
            tx = Transaction.new_unsigned(message)
            if usable:
                # Missing signers keep their default placeholder for a later co-signer.
                tx.partial_sign(usable, latest.blockhash)
            raw = bytes(tx)
            missing = len(required) - len(usable)
        else:
            lookup_tables = []
            if address_lookup_table is not None:
                table = await self.connection.get_address_lookup_table(address_lookup_table)
                if table is not None:
                    lookup_tables.append(table)
            message = MessageV0.try_compile(fee_payer, ixs, lookup_tables, latest.blockhash)
            required = message.account_keys[: message.header.num_required_signatures]
            message_bytes = to_bytes_versioned(message)
            signatures = [
                by_key[key].sign_message(message_bytes) if key in by_key else Signature.default() for key in required
            ]
            raw = bytes(VersionedTransaction.populate(message, signatures))
            missing = sum(1 for key in required if key not in by_key)

        logger.info(
            "tx_assembled legacy=%s instructions=%s missing_signatures=%s slot=%s",
            as_legacy_transaction,
            len(ixs),
            missing,
            latest.slot,
        )
        return TransactionPayload(
            transaction=base64.b64encode(raw).decode(),
            slot=latest.slot,
            as_legacy_transaction=as_legacy_transaction,
        )

    async def send(self, transaction_b64: str) -> str:
        if not verify_transaction(transaction_b64):
            raise InvalidSignature()
        try:
            signature = await self.connection.send_raw_transaction(base64.b64decode(transaction_b64))
        except Exception as exc:  # noqa: BLE001
            logger.error("tx_send_failed err=%s", exc, exc_info=True)
            raise TransactionSendError(f"Transaction send error: {exc}") from exc
        logger.info("tx_sent signature=%s", signature)
        return signature
