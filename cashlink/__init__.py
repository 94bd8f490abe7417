from .assembler import TransactionAssembler, verify_transaction
from .client import BuiltInstructions, CashLinkClient
from .config import ProgramIds, Settings
from .connection import AccountSnapshot, BlockhashContext, Connection, RpcConnection
from .models import CashLinkInput, InitializeInput, RedeemInput, TransactionPayload
from .native import EphemeralTokenAccount
from .pda import AddressKind, derive, derive_ata
from .protocol import ProtocolVersion, get_protocol
from .reader import AccountReader
from .state import CashLink, CashLinkState, DistributionType, Fingerprint, Redemption, TokenAccount

__all__ = [
    "AccountReader",
    "AccountSnapshot",
    "AddressKind",
    "BlockhashContext",
    "BuiltInstructions",
    "CashLink",
    "CashLinkClient",
    "CashLinkInput",
    "CashLinkState",
    "Connection",
    "DistributionType",
    "EphemeralTokenAccount",
    "Fingerprint",
    "InitializeInput",
    "ProgramIds",
    "ProtocolVersion",
    "RedeemInput",
    "Redemption",
    "RpcConnection",
    "Settings",
    "TokenAccount",
    "TransactionAssembler",
    "TransactionPayload",
    "derive",
    "derive_ata",
    "get_protocol",
    "verify_transaction",
]
