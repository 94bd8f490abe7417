from typing import Optional, Union

from ..config import ProgramIds
from .base import (
    CancelCashParams,
    CashProtocol,
    CloseCashParams,
    InitCashParams,
    ProtocolVersion,
    RedeemCashParams,
)
from .pass_key import PassKeyProtocol
from .reference import ReferenceProtocol

PROTOCOLS = {
    ProtocolVersion.REFERENCE: ReferenceProtocol,
    ProtocolVersion.PASS_KEY: PassKeyProtocol,
}


def get_protocol(
    version: Union[ProtocolVersion, str] = ProtocolVersion.REFERENCE,
    program_ids: Optional[ProgramIds] = None,
) -> CashProtocol:
    try:
        cls = PROTOCOLS[ProtocolVersion(version)]
    except ValueError:
        raise ValueError(f"Unsupported protocol version {version}") from None
    return cls(program_ids)


__all__ = [
    "CancelCashParams",
    "CashProtocol",
    "CloseCashParams",
    "InitCashParams",
    "PassKeyProtocol",
    "ProtocolVersion",
    "RedeemCashParams",
    "ReferenceProtocol",
    "get_protocol",
]
