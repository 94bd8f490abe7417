"""HTTP service that builds cash link transactions for wallets and apps.

Run with ``uvicorn cashlink.api:app``.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException

from .client import CashLinkClient
from .config import Settings
from .errors import (
    AccountNotFound,
    CashLinkError,
    InvalidInput,
    InvalidOwner,
    InvalidSignature,
    InvalidState,
    MissingRequiredInput,
    TransactionSendError,
)
from .models import (
    CashLinkInput,
    CashLinkView,
    InitializeInput,
    RedeemInput,
    SendRequest,
    SendResponse,
    TransactionPayload,
)
from .protocol import ProtocolVersion

settings = Settings()
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("cashlink")

app = FastAPI(title="cashlink")
CLIENT: Optional[CashLinkClient] = None


def get_client() -> CashLinkClient:
    global CLIENT
    if CLIENT:
        return CLIENT
    try:
        CLIENT = CashLinkClient.from_settings(settings)
    except RuntimeError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return CLIENT


def http_error(exc: CashLinkError) -> HTTPException:
    if isinstance(exc, AccountNotFound):
        status = 404
    elif isinstance(exc, InvalidState):
        status = 409
    elif isinstance(exc, (MissingRequiredInput, InvalidInput, InvalidSignature)):
        status = 400
    elif isinstance(exc, TransactionSendError):
        status = 502
    elif isinstance(exc, InvalidOwner):
        status = 422
    else:
        status = 500
    return HTTPException(status_code=status, detail=str(exc))


@app.get("/health")
def health():
    return {"status": "ok", "protocol": settings.protocol_version}


@app.post("/cash/initialize", response_model=TransactionPayload)
async def initialize_cash(req: InitializeInput, client: CashLinkClient = Depends(get_client)):
    try:
        return await client.initialize(req)
    except CashLinkError as exc:
        logger.info("cash_initialize_rejected reference=%s err=%s", req.cash_reference, exc)
        raise http_error(exc) from exc


@app.post("/cash/redeem", response_model=TransactionPayload)
async def redeem_cash(req: RedeemInput, client: CashLinkClient = Depends(get_client)):
    try:
        return await client.redeem(req)
    except CashLinkError as exc:
        logger.info("cash_redeem_rejected reference=%s wallet=%s err=%s", req.cash_reference, req.wallet, exc)
        raise http_error(exc) from exc


@app.post("/cash/cancel", response_model=TransactionPayload)
async def cancel_cash(req: CashLinkInput, client: CashLinkClient = Depends(get_client)):
    try:
        return await client.cancel(req)
    except CashLinkError as exc:
        logger.info("cash_cancel_rejected reference=%s err=%s", req.cash_reference, exc)
        raise http_error(exc) from exc


@app.post("/cash/cancel-and-close", response_model=TransactionPayload)
async def cancel_and_close_cash(req: CashLinkInput, client: CashLinkClient = Depends(get_client)):
    try:
        return await client.cancel_and_close(req)
    except CashLinkError as exc:
        logger.info("cash_cancel_and_close_rejected reference=%s err=%s", req.cash_reference, exc)
        raise http_error(exc) from exc


@app.post("/cash/close", response_model=TransactionPayload)
async def close_cash(req: CashLinkInput, client: CashLinkClient = Depends(get_client)):
    try:
        return await client.close(req)
    except CashLinkError as exc:
        logger.info("cash_close_rejected reference=%s err=%s", req.cash_reference, exc)
        raise http_error(exc) from exc


@app.post("/cash/send", response_model=SendResponse)
async def send_cash_transaction(req: SendRequest, client: CashLinkClient = Depends(get_client)):
    try:
        signature = await client.send(req.transaction)
    except CashLinkError as exc:
        raise http_error(exc) from exc
    return SendResponse(signature=signature)


@app.get("/cash/lookup-table-addresses", response_model=List[str])
def lookup_table_addresses(client: CashLinkClient = Depends(get_client)):
    return [str(key) for key in client.lookup_table_addresses()]


@app.get("/cash/{reference}", response_model=CashLinkView)
async def get_cash(reference: str, client: CashLinkClient = Depends(get_client)):
    try:
        if client.protocol.version == ProtocolVersion.PASS_KEY:
            address, _ = client.find_cash_address(pass_key=reference)
        else:
            address, _ = client.find_cash_address(cash_reference=reference)
        link = await client.get_cash_link(address)
        if link is None:
            raise AccountNotFound()
        vault = await client.get_vault(link.address, link.mint)
        funded = await client.is_funded(link)
    except CashLinkError as exc:
        raise http_error(exc) from exc
    return CashLinkView.from_link(link, vault_balance=None if vault is None else vault.amount, is_funded=funded)
