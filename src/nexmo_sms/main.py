from __future__ import annotations

import logging
import os
from collections.abc import Generator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException

from .callbacks import DeliveryCallbackHandler, InboundCallbackHandler, merge_params
from .db import InboundRecord, ReceiptRecord, SessionLocal, init_db, store_inbound, store_receipt

logger = logging.getLogger(__name__)

delivery_handler = DeliveryCallbackHandler()
inbound_handler = InboundCallbackHandler()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: create tables and start recording webhooks
    init_db()
    delivery_handler.subscribe(store_receipt)
    inbound_handler.subscribe(store_inbound)
    yield
    delivery_handler.unsubscribe(store_receipt)
    inbound_handler.unsubscribe(store_inbound)


app = FastAPI(title="nexmo-sms", version="0.1.0", lifespan=lifespan)

# --- Admin protection ---

ADMIN_TOKEN = os.getenv("ADMIN_TOKEN")
ALLOWED_ADMIN_IPS = {"127.0.0.1", "::1"}


def verify_admin(request: Request) -> None:
    """
    Simple protection for /admin endpoints:
    - only allow requests from ALLOWED_ADMIN_IPS
    - require X-Admin-Token header that matches ADMIN_TOKEN env var
    """
    client_host = request.client.host if request.client else None

    if client_host not in ALLOWED_ADMIN_IPS:
        raise HTTPException(status_code=403, detail="Forbidden")

    if not ADMIN_TOKEN:
        raise HTTPException(status_code=500, detail="ADMIN_TOKEN not configured")

    header_token = request.headers.get("X-Admin-Token")
    if header_token != ADMIN_TOKEN:
        raise HTTPException(status_code=401, detail="Invalid admin token")


# --- DB dependency ---


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


async def webhook_params(request: Request) -> dict[str, str]:
    """
    Query string first, then any form body on top of it.

    A body that cannot be parsed is logged and ignored; the query string still
    counts.
    """
    form: dict[str, str] = {}
    if request.method == "POST":
        try:
            body = await request.form()
        except (StarletteHTTPException, MultiPartException) as e:
            logger.warning("Unparsable nexmo webhook body on %s: %s", request.url.path, e)
        else:
            form = {k: v for k, v in body.items() if isinstance(v, str)}
    return merge_params(request.query_params, form)


# --- Routes ---


@app.api_route("/nexmo/delivery", methods=["GET", "POST"])
async def delivery_callback(request: Request) -> Response:
    """
    Delivery receipt (DLR) webhook.

    Always answers 200 so Nexmo does not keep retrying; invalid calls are only
    logged.
    """
    params = await webhook_params(request)
    # Subscribers write to the database; keep them off the event loop
    await run_in_threadpool(delivery_handler.handle, params)
    return Response(status_code=200)


@app.api_route("/nexmo/inbound", methods=["GET", "POST"])
async def inbound_callback(request: Request) -> Response:
    """Inbound message webhook. Same contract as the delivery webhook."""
    params = await webhook_params(request)
    await run_in_threadpool(inbound_handler.handle, params)
    return Response(status_code=200)


def _clamp(limit: int) -> int:
    return max(1, min(limit, 200))


@app.get("/admin/receipts")
def admin_receipts(
    limit: int = 50,
    db: Session = Depends(get_db),
    _: None = Depends(verify_admin),
) -> JSONResponse:
    """
    Recent delivery receipts.

    Example:
      GET /admin/receipts
      GET /admin/receipts?limit=10
    """
    rows = db.query(ReceiptRecord).order_by(ReceiptRecord.id.desc()).limit(_clamp(limit)).all()
    payload = [
        {
            "id": r.id,
            "message_id": r.message_id,
            "msisdn": r.msisdn,
            "sender": r.sender,
            "network_code": r.network_code,
            "status": r.status,
            "err_code": r.err_code,
            "client_ref": r.client_ref,
            "delivered_at": r.delivered_at.isoformat() if r.delivered_at else None,
            "created_at": r.created_at.isoformat(),
        }
        for r in rows
    ]
    return JSONResponse(payload)


@app.get("/admin/inbound")
def admin_inbound(
    limit: int = 50,
    db: Session = Depends(get_db),
    _: None = Depends(verify_admin),
) -> JSONResponse:
    """Recent inbound messages."""
    rows = db.query(InboundRecord).order_by(InboundRecord.id.desc()).limit(_clamp(limit)).all()
    payload = [
        {
            "id": r.id,
            "message_id": r.message_id,
            "msisdn": r.msisdn,
            "to": r.to,
            "type": r.type,
            "text": r.text,
            "concatenated": r.concatenated,
            "concat_ref": r.concat_ref,
            "concat_part": r.concat_part,
            "concat_total": r.concat_total,
            "created_at": r.created_at.isoformat(),
        }
        for r in rows
    ]
    return JSONResponse(payload)
