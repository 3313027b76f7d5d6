from fastapi import APIRouter, Depends, Header, Request
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session
from typing import Optional

from restaurant.api.deps import get_db, get_gateway
from restaurant.services import orders as workflow
from restaurant.services.paystack import PaystackClient

router = APIRouter()

@router.post("/webhook")
async def paystack_webhook(
    request: Request,
    x_paystack_signature: Optional[str] = Header(default=None, alias="x-paystack-signature"),
    db: Session = Depends(get_db),
    gateway: PaystackClient = Depends(get_gateway),
):
    # signature covers the exact bytes received, so read the raw body
    raw = await request.body()
    # the session is synchronous; keep its round-trips off the event loop
    outcome = await run_in_threadpool(workflow.handle_webhook, db, gateway, raw, x_paystack_signature)
    return {"status": outcome}
