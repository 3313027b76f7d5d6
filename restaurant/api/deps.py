from fastapi import Depends
from restaurant.core.config import Settings, get_settings
from restaurant.db.session import SessionLocal
from restaurant.services.paystack import PaystackClient

def get_db():
    db = SessionLocal()
    try: yield db
    finally: db.close()

def get_gateway(cfg: Settings = Depends(get_settings)) -> PaystackClient:
    return PaystackClient(
        secret_key=cfg.PAYSTACK_SECRET_KEY,
        base_url=cfg.PAYSTACK_BASE_URL,
        timeout=cfg.GATEWAY_TIMEOUT_SECONDS,
        callback_url=cfg.PAYSTACK_CALLBACK_URL or None,
    )
