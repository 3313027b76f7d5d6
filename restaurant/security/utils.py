from passlib.context import CryptContext
from datetime import datetime, timedelta
import jwt
from typing import Tuple
from restaurant.core.config import Settings, settings
from restaurant.db.models import User, now_utc

pwd_ctx = CryptContext(schemes=['bcrypt'], deprecated='auto')

def hash_password(p: str) -> str: return pwd_ctx.hash(p)

def verify_password(p: str, h: str) -> bool: return pwd_ctx.verify(p, h)

def create_access_token(user: User, cfg: Settings = settings) -> Tuple[str, datetime]:
    exp = now_utc() + timedelta(days=cfg.ACCESS_TOKEN_EXPIRES_DAYS)
    payload = {
        'sub': str(user.id),
        'id': user.id,
        'email': user.email,
        'role': user.role,
        'exp': exp,
        'type': 'access',
    }
    return jwt.encode(payload, cfg.JWT_SECRET, algorithm=cfg.JWT_ALGORITHM), exp

def decode_token(token: str, cfg: Settings = settings) -> dict:
    return jwt.decode(token, cfg.JWT_SECRET, algorithms=[cfg.JWT_ALGORITHM])
