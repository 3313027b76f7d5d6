from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session
import jwt
from restaurant.api.deps import get_db
from restaurant.core.config import Settings, get_settings
from restaurant.core.errors import AuthenticationError, AuthorizationError
from restaurant.db.models import User
from restaurant.security.utils import decode_token

security = HTTPBearer(auto_error=False)

def get_current_user(
    creds: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
    cfg: Settings = Depends(get_settings),
) -> User:
    if not creds:
        raise AuthenticationError("Authentication required")
    try:
        payload = decode_token(creds.credentials, cfg)
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired")
    except jwt.PyJWTError:
        raise AuthenticationError("Invalid token")
    if payload.get("type") != "access":
        raise AuthenticationError("Invalid access token")
    user_id = payload.get("id")
    if not isinstance(user_id, int):
        raise AuthenticationError("Invalid token")
    # tokens outlive accounts; a deleted user must not pass
    user = db.get(User, user_id)
    if not user:
        raise AuthenticationError("User not found")
    return user

def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise AuthorizationError("Admin access required")
    return user
