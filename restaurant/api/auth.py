import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from restaurant.api.deps import get_db
from restaurant.core.auth import get_current_user
from restaurant.core.config import Settings, get_settings
from restaurant.db.models import Role, User, now_utc
from restaurant.schemas import LoginPayload, RegisterPayload, TokenResponse, UserRead
from restaurant.security.utils import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)

router = APIRouter()  # main.py mounts at /api/auth


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterPayload, db: Session = Depends(get_db), cfg: Settings = Depends(get_settings)) -> TokenResponse:
    email = str(payload.email).lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=409, detail="Email already registered. Please use a different email.")

    # public sign-up never grants admin
    user = User(
        email=email,
        password_hash=hash_password(payload.password),
        full_name=payload.full_name,
        phone_number=payload.phone_number,
        role=Role.USER.value,
        created_at=now_utc(),
        updated_at=now_utc(),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("registered user %s", user.id)

    token, _ = create_access_token(user, cfg)
    return TokenResponse(token=token, user=UserRead.model_validate(user))


@router.post("/login", response_model=TokenResponse)
def login(payload: LoginPayload, db: Session = Depends(get_db), cfg: Settings = Depends(get_settings)) -> TokenResponse:
    user = db.query(User).filter(User.email == str(payload.email).lower()).first()
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    token, _ = create_access_token(user, cfg)
    return TokenResponse(token=token, user=UserRead.model_validate(user))


@router.get("/me", response_model=UserRead)
def me(user: User = Depends(get_current_user)) -> User:
    return user
