from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session
from typing import List

from restaurant.api.deps import get_db
from restaurant.core.auth import get_current_user, require_admin
from restaurant.db.models import Address, Order, Role, User, now_utc
from restaurant.schemas import AddressCreate, AddressRead, AddressUpdate, ProfileUpdate, RoleUpdate, UserRead

router = APIRouter()  # main.py mounts at /api/users

# --- own profile ---

@router.get("/profile", response_model=UserRead)
def get_profile(user: User = Depends(get_current_user)):
    return user

@router.put("/profile", response_model=UserRead)
def update_profile(payload: ProfileUpdate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No user fields to update. Provide full_name or phone_number.")
    for k, v in changes.items(): setattr(user, k, v)
    user.updated_at = now_utc()
    db.add(user); db.commit(); db.refresh(user)
    return user

# --- own addresses ---

def _unset_default(db: Session, user_id: int):
    db.execute(
        update(Address)
        .where(Address.user_id == user_id, Address.is_default.is_(True))
        .values(is_default=False, updated_at=now_utc())
    )

def _own_address(db: Session, user: User, address_id: int) -> Address:
    addr = db.execute(select(Address).where(Address.id == address_id, Address.user_id == user.id)).scalar_one_or_none()
    if not addr:
        raise HTTPException(status_code=404, detail="Address not found.")
    return addr

@router.get("/me/addresses", response_model=List[AddressRead])
def list_addresses(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    stmt = (
        select(Address)
        .where(Address.user_id == user.id)
        .order_by(Address.is_default.desc(), Address.created_at.desc(), Address.id.desc())
    )
    return db.execute(stmt).scalars().all()

@router.post("/me/addresses", response_model=AddressRead, status_code=201)
def add_address(payload: AddressCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    has_any = db.execute(select(Address.id).where(Address.user_id == user.id)).first() is not None
    # first address becomes the default
    is_default = payload.is_default or not has_any
    if is_default:
        _unset_default(db, user.id)
    data = payload.model_dump()
    data["is_default"] = is_default
    addr = Address(user_id=user.id, created_at=now_utc(), updated_at=now_utc(), **data)
    db.add(addr); db.commit(); db.refresh(addr)
    return addr

@router.put("/me/addresses/{address_id}", response_model=AddressRead)
def update_address(address_id: int, payload: AddressUpdate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    addr = _own_address(db, user, address_id)
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No address fields to update.")
    if changes.get("is_default") is True:
        _unset_default(db, user.id)
    elif changes.get("is_default") is False and addr.is_default:
        raise HTTPException(status_code=400, detail="Set another address as default instead of unsetting this one.")
    for k, v in changes.items():
        if v is None and k in ("street_address", "city", "country", "is_default"):
            raise HTTPException(status_code=400, detail=f"{k} cannot be empty.")
        setattr(addr, k, v)
    addr.updated_at = now_utc()
    db.add(addr); db.commit(); db.refresh(addr)
    return addr

@router.delete("/me/addresses/{address_id}")
def delete_address(address_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    addr = _own_address(db, user, address_id)
    count = db.execute(select(func.count(Address.id)).where(Address.user_id == user.id)).scalar_one()
    if count <= 1:
        raise HTTPException(status_code=400, detail="Cannot delete the last remaining address.")
    if addr.is_default:
        raise HTTPException(status_code=400, detail="Cannot delete the default address. Please set another address as default first.")
    if db.execute(select(Order.id).where(Order.address_id == addr.id)).first():
        raise HTTPException(status_code=409, detail="Address is used by existing orders.")
    db.delete(addr); db.commit()
    return {"message": "Address deleted successfully."}

# --- admin user management ---

def _admin_count(db: Session) -> int:
    return db.execute(select(func.count(User.id)).where(User.role == Role.ADMIN.value)).scalar_one()

@router.get("/", response_model=List[UserRead])
def list_users(db: Session = Depends(get_db), _: User = Depends(require_admin)):
    return db.execute(select(User).order_by(User.created_at.desc(), User.id.desc())).scalars().all()

@router.get("/{user_id}", response_model=UserRead)
def get_user(user_id: int, db: Session = Depends(get_db), _: User = Depends(require_admin)):
    obj = db.get(User, user_id)
    if not obj: raise HTTPException(status_code=404, detail="User not found.")
    return obj

@router.delete("/{user_id}")
def delete_user(user_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    if user_id == admin.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account through this interface.")
    target = db.get(User, user_id)
    if not target: raise HTTPException(status_code=404, detail="User to delete not found.")
    if target.is_admin and _admin_count(db) <= 1:
        raise HTTPException(status_code=400, detail="Cannot delete the last administrator account.")
    if db.execute(select(Order.id).where(Order.user_id == target.id)).first():
        raise HTTPException(status_code=409, detail="Cannot delete user: associated orders exist.")
    db.delete(target); db.commit()
    return {"message": "User deleted successfully."}

@router.put("/{user_id}/role", response_model=UserRead)
def update_user_role(user_id: int, payload: RoleUpdate, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    valid = [r.value for r in Role]
    if payload.role not in valid:
        raise HTTPException(status_code=400, detail=f"Invalid role provided. Valid roles are: {', '.join(valid)}.")
    if user_id == admin.id and payload.role != Role.ADMIN.value:
        raise HTTPException(status_code=400, detail="You cannot demote your own admin account.")
    target = db.get(User, user_id)
    if not target: raise HTTPException(status_code=404, detail="User not found.")
    if target.is_admin and payload.role != Role.ADMIN.value and _admin_count(db) <= 1:
        raise HTTPException(status_code=400, detail="Cannot demote the last administrator account.")
    target.role = payload.role
    target.updated_at = now_utc()
    db.add(target); db.commit(); db.refresh(target)
    return target
