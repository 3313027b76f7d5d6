"""Public menu browsing."""
from fastapi import APIRouter, Depends
from typing import List, Optional
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import select
from restaurant.api.deps import get_db
from restaurant.db.models import Category, MenuItem
from restaurant.schemas import CategoryRead, MenuItemRead, menu_item_view

router = APIRouter()

@router.get('/categories', response_model=List[CategoryRead])
def menu_categories(db: Session = Depends(get_db)):
    return db.execute(select(Category).order_by(Category.name)).scalars().all()

@router.get('/items', response_model=List[MenuItemRead])
def menu_items(db: Session = Depends(get_db), category_id: Optional[int] = None, search: Optional[str] = None,
               available_only: bool = False):
    stmt = select(MenuItem).options(selectinload(MenuItem.category)).order_by(MenuItem.name)
    if category_id is not None: stmt = stmt.where(MenuItem.category_id == category_id)
    if search: stmt = stmt.where(MenuItem.name.ilike(f"%{search}%"))
    if available_only: stmt = stmt.where(MenuItem.is_available.is_(True))
    return [menu_item_view(m) for m in db.execute(stmt).scalars().all()]
