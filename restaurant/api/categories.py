from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session
from typing import List
from restaurant.api.deps import get_db
from restaurant.core.auth import require_admin
from restaurant.db.models import Category, MenuItem
from restaurant.schemas import CategoryCreate, CategoryRead

router = APIRouter()

@router.get('/', response_model=List[CategoryRead])
def list_categories(db: Session = Depends(get_db)):
    return db.query(Category).order_by(Category.name).all()

@router.post('/', response_model=CategoryRead, status_code=201, dependencies=[Depends(require_admin)])
def create_category(payload: CategoryCreate, db: Session = Depends(get_db)):
    if db.query(Category).filter(Category.name == payload.name).first():
        raise HTTPException(status_code=409, detail='Category with this name already exists.')
    obj = Category(**payload.model_dump())
    db.add(obj); db.commit(); db.refresh(obj)
    return obj

@router.put('/{category_id}', response_model=CategoryRead, dependencies=[Depends(require_admin)])
def update_category(category_id: int, payload: CategoryCreate, db: Session = Depends(get_db)):
    obj = db.get(Category, category_id)
    if not obj: raise HTTPException(status_code=404, detail='Category not found.')
    clash = db.query(Category).filter(Category.name == payload.name, Category.id != category_id).first()
    if clash: raise HTTPException(status_code=409, detail='Category with this name already exists.')
    for k, v in payload.model_dump().items(): setattr(obj, k, v)
    db.add(obj); db.commit(); db.refresh(obj)
    return obj

@router.delete('/{category_id}', status_code=204, dependencies=[Depends(require_admin)])
def delete_category(category_id: int, db: Session = Depends(get_db)):
    obj = db.get(Category, category_id)
    if not obj: raise HTTPException(status_code=404, detail='Category not found.')
    if db.query(MenuItem.id).filter(MenuItem.category_id == category_id).first():
        raise HTTPException(status_code=409, detail='Cannot delete category: it is linked to existing menu items.')
    db.delete(obj); db.commit()
    return Response(status_code=204)
