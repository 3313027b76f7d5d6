import logging
from fastapi import APIRouter, Depends, HTTPException, UploadFile, File, Response
from typing import List
from minio.error import S3Error
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import select
from restaurant.api.deps import get_db
from restaurant.core.auth import require_admin
from restaurant.core.config import Settings, get_settings
from restaurant.db import models
from restaurant.schemas import AvailabilityUpdate, MenuItemCreate, MenuItemRead, MenuItemUpdate, menu_item_view
from restaurant.services import storage

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin)])

def _get_item(db: Session, item_id: int) -> models.MenuItem:
    obj = db.get(models.MenuItem, item_id)
    if not obj: raise HTTPException(status_code=404, detail='Menu item not found.')
    return obj

def _check_category(db: Session, category_id: int):
    if not db.get(models.Category, category_id):
        raise HTTPException(status_code=400, detail='Invalid category ID provided.')

def _check_name(db: Session, name: str, exclude_id: int | None = None):
    q = db.query(models.MenuItem).filter(models.MenuItem.name == name)
    if exclude_id is not None: q = q.filter(models.MenuItem.id != exclude_id)
    if q.first(): raise HTTPException(status_code=409, detail='Menu item with this name already exists.')

def _discard_image(url: str | None):
    key = storage.object_key_from_url(url)
    if not key: return
    try:
        storage.delete_object(key)
    except S3Error as exc:
        logger.warning('could not delete image %s: %s', key, exc)

@router.get('/', response_model=List[MenuItemRead])
def list_menu_items(db: Session = Depends(get_db)):
    stmt = select(models.MenuItem).options(selectinload(models.MenuItem.category)).order_by(models.MenuItem.created_at.desc(), models.MenuItem.id.desc())
    return [menu_item_view(m) for m in db.execute(stmt).scalars().all()]

@router.get('/{item_id}', response_model=MenuItemRead)
def get_menu_item(item_id: int, db: Session = Depends(get_db)):
    return menu_item_view(_get_item(db, item_id))

@router.post('/', response_model=MenuItemRead, status_code=201)
def create_menu_item(payload: MenuItemCreate, db: Session = Depends(get_db)):
    _check_category(db, payload.category_id)
    _check_name(db, payload.name)
    now = models.now_utc()
    obj = models.MenuItem(**payload.model_dump(), created_at=now, updated_at=now)
    db.add(obj); db.commit(); db.refresh(obj)
    return menu_item_view(obj)

@router.put('/{item_id}', response_model=MenuItemRead)
def update_menu_item(item_id: int, payload: MenuItemUpdate, db: Session = Depends(get_db)):
    obj = _get_item(db, item_id)
    _check_category(db, payload.category_id)
    _check_name(db, payload.name, exclude_id=item_id)
    old_image = obj.image_url
    for k, v in payload.model_dump(exclude_none=True).items(): setattr(obj, k, v)
    if payload.image_url is None:
        obj.image_url = None
    obj.updated_at = models.now_utc()
    db.add(obj); db.commit(); db.refresh(obj)
    if old_image and old_image != obj.image_url:
        _discard_image(old_image)
    return menu_item_view(obj)

@router.patch('/{item_id}/availability', response_model=MenuItemRead)
def toggle_availability(item_id: int, payload: AvailabilityUpdate, db: Session = Depends(get_db)):
    obj = _get_item(db, item_id)
    obj.is_available = payload.is_available
    obj.updated_at = models.now_utc()
    db.add(obj); db.commit(); db.refresh(obj)
    return menu_item_view(obj)

@router.delete('/{item_id}', status_code=204)
def delete_menu_item(item_id: int, db: Session = Depends(get_db)):
    obj = _get_item(db, item_id)
    if db.query(models.OrderItem.id).filter(models.OrderItem.menu_item_id == item_id).first():
        raise HTTPException(status_code=409, detail='Menu item appears in existing orders; mark it unavailable instead.')
    image_url = obj.image_url
    db.delete(obj); db.commit()
    _discard_image(image_url)
    return Response(status_code=204)

@router.post('/{item_id}/image', response_model=MenuItemRead)
async def upload_menu_item_image(item_id: int, file: UploadFile = File(...), db: Session = Depends(get_db),
                                 cfg: Settings = Depends(get_settings)):
    obj = _get_item(db, item_id)
    filename = file.filename or ''
    if not storage.is_allowed_image(filename, file.content_type):
        raise HTTPException(status_code=400, detail='Images only (jpeg, jpg, png, gif).')
    content = await file.read()
    if len(content) > cfg.MAX_IMAGE_BYTES:
        raise HTTPException(status_code=400, detail=f'Image exceeds the {cfg.MAX_IMAGE_BYTES // (1024 * 1024)}MB limit.')
    ext = '.' + filename.rsplit('.', 1)[-1].lower()
    key, url = storage.upload_bytes(content, file.content_type or 'application/octet-stream', ext=ext)
    old_image = obj.image_url
    obj.image_url = url
    obj.updated_at = models.now_utc()
    db.add(obj); db.commit(); db.refresh(obj)
    logger.info('menu item %s image stored at %s', obj.id, key)
    if old_image and old_image != url:
        _discard_image(old_image)
    return menu_item_view(obj)
