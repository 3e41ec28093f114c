# fairway/routers/prices.py
from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session
from typing import List

from fairway import schemas
from fairway.database import get_db
from fairway import price_catalog

router = APIRouter(prefix="/settings/prices", tags=["prices"])


@router.get("/", response_model=List[schemas.PriceItemOut])
def get_price_items(active_only: bool = False, db: Session = Depends(get_db)):
    """All price items, grouped by category"""
    return price_catalog.list_price_items(db, active_only=active_only)


@router.get("/base", response_model=schemas.BasePriceOut)
def get_base_price(db: Session = Depends(get_db)):
    """
    Base price of a round: the active green fee + caddy + cart items.
    `ambiguous` lists categories with more than one active item.
    """
    items = price_catalog.list_active_items(db)
    picked = price_catalog.pick_base_items(items)
    return schemas.BasePriceOut(
        base_price=price_catalog.compute_base_price(items),
        currency=price_catalog.DEFAULT_CURRENCY,
        items=[schemas.PriceItemOut.model_validate(item) for item in picked.values()],
        ambiguous={
            category.value: ids
            for category, ids in price_catalog.find_ambiguous_categories(items).items()
        },
    )


@router.get("/{item_id}", response_model=schemas.PriceItemOut)
def get_price_item(item_id: int, db: Session = Depends(get_db)):
    return price_catalog.get_price_item(db, item_id)


@router.post("/", response_model=schemas.PriceItemOut, status_code=201)
def create_price_item(item_in: schemas.PriceItemCreate, db: Session = Depends(get_db)):
    return price_catalog.create_price_item(db, item_in)


@router.put("/{item_id}", response_model=schemas.PriceItemOut)
def update_price_item(item_id: int, item_in: schemas.PriceItemUpdate, db: Session = Depends(get_db)):
    return price_catalog.update_price_item(db, item_id, item_in)


@router.patch("/{item_id}/active", response_model=schemas.PriceItemOut)
def toggle_price_item(item_id: int, body: schemas.PriceItemActive, db: Session = Depends(get_db)):
    """Activate or retire a price item without deleting it"""
    return price_catalog.set_price_item_active(db, item_id, body.is_active)


@router.delete("/{item_id}", status_code=204)
def delete_price_item(item_id: int, db: Session = Depends(get_db)):
    price_catalog.delete_price_item(db, item_id)
    return Response(status_code=204)
