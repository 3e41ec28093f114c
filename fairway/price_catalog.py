from __future__ import annotations
# fairway/price_catalog.py
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from fairway import schemas
from fairway.catalog_models import DEFAULT_CURRENCY, PriceCategory, PriceItem
from fairway.pricing import CatalogError, ZERO, q2, to_decimal

# Categories summed into the base price of a round; each should have one active item.
BASE_PRICE_CATEGORIES = (PriceCategory.GREEN_FEE, PriceCategory.CADDY, PriceCategory.CART)


def _category(item: PriceItem) -> Optional[PriceCategory]:
    value = item.category
    if value is None or isinstance(value, PriceCategory):
        return value
    try:
        return PriceCategory(str(value).strip().upper())
    except ValueError:
        return None


def _is_active(item: PriceItem) -> bool:
    return True if item.is_active is None else bool(item.is_active)


def _id_key(item: PriceItem):
    return (item.id is None, item.id or 0)


def fetch_active_items(db: Session) -> List[PriceItem]:
    try:
        return (
            db.query(PriceItem)
            .filter(PriceItem.is_active.is_(True))
            .order_by(PriceItem.id)
            .all()
        )
    except Exception as e:
        raise CatalogError(f"price items unavailable: {type(e).__name__}: {str(e)[:160]}") from e


def list_active_items(db: Session) -> List[PriceItem]:
    """Active price items; an unreadable catalog is reported and treated as empty."""
    try:
        return fetch_active_items(db)
    except CatalogError as e:
        print(f"[PRICING] {e}")
        return []


def find_ambiguous_categories(items: Iterable[PriceItem]) -> Dict[PriceCategory, List[int]]:
    seen: Dict[PriceCategory, List[PriceItem]] = {}
    for item in items:
        category = _category(item)
        if category in BASE_PRICE_CATEGORIES and _is_active(item):
            seen.setdefault(category, []).append(item)
    return {
        category: [i.id for i in sorted(rows, key=_id_key)]
        for category, rows in seen.items()
        if len(rows) > 1
    }


def pick_base_items(items: Iterable[PriceItem]) -> Dict[PriceCategory, PriceItem]:
    """The active item used per base category; lowest id wins when several are active."""
    items = list(items)
    picked: Dict[PriceCategory, PriceItem] = {}
    for item in sorted(items, key=_id_key):
        category = _category(item)
        if category not in BASE_PRICE_CATEGORIES or not _is_active(item):
            continue
        picked.setdefault(category, item)

    for category, ids in find_ambiguous_categories(items).items():
        print(f"[PRICING] {len(ids)} active {category.value} items {ids}; using id={picked[category].id}")
    return picked


def compute_base_price(items: Iterable[PriceItem]) -> Decimal:
    total = ZERO
    for item in pick_base_items(items).values():
        total += to_decimal(item.unit_price)
    return q2(total)


# ------------------------------------------------------------------
# ADMINISTRATION
# ------------------------------------------------------------------

def list_price_items(db: Session, active_only: bool = False) -> List[PriceItem]:
    query = db.query(PriceItem)
    if active_only:
        query = query.filter(PriceItem.is_active.is_(True))
    return query.order_by(PriceItem.category, PriceItem.code).all()


def get_price_item(db: Session, item_id: int) -> PriceItem:
    item = db.query(PriceItem).filter(PriceItem.id == item_id).first()
    if not item:
        raise HTTPException(status_code=404, detail="Price item not found")
    return item


def _ensure_code_free(db: Session, code: str, exclude_id: Optional[int] = None) -> None:
    query = db.query(PriceItem).filter(PriceItem.code == code)
    if exclude_id is not None:
        query = query.filter(PriceItem.id != exclude_id)
    if query.first():
        raise HTTPException(status_code=409, detail=f"Price item code already exists: {code}")


def _ensure_single_active(db: Session, category: PriceCategory, exclude_id: Optional[int] = None) -> None:
    if category not in BASE_PRICE_CATEGORIES:
        return
    query = db.query(PriceItem).filter(
        PriceItem.category == category,
        PriceItem.is_active.is_(True),
    )
    if exclude_id is not None:
        query = query.filter(PriceItem.id != exclude_id)
    other = query.first()
    if other:
        raise HTTPException(
            status_code=409,
            detail=f"{category.value} already has an active item ({other.code}); deactivate it first",
        )


def create_price_item(db: Session, item_in: schemas.PriceItemCreate) -> PriceItem:
    _ensure_code_free(db, item_in.code)
    if item_in.is_active:
        _ensure_single_active(db, item_in.category)

    item = PriceItem(**item_in.model_dump())
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


def update_price_item(db: Session, item_id: int, item_in: schemas.PriceItemUpdate) -> PriceItem:
    item = get_price_item(db, item_id)
    changes = schemas.update_values(item_in, nullable={"description"})

    if changes.get("code") and changes["code"] != item.code:
        _ensure_code_free(db, changes["code"], exclude_id=item.id)

    category = changes.get("category") or item.category
    is_active = changes.get("is_active", item.is_active)
    if is_active:
        _ensure_single_active(db, category, exclude_id=item.id)

    for key, value in changes.items():
        setattr(item, key, value)
    item.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(item)
    return item


def set_price_item_active(db: Session, item_id: int, is_active: bool) -> PriceItem:
    return update_price_item(db, item_id, schemas.PriceItemUpdate(is_active=is_active))


def delete_price_item(db: Session, item_id: int) -> None:
    item = get_price_item(db, item_id)
    db.delete(item)
    db.commit()
