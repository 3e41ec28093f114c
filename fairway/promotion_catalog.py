from __future__ import annotations
# fairway/promotion_catalog.py
from datetime import date, datetime
from typing import List, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session, contains_eager, selectinload

from fairway import schemas
from fairway.catalog_models import DAY_GROUP_MASKS, DayGroup, Promotion, PromotionBand
from fairway.pricing import CatalogError, band_problem


def fetch_candidate_bands(db: Session, on_date: date) -> List[PromotionBand]:
    """
    Bands of every active promotion whose date range contains `on_date`.

    Each band comes with its promotion loaded (priority, stacking, code, name).
    Raises CatalogError when the store cannot be read.
    """
    try:
        return (
            db.query(PromotionBand)
            .join(PromotionBand.promotion)
            .options(contains_eager(PromotionBand.promotion))
            .filter(
                Promotion.is_active.is_(True),
                Promotion.start_date <= on_date,
                Promotion.end_date >= on_date,
            )
            .order_by(Promotion.priority, PromotionBand.id)
            .all()
        )
    except Exception as e:
        raise CatalogError(f"promotion bands unavailable: {type(e).__name__}: {str(e)[:160]}") from e


def list_candidate_bands(db: Session, on_date: date) -> List[PromotionBand]:
    """Like `fetch_candidate_bands`, but an unreadable store yields no candidates."""
    try:
        return fetch_candidate_bands(db, on_date)
    except CatalogError as e:
        print(f"[PRICING] {e}")
        return []


# ------------------------------------------------------------------
# PROMOTIONS
# ------------------------------------------------------------------

def list_promotions(db: Session) -> List[Promotion]:
    return (
        db.query(Promotion)
        .options(selectinload(Promotion.bands))
        .order_by(Promotion.priority.asc(), Promotion.created_at.desc(), Promotion.id.desc())
        .all()
    )


def get_promotion(db: Session, promotion_id: int) -> Promotion:
    promotion = (
        db.query(Promotion)
        .options(selectinload(Promotion.bands))
        .filter(Promotion.id == promotion_id)
        .first()
    )
    if not promotion:
        raise HTTPException(status_code=404, detail="Promotion not found")
    return promotion


def _ensure_code_free(db: Session, code: str, exclude_id: Optional[int] = None) -> None:
    query = db.query(Promotion).filter(Promotion.code == code)
    if exclude_id is not None:
        query = query.filter(Promotion.id != exclude_id)
    if query.first():
        raise HTTPException(status_code=409, detail=f"Promotion code already exists: {code}")


def create_promotion(db: Session, promotion_in: schemas.PromotionCreate) -> Promotion:
    _ensure_code_free(db, promotion_in.code)
    promotion = Promotion(**promotion_in.model_dump())
    db.add(promotion)
    db.commit()
    db.refresh(promotion)
    return promotion


def update_promotion(db: Session, promotion_id: int, promotion_in: schemas.PromotionUpdate) -> Promotion:
    promotion = get_promotion(db, promotion_id)
    changes = schemas.update_values(promotion_in, nullable={"description"})

    if changes.get("code") and changes["code"] != promotion.code:
        _ensure_code_free(db, changes["code"], exclude_id=promotion.id)

    start_date = changes.get("start_date", promotion.start_date)
    end_date = changes.get("end_date", promotion.end_date)
    if start_date > end_date:
        raise HTTPException(status_code=422, detail="start_date must not be after end_date")

    for key, value in changes.items():
        setattr(promotion, key, value)
    promotion.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(promotion)
    return promotion


def delete_promotion(db: Session, promotion_id: int) -> None:
    # Bands go with their promotion (ORM cascade).
    promotion = get_promotion(db, promotion_id)
    db.delete(promotion)
    db.commit()


# ------------------------------------------------------------------
# BANDS
# ------------------------------------------------------------------

def list_bands(db: Session, promotion_id: int) -> List[PromotionBand]:
    get_promotion(db, promotion_id)
    return (
        db.query(PromotionBand)
        .filter(PromotionBand.promotion_id == promotion_id)
        .order_by(PromotionBand.day_group, PromotionBand.time_from, PromotionBand.id)
        .all()
    )


def get_band(db: Session, band_id: int) -> PromotionBand:
    band = db.query(PromotionBand).filter(PromotionBand.id == band_id).first()
    if not band:
        raise HTTPException(status_code=404, detail="Promotion band not found")
    return band


def _validate_band(band: PromotionBand) -> None:
    problem = band_problem(band)
    if problem:
        raise HTTPException(status_code=422, detail=problem)
    if not int(band.dow_mask) & DAY_GROUP_MASKS[DayGroup(band.day_group)]:
        raise HTTPException(status_code=422, detail="dow_mask selects no day inside day_group")


def create_band(db: Session, promotion_id: int, band_in: schemas.PromotionBandCreate) -> PromotionBand:
    get_promotion(db, promotion_id)
    band = PromotionBand(promotion_id=promotion_id, **band_in.model_dump())
    _validate_band(band)
    db.add(band)
    db.commit()
    db.refresh(band)
    return band


def update_band(db: Session, band_id: int, band_in: schemas.PromotionBandUpdate) -> PromotionBand:
    band = get_band(db, band_id)
    changes = schemas.update_values(
        band_in,
        nullable={
            "course_id",
            "player_segment",
            "min_lead_days",
            "max_lead_days",
            "min_players",
            "max_players",
            "extra_conditions",
            "extra_meta",
        },
    )
    for key, value in changes.items():
        setattr(band, key, value)

    try:
        _validate_band(band)
    except HTTPException:
        db.rollback()
        raise
    db.commit()
    db.refresh(band)
    return band


def delete_band(db: Session, band_id: int) -> None:
    band = get_band(db, band_id)
    db.delete(band)
    db.commit()
