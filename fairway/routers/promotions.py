# fairway/routers/promotions.py
from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session
from typing import List
from datetime import date

from fairway import schemas
from fairway.database import get_db
from fairway import promotion_catalog

router = APIRouter(prefix="/settings/promotions", tags=["promotions"])


@router.get("/", response_model=List[schemas.PromotionWithBands])
def get_promotions(db: Session = Depends(get_db)):
    """Promotions by priority (lowest first), newest first within a priority"""
    return promotion_catalog.list_promotions(db)


@router.get("/candidates", response_model=List[schemas.PromotionBandOut])
def get_candidate_bands(on_date: date, db: Session = Depends(get_db)):
    """Bands that are in play on a given date, before any tee-time scoping"""
    return promotion_catalog.list_candidate_bands(db, on_date)


@router.get("/bands/{band_id}", response_model=schemas.PromotionBandOut)
def get_band(band_id: int, db: Session = Depends(get_db)):
    return promotion_catalog.get_band(db, band_id)


@router.put("/bands/{band_id}", response_model=schemas.PromotionBandOut)
def update_band(band_id: int, band_in: schemas.PromotionBandUpdate, db: Session = Depends(get_db)):
    return promotion_catalog.update_band(db, band_id, band_in)


@router.delete("/bands/{band_id}", status_code=204)
def delete_band(band_id: int, db: Session = Depends(get_db)):
    promotion_catalog.delete_band(db, band_id)
    return Response(status_code=204)


@router.get("/{promotion_id}", response_model=schemas.PromotionWithBands)
def get_promotion(promotion_id: int, db: Session = Depends(get_db)):
    return promotion_catalog.get_promotion(db, promotion_id)


@router.post("/", response_model=schemas.PromotionOut, status_code=201)
def create_promotion(promotion_in: schemas.PromotionCreate, db: Session = Depends(get_db)):
    return promotion_catalog.create_promotion(db, promotion_in)


@router.put("/{promotion_id}", response_model=schemas.PromotionOut)
def update_promotion(promotion_id: int, promotion_in: schemas.PromotionUpdate, db: Session = Depends(get_db)):
    return promotion_catalog.update_promotion(db, promotion_id, promotion_in)


@router.delete("/{promotion_id}", status_code=204)
def delete_promotion(promotion_id: int, db: Session = Depends(get_db)):
    """Delete a promotion together with all of its bands"""
    promotion_catalog.delete_promotion(db, promotion_id)
    return Response(status_code=204)


@router.get("/{promotion_id}/bands", response_model=List[schemas.PromotionBandOut])
def get_bands(promotion_id: int, db: Session = Depends(get_db)):
    return promotion_catalog.list_bands(db, promotion_id)


@router.post("/{promotion_id}/bands", response_model=schemas.PromotionBandOut, status_code=201)
def create_band(promotion_id: int, band_in: schemas.PromotionBandCreate, db: Session = Depends(get_db)):
    return promotion_catalog.create_band(db, promotion_id, band_in)
