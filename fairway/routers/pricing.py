# fairway/routers/pricing.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fairway import schemas
from fairway.database import get_db
from fairway.pricing import resolve_best_price

router = APIRouter(prefix="/pricing", tags=["pricing"])


@router.post("/best-price", response_model=schemas.BestPriceOut)
def best_price(req: schemas.BestPriceRequest, db: Session = Depends(get_db)):
    """
    Final price for a tee time after promotions.

    Always answers: when the catalogs cannot be read the base price is quoted
    with source=BASE, so the booking flow can carry on.
    """
    result = resolve_best_price(
        db,
        tee_date=req.tee_date,
        tee_time=req.tee_time,
        member_segment=req.member_segment,
        course_id=req.course_id,
        num_players=req.num_players,
        base_price=req.base_price,
        today=req.today,
    )
    return result.to_dict()
