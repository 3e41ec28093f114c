# fairway/schemas.py

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Any, Dict, Iterable, List, Optional
from datetime import date, datetime
from decimal import Decimal

from fairway.catalog_models import (
    ALL_DAYS_MASK,
    DAY_GROUP_MASKS,
    DEFAULT_CURRENCY,
    DEFAULT_PRIORITY,
    ActionType,
    DayGroup,
    MemberSegment,
    PriceCategory,
    Stacking,
)
from fairway.pricing import normalize_hhmm, normalize_segment


def update_values(payload: BaseModel, nullable: Iterable[str] = ()) -> Dict[str, Any]:
    """Fields explicitly sent in a partial update; nulls only survive for nullable columns."""
    nullable = set(nullable)
    return {
        key: value
        for key, value in payload.model_dump(exclude_unset=True).items()
        if value is not None or key in nullable
    }


def _hhmm(value):
    if value is None:
        return None
    normalized = normalize_hhmm(value)
    if normalized is None:
        raise ValueError("time must be HH:mm")
    return normalized


def _currency(value):
    if value is None:
        return None
    value = str(value).strip().upper()
    if len(value) != 3 or not value.isalpha():
        raise ValueError("currency must be a 3-letter code")
    return value


# ------------------------------------------------------------------
# PRICE ITEMS
# ------------------------------------------------------------------

class PriceItemCreate(BaseModel):
    code: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    unit_price: Decimal = Field(ge=0)
    currency: str = DEFAULT_CURRENCY
    category: PriceCategory
    is_active: bool = True

    @field_validator("currency")
    @classmethod
    def check_currency(cls, value):
        return _currency(value)


class PriceItemUpdate(BaseModel):
    code: Optional[str] = Field(default=None, min_length=1, max_length=50)
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    unit_price: Optional[Decimal] = Field(default=None, ge=0)
    currency: Optional[str] = None
    category: Optional[PriceCategory] = None
    is_active: Optional[bool] = None

    @field_validator("currency")
    @classmethod
    def check_currency(cls, value):
        return _currency(value)


class PriceItemActive(BaseModel):
    is_active: bool


class PriceItemOut(BaseModel):
    id: int
    code: str
    name: str
    description: Optional[str] = None
    unit_price: Decimal
    currency: str
    category: PriceCategory
    is_active: bool

    model_config = {"from_attributes": True}


class BasePriceOut(BaseModel):
    base_price: Decimal
    currency: str
    items: List[PriceItemOut] = []
    # category -> ids of competing active items (first id is the one used)
    ambiguous: Dict[str, List[int]] = {}


# ------------------------------------------------------------------
# PROMOTIONS
# ------------------------------------------------------------------

class PromotionCreate(BaseModel):
    code: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    start_date: date
    end_date: date
    is_active: bool = True
    priority: int = DEFAULT_PRIORITY
    stacking: Stacking = Stacking.EXCLUSIVE

    @model_validator(mode="after")
    def check_dates(self):
        if self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


class PromotionUpdate(BaseModel):
    code: Optional[str] = Field(default=None, min_length=1, max_length=50)
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: Optional[bool] = None
    priority: Optional[int] = None
    stacking: Optional[Stacking] = None


class PromotionOut(BaseModel):
    id: int
    code: str
    name: str
    description: Optional[str] = None
    start_date: date
    end_date: date
    is_active: bool
    priority: int
    stacking: Stacking
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# ------------------------------------------------------------------
# PROMOTION BANDS
# ------------------------------------------------------------------

class PromotionBandCreate(BaseModel):
    day_group: DayGroup = DayGroup.ALL
    dow_mask: int = Field(default=ALL_DAYS_MASK, ge=0, le=ALL_DAYS_MASK)
    time_from: str
    time_to: str
    course_id: Optional[int] = None
    player_segment: Optional[MemberSegment] = None
    min_lead_days: Optional[int] = Field(default=None, ge=0)
    max_lead_days: Optional[int] = Field(default=None, ge=0)
    min_players: Optional[int] = Field(default=None, ge=1)
    max_players: Optional[int] = Field(default=None, ge=1)
    action_type: ActionType
    action_value: Decimal = Field(ge=0)
    includes_green_fee: bool = True
    includes_caddy: bool = True
    includes_cart: bool = True
    extra_conditions: Optional[Dict[str, Any]] = None
    extra_meta: Optional[Dict[str, Any]] = None

    @field_validator("time_from", "time_to", mode="before")
    @classmethod
    def check_times(cls, value):
        return _hhmm(value)

    @field_validator("player_segment", mode="before")
    @classmethod
    def check_segment(cls, value):
        return normalize_segment(value)

    @model_validator(mode="after")
    def check_scope(self):
        if self.time_from > self.time_to:
            raise ValueError("time_from must not be after time_to")
        if self.min_players is not None and self.max_players is not None and self.min_players > self.max_players:
            raise ValueError("min_players must not exceed max_players")
        if self.min_lead_days is not None and self.max_lead_days is not None and self.min_lead_days > self.max_lead_days:
            raise ValueError("min_lead_days must not exceed max_lead_days")
        if self.action_type == ActionType.DISCOUNT_PERCENT and self.action_value > 100:
            raise ValueError("percent discount must be between 0 and 100")
        if not self.dow_mask & DAY_GROUP_MASKS[self.day_group]:
            raise ValueError("dow_mask selects no day inside day_group")
        return self


class PromotionBandUpdate(BaseModel):
    day_group: Optional[DayGroup] = None
    dow_mask: Optional[int] = Field(default=None, ge=0, le=ALL_DAYS_MASK)
    time_from: Optional[str] = None
    time_to: Optional[str] = None
    course_id: Optional[int] = None
    player_segment: Optional[MemberSegment] = None
    min_lead_days: Optional[int] = Field(default=None, ge=0)
    max_lead_days: Optional[int] = Field(default=None, ge=0)
    min_players: Optional[int] = Field(default=None, ge=1)
    max_players: Optional[int] = Field(default=None, ge=1)
    action_type: Optional[ActionType] = None
    action_value: Optional[Decimal] = Field(default=None, ge=0)
    includes_green_fee: Optional[bool] = None
    includes_caddy: Optional[bool] = None
    includes_cart: Optional[bool] = None
    extra_conditions: Optional[Dict[str, Any]] = None
    extra_meta: Optional[Dict[str, Any]] = None

    @field_validator("time_from", "time_to", mode="before")
    @classmethod
    def check_times(cls, value):
        return _hhmm(value)

    @field_validator("player_segment", mode="before")
    @classmethod
    def check_segment(cls, value):
        return normalize_segment(value)


class PromotionBandOut(BaseModel):
    id: int
    promotion_id: int
    day_group: DayGroup
    dow_mask: int
    time_from: str
    time_to: str
    course_id: Optional[int] = None
    player_segment: Optional[MemberSegment] = None
    min_lead_days: Optional[int] = None
    max_lead_days: Optional[int] = None
    min_players: Optional[int] = None
    max_players: Optional[int] = None
    action_type: ActionType
    action_value: Decimal
    includes_green_fee: bool
    includes_caddy: bool
    includes_cart: bool
    extra_conditions: Optional[Dict[str, Any]] = None
    extra_meta: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class PromotionWithBands(PromotionOut):
    bands: List[PromotionBandOut] = []


# ------------------------------------------------------------------
# BEST PRICE
# ------------------------------------------------------------------

class BestPriceRequest(BaseModel):
    tee_date: date
    tee_time: str
    member_segment: Optional[MemberSegment] = None
    course_id: Optional[int] = None
    num_players: int = Field(default=1, ge=1)
    # Omit to assemble the base price from the active green fee + caddy + cart items.
    base_price: Optional[Decimal] = Field(default=None, ge=0)
    # Reference date for lead-time rules; they are skipped when omitted.
    today: Optional[date] = None

    @field_validator("tee_time", mode="before")
    @classmethod
    def check_time(cls, value):
        return _hhmm(value)

    @field_validator("member_segment", mode="before")
    @classmethod
    def check_segment(cls, value):
        return normalize_segment(value)


class BestPriceOut(BaseModel):
    final_price: Decimal
    base_price: Decimal
    currency: str
    source: str
    promotion_id: Optional[int] = None
    promotion_name: Optional[str] = None
    promotion_code: Optional[str] = None
    band_id: Optional[int] = None
    includes_green_fee: bool
    includes_caddy: bool
    includes_cart: bool
    inclusions: List[str] = []
    summary: str
