from sqlalchemy import Column, Integer, String, Numeric, Enum, Boolean, Date, DateTime, ForeignKey, Text, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
import os

from fairway.database import Base

DEFAULT_CURRENCY = (os.getenv("PRICING_CURRENCY") or "THB").strip().upper() or "THB"
# Priority of promotions created without one; lower wins.
DEFAULT_PRIORITY = 100


class PriceCategory(str, enum.Enum):
    GREEN_FEE = "GREEN_FEE"
    CART = "CART"
    CADDY = "CADDY"
    OTHER = "OTHER"


class DayGroup(str, enum.Enum):
    ALL = "ALL"
    WEEKDAY = "WEEKDAY"
    WEEKEND = "WEEKEND"


class MemberSegment(str, enum.Enum):
    THAI = "THAI"
    FOREIGN_WP = "FOREIGN_WP"
    FOREIGN_OTHER = "FOREIGN_OTHER"
    ALL = "ALL"


class ActionType(str, enum.Enum):
    FIXED_PRICE = "FIXED_PRICE"
    DISCOUNT_THB = "DISCOUNT_THB"
    DISCOUNT_PERCENT = "DISCOUNT_PERCENT"


class Stacking(str, enum.Enum):
    EXCLUSIVE = "EXCLUSIVE"
    STACKABLE = "STACKABLE"


# Bit 1<<dow, 0=Sunday ... 6=Saturday.
ALL_DAYS_MASK = 127
DAY_GROUP_MASKS = {
    DayGroup.ALL: ALL_DAYS_MASK,
    DayGroup.WEEKDAY: 0b0111110,
    DayGroup.WEEKEND: 0b1000001,
}


class PriceItem(Base):
    """
    Unit-priced line item (green fee, cart, caddy, other).

    The base price of a round is the sum of the single active GREEN_FEE, CADDY
    and CART items. Deactivating an item drops it from future quotes.
    """
    __tablename__ = "price_items"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), unique=True, index=True, nullable=False)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    unit_price = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default=DEFAULT_CURRENCY)
    category = Column(Enum(PriceCategory, name="price_category"), nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)


class Promotion(Base):
    __tablename__ = "promotions"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), unique=True, index=True, nullable=False)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, nullable=False, index=True)  # inclusive
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    priority = Column(Integer, nullable=False, default=DEFAULT_PRIORITY, index=True)  # lower wins
    stacking = Column(Enum(Stacking, name="promotion_stacking"), nullable=False, default=Stacking.EXCLUSIVE)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)

    bands = relationship(
        "PromotionBand",
        back_populates="promotion",
        cascade="all, delete-orphan",
    )


class PromotionBand(Base):
    """
    One scoped pricing rule of a promotion.

    Scope columns left NULL mean "any". `day_group` and `dow_mask` are both
    honoured: a band applies only on days present in both masks.
    """
    __tablename__ = "promotion_bands"

    id = Column(Integer, primary_key=True, index=True)
    promotion_id = Column(Integer, ForeignKey("promotions.id", ondelete="CASCADE"), nullable=False, index=True)
    day_group = Column(Enum(DayGroup, name="promotion_day_group"), nullable=False, default=DayGroup.ALL)
    dow_mask = Column(Integer, nullable=False, default=ALL_DAYS_MASK)
    time_from = Column(String(8), nullable=False)  # HH:mm
    time_to = Column(String(8), nullable=False)    # HH:mm, inclusive
    course_id = Column(Integer, nullable=True, index=True)
    player_segment = Column(Enum(MemberSegment, name="member_segment"), nullable=True)
    min_lead_days = Column(Integer, nullable=True)
    max_lead_days = Column(Integer, nullable=True)
    min_players = Column(Integer, nullable=True)
    max_players = Column(Integer, nullable=True)
    action_type = Column(Enum(ActionType, name="price_action_type"), nullable=False)
    action_value = Column(Numeric(12, 2), nullable=False)
    includes_green_fee = Column(Boolean, nullable=False, default=True)
    includes_caddy = Column(Boolean, nullable=False, default=True)
    includes_cart = Column(Boolean, nullable=False, default=True)
    # Opaque to the resolver.
    extra_conditions = Column(JSON, nullable=True)
    extra_meta = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    promotion = relationship("Promotion", back_populates="bands")
