from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from datetime import date, time
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from fairway.catalog_models import (
    ALL_DAYS_MASK,
    DAY_GROUP_MASKS,
    DEFAULT_CURRENCY,
    DEFAULT_PRIORITY,
    ActionType,
    DayGroup,
    MemberSegment,
    Promotion,
    PromotionBand,
)

MONEY_PLACES = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")

_HHMM_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


class CatalogError(Exception):
    """A price or promotion catalog could not be read from the backing store."""


class PriceSource(str, enum.Enum):
    BASE = "BASE"
    PROMOTION = "PROMOTION"


def q2(value: Decimal) -> Decimal:
    return value.quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def non_negative_money(value) -> Decimal:
    return q2(max(ZERO, to_decimal(value)))


def to_decimal(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("boolean is not a money amount")
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    return Decimal(str(value).strip())


def normalize_hhmm(value) -> Optional[str]:
    """Return a zero-padded "HH:MM" string, or None when the value is not a time of day."""
    if value is None:
        return None
    if isinstance(value, time):
        return value.strftime("%H:%M")
    match = _HHMM_RE.match(str(value).strip())
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    seconds = int(match.group(3) or 0)
    if hours > 23 or minutes > 59 or seconds > 59:
        return None
    return f"{hours:02d}:{minutes:02d}"


def normalize_segment(value) -> Optional[MemberSegment]:
    if value is None:
        return None
    if isinstance(value, MemberSegment):
        return value
    raw = str(value).strip().lower().replace("-", "_").replace(" ", "_")
    if not raw:
        return None
    # Stored values are the enum names; accept the labels used at the front desk too.
    if raw in {"thai", "th", "local", "thai_national"}:
        return MemberSegment.THAI
    if raw in {"foreign_wp", "wp", "work_permit", "foreign_work_permit", "expat"}:
        return MemberSegment.FOREIGN_WP
    if raw in {"foreign_other", "foreign", "foreigner", "tourist", "visitor"}:
        return MemberSegment.FOREIGN_OTHER
    if raw in {"all", "any"}:
        return MemberSegment.ALL
    raise ValueError(f"Unknown member segment: {value!r}")


def day_of_week(on_date: date) -> int:
    # Python weekday(): Monday=0 ... Sunday=6; masks use Sunday=0 ... Saturday=6.
    return (on_date.weekday() + 1) % 7


def _coerce(enum_cls, value):
    if value is None or isinstance(value, enum_cls):
        return value
    return enum_cls(str(value).strip().upper())


def effective_dow_mask(band: PromotionBand) -> int:
    mask = ALL_DAYS_MASK if band.dow_mask is None else int(band.dow_mask)
    group = _coerce(DayGroup, band.day_group) or DayGroup.ALL
    return mask & DAY_GROUP_MASKS[group]


def promotion_in_scope(promotion: Promotion, on_date: date) -> bool:
    if promotion is None or not promotion.is_active:
        return False
    return promotion.start_date <= on_date <= promotion.end_date


@dataclass(frozen=True)
class PricingContext:
    tee_date: date
    tee_time: Optional[str]
    member_segment: Optional[MemberSegment] = None
    course_id: Optional[int] = None
    num_players: int = 1
    # Reference date for lead-time rules; lead time is not enforced without it.
    today: Optional[date] = None

    @property
    def dow(self) -> int:
        return day_of_week(self.tee_date)

    @property
    def lead_days(self) -> Optional[int]:
        if self.today is None:
            return None
        return (self.tee_date - self.today).days


def make_context(
    tee_date: date,
    tee_time,
    member_segment=None,
    course_id: Optional[int] = None,
    num_players: int = 1,
    today: Optional[date] = None,
) -> PricingContext:
    return PricingContext(
        tee_date=tee_date,
        tee_time=normalize_hhmm(tee_time),
        member_segment=normalize_segment(member_segment),
        course_id=course_id,
        num_players=int(num_players),
        today=today,
    )


@dataclass
class BestPriceResult:
    final_price: Decimal
    base_price: Decimal
    source: PriceSource
    includes_green_fee: bool = True
    includes_caddy: bool = True
    includes_cart: bool = True
    promotion_id: Optional[int] = None
    promotion_name: Optional[str] = None
    promotion_code: Optional[str] = None
    band_id: Optional[int] = None
    currency: str = DEFAULT_CURRENCY

    @classmethod
    def base(cls, base_price, currency: str = DEFAULT_CURRENCY) -> "BestPriceResult":
        amount = non_negative_money(base_price)
        return cls(final_price=amount, base_price=amount, source=PriceSource.BASE, currency=currency)

    @property
    def inclusions(self) -> List[str]:
        labels = []
        if self.includes_green_fee:
            labels.append("Green fee")
        if self.includes_caddy:
            labels.append("Caddy")
        if self.includes_cart:
            labels.append("Cart")
        return labels

    @property
    def summary(self) -> str:
        covered = ", ".join(label.lower() for label in self.inclusions) or "nothing"
        amount = f"{self.final_price:,.2f} {self.currency}"
        if self.source == PriceSource.PROMOTION:
            return f"Promotion {self.promotion_code} ({self.promotion_name}): {amount} incl. {covered}"
        return f"Base price: {amount} incl. {covered}"

    def to_dict(self) -> dict:
        return {
            "final_price": str(self.final_price),
            "base_price": str(self.base_price),
            "currency": self.currency,
            "source": self.source.value,
            "promotion_id": self.promotion_id,
            "promotion_name": self.promotion_name,
            "promotion_code": self.promotion_code,
            "band_id": self.band_id,
            "includes_green_fee": self.includes_green_fee,
            "includes_caddy": self.includes_caddy,
            "includes_cart": self.includes_cart,
            "inclusions": self.inclusions,
            "summary": self.summary,
        }


def band_problem(band: PromotionBand) -> Optional[str]:
    """Describe why a band row cannot be evaluated, or None when it is well formed."""
    time_from = normalize_hhmm(band.time_from)
    time_to = normalize_hhmm(band.time_to)
    if time_from is None or time_to is None:
        return f"invalid time window {band.time_from!r}-{band.time_to!r}"
    if time_from > time_to:
        return f"time_from {time_from} is after time_to {time_to}"

    if band.dow_mask is not None and not 0 <= int(band.dow_mask) <= ALL_DAYS_MASK:
        return f"dow_mask {band.dow_mask} outside 0..{ALL_DAYS_MASK}"
    try:
        _coerce(DayGroup, band.day_group)
        _coerce(MemberSegment, band.player_segment)
    except ValueError as e:
        return str(e)

    if band.min_players is not None and band.max_players is not None:
        if int(band.min_players) > int(band.max_players):
            return f"min_players {band.min_players} exceeds max_players {band.max_players}"
    if band.min_lead_days is not None and band.max_lead_days is not None:
        if int(band.min_lead_days) > int(band.max_lead_days):
            return f"min_lead_days {band.min_lead_days} exceeds max_lead_days {band.max_lead_days}"

    if band.action_type is None:
        return "missing action_type"
    try:
        action = _coerce(ActionType, band.action_type)
    except ValueError:
        return f"unknown action_type {band.action_type!r}"
    if band.action_value is None:
        return "missing action_value"
    try:
        value = to_decimal(band.action_value)
    except (InvalidOperation, TypeError, ValueError):
        return f"invalid action_value {band.action_value!r}"
    if not value.is_finite() or value < ZERO:
        return f"action_value {band.action_value} must be a non-negative amount"
    if action == ActionType.DISCOUNT_PERCENT and value > HUNDRED:
        return f"discount percent {value} exceeds 100"
    return None


def _matches(ctx: PricingContext, band: PromotionBand) -> bool:
    if not promotion_in_scope(band.promotion, ctx.tee_date):
        return False

    if not (effective_dow_mask(band) >> ctx.dow) & 1:
        return False

    if ctx.tee_time is None:
        return False
    if not normalize_hhmm(band.time_from) <= ctx.tee_time <= normalize_hhmm(band.time_to):
        return False

    if band.course_id is not None:
        if ctx.course_id is None or int(band.course_id) != int(ctx.course_id):
            return False

    segment = _coerce(MemberSegment, band.player_segment)
    if segment is not None and segment != MemberSegment.ALL and segment != ctx.member_segment:
        return False

    if band.min_players is not None and ctx.num_players < int(band.min_players):
        return False
    if band.max_players is not None and ctx.num_players > int(band.max_players):
        return False

    lead_days = ctx.lead_days
    if lead_days is not None:
        if band.min_lead_days is not None and lead_days < int(band.min_lead_days):
            return False
        if band.max_lead_days is not None and lead_days > int(band.max_lead_days):
            return False

    return True


def specificity_score(band: PromotionBand) -> int:
    score = 0
    if band.course_id is not None:
        score += 1
    segment = _coerce(MemberSegment, band.player_segment)
    if segment is not None and segment != MemberSegment.ALL:
        score += 1
    if band.min_players is not None:
        score += 1
    if band.max_players is not None:
        score += 1
    if (_coerce(DayGroup, band.day_group) or DayGroup.ALL) != DayGroup.ALL:
        score += 1
    return score


def _rank_key(band: PromotionBand, position: int):
    # Priority dominates; specificity breaks ties, then band id, then input order.
    priority = getattr(band.promotion, "priority", None)
    priority = DEFAULT_PRIORITY if priority is None else int(priority)
    band_id = band.id
    return (
        priority,
        -specificity_score(band),
        band_id is None,
        band_id if band_id is not None else 0,
        position,
    )


def select_best_band_from_list(
    bands: Iterable[PromotionBand],
    ctx: PricingContext,
) -> Optional[PromotionBand]:
    best: Optional[PromotionBand] = None
    best_key = None

    for position, band in enumerate(bands):
        try:
            problem = band_problem(band)
            if problem:
                print(f"[PRICING] Skipping malformed band id={band.id}: {problem}")
                continue
            if not _matches(ctx, band):
                continue
            key = _rank_key(band, position)
        except (TypeError, ValueError, AttributeError, InvalidOperation) as e:
            print(f"[PRICING] Skipping band id={band.id}: {type(e).__name__}: {str(e)[:160]}")
            continue

        if best_key is None or key < best_key:
            best = band
            best_key = key

    return best


def apply_price_action(band: PromotionBand, base_price) -> Decimal:
    base = max(ZERO, to_decimal(base_price))
    value = to_decimal(band.action_value)
    action = _coerce(ActionType, band.action_type)

    if action == ActionType.FIXED_PRICE:
        price = value
    elif action == ActionType.DISCOUNT_THB:
        price = base - value
    elif action == ActionType.DISCOUNT_PERCENT:
        price = base * (HUNDRED - value) / HUNDRED
    else:
        raise ValueError(f"Unsupported action type: {band.action_type!r}")

    return q2(max(ZERO, price))


def _flag(value) -> bool:
    return True if value is None else bool(value)


def build_best_price(
    bands: Iterable[PromotionBand],
    ctx: PricingContext,
    base_price,
    currency: str = DEFAULT_CURRENCY,
) -> BestPriceResult:
    """
    Pick the winning band for `ctx` and price it against `base_price`.

    Exactly one band can win; with no match the base price is returned and
    assumed to cover green fee, caddy and cart.
    """
    band = select_best_band_from_list(bands, ctx)
    if band is None:
        return BestPriceResult.base(base_price, currency=currency)

    promotion = band.promotion
    return BestPriceResult(
        final_price=apply_price_action(band, base_price),
        base_price=non_negative_money(base_price),
        source=PriceSource.PROMOTION,
        includes_green_fee=_flag(band.includes_green_fee),
        includes_caddy=_flag(band.includes_caddy),
        includes_cart=_flag(band.includes_cart),
        promotion_id=promotion.id,
        promotion_name=promotion.name,
        promotion_code=promotion.code,
        band_id=band.id,
        currency=currency,
    )


def evaluate_best_price(db: Session, ctx: PricingContext, base_price) -> BestPriceResult:
    """Same as `resolve_best_price` but raises CatalogError when bands cannot be read."""
    from fairway.promotion_catalog import fetch_candidate_bands

    bands = fetch_candidate_bands(db, ctx.tee_date)
    return build_best_price(bands, ctx, base_price)


def resolve_best_price(
    db: Session,
    tee_date: date,
    tee_time,
    member_segment=None,
    course_id: Optional[int] = None,
    num_players: int = 1,
    base_price=None,
    today: Optional[date] = None,
) -> BestPriceResult:
    """
    Final chargeable price for a tee time.

    When `base_price` is omitted it is assembled from the active green fee,
    caddy and cart items. This never raises for catalog problems: an unreadable
    catalog yields a BASE result so a booking is never blocked on pricing.
    Lead-time rules are only applied when `today` is given.
    """
    from fairway.price_catalog import compute_base_price, list_active_items

    if base_price is None:
        base_price = compute_base_price(list_active_items(db))

    try:
        segment = normalize_segment(member_segment)
    except ValueError as e:
        print(f"[PRICING] {e}; only unsegmented bands can apply")
        segment = None

    ctx = make_context(
        tee_date=tee_date,
        tee_time=tee_time,
        member_segment=segment,
        course_id=course_id,
        num_players=num_players,
        today=today,
    )
    try:
        return evaluate_best_price(db, ctx, base_price)
    except CatalogError as e:
        print(f"[PRICING] Promotion catalog unavailable, using base price: {str(e)[:200]}")
        return BestPriceResult.base(base_price)
