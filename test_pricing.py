import os
import unittest
from datetime import date
from decimal import Decimal

os.environ.setdefault("DATABASE_URL", "sqlite://")

from fairway.catalog_models import ActionType, DayGroup, MemberSegment, Promotion, PromotionBand, Stacking
from fairway.pricing import (
    BestPriceResult,
    PriceSource,
    build_best_price,
    make_context,
    normalize_hhmm,
    normalize_segment,
    select_best_band_from_list,
    specificity_score,
)

SATURDAY = date(2026, 10, 17)
SUNDAY = date(2026, 10, 18)
MONDAY = date(2026, 10, 19)
TUESDAY = date(2026, 10, 20)

BASE = Decimal("2300")


def promotion(id=1, priority=50, **overrides):
    values = dict(
        id=id,
        code=f"PROMO{id}",
        name=f"Promotion {id}",
        start_date=date(2026, 1, 1),
        end_date=date(2026, 12, 31),
        is_active=True,
        priority=priority,
        stacking=Stacking.EXCLUSIVE,
    )
    values.update(overrides)
    return Promotion(**values)


def band(promo, id, **overrides):
    values = dict(
        id=id,
        promotion=promo,
        day_group=DayGroup.ALL,
        dow_mask=127,
        time_from="06:00",
        time_to="18:00",
        action_type=ActionType.FIXED_PRICE,
        action_value=Decimal("1000"),
        includes_green_fee=True,
        includes_caddy=True,
        includes_cart=True,
    )
    values.update(overrides)
    return PromotionBand(**values)


class BestPriceScenarioTests(unittest.TestCase):
    def setUp(self):
        self.promo = promotion(id=7, priority=50, code="EARLY_WEEKEND", name="Early Bird Weekend")
        self.bands = [
            band(
                self.promo,
                1,
                day_group=DayGroup.WEEKEND,
                time_from="06:00",
                time_to="10:00",
                action_type=ActionType.DISCOUNT_PERCENT,
                action_value=Decimal("20"),
                includes_cart=False,
            )
        ]

    def test_weekend_morning_gets_percent_discount(self):
        ctx = make_context(SATURDAY, "07:30", num_players=2)
        result = build_best_price(self.bands, ctx, BASE)

        self.assertEqual(result.final_price, Decimal("1840.00"))
        self.assertEqual(result.base_price, Decimal("2300.00"))
        self.assertEqual(result.source, PriceSource.PROMOTION)
        self.assertEqual(result.promotion_id, 7)
        self.assertEqual(result.promotion_code, "EARLY_WEEKEND")
        self.assertEqual(result.promotion_name, "Early Bird Weekend")
        self.assertTrue(result.includes_green_fee)
        self.assertTrue(result.includes_caddy)
        self.assertFalse(result.includes_cart)
        self.assertEqual(result.inclusions, ["Green fee", "Caddy"])

    def test_weekday_falls_back_to_base(self):
        ctx = make_context(TUESDAY, "07:30", num_players=2)
        result = build_best_price(self.bands, ctx, BASE)

        self.assertEqual(result.final_price, Decimal("2300.00"))
        self.assertEqual(result.source, PriceSource.BASE)
        self.assertIsNone(result.promotion_id)
        self.assertTrue(result.includes_green_fee and result.includes_caddy and result.includes_cart)

    def test_sunday_is_weekend(self):
        ctx = make_context(SUNDAY, "06:00")
        self.assertEqual(build_best_price(self.bands, ctx, BASE).source, PriceSource.PROMOTION)

    def test_summary_mentions_promotion(self):
        result = build_best_price(self.bands, make_context(SATURDAY, "07:30"), BASE)
        self.assertIn("EARLY_WEEKEND", result.summary)
        self.assertIn("1,840.00", result.summary)
        self.assertEqual(result.to_dict()["source"], "PROMOTION")


class NoMatchTests(unittest.TestCase):
    def test_empty_candidates_give_base(self):
        result = build_best_price([], make_context(MONDAY, "08:00"), Decimal("1234.5"))
        self.assertEqual(result.source, PriceSource.BASE)
        self.assertEqual(result.final_price, Decimal("1234.50"))
        self.assertEqual(result.final_price, result.base_price)
        self.assertEqual(result.inclusions, ["Green fee", "Caddy", "Cart"])

    def test_inactive_or_expired_promotion_never_applies(self):
        bands = [
            band(promotion(id=1, is_active=False), 1),
            band(promotion(id=2, start_date=date(2025, 1, 1), end_date=date(2025, 12, 31)), 2),
        ]
        result = build_best_price(bands, make_context(MONDAY, "08:00"), BASE)
        self.assertEqual(result.source, PriceSource.BASE)

    def test_unparseable_tee_time_gives_base(self):
        bands = [band(promotion(), 1)]
        result = build_best_price(bands, make_context(MONDAY, "noon"), BASE)
        self.assertEqual(result.source, PriceSource.BASE)

    def test_negative_base_price_is_clamped(self):
        result = build_best_price([], make_context(MONDAY, "08:00"), Decimal("-50"))
        self.assertEqual(result.final_price, Decimal("0.00"))
        self.assertEqual(result.base_price, Decimal("0.00"))
        self.assertEqual(BestPriceResult.base(-1).final_price, Decimal("0.00"))

        bands = [band(promotion(), 1, action_type=ActionType.DISCOUNT_PERCENT, action_value=Decimal("10"))]
        result = build_best_price(bands, make_context(MONDAY, "08:00"), Decimal("-50"))
        self.assertEqual(result.source, PriceSource.PROMOTION)
        self.assertEqual(result.final_price, Decimal("0.00"))
        self.assertEqual(result.base_price, Decimal("0.00"))


class PriceActionTests(unittest.TestCase):
    def test_fixed_price_ignores_base(self):
        bands = [band(promotion(), 1, action_type=ActionType.FIXED_PRICE, action_value=Decimal("1590"))]
        for base_price in (Decimal("0"), Decimal("100"), BASE, Decimal("99999.99")):
            result = build_best_price(bands, make_context(MONDAY, "08:00"), base_price)
            self.assertEqual(result.final_price, Decimal("1590.00"))

    def test_thb_discount_is_clamped_at_zero(self):
        bands = [band(promotion(), 1, action_type=ActionType.DISCOUNT_THB, action_value=Decimal("5000"))]
        result = build_best_price(bands, make_context(MONDAY, "08:00"), BASE)
        self.assertEqual(result.final_price, Decimal("0.00"))

    def test_thb_discount(self):
        bands = [band(promotion(), 1, action_type=ActionType.DISCOUNT_THB, action_value=Decimal("300"))]
        result = build_best_price(bands, make_context(MONDAY, "08:00"), BASE)
        self.assertEqual(result.final_price, Decimal("2000.00"))

    def test_full_percent_discount_is_zero(self):
        bands = [band(promotion(), 1, action_type=ActionType.DISCOUNT_PERCENT, action_value=Decimal("100"))]
        result = build_best_price(bands, make_context(MONDAY, "08:00"), BASE)
        self.assertEqual(result.final_price, Decimal("0.00"))

    def test_percent_discount_rounds_to_cents(self):
        bands = [band(promotion(), 1, action_type=ActionType.DISCOUNT_PERCENT, action_value=Decimal("15"))]
        result = build_best_price(bands, make_context(MONDAY, "08:00"), Decimal("999.99"))
        self.assertEqual(result.final_price, Decimal("849.99"))

    def test_action_type_given_as_text(self):
        bands = [band(promotion(), 1, action_type="discount_thb", action_value="250")]
        result = build_best_price(bands, make_context(MONDAY, "08:00"), BASE)
        self.assertEqual(result.final_price, Decimal("2050.00"))


class ScopeTests(unittest.TestCase):
    def _applies(self, b, **ctx_kwargs):
        ctx_kwargs.setdefault("tee_date", MONDAY)
        ctx_kwargs.setdefault("tee_time", "08:00")
        return select_best_band_from_list([b], make_context(**ctx_kwargs)) is b

    def test_time_window_is_inclusive(self):
        b = band(promotion(), 1, time_from="10:00", time_to="14:00")
        self.assertTrue(self._applies(b, tee_time="10:00"))
        self.assertTrue(self._applies(b, tee_time="14:00"))
        self.assertTrue(self._applies(b, tee_time="12:15"))
        self.assertFalse(self._applies(b, tee_time="09:59"))
        self.assertFalse(self._applies(b, tee_time="14:01"))

    def test_time_window_accepts_seconds_from_store(self):
        b = band(promotion(), 1, time_from="10:00:00", time_to="14:00:00")
        self.assertTrue(self._applies(b, tee_time="14:00"))
        self.assertFalse(self._applies(b, tee_time="9:30"))

    def test_party_size_bounds(self):
        b = band(promotion(), 1, min_players=2, max_players=4)
        for players in (2, 3, 4):
            self.assertTrue(self._applies(b, num_players=players), players)
        for players in (1, 5):
            self.assertFalse(self._applies(b, num_players=players), players)

    def test_open_ended_party_size(self):
        b = band(promotion(), 1, min_players=3)
        self.assertFalse(self._applies(b, num_players=2))
        self.assertTrue(self._applies(b, num_players=40))

    def test_segment_wildcards(self):
        unscoped = band(promotion(), 1, player_segment=None)
        everyone = band(promotion(), 2, player_segment=MemberSegment.ALL)
        thai_only = band(promotion(), 3, player_segment=MemberSegment.THAI)

        for segment in ("THAI", "FOREIGN_WP", "FOREIGN_OTHER", None):
            self.assertTrue(self._applies(unscoped, member_segment=segment))
            self.assertTrue(self._applies(everyone, member_segment=segment))

        self.assertTrue(self._applies(thai_only, member_segment="THAI"))
        self.assertTrue(self._applies(thai_only, member_segment="thai"))
        self.assertFalse(self._applies(thai_only, member_segment="FOREIGN_WP"))
        self.assertFalse(self._applies(thai_only, member_segment=None))

    def test_course_scope(self):
        b = band(promotion(), 1, course_id=2)
        self.assertTrue(self._applies(b, course_id=2))
        self.assertFalse(self._applies(b, course_id=1))
        self.assertFalse(self._applies(b, course_id=None))
        self.assertTrue(self._applies(band(promotion(), 2, course_id=None), course_id=1))

    def test_dow_mask_narrows_day_group(self):
        saturday_only = band(promotion(), 1, day_group=DayGroup.ALL, dow_mask=1 << 6)
        self.assertTrue(self._applies(saturday_only, tee_date=SATURDAY))
        self.assertFalse(self._applies(saturday_only, tee_date=SUNDAY))

        weekend_sunday = band(promotion(), 2, day_group=DayGroup.WEEKEND, dow_mask=1 << 0)
        self.assertTrue(self._applies(weekend_sunday, tee_date=SUNDAY))
        self.assertFalse(self._applies(weekend_sunday, tee_date=SATURDAY))

    def test_weekday_group(self):
        b = band(promotion(), 1, day_group=DayGroup.WEEKDAY)
        self.assertTrue(self._applies(b, tee_date=MONDAY))
        self.assertTrue(self._applies(b, tee_date=TUESDAY))
        self.assertFalse(self._applies(b, tee_date=SATURDAY))
        self.assertFalse(self._applies(b, tee_date=SUNDAY))

    def test_lead_time_needs_reference_date(self):
        b = band(promotion(), 1, min_lead_days=7)
        # No clock supplied: the rule is not enforced.
        self.assertTrue(self._applies(b, tee_date=TUESDAY))
        self.assertTrue(self._applies(b, tee_date=TUESDAY, today=date(2026, 10, 13)))
        self.assertFalse(self._applies(b, tee_date=TUESDAY, today=date(2026, 10, 14)))

    def test_max_lead_days(self):
        b = band(promotion(), 1, max_lead_days=2)
        self.assertTrue(self._applies(b, tee_date=TUESDAY, today=date(2026, 10, 18)))
        self.assertFalse(self._applies(b, tee_date=TUESDAY, today=date(2026, 10, 17)))


class RankingTests(unittest.TestCase):
    def test_lower_priority_number_wins_regardless_of_order(self):
        preferred = band(promotion(id=1, priority=10), 20, action_value=Decimal("900"))
        other = band(promotion(id=2, priority=20), 10, action_value=Decimal("800"))
        ctx = make_context(MONDAY, "08:00")

        self.assertIs(select_best_band_from_list([preferred, other], ctx), preferred)
        self.assertIs(select_best_band_from_list([other, preferred], ctx), preferred)

    def test_specificity_breaks_priority_ties(self):
        promo = promotion(priority=10)
        generic = band(promo, 1)
        specific = band(promo, 2, player_segment=MemberSegment.THAI, min_players=2, day_group=DayGroup.WEEKDAY)
        ctx = make_context(MONDAY, "08:00", member_segment="THAI", num_players=2)

        self.assertEqual(specificity_score(generic), 0)
        self.assertEqual(specificity_score(specific), 3)
        self.assertIs(select_best_band_from_list([generic, specific], ctx), specific)

    def test_all_segment_is_not_specific(self):
        self.assertEqual(specificity_score(band(promotion(), 1, player_segment=MemberSegment.ALL)), 0)

    def test_band_id_breaks_remaining_ties(self):
        promo = promotion(priority=10)
        first = band(promo, 3)
        second = band(promo, 8)
        ctx = make_context(MONDAY, "08:00")
        self.assertIs(select_best_band_from_list([second, first], ctx), first)

    def test_missing_priority_ranks_as_default(self):
        unranked = band(promotion(id=1, priority=None), 1)
        ranked = band(promotion(id=2, priority=50), 2)
        late = band(promotion(id=3, priority=150), 3)
        ctx = make_context(MONDAY, "08:00")

        self.assertIs(select_best_band_from_list([unranked, ranked], ctx), ranked)
        self.assertIs(select_best_band_from_list([late, unranked], ctx), unranked)

    def test_malformed_band_is_skipped(self):
        promo = promotion(priority=1)
        broken_time = band(promo, 1, time_from="25:00")
        inverted_time = band(promo, 2, time_from="12:00", time_to="08:00")
        inverted_party = band(promo, 3, min_players=5, max_players=2)
        bad_percent = band(promo, 4, action_type=ActionType.DISCOUNT_PERCENT, action_value=Decimal("120"))
        negative = band(promo, 5, action_value=Decimal("-10"))
        bad_mask = band(promo, 6, dow_mask=300)
        fallback = band(promotion(id=2, priority=99), 7, action_value=Decimal("1500"))

        bands = [broken_time, inverted_time, inverted_party, bad_percent, negative, bad_mask, fallback]
        result = build_best_price(bands, make_context(MONDAY, "08:00", num_players=3), BASE)
        self.assertEqual(result.band_id, 7)
        self.assertEqual(result.final_price, Decimal("1500.00"))


class NormalizationTests(unittest.TestCase):
    def test_hhmm(self):
        self.assertEqual(normalize_hhmm("7:05"), "07:05")
        self.assertEqual(normalize_hhmm("07:05:00"), "07:05")
        self.assertIsNone(normalize_hhmm("24:00"))
        self.assertIsNone(normalize_hhmm("7.05"))
        self.assertIsNone(normalize_hhmm(None))

    def test_segment_aliases(self):
        self.assertEqual(normalize_segment("foreign-wp"), MemberSegment.FOREIGN_WP)
        self.assertEqual(normalize_segment("Work Permit"), MemberSegment.FOREIGN_WP)
        self.assertEqual(normalize_segment("tourist"), MemberSegment.FOREIGN_OTHER)
        self.assertEqual(normalize_segment(" Thai "), MemberSegment.THAI)
        self.assertIsNone(normalize_segment(""))
        with self.assertRaises(ValueError):
            normalize_segment("martian")


if __name__ == "__main__":
    unittest.main()
