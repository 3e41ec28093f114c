# populate_catalog.py - Run this once to load the standard price list and launch promotions
from datetime import date

from fairway.database import Base, SessionLocal, engine
from fairway.catalog_models import (
    ActionType,
    DayGroup,
    PriceCategory,
    PriceItem,
    Promotion,
    PromotionBand,
)


def populate_catalog():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()

    # One active item per GREEN_FEE / CADDY / CART: their sum is the base price of a round.
    items = [
        {"code": "GF_STANDARD", "name": "Green Fee 18 Holes", "unit_price": 1500, "category": PriceCategory.GREEN_FEE},
        {"code": "CADDY_STANDARD", "name": "Caddy Fee", "unit_price": 300, "category": PriceCategory.CADDY},
        {"code": "CART_18", "name": "Golf Cart (18 holes)", "unit_price": 500, "category": PriceCategory.CART},
        {"code": "RANGE_BUCKET", "name": "Driving Range Bucket", "unit_price": 100, "category": PriceCategory.OTHER},
    ]

    promotions = [
        {
            "code": "EARLY_WEEKEND",
            "name": "Early Bird Weekend",
            "description": "20% off weekend tee times before 10:00, cart not included",
            "start_date": date(date.today().year, 1, 1),
            "end_date": date(date.today().year, 12, 31),
            "priority": 50,
            "bands": [
                {
                    "day_group": DayGroup.WEEKEND,
                    "time_from": "06:00",
                    "time_to": "10:00",
                    "action_type": ActionType.DISCOUNT_PERCENT,
                    "action_value": 20,
                    "includes_green_fee": True,
                    "includes_caddy": True,
                    "includes_cart": False,
                },
            ],
        },
        {
            "code": "TWILIGHT",
            "name": "Twilight Green Fee",
            "description": "Fixed green-fee-only rate for afternoon starts",
            "start_date": date(date.today().year, 1, 1),
            "end_date": date(date.today().year, 12, 31),
            "priority": 80,
            "bands": [
                {
                    "day_group": DayGroup.WEEKDAY,
                    "time_from": "15:00",
                    "time_to": "17:30",
                    "action_type": ActionType.FIXED_PRICE,
                    "action_value": 900,
                    "includes_green_fee": True,
                    "includes_caddy": False,
                    "includes_cart": False,
                },
            ],
        },
    ]

    added = 0
    updated = 0

    for item_data in items:
        existing = db.query(PriceItem).filter(PriceItem.code == item_data["code"]).first()
        if existing:
            for key, value in item_data.items():
                if key == "code":
                    continue
                setattr(existing, key, value)
            updated += 1
            print(f"  Updated: {item_data['code']} - {item_data['name']} - {item_data['unit_price']}")
        else:
            db.add(PriceItem(**item_data))
            added += 1
            print(f"  Added: {item_data['code']} - {item_data['name']} - {item_data['unit_price']}")

    for promo_data in promotions:
        promo_data = dict(promo_data)
        bands = promo_data.pop("bands")
        existing = db.query(Promotion).filter(Promotion.code == promo_data["code"]).first()
        if existing:
            # Bands are replaced wholesale; the seed owns these promotions.
            for key, value in promo_data.items():
                setattr(existing, key, value)
            existing.bands = [PromotionBand(**band) for band in bands]
            updated += 1
            print(f"  Updated promotion: {promo_data['code']} ({len(bands)} bands)")
        else:
            promotion = Promotion(**promo_data)
            promotion.bands = [PromotionBand(**band) for band in bands]
            db.add(promotion)
            added += 1
            print(f"  Added promotion: {promo_data['code']} ({len(bands)} bands)")

    db.commit()
    print(f"\nOK: {added} added, {updated} updated.")
    db.close()

if __name__ == "__main__":
    populate_catalog()
