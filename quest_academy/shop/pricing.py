"""
Shop pricing: promotion discounts applied to item prices
"""

import math
from typing import Iterable, Optional, Tuple


def percentage_price(price: int, value: float) -> int:
    return math.floor(price * (100 - value) / 100)


def fixed_price(price: int, value: float) -> int:
    return max(1, math.floor(price - value))


def promotion_applies(promotion: dict, item_id: str) -> bool:
    discount = promotion.get("discount")
    if not discount:
        return False
    item_ids = [str(i) for i in discount.get("item_ids") or []]
    return not item_ids or item_id in item_ids


def discounted_price(item_id: str, price: int, promotions: Iterable[dict]) -> Tuple[int, Optional[dict]]:
    """
    First applicable promotion wins
    Returns (price, discount info or None)
    """
    item_id = str(item_id)
    for promotion in promotions:
        if not promotion_applies(promotion, item_id):
            continue

        discount = promotion["discount"]
        new_price = price
        if discount.get("type") == "percentage":
            new_price = percentage_price(price, discount.get("value", 0))
        elif discount.get("type") == "fixed":
            new_price = fixed_price(price, discount.get("value", 0))

        return new_price, {
            "promotion_id": promotion.get("_id"),
            "promotion_title": promotion.get("title"),
            "type": discount.get("type"),
            "value": discount.get("value"),
            "original_price": price,
        }

    return price, None
