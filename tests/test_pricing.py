from quest_academy.shop.pricing import discounted_price, fixed_price, percentage_price


def test_percentage_floors():
    assert percentage_price(99, 15) == 84


def test_fixed_never_below_one():
    assert fixed_price(50, 20) == 30
    assert fixed_price(10, 30) == 1


def test_first_applicable_promotion_wins():
    promotions = [
        {"_id": "p1", "title": "Potion sale", "discount": {"type": "percentage", "value": 50, "item_ids": ["other"]}},
        {"_id": "p2", "title": "Store-wide", "discount": {"type": "fixed", "value": 5, "item_ids": []}},
        {"_id": "p3", "title": "Later", "discount": {"type": "percentage", "value": 90}},
    ]
    price, discount = discounted_price("item1", 40, promotions)
    assert price == 35
    assert discount["promotion_id"] == "p2"
    assert discount["original_price"] == 40


def test_targeted_promotion():
    promotions = [{"_id": "p1", "title": "Sale", "discount": {"type": "percentage", "value": 50, "item_ids": ["item1"]}}]
    assert discounted_price("item1", 30, promotions)[0] == 15
    assert discounted_price("item2", 30, promotions) == (30, None)


def test_promotion_without_discount_ignored():
    assert discounted_price("item1", 30, [{"_id": "p1", "title": "Event"}]) == (30, None)
