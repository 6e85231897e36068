# credits/packs.py
CREDITS_PER_USD = 400
MIN_PURCHASE_USD = 10

PACKS = [
    {"usd": 10, "credits": 4000, "tag": "Starter"},
    {"usd": 25, "credits": 10000, "tag": "Popular"},
    {"usd": 50, "credits": 20000, "tag": "Best Value"},
]


def credits_for(usd: int) -> int:
    return usd * CREDITS_PER_USD
