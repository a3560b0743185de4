# buyer/decision.py
import random
from typing import Optional

from market.config import COUNTER_OFFER_MAX, COUNTER_OFFER_MIN


def generate_counter_offer(rng: Optional[random.Random] = None) -> int:
    rng = rng or random
    return rng.randint(COUNTER_OFFER_MIN, COUNTER_OFFER_MAX)


def decide(price: int, counter_offer: int) -> bool:
    """Accept when the broker asks less than the buyer is willing to pay."""
    return price < counter_offer
