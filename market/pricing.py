# market/pricing.py
import random
from typing import Optional

from market.config import ENCODING, PRICE_MAX, PRICE_MIN


class ProtocolError(ValueError):
    pass


def generate_price(rng: Optional[random.Random] = None) -> int:
    rng = rng or random
    return rng.randint(PRICE_MIN, PRICE_MAX)


def encode_line(text) -> bytes:
    return f"{text}\n".encode(ENCODING)


def decode_line(raw: bytes) -> str:
    return raw.decode(ENCODING, errors="replace").rstrip("\r\n")


def parse_price(line: str) -> int:
    try:
        return int(line.strip())
    except ValueError:
        raise ProtocolError(f"Not a price: {line!r}")
