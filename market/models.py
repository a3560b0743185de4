from pydantic import BaseModel
from typing import Optional


class MarketStatus(BaseModel):
    state: str
    port: int
    threshold: int
    buyers: int
    open_connections: int
    broadcasting: bool
    ticks: int
    last_price: Optional[int] = None
    purchase_requests: int


class PriceTick(BaseModel):
    type: str = "price"
    price: int
