from fastapi import APIRouter

from market.models import MarketStatus
from market.service import get_status

router = APIRouter(prefix="/api/market", tags=["Market"])


@router.get("", response_model=MarketStatus)
def market_status():
    return get_status()
