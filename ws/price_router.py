# ws/price_router.py
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from .manager import price_feed

router = APIRouter()

# =========================
# PRICE FEED ENDPOINT
# =========================

@router.websocket("/ws/prices")
async def prices_ws(websocket: WebSocket):
    await price_feed.connect(websocket)

    try:
        while True:
            await websocket.receive_text()  # keep connection alive
    except WebSocketDisconnect:
        price_feed.disconnect(websocket)
