# ws/manager.py
from fastapi import WebSocket

from market.models import PriceTick


class PriceFeedManager:
    """Dashboard sockets watching the broker's price ticks. Not buyers."""

    def __init__(self):
        self.clients = set()

    async def connect(self, ws: WebSocket):
        await ws.accept()
        self.clients.add(ws)
        print(f"🔌 Price feed connected: {len(self.clients)} observers")

    def disconnect(self, ws: WebSocket):
        self.clients.discard(ws)
        print(f"❌ Price feed disconnected: {len(self.clients)} observers left")

    async def send_price(self, price: int):
        data_str = PriceTick(price=price).model_dump_json()
        dead_clients = []

        for ws in list(self.clients):
            try:
                await ws.send_text(data_str)
            except Exception:
                dead_clients.append(ws)

        for ws in dead_clients:
            self.clients.discard(ws)


price_feed = PriceFeedManager()
