# buyer/agent.py
import asyncio
from dataclasses import dataclass
from typing import Callable, Optional

from buyer.decision import decide, generate_counter_offer
from market.config import FINISHED_PURCHASING, PORT, PURCHASE_QUOTA, PURCHASE_REQUEST
from market.pricing import decode_line, encode_line, parse_price


@dataclass
class BuyerResult:
    offers: int = 0
    purchases: int = 0
    finished: bool = False


class BuyerAgent:
    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = PORT,
        quota: int = PURCHASE_QUOTA,
        counter_offer: Callable[[], int] = generate_counter_offer,
    ):
        self.host = host
        self.port = port
        self.quota = quota
        self.counter_offer = counter_offer

    async def buy(self) -> BuyerResult:
        result = BuyerResult()

        reader, writer = await asyncio.open_connection(self.host, self.port)
        peer = writer.get_extra_info("peername")
        print(f"🔌 Connected to {peer[0] if peer else self.host}")

        try:
            await self._trade(reader, writer, result)
        except (ConnectionError, asyncio.IncompleteReadError) as e:
            print(f"❌ Closing connection: {e}")
        finally:
            if not writer.is_closing():
                writer.close()
            try:
                await writer.wait_closed()
            except ConnectionError:
                pass

        return result

    async def _trade(self, reader, writer, result: BuyerResult):
        while result.purchases < self.quota:
            raw = await reader.readline()
            if not raw:
                print("❌ Server closed the connection")
                return

            price = parse_price(decode_line(raw))
            result.offers += 1
            print(f"📩 Received offer from server: {price}")

            counter = self.counter_offer()
            print(f"💬 Counteroffer: {counter}")

            if not decide(price, counter):
                print("👎 Rejected offer from server")
                continue

            result.purchases += 1
            print("👍 Accepted offer from server")
            print(f"🛒 Current purchase count: {result.purchases}")
            writer.write(encode_line(PURCHASE_REQUEST))
            await writer.drain()

        print("✅ Reached purchase limit")
        writer.write(encode_line(FINISHED_PURCHASING))
        await writer.drain()
        result.finished = True
