# market/broadcaster.py
import asyncio
import random
from typing import Awaitable, Callable, List, Optional

from market.config import BROADCAST_INTERVAL_SECONDS, WRITE_TIMEOUT_SECONDS
from market.connections import BuyerConnection, ConnectionSet
from market.pricing import encode_line, generate_price
from market.registry import BuyerRegistry

PriceListener = Callable[[int], Awaitable[None]]


class Broadcaster:
    """
    Generates one price per tick and sends it to every open connection.

    Runs while the registry is non-empty. ``cancel()`` wakes the sleep
    immediately, so the loop ends within one interval and never sends
    another price after it.
    """

    def __init__(
        self,
        connections: ConnectionSet,
        registry: BuyerRegistry,
        interval: float = BROADCAST_INTERVAL_SECONDS,
        write_timeout: float = WRITE_TIMEOUT_SECONDS,
        rng: Optional[random.Random] = None,
    ):
        self.connections = connections
        self.registry = registry
        self.interval = interval
        self.write_timeout = write_timeout
        self.rng = rng

        self.listeners: List[PriceListener] = []
        self.ticks = 0
        self.last_price: Optional[int] = None

        self._stop = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    # =====================================
    # LIFECYCLE
    # =====================================

    @property
    def started(self) -> bool:
        return self._task is not None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        if self._task is None:
            self._task = asyncio.create_task(self.run())
        return self._task

    def cancel(self):
        self._stop.set()

    async def join(self):
        if self._task is not None:
            await self._task

    # =====================================
    # LOOP
    # =====================================

    async def run(self):
        print("🚀 Broadcasting prices")

        while self.registry.count() != 0 and not self._stop.is_set():
            price = generate_price(self.rng)
            await self.tick(price)

            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

        print("🛑 Stopped generating prices")

    async def tick(self, price: int) -> int:
        targets = await self.connections.snapshot()
        print(f"💰 Offered price: {price} to {len(targets)} buyers")

        line = encode_line(price)
        results = await asyncio.gather(
            *(self._send(conn, line) for conn in targets)
        )

        self.ticks += 1
        self.last_price = price

        for listener in self.listeners:
            try:
                await asyncio.wait_for(listener(price), timeout=self.write_timeout)
            except asyncio.TimeoutError:
                print(f"🔥 Price listener timed out on {price}")
            except Exception as e:
                print(f"🔥 Price listener error: {e}")

        return sum(results)

    async def _send(self, conn: BuyerConnection, line: bytes) -> bool:
        # failures surface in the buyer's own session as a read error
        try:
            conn.writer.write(line)
            await asyncio.wait_for(conn.writer.drain(), timeout=self.write_timeout)
            return True
        except (ConnectionError, asyncio.TimeoutError, RuntimeError) as e:
            print(f"❌ Could not send price to {conn.peer}: {e}")
            return False
