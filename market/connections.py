# market/connections.py
import asyncio
from dataclasses import dataclass
from typing import List


@dataclass(eq=False)
class BuyerConnection:
    peer: str
    writer: asyncio.StreamWriter

    def close(self):
        if not self.writer.is_closing():
            self.writer.close()


class ConnectionSet:
    """
    Open buyer connections, in accept order.

    Every add, remove and snapshot goes through the same lock, so a
    broadcast never iterates over a half-updated list.
    """

    def __init__(self):
        self._connections: List[BuyerConnection] = []
        self._lock = asyncio.Lock()

    async def add(self, conn: BuyerConnection):
        async with self._lock:
            self._connections.append(conn)

    async def remove(self, conn: BuyerConnection) -> bool:
        async with self._lock:
            if conn not in self._connections:
                return False
            self._connections.remove(conn)
            return True

    async def snapshot(self) -> List[BuyerConnection]:
        async with self._lock:
            return self._connections[:]

    async def close_all(self) -> int:
        async with self._lock:
            closing = self._connections[:]
            self._connections.clear()

        for conn in closing:
            conn.close()
        return len(closing)

    def __len__(self):
        return len(self._connections)
