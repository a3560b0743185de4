# market/session.py
import asyncio
from typing import Callable, Optional

from market.config import FINISHED_PURCHASING, PURCHASE_REQUEST
from market.connections import BuyerConnection, ConnectionSet
from market.pricing import decode_line
from market.registry import BuyerRegistry


class BuyerSession:
    """
    Reads one buyer's messages until its connection goes away.

    Whichever way the buyer leaves (finish message, EOF, reset), the
    session drops its connection from the set and, if it was still there,
    takes the buyer out of the registry. The session that brings the count
    to zero calls ``on_empty``.
    """

    def __init__(
        self,
        conn: BuyerConnection,
        reader: asyncio.StreamReader,
        connections: ConnectionSet,
        registry: BuyerRegistry,
        on_empty: Callable[[], None],
        on_purchase: Optional[Callable[[], None]] = None,
    ):
        self.conn = conn
        self.reader = reader
        self.connections = connections
        self.registry = registry
        self.on_empty = on_empty
        self.on_purchase = on_purchase

        self.purchases = 0
        self.finished = False

    async def run(self):
        try:
            while True:
                raw = await self.reader.readline()
                if not raw:
                    break

                message = decode_line(raw)

                if message == PURCHASE_REQUEST:
                    self.purchases += 1
                    if self.on_purchase:
                        self.on_purchase()
                    print(f"📩 Purchase request received from: {self.conn.peer}")

                elif message == FINISHED_PURCHASING:
                    self.finished = True
                    print(f"✅ Client {self.conn.peer} finished purchasing")
                    break

                else:
                    print(f"⚠️ Unexpected message from {self.conn.peer}: {message!r}")

        except (OSError, asyncio.IncompleteReadError, ValueError) as e:
            print(f"❌ Read failed for {self.conn.peer}: {e}")

        finally:
            await self._leave()

    async def _leave(self):
        self.conn.close()

        if not await self.connections.remove(self.conn):
            # broker already closed this connection while shutting down
            return

        remaining = self.registry.decrease()
        print(f"❌ Connection to client: {self.conn.peer} closed ({remaining} left)")

        if remaining == 0:
            self.on_empty()
