# market/broker.py
import asyncio
import random
from enum import Enum
from typing import Optional, Set

from market.broadcaster import Broadcaster, PriceListener
from market.config import (
    BROADCAST_INTERVAL_SECONDS,
    BUYER_THRESHOLD,
    HOST,
    PORT,
    WRITE_TIMEOUT_SECONDS,
)
from market.connections import BuyerConnection, ConnectionSet
from market.models import MarketStatus
from market.registry import BuyerRegistry
from market.session import BuyerSession


class BrokerBindError(OSError):
    pass


class BrokerState(str, Enum):
    IDLE = "IDLE"
    LISTENING = "LISTENING"
    BROADCASTING = "BROADCASTING"
    DRAINING = "DRAINING"
    STOPPED = "STOPPED"


class Broker:
    """
    Accepts buyers, starts the broadcaster once enough of them are
    connected, and shuts everything down after the last one leaves.

    IDLE → LISTENING → BROADCASTING → DRAINING → STOPPED
    """

    def __init__(
        self,
        host: str = HOST,
        port: int = PORT,
        threshold: int = BUYER_THRESHOLD,
        interval: float = BROADCAST_INTERVAL_SECONDS,
        write_timeout: float = WRITE_TIMEOUT_SECONDS,
        rng: Optional[random.Random] = None,
    ):
        self.host = host
        self.port = port
        self.threshold = threshold
        self.interval = interval
        self.write_timeout = write_timeout
        self.rng = rng

        self.state = BrokerState.IDLE
        self.registry = BuyerRegistry()
        self.connections = ConnectionSet()
        self.broadcaster: Optional[Broadcaster] = None
        self.purchase_requests = 0

        self._listeners = []
        self._server: Optional[asyncio.AbstractServer] = None
        self._sessions: Set[asyncio.Task] = set()
        self._drain: Optional[asyncio.Event] = None
        self._stopped: Optional[asyncio.Event] = None
        self._closing = False

    # =====================================
    # STARTUP
    # =====================================

    async def start(self):
        if self.state != BrokerState.IDLE:
            raise RuntimeError(f"Broker already started ({self.state.value})")

        self._drain = asyncio.Event()
        self._stopped = asyncio.Event()
        self.broadcaster = Broadcaster(
            self.connections,
            self.registry,
            interval=self.interval,
            write_timeout=self.write_timeout,
            rng=self.rng,
        )
        self.broadcaster.listeners.extend(self._listeners)

        try:
            self._server = await asyncio.start_server(
                self._on_connect, self.host, self.port
            )
        except OSError as e:
            raise BrokerBindError(
                e.errno, f"Failed to listen on port {self.port}: {e.strerror or e}"
            ) from e

        # port 0 binds an ephemeral port
        self.port = self._server.sockets[0].getsockname()[1]
        self.state = BrokerState.LISTENING
        print(f"⏳ Waiting for connection on port {self.port}...")

    async def serve(self):
        """Start, then run until the last buyer has left."""
        await self.start()
        await self.wait_stopped()

    def add_price_listener(self, listener: PriceListener):
        self._listeners.append(listener)
        if self.broadcaster is not None:
            self.broadcaster.listeners.append(listener)

    # =====================================
    # ACCEPT
    # =====================================

    async def _on_connect(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        if self.state in (BrokerState.DRAINING, BrokerState.STOPPED):
            writer.close()
            return

        peer = writer.get_extra_info("peername")
        conn = BuyerConnection(peer=f"{peer[0]}:{peer[1]}" if peer else "unknown", writer=writer)

        await self.connections.add(conn)
        count = self.registry.increase()
        print(f"🔌 Client {count} connected to {conn.peer}")

        session = BuyerSession(
            conn,
            reader,
            self.connections,
            self.registry,
            on_empty=self.begin_draining,
            on_purchase=self._count_purchase,
        )
        task = asyncio.create_task(session.run())
        self._sessions.add(task)
        task.add_done_callback(self._sessions.discard)

        if count >= self.threshold and not self.broadcaster.started:
            self.state = BrokerState.BROADCASTING
            self.broadcaster.start()

    def _count_purchase(self):
        self.purchase_requests += 1

    # =====================================
    # SHUTDOWN
    # =====================================

    def begin_draining(self):
        if self._drain is None or self._drain.is_set():
            return

        self.state = BrokerState.DRAINING
        print("🛑 Server is stopping...")
        self._drain.set()

    async def wait_stopped(self):
        if self.state == BrokerState.STOPPED:
            return
        if self._drain is None:
            raise RuntimeError("Broker not started")

        await self._drain.wait()

        if self.state != BrokerState.STOPPED:
            await self._shutdown()
        await self._stopped.wait()

    async def stop(self):
        """Drain and stop even if buyers are still connected."""
        if self._drain is None:
            self.state = BrokerState.STOPPED
            return

        self.begin_draining()
        await self.wait_stopped()

    async def _shutdown(self):
        # concurrent waiters block on _stopped instead
        if self._closing:
            return
        self._closing = True

        if self.broadcaster.started:
            self.broadcaster.cancel()
            await self.broadcaster.join()

        closed = await self.connections.close_all()

        self._server.close()

        for task in list(self._sessions):
            task.cancel()
        if self._sessions:
            await asyncio.gather(*self._sessions, return_exceptions=True)

        await self._server.wait_closed()

        self.state = BrokerState.STOPPED
        self._stopped.set()
        print(f"✅ Server stopped ({closed} connections closed)")

    # =====================================
    # STATUS
    # =====================================

    def status(self) -> MarketStatus:
        broadcaster = self.broadcaster
        return MarketStatus(
            state=self.state.value,
            port=self.port,
            threshold=self.threshold,
            buyers=self.registry.count(),
            open_connections=len(self.connections),
            broadcasting=bool(broadcaster and broadcaster.running),
            ticks=broadcaster.ticks if broadcaster else 0,
            last_price=broadcaster.last_price if broadcaster else None,
            purchase_requests=self.purchase_requests,
        )
