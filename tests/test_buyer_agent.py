import asyncio

import pytest
import pytest_asyncio

from buyer.agent import BuyerAgent
from market.broker import BrokerState
from market.config import FINISHED_PURCHASING, PURCHASE_REQUEST
from market.pricing import ProtocolError, decode_line


class FakeBroker:
    """Sends a fixed list of price lines, records everything the buyer says.

    Unless ``hold_open`` is set, the write side is shut after the last line
    so the buyer sees EOF while its replies can still be read.
    """

    def __init__(self, lines, hold_open=False):
        self.lines = lines
        self.hold_open = hold_open
        self.received = []
        self.server = None
        self.port = None

    async def start(self):
        self.server = await asyncio.start_server(self._handle, "127.0.0.1", 0)
        self.port = self.server.sockets[0].getsockname()[1]

    async def _handle(self, reader, writer):
        for line in self.lines:
            writer.write(f"{line}\n".encode())
        await writer.drain()

        if not self.hold_open:
            writer.write_eof()

        while raw := await reader.readline():
            self.received.append(decode_line(raw))
        writer.close()

    async def close(self):
        self.server.close()
        await self.server.wait_closed()


@pytest_asyncio.fixture
async def fake_broker():
    started = []

    async def _make(lines, hold_open=False):
        fake = FakeBroker(lines, hold_open=hold_open)
        await fake.start()
        started.append(fake)
        return fake

    yield _make

    for fake in started:
        await fake.close()


# ---------------------------------------------------------------------------
# Against a scripted broker
# ---------------------------------------------------------------------------

class TestBuyerAgent:

    @pytest.mark.asyncio
    async def test_always_reject_never_purchases(self, fake_broker):
        fake = await fake_broker([10, 55, 100, 10, 73])
        agent = BuyerAgent(port=fake.port, counter_offer=lambda: 10)

        result = await agent.buy()
        await asyncio.sleep(0.05)

        assert result.offers == 5
        assert result.purchases == 0
        assert result.finished is False
        assert PURCHASE_REQUEST not in fake.received

    @pytest.mark.asyncio
    async def test_always_accept_finishes_after_quota(self, fake_broker):
        fake = await fake_broker([20] * 10, hold_open=True)
        agent = BuyerAgent(port=fake.port, counter_offer=lambda: 75)

        result = await agent.buy()
        await asyncio.sleep(0.05)

        assert result.offers == 10
        assert result.purchases == 10
        assert result.finished is True
        assert fake.received == [PURCHASE_REQUEST] * 10 + [FINISHED_PURCHASING]

    @pytest.mark.asyncio
    async def test_mixed_decisions(self, fake_broker):
        fake = await fake_broker([30, 80, 30, 80])
        agent = BuyerAgent(port=fake.port, counter_offer=lambda: 50)

        result = await agent.buy()
        await asyncio.sleep(0.05)

        assert result.offers == 4
        assert result.purchases == 2
        assert fake.received == [PURCHASE_REQUEST] * 2

    @pytest.mark.asyncio
    async def test_unparsable_price_is_fatal(self, fake_broker):
        fake = await fake_broker(["forty"], hold_open=True)
        agent = BuyerAgent(port=fake.port)

        with pytest.raises(ProtocolError):
            await agent.buy()

    @pytest.mark.asyncio
    async def test_broker_gone_ends_loop_quietly(self, fake_broker):
        fake = await fake_broker([])
        agent = BuyerAgent(port=fake.port)

        result = await agent.buy()

        assert result.offers == 0
        assert result.finished is False


# ---------------------------------------------------------------------------
# Against the real broker
# ---------------------------------------------------------------------------

class TestBuyersAgainstBroker:

    @pytest.mark.asyncio
    async def test_two_eager_buyers_run_the_market_to_completion(self, make_broker):
        broker = await make_broker(interval=0.01)
        stopped = asyncio.create_task(broker.wait_stopped())

        agents = [BuyerAgent(port=broker.port, counter_offer=lambda: 101) for _ in range(2)]
        results = await asyncio.wait_for(
            asyncio.gather(*(agent.buy() for agent in agents)), timeout=5.0
        )
        await asyncio.wait_for(stopped, timeout=2.0)

        for result in results:
            assert result.purchases == 10
            assert result.offers == 10
            assert result.finished is True

        assert broker.state == BrokerState.STOPPED
        assert broker.purchase_requests == 20
        assert len(broker.connections) == 0
        assert broker.registry.count() == 0
