"""Shared fixtures for the broker test suite."""

import asyncio
import random

import pytest
import pytest_asyncio

from market.broker import Broker, BrokerState
from market.pricing import decode_line, encode_line

TICK = 0.05


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def wait_until(predicate, timeout=2.0, step=0.01):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(step)


class RawBuyer:
    """Bare socket buyer used to drive the broker by hand."""

    def __init__(self, reader, writer):
        self.reader = reader
        self.writer = writer

    @classmethod
    async def connect(cls, port):
        reader, writer = await asyncio.open_connection("127.0.0.1", port)
        return cls(reader, writer)

    @property
    def local_peer(self):
        host, port = self.writer.get_extra_info("sockname")[:2]
        return f"{host}:{port}"

    async def read_line(self, timeout=1.0):
        raw = await asyncio.wait_for(self.reader.readline(), timeout=timeout)
        return decode_line(raw) if raw else None

    async def send(self, text):
        self.writer.write(encode_line(text))
        await self.writer.drain()

    async def close(self):
        if not self.writer.is_closing():
            self.writer.close()
        try:
            await self.writer.wait_closed()
        except ConnectionError:
            pass


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def make_broker():
    """Start brokers on ephemeral loopback ports; stop leftovers after the test."""
    started = []

    async def _make(**kwargs):
        kwargs.setdefault("host", "127.0.0.1")
        kwargs.setdefault("port", 0)
        kwargs.setdefault("interval", TICK)
        kwargs.setdefault("rng", random.Random(7))
        broker = Broker(**kwargs)
        await broker.start()
        started.append(broker)
        return broker

    yield _make

    for broker in started:
        if broker.state != BrokerState.STOPPED:
            await asyncio.wait_for(broker.stop(), timeout=2.0)


@pytest_asyncio.fixture
async def buyers():
    opened = []

    async def _connect(port):
        buyer = await RawBuyer.connect(port)
        opened.append(buyer)
        return buyer

    yield _connect

    for buyer in opened:
        await buyer.close()
