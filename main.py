import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from market.router import router as market_router
from market.service import market_broker
from ws.manager import price_feed
from ws.price_router import router as price_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    market_broker.add_price_listener(price_feed.send_price)
    await market_broker.start()
    task = asyncio.create_task(market_broker.wait_stopped())

    yield

    await market_broker.stop()
    await task


app = FastAPI(title="Market Broker", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(market_router)
app.include_router(price_router)

@app.get("/")
def root():
    return {"status": "Broker running", "state": market_broker.state.value}
