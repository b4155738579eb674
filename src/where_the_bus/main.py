# src/where_the_bus/main.py
import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from where_the_bus.config import settings
from where_the_bus.poller import Poller
from where_the_bus.routes import router
from where_the_bus.session import Session

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    client = httpx.AsyncClient()
    session = Session(client, settings=settings)
    poller = Poller()
    app.state.session = session
    app.state.poller = poller

    poller.start(settings.poll_interval, session.refresh)
    yield
    await poller.stop()
    await poller.wait_idle()
    await client.aclose()
    logger.info("Shutdown complete")


app = FastAPI(
    title="where the bus",
    description="Live transit vehicle map backend. Polls vehicle positions, "
    "history and route predictions, and serves filtered GeoJSON layers for "
    "vehicles, recent trip trails and stops.",
    version="0.1.0",
    lifespan=lifespan,
)
app.include_router(router)


@app.get("/health", tags=["system"])
async def health():
    session: Session = app.state.session
    return {
        "status": "ok",
        "applied_cycle": session.store.applied_cycle,
        "vehicles": len(session.store.current),
    }
