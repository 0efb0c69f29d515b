from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI

from app.api.deps import init_engine
from app.api.routes import router

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    load_dotenv(override=False)
    engine = init_engine()
    sweeper = engine.create_sweeper()
    sweeper.start()
    logger.info("Dungeon Master backend ready")
    try:
        yield
    finally:
        await sweeper.stop()


app = FastAPI(title="dungeon-master", version="0.1.0", lifespan=lifespan)
app.include_router(router)


@app.get("/info")
async def info() -> dict[str, str]:
    return {"name": "dungeon-master", "version": "0.1.0"}
