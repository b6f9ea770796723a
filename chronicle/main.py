from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from chronicle import models as _models  # noqa: F401 - registers models with Base.metadata
from chronicle.config import settings
from chronicle.database import Base, engine
from chronicle.routers import campaigns, dice, dice_rolls

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield


app = FastAPI(title="Chronicle", debug=settings.debug, lifespan=lifespan)

app.include_router(campaigns.router)
app.include_router(dice_rolls.router)
app.include_router(dice.router)
