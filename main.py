from contextlib import asynccontextmanager

from fastapi import FastAPI
from src.config import settings
from src.database.core import engine, Base
from src.entities.category import Category  # Import models to register them
from src.api import register_routes
from src.exceptions.handlers import register_exception_handlers
from src.utils.cache import CategoryCache, MemoryCacheClient

from src.logging import configure_logging

configure_logging(settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


app = FastAPI(lifespan=lifespan)

app.state.category_cache = CategoryCache(MemoryCacheClient())

register_routes(app)
register_exception_handlers(app)
