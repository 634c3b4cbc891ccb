import pytest
import sys
import os
from typing import AsyncGenerator

# Add project root to sys.path so we can import from main.py and src
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool
from httpx import AsyncClient, ASGITransport
from main import app
from src.database.core import get_db, Base
from src.categories.service import CategoryService
from src.categories.model import CategoryCreate
from src.utils.cache import CategoryCache, MemoryCacheClient

# Setup In-Memory SQLite Database for testing (Async)
SQLALCHEMY_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine = create_async_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = async_sessionmaker(
    autocommit=False, autoflush=False, bind=engine, expire_on_commit=False
)


@pytest.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Creates a fresh database session for a test.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestingSessionLocal() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(scope="function")
def cache_client() -> MemoryCacheClient:
    return MemoryCacheClient(maxsize=100)


@pytest.fixture(scope="function")
def category_cache(cache_client) -> CategoryCache:
    return CategoryCache(cache_client, ttl=300, timeout=1.0)


@pytest.fixture(scope="function")
def service(db_session, category_cache) -> CategoryService:
    return CategoryService(db_session, category_cache)


@pytest.fixture(scope="function")
async def chain(service):
    """
    Cadeia A -> B -> C -> D (níveis 1 a 4), criada pelo serviço.
    """
    a = await service.create_category(CategoryCreate(name="A"))
    b = await service.create_category(CategoryCreate(name="B", parent_id=a.id))
    c = await service.create_category(CategoryCreate(name="C", parent_id=b.id))
    d = await service.create_category(CategoryCreate(name="D", parent_id=c.id))
    return a, b, c, d


@pytest.fixture(scope="function")
async def client(db_session, category_cache):
    """
    Dependency override for database and AsyncClient creation.
    """

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    original_cache = app.state.category_cache
    app.state.category_cache = category_cache

    # Disable lifespan to prevent main.py from trying to use the real DB engine
    # We manage DB tables via the db_session fixture
    from contextlib import asynccontextmanager

    @asynccontextmanager
    async def noop_lifespan(app):
        yield

    original_lifespan = app.router.lifespan_context
    app.router.lifespan_context = noop_lifespan

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as c:
        yield c

    app.router.lifespan_context = original_lifespan
    app.state.category_cache = original_cache
    app.dependency_overrides.clear()
