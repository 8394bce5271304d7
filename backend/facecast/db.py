from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from .config import settings
from .models import Base


def _engine_options(url: str) -> dict:
    # aiosqlite (local runs and tests) has no connection pool to size
    if url.startswith("sqlite"):
        return {}
    return {
        "pool_pre_ping": True,
        "pool_size": settings.DATABASE_POOL_SIZE,
        "max_overflow": settings.DATABASE_MAX_OVERFLOW,
    }

engine = create_async_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO, **_engine_options(settings.DATABASE_URL))
# rows are read back after each conditional UPDATE; keep loaded attributes usable after commit
AsyncSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False, class_=AsyncSession)

async def init_models() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

async def get_db():
    async with AsyncSessionLocal() as session:
        yield session
