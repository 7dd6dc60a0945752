from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from libs.common.config import get_settings

settings = get_settings()


def engine_options(url: str) -> dict:
    """Pool options for the given URL. SQLite (tests) uses its own pool."""
    options = {
        "echo": settings.ENVIRONMENT == "local",
        "future": True,
    }
    if not url.startswith("sqlite"):
        options.update(
            pool_pre_ping=True,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            pool_recycle=settings.DB_POOL_RECYCLE,
        )
    return options


engine = create_async_engine(
    settings.DATABASE_URL, **engine_options(settings.DATABASE_URL)
)

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)
