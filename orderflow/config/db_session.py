from typing import Dict

from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from orderflow.config.logger import get_logger
from orderflow.config.settings import DatabaseSettings

logger = get_logger("DB_Session")

# ----------------------------
# Per-URL engine & session caches
# ----------------------------
# Each service owns its own database, so engines are keyed by URL.
_engines: Dict[str, AsyncEngine] = {}
_sessionmakers: Dict[str, async_sessionmaker[AsyncSession]] = {}


def get_engine(database_url: str, db_settings: DatabaseSettings | None = None) -> AsyncEngine:
    """
    Initialize or return the SQLAlchemy async engine for ``database_url``.
    Pool options only apply to server databases; sqlite picks its own pool.
    """
    engine = _engines.get(database_url)
    if engine is None:
        db_settings = db_settings or DatabaseSettings()
        options = {"echo": db_settings.echo}
        if not database_url.startswith("sqlite"):
            options.update(
                pool_size=db_settings.pool_size,
                max_overflow=db_settings.max_overflow,
                pool_timeout=db_settings.pool_timeout,
                pool_recycle=db_settings.pool_recycle,
            )
        engine = create_async_engine(database_url, **options)
        _engines[database_url] = engine
        logger.info("Async engine created", dialect=engine.dialect.name)
    return engine


def get_sessionmaker(database_url: str, db_settings: DatabaseSettings | None = None) -> async_sessionmaker[AsyncSession]:
    """Return the async session factory bound to ``database_url``."""
    factory = _sessionmakers.get(database_url)
    if factory is None:
        factory = async_sessionmaker(
            bind=get_engine(database_url, db_settings),
            expire_on_commit=False,
            class_=AsyncSession,
        )
        _sessionmakers[database_url] = factory
        logger.debug("AsyncSession factory created", dialect=factory.kw["bind"].dialect.name)
    return factory


# ----------------------------
# Schema management
# ----------------------------
async def init_db(database_url: str, metadata: MetaData):
    """Create the tables described by ``metadata`` if they do not exist yet."""
    engine = get_engine(database_url)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(metadata.create_all)
        logger.info("Database tables created or already exist", tables=sorted(metadata.tables))
    except Exception as exc:
        logger.exception("Failed to initialize database", error=str(exc))
        raise


async def drop_db(database_url: str, metadata: MetaData):
    """Drop the tables described by ``metadata`` (tests and reset scripts)."""
    engine = get_engine(database_url)
    logger.warning("Dropping database tables", tables=sorted(metadata.tables))
    async with engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)


async def dispose_engine(database_url: str):
    """Close the pool for ``database_url`` and forget the cached factories."""
    _sessionmakers.pop(database_url, None)
    engine = _engines.pop(database_url, None)
    if engine is not None:
        await engine.dispose()
