from alembic import command
from alembic.config import Config
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base
from .config import Settings, settings
from .exceptions import PersistenceError
import logging

logger = logging.getLogger(__name__)

# Create Base class for models
Base = declarative_base()


# =============================================================================
# DATABASE ENGINE CONFIGURATION
# =============================================================================

def create_engine_from_settings(config: Settings = settings) -> AsyncEngine:
    """
    Create the async database engine.

    PostgreSQL goes through asyncpg with a tuned connection pool. SQLite
    URLs (tests, local development) use the driver defaults.
    """
    if config.is_sqlite:
        engine = create_async_engine(config.DATABASE_URL, echo=config.DB_ECHO_SQL)
        logger.info("Created SQLite async engine")
    else:
        engine = create_async_engine(
            config.DATABASE_URL,

            # Connection pool settings
            pool_size=config.DB_POOL_SIZE,
            max_overflow=config.DB_MAX_OVERFLOW,
            pool_timeout=config.DB_POOL_TIMEOUT,
            pool_recycle=config.DB_POOL_RECYCLE,

            # Test connection before using (detect disconnects)
            pool_pre_ping=True,

            echo=config.DB_ECHO_SQL,

            # asyncpg connection arguments
            connect_args={
                "timeout": config.DB_CONNECT_TIMEOUT,
                "command_timeout": config.DB_COMMAND_TIMEOUT,
            }
        )
        logger.info(
            f"Created PostgreSQL async engine (pool_size={config.DB_POOL_SIZE}, "
            f"max_overflow={config.DB_MAX_OVERFLOW})"
        )

    if config.DEBUG:
        _attach_debug_listeners(engine)
    return engine


def _attach_debug_listeners(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def receive_connect(dbapi_conn, connection_record):
        logger.debug("New database connection established")

    @event.listens_for(engine.sync_engine, "checkout")
    def receive_checkout(dbapi_conn, connection_record, connection_proxy):
        logger.debug("Connection checked out from pool")


# =============================================================================
# SESSION CONFIGURATION
# =============================================================================

def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False
    )


# =============================================================================
# DATABASE UTILITIES
# =============================================================================

async def check_database_connection(engine: AsyncEngine) -> bool:
    """
    Check if database connection is working.

    Returns:
        bool: True if connection successful, False otherwise
    """
    try:
        async with engine.connect() as connection:
            await connection.execute(text("SELECT 1"))
        logger.info("Database connection successful")
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False


def _upgrade_to_head(connection, script_location: str) -> None:
    cfg = Config()
    cfg.set_main_option("script_location", script_location)
    # alembic/env.py picks this up instead of opening its own connection
    cfg.attributes["connection"] = connection
    command.upgrade(cfg, "head")


async def run_migrations(engine: AsyncEngine, script_location: str) -> None:
    """Apply every pending Alembic revision on one connection of `engine`."""
    logger.info(f"Running migrations from {script_location}...")
    async with engine.begin() as connection:
        await connection.run_sync(_upgrade_to_head, script_location)
    logger.info("Migrations applied")


# =============================================================================
# INITIALIZATION
# =============================================================================

async def init_db(
    engine: AsyncEngine,
    run_migrations_on_start: bool = settings.RUN_MIGRATIONS,
    script_location: str = settings.ALEMBIC_SCRIPT_LOCATION,
) -> None:
    """
    Initialize database.
    Run this when starting the application; any failure must abort startup.
    """
    op = "database.init"
    logger.info("Initializing database...")

    if not await check_database_connection(engine):
        raise PersistenceError(op, "cannot connect to database")

    if run_migrations_on_start:
        try:
            await run_migrations(engine, script_location)
        except Exception as e:
            raise PersistenceError(op, f"migrations failed: {e}") from e

    logger.info("Database initialized successfully")
