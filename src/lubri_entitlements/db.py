from typing import Any, Optional, cast

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from .config import Settings

# Database engine and session factory, registered by the composition root
engine: Optional[Any] = None
AsyncDbSessionFactory: Any = None


def database_url_for(settings: Settings) -> str:
    if settings.database_url:
        return settings.database_url
    return (
        f"postgresql+asyncpg://{settings.db_user}:{settings.db_password}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )


def create_engine(settings: Settings) -> Any:
    """Create and return an async engine for the given settings and register it
    on the module so other modules (or tests) can rebind or inspect it.

    Pool options only apply to server databases; SQLite uses SQLAlchemy's
    default pool for aiosqlite.
    """
    global engine
    database_url = database_url_for(settings)

    kwargs: dict[str, Any] = {"echo": False, "future": True}
    if database_url.startswith("sqlite"):
        # wait on the file lock instead of failing immediately
        kwargs["connect_args"] = {"timeout": settings.store_timeout_seconds}
    else:
        kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_recycle=settings.db_pool_recycle,
            pool_pre_ping=settings.db_pool_pre_ping,
        )
        if "postgresql" in database_url:
            kwargs["connect_args"] = {"command_timeout": settings.store_timeout_seconds}

    engine = create_async_engine(database_url, **kwargs)
    return engine


def create_sessionmaker(bind_engine: Any) -> Any:
    """Create and register a SQLAlchemy AsyncSession factory bound to the engine."""
    global AsyncDbSessionFactory
    AsyncDbSessionFactory = cast(
        Any, sessionmaker(bind=bind_engine, expire_on_commit=False, class_=AsyncSession)
    )  # type: ignore[call-overload]
    return AsyncDbSessionFactory
