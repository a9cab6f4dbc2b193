"""
Подключение к Postgres.

Engine держит пул соединений asyncpg на весь процесс.
Каждая UnitOfWorkFactory.new берёт из пула одно соединение на время транзакции.
"""
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.config import settings


def create_engine(url: str | None = None, *, echo: bool | None = None) -> AsyncEngine:
    return create_async_engine(
        url or settings.get_database_url(),
        echo=settings.DATABASE_ECHO if echo is None else echo,
        pool_pre_ping=True,
    )


def create_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False: сущности остаются читаемыми после commit
    return async_sessionmaker(
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = create_engine()

AsyncSessionLocal = create_session_factory(engine)
