from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase


# All tables registered on Base are created by init_models()
class Base(DeclarativeBase):
    pass


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    return create_async_engine(database_url, echo=echo)


# Loaded rows stay usable after commit
def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


async def init_models(engine: AsyncEngine) -> None:
    """Create the users and user_embeddings tables if they do not exist."""
    from . import models  # noqa: F401  registers the tables

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
