from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.database.engine import async_session


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields a request-scoped database session.

    Commits when the request handler returns normally and rolls back if it
    raises, so each write endpoint is a single unit of work.
    """
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
