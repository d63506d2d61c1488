"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator, Callable
from datetime import date
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_ledger.config import ReconciliationConfig, get_settings
from fleet_ledger.database import init_db
from fleet_ledger.persistence import LedgerStore, SqlAlchemyLedgerStore


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    _, session_factory = init_db()
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


async def get_store(session: Annotated[AsyncSession, Depends(get_db_session)]) -> LedgerStore:
    """Persistence port bound to the request's session."""
    return SqlAlchemyLedgerStore(session)


def get_config() -> ReconciliationConfig:
    """Engine config derived from settings."""
    return get_settings().reconciliation_config()


def get_clock() -> Callable[[], date]:
    """Source of "today" for date-sensitive services."""
    return date.today


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
Store = Annotated[LedgerStore, Depends(get_store)]
Config = Annotated[ReconciliationConfig, Depends(get_config)]
Clock = Annotated[Callable[[], date], Depends(get_clock)]
