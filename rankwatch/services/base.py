"""
Base service class for the rank stats engine.

Provides async database session management and the dialect-aware upsert
used for every durable write.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Any, Dict, Iterable

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

class BaseService:
    """Base class for all services with async database session management."""
    
    def __init__(self, session_factory):
        """
        Initialize base service with session factory.
        
        Args:
            session_factory: Async session factory from Database class
        """
        self.session_factory = session_factory
    
    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide a transactional scope for async database operations."""
        session = self.session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
    
    @staticmethod
    async def upsert(
        session: AsyncSession,
        model,
        values: Dict[str, Any],
        conflict_columns: Iterable[str],
        update_columns: Iterable[str] = None
    ):
        """
        Atomic INSERT ... ON CONFLICT DO UPDATE for SQLite and PostgreSQL.
        
        Args:
            session: Open session
            model: ORM model class
            values: Column values for the row
            conflict_columns: Key columns of the conflict target
            update_columns: Columns replaced on conflict (default: every non-key column);
                an empty list turns the statement into insert-or-ignore
        """
        dialect = session.bind.dialect.name
        if dialect == 'postgresql':
            stmt = postgresql.insert(model).values(**values)
        else:
            stmt = sqlite.insert(model).values(**values)
        
        conflict_columns = list(conflict_columns)
        if update_columns is None:
            update_columns = [c for c in values if c not in conflict_columns]
        update_columns = list(update_columns)
        
        if not update_columns:
            stmt = stmt.on_conflict_do_nothing(index_elements=conflict_columns)
        else:
            stmt = stmt.on_conflict_do_update(
                index_elements=conflict_columns,
                set_={c: stmt.excluded[c] for c in update_columns}
            )
        await session.execute(stmt)
