"""
PostgreSQL persistence for user records.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from sqlalchemy import Column, DateTime, Integer, String, func, insert, select, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from shared.errors import StoreUnavailable
from shared.logging import get_logger
from ..models import UserRecord


Base = declarative_base()

_STORE_ERRORS = (SQLAlchemyError, OSError, TimeoutError)


class UserRow(Base):
    """Row in the ``users`` table."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        index=True,
    )


_USER_COLUMNS = (UserRow.id, UserRow.name, UserRow.email, UserRow.created_at)


class UserStore:
    """Async store for user records."""

    def __init__(
        self,
        database_url: str,
        *,
        pool_size: int = 5,
        pool_timeout: float = 10.0,
        create_tables: bool = True,
        echo: bool = False,
    ):
        self.database_url = database_url
        self.pool_size = pool_size
        self.pool_timeout = pool_timeout
        self.create_tables = create_tables
        self.echo = echo
        self.logger = get_logger("users.persistence.postgres")
        self.engine: Optional[AsyncEngine] = None
        self.async_session: Optional[async_sessionmaker] = None

    async def start(self):
        """Create the engine and, when enabled, the ``users`` table."""
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
        logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)

        engine_kwargs: Dict[str, Any] = {"echo": self.echo}
        if make_url(self.database_url).get_backend_name() != "sqlite":
            engine_kwargs.update(
                pool_size=self.pool_size,
                pool_timeout=self.pool_timeout,
                pool_pre_ping=True,
            )

        self.engine = create_async_engine(self.database_url, **engine_kwargs)
        self.async_session = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

        try:
            async with self.engine.begin() as conn:
                if self.create_tables:
                    await conn.run_sync(Base.metadata.create_all)
                result = await conn.execute(select(func.now()))
                self.logger.info("Connected to PostgreSQL", server_time=str(result.scalar()))
        except _STORE_ERRORS as e:
            # The service still starts; requests report StoreUnavailable
            # until the database comes up.
            self.logger.error("Failed to connect to PostgreSQL", error=str(e))

    async def stop(self):
        """Dispose of pooled connections."""
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self.async_session = None
            self.logger.info("PostgreSQL connections closed")

    @asynccontextmanager
    async def get_session(self):
        """Get async database session."""
        if not self.async_session:
            raise StoreUnavailable("Store not initialized")

        async with self.async_session() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    async def create_user(self, name: str, email: str) -> UserRecord:
        """Insert a user and return it with the store-assigned id and timestamp."""
        stmt = (
            insert(UserRow)
            .values(name=name, email=email)
            .returning(*_USER_COLUMNS)
        )
        try:
            async with self.get_session() as session:
                result = await session.execute(stmt)
                row = result.one()
                await session.commit()
        except _STORE_ERRORS as e:
            self.logger.error("Failed to insert user", error=str(e))
            raise StoreUnavailable("Failed to insert user", details={"error": str(e)}) from e

        return UserRecord.model_validate(dict(row._mapping))

    async def list_users(self) -> List[UserRecord]:
        """Return every user, newest first."""
        stmt = select(*_USER_COLUMNS).order_by(UserRow.created_at.desc(), UserRow.id.desc())
        try:
            async with self.get_session() as session:
                result = await session.execute(stmt)
                rows = result.all()
        except _STORE_ERRORS as e:
            self.logger.error("Failed to list users", error=str(e))
            raise StoreUnavailable("Failed to query users", details={"error": str(e)}) from e

        return [UserRecord.model_validate(dict(row._mapping)) for row in rows]

    async def health_check(self) -> bool:
        """Check database health."""
        if not self.engine:
            return False
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except _STORE_ERRORS:
            return False
