"""
Table store over async SQLAlchemy.

Gives the registry and the activity log the narrow interface they need:
- query(filter_expression) -> lazy async iterator of rows
- insert / upsert
- get_by_key(partition_key, row_key) -> row | None

Filter expressions are compiled against the model's own columns only; see
``filegate.core.filters`` for how to build them safely.
"""

import logging
from typing import AsyncIterator, Generic, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from filegate.core.exceptions import StoreUnavailableError
from filegate.core.filters import compile_filter
from filegate.models.base import TableEntity

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=TableEntity)


class EntityExistsError(Exception):
    """Raised by insert when the (partition_key, row_key) pair is taken."""
    pass


class TableStore(Generic[T]):
    """
    Table-store access for one model.

    Usage:
        store = TableStore(db, ThirdParty)
        async for party in store.query(eq("container_name", name)):
            ...
    """

    def __init__(self, db: AsyncSession, model: Type[T]):
        self.db = db
        self.model = model
        self._columns = model.filter_columns()

    async def query(
        self,
        filter_expression: str = "",
        limit: int | None = None,
    ) -> AsyncIterator[T]:
        """
        Yield rows matching the filter in (row_key, partition_key) order.

        Zero matches is an empty iteration, never an error. Stopping
        iteration early is fine.

        Raises:
            FilterSyntaxError: malformed filter (programming error)
            StoreUnavailableError: the backing database failed
        """
        condition = compile_filter(filter_expression, self._columns)

        # row_key first so time-ordered keys sort the same across partitions
        stmt = select(self.model).order_by(self.model.row_key, self.model.partition_key)
        if condition is not None:
            stmt = stmt.where(condition)
        if limit is not None:
            stmt = stmt.limit(limit)

        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(f"Table query failed on {self.model.__tablename__}: {e}")
            raise StoreUnavailableError() from e

        for row in result.scalars():
            yield row

    async def get_by_key(self, partition_key: str, row_key: str) -> T | None:
        """Fetch one row by key, or None if it doesn't exist."""
        try:
            return await self.db.get(self.model, (partition_key, row_key))
        except SQLAlchemyError as e:
            logger.error(f"Table lookup failed on {self.model.__tablename__}: {e}")
            raise StoreUnavailableError() from e

    async def insert(self, entity: T) -> T:
        """
        Insert a new row and commit.

        Raises:
            EntityExistsError: key already taken
            StoreUnavailableError: the backing database failed
        """
        self.db.add(entity)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise EntityExistsError(f"{entity.partition_key}/{entity.row_key}") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Table insert failed on {self.model.__tablename__}: {e}")
            raise StoreUnavailableError() from e

        await self.db.refresh(entity)
        return entity

    async def upsert(self, entity: T) -> T:
        """Insert or replace a row and commit."""
        try:
            merged = await self.db.merge(entity)
            await self.db.commit()
            await self.db.refresh(merged)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Table upsert failed on {self.model.__tablename__}: {e}")
            raise StoreUnavailableError() from e

        return merged
