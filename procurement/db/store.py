"""
Ledger store.

Keyed CRUD over an ``AsyncSession`` with one atomic unit of work per command.
Every call is bounded by the configured store timeout. Driver failures come
back as domain errors: integrity breaches as ``ConstraintViolation``,
timeouts and connection trouble as ``StoreUnavailable``. Lookups raise
``NotFound`` instead of returning ``None``. Reads always overwrite the
identity map with the stored row, so a session reused across commands never
serves state that another session or a guarded UPDATE has since changed.
"""

import asyncio
import functools
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from procurement.core.config import settings
from procurement.core.exceptions import ConstraintViolation, NotFound, StoreUnavailable
from procurement.core.logging import logger

T = TypeVar("T")


class LedgerStore:
    """Store operations bound to one database session."""

    def __init__(self, db: AsyncSession, timeout: Optional[float] = None):
        self.db = db
        self.timeout = timeout if timeout is not None else settings.store.timeout_seconds

    async def _call(self, awaitable: Awaitable[T], operation: str) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except IntegrityError as e:
            logger.warning(f"Constraint violation during {operation}: {e.orig}")
            raise ConstraintViolation(f"Constraint violation during {operation}: {e.orig}") from e
        except asyncio.TimeoutError as e:
            logger.error(f"Store call timed out after {self.timeout}s: {operation}")
            raise StoreUnavailable(f"Store timed out during {operation}") from e
        except (OperationalError, InterfaceError) as e:
            logger.error(f"Store unavailable during {operation}: {e}")
            raise StoreUnavailable(f"Store unavailable during {operation}") from e
        except DBAPIError as e:
            if e.connection_invalidated:
                logger.error(f"Connection invalidated during {operation}: {e}")
                raise StoreUnavailable(f"Connection lost during {operation}") from e
            raise

    async def execute(self, statement: Any, operation: str = "execute") -> Any:
        return await self._call(self.db.execute(statement), operation)

    async def get(self, model: Type[T], key: Any, for_update: bool = False) -> T:
        """
        Fetch one record by primary key.

        Args:
            model: Mapped class
            key: Primary key value
            for_update: Lock the row where supported

        Raises:
            NotFound: No record has this key
        """
        statement = select(model).where(model.id == key).execution_options(populate_existing=True)
        if for_update:
            statement = statement.with_for_update()
        result = await self.execute(statement, f"get {model.__name__}")
        record = result.scalars().first()
        if record is None:
            raise NotFound(model.__name__, key)
        return record

    async def find(self, model: Type[T], *criteria: Any, for_update: bool = False) -> Optional[T]:
        statement = select(model).where(*criteria).limit(1).execution_options(populate_existing=True)
        if for_update:
            statement = statement.with_for_update()
        result = await self.execute(statement, f"find {model.__name__}")
        return result.scalars().first()

    async def list(
        self,
        model: Type[T],
        *criteria: Any,
        order_by: Optional[Sequence[Any]] = None,
    ) -> List[T]:
        statement = select(model).execution_options(populate_existing=True)
        if criteria:
            statement = statement.where(*criteria)
        if order_by:
            statement = statement.order_by(*order_by)
        result = await self.execute(statement, f"list {model.__name__}")
        return list(result.scalars().all())

    async def count(self, model: Type[Any], *criteria: Any) -> int:
        statement = select(func.count()).select_from(model)
        if criteria:
            statement = statement.where(*criteria)
        result = await self.execute(statement, f"count {model.__name__}")
        return int(result.scalar() or 0)

    async def exists(self, model: Type[Any], *criteria: Any) -> bool:
        return await self.count(model, *criteria) > 0

    async def put(self, record: T) -> T:
        self.db.add(record)
        await self._call(self.db.flush(), f"put {type(record).__name__}")
        return record

    async def put_all(self, records: Sequence[Any]) -> None:
        self.db.add_all(records)
        await self._call(self.db.flush(), "put records")

    async def delete(self, record: Any) -> None:
        await self.db.delete(record)
        await self._call(self.db.flush(), f"delete {type(record).__name__}")

    async def refresh(self, record: T) -> T:
        await self._call(self.db.refresh(record), f"refresh {type(record).__name__}")
        return record

    @asynccontextmanager
    async def unit_of_work(self) -> AsyncIterator["LedgerStore"]:
        """
        Commit everything written inside the block, or nothing.

        Any exception raised in the block, or by the commit itself, rolls the
        session back before propagating.
        """
        try:
            yield self
            await self._call(self.db.commit(), "commit")
        except Exception:
            try:
                await self.db.rollback()
            except SQLAlchemyError as rollback_error:
                logger.error(f"Rollback failed: {rollback_error}")
            raise


def with_store_retry(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
    """
    Retry a command once (by default) with exponential backoff when the store
    is unavailable, then surface the failure.
    """

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        attempt = 0
        while True:
            try:
                return await func(*args, **kwargs)
            except StoreUnavailable:
                if attempt >= settings.store.max_retries:
                    logger.error(f"{func.__qualname__} failed: store unavailable after {attempt + 1} attempt(s)")
                    raise
                delay = settings.store.retry_backoff_seconds * (2 ** attempt)
                attempt += 1
                logger.warning(f"{func.__qualname__}: store unavailable, retrying in {delay:.2f}s")
                await asyncio.sleep(delay)

    return wrapper
