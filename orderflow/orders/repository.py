import asyncio
from typing import Awaitable, Callable, List, Optional, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from orderflow.orders.models import Order
from orderflow.shared.errors import PersistenceFailure
from orderflow.shared.logger import ServiceLogger

T = TypeVar("T")


class OrderStore:
    """Order records in the order service database. Every call is bounded by ``timeout``."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        timeout: float = 5.0,
        logger: Optional[ServiceLogger] = None,
    ):
        self.session_factory = session_factory
        self.timeout = timeout
        self.logger = logger or ServiceLogger("OrderStore")

    async def _run(self, operation: str, work: Callable[[AsyncSession], Awaitable[T]], **context) -> T:
        async def _in_session() -> T:
            async with self.session_factory() as session:
                return await work(session)

        try:
            return await asyncio.wait_for(_in_session(), timeout=self.timeout)
        except (SQLAlchemyError, asyncio.TimeoutError) as exc:
            self.logger.error("Order store operation failed", operation=operation, error=repr(exc), **context)
            raise PersistenceFailure(f"Order store {operation} failed", **context) from exc

    async def save(self, order: Order) -> Order:
        """Insert ``order`` and return it with its assigned id."""

        async def _save(session: AsyncSession) -> Order:
            session.add(order)
            await session.commit()
            return order

        saved = await self._run("save", _save, user_id=order.user_id)
        self.logger.info("Order persisted", order_id=saved.id, user_id=saved.user_id)
        return saved

    async def get(self, order_id: int) -> Optional[Order]:
        async def _get(session: AsyncSession) -> Optional[Order]:
            return await session.get(Order, order_id)

        return await self._run("get", _get, order_id=order_id)

    async def list(self) -> List[Order]:
        async def _list(session: AsyncSession) -> List[Order]:
            result = await session.execute(select(Order).order_by(Order.id))
            return list(result.scalars().all())

        return await self._run("list", _list)

    async def count(self) -> int:
        async def _count(session: AsyncSession) -> int:
            result = await session.execute(select(func.count()).select_from(Order))
            return result.scalar_one()

        return await self._run("count", _count)
