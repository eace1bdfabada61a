import asyncio
from typing import Awaitable, Callable, List, Optional, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from orderflow.notifications.models import Notification, NotificationStatus
from orderflow.shared.errors import PersistenceFailure
from orderflow.shared.logger import ServiceLogger

T = TypeVar("T")


class NotificationStore:
    """Notification records in the notification service database."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        timeout: float = 5.0,
        logger: Optional[ServiceLogger] = None,
    ):
        self.session_factory = session_factory
        self.timeout = timeout
        self.logger = logger or ServiceLogger("NotificationStore")

    async def _run(self, operation: str, work: Callable[[AsyncSession], Awaitable[T]], **context) -> T:
        async def _in_session() -> T:
            async with self.session_factory() as session:
                return await work(session)

        try:
            return await asyncio.wait_for(_in_session(), timeout=self.timeout)
        except (SQLAlchemyError, asyncio.TimeoutError) as exc:
            self.logger.error("Notification store operation failed", operation=operation, error=repr(exc), **context)
            raise PersistenceFailure(f"Notification store {operation} failed", **context) from exc

    async def save(self, notification: Notification) -> Notification:
        """Insert or update ``notification`` and return the stored state."""

        async def _save(session: AsyncSession) -> Notification:
            merged = await session.merge(notification)
            await session.commit()
            return merged

        return await self._run("save", _save, order_id=notification.order_id, user_id=notification.user_id)

    async def get(self, notification_id: int) -> Optional[Notification]:
        async def _get(session: AsyncSession) -> Optional[Notification]:
            return await session.get(Notification, notification_id)

        return await self._run("get", _get)

    async def list(self) -> List[Notification]:
        async def _list(session: AsyncSession) -> List[Notification]:
            result = await session.execute(select(Notification).order_by(Notification.id))
            return list(result.scalars().all())

        return await self._run("list", _list)

    async def find_by_status(self, status: NotificationStatus) -> List[Notification]:
        async def _find(session: AsyncSession) -> List[Notification]:
            result = await session.execute(
                select(Notification).where(Notification.status == status).order_by(Notification.id)
            )
            return list(result.scalars().all())

        return await self._run("find_by_status", _find)

    async def count_for_order(self, order_id: int) -> int:
        async def _count(session: AsyncSession) -> int:
            result = await session.execute(
                select(func.count()).select_from(Notification).where(Notification.order_id == order_id)
            )
            return result.scalar_one()

        return await self._run("count_for_order", _count, order_id=order_id)
