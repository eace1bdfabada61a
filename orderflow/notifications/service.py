from datetime import datetime, timezone
from typing import List, Optional

from orderflow.events import OrderCreatedFact
from orderflow.notifications.models import Notification, NotificationChannel, NotificationStatus
from orderflow.notifications.repository import NotificationStore
from orderflow.notifications.retry import NotificationRetrier, RetryReport
from orderflow.shared.errors import NotFound
from orderflow.shared.logger import ServiceLogger
from orderflow.shared.metrics import MetricsCollector
from orderflow.shared.metrics.metrics_schema import NotificationMetrics

MESSAGE_TEMPLATE = "Order #{order_id} created for user #{user_id}. Product: {product_name}"


def render_order_message(order_id: int, user_id: int, product_name: str) -> str:
    return MESSAGE_TEMPLATE.format(order_id=order_id, user_id=user_id, product_name=product_name)


class NotificationService:
    """
    Turns order facts into stored notifications.

    There is no outbound channel yet: a notification counts as sent the moment
    its SENT record is stored. Fact values are taken as-is.
    """

    def __init__(
        self,
        store: NotificationStore,
        retrier: Optional[NotificationRetrier] = None,
        logger: Optional[ServiceLogger] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.store = store
        self.logger = logger or ServiceLogger("NotificationService")
        self.retrier = retrier or NotificationRetrier(store, logger=self.logger)
        self.metrics = metrics or MetricsCollector(self.logger, namespace="notifications")

    async def handle(self, fact: OrderCreatedFact) -> Notification:
        return await self.send_order_notification(fact.order_id, fact.user_id, fact.product_name)

    async def send_order_notification(self, order_id: int, user_id: int, product_name: str) -> Notification:
        message = render_order_message(order_id, user_id, product_name)
        notification = Notification(
            order_id=order_id,
            user_id=user_id,
            message=message,
            channel=NotificationChannel.EMAIL,
            status=NotificationStatus.SENT,
            sent_at=datetime.now(timezone.utc),
            attempt_count=0,
        )
        saved = await self.store.save(notification)
        self.metrics.increment(NotificationMetrics.SENT)
        self.logger.info(
            "Notification sent",
            notification_id=saved.id,
            user_id=user_id,
            channel=NotificationChannel.EMAIL.value,
            message=message,
        )
        return saved

    async def retry_failed_notifications(self) -> RetryReport:
        self.logger.info("Retrying failed notifications")
        return await self.retrier.retry_failed()

    async def get_notification(self, notification_id: int) -> Notification:
        notification = await self.store.get(notification_id)
        if notification is None:
            raise NotFound.for_entity("Notification", notification_id)
        return notification

    async def list_notifications(self) -> List[Notification]:
        return await self.store.list()
