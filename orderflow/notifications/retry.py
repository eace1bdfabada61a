"""
Redelivery of FAILED notifications.

Nothing in this service can fail a delivery yet (sending is simulated by
storing a SENT record), so no ``DeliveryChannel`` is wired by default and a
retry run only reports what it would pick up. A real channel plugs in here
without changing callers.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Protocol

from orderflow.notifications.models import Notification, NotificationStatus
from orderflow.notifications.repository import NotificationStore
from orderflow.shared.logger import ServiceLogger
from orderflow.shared.metrics import MetricsCollector
from orderflow.shared.metrics.metrics_schema import NotificationMetrics


class DeliveryChannel(Protocol):
    async def deliver(self, notification: Notification) -> None:
        """Deliver ``notification``; raise on failure."""


@dataclass(frozen=True)
class RetryReport:
    selected: int = 0
    sent: int = 0
    failed: int = 0


class NotificationRetrier:
    def __init__(
        self,
        store: NotificationStore,
        channel: Optional[DeliveryChannel] = None,
        logger: Optional[ServiceLogger] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.store = store
        self.channel = channel
        self.logger = logger or ServiceLogger("NotificationRetrier")
        self.metrics = metrics or MetricsCollector(self.logger, namespace="notification_retry")

    async def retry_failed(self) -> RetryReport:
        failed = await self.store.find_by_status(NotificationStatus.FAILED)
        self.metrics.increment(NotificationMetrics.RETRY_SELECTED, len(failed))

        if self.channel is None:
            self.logger.info("No delivery channel configured, leaving failed notifications as they are", failed=len(failed))
            return RetryReport(selected=len(failed))

        sent = 0
        for notification in failed:
            notification.attempt_count = (notification.attempt_count or 0) + 1
            try:
                await self.channel.deliver(notification)
            except Exception as exc:
                self.metrics.increment(NotificationMetrics.RETRY_FAILED)
                self.logger.warning(
                    "Redelivery failed",
                    notification_id=notification.id,
                    order_id=notification.order_id,
                    attempt_count=notification.attempt_count,
                    error=str(exc),
                )
            else:
                notification.status = NotificationStatus.SENT
                notification.sent_at = datetime.now(timezone.utc)
                sent += 1
                self.metrics.increment(NotificationMetrics.RETRY_SENT)
            await self.store.save(notification)

        report = RetryReport(selected=len(failed), sent=sent, failed=len(failed) - sent)
        self.logger.info("Retry run finished", selected=report.selected, sent=report.sent, failed=report.failed)
        return report
