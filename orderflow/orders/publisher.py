import asyncio
from typing import Optional, Set

from orderflow.events import OrderCreatedFact
from orderflow.shared.clients import KafkaClient
from orderflow.shared.errors import PublishFailure
from orderflow.shared.logger import ServiceLogger
from orderflow.shared.metrics import MetricsCollector
from orderflow.shared.metrics.metrics_schema import KafkaMetrics


class OrderEventPublisher:
    """
    Fire-and-forget publisher for OrderCreatedFact.

    ``publish`` only schedules the send and returns. The outcome is observed on
    a background task and logged; nothing is retried and nothing reaches the
    caller. Background sends are not tied to the caller's task, so cancelling
    a request does not cancel a publish it already submitted.
    """

    def __init__(
        self,
        kafka_client: KafkaClient,
        topic: str = "order-events",
        publish_timeout: float = 5.0,
        logger: Optional[ServiceLogger] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.kafka_client = kafka_client
        self.topic = topic
        self.publish_timeout = publish_timeout
        self.logger = logger or ServiceLogger("OrderEventPublisher")
        self.metrics = metrics or kafka_client.metrics
        self._pending: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def publish(self, fact: OrderCreatedFact) -> None:
        self.logger.info(
            "Publishing OrderCreatedFact",
            topic=self.topic,
            order_id=fact.order_id,
            user_id=fact.user_id,
            product_name=fact.product_name,
        )
        task = asyncio.create_task(self._send(fact), name=f"publish-order-{fact.order_id}")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _send(self, fact: OrderCreatedFact):
        async def _send_and_ack():
            delivery = await self.kafka_client.send(self.topic, fact.to_message(), key=fact.message_key)
            return await delivery

        try:
            metadata = await asyncio.wait_for(_send_and_ack(), timeout=self.publish_timeout)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            failure = PublishFailure(str(exc) or type(exc).__name__, order_id=fact.order_id, user_id=fact.user_id)
            self.metrics.increment(KafkaMetrics.FAILED_PUBLISH)
            self.logger.error(
                "Failed to publish OrderCreatedFact",
                topic=self.topic,
                error=failure.message,
                **failure.context,
            )
            return

        self.metrics.increment(KafkaMetrics.PUBLISHED)
        self.logger.info(
            "OrderCreatedFact published",
            topic=metadata.topic,
            partition=metadata.partition,
            offset=metadata.offset,
            order_id=fact.order_id,
        )

    async def drain(self):
        """Wait for every in-flight publish to settle (shutdown, tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
