import asyncio
from typing import Optional, Protocol

from aiokafka.errors import KafkaError
from aiokafka.structs import ConsumerRecord
from pydantic import ValidationError

from orderflow.events import OrderCreatedFact
from orderflow.notifications.models import Notification
from orderflow.shared.clients import KafkaClient
from orderflow.shared.errors import ConsumeFailure
from orderflow.shared.logger import ServiceLogger
from orderflow.shared.metrics import MetricsCollector
from orderflow.shared.metrics.metrics_schema import ConsumeMetrics


class OrderFactHandler(Protocol):
    async def handle(self, fact: OrderCreatedFact) -> Notification: ...


def _order_id_from_key(key: Optional[bytes]) -> Optional[int]:
    if not key:
        return None
    try:
        return int(key.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        return None


class OrderEventConsumer:
    """
    Group subscription to ``order-events`` feeding the notification pipeline.

    Records are handled one at a time per consumer and the offset is committed
    only after the handler returns, successfully or not. A failing record is
    logged and skipped, never redelivered; delivery is at-least-once, so the
    same fact can still arrive twice after a restart or rebalance.

    The subscription outlives broker outages: ``start`` only spawns a
    supervising task, which (re)starts the Kafka client and consumes until
    cancelled, waiting ``restart_backoff`` seconds after any failure.
    """

    def __init__(
        self,
        kafka_client: KafkaClient,
        pipeline: OrderFactHandler,
        restart_backoff: float = 1.0,
        logger: Optional[ServiceLogger] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.kafka_client = kafka_client
        self.pipeline = pipeline
        self.restart_backoff = restart_backoff
        self.logger = logger or ServiceLogger("OrderEventConsumer")
        self.metrics = metrics or kafka_client.metrics
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self):
        if self.running:
            return
        self._task = asyncio.create_task(self._supervise(), name="order-events-consumer")

    async def stop(self):
        if self._task is not None:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None
        await self.kafka_client.stop()
        self.logger.info("Order event consumer stopped")

    async def _supervise(self):
        while True:
            try:
                await self._consume_once()
                self.logger.warning("Order event stream ended, resubscribing", retry_in=self.restart_backoff)
            except asyncio.CancelledError:
                self.logger.info("Consume loop cancelled")
                raise
            except Exception as exc:
                self.logger.error(
                    "Order event consumer failed, restarting",
                    error=str(exc) or type(exc).__name__,
                    retry_in=self.restart_backoff,
                )
                await self._reset_client()
            await asyncio.sleep(self.restart_backoff)

    async def _consume_once(self):
        await self.kafka_client.start()
        self.logger.info("Order event consumer started", topics=self.kafka_client.topics, group_id=self.kafka_client.group_id)
        async for record in self.kafka_client.consume():
            await self.process(record)

    async def _reset_client(self):
        try:
            await self.kafka_client.stop()
        except Exception as exc:
            self.logger.warning("Kafka client did not stop cleanly", error=str(exc))

    async def process(self, record: ConsumerRecord) -> Optional[Notification]:
        """Handle one record, then commit its offset. Returns the notification if one was stored."""
        notification = await self._handle(record)
        try:
            await self.kafka_client.commit(record)
        except KafkaError as exc:
            # The record will come back after the rebalance.
            self.logger.warning(
                "Offset commit failed",
                partition=record.partition,
                offset=record.offset,
                error=str(exc),
            )
        return notification

    async def _handle(self, record: ConsumerRecord) -> Optional[Notification]:
        order_id = _order_id_from_key(record.key)
        try:
            fact = OrderCreatedFact.from_message(record.value)
        except ValidationError as exc:
            self.metrics.increment(ConsumeMetrics.UNDECODABLE)
            self._log_failure(record, ConsumeFailure(f"Undecodable order event ({exc.error_count()} errors)", order_id=order_id))
            return None

        order_id = fact.order_id
        self.logger.info(
            "Received OrderCreatedFact",
            order_id=order_id,
            user_id=fact.user_id,
            product_name=fact.product_name,
            partition=record.partition,
            offset=record.offset,
        )
        try:
            notification = await self.pipeline.handle(fact)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self.metrics.increment(ConsumeMetrics.FAILED)
            self._log_failure(record, ConsumeFailure(str(exc) or type(exc).__name__, order_id=order_id))
            return None

        self.metrics.increment(ConsumeMetrics.HANDLED)
        self.logger.info("Notification sent for order", order_id=order_id, notification_id=notification.id)
        return notification

    def _log_failure(self, record: ConsumerRecord, failure: ConsumeFailure):
        self.logger.error(
            "Failed to process OrderCreatedFact",
            error=failure.message,
            partition=record.partition,
            offset=record.offset,
            **failure.context,
        )
