import asyncio
from typing import AsyncIterator, List, Optional

from aiokafka import AIOKafkaConsumer, AIOKafkaProducer
from aiokafka.admin import AIOKafkaAdminClient, NewTopic
from aiokafka.structs import ConsumerRecord, TopicPartition

from orderflow.shared.logger import ServiceLogger
from orderflow.shared.metrics import MetricsCollector
from orderflow.shared.metrics.metrics_schema import KafkaMetrics
from orderflow.shared.retry import ExponentialBackoffRetry, RetryPolicy


class KafkaClient:
    """
    Async Kafka client: producer and/or group consumer lifecycle, raw sends that
    hand back the delivery future, and manual offset commits.

    Offsets are never auto-committed; whoever consumes decides when a record
    counts as handled by calling ``commit``.
    """

    def __init__(
        self,
        bootstrap_servers: str,
        group_id: Optional[str] = None,
        topics: Optional[List[str]] = None,
        produce: bool = True,
        request_timeout_ms: int = 5000,
        logger: Optional[ServiceLogger] = None,
        metrics: Optional[MetricsCollector] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.bootstrap_servers = bootstrap_servers
        self.group_id = group_id
        self.topics = topics or []
        self.produce = produce
        self.request_timeout_ms = request_timeout_ms
        self.logger = logger or ServiceLogger("KafkaClient")
        self.metrics = metrics or MetricsCollector(self.logger, namespace="kafka")
        self.retry_policy: RetryPolicy = retry_policy or ExponentialBackoffRetry(max_attempts=5, logger=self.logger)

        self._producer: Optional[AIOKafkaProducer] = None
        self._consumer: Optional[AIOKafkaConsumer] = None
        self._running = False
        self._start_lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._running

    # --- Lifecycle ---
    async def start(self):
        """Start the producer and, when topics are set, the consumer."""
        async with self._start_lock:
            if self._running:
                return

            async def _start_producer():
                producer = AIOKafkaProducer(
                    bootstrap_servers=self.bootstrap_servers,
                    request_timeout_ms=self.request_timeout_ms,
                )
                await producer.start()
                self._producer = producer
                self.logger.info("Kafka producer started", bootstrap_servers=self.bootstrap_servers)

            async def _start_consumer():
                consumer = AIOKafkaConsumer(
                    *self.topics,
                    bootstrap_servers=self.bootstrap_servers,
                    group_id=self.group_id,
                    enable_auto_commit=False,
                    auto_offset_reset="earliest",
                )
                await consumer.start()
                self._consumer = consumer
                self.logger.info("Kafka consumer started", group_id=self.group_id, topics=self.topics)

            try:
                if self.produce:
                    await self.retry_policy.execute(_start_producer)
                if self.topics:
                    await self.retry_policy.execute(_start_consumer)
                self._running = True
            except asyncio.CancelledError:
                await self._close()
                raise
            except Exception as exc:
                self.logger.error("Failed to start KafkaClient", error=str(exc))
                # A producer started before the consumer failed must not leak
                await self._close()
                raise

    async def stop(self):
        if not self._running:
            return
        await self._close()

    async def _close(self):
        if self._consumer is not None:
            consumer, self._consumer = self._consumer, None
            await consumer.stop()
            self.logger.info("Kafka consumer stopped")
        if self._producer is not None:
            producer, self._producer = self._producer, None
            await producer.stop()
            self.logger.info("Kafka producer stopped")

        self._running = False

    # --- Produce ---
    async def send(self, topic: str, value: bytes, key: Optional[str] = None) -> asyncio.Future:
        """
        Enqueue a record and return the broker acknowledgement future.

        Awaiting this coroutine only waits for room in the producer buffer; the
        returned future resolves with ``RecordMetadata`` once the broker accepts
        the record, or raises if it does not. No retry happens here.
        """
        if not self._running:
            await self.start()
        if self._producer is None:
            raise RuntimeError("Kafka producer not initialized")

        try:
            future = await self._producer.send(
                topic,
                value=value,
                key=key.encode("utf-8") if key is not None else None,
            )
        except Exception as exc:
            self.metrics.increment(KafkaMetrics.FAILED_SEND)
            self.logger.error("Kafka send rejected", topic=topic, key=key, error=str(exc))
            raise
        self.metrics.increment(KafkaMetrics.SENT)
        return future

    # --- Consume ---
    async def consume(self) -> AsyncIterator[ConsumerRecord]:
        """Async generator yielding raw records; decoding is left to the caller."""
        if not self._running:
            await self.start()
        if self._consumer is None:
            raise RuntimeError("Kafka consumer not initialized")

        async for record in self._consumer:
            self.metrics.increment(KafkaMetrics.CONSUMED)
            self.logger.debug(
                "Consumed record",
                topic=record.topic,
                partition=record.partition,
                offset=record.offset,
            )
            yield record

    async def commit(self, record: ConsumerRecord):
        """Commit the offset following ``record`` for its partition."""
        if self._consumer is None:
            raise RuntimeError("Kafka consumer not initialized")
        tp = TopicPartition(record.topic, record.partition)
        await self._consumer.commit({tp: record.offset + 1})
        self.metrics.increment(KafkaMetrics.COMMITTED)

    # Dev helper; in production topics and replication are provisioned on the broker.
    async def create_topics(self, topics: List[str], num_partitions: int = 3, replication_factor: int = 1):
        """Create any of ``topics`` that do not exist yet."""
        admin = AIOKafkaAdminClient(
            bootstrap_servers=self.bootstrap_servers,
            request_timeout_ms=self.request_timeout_ms,
        )
        await admin.start()
        try:
            existing = await admin.list_topics()
            new_topics = [
                NewTopic(name=t, num_partitions=num_partitions, replication_factor=replication_factor)
                for t in topics
                if t not in existing
            ]

            if not new_topics:
                self.logger.info("All topics already exist", topics=topics)
                return

            await admin.create_topics(new_topics)
            self.logger.info("Topics created", topics=[t.name for t in new_topics])
        except Exception as exc:
            self.logger.error("Failed to create topics", topics=topics, error=str(exc))
            raise
        finally:
            await admin.close()
