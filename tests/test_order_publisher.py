import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from aiokafka.errors import KafkaTimeoutError

from orderflow.events import OrderCreatedFact
from orderflow.orders.publisher import OrderEventPublisher
from orderflow.shared.metrics.metrics_schema import KafkaMetrics
from tests.fakes import RecordingKafka


def widget_fact(order_id=5):
    return OrderCreatedFact(order_id=order_id, user_id=7, product_name="Widget", product_price=9.99, total=9.99)


@pytest.mark.asyncio
async def test_publish_sends_keyed_json_record(recording_kafka, metrics):
    publisher = OrderEventPublisher(recording_kafka, topic="order-events", metrics=metrics)

    publisher.publish(widget_fact())
    await publisher.drain()

    [record] = recording_kafka.records
    assert record.topic == "order-events"
    assert record.key == b"5"
    assert json.loads(record.value)["productName"] == "Widget"
    assert metrics.get(KafkaMetrics.PUBLISHED) == 1
    assert publisher.pending == 0


@pytest.mark.asyncio
async def test_publish_returns_before_broker_acknowledges(metrics):
    kafka = RecordingKafka()
    acked = asyncio.Event()
    original_send = kafka.send

    async def slow_send(topic, value, key=None):
        await acked.wait()
        return await original_send(topic, value, key=key)

    kafka.send = slow_send
    publisher = OrderEventPublisher(kafka, metrics=metrics)

    publisher.publish(widget_fact())
    assert publisher.pending == 1
    assert kafka.records == []

    acked.set()
    await publisher.drain()
    assert len(kafka.records) == 1


@pytest.mark.asyncio
async def test_broker_rejection_is_logged_not_raised(metrics):
    kafka = RecordingKafka(fail_with=KafkaTimeoutError())
    publisher = OrderEventPublisher(kafka, metrics=metrics)

    publisher.publish(widget_fact())
    await publisher.drain()

    assert metrics.get(KafkaMetrics.FAILED_PUBLISH) == 1
    assert metrics.get(KafkaMetrics.PUBLISHED) == 0


@pytest.mark.asyncio
async def test_send_error_before_enqueue_is_contained(metrics):
    kafka = RecordingKafka()
    kafka.send = AsyncMock(side_effect=RuntimeError("Kafka producer not initialized"))
    publisher = OrderEventPublisher(kafka, metrics=metrics)

    publisher.publish(widget_fact())
    await publisher.drain()

    assert metrics.get(KafkaMetrics.FAILED_PUBLISH) == 1


@pytest.mark.asyncio
async def test_unacknowledged_publish_times_out(metrics):
    kafka = RecordingKafka()

    async def never_acked(topic, value, key=None):
        return asyncio.get_running_loop().create_future()

    kafka.send = never_acked
    publisher = OrderEventPublisher(kafka, publish_timeout=0.05, metrics=metrics)

    publisher.publish(widget_fact())
    await publisher.drain()

    assert metrics.get(KafkaMetrics.FAILED_PUBLISH) == 1
