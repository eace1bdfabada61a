import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from orderflow.config.db_session import dispose_engine, get_sessionmaker
from orderflow.events import OrderCreatedFact
from orderflow.orders.publisher import OrderEventPublisher
from orderflow.orders.repository import OrderStore
from orderflow.orders.schemas import OrderCreate
from orderflow.orders.service import OrderWorkflow
from orderflow.shared.errors import NotFound, PersistenceFailure, ValidationFailure
from orderflow.shared.metrics.metrics_schema import KafkaMetrics
from tests.fakes import RecordingKafka


def user_client(exists=True):
    client = AsyncMock()
    client.exists.return_value = exists
    return client


def widget_order(user_id=7):
    return OrderCreate(user_id=user_id, product_name="Widget", product_price=9.99, total=9.99)


@pytest.mark.asyncio
async def test_create_order_stores_then_publishes(order_store):
    publisher = MagicMock(spec=OrderEventPublisher)
    users = user_client(exists=True)
    workflow = OrderWorkflow(users, order_store, publisher, validation_deadline=10.0)

    order = await workflow.create_order(widget_order())

    assert order.id is not None
    assert order.status == "CREATED"
    assert order.created_at is not None
    users.exists.assert_awaited_once_with(7, timeout=10.0)

    publisher.publish.assert_called_once()
    fact = publisher.publish.call_args.args[0]
    assert isinstance(fact, OrderCreatedFact)
    assert (fact.order_id, fact.user_id, fact.product_name) == (order.id, 7, "Widget")
    assert await order_store.count() == 1


@pytest.mark.asyncio
async def test_unknown_user_is_rejected_without_side_effects(order_store):
    publisher = MagicMock(spec=OrderEventPublisher)
    workflow = OrderWorkflow(user_client(exists=False), order_store, publisher)

    with pytest.raises(ValidationFailure) as excinfo:
        await workflow.create_order(widget_order(user_id=999))

    assert excinfo.value.to_payload() == {
        "error": "User not found",
        "message": "Cannot create order for non-existent user",
    }
    assert excinfo.value.user_id == 999
    assert await order_store.count() == 0
    publisher.publish.assert_not_called()


@pytest.mark.asyncio
async def test_order_survives_broker_outage(order_store, metrics):
    publisher = OrderEventPublisher(RecordingKafka(fail_with=ConnectionError("broker down")), metrics=metrics)
    workflow = OrderWorkflow(user_client(), order_store, publisher)

    order = await workflow.create_order(widget_order())
    await publisher.drain()

    assert await order_store.get(order.id) is not None
    assert metrics.get(KafkaMetrics.FAILED_PUBLISH) == 1


@pytest.mark.asyncio
async def test_storage_failure_skips_publish(tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'orders.db'}"
    store = OrderStore(get_sessionmaker(url), timeout=5.0)
    publisher = MagicMock(spec=OrderEventPublisher)
    workflow = OrderWorkflow(user_client(), store, publisher)

    try:
        with pytest.raises(PersistenceFailure) as excinfo:
            await workflow.create_order(widget_order())
    finally:
        await dispose_engine(url)

    assert excinfo.value.status_code == 500
    publisher.publish.assert_not_called()


@pytest.mark.asyncio
async def test_ids_increase_across_orders(order_store):
    workflow = OrderWorkflow(user_client(), order_store, MagicMock(spec=OrderEventPublisher))

    first = await workflow.create_order(widget_order())
    second = await workflow.create_order(widget_order())

    assert second.id > first.id
    assert [o.id for o in await workflow.list_orders()] == [first.id, second.id]


@pytest.mark.asyncio
async def test_get_missing_order_raises_not_found(order_store):
    workflow = OrderWorkflow(user_client(), order_store, MagicMock(spec=OrderEventPublisher))

    with pytest.raises(NotFound) as excinfo:
        await workflow.get_order(404)

    assert excinfo.value.to_payload()["error"] == "Order not found"
    assert excinfo.value.status_code == 404


@pytest.mark.asyncio
async def test_cancelled_request_does_not_cancel_submitted_publish(order_store, metrics):
    kafka = RecordingKafka()
    broker_ready = asyncio.Event()
    record_send = kafka.send

    async def held_send(topic, value, key=None):
        await broker_ready.wait()
        return await record_send(topic, value, key=key)

    kafka.send = held_send
    publisher = OrderEventPublisher(kafka, metrics=metrics)
    workflow = OrderWorkflow(user_client(), order_store, publisher)
    order_returned = asyncio.Event()

    async def request():
        await workflow.create_order(widget_order())
        order_returned.set()
        await asyncio.Event().wait()

    task = asyncio.create_task(request())
    await asyncio.wait_for(order_returned.wait(), timeout=5.0)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert publisher.pending == 1
    broker_ready.set()
    await publisher.drain()

    assert len(kafka.records) == 1
    assert metrics.get(KafkaMetrics.PUBLISHED) == 1
