from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from orderflow.config.db_session import dispose_engine, init_db
from orderflow.config.factory import (
    get_order_event_publisher,
    get_order_kafka_client,
    get_settings,
    get_user_service_client,
)
from orderflow.config.logger import get_logger
from orderflow.orders.models import OrdersBase
from orderflow.orders.routes import router
from orderflow.shared.errors import register_error_handlers

logger = get_logger("OrderService")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    - Creates the orders tables.
    - Starts the Kafka producer. A broker outage at boot only costs events:
      orders are still accepted and the producer is started again on first send.
    """
    settings = get_settings()
    await init_db(settings.database.orders_url, OrdersBase.metadata)

    kafka_client = get_order_kafka_client()
    try:
        if settings.kafka.auto_create_topics:
            await kafka_client.create_topics(
                [settings.kafka.topic],
                num_partitions=settings.kafka.num_partitions,
                replication_factor=settings.kafka.replication_factor,
            )
        await kafka_client.start()
    except Exception as exc:
        logger.error("Kafka unavailable at startup, order events will be lost until it recovers", error=str(exc))

    yield

    publisher = get_order_event_publisher()
    await publisher.drain()
    publisher.metrics.report()
    user_client = get_user_service_client()
    user_client.metrics.report()
    await kafka_client.stop()
    await user_client.aclose()
    await dispose_engine(settings.database.orders_url)


app = FastAPI(title="Order Service", version="1.0.0", lifespan=lifespan)
register_error_handlers(app)
app.include_router(router)


def run():
    settings = get_settings()
    uvicorn.run("orderflow.orders.main:app", host=settings.app.host, port=settings.app.orders_port)


if __name__ == "__main__":
    run()
