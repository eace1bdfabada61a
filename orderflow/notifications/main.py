from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from orderflow.config.db_session import dispose_engine, init_db
from orderflow.config.factory import get_order_event_consumer, get_settings
from orderflow.notifications.models import NotificationsBase
from orderflow.notifications.routes import router
from orderflow.shared.errors import register_error_handlers


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    - Creates the notifications tables.
    - Joins the consumer group on ``order-events`` in the background. While the
      broker is down the HTTP endpoints still serve and the consumer keeps
      reconnecting.
    """
    settings = get_settings()
    await init_db(settings.database.notifications_url, NotificationsBase.metadata)

    consumer = get_order_event_consumer()
    await consumer.start()

    yield

    await consumer.stop()
    consumer.metrics.report()
    await dispose_engine(settings.database.notifications_url)


app = FastAPI(title="Notification Service", version="1.0.0", lifespan=lifespan)
register_error_handlers(app)
app.include_router(router)


def run():
    settings = get_settings()
    uvicorn.run("orderflow.notifications.main:app", host=settings.app.host, port=settings.app.notifications_port)


if __name__ == "__main__":
    run()
