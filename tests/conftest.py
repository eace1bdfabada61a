import os

# Console logging only while testing; must be set before orderflow settings load.
os.environ.setdefault("APP_LOG_FILE", "")
os.environ.setdefault("APP_LOG_LEVEL", "WARNING")

import pytest
import pytest_asyncio

from orderflow.config.db_session import dispose_engine, drop_db, get_sessionmaker, init_db
from orderflow.notifications.models import NotificationsBase
from orderflow.notifications.repository import NotificationStore
from orderflow.orders.models import OrdersBase
from orderflow.orders.repository import OrderStore
from orderflow.shared.metrics import MetricsCollector
from tests.fakes import RecordingKafka


@pytest_asyncio.fixture
async def orders_session_factory(tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path / 'orders.db'}"
    await init_db(url, OrdersBase.metadata)
    yield get_sessionmaker(url)
    await drop_db(url, OrdersBase.metadata)
    await dispose_engine(url)


@pytest_asyncio.fixture
async def notifications_session_factory(tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path / 'notifications.db'}"
    await init_db(url, NotificationsBase.metadata)
    yield get_sessionmaker(url)
    await drop_db(url, NotificationsBase.metadata)
    await dispose_engine(url)


@pytest.fixture
def order_store(orders_session_factory):
    return OrderStore(orders_session_factory, timeout=5.0)


@pytest.fixture
def notification_store(notifications_session_factory):
    return NotificationStore(notifications_session_factory, timeout=5.0)


@pytest.fixture
def metrics():
    return MetricsCollector(namespace="test")


@pytest.fixture
def recording_kafka():
    return RecordingKafka()
