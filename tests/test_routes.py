from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from orderflow.config.factory import get_notification_service, get_order_workflow, get_user_registry
from orderflow.notifications.main import app as notifications_app
from orderflow.notifications.models import Notification, NotificationChannel, NotificationStatus
from orderflow.orders.main import app as orders_app
from orderflow.orders.models import Order
from orderflow.shared.errors import NotFound, PersistenceFailure, ValidationFailure
from orderflow.users.crud import UserRegistry
from orderflow.users.main import app as users_app


def stored_order(**overrides):
    values = dict(
        id=1,
        user_id=7,
        product_name="Widget",
        product_price=9.99,
        total=9.99,
        status="CREATED",
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )
    values.update(overrides)
    return Order(**values)


def stored_notification(**overrides):
    values = dict(
        id=1,
        order_id=1,
        user_id=7,
        message="Order #1 created for user #7. Product: Widget",
        channel=NotificationChannel.EMAIL,
        status=NotificationStatus.SENT,
        sent_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        attempt_count=0,
    )
    values.update(overrides)
    return Notification(**values)


@pytest.fixture
def workflow():
    mock = AsyncMock()
    orders_app.dependency_overrides[get_order_workflow] = lambda: mock
    yield mock
    orders_app.dependency_overrides.clear()


@pytest.fixture
def notification_service():
    mock = AsyncMock()
    notifications_app.dependency_overrides[get_notification_service] = lambda: mock
    yield mock
    notifications_app.dependency_overrides.clear()


@pytest.fixture
def registry():
    registry = UserRegistry()
    users_app.dependency_overrides[get_user_registry] = lambda: registry
    yield registry
    users_app.dependency_overrides.clear()


# ----------------------------
# Orders
# ----------------------------
def test_create_order_returns_camel_case_order(workflow):
    workflow.create_order.return_value = stored_order()
    client = TestClient(orders_app)

    response = client.post(
        "/orders",
        json={"userId": 7, "productName": "Widget", "productPrice": 9.99, "total": 9.99},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == 1
    assert body["userId"] == 7
    assert body["productName"] == "Widget"
    assert body["status"] == "CREATED"
    assert "createdAt" in body

    payload = workflow.create_order.await_args.args[0]
    assert payload.user_id == 7
    assert payload.status == "CREATED"


def test_create_order_for_unknown_user_returns_400(workflow):
    workflow.create_order.side_effect = ValidationFailure(user_id=999)
    client = TestClient(orders_app)

    response = client.post(
        "/orders",
        json={"userId": 999, "productName": "Widget", "productPrice": 9.99, "total": 9.99},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "User not found", "message": "Cannot create order for non-existent user"}


def test_create_order_storage_failure_returns_500(workflow):
    workflow.create_order.side_effect = PersistenceFailure("Order store save failed", user_id=7)
    client = TestClient(orders_app)

    response = client.post(
        "/orders",
        json={"userId": 7, "productName": "Widget", "productPrice": 9.99, "total": 9.99},
    )

    assert response.status_code == 500
    assert response.json() == {"error": "Persistence error", "message": "Order store save failed"}


def test_negative_price_is_rejected_before_the_workflow(workflow):
    client = TestClient(orders_app)

    response = client.post(
        "/orders",
        json={"userId": 7, "productName": "Widget", "productPrice": -1, "total": 9.99},
    )

    assert response.status_code == 422
    workflow.create_order.assert_not_awaited()


def test_get_missing_order_returns_404(workflow):
    workflow.get_order.side_effect = NotFound.for_entity("Order", 5, order_id=5)
    client = TestClient(orders_app)

    response = client.get("/orders/5")

    assert response.status_code == 404
    assert response.json() == {"error": "Order not found", "message": "Order 5 does not exist"}


def test_list_orders(workflow):
    workflow.list_orders.return_value = [stored_order(id=1), stored_order(id=2)]
    client = TestClient(orders_app)

    response = client.get("/orders")

    assert [o["id"] for o in response.json()] == [1, 2]


# ----------------------------
# Notifications
# ----------------------------
def test_manual_order_notification_uses_query_parameters(notification_service):
    notification_service.send_order_notification.return_value = stored_notification()
    client = TestClient(notifications_app)

    response = client.post("/notifications/order", params={"orderId": 1, "userId": 7, "productName": "Widget"})

    assert response.status_code == 200
    assert response.json()["message"] == "Order #1 created for user #7. Product: Widget"
    assert response.json()["channel"] == "EMAIL"
    notification_service.send_order_notification.assert_awaited_once_with(1, 7, "Widget")


def test_retry_endpoint_answers_and_runs_in_background(notification_service):
    client = TestClient(notifications_app)

    response = client.post("/notifications/retry")

    assert response.status_code == 200
    assert response.text == "Retry process started"
    notification_service.retry_failed_notifications.assert_awaited_once()


def test_get_missing_notification_returns_404(notification_service):
    notification_service.get_notification.side_effect = NotFound.for_entity("Notification", 9)
    client = TestClient(notifications_app)

    response = client.get("/notifications/9")

    assert response.status_code == 404
    assert response.json()["error"] == "Notification not found"


def test_list_notifications(notification_service):
    notification_service.list_notifications.return_value = [stored_notification()]
    client = TestClient(notifications_app)

    response = client.get("/notifications")

    assert response.status_code == 200
    assert response.json()[0]["orderId"] == 1


# ----------------------------
# Users
# ----------------------------
def test_user_lifecycle(registry):
    client = TestClient(users_app)

    created = client.post("/users", json={"name": "Ada", "email": "ada@example.com"})
    assert created.status_code == 200
    user_id = created.json()["id"]

    fetched = client.get(f"/users/{user_id}")
    assert fetched.json() == {"id": user_id, "name": "Ada", "email": "ada@example.com"}
    assert [u["id"] for u in client.get("/users").json()] == [user_id]


def test_unknown_user_returns_404(registry):
    client = TestClient(users_app)

    response = client.get("/users/404")

    assert response.status_code == 404
    assert response.json() == {"error": "User not found", "message": "User 404 does not exist"}
