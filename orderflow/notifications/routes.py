from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from fastapi.responses import PlainTextResponse

from orderflow.config.factory import get_notification_service
from orderflow.notifications.schemas import NotificationResponse
from orderflow.notifications.service import NotificationService
from orderflow.shared.schemas import ErrorResponse

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=List[NotificationResponse])
async def list_notifications_endpoint(service: NotificationService = Depends(get_notification_service)):
    return await service.list_notifications()


@router.get("/{notification_id}", response_model=NotificationResponse, responses={404: {"model": ErrorResponse}})
async def get_notification_endpoint(
    notification_id: int, service: NotificationService = Depends(get_notification_service)
):
    return await service.get_notification(notification_id)


# Manual trigger, bypasses Kafka
@router.post("/order", response_model=NotificationResponse, responses={500: {"model": ErrorResponse}})
async def send_order_notification_endpoint(
    order_id: int = Query(alias="orderId"),
    user_id: int = Query(alias="userId"),
    product_name: str = Query(alias="productName", min_length=1),
    service: NotificationService = Depends(get_notification_service),
):
    return await service.send_order_notification(order_id, user_id, product_name)


@router.post("/retry", response_class=PlainTextResponse)
async def retry_failed_notifications_endpoint(
    background_tasks: BackgroundTasks, service: NotificationService = Depends(get_notification_service)
):
    background_tasks.add_task(service.retry_failed_notifications)
    return "Retry process started"
