from datetime import datetime
from typing import Optional

from pydantic import ConfigDict

from orderflow.notifications.models import NotificationChannel, NotificationStatus
from orderflow.shared.schemas import CamelModel


class NotificationResponse(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_id: int
    user_id: int
    message: str
    channel: NotificationChannel
    status: NotificationStatus
    sent_at: Optional[datetime] = None
    attempt_count: int = 0
