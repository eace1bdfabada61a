import enum

from sqlalchemy import Column, DateTime, Enum, Integer, String, Text
from sqlalchemy.orm import declarative_base

# Separate metadata: the notification service owns its own database.
NotificationsBase = declarative_base()


class NotificationChannel(str, enum.Enum):
    EMAIL = "EMAIL"
    SMS = "SMS"
    PUSH = "PUSH"


class NotificationStatus(str, enum.Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


class Notification(NotificationsBase):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # Copied from the order fact; the orders table lives in another database.
    order_id = Column(Integer, nullable=False, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    message = Column(Text, nullable=False)
    channel = Column(Enum(NotificationChannel, native_enum=False, length=16), nullable=False)
    status = Column(
        Enum(NotificationStatus, native_enum=False, length=16),
        nullable=False,
        default=NotificationStatus.PENDING,
        index=True,
    )
    sent_at = Column(DateTime(timezone=True), nullable=True)
    attempt_count = Column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<Notification id={self.id} order_id={self.order_id} status={self.status}>"
